"""Cookie store readers and finders for ELinks, w3m, Konqueror, Safari, Epiphany and Opera."""