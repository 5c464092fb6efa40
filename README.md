# kooky

Find the cookie stores of web browsers, read their cookies, filter them and
print them or export them in the Netscape `cookies.txt` format that curl and
wget understand.

## Supported stores

| Module                     | Store                                   | Looked for by the finder on       |
|----------------------------|-----------------------------------------|-----------------------------------|
| `kooky.browsers.elinks`    | `~/.elinks/cookies`                     | Linux and the BSDs, Solaris       |
| `kooky.browsers.w3m`       | `~/.w3m/cookie`                         | Linux and the BSDs, Solaris       |
| `kooky.browsers.konqueror` | `kcookiejar/cookies` in the data dirs   | everything but Windows            |
| `kooky.browsers.safari`    | `Cookies.binarycookies`                 | macOS and Windows                 |
| `kooky.browsers.epiphany`  | `cookies.sqlite`                        | everything but Windows and mobile |
| `kooky.browsers.opera`     | Opera Presto `cookies4.dat`             | Linux, macOS, Windows             |

Each browser module offers `cookie_store(filename, *filters)`,
`traverse_cookies(filename, *filters)` and (except `opera`)
`read_cookies(filename, *filters)`, plus a finder class such as
`W3mFinder` whose `find_cookie_stores()` yields the stores at the default
locations.

## Installation

```
pip install kooky
```

## Command line

```
kooky                       # list valid cookies from every store found
kooky -e                    # include expired cookies
kooky -b w3m -d google      # only w3m, domains containing "google"
kooky -n NID -j             # cookies named NID, as JSON Lines
kooky -o cookies.txt        # export in Netscape format ("-" for stdout)
kooky -q                    # only default profiles
kooky -p work               # only the profile named "work"
```

Options:

- `-b`, `--browser` — only stores of this browser
- `-p`, `--profile` — only stores of this profile
- `-q`, `--default-profile` — only default profiles
- `-e`, `--expired` — also show expired and malformed cookies (by default only `VALID` ones)
- `-d`, `--domain` — cookie domain contains this text
- `-n`, `--name` — cookie name is exactly this
- `-o`, `--export` — write the cookies in Netscape format to this file, or to stdout for `-`
- `-j`, `--jsonl` — one JSON object per cookie

The plain listing has aligned columns: browser, profile, container, file
path, domain, name, value and expiry time in local time. Long fields are cut
to 45 characters and end with `…`; control characters in values are escaped.

An export file is opened without truncation: when it already exists and is
longer than the new content, its old tail stays in place.

## Library

Read one store directly:

```python
from kooky.browsers import w3m
from kooky.filter import domain_has_suffix, name

for cookie in w3m.read_cookies("/home/me/.w3m/cookie", domain_has_suffix("google.de"), name("NID")):
    print(cookie.domain, cookie.name, cookie.value, cookie.expires)
```

Search every registered browser:

```python
from kooky.browsers.all import register_all
from kooky.find import read_all_cookies, first_match
from kooky.filter import domain, name

register_all()
cookies = read_all_cookies(domain(".google.com"))
nid = first_match(domain(".google.com"), name("NID"))
```

`kooky.find` also has `traverse_cookies(*filters)`,
`traverse_cookie_stores()`, `find_all_cookie_stores()`,
`register_finder(browser, finder)` and `registered_finders()`. Stores that
cannot be read, and finders that fail, are skipped.

Cookie stores are context managers:

```python
from kooky.browsers import safari

with safari.cookie_store("Cookies.binarycookies") as store:
    for cookie in store.traverse_cookies():
        print(cookie.name)
```

### Cookies

`kooky.cookie.Cookie` is a dataclass with `name`, `value`, `domain`, `path`,
`expires`, `creation`, `secure`, `http_only`, `container` and `store` (the
`CookieStore` it came from, carrying `browser`, `profile`,
`is_default_profile` and `file_path`). `is_expired(now=None)` compares the
expiry with the given or current time.

### Filters

`kooky.filter` holds filters, which are callables taking a cookie:

- `domain`, `domain_contains`, `domain_has_prefix`, `domain_has_suffix`
- `name`, `name_contains`, `name_has_prefix`, `name_has_suffix`
- `path`, `path_contains`, `path_has_prefix`, `path_has_suffix`, `path_depth`
- `value`, `value_contains`, `value_has_prefix`, `value_has_suffix`, `value_len`
- `expires_after`, `expires_before`, `creation_after`, `creation_before`
- `SECURE`, `HTTP_ONLY`, `VALID`, `EXPIRED`, and `DEBUG`, which prints each cookie and lets it pass

`filter_cookie(cookie, *filters)` tests one cookie;
`filter_cookies(cookies, *filters)` yields the cookies that pass and raises
`ValueError` for an empty list or tuple. Any plain function taking a cookie
and returning a bool works as a filter too.

### Export

`kooky.export.export_cookies(cookies, stream)` writes cookies in the
Netscape format, with a header only when there is at least one cookie;
`format_cookie_line(cookie)` gives a single line. HttpOnly cookies get the
`#HttpOnly_` domain prefix.

## What kooky does not do

- It does not read Chrome, Chromium, Brave, Edge, Firefox, Internet
  Explorer, Netscape `cookies.txt`, Lynx, Dillo or uzbl stores, and has no
  finders for them.
- It does not read Opera's newer SQLite cookie databases:
  `kooky.browsers.opera.cookie_store` raises `ValueError` for them.
- It does not decrypt encrypted cookie values or query an operating system
  keyring.
- It only reads cookies; it never writes back to a browser's store and
  offers no HTTP cookie jar.