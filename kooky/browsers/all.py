"""Registration of the cookie store finders of every supported browser."""

from __future__ import annotations

from kooky.browsers.elinks import ElinksFinder
from kooky.browsers.epiphany import EpiphanyFinder
from kooky.browsers.konqueror import KonquerorFinder
from kooky.browsers.opera import OperaFinder
from kooky.browsers.safari import SafariFinder
from kooky.browsers.w3m import W3mFinder
from kooky.find import register_finder

_FINDERS = {
    "elinks": ElinksFinder,
    "epiphany": EpiphanyFinder,
    "konqueror": KonquerorFinder,
    "opera": OperaFinder,
    "safari": SafariFinder,
    "w3m": W3mFinder,
}


def register_all() -> None:
    """Register a finder for each supported browser under the browser's name."""
    for browser, finder_class in _FINDERS.items():
        register_finder(browser, finder_class())