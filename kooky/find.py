"""Finding cookie stores through registered finders and reading cookies across them."""

from __future__ import annotations

import abc
import logging
import threading
from contextlib import closing
from typing import Callable, Dict, Iterator, List, Optional

from kooky.cookie import Cookie, CookieStore

_log = logging.getLogger(__name__)

_FINDERS: Dict[str, "CookieStoreFinder"] = {}
_LOCK = threading.RLock()


class CookieStoreFinder(abc.ABC):
    """Looks for the cookie stores of one browser at their default locations."""

    @abc.abstractmethod
    def find_cookie_stores(self) -> Iterator[CookieStore]:
        """Yield the cookie stores found at default locations."""


def register_finder(browser: str, finder: Optional[CookieStoreFinder]) -> None:
    """Register ``finder`` under ``browser``; a ``None`` finder is ignored."""
    if finder is None:
        return
    with _LOCK:
        _FINDERS[browser] = finder


def registered_finders() -> Dict[str, CookieStoreFinder]:
    """Return a copy of the registered finders, keyed by browser name."""
    with _LOCK:
        return dict(_FINDERS)


def traverse_cookie_stores() -> Iterator[CookieStore]:
    """Yield the cookie stores of all registered finders.

    A finder that fails contributes the stores it found before failing.
    """
    for browser, finder in sorted(registered_finders().items()):
        try:
            for store in finder.find_cookie_stores():
                if store is not None:
                    yield store
        except Exception as exc:  # one broken finder must not hide the others
            _log.debug("cookie store finder %s failed: %s", browser, exc)


def find_all_cookie_stores() -> List[CookieStore]:
    """Return the cookie stores of all registered finders as a list."""
    return list(traverse_cookie_stores())


def traverse_cookies(*filters: Optional[Callable[[Cookie], bool]]) -> Iterator[Cookie]:
    """Yield the cookies of all found stores that pass all ``filters``.

    Each store is closed after it has been read; stores that cannot be read
    are skipped.
    """
    for store in traverse_cookie_stores():
        try:
            with store:
                yield from store.traverse_cookies(*filters)
        except Exception as exc:  # one unreadable store must not hide the others
            _log.debug("cookie store %r: %s", store, exc)


def read_all_cookies(*filters: Optional[Callable[[Cookie], bool]]) -> List[Cookie]:
    """Return the cookies of all found stores that pass all ``filters``."""
    return list(traverse_cookies(*filters))


def first_match(*filters: Optional[Callable[[Cookie], bool]]) -> Optional[Cookie]:
    """Return the first cookie that passes all ``filters``, or ``None``."""
    with closing(traverse_cookies(*filters)) as cookies:
        return next(cookies, None)