"""Reading the cookie file of the w3m text browser."""

from __future__ import annotations

import os
import re
import sys
from datetime import datetime, timedelta, timezone
from typing import IO, Callable, Iterable, Iterator, List, Optional

from kooky.cookie import Cookie, CookieStore
from kooky.find import CookieStoreFinder

_COLUMNS = 11
_COO_SECURE = 2
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INT = re.compile(r"[+-]?[0-9]+")
_UNIX_PLATFORMS = ("linux", "freebsd", "openbsd", "netbsd", "dragonfly", "sunos")

CookiePredicate = Callable[[Cookie], bool]


def _parse_int(text: str) -> Optional[int]:
    if not _INT.fullmatch(text):
        return None
    number = int(text)
    if not -(2**63) <= number < 2**63:
        return None
    return number


def _from_unix(seconds: int) -> datetime:
    try:
        return _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        limit = datetime.max if seconds > 0 else datetime.min
        return limit.replace(tzinfo=timezone.utc)


def _lines(stream: IO[bytes]) -> Iterator[str]:
    for raw in stream:
        yield raw.removesuffix(b"\n").removesuffix(b"\r").decode("utf-8", "replace")


def _home_dir() -> str:
    home = os.path.expanduser("~")
    if home == "~":
        raise RuntimeError("could not determine the home directory")
    return home


def parse_line(line: str) -> Optional[Cookie]:
    """Parse one line of a w3m cookie file; return ``None`` for lines to skip."""
    fields = line.split("\t")
    if len(fields) != _COLUMNS:
        return None
    expires = _parse_int(fields[3])
    flags = _parse_int(fields[6])
    if expires is None or flags is None:
        return None
    return Cookie(
        name=fields[1],
        value=fields[2],
        domain=fields[4],
        path=fields[5],
        expires=_from_unix(expires),
        secure=bool(flags & _COO_SECURE),
    )


class W3mCookieStore(CookieStore):
    """A w3m ``cookie`` file."""

    def __init__(
        self,
        file_path: str = "",
        browser: str = "w3m",
        profile: str = "",
        is_default_profile: bool = False,
        os_name: str = "",
        filters: Iterable[Optional[CookiePredicate]] = (),
    ) -> None:
        super().__init__(file_path, browser, profile, is_default_profile, os_name)
        self.filters = tuple(filters)

    def traverse_cookies(self, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
        """Yield the cookies passing the store's filters and ``filters``."""
        return super().traverse_cookies(*self.filters, *filters)

    def _read_cookies(self) -> Iterator[Cookie]:
        if self.file is None:
            raise ValueError("file is not open")
        for line in _lines(self.file):
            cookie = parse_line(line)
            if cookie is not None:
                yield cookie


class W3mFinder(CookieStoreFinder):
    """Finds ``~/.w3m/cookie`` on Unix systems."""

    def find_cookie_stores(self) -> Iterator[CookieStore]:
        if not sys.platform.startswith(_UNIX_PLATFORMS):
            return
        home = _home_dir()
        yield W3mCookieStore(
            file_path=os.path.join(home, ".w3m", "cookie"),
            browser="w3m",
            is_default_profile=True,
        )


def cookie_store(filename: str, *filters: Optional[CookiePredicate]) -> W3mCookieStore:
    """Return a store for ``filename``; close it after use."""
    return W3mCookieStore(file_path=filename, browser="w3m", filters=filters)


def traverse_cookies(filename: str, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
    """Yield the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        yield from store.traverse_cookies()


def read_cookies(filename: str, *filters: Optional[CookiePredicate]) -> List[Cookie]:
    """Return the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        return store.read_all_cookies()