"""Reading the tab separated cookie file of the ELinks text browser."""

from __future__ import annotations

import os
import re
import sys
from datetime import datetime, timedelta, timezone
from typing import IO, Callable, Iterable, Iterator, List, Optional

from kooky.cookie import Cookie, CookieStore
from kooky.find import CookieStoreFinder

_COLUMNS = 8
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INT = re.compile(r"[+-]?[0-9]+")
_UNIX_PLATFORMS = ("linux", "freebsd", "openbsd", "netbsd", "dragonfly", "sunos")

CookiePredicate = Callable[[Cookie], bool]


def _parse_int(text: str) -> int:
    if not _INT.fullmatch(text):
        raise ValueError(f"invalid integer {text!r}")
    number = int(text)
    if not -(2**63) <= number < 2**63:
        raise ValueError(f"integer out of range {text!r}")
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


def parse_line(line: str) -> Cookie:
    """Parse one line of an ELinks cookie file; raise ``ValueError`` if malformed."""
    fields = line.split("\t")
    if len(fields) != _COLUMNS:
        raise ValueError(f"has {len(fields)} fields; expected are {_COLUMNS}: {line!r}")
    try:
        expires = _parse_int(fields[5])
    except ValueError as exc:
        raise ValueError(f"Expires field is not an integer: {exc}") from exc
    try:
        secure = _parse_int(fields[6])
    except ValueError as exc:
        raise ValueError(f"Secure field is not an integer: {exc}") from exc
    return Cookie(
        name=fields[0],
        value=fields[1],
        path=fields[3],
        domain=fields[4],
        expires=_from_unix(expires),
        secure=secure == 1,
    )


class ElinksCookieStore(CookieStore):
    """An ELinks ``cookies`` file."""

    def __init__(
        self,
        file_path: str = "",
        browser: str = "elinks",
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
        for line_nr, line in enumerate(_lines(self.file), start=1):
            try:
                yield parse_line(line)
            except ValueError as exc:
                raise ValueError(f"row {line_nr}: {exc}") from exc


class ElinksFinder(CookieStoreFinder):
    """Finds ``~/.elinks/cookies`` on Unix systems."""

    def find_cookie_stores(self) -> Iterator[CookieStore]:
        if not sys.platform.startswith(_UNIX_PLATFORMS):
            return
        home = _home_dir()
        yield ElinksCookieStore(
            file_path=os.path.join(home, ".elinks", "cookies"),
            browser="elinks",
            is_default_profile=True,
        )


def cookie_store(filename: str, *filters: Optional[CookiePredicate]) -> ElinksCookieStore:
    """Return a store for ``filename``; close it after use."""
    return ElinksCookieStore(file_path=filename, browser="elinks", filters=filters)


def traverse_cookies(filename: str, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
    """Yield the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        yield from store.traverse_cookies()


def read_cookies(filename: str, *filters: Optional[CookiePredicate]) -> List[Cookie]:
    """Return the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        return store.read_all_cookies()