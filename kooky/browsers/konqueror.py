"""Reading the ``kcookiejar`` cookie file of the Konqueror browser."""

from __future__ import annotations

import os
import re
import sys
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Iterator, List, Optional

from kooky.cookie import Cookie, CookieStore
from kooky.find import CookieStoreFinder

_SECURE = 1
_HTTP_ONLY = 2
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INT = re.compile(r"[+-]?[0-9]+")

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


def parse_line(line: str) -> Optional[Cookie]:
    """Parse one cookie line of a kcookiejar file.

    The columns are Host, "Domain", "Path", Expires, Prot, Name, Sec and Value.
    Comments, section headers and malformed lines give ``None``.
    """
    if not line or line[0] in "#[":
        return None

    parts = line.split(" ", 1)
    if len(parts) != 2:
        return None
    # an empty Domain column means the cookie is bound to the host alone
    cookie_domain = parts[0]

    parts = parts[1].lstrip(" ").split('"', 2)
    if len(parts) != 3 or parts[0]:
        return None
    if parts[1]:
        cookie_domain = parts[1]

    parts = parts[2].lstrip(" ").split('"', 2)
    if len(parts) != 3 or parts[0]:
        return None
    cookie_path = parts[1]

    parts = parts[2].lstrip(" ").split(" ", 1)
    if len(parts) != 2:
        return None
    expires = _parse_int(parts[0])
    if expires is None:
        return None

    parts = parts[1].lstrip(" ").split(" ", 1)
    if len(parts) != 2 or _parse_int(parts[0]) is None:
        return None

    parts = parts[1].lstrip(" ").split(" ", 1)
    if len(parts) != 2:
        return None
    cookie_name = parts[0]

    parts = parts[1].lstrip(" ").split(" ", 1)
    if len(parts) != 2:
        return None
    flags = _parse_int(parts[0])
    if flags is None:
        return None

    return Cookie(
        name=cookie_name,
        value=parts[1].strip(" "),
        domain=cookie_domain,
        path=cookie_path,
        expires=_from_unix(expires),
        secure=bool(flags & _SECURE),
        http_only=bool(flags & _HTTP_ONLY),
    )


class KonquerorCookieStore(CookieStore):
    """A Konqueror ``kcookiejar/cookies`` file, encoded in Latin-1."""

    def __init__(
        self,
        file_path: str = "",
        browser: str = "konqueror",
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
        for raw in self.file:
            line = raw.removesuffix(b"\n").removesuffix(b"\r").decode("latin-1")
            cookie = parse_line(line)
            if cookie is not None:
                yield cookie


def konqueror_roots() -> Iterator[str]:
    """Yield the data directories that may hold a ``kcookiejar`` directory."""
    home = os.path.expanduser("~")
    if home != "~":
        yield os.path.join(home, ".local", "share")
    data_dir = os.environ.get("XDG_DATA_HOME")
    if data_dir is not None:
        yield data_dir


class KonquerorFinder(CookieStoreFinder):
    """Finds the Konqueror cookie jars in the user's data directories."""

    def find_cookie_stores(self) -> Iterator[CookieStore]:
        if sys.platform == "win32":
            return
        for root in konqueror_roots():
            yield KonquerorCookieStore(
                file_path=os.path.join(root, "kcookiejar", "cookies"),
                browser="konqueror",
            )


def cookie_store(filename: str, *filters: Optional[CookiePredicate]) -> KonquerorCookieStore:
    """Return a store for ``filename``; close it after use."""
    return KonquerorCookieStore(file_path=filename, browser="konqueror", filters=filters)


def traverse_cookies(filename: str, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
    """Yield the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        yield from store.traverse_cookies()


def read_cookies(filename: str, *filters: Optional[CookiePredicate]) -> List[Cookie]:
    """Return the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        return store.read_all_cookies()