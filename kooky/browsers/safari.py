"""Reading the ``Cookies.binarycookies`` files of the Safari browser."""

from __future__ import annotations

import math
import os
import struct
import sys
from datetime import datetime, timedelta, timezone
from typing import IO, Callable, Iterable, Iterator, List, Optional

from kooky.cookie import ZERO_TIME, Cookie, CookieStore
from kooky.find import CookieStoreFinder

_FILE_MAGIC = b"cook"
_PAGE_MAGIC = b"\x00\x00\x01\x00"
_FILE_HEADER = struct.Struct(">4si")
_PAGE_HEADER = struct.Struct("<4si")
# size, unknown, flags, unknown, url, name, path and value offsets,
# end marker, expiry and creation time
_COOKIE_HEADER = struct.Struct("<8i8sdd")
_CHECKSUM_SIZE = 8
_FLAG_SECURE = 1
_FLAG_HTTP_ONLY = 4
_SAFARI_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

CookiePredicate = Callable[[Cookie], bool]


def from_safari_time(seconds: float) -> datetime:
    """Convert seconds since 2001-01-01 UTC, as Safari stores them, to a datetime."""
    if not math.isfinite(seconds):
        return ZERO_TIME
    try:
        return _SAFARI_EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        limit = datetime.max if seconds > 0 else datetime.min
        return limit.replace(tzinfo=timezone.utc)


def _read_exact(stream: IO[bytes], size: int) -> bytes:
    data = stream.read(size)
    if len(data) < size:
        raise ValueError("unexpected end of file")
    return data


def _read_string(page: bytes, field: str, start: int, offset: int) -> str:
    position = start + offset
    if position < 0:
        raise ValueError(f"seeking for {field!r} at offset {offset}")
    end = page.find(b"\x00", position)
    if end < 0:
        raise ValueError(f"reading for {field!r} at offset {offset}")
    return page[position:end].decode("utf-8", "replace")


def _parse_cookie(page: bytes, start: int, browser: Optional[CookieStore]) -> Cookie:
    if start < 0 or start + _COOKIE_HEADER.size > len(page):
        raise ValueError("unexpected end of page in cookie header")
    (
        _size,
        _unknown1,
        flags,
        _unknown2,
        url_offset,
        name_offset,
        path_offset,
        value_offset,
        _end,
        expiration,
        creation,
    ) = _COOKIE_HEADER.unpack_from(page, start)
    return Cookie(
        domain=_read_string(page, "url", start, url_offset),
        name=_read_string(page, "name", start, name_offset),
        path=_read_string(page, "path", start, path_offset),
        value=_read_string(page, "value", start, value_offset),
        expires=from_safari_time(expiration),
        creation=from_safari_time(creation),
        secure=bool(flags & _FLAG_SECURE),
        http_only=bool(flags & _FLAG_HTTP_ONLY),
        store=browser,
    )


def _parse_page(page: bytes, browser: Optional[CookieStore]) -> Iterator[Cookie]:
    if len(page) < _PAGE_HEADER.size:
        raise ValueError("error reading header: unexpected end of page")
    tag, count = _PAGE_HEADER.unpack_from(page)
    if tag != _PAGE_MAGIC:
        raise ValueError(
            f"expected first 4 bytes of page to be {list(_PAGE_MAGIC)}; got {list(tag)}"
        )
    if count < 0 or _PAGE_HEADER.size + 4 * count > len(page):
        raise ValueError("error reading cookie offsets: unexpected end of page")
    offsets = struct.unpack_from(f"<{count}i", page, _PAGE_HEADER.size)
    for index, offset in enumerate(offsets):
        try:
            cookie = _parse_cookie(page, offset, browser)
        except ValueError as exc:
            raise ValueError(f"cookie {index}: {exc}") from exc
        yield cookie


def _read_page(
    stream: IO[bytes], page_nr: int, size: int, browser: Optional[CookieStore]
) -> Iterator[Cookie]:
    try:
        if size < 0:
            raise ValueError(f"negative page size {size}")
        yield from _parse_page(_read_exact(stream, size), browser)
    except ValueError as exc:
        raise ValueError(f"error reading page {page_nr}: {exc}") from exc


def parse_binary_cookies(
    stream: IO[bytes], browser: Optional[CookieStore] = None
) -> Iterator[Cookie]:
    """Yield the cookies of a binarycookies stream; raise ``ValueError`` if malformed.

    ``browser`` is recorded as the store of every cookie.
    """
    try:
        header = _read_exact(stream, _FILE_HEADER.size)
    except ValueError as exc:
        raise ValueError(f"error reading header: {exc}") from exc
    magic, num_pages = _FILE_HEADER.unpack(header)
    if magic != _FILE_MAGIC:
        raise ValueError(f"expected first 4 bytes to be {_FILE_MAGIC!r}; got {magic!r}")
    if num_pages < 0:
        raise ValueError(f"negative page count {num_pages}")
    try:
        sizes = struct.unpack(f">{num_pages}i", _read_exact(stream, 4 * num_pages))
    except ValueError as exc:
        raise ValueError(f"error reading page sizes: {exc}") from exc

    for page_nr, size in enumerate(sizes):
        yield from _read_page(stream, page_nr, size, browser)

    try:
        _read_exact(stream, _CHECKSUM_SIZE)
    except ValueError as exc:
        raise ValueError(f"error reading checksum: {exc}") from exc


class SafariCookieStore(CookieStore):
    """A Safari ``Cookies.binarycookies`` file."""

    def __init__(
        self,
        file_path: str = "",
        browser: str = "safari",
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
        yield from parse_binary_cookies(self.file, self)


def _home_dir() -> str:
    home = os.path.expanduser("~")
    if home == "~":
        raise RuntimeError("could not determine the home directory")
    return home


def cookie_files() -> List[str]:
    """Return the default cookie file locations of Safari on this platform."""
    if sys.platform == "darwin":
        home = _home_dir()
        return [
            os.path.join(
                home, "Library", "Containers", "com.apple.Safari", "Data",
                "Library", "Cookies", "Cookies.binarycookies",
            ),
            os.path.join(home, "Library", "Cookies", "Cookies.binarycookies"),
        ]
    if sys.platform == "win32":
        # Safari 5.1.7 was the last version for Windows
        app_data = os.environ.get("APPDATA")
        if not app_data:
            raise OSError("%AppData% is not defined")
        return [
            os.path.join(app_data, "Apple Computer", "Safari", "Cookies", "Cookies.binarycookies")
        ]
    raise OSError(f"Safari is not available on {sys.platform}")


class SafariFinder(CookieStoreFinder):
    """Finds the Safari cookie files on macOS and Windows."""

    def find_cookie_stores(self) -> Iterator[CookieStore]:
        if sys.platform not in ("darwin", "win32"):
            return
        for index, file_path in enumerate(cookie_files()):
            yield SafariCookieStore(
                file_path=file_path,
                browser="safari",
                is_default_profile=index == 0,
            )


def cookie_store(filename: str, *filters: Optional[CookiePredicate]) -> SafariCookieStore:
    """Return a store for ``filename``; close it after use."""
    return SafariCookieStore(file_path=filename, browser="safari", filters=filters)


def traverse_cookies(filename: str, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
    """Yield the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        yield from store.traverse_cookies()


def read_cookies(filename: str, *filters: Optional[CookiePredicate]) -> List[Cookie]:
    """Return the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        return store.read_all_cookies()