"""Reading the ``cookies4.dat`` cookie files of the Opera (Presto) browser."""

from __future__ import annotations

import os
import struct
import sys
from datetime import datetime, timedelta, timezone
from typing import IO, Callable, Iterable, Iterator, List, Optional, Tuple

from kooky.cookie import Cookie, CookieStore
from kooky.find import CookieStoreFinder

# file version, application version, tag id length, payload length length
_FILE_HEADER = struct.Struct(">IIHH")
_COOKIES4_MAGIC = b"\x00\x00\x10\x00"
_SQLITE_MAGIC = b"SQLite format 3\x00"
_FLAG_BIT = 0x80
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# records holding nested records
TAG_DOMAIN_START = 0x01
TAG_PATH_START = 0x02
TAG_COOKIE = 0x03
# end markers
TAG_DOMAIN_END = 0x04
TAG_PATH_END = 0x05
# domain and path records
TAG_PATH_NAME = 0x1D
TAG_DOMAIN_NAME = 0x1E
TAG_DOMAIN_FILTER = 0x1F
TAG_DOMAIN_PATH_FILTER = 0x21
TAG_DOMAIN_3RD_PARTY_FILTER = 0x25
# cookie records
TAG_COOKIE_NAME = 0x10
TAG_COOKIE_VALUE = 0x11
TAG_COOKIE_DATE_EXPIRY = 0x12
TAG_COOKIE_DATE_LAST_USED = 0x13
TAG_COOKIE_RFC2965_COMMENT = 0x14
TAG_COOKIE_RFC2965_COMMENT_URL = 0x15
TAG_COOKIE_RFC2965_VERSION1_DOMAIN = 0x16
TAG_COOKIE_RFC2965_VERSION1_PATH = 0x17
TAG_COOKIE_RFC2965_VERSION1_PORT_LIMIT = 0x18
TAG_COOKIE_HTTPS_ONLY = 0x19
TAG_COOKIE_RFC2965_VERSION = 0x1A
TAG_COOKIE_ONLY_TO_SOURCE = 0x1B
TAG_COOKIE_DELETE_PROTECTION = 0x1C
TAG_COOKIE_PATH_PREFIX_FILTER = 0x20
TAG_COOKIE_PASSWORD_LOGIN = 0x22
TAG_COOKIE_HTTP_AUTH = 0x23
TAG_COOKIE_3RD_PARTY = 0x24

_STRUCT_TAGS = frozenset((TAG_DOMAIN_START, TAG_PATH_START, TAG_COOKIE))
_COOKIE_FIELD_TAGS = frozenset(
    (TAG_COOKIE_NAME, TAG_COOKIE_VALUE, TAG_COOKIE_DATE_EXPIRY, TAG_COOKIE_HTTPS_ONLY)
)

CookiePredicate = Callable[[Cookie], bool]


def _from_unix(seconds: int) -> datetime:
    try:
        return _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        limit = datetime.max if seconds > 0 else datetime.min
        return limit.replace(tzinfo=timezone.utc)


def _read_exact(stream: IO[bytes], size: int) -> Optional[bytes]:
    data = stream.read(size)
    if len(data) < size:
        return None
    return data


def _read_record(stream: IO[bytes], id_len: int, len_len: int) -> Optional[Tuple[int, int]]:
    """Return the tag id and payload length of the next record, ``None`` at the end."""
    raw_tag = _read_exact(stream, id_len)
    if raw_tag is None:
        return None
    # a set most significant bit marks a flag record without payload
    is_flag = bool(raw_tag[0] & _FLAG_BIT)
    tag = int.from_bytes(bytes([raw_tag[0] & ~_FLAG_BIT & 0xFF]) + raw_tag[1:], "big")
    if is_flag:
        return tag, 0
    raw_len = _read_exact(stream, len_len)
    if raw_len is None:
        return None
    return tag, int.from_bytes(raw_len, "big")


def parse_cookies4(stream: IO[bytes], browser: Optional[CookieStore] = None) -> Iterator[Cookie]:
    """Yield the cookies of a ``cookies4.dat`` stream; raise ``ValueError`` if malformed.

    ``browser`` is recorded as the store of every cookie.
    """
    header = _read_exact(stream, _FILE_HEADER.size)
    if header is None:
        raise ValueError("error reading header: unexpected end of file")
    version, _app_version, id_len, len_len = _FILE_HEADER.unpack(header)
    major, minor = version >> 12, version & 0xFFF
    if (major, minor) != (1, 0):
        raise ValueError(f"unsupported file format version {major}.{minor}")
    if not (1 <= id_len <= 4 and 1 <= len_len <= 4):
        raise ValueError("unexpected byte length values")

    domain_parts: List[str] = []
    cookie_path = ""
    current: Optional[Cookie] = None

    while True:
        record = _read_record(stream, id_len, len_len)
        if record is None:
            break
        tag, length = record

        payload = b""
        if length > 0 and tag not in _STRUCT_TAGS:
            payload = stream.read(length)
            if len(payload) < length:
                break

        if tag in _COOKIE_FIELD_TAGS and current is None:
            raise ValueError(f"cookie field record 0x{tag:02x} outside of a cookie record")

        if tag == TAG_COOKIE:
            if current is not None:
                yield current
            current = Cookie(
                domain=".".join(reversed(domain_parts)),
                path=cookie_path,
                store=browser,
            )
        elif tag == TAG_DOMAIN_NAME:
            domain_parts.append(payload.decode("utf-8", "replace"))
        elif tag == TAG_DOMAIN_END:
            if domain_parts:
                domain_parts.pop()
        elif tag == TAG_PATH_NAME:
            cookie_path = payload.decode("utf-8", "replace")
        elif tag in (TAG_PATH_START, TAG_PATH_END):
            cookie_path = ""
        elif tag == TAG_COOKIE_NAME:
            current.name = payload.decode("utf-8", "replace")
        elif tag == TAG_COOKIE_VALUE:
            current.value = payload.decode("utf-8", "replace")
        elif tag == TAG_COOKIE_DATE_EXPIRY:
            if len(payload) != 8:
                # reading stops at an expiry field of unexpected size
                break
            (seconds,) = struct.unpack(">q", payload)
            current.expires = _from_unix(seconds)
        elif tag == TAG_COOKIE_HTTPS_ONLY:
            current.secure = True

    if current is not None:
        yield current


class OperaPrestoCookieStore(CookieStore):
    """An Opera Presto ``cookies4.dat`` file."""

    def __init__(
        self,
        file_path: str = "",
        browser: str = "opera",
        profile: str = "",
        is_default_profile: bool = False,
        os_name: str = "",
        filters: Iterable[Optional[CookiePredicate]] = (),
    ) -> None:
        super().__init__(file_path, browser, profile, is_default_profile, os_name)
        self.filters = tuple(filters)

    def open(self) -> None:
        """Open the file, or rewind it when it is open already."""
        if self.file is not None:
            self.file.seek(0)
            return
        if not self.file_path:
            return
        self.file = open(self.file_path, "rb")

    def close(self) -> None:
        """Close the file if it is open."""
        if self.file is None:
            return
        try:
            self.file.close()
        finally:
            self.file = None

    def traverse_cookies(self, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
        """Yield the cookies passing the store's filters and ``filters``."""
        return super().traverse_cookies(*self.filters, *filters)

    def _read_cookies(self) -> Iterator[Cookie]:
        if self.file is None:
            raise ValueError("file is not open")
        yield from parse_cookies4(self.file, self)


def _home_dir() -> str:
    home = os.path.expanduser("~")
    if home == "~":
        raise OSError("could not determine the home directory")
    return home


def presto_roots() -> Iterator[str]:
    """Yield the directories that may hold Opera Presto's ``cookies4.dat``."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        if app_data is None:
            raise OSError("%AppData% not set")
        yield os.path.join(app_data, "Opera", "Opera")
    elif sys.platform == "darwin":
        yield os.path.join(_home_dir(), "Library", "Opera")
    else:
        yield os.path.join(_home_dir(), ".opera")


class OperaFinder(CookieStoreFinder):
    """Finds the Opera Presto cookie files at their default locations."""

    def find_cookie_stores(self) -> Iterator[CookieStore]:
        for root in presto_roots():
            yield OperaPrestoCookieStore(
                file_path=os.path.join(root, "cookies4.dat"),
                browser="opera",
                is_default_profile=True,
            )


def cookie_store(filename: str, *filters: Optional[CookiePredicate]) -> OperaPrestoCookieStore:
    """Return a store for ``filename``; close it after use.

    Raise ``ValueError`` if the file is not a ``cookies4.dat`` file.
    """
    stream = open(filename, "rb")
    try:
        head = stream.read(len(_SQLITE_MAGIC))
        if head.startswith(_COOKIES4_MAGIC):
            stream.seek(0)
            store = OperaPrestoCookieStore(file_path=filename, browser="opera", filters=filters)
            store.file = stream
            return store
        if head == _SQLITE_MAGIC:
            raise ValueError("Opera Blink cookie databases are not supported")
        raise ValueError("unknown file type")
    except BaseException:
        stream.close()
        raise


def traverse_cookies(filename: str, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
    """Yield the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        yield from store.traverse_cookies()