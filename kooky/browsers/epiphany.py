"""Reading the ``cookies.sqlite`` database of the Epiphany (GNOME Web) browser."""

from __future__ import annotations

import os
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from kooky.cookie import Cookie, CookieStore
from kooky.find import CookieStoreFinder

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TABLE = "moz_cookies"

CookiePredicate = Callable[[Cookie], bool]


def _from_unix(seconds: int) -> datetime:
    try:
        return _EPOCH + timedelta(seconds=seconds)
    except OverflowError:
        limit = datetime.max if seconds > 0 else datetime.min
        return limit.replace(tzinfo=timezone.utc)


def _column(row: Dict[str, Any], column: str) -> Any:
    if column not in row:
        raise ValueError(f"column {column!r} not found in table {_TABLE}")
    return row[column]


def _row_str(row: Dict[str, Any], column: str) -> str:
    found = _column(row, column)
    if isinstance(found, str):
        return found
    if isinstance(found, bytes):
        return found.decode("utf-8", "replace")
    raise ValueError(f"column {column!r} is not a string: {found!r}")


def _row_bool(row: Dict[str, Any], column: str) -> bool:
    found = _column(row, column)
    if isinstance(found, int):
        return found != 0
    raise ValueError(f"column {column!r} is not a boolean: {found!r}")


def _row_expiry(row: Dict[str, Any]) -> int:
    found = row.get("expiry")
    if found is None:
        return 0
    if isinstance(found, int):
        return found
    raise ValueError(f"column 'expiry' is not an integer: {found!r}")


def _cookie_from_row(row: Dict[str, Any]) -> Cookie:
    return Cookie(
        name=_row_str(row, "name"),
        value=_row_str(row, "value"),
        domain=_row_str(row, "host"),
        path=_row_str(row, "path"),
        expires=_from_unix(_row_expiry(row)),
        secure=_row_bool(row, "isSecure"),
        http_only=_row_bool(row, "isHttpOnly"),
    )


class EpiphanyCookieStore(CookieStore):
    """An Epiphany ``cookies.sqlite`` database, opened read-only."""

    def __init__(
        self,
        file_path: str = "",
        browser: str = "epiphany",
        profile: str = "",
        is_default_profile: bool = False,
        os_name: str = "",
        filters: Iterable[Optional[CookiePredicate]] = (),
    ) -> None:
        super().__init__(file_path, browser, profile, is_default_profile, os_name)
        self.filters = tuple(filters)
        self.database: Optional[sqlite3.Connection] = None

    def open(self) -> None:
        """Open the database unless it is open already."""
        if self.database is not None:
            return
        if not self.file_path:
            raise ValueError("cookie store has no file path")
        if not os.path.isfile(self.file_path):
            raise FileNotFoundError(f"no such file: {self.file_path!r}")
        uri = Path(self.file_path).resolve().as_uri() + "?mode=ro"
        self.database = sqlite3.connect(uri, uri=True)

    def close(self) -> None:
        """Close the database if it is open."""
        if self.database is None:
            return
        self.database.close()
        self.database = None

    def traverse_cookies(self, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
        """Yield the cookies passing the store's filters and ``filters``."""
        return super().traverse_cookies(*self.filters, *filters)

    def _read_cookies(self) -> Iterator[Cookie]:
        # Epiphany moved from Gecko to WebKit, so the layout is read on its own
        # terms instead of relying on Firefox's.
        if self.database is None:
            raise ValueError("database is not open")
        cursor = self.database.execute(f"SELECT * FROM {_TABLE}")
        columns = [description[0] for description in cursor.description]
        for row in cursor:
            yield _cookie_from_row(dict(zip(columns, row)))


def epiphany_roots() -> List[str]:
    """Return the directories that may hold Epiphany's cookie database.

    The last one is taken as the default profile.
    """
    roots = []
    home = os.path.expanduser("~")
    if home != "~":
        roots.append(os.path.join(home, ".var", "app", "org.gnome.Epiphany", "data", "epiphany"))
        roots.append(os.path.join(home, ".local", "share", "epiphany"))
    data_dir = os.environ.get("XDG_DATA_HOME")
    if data_dir is not None:
        roots.append(os.path.join(data_dir, "epiphany"))
    return roots


class EpiphanyFinder(CookieStoreFinder):
    """Finds the Epiphany cookie databases outside Windows and mobile systems."""

    def find_cookie_stores(self) -> Iterator[CookieStore]:
        if sys.platform in ("win32", "android", "ios"):
            return
        roots = epiphany_roots()
        last = len(roots) - 1
        for index, root in enumerate(roots):
            yield EpiphanyCookieStore(
                file_path=os.path.join(root, "cookies.sqlite"),
                browser="epiphany",
                is_default_profile=index == last,
            )


def cookie_store(filename: str, *filters: Optional[CookiePredicate]) -> EpiphanyCookieStore:
    """Return a store for ``filename``; close it after use."""
    return EpiphanyCookieStore(file_path=filename, browser="epiphany", filters=filters)


def traverse_cookies(filename: str, *filters: Optional[CookiePredicate]) -> Iterator[Cookie]:
    """Yield the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        yield from store.traverse_cookies()


def read_cookies(filename: str, *filters: Optional[CookiePredicate]) -> List[Cookie]:
    """Return the cookies of ``filename`` that pass all ``filters``."""
    with cookie_store(filename, *filters) as store:
        return store.read_all_cookies()