"""Cookie records and the base class for file-backed cookie stores."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import IO, Any, Callable, Iterator, List, Optional

from kooky.filter import filter_cookie

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
"""The unset time: a cookie without a known expiry or creation time carries it."""


@dataclass
class Cookie:
    """A browser cookie together with the store it was read from."""

    name: str = ""
    value: str = ""
    domain: str = ""
    path: str = ""
    expires: datetime = ZERO_TIME
    creation: datetime = ZERO_TIME
    secure: bool = False
    http_only: bool = False
    container: str = ""
    store: Optional["CookieStore"] = field(default=None, repr=False, compare=False)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Tell whether the cookie expired before ``now`` (default: the current time)."""
        if now is None:
            now = datetime.now(timezone.utc)
        return self.expires < now


class CookieStore(abc.ABC):
    """A file, directory or database holding the cookies of one browser profile.

    Close the store after use, or use it as a context manager.
    """

    def __init__(
        self,
        file_path: str = "",
        browser: str = "",
        profile: str = "",
        is_default_profile: bool = False,
        os_name: str = "",
    ) -> None:
        self.file_path = file_path
        self.browser = browser
        self.profile = profile
        self.is_default_profile = is_default_profile
        self.os_name = os_name
        self.file: Optional[IO[bytes]] = None

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(browser={self.browser!r}, profile={self.profile!r}, "
            f"file_path={self.file_path!r})"
        )

    def open(self) -> None:
        """Open the backing file, or rewind it when it is already open."""
        if self.file is not None:
            self.file.seek(0)
            return
        if not self.file_path:
            raise ValueError("cookie store has no file path")
        self.file = open(self.file_path, "rb")

    def close(self) -> None:
        """Close the backing file if it is open."""
        if self.file is not None:
            try:
                self.file.close()
            finally:
                self.file = None

    @abc.abstractmethod
    def _read_cookies(self) -> Iterator[Cookie]:
        """Yield every cookie found in the opened store."""

    def traverse_cookies(self, *filters: Optional[Callable[[Cookie], bool]]) -> Iterator[Cookie]:
        """Yield the cookies of the store that pass all ``filters``."""
        self.open()
        for cookie in self._read_cookies():
            if cookie is None:
                continue
            if cookie.store is None:
                cookie.store = self
            if filter_cookie(cookie, *filters):
                yield cookie

    def read_all_cookies(self, *filters: Optional[Callable[[Cookie], bool]]) -> List[Cookie]:
        """Return the cookies of the store that pass all ``filters`` as a list."""
        return list(self.traverse_cookies(*filters))

    def __enter__(self) -> "CookieStore":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()