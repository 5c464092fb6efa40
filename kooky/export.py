"""Writing cookies in the Netscape cookies.txt format used by curl and wget."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, TextIO

from kooky.cookie import Cookie

HTTP_ONLY_PREFIX = "#HttpOnly_"
NETSCAPE_HEADER = "# HTTP Cookie File\n\n"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _netscape_bool(flag: bool) -> str:
    return "TRUE" if flag else "FALSE"


def _unix_seconds(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return (moment - _EPOCH) // timedelta(seconds=1)


def format_cookie_line(cookie: Cookie) -> str:
    """Return the cookies.txt line for ``cookie``, without a line break."""
    cookie_domain = (HTTP_ONLY_PREFIX if cookie.http_only else "") + cookie.domain
    return "\t".join(
        (
            cookie_domain,
            _netscape_bool(cookie.domain.startswith(".")),
            cookie.path,
            _netscape_bool(cookie.secure),
            str(_unix_seconds(cookie.expires)),
            cookie.name,
            cookie.value,
        )
    )


def export_cookies(cookies: Iterable[Optional[Cookie]], stream: TextIO) -> None:
    """Write ``cookies`` to ``stream`` in the Netscape format.

    The header is written only if there is at least one cookie; ``None``
    entries are skipped.
    """
    header_written = False
    for cookie in cookies:
        if cookie is None:
            continue
        if not header_written:
            stream.write(NETSCAPE_HEADER)
            header_written = True
        stream.write(format_cookie_line(cookie) + "\n")