"""Command line tool that lists or exports the cookies of installed browsers."""

from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, TextIO

from kooky.browsers.all import register_all
from kooky.cookie import Cookie
from kooky.export import export_cookies
from kooky.filter import VALID, Filter, domain_contains, name
from kooky.find import traverse_cookies

TRIM_LEN = 45
_ELLIPSIS = "\u2026"
_ESCAPES = {
    '"': '\\"',
    "\\": "\\\\",
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}


def store_filter(
    browser: Optional[str], profile: Optional[str], default_profile: bool
) -> Filter:
    """Return a filter selecting cookies by the browser and profile of their store."""

    def matches(cookie: Cookie) -> bool:
        store = cookie.store
        if store is None:
            return False
        if browser and store.browser != browser:
            return False
        if profile and store.profile != profile:
            return False
        if default_profile and not store.is_default_profile:
            return False
        return True

    return Filter(matches)


def trim_str(text: str, length: int) -> str:
    """Shorten ``text`` to ``length`` characters, ending it with an ellipsis if cut."""
    if len(text) <= length:
        return text
    if length < 0:
        raise ValueError(f"negative length {length}")
    if length > 0:
        return text[: length - 1] + _ELLIPSIS
    return ""


def _escape_char(ch: str) -> str:
    if ch in _ESCAPES:
        return _ESCAPES[ch]
    code = ord(ch)
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if code < 0x80 or ch.isprintable():
        return ch
    if code <= 0xFFFF:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def _printable_value(text: str) -> str:
    quoted = '"' + "".join(_escape_char(ch) for ch in text) + '"'
    return quoted.strip('"')


def _local_time(moment: datetime) -> datetime:
    try:
        return moment.astimezone()
    except (OverflowError, ValueError, OSError):
        return moment


def _format_time(moment: datetime) -> str:
    m = _local_time(moment)
    return (
        f"{m.year:04d}.{m.month:02d}.{m.day:02d} "
        f"{m.hour:02d}:{m.minute:02d}:{m.second:02d}"
    )


def cookie_line(cookie: Cookie, trim_len: int = TRIM_LEN) -> str:
    """Return the tab separated listing line for ``cookie``, without a line break."""
    store = cookie.store
    container = f" [{cookie.container}]" if cookie.container else ""
    return "\t".join(
        (
            store.browser if store is not None else "",
            store.profile if store is not None else "",
            container,
            trim_str(store.file_path if store is not None else "", trim_len),
            trim_str(cookie.domain, trim_len),
            trim_str(cookie.name, trim_len),
            trim_str(_printable_value(cookie.value), trim_len),
            _format_time(cookie.expires),
        )
    )


def _rfc3339(moment: datetime) -> str:
    return _local_time(moment).isoformat()


def _cookie_json(cookie: Cookie) -> str:
    return json.dumps(
        {
            "Name": cookie.name,
            "Value": cookie.value,
            "Path": cookie.path,
            "Domain": cookie.domain,
            "Expires": _rfc3339(cookie.expires),
            "Secure": cookie.secure,
            "HttpOnly": cookie.http_only,
            "Creation": _rfc3339(cookie.creation),
            "Container": cookie.container,
        },
        ensure_ascii=False,
    )


def _write_aligned(lines: Iterable[str], stream: TextIO) -> None:
    """Write tab separated lines with their columns padded to a common width."""
    rows = [line.split("\t") for line in lines]
    widths: List[int] = []
    for cells in rows:
        for index, cell in enumerate(cells[:-1]):
            if index == len(widths):
                widths.append(0)
            widths[index] = max(widths[index], len(cell) + 1)
    for cells in rows:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(cells[:-1])]
        stream.write("".join(padded) + cells[-1] + "\n")


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kooky", description="List browser cookies.")
    parser.add_argument("-b", "--browser", default="", help="browser filter")
    parser.add_argument("-p", "--profile", default="", help="profile filter")
    parser.add_argument(
        "-q", "--default-profile", action="store_true", help="only default profile(s)"
    )
    parser.add_argument("-e", "--expired", action="store_true", help="show expired cookies")
    parser.add_argument("-d", "--domain", default="", help="cookie domain filter (partial)")
    parser.add_argument("-n", "--name", default="", help="cookie name filter (exact)")
    parser.add_argument("-o", "--export", default="", help="export cookies in netscape format")
    parser.add_argument("-j", "--jsonl", action="store_true", help="JSON Lines output format")
    return parser


def _interruptible(cookies: Iterable[Cookie]) -> Iterable[Cookie]:
    try:
        yield from cookies
    except KeyboardInterrupt:
        return


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line tool and return its exit status."""
    args = _parser().parse_args(argv)
    register_all()

    filters = [store_filter(args.browser, args.profile, args.default_profile)]
    if not args.expired:
        filters.append(VALID)
    if args.domain:
        filters.append(domain_contains(args.domain))
    if args.name:
        filters.append(name(args.name))

    cookies = _interruptible(traverse_cookies(*filters))

    if args.export:
        if args.export == "-":
            export_cookies(cookies, sys.stdout)
            return 0
        try:
            fd = os.open(args.export, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as exc:
            print(exc, file=sys.stderr)
            return 1
        with os.fdopen(fd, "w", encoding="utf-8") as stream:
            export_cookies(cookies, stream)
        return 0

    if args.jsonl:
        lines = [_cookie_json(cookie) for cookie in cookies]
    else:
        lines = [cookie_line(cookie, TRIM_LEN) for cookie in cookies]
    _write_aligned(lines, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())