"""Predicates that select cookies by their fields."""

from __future__ import annotations

import ipaddress
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

if TYPE_CHECKING:
    from kooky.cookie import Cookie

CookiePredicate = Callable[["Cookie"], bool]


@dataclass(frozen=True)
class Filter:
    """A cookie predicate.

    ``needs_value`` marks filters that look at the cookie value, so that a
    reader may apply the other filters before decrypting values.
    """

    func: CookiePredicate
    needs_value: bool = False

    def __call__(self, cookie: Optional["Cookie"]) -> bool:
        if cookie is None:
            return False
        return bool(self.func(cookie))


@dataclass(frozen=True)
class DomainFilter(Filter):
    """A filter matching one exact cookie domain."""

    domain: str = ""
    kind: str = "domain"


def filter_cookie(cookie: Optional["Cookie"], *filters: Optional[CookiePredicate]) -> bool:
    """Tell whether ``cookie`` passes all ``filters``; ``None`` filters are skipped."""
    if cookie is None:
        return False
    return all(f(cookie) for f in filters if f is not None)


def filter_cookies(
    cookies: Iterable[Optional["Cookie"]], *filters: Optional[CookiePredicate]
) -> Iterator["Cookie"]:
    """Yield the cookies that pass all ``filters``, skipping ``None`` entries.

    An empty list or tuple of cookies is an error.
    """
    if isinstance(cookies, Sequence) and len(cookies) < 1:
        raise ValueError("cookie slice of length 0")
    for cookie in cookies:
        if cookie is None:
            continue
        if filter_cookie(cookie, *filters):
            yield cookie


def _debug(cookie: "Cookie") -> bool:
    print(repr(cookie))
    return True


DEBUG = Filter(_debug)
"""Prints each cookie it sees and lets it pass; place it after the filter under test."""


# domain filters


def domain(name: str) -> Filter:
    """Match cookies whose domain equals ``name``."""
    return DomainFilter(lambda c: c.domain == name, domain=name)


def domain_contains(substr: str) -> Filter:
    return Filter(lambda c: substr in c.domain)


def domain_has_prefix(prefix: str) -> Filter:
    return Filter(lambda c: c.domain.startswith(prefix))


def domain_has_suffix(suffix: str) -> Filter:
    return Filter(lambda c: c.domain.endswith(suffix))


# name filters


def name(value: str) -> Filter:
    return Filter(lambda c: c.name == value)


def name_contains(substr: str) -> Filter:
    return Filter(lambda c: substr in c.name)


def name_has_prefix(prefix: str) -> Filter:
    return Filter(lambda c: c.name.startswith(prefix))


def name_has_suffix(suffix: str) -> Filter:
    return Filter(lambda c: c.name.endswith(suffix))


# path filters


def path(value: str) -> Filter:
    return Filter(lambda c: c.path == value)


def path_contains(substr: str) -> Filter:
    return Filter(lambda c: substr in c.path)


def path_has_prefix(prefix: str) -> Filter:
    return Filter(lambda c: c.path.startswith(prefix))


def path_has_suffix(suffix: str) -> Filter:
    return Filter(lambda c: c.path.endswith(suffix))


def path_depth(depth: int) -> Filter:
    """Match cookies whose path has ``depth`` segments, ignoring trailing slashes."""
    return Filter(lambda c: c.path.rstrip("/").count("/") == depth)


# value filters


def value(text: str) -> Filter:
    return Filter(lambda c: c.value == text, needs_value=True)


def value_contains(substr: str) -> Filter:
    return Filter(lambda c: substr in c.value, needs_value=True)


def value_has_prefix(prefix: str) -> Filter:
    return Filter(lambda c: c.value.startswith(prefix), needs_value=True)


def value_has_suffix(suffix: str) -> Filter:
    return Filter(lambda c: c.value.endswith(suffix), needs_value=True)


def value_len(length: int) -> Filter:
    """Match cookies whose value is ``length`` bytes long in UTF-8."""
    return Filter(lambda c: len(c.value.encode("utf-8")) == length, needs_value=True)


# flag filters

SECURE = Filter(lambda c: c.secure)
HTTP_ONLY = Filter(lambda c: c.http_only)


# validity checks for the VALID filter

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)


def _valid_name(text: str) -> bool:
    return bool(text) and all(ch in _TOKEN_CHARS for ch in text)


def _valid_value_byte(b: int) -> bool:
    return 0x20 <= b < 0x7F and b not in b'";\\'


def _valid_path_byte(b: int) -> bool:
    return 0x20 <= b < 0x7F and b != ord(";")


def _is_cookie_domain_name(text: str) -> bool:
    if not text or len(text) > 255:
        return False
    if text.startswith("."):
        text = text[1:]
    last = "."
    has_letter = False
    part_len = 0
    for ch in text:
        if ("a" <= ch <= "z") or ("A" <= ch <= "Z"):
            has_letter = True
            part_len += 1
        elif "0" <= ch <= "9":
            part_len += 1
        elif ch == "-":
            if last == ".":
                return False
            part_len += 1
        elif ch == ".":
            if last in ".-" or part_len > 63 or part_len == 0:
                return False
            part_len = 0
        else:
            return False
        last = ch
    if last == "-" or part_len > 63:
        return False
    return has_letter


def _valid_domain(text: str) -> bool:
    if _is_cookie_domain_name(text):
        return True
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return ":" not in text


def _is_valid(cookie: "Cookie") -> bool:
    if not _valid_name(cookie.name):
        return False
    if cookie.expires.year < 1601 and cookie.expires.replace(tzinfo=None) != datetime(1, 1, 1):
        return False
    if not all(_valid_value_byte(b) for b in cookie.value.encode("utf-8")):
        return False
    if cookie.path and not all(_valid_path_byte(b) for b in cookie.path.encode("utf-8")):
        return False
    if cookie.domain and not _valid_domain(cookie.domain):
        return False
    return True


def _now() -> datetime:
    return datetime.now(timezone.utc)


# expiry filters

VALID = Filter(lambda c: c.expires > _now() and _is_valid(c), needs_value=True)
"""Match cookies that have not expired and are well formed."""

EXPIRED = Filter(lambda c: c.expires < _now())


def expires_after(moment: datetime) -> Filter:
    return Filter(lambda c: c.expires > moment)


def expires_before(moment: datetime) -> Filter:
    return Filter(lambda c: c.expires < moment)


# creation filters


def creation_after(moment: datetime) -> Filter:
    return Filter(lambda c: c.creation > moment)


def creation_before(moment: datetime) -> Filter:
    return Filter(lambda c: c.creation < moment)