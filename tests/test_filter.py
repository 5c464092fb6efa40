from datetime import datetime, timedelta, timezone

import pytest

from kooky import filter as kf
from kooky.cookie import Cookie

NOW = datetime.now(timezone.utc)
FUTURE = NOW + timedelta(days=30)
PAST = NOW - timedelta(days=30)


def nid(**kwargs):
    fields = dict(name="NID", value="204=blabla", domain=".google.com", path="/", expires=FUTURE)
    fields.update(kwargs)
    return Cookie(**fields)


def test_domain_exact():
    assert kf.domain(".google.com")(nid()) is True
    assert kf.domain("google.com")(nid()) is False


def test_domain_filter_attributes():
    f = kf.domain(".google.com")
    assert isinstance(f, kf.DomainFilter)
    assert (f.kind, f.domain) == ("domain", ".google.com")


@pytest.mark.parametrize(
    "factory,arg,expected",
    [
        (kf.domain_contains, "google", True),
        (kf.domain_contains, "youtube", False),
        (kf.domain_has_prefix, ".google", True),
        (kf.domain_has_prefix, "google", False),
        (kf.domain_has_suffix, ".com", True),
        (kf.domain_has_suffix, ".de", False),
        (kf.name, "NID", True),
        (kf.name, "nid", False),
        (kf.name_contains, "I", True),
        (kf.name_has_prefix, "N", True),
        (kf.name_has_suffix, "D", True),
        (kf.name_has_suffix, "N", False),
        (kf.path, "/", True),
        (kf.path_contains, "/", True),
        (kf.path_has_prefix, "/a", False),
        (kf.path_has_suffix, "/", True),
        (kf.value, "204=blabla", True),
        (kf.value_contains, "=", True),
        (kf.value_has_prefix, "204", True),
        (kf.value_has_suffix, "bla", True),
        (kf.value_has_suffix, "204", False),
        (kf.value_len, len("204=blabla"), True),
        (kf.value_len, len("204=blabla") + 1, False),
    ],
)
def test_field_filters(factory, arg, expected):
    assert factory(arg)(nid()) is expected


@pytest.mark.parametrize("cookie_path,depth", [("/", 0), ("/a", 1), ("/a/b/", 2), ("/a/b", 2)])
def test_path_depth(cookie_path, depth):
    assert kf.path_depth(depth)(nid(path=cookie_path)) is True
    assert kf.path_depth(depth + 1)(nid(path=cookie_path)) is False


def test_value_filters_need_value():
    assert kf.value("x").needs_value is True
    assert kf.value_len(1).needs_value is True
    assert kf.name("x").needs_value is False


@pytest.mark.parametrize("factory", [kf.name, kf.domain, kf.path, kf.value])
def test_none_cookie_fails(factory):
    assert factory("")(None) is False


def test_secure_and_http_only():
    assert kf.SECURE(nid(secure=True)) is True
    assert kf.SECURE(nid()) is False
    assert kf.HTTP_ONLY(nid(http_only=True)) is True
    assert kf.HTTP_ONLY(nid()) is False


def test_expiry_filters():
    assert kf.EXPIRED(nid(expires=PAST)) is True
    assert kf.EXPIRED(nid()) is False
    assert kf.expires_after(NOW)(nid()) is True
    assert kf.expires_before(NOW)(nid()) is False
    assert kf.expires_before(NOW)(nid(expires=PAST)) is True


def test_creation_filters():
    cookie = nid(creation=PAST)
    assert kf.creation_before(NOW)(cookie) is True
    assert kf.creation_after(NOW)(cookie) is False


def test_valid_accepts_well_formed_cookie():
    assert kf.VALID(nid()) is True
    assert kf.VALID(nid(domain="127.0.0.1")) is True


@pytest.mark.parametrize(
    "kwargs",
    [
        {"expires": PAST},
        {"name": "N ID"},
        {"name": ""},
        {"value": 'a"b'},
        {"value": "a;b"},
        {"path": "/a;b"},
        {"domain": "bad..domain"},
        {"domain": "-google.com"},
    ],
)
def test_valid_rejects(kwargs):
    assert kf.VALID(nid(**kwargs)) is False


def test_filter_cookie_skips_none_filters_and_accepts_callables():
    assert kf.filter_cookie(nid(), None, kf.name("NID"), lambda c: c.path == "/") is True
    assert kf.filter_cookie(nid(), kf.name("NID"), lambda c: False) is False
    assert kf.filter_cookie(None) is False


def test_filter_cookies_keeps_order_and_skips_none():
    cookies = [nid(name="A"), None, nid(name="B", domain=".youtube.com"), nid(name="C")]
    result = list(kf.filter_cookies(cookies, kf.domain(".google.com")))
    assert [c.name for c in result] == ["A", "C"]


def test_filter_cookies_empty_list_raises():
    with pytest.raises(ValueError):
        list(kf.filter_cookies([]))


def test_filter_cookies_accepts_iterators():
    result = list(kf.filter_cookies(iter([nid(), nid(name="YSC")]), kf.name("YSC")))
    assert [c.name for c in result] == ["YSC"]


def test_debug_prints_and_passes(capsys):
    assert kf.DEBUG(nid()) is True
    assert "NID" in capsys.readouterr().out