import os
from datetime import datetime

import pytest

from kooky.browsers import konqueror
from kooky.filter import HTTP_ONLY

CONSENT_EXPIRES = datetime(2038, 1, 10, 8, 59, 59).astimezone()


def kde_line(host, cookie_domain, cookie_path, exp, cookie_name, sec, cookie_value):
    return f'{host} "{cookie_domain}" "{cookie_path}" {exp} 1 {cookie_name} {sec} {cookie_value}'


@pytest.fixture
def cookie_file(tmp_path):
    consent = int(CONSENT_EXPIRES.timestamp())
    later = 1900000000
    lines = [
        "# KDE Cookie File v2",
        "#Host            Domain          Path            Expires         Prot  Name  Sec  Value",
        "",
        "[google.de]",
        kde_line("www.google.de", ".google.de", "/", later, "NID", 0, "nid-value"),
        f'www.google.de    ".google.de"    "/"    {consent}   1   CONSENT   1   some-value   ',
        kde_line("www.google.de", ".google.de", "/", later, "ANID", 0, "a"),
        kde_line("www.google.de", ".google.de", "/search", later, "1P_JAR", 0, "b"),
        'www.google.de .google.de "/" 1 1 BROKEN 0 unquoted-domain',
        "[kde.org]",
        kde_line("kde.org", ".kde.org", "/", later, "s1", 0, "c"),
        kde_line("kde.org", ".kde.org", "/", later, "s2", 0, "d"),
        kde_line("kde.org", ".kde.org", "/", later, "s3", 0, "e"),
        "[example.com]",
        kde_line("example.com", ".example.com", "/", later, "e1", 0, "f"),
        kde_line("example.com", ".example.com", "/", later, "e2", 0, "g"),
        kde_line("example.com", ".example.com", "/", later, "e3", 0, "h"),
        kde_line("example.com", ".example.com", "/", later, "session", 2, "i"),
        kde_line("example.com", ".example.com", "/", later, "e4", 0, "j"),
        "[amazon.de]",
        kde_line("www.amazon.de", "", "/", later, "session-id", 0, "k"),
        kde_line("www.amazon.de", ".amazon.de", "/", later, "ubid", 0, "l"),
        kde_line("www.amazon.de", ".amazon.de", "/", later, "caf\xe9", 0, "m\xe9"),
    ]
    path = tmp_path / "konqueror-cookies"
    path.write_bytes(("\n".join(lines) + "\n").encode("latin-1"))
    return str(path)


def test_latin1_decoding(cookie_file):
    last = konqueror.read_cookies(cookie_file)[-1]
    assert last.name == "caf\xe9"
    assert last.value == "m\xe9"


def test_filters_apply(cookie_file):
    assert [c.name for c in konqueror.read_cookies(cookie_file, HTTP_ONLY)] == ["session"]


def test_parse_line_skips_comments_and_sections():
    assert konqueror.parse_line("# comment") is None
    assert konqueror.parse_line("[google.de]") is None
    assert konqueror.parse_line("") is None


def test_parse_line_skips_unquoted_domain():
    assert konqueror.parse_line('host .domain "/" 1 1 n 0 v') is None


def test_parse_line_skips_bad_expires():
    assert konqueror.parse_line('host "" "/" soon 1 n 0 v') is None


def test_parse_line_uses_host_when_domain_empty():
    cookie = konqueror.parse_line('www.example.com "" "/a" 0 1 n 3 v')
    assert cookie.domain == "www.example.com"
    assert cookie.path == "/a"
    assert cookie.secure and cookie.http_only


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        konqueror.read_cookies(str(tmp_path / "missing"))


def test_roots_and_finder(monkeypatch, tmp_path):
    xdg = tmp_path / "xdg"
    monkeypatch.setattr("sys.platform", "linux")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.setenv("XDG_DATA_HOME", str(xdg))
    roots = list(konqueror.konqueror_roots())
    assert roots == [os.path.join(str(tmp_path), ".local", "share"), str(xdg)]
    stores = list(konqueror.KonquerorFinder().find_cookie_stores())
    assert [s.file_path for s in stores] == [
        os.path.join(root, "kcookiejar", "cookies") for root in roots
    ]
    assert not any(s.is_default_profile for s in stores)


def test_finder_inactive_on_windows(monkeypatch):
    monkeypatch.setattr("sys.platform", "win32")
    assert list(konqueror.KonquerorFinder().find_cookie_stores()) == []