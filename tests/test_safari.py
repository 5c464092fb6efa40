import io
import os
import struct
from datetime import datetime, timezone

import pytest

from kooky.browsers import safari
from kooky.filter import domain, filter_cookies, name

REFERENCE = datetime(2001, 1, 1, tzinfo=timezone.utc)


def _seconds(moment):
    return (moment - REFERENCE).total_seconds()


def _cookie_record(url, cookie_name, cookie_path, cookie_value, flags, expires, creation):
    strings = b""
    offsets = []
    base = 56
    for text in (url, cookie_name, cookie_path, cookie_value):
        offsets.append(base + len(strings))
        strings += text.encode() + b"\x00"
    size = base + len(strings)
    header = struct.pack(
        "<8i8sdd", size, 0, flags, 0, *offsets, b"\x00" * 8,
        _seconds(expires), _seconds(creation),
    )
    return header + strings


def _page(records, magic=b"\x00\x00\x01\x00"):
    head_len = 8 + 4 * len(records) + 4
    offsets = []
    body = b""
    for rec in records:
        offsets.append(head_len + len(body))
        body += rec
    return (
        magic + struct.pack("<i", len(records))
        + struct.pack(f"<{len(records)}i", *offsets) + b"\x00" * 4 + body
    )


def _file(pages, checksum=True):
    data = b"cook" + struct.pack(">i", len(pages))
    data += struct.pack(f">{len(pages)}i", *(len(p) for p in pages))
    data += b"".join(pages)
    if checksum:
        data += b"\x00" * 8
    return data


EXPIRES = datetime(2038, 1, 17, 19, 14, 7, tzinfo=timezone.utc)
CREATION = datetime(2017, 12, 16, 23, 23, 19, tzinfo=timezone.utc)


@pytest.fixture
def cookie_file(tmp_path):
    other = _cookie_record(
        ".example.com", "other", "/", "placeholder", 0, EXPIRES, CREATION
    )
    hn = _cookie_record(
        "news.ycombinator.com", "user", "/", "placeholder", 5, EXPIRES, CREATION
    )
    target = tmp_path / "Cookies.binarycookies"
    target.write_bytes(_file([_page([other]), _page([hn])]))
    return str(target)


def test_read_cookies(cookie_file):
    cookies = safari.read_cookies(cookie_file)
    found = list(filter_cookies(cookies, domain("news.ycombinator.com"), name("user")))
    assert len(found) == 1
    cookie = found[0]
    assert cookie.value == "placeholder"
    assert cookie.expires == EXPIRES
    assert cookie.creation == CREATION


def test_flags_and_store(cookie_file):
    cookies = safari.read_cookies(cookie_file)
    assert [c.name for c in cookies] == ["other", "user"]
    assert (cookies[0].secure, cookies[0].http_only) == (False, False)
    assert (cookies[1].secure, cookies[1].http_only) == (True, True)
    assert cookies[1].store.browser == "safari"
    assert cookies[1].path == "/"


def test_traverse_with_filter(cookie_file):
    cookies = list(safari.traverse_cookies(cookie_file, name("other")))
    assert [c.domain for c in cookies] == [".example.com"]


def test_from_safari_time_reference_date():
    assert safari.from_safari_time(0) == REFERENCE
    assert safari.from_safari_time(_seconds(EXPIRES)) == EXPIRES


def test_bad_magic():
    with pytest.raises(ValueError, match="expected first 4 bytes"):
        list(safari.parse_binary_cookies(io.BytesIO(b"nope\x00\x00\x00\x00")))


def test_short_header():
    with pytest.raises(ValueError, match="error reading header"):
        list(safari.parse_binary_cookies(io.BytesIO(b"co")))


def test_missing_checksum():
    rec = _cookie_record("a.example.com", "n", "/", "v", 0, EXPIRES, CREATION)
    stream = io.BytesIO(_file([_page([rec])], checksum=False))
    with pytest.raises(ValueError, match="checksum"):
        list(safari.parse_binary_cookies(stream))


def test_bad_page_header():
    rec = _cookie_record("a.example.com", "n", "/", "v", 0, EXPIRES, CREATION)
    stream = io.BytesIO(_file([_page([rec], magic=b"\x01\x02\x03\x04")]))
    with pytest.raises(ValueError, match="error reading page 0"):
        list(safari.parse_binary_cookies(stream))


def test_missing_string_terminator():
    rec = _cookie_record("a.example.com", "n", "/", "v", 0, EXPIRES, CREATION)
    page = _page([rec])[:-1]
    stream = io.BytesIO(_file([page]))
    with pytest.raises(ValueError, match="cookie 0"):
        list(safari.parse_binary_cookies(stream))


def test_parse_sets_browser():
    rec = _cookie_record("a.example.com", "n", "/p", "v", 1, EXPIRES, CREATION)
    store = safari.cookie_store("unused")
    cookies = list(safari.parse_binary_cookies(io.BytesIO(_file([_page([rec])])), store))
    assert cookies[0].store is store
    assert cookies[0].path == "/p"


def test_cookie_files_darwin(monkeypatch, tmp_path):
    monkeypatch.setattr("sys.platform", "darwin")
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    files = safari.cookie_files()
    assert files[1] == os.path.join(str(tmp_path), "Library", "Cookies", "Cookies.binarycookies")
    stores = list(safari.SafariFinder().find_cookie_stores())
    assert [s.file_path for s in stores] == files
    assert [s.is_default_profile for s in stores] == [True, False]


def test_cookie_files_windows(monkeypatch, tmp_path):
    monkeypatch.setattr("sys.platform", "win32")
    monkeypatch.setenv("APPDATA", str(tmp_path))
    assert safari.cookie_files() == [
        os.path.join(str(tmp_path), "Apple Computer", "Safari", "Cookies", "Cookies.binarycookies")
    ]


def test_finder_other_platform(monkeypatch):
    monkeypatch.setattr("sys.platform", "linux")
    assert list(safari.SafariFinder().find_cookie_stores()) == []
    with pytest.raises(OSError):
        safari.cookie_files()