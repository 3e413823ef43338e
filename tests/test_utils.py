import pytest
from time_machine import travel

from httpstash import CacheKey
from httpstash._utils import Clock, get_header, header_matches, join_body, make_url, vary_matches


def test_make_url():
    assert make_url(CacheKey(origin="https://example.com", method="GET", path="/a")) == "https://example.com//a"


def test_join_body():
    assert join_body([b"a", b"b", b"c"]) == b"abc"
    assert join_body([]) == b""
    assert join_body(b"abc") == b"abc"
    assert join_body(None) is None


def test_clock_returns_milliseconds():
    with travel(12.5, tick=False):
        assert Clock().now() == 12500


@pytest.mark.parametrize(
    "lhs, rhs, expected",
    [
        (None, None, True),
        (None, "gzip", False),
        ("gzip", None, False),
        ("gzip", "gzip", True),
        ("gzip", "br", False),
        (["en", "fr"], ["en", "fr"], True),
        (["en", "fr"], ["fr", "en"], False),
        (["en"], ["en", "fr"], False),
        (["en"], "en", False),
        ("", "", True),
    ],
)
def test_header_matches(lhs, rhs, expected):
    assert header_matches(lhs, rhs) is expected


def test_get_header_is_case_insensitive():
    headers = {"Accept-Encoding": "gzip", "accept": "text/html"}

    assert get_header(headers, "accept-encoding") == "gzip"
    assert get_header(headers, "accept") == "text/html"
    assert get_header(headers, "authorization") is None
    assert get_header(None, "accept") is None


def test_vary_matches():
    vary = {"accept-encoding": "gzip", "accept-language": ["en"]}

    assert vary_matches(vary, {"accept-encoding": "gzip", "accept-language": ["en"], "x-other": "1"})
    assert not vary_matches(vary, {"accept-encoding": "gzip"})
    assert not vary_matches(vary, None)
    assert vary_matches(None, {"accept-encoding": "br"})
    assert vary_matches({}, None)
