from __future__ import annotations

import time
import typing as tp

from httpstash.models import Body, CacheKey, HeaderValue, VaryMapping


class BaseClock:
    def now(self) -> int:
        """Current time in milliseconds since epoch."""
        raise NotImplementedError()


class Clock(BaseClock):
    def now(self) -> int:
        return int(time.time() * 1000)


def make_url(key: CacheKey) -> str:
    return f"{key.origin}/{key.path}"


def join_body(body: Body) -> tp.Optional[bytes]:
    if isinstance(body, list):
        return b"".join(body)
    return body


def get_header(headers: tp.Optional[tp.Mapping[str, HeaderValue]], name: str) -> tp.Optional[HeaderValue]:
    """
    Look up a header value by name, ignoring case.

    An exact match wins over a case-insensitive one.
    """
    if not headers:
        return None
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for header_name, value in headers.items():
        if header_name.lower() == lowered:
            return value
    return None


def header_matches(lhs: tp.Optional[HeaderValue], rhs: tp.Optional[HeaderValue]) -> bool:
    """
    Compare a request header value with the value recorded in an entry's vary map.

    Args:
        lhs: The value seen on the incoming request, or None when absent.
        rhs: The value stored in the vary map, or None when the original request lacked it.

    Returns:
        True when both are absent, both are equal lists (same order), or both are equal strings.
    """
    if lhs is None and rhs is None:
        return True

    if lhs is None or rhs is None:
        return False

    if isinstance(lhs, list) and isinstance(rhs, list):
        if len(lhs) != len(rhs):
            return False
        return all(left == right for left, right in zip(lhs, rhs))

    return lhs == rhs


def vary_matches(
    vary: tp.Optional[VaryMapping],
    headers: tp.Optional[tp.Mapping[str, HeaderValue]],
) -> bool:
    # no variance declared
    if not vary:
        return True

    return all(header_matches(get_header(headers, name), value) for name, value in vary.items())
