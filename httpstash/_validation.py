from __future__ import annotations

import typing as tp

from httpstash.models import CacheKey, CacheValue

__all__ = ("assert_cache_key", "assert_cache_value")


def _type_name(value: tp.Any) -> str:
    return type(value).__name__


def _is_int(value: tp.Any) -> bool:
    # bool is an int subclass but never a valid status code or timestamp
    return isinstance(value, int) and not isinstance(value, bool)


def _is_header_value(value: tp.Any) -> bool:
    if isinstance(value, str):
        return True
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _assert_headers(headers: tp.Any, label: str) -> None:
    if not isinstance(headers, tp.Mapping):
        raise TypeError(f"expected {label} to be mapping, got {_type_name(headers)}")
    for name, header_value in headers.items():
        if not isinstance(name, str):
            raise TypeError(f"expected {label} names to be str, got {_type_name(name)}")
        if not _is_header_value(header_value):
            raise TypeError(f"expected {label}[{name!r}] to be str or list of str")


def assert_cache_key(key: tp.Any) -> None:
    if key is None:
        raise TypeError("expected key to have a value")

    if not isinstance(key, CacheKey):
        raise TypeError(f"expected key to be CacheKey, got {_type_name(key)}")

    for name in ("origin", "method", "path"):
        attribute = getattr(key, name)
        if not isinstance(attribute, str):
            raise TypeError(f"expected key.{name} to be str, got {_type_name(attribute)}")

    if key.headers is not None:
        _assert_headers(key.headers, "key.headers")


def assert_cache_value(value: tp.Any) -> None:
    if value is None:
        raise TypeError("expected value to have a value")

    if not isinstance(value, CacheValue):
        raise TypeError(f"expected value to be CacheValue, got {_type_name(value)}")

    for name in ("status_code", "cached_at", "stale_at", "delete_at"):
        attribute = getattr(value, name)
        if not _is_int(attribute):
            raise TypeError(f"expected value.{name} to be int, got {_type_name(attribute)}")

    if not isinstance(value.status_message, str):
        raise TypeError(f"expected value.status_message to be str, got {_type_name(value.status_message)}")

    if value.headers is not None:
        _assert_headers(value.headers, "value.headers")

    if value.vary is not None:
        if not isinstance(value.vary, tp.Mapping):
            raise TypeError(f"expected value.vary to be mapping, got {_type_name(value.vary)}")
        for name, vary_value in value.vary.items():
            if vary_value is not None and not _is_header_value(vary_value):
                raise TypeError(f"expected value.vary[{name!r}] to be str, list of str or None")

    if value.etag is not None and not isinstance(value.etag, str):
        raise TypeError(f"expected value.etag to be str, got {_type_name(value.etag)}")

    if value.cache_control_directives is not None and not isinstance(value.cache_control_directives, tp.Mapping):
        raise TypeError(
            "expected value.cache_control_directives to be mapping, "
            f"got {_type_name(value.cache_control_directives)}"
        )

    body = value.body
    if body is None or isinstance(body, bytes):
        return
    if isinstance(body, list) and all(isinstance(chunk, bytes) for chunk in body):
        return
    raise TypeError(f"expected value.body to be bytes, list of bytes or None, got {_type_name(body)}")
