from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Union

from typing_extensions import TypeAlias, TypedDict

HeaderValue: TypeAlias = Union[str, List[str]]
VaryMapping: TypeAlias = Mapping[str, Optional[HeaderValue]]
Body: TypeAlias = Union[bytes, List[bytes], None]


CacheControlDirectives = TypedDict(
    "CacheControlDirectives",
    {
        "max-stale": int,
        "min-fresh": int,
        "max-age": int,
        "s-maxage": int,
        "stale-while-revalidate": int,
        "stale-if-error": int,
        "public": bool,
        "private": Union[bool, List[str]],
        "no-store": bool,
        "no-cache": Union[bool, List[str]],
        "must-revalidate": bool,
        "proxy-revalidate": bool,
        "immutable": bool,
        "no-transform": bool,
        "must-understand": bool,
        "only-if-cached": bool,
    },
    total=False,
)
"""
Parsed Cache-Control directives of a stored response.

The store keeps them as-is for the caching layer; freshness is decided by the
timing fields only.
"""


@dataclass
class CacheKey:
    origin: str
    method: str
    path: str
    headers: Optional[Mapping[str, HeaderValue]] = None


@dataclass
class CacheValue:
    status_code: int
    status_message: str
    cached_at: int
    """Milliseconds since epoch when the response was cached."""

    stale_at: int
    """Milliseconds since epoch after which the response is stale."""

    delete_at: int
    """Milliseconds since epoch after which the entry must not be served."""

    headers: Optional[Mapping[str, HeaderValue]] = None
    body: Body = None
    etag: Optional[str] = None
    vary: Optional[VaryMapping] = None
    cache_control_directives: Optional[CacheControlDirectives] = None


@dataclass
class GetResult:
    status_code: int
    status_message: str
    cached_at: int
    stale_at: int
    delete_at: int
    headers: Mapping[str, HeaderValue] = field(default_factory=dict)
    body: Optional[bytes] = None
    etag: Optional[str] = None
    vary: Optional[VaryMapping] = None
    cache_control_directives: CacheControlDirectives = field(default_factory=lambda: CacheControlDirectives())


@dataclass
class StoredEntry:
    """A row of the cache table with its serialized columns already decoded."""

    id: int
    url: str
    method: str
    status_code: int
    status_message: str
    cached_at: int
    stale_at: int
    delete_at: int
    headers: Mapping[str, HeaderValue] = field(default_factory=dict)
    body: Optional[bytes] = None
    etag: Optional[str] = None
    vary: Optional[VaryMapping] = None
    cache_control_directives: CacheControlDirectives = field(default_factory=lambda: CacheControlDirectives())

    def to_result(self) -> GetResult:
        return GetResult(
            status_code=self.status_code,
            status_message=self.status_message,
            cached_at=self.cached_at,
            stale_at=self.stale_at,
            delete_at=self.delete_at,
            headers=self.headers,
            body=self.body,
            etag=self.etag,
            vary=self.vary,
            cache_control_directives=self.cache_control_directives,
        )
