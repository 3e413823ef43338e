from httpstash._async import AsyncCacheWriteStream, AsyncSQLCacheStore
from httpstash._exceptions import CacheStoreError, WriteStreamError
from httpstash._schema import SCHEMA_VERSION
from httpstash._sync import CacheWriteStream, SQLCacheStore
from httpstash._utils import BaseClock, Clock
from httpstash.models import (
    CacheControlDirectives as CacheControlDirectives,
    CacheKey as CacheKey,
    CacheValue as CacheValue,
    GetResult as GetResult,
    VaryMapping as VaryMapping,
)

__version__ = "0.1.0"

__all__ = (
    ## Stores
    "AsyncSQLCacheStore",
    "SQLCacheStore",
    "AsyncCacheWriteStream",
    "CacheWriteStream",
    ## Models
    "CacheKey",
    "CacheValue",
    "GetResult",
    "CacheControlDirectives",
    "VaryMapping",
    ## Time
    "BaseClock",
    "Clock",
    ## Errors
    "CacheStoreError",
    "WriteStreamError",
    "SCHEMA_VERSION",
)
