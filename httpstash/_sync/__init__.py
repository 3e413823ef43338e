from ._store import CacheWriteStream as CacheWriteStream, SQLCacheStore as SQLCacheStore
