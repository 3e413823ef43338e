from ._store import AsyncCacheWriteStream as AsyncCacheWriteStream, AsyncSQLCacheStore as AsyncSQLCacheStore
