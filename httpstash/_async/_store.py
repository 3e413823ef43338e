from __future__ import annotations

import logging
import types
import typing as tp
from dataclasses import replace

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .._config import get_default_config
from .._exceptions import WriteStreamError
from .._schema import cache_table, encode_vary, row_to_entry, schema_statements, value_to_columns
from .._synchronization import AsyncOnce
from .._utils import BaseClock, Clock, join_body, make_url, vary_matches
from .._validation import assert_cache_key, assert_cache_value
from ..models import CacheKey, CacheValue, GetResult, StoredEntry

logger = logging.getLogger("httpstash.store")

__all__ = ("AsyncSQLCacheStore", "AsyncCacheWriteStream")


class AsyncSQLCacheStore:
    """
    A shared HTTP response cache stored in a relational database.

    :param engine: An engine to run queries on. The store never disposes an engine it did not create.
    :type engine: tp.Optional[AsyncEngine], optional
    :param database_url: SQLAlchemy URL used to create an engine when none is given,
        defaults to the `HTTPSTASH_DATABASE_URL` environment variable
    :type database_url: tp.Optional[str], optional
    :param engine_options: Keyword arguments passed verbatim to the engine factory (pool size, isolation level, ...)
    :type engine_options: tp.Optional[tp.Mapping[str, tp.Any]], optional
    :param clock: Source of the current time in milliseconds, defaults to the system clock
    :type clock: tp.Optional[BaseClock], optional
    """

    def __init__(
        self,
        engine: tp.Optional[AsyncEngine] = None,
        *,
        database_url: tp.Optional[str] = None,
        engine_options: tp.Optional[tp.Mapping[str, tp.Any]] = None,
        clock: tp.Optional[BaseClock] = None,
    ) -> None:
        if engine is None:
            config = get_default_config("async")
            options: tp.Dict[str, tp.Any] = {"echo": config["echo"]}
            options.update(engine_options or {})
            engine = create_async_engine(database_url or config["database_url"], **options)
            self._owns_engine = True
        else:
            self._owns_engine = False

        self._engine = engine
        self._clock = clock if clock else Clock()
        self._ready = AsyncOnce(self._initialize_database)

    async def _initialize_database(self) -> None:
        async with self._engine.begin() as conn:
            for statement in schema_statements():
                await conn.execute(statement)
        logger.debug("Cache table %s is ready", cache_table.name)

    async def initialize(self) -> None:
        """Create the cache table and its indexes if they do not exist yet."""
        await self._ready.wait()

    async def _find_entry(
        self,
        conn: AsyncConnection,
        key: CacheKey,
        allow_expired: bool = False,
    ) -> tp.Optional[StoredEntry]:
        url = make_url(key)
        now = self._clock.now()

        query = (
            sa.select(cache_table)
            .where(cache_table.c.url == url, cache_table.c.method == key.method)
            .order_by(cache_table.c.delete_at.asc(), cache_table.c.id.asc())
        )

        result = await conn.execute(query)
        for row in result:
            entry = row_to_entry(row)
            # candidates are ordered by expiry, so an expired one ends a fresh-only lookup
            if not allow_expired and entry.delete_at <= now:
                return None

            if vary_matches(entry.vary, key.headers):
                return entry

        return None

    async def _insert_entry(
        self,
        conn: AsyncConnection,
        url: str,
        method: str,
        value: CacheValue,
        body: tp.Optional[bytes],
    ) -> None:
        await conn.execute(
            sa.insert(cache_table).values(
                url=url,
                method=method,
                vary=encode_vary(value),
                **value_to_columns(value, body),
            )
        )
        logger.debug("Inserted cache entry for %s %s", method, url)

    async def _update_entry(
        self,
        conn: AsyncConnection,
        id: int,
        value: CacheValue,
        body: tp.Optional[bytes],
    ) -> None:
        await conn.execute(
            sa.update(cache_table).where(cache_table.c.id == id).values(**value_to_columns(value, body))
        )
        logger.debug("Updated cache entry %s", id)

    async def _delete_entry(self, conn: AsyncConnection, id: int) -> None:
        await conn.execute(sa.delete(cache_table).where(cache_table.c.id == id))
        logger.debug("Deleted cache entry %s", id)

    async def _prune(self, conn: AsyncConnection) -> None:
        result = await conn.execute(sa.delete(cache_table).where(cache_table.c.delete_at <= self._clock.now()))
        if result.rowcount:
            logger.debug("Pruned %s expired cache entries", result.rowcount)

    async def get(self, key: CacheKey) -> tp.Optional[GetResult]:
        assert_cache_key(key)
        await self._ready.wait()

        async with self._engine.connect() as conn:
            entry = await self._find_entry(conn, key)

        if entry is None:
            logger.debug("Cache miss for %s %s", key.method, make_url(key))
            return None

        logger.debug("Cache hit for %s %s (entry %s)", key.method, make_url(key), entry.id)
        return entry.to_result()

    async def set(self, key: CacheKey, value: CacheValue) -> None:
        assert_cache_key(key)
        assert_cache_value(value)

        body = join_body(value.body)
        await self._ready.wait()

        async with self._engine.begin() as conn:
            existing = await self._find_entry(conn, key, allow_expired=True)
            if existing is not None:
                await self._update_entry(conn, existing.id, value, body)
            else:
                await self._prune(conn)
                await self._insert_entry(conn, make_url(key), key.method, value, body)

    async def delete(self, key: CacheKey) -> None:
        assert_cache_key(key)
        await self._ready.wait()

        async with self._engine.begin() as conn:
            existing = await self._find_entry(conn, key, allow_expired=True)
            if existing is not None:
                await self._delete_entry(conn, existing.id)

    def create_write_stream(self, key: CacheKey, value: CacheValue) -> AsyncCacheWriteStream:
        assert_cache_key(key)
        assert_cache_value(value)
        return AsyncCacheWriteStream(self, key, value)

    async def close(self) -> None:
        if self._owns_engine:
            await self._engine.dispose()

    async def __aenter__(self) -> AsyncSQLCacheStore:
        return self

    async def __aexit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        await self.close()


class AsyncCacheWriteStream:
    """
    Collects a response body chunk by chunk and stores it once the stream is closed.
    """

    def __init__(self, store: AsyncSQLCacheStore, key: CacheKey, value: CacheValue) -> None:
        self._store = store
        self._key = key
        self._value = value
        self._chunks: tp.List[bytes] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, chunk: tp.Union[bytes, bytearray, memoryview, str]) -> None:
        if self._closed:
            raise WriteStreamError("Cannot write to a closed stream")
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        if not isinstance(chunk, (bytes, bytearray, memoryview)):
            raise TypeError(f"expected chunk to be bytes, got {type(chunk).__name__}")
        self._chunks.append(bytes(chunk))

    def abort(self) -> None:
        """Drop the buffered body without storing anything."""
        self._closed = True
        self._chunks = []

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            await self._store.set(self._key, replace(self._value, body=self._chunks))
        except Exception as exc:
            raise WriteStreamError("Failed to store the streamed response") from exc
        finally:
            self._chunks = []

    async def __aenter__(self) -> AsyncCacheWriteStream:
        return self

    async def __aexit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        if exc_type is None:
            await self.close()
        else:
            self.abort()
