from __future__ import annotations

import logging
import types
import typing as tp
from dataclasses import replace

import sqlalchemy as sa
from sqlalchemy import Connection, Engine, create_engine

from .._config import get_default_config
from .._exceptions import WriteStreamError
from .._schema import cache_table, encode_vary, row_to_entry, schema_statements, value_to_columns
from .._synchronization import Once
from .._utils import BaseClock, Clock, join_body, make_url, vary_matches
from .._validation import assert_cache_key, assert_cache_value
from ..models import CacheKey, CacheValue, GetResult, StoredEntry

logger = logging.getLogger("httpstash.store")

__all__ = ("SQLCacheStore", "CacheWriteStream")


class SQLCacheStore:
    """
    A shared HTTP response cache stored in a relational database.

    :param engine: An engine to run queries on. The store never disposes an engine it did not create.
    :type engine: tp.Optional[Engine], optional
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
        engine: tp.Optional[Engine] = None,
        *,
        database_url: tp.Optional[str] = None,
        engine_options: tp.Optional[tp.Mapping[str, tp.Any]] = None,
        clock: tp.Optional[BaseClock] = None,
    ) -> None:
        if engine is None:
            config = get_default_config("sync")
            options: tp.Dict[str, tp.Any] = {"echo": config["echo"]}
            options.update(engine_options or {})
            engine = create_engine(database_url or config["database_url"], **options)
            self._owns_engine = True
        else:
            self._owns_engine = False

        self._engine = engine
        self._clock = clock if clock else Clock()
        self._ready = Once(self._initialize_database)

    def _initialize_database(self) -> None:
        with self._engine.begin() as conn:
            for statement in schema_statements():
                conn.execute(statement)
        logger.debug("Cache table %s is ready", cache_table.name)

    def initialize(self) -> None:
        """Create the cache table and its indexes if they do not exist yet."""
        self._ready.wait()

    def _find_entry(
        self,
        conn: Connection,
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

        result = conn.execute(query)
        for row in result:
            entry = row_to_entry(row)
            # candidates are ordered by expiry, so an expired one ends a fresh-only lookup
            if not allow_expired and entry.delete_at <= now:
                return None

            if vary_matches(entry.vary, key.headers):
                return entry

        return None

    def _insert_entry(
        self,
        conn: Connection,
        url: str,
        method: str,
        value: CacheValue,
        body: tp.Optional[bytes],
    ) -> None:
        conn.execute(
            sa.insert(cache_table).values(
                url=url,
                method=method,
                vary=encode_vary(value),
                **value_to_columns(value, body),
            )
        )
        logger.debug("Inserted cache entry for %s %s", method, url)

    def _update_entry(
        self,
        conn: Connection,
        id: int,
        value: CacheValue,
        body: tp.Optional[bytes],
    ) -> None:
        conn.execute(
            sa.update(cache_table).where(cache_table.c.id == id).values(**value_to_columns(value, body))
        )
        logger.debug("Updated cache entry %s", id)

    def _delete_entry(self, conn: Connection, id: int) -> None:
        conn.execute(sa.delete(cache_table).where(cache_table.c.id == id))
        logger.debug("Deleted cache entry %s", id)

    def _prune(self, conn: Connection) -> None:
        result = conn.execute(sa.delete(cache_table).where(cache_table.c.delete_at <= self._clock.now()))
        if result.rowcount:
            logger.debug("Pruned %s expired cache entries", result.rowcount)

    def get(self, key: CacheKey) -> tp.Optional[GetResult]:
        assert_cache_key(key)
        self._ready.wait()

        with self._engine.connect() as conn:
            entry = self._find_entry(conn, key)

        if entry is None:
            logger.debug("Cache miss for %s %s", key.method, make_url(key))
            return None

        logger.debug("Cache hit for %s %s (entry %s)", key.method, make_url(key), entry.id)
        return entry.to_result()

    def set(self, key: CacheKey, value: CacheValue) -> None:
        assert_cache_key(key)
        assert_cache_value(value)

        body = join_body(value.body)
        self._ready.wait()

        with self._engine.begin() as conn:
            existing = self._find_entry(conn, key, allow_expired=True)
            if existing is not None:
                self._update_entry(conn, existing.id, value, body)
            else:
                self._prune(conn)
                self._insert_entry(conn, make_url(key), key.method, value, body)

    def delete(self, key: CacheKey) -> None:
        assert_cache_key(key)
        self._ready.wait()

        with self._engine.begin() as conn:
            existing = self._find_entry(conn, key, allow_expired=True)
            if existing is not None:
                self._delete_entry(conn, existing.id)

    def create_write_stream(self, key: CacheKey, value: CacheValue) -> CacheWriteStream:
        assert_cache_key(key)
        assert_cache_value(value)
        return CacheWriteStream(self, key, value)

    def close(self) -> None:
        if self._owns_engine:
            self._engine.dispose()

    def __enter__(self) -> SQLCacheStore:
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        self.close()


class CacheWriteStream:
    """
    Collects a response body chunk by chunk and stores it once the stream is closed.
    """

    def __init__(self, store: SQLCacheStore, key: CacheKey, value: CacheValue) -> None:
        self._store = store
        self._key = key
        self._value = value
        self._chunks: tp.List[bytes] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, chunk: tp.Union[bytes, bytearray, memoryview, str]) -> None:
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

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            self._store.set(self._key, replace(self._value, body=self._chunks))
        except Exception as exc:
            raise WriteStreamError("Failed to store the streamed response") from exc
        finally:
            self._chunks = []

    def __enter__(self) -> CacheWriteStream:
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()
