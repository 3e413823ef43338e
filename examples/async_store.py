import time

import anyio

from httpstash import AsyncSQLCacheStore, CacheKey, CacheValue


async def main() -> None:
    async with AsyncSQLCacheStore(database_url="sqlite+aiosqlite:///example_cache.db") as store:
        key = CacheKey(
            origin="https://example.com",
            method="GET",
            path="/",
            headers={"accept-encoding": "gzip"},
        )
        now = int(time.time() * 1000)

        async with store.create_write_stream(
            key,
            CacheValue(
                status_code=200,
                status_message="OK",
                headers={"content-type": "text/plain", "content-encoding": "gzip"},
                vary={"accept-encoding": "gzip"},
                cache_control_directives={"max-age": 60},
                cached_at=now,
                stale_at=now + 60_000,
                delete_at=now + 600_000,
            ),
        ) as stream:
            await stream.write(b"Hello, ")
            await stream.write(b"world!")

        result = await store.get(key)
        print(result.body if result else "cache miss")  # b'Hello, world!'


anyio.run(main)
