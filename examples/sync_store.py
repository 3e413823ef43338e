import time

from httpstash import CacheKey, CacheValue, SQLCacheStore

with SQLCacheStore(database_url="sqlite:///example_cache.db") as store:
    key = CacheKey(origin="https://example.com", method="GET", path="/")
    now = int(time.time() * 1000)

    store.set(
        key,
        CacheValue(
            status_code=200,
            status_message="OK",
            body=b"Hello, world!",
            cached_at=now,
            stale_at=now + 60_000,
            delete_at=now + 600_000,
        ),
    )
    print(store.get(key))

    store.delete(key)
    print(store.get(key))  # None
