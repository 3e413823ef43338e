import os
from typing import Literal, TypedDict


class StoreConfig(TypedDict, total=False):
    # override default value with the environment variable HTTPSTASH_DATABASE_URL
    database_url: str
    """
    SQLAlchemy database URL used when no engine is passed to the store.
    """

    # override default value with the environment variable HTTPSTASH_ECHO
    echo: bool
    """
    Log every emitted SQL statement through the `sqlalchemy.engine` logger.
    """


def get_default_config(flavour: Literal["async", "sync"] = "async") -> StoreConfig:
    """Get the default configuration for the cache store."""

    default_url = "sqlite+aiosqlite:///httpstash_cache.db" if flavour == "async" else "sqlite:///httpstash_cache.db"
    DATABASE_URL = os.getenv("HTTPSTASH_DATABASE_URL", default_url)
    ECHO = os.getenv("HTTPSTASH_ECHO", "0").lower() in ("1", "true", "yes", "on")

    return {
        "database_url": DATABASE_URL,
        "echo": ECHO,
    }
