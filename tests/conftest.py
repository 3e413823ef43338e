from typing import Any, Mapping, Sequence

import pytest
import sqlalchemy as sa
from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncEngine

from httpstash import BaseClock, CacheValue
from httpstash._schema import cache_table


@pytest.fixture
def anyio_backend() -> str:
    # SQLAlchemy's async engine runs on asyncio only
    return "asyncio"


class MockedClock(BaseClock):
    def __init__(self, now: int = 0) -> None:
        self.current = now

    def now(self) -> int:
        return self.current


def make_value(**kwargs: Any) -> CacheValue:
    fields: dict[str, Any] = {
        "status_code": 200,
        "status_message": "OK",
        "cached_at": 1000,
        "stale_at": 2000,
        "delete_at": 3000,
    }
    fields.update(kwargs)
    return CacheValue(**fields)


def format_value(value: Any) -> str:
    """Format a column value for display."""

    if value is None:
        return "NULL"

    if isinstance(value, bytes):
        return f"(bytes) {value!r}"

    if isinstance(value, str):
        return f"'{value}'"

    return str(value)


def format_cache_rows(rows: Sequence[Mapping[str, Any]]) -> str:
    output_lines = []
    output_lines.append("=" * 80)
    output_lines.append(f"TABLE: {cache_table.name}")
    output_lines.append("-" * 80)
    output_lines.append(f"Rows: {len(rows)}")

    for idx, row in enumerate(rows, 1):
        output_lines.append("")
        output_lines.append(f"  Row {idx}:")
        for col_name, value in row.items():
            output_lines.append(f"    {col_name:24} = {format_value(value)}")

    output_lines.append("=" * 80)
    return "\n".join(output_lines)


def print_cache_state(engine: Engine) -> str:
    """
    Print the rows of the cache table in a format suitable for inline snapshots.
    """
    with engine.connect() as conn:
        rows = conn.execute(sa.select(cache_table).order_by(cache_table.c.id)).mappings().all()
    return format_cache_rows(rows)


async def aprint_cache_state(engine: AsyncEngine) -> str:
    """
    Print the rows of the cache table in a format suitable for inline snapshots.
    """
    async with engine.connect() as conn:
        result = await conn.execute(sa.select(cache_table).order_by(cache_table.c.id))
        rows = result.mappings().all()
    return format_cache_rows(rows)
