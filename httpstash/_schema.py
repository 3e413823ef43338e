"""
Table layout of the cache and the encode/decode boundary for its serialized columns.

Headers, vary maps and cache-control directives are stored as JSON text. Nothing
outside this module sees the encoded form.
"""

from __future__ import annotations

import json
import typing as tp

import sqlalchemy as sa
from sqlalchemy.schema import CreateIndex, CreateTable, ExecutableDDLElement

from httpstash.models import CacheValue, StoredEntry

SCHEMA_VERSION = 1
TABLE_NAME = f"cache_v{SCHEMA_VERSION}"

metadata = sa.MetaData()

# SQLite only auto-increments an INTEGER PRIMARY KEY
_id_type = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

cache_table = sa.Table(
    TABLE_NAME,
    metadata,
    sa.Column("id", _id_type, primary_key=True, autoincrement=True),
    sa.Column("url", sa.Text, nullable=False),
    sa.Column("method", sa.Text, nullable=False),
    sa.Column("body", sa.LargeBinary, nullable=True),
    sa.Column("status_code", sa.Integer, nullable=False),
    sa.Column("status_message", sa.Text, nullable=False),
    sa.Column("headers", sa.Text, nullable=False),
    sa.Column("cache_control_directives", sa.Text, nullable=False),
    sa.Column("etag", sa.Text, nullable=True),
    sa.Column("vary", sa.Text, nullable=True),
    sa.Column("delete_at", sa.BigInteger, nullable=False),
    sa.Column("cached_at", sa.BigInteger, nullable=False),
    sa.Column("stale_at", sa.BigInteger, nullable=False),
    sa.Index(f"idx_{TABLE_NAME}_lookup", "url", "method", "delete_at"),
    sa.Index(f"idx_{TABLE_NAME}_delete", "delete_at"),
)


def _encode(value: tp.Optional[tp.Mapping[str, tp.Any]]) -> str:
    return json.dumps(dict(value) if value is not None else {})


def _decode(raw: tp.Optional[str]) -> tp.Dict[str, tp.Any]:
    if not raw:
        return {}
    decoded = json.loads(raw)
    return decoded if isinstance(decoded, dict) else {}


def value_to_columns(value: CacheValue, body: tp.Optional[bytes]) -> tp.Dict[str, tp.Any]:
    """Columns written by both insert and update. `vary` is not part of them."""
    return {
        "body": body,
        "delete_at": value.delete_at,
        "status_code": value.status_code,
        "status_message": value.status_message,
        "headers": _encode(value.headers),
        "etag": value.etag,
        "cache_control_directives": _encode(value.cache_control_directives),
        "cached_at": value.cached_at,
        "stale_at": value.stale_at,
    }


def encode_vary(value: CacheValue) -> tp.Optional[str]:
    if value.vary is None:
        return None
    return _encode(value.vary)


def row_to_entry(row: tp.Any) -> StoredEntry:
    vary = _decode(row.vary) if row.vary is not None else None
    return StoredEntry(
        id=row.id,
        url=row.url,
        method=row.method,
        status_code=row.status_code,
        status_message=row.status_message,
        cached_at=int(row.cached_at),
        stale_at=int(row.stale_at),
        delete_at=int(row.delete_at),
        headers=_decode(row.headers),
        body=bytes(row.body) if row.body is not None else None,
        etag=row.etag,
        vary=vary,
        cache_control_directives=tp.cast(tp.Any, _decode(row.cache_control_directives)),
    )


def schema_statements() -> tp.List[ExecutableDDLElement]:
    """DDL for the current schema version, safe to run on every startup."""
    statements: tp.List[ExecutableDDLElement] = [CreateTable(cache_table, if_not_exists=True)]
    statements.extend(
        CreateIndex(index, if_not_exists=True) for index in sorted(cache_table.indexes, key=lambda i: str(i.name))
    )
    return statements
