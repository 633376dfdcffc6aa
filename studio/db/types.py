"""
Column types shared by the studio models.

User ids are native UUIDs on Postgres and CHAR(36) strings elsewhere.
Document payloads use JSONB on Postgres and plain JSON on other dialects.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.types import CHAR, TypeDecorator


def _to_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, str):
        return uuid.UUID(value)
    raise ValueError(f"Invalid UUID value: {value!r}")


class GUID(TypeDecorator):
    """UUID column that always round-trips ``uuid.UUID`` values."""

    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value: Any, dialect):
        if value is None:
            return None
        owner = _to_uuid(value)
        return owner if dialect.name == "postgresql" else str(owner)

    def process_result_value(self, value: Any, dialect):
        return None if value is None else _to_uuid(str(value))


class DocumentData(TypeDecorator):
    """Schemaless document payload. Missing payloads load as an empty dict."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value: Any, dialect):
        if value is not None and not isinstance(value, dict):
            raise ValueError(f"Documents must be objects, got {type(value).__name__}")
        return value

    def process_result_value(self, value: Any, dialect):
        return value if value is not None else {}
