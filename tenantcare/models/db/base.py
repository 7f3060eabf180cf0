"""
Base models and mixins for the registry and tenant databases.

Two independent metadata collections exist: RegistryBase for the single
registry database and TenantBase for the schema replicated into every
clinic database.
"""

import uuid
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, String, inspect
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

RegistryBase = declarative_base()
TenantBase = declarative_base()

# Free-form structured value (maps, sequences, primitives); JSONB on PostgreSQL
JSONValue = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    """Adds created_at / updated_at columns."""

    created_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class EntityMixin(TimestampMixin):
    """String UUID primary key plus timestamps, shared by every clinic entity."""

    id = Column(String(36), primary_key=True, default=new_id)

    # Columns never exposed through to_dict()
    __private_fields__: tuple[str, ...] = ()

    def to_dict(self, include_private: bool = False) -> dict[str, Any]:
        """Column values keyed by column name (attribute `metadata_` is emitted as "metadata")."""
        data = {}
        for attr in inspect(self).mapper.column_attrs:
            name = attr.columns[0].name
            if not include_private and name in self.__private_fields__:
                continue
            value = getattr(self, attr.key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            data[name] = value
        return data
