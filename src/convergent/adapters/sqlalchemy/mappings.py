"""SQLAlchemy table metadata for run stores and context graphs."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    TypeDecorator,
    orm,
)

from convergent.domain.model import RunStatus, ToolId

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class JSONText(TypeDecorator[object]):
    """Arbitrary JSON stored as text; ``None`` stays SQL ``NULL``."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: object, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> object:
        _ = dialect
        if value is None:
            return None
        return json.loads(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Upstream run stores -----------------------------------------------------------

diagnostic_run_table = Table(
    "diagnostic_run",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("company_id", String, nullable=False),
    Column("tool", Enum(ToolId, native_enum=False), nullable=False),
    Column("status", String, nullable=False, default=RunStatus.COMPLETED.value),
    Column("raw_json", JSONText, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Index("ix_diagnostic_run_company_tool_created", "company_id", "tool", "created_at"),
)

heavy_run_table = Table(
    "heavy_run",
    mapper_registry.metadata,
    Column("id", String, primary_key=True),
    Column("company_id", String, nullable=False),
    Column("status", String, nullable=False, default=RunStatus.COMPLETED.value),
    Column("evidence_pack", JSONText, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Index("ix_heavy_run_company_created", "company_id", "created_at"),
)

# Context graph -----------------------------------------------------------------

context_graph_table = Table(
    "context_graph",
    mapper_registry.metadata,
    Column("company_id", String, primary_key=True),
    Column("revision_id", String, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

context_field_table = Table(
    "context_field",
    mapper_registry.metadata,
    Column(
        "company_id",
        String,
        ForeignKey("context_graph.company_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("path", String, primary_key=True),
    Column("confirmed_value", JSONText, nullable=True),
    Column("proposed_value", JSONText, nullable=True),
    Column("provenance", JSONText, nullable=True),
    Column("revision_id", String, nullable=True),
)


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
