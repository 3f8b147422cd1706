"""Diagnostic runs as consumed from upstream run stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final


class ToolId(StrEnum):
    """Diagnostic subsystems whose runs can be converged."""

    BRAND_LAB = "brand_lab"
    WEBSITE_LAB = "website_lab"
    COMPETITION_LAB = "competition_lab"


class RunStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> RunStatus:
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class SourceKind(StrEnum):
    """Upstream storage shapes, in fixed priority order.

    Iteration order of this enum *is* the priority order.
    """

    DIAGNOSTIC_RUNS = "diagnostic_runs"
    HEAVY_RUNS = "heavy_runs"

    @property
    def rank(self) -> int:
        return _SOURCE_KIND_ORDER.index(self)


_SOURCE_KIND_ORDER: Final[tuple[SourceKind, ...]] = tuple(SourceKind)


@dataclass(slots=True, kw_only=True)
class DiagnosticRun:
    """One completed (or failed/in-flight) diagnostic run.

    ``raw_json`` is opaque and versioned per tool; only candidate builders
    look inside it.
    """

    id: str
    company_id: str
    tool: ToolId
    status: RunStatus = RunStatus.COMPLETED
    raw_json: object = None
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    source_kind: SourceKind = SourceKind.DIAGNOSTIC_RUNS
