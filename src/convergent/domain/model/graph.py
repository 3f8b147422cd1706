"""Per-company context graph state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final
from uuid import uuid4

from .runs import SourceKind

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .paths import FieldPath

HUMAN_SOURCES: Final[frozenset[str]] = frozenset({"user", "manual", "qbr", "strategy"})


def new_revision_id() -> str:
    return uuid4().hex


def is_human_source(source: str) -> bool:
    return source in HUMAN_SOURCES


@dataclass(slots=True, kw_only=True)
class Provenance:
    """One recorded write to a field."""

    source: str
    source_run_id: str | None = None
    raw_path: str | None = None
    source_kind: SourceKind | None = None
    confidence: float | None = None
    run_created_at: datetime | None = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    human_confirmed: bool = False
    is_inferred: bool = False


@dataclass(slots=True, kw_only=True)
class FieldState:
    """Confirmed and proposed values for one path.

    Provenance is kept newest first.
    """

    confirmed_value: object = None
    proposed_value: object = None
    provenance: list[Provenance] = field(default_factory=list["Provenance"])
    revision_id: str | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_value is not None or any(
            entry.human_confirmed for entry in self.provenance[:1]
        )

    @property
    def has_proposal(self) -> bool:
        return self.proposed_value is not None

    @property
    def latest(self) -> Provenance | None:
        return self.provenance[0] if self.provenance else None

    def latest_automated(self) -> Provenance | None:
        for entry in self.provenance:
            if not entry.human_confirmed and not is_human_source(entry.source):
                return entry
        return None

    def copy(self) -> FieldState:
        return replace(self, provenance=list(self.provenance))


@dataclass(slots=True, kw_only=True)
class ContextGraph:
    """Canonical fact base for one company."""

    company_id: str
    fields: dict[FieldPath, FieldState] = field(default_factory=dict["FieldPath", "FieldState"])
    revision_id: str | None = None

    def get(self, path: FieldPath) -> FieldState | None:
        return self.fields.get(path)

    def __iter__(self) -> Iterator[tuple[FieldPath, FieldState]]:
        return iter(sorted(self.fields.items()))

    def confirmed_paths(self) -> frozenset[FieldPath]:
        return frozenset(path for path, state in self.fields.items() if state.is_confirmed)

    def proposed_paths(self) -> frozenset[FieldPath]:
        return frozenset(path for path, state in self.fields.items() if state.has_proposal)

    def copy(self) -> ContextGraph:
        return ContextGraph(
            company_id=self.company_id,
            fields={path: state.copy() for path, state in self.fields.items()},
            revision_id=self.revision_id,
        )


@dataclass(slots=True, frozen=True)
class SavedGraph:
    graph: ContextGraph
    revision_id: str
