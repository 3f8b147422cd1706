"""Ports for reading diagnostic runs and persisting context graphs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from convergent.domain.model import (
        ContextGraph,
        DiagnosticRun,
        SavedGraph,
        SourceKind,
        ToolId,
    )


@runtime_checkable
class DiagnosticRunRepository(Protocol):
    """Read-only access to upstream run stores, one query per source kind."""

    def list_runs(
        self,
        company_id: str,
        tool: ToolId,
        *,
        limit: int,
        kind: SourceKind,
    ) -> list[DiagnosticRun]:
        """Return at most ``limit`` runs, newest first."""
        ...


@runtime_checkable
class ContextGraphRepository(Protocol):
    """Persistence contract for per-company context graphs."""

    def get_graph(self, company_id: str) -> ContextGraph: ...

    def save_graph(
        self,
        company_id: str,
        graph: ContextGraph,
        expected_revision_id: str | None,
    ) -> SavedGraph:
        """Persist ``graph`` or raise :class:`ConflictError` on a stale revision."""
        ...
