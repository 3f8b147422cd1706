"""Reusable fakes and payload builders for convergence tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Literal

from convergent.domain.errors import ConflictError
from convergent.domain.model import (
    ContextGraph,
    DiagnosticRun,
    RunStatus,
    SavedGraph,
    SourceKind,
    ToolId,
    new_revision_id,
)
from convergent.domain.ports import ConvergenceRepositories

if TYPE_CHECKING:
    from collections.abc import Iterable

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def make_run(
    tool: ToolId,
    raw_json: object,
    *,
    run_id: str = "run-1",
    company_id: str = "acme",
    status: RunStatus = RunStatus.COMPLETED,
    kind: SourceKind = SourceKind.DIAGNOSTIC_RUNS,
    age_days: int = 0,
) -> DiagnosticRun:
    return DiagnosticRun(
        id=run_id,
        company_id=company_id,
        tool=tool,
        status=status,
        raw_json=raw_json,
        created_at=BASE_TIME - timedelta(days=age_days),
        source_kind=kind,
    )


def brand_payload(**findings: object) -> dict[str, object]:
    return {"version": 2, "status": "completed", "findings": findings}


def v3_competitor(
    name: str,
    *,
    kind: str = "direct",
    domain: str | None = None,
    threat: float = 60,
    relevance: float = 50,
    summary: str | None = None,
    **extra: object,
) -> dict[str, object]:
    record: dict[str, object] = {
        "name": name,
        "domain": domain or f"{name.lower().replace(' ', '')}.com",
        "classification": {"type": kind, "confidence": 0.8},
        "scores": {"threatScore": threat, "relevanceScore": relevance},
    }
    if summary is not None:
        record["summary"] = summary
    record.update(extra)
    return record


def competition_v3_payload(
    competitors: Iterable[dict[str, object]], *, status: str = "completed"
) -> dict[str, object]:
    return {"status": status, "runId": "cl-1", "competitors": list(competitors)}


class FakeRunRepository:
    """In-memory run store that records every ``list_runs`` call."""

    def __init__(self, runs: Iterable[DiagnosticRun] = ()) -> None:
        self.runs: list[DiagnosticRun] = list(runs)
        self.calls: list[tuple[ToolId, SourceKind]] = []

    def add(self, run: DiagnosticRun) -> None:
        self.runs.append(run)

    def list_runs(
        self,
        company_id: str,
        tool: ToolId,
        *,
        limit: int,
        kind: SourceKind,
    ) -> list[DiagnosticRun]:
        self.calls.append((tool, kind))
        matching = [
            run
            for run in self.runs
            if run.company_id == company_id and run.tool is tool and run.source_kind is kind
        ]
        matching.sort(key=lambda run: run.created_at, reverse=True)
        return matching[:limit]

    def kinds_queried(self) -> list[SourceKind]:
        return [kind for _, kind in self.calls]


@dataclass(slots=True)
class FakeGraphRepository:
    """Whole-graph store with a plain revision check."""

    graphs: dict[str, ContextGraph] = field(default_factory=dict["str", "ContextGraph"])
    saves: int = 0

    def get_graph(self, company_id: str) -> ContextGraph:
        stored = self.graphs.get(company_id)
        return stored.copy() if stored is not None else ContextGraph(company_id=company_id)

    def save_graph(
        self,
        company_id: str,
        graph: ContextGraph,
        expected_revision_id: str | None,
    ) -> SavedGraph:
        current = self.graphs.get(company_id)
        current_revision = current.revision_id if current is not None else None
        if current_revision != expected_revision_id:
            raise ConflictError(
                company_id,
                expected_revision_id=expected_revision_id,
                current_revision_id=current_revision,
            )
        saved = graph.copy()
        saved.revision_id = new_revision_id()
        self.graphs[company_id] = saved
        self.saves += 1
        return SavedGraph(graph=saved.copy(), revision_id=saved.revision_id)


class FakeConvergenceUnitOfWork:
    def __init__(self, runs: FakeRunRepository, graphs: FakeGraphRepository) -> None:
        self.repositories = ConvergenceRepositories(runs=runs, graphs=graphs)
        self.committed = False
        self.rollback_called = False

    def __enter__(self) -> FakeConvergenceUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: object | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        return False

    def commit(self) -> None:
        self.committed = True

    def rollback(self) -> None:
        self.rollback_called = True


if TYPE_CHECKING:
    from convergent.domain.ports import ContextGraphRepository, DiagnosticRunRepository

    _check_runs: DiagnosticRunRepository = FakeRunRepository()
    _check_graphs: ContextGraphRepository = FakeGraphRepository()
