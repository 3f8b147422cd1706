"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, cast

from sqlalchemy import insert, select, update

from convergent.adapters.sqlalchemy.mappings import (
    context_field_table,
    context_graph_table,
    diagnostic_run_table,
    heavy_run_table,
)
from convergent.domain.errors import ConflictError
from convergent.domain.model import (
    ContextGraph,
    DiagnosticRun,
    FieldState,
    Provenance,
    RunStatus,
    SavedGraph,
    SourceKind,
    ToolId,
    domain_of,
    new_revision_id,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sqlalchemy import Row
    from sqlalchemy.orm import Session

    from convergent.domain.model import FieldPath

log = getLogger(__name__)

# Keys under which a heavy run's evidence pack embeds each tool's payload.
HEAVY_PAYLOAD_KEYS: Final[dict[ToolId, tuple[str, ...]]] = {
    ToolId.BRAND_LAB: ("brandLab",),
    ToolId.WEBSITE_LAB: ("websiteLabV4", "websiteLab"),
    ToolId.COMPETITION_LAB: ("competitionLab", "competition"),
}


class SqlAlchemyDiagnosticRunRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, run: DiagnosticRun) -> None:
        if run.source_kind is not SourceKind.DIAGNOSTIC_RUNS:
            raise ValueError(f"Use add_heavy_run for {run.source_kind} runs")
        self.session.execute(
            insert(diagnostic_run_table).values(
                id=run.id,
                company_id=run.company_id,
                tool=run.tool,
                status=run.status.value,
                raw_json=run.raw_json,
                created_at=run.created_at,
            )
        )

    def add_heavy_run(
        self,
        *,
        run_id: str,
        company_id: str,
        evidence_pack: Mapping[str, object] | None,
        status: RunStatus = RunStatus.COMPLETED,
        created_at: datetime | None = None,
    ) -> None:
        self.session.execute(
            insert(heavy_run_table).values(
                id=run_id,
                company_id=company_id,
                status=status.value,
                evidence_pack=dict(evidence_pack) if evidence_pack is not None else None,
                created_at=created_at or datetime.now(tz=UTC),
            )
        )

    def list_runs(
        self,
        company_id: str,
        tool: ToolId,
        *,
        limit: int,
        kind: SourceKind,
    ) -> list[DiagnosticRun]:
        if limit <= 0:
            return []
        if kind is SourceKind.HEAVY_RUNS:
            return self._list_heavy_runs(company_id, tool, limit=limit)

        stmt = (
            select(diagnostic_run_table)
            .where(diagnostic_run_table.c.company_id == company_id)
            .where(diagnostic_run_table.c.tool == tool)
            .order_by(diagnostic_run_table.c.created_at.desc())
            .limit(limit)
        )
        return [
            DiagnosticRun(
                id=row.id,
                company_id=row.company_id,
                tool=ToolId(row.tool),
                status=RunStatus.parse(row.status),
                raw_json=row.raw_json,
                created_at=row.created_at,
                source_kind=SourceKind.DIAGNOSTIC_RUNS,
            )
            for row in self.session.execute(stmt)
        ]

    def _list_heavy_runs(self, company_id: str, tool: ToolId, *, limit: int) -> list[DiagnosticRun]:
        stmt = (
            select(heavy_run_table)
            .where(heavy_run_table.c.company_id == company_id)
            .order_by(heavy_run_table.c.created_at.desc())
            .limit(limit)
        )
        runs: list[DiagnosticRun] = []
        for row in self.session.execute(stmt):
            payload = _heavy_payload(row.evidence_pack, tool)
            if payload is None:
                continue
            runs.append(
                DiagnosticRun(
                    id=row.id,
                    company_id=row.company_id,
                    tool=tool,
                    status=RunStatus.parse(row.status),
                    raw_json=payload,
                    created_at=row.created_at,
                    source_kind=SourceKind.HEAVY_RUNS,
                )
            )
        log.debug(
            "Projected %d heavy runs carrying %s payloads for company %s",
            len(runs),
            tool,
            company_id,
        )
        return runs


def _heavy_payload(evidence_pack: object, tool: ToolId) -> object:
    if not isinstance(evidence_pack, dict):
        return None
    pack = cast(dict[str, object], evidence_pack)
    for key in HEAVY_PAYLOAD_KEYS[tool]:
        payload = pack.get(key)
        if payload is not None:
            return payload
    return None


class SqlAlchemyContextGraphRepository:
    """Context graph store with optimistic, path-aware revision checks.

    ``get_graph`` remembers the per-path revisions it handed out. On save, a
    path counts as written when its revision differs from that snapshot, and
    the save conflicts only if the graph revision moved on *and* someone else
    changed a path in the same domain as one of the written paths.
    """

    def __init__(self, session: Session) -> None:
        self.session = session
        self._snapshots: dict[str, dict[FieldPath, str | None]] = {}

    def get_graph(self, company_id: str) -> ContextGraph:
        revision_id, fields = self._load(company_id)
        self._snapshots[company_id] = {path: state.revision_id for path, state in fields.items()}
        return ContextGraph(company_id=company_id, fields=fields, revision_id=revision_id)

    def save_graph(
        self,
        company_id: str,
        graph: ContextGraph,
        expected_revision_id: str | None,
    ) -> SavedGraph:
        current_revision_id, stored = self._load(company_id)
        stored_revisions = {path: state.revision_id for path, state in stored.items()}
        snapshot = self._snapshots.get(company_id)
        if snapshot is None:
            if current_revision_id != expected_revision_id:
                raise ConflictError(
                    company_id,
                    expected_revision_id=expected_revision_id,
                    current_revision_id=current_revision_id,
                    paths=graph.fields,
                )
            snapshot = stored_revisions

        written = {
            path: state
            for path, state in graph.fields.items()
            if state.revision_id != snapshot.get(path)
        }
        if current_revision_id != expected_revision_id:
            touched_domains = {
                domain_of(path)
                for path in stored_revisions.keys() | snapshot.keys()
                if stored_revisions.get(path) != snapshot.get(path)
            }
            changed = [path for path in written if domain_of(path) in touched_domains]
            if changed:
                log.warning(
                    "Stale write for company %s on %s (expected %s, found %s)",
                    company_id,
                    ", ".join(sorted(changed)),
                    expected_revision_id,
                    current_revision_id,
                )
                raise ConflictError(
                    company_id,
                    expected_revision_id=expected_revision_id,
                    current_revision_id=current_revision_id,
                    paths=changed,
                )

        revision_id = new_revision_id()
        self._write_graph_row(company_id, revision_id, exists=current_revision_id is not None)
        for path, state in written.items():
            self._write_field(company_id, path, state, exists=path in stored)
        self.session.flush()

        saved = self.get_graph(company_id)
        log.info(
            "Saved %d fields for company %s at revision %s",
            len(written),
            company_id,
            revision_id,
        )
        return SavedGraph(graph=saved, revision_id=revision_id)

    def _load(self, company_id: str) -> tuple[str | None, dict[FieldPath, FieldState]]:
        revision_id = self.session.execute(
            select(context_graph_table.c.revision_id).where(
                context_graph_table.c.company_id == company_id
            )
        ).scalar_one_or_none()
        rows = self.session.execute(
            select(context_field_table).where(context_field_table.c.company_id == company_id)
        )
        return revision_id, {row.path: _state_from_row(row) for row in rows}

    def _write_graph_row(self, company_id: str, revision_id: str, *, exists: bool) -> None:
        now = datetime.now(tz=UTC)
        if exists:
            stmt = (
                update(context_graph_table)
                .where(context_graph_table.c.company_id == company_id)
                .values(revision_id=revision_id, updated_at=now)
            )
        else:
            stmt = insert(context_graph_table).values(
                company_id=company_id, revision_id=revision_id, updated_at=now
            )
        self.session.execute(stmt)

    def _write_field(
        self, company_id: str, path: FieldPath, state: FieldState, *, exists: bool
    ) -> None:
        values = {
            "confirmed_value": state.confirmed_value,
            "proposed_value": state.proposed_value,
            "provenance": [provenance_to_dict(entry) for entry in state.provenance],
            "revision_id": state.revision_id,
        }
        if exists:
            stmt = (
                update(context_field_table)
                .where(context_field_table.c.company_id == company_id)
                .where(context_field_table.c.path == path)
                .values(**values)
            )
        else:
            stmt = insert(context_field_table).values(company_id=company_id, path=path, **values)
        self.session.execute(stmt)


# Provenance serialisation ------------------------------------------------------


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def provenance_to_dict(entry: Provenance) -> dict[str, object]:
    return {
        "source": entry.source,
        "sourceRunId": entry.source_run_id,
        "rawPath": entry.raw_path,
        "sourceKind": entry.source_kind.value if entry.source_kind else None,
        "confidence": entry.confidence,
        "runCreatedAt": _isoformat(entry.run_created_at),
        "recordedAt": _isoformat(entry.recorded_at),
        "humanConfirmed": entry.human_confirmed,
        "isInferred": entry.is_inferred,
    }


def provenance_from_dict(payload: Mapping[str, Any]) -> Provenance:
    source_kind = payload.get("sourceKind")
    confidence = payload.get("confidence")
    return Provenance(
        source=str(payload.get("source") or "unknown"),
        source_run_id=payload.get("sourceRunId"),
        raw_path=payload.get("rawPath"),
        source_kind=SourceKind(source_kind) if source_kind else None,
        confidence=float(confidence) if confidence is not None else None,
        run_created_at=_parse_datetime(payload.get("runCreatedAt")),
        recorded_at=_parse_datetime(payload.get("recordedAt")) or datetime.now(tz=UTC),
        human_confirmed=bool(payload.get("humanConfirmed", False)),
        is_inferred=bool(payload.get("isInferred", False)),
    )


def _state_from_row(row: Row[Any]) -> FieldState:
    entries = cast(list[dict[str, Any]], row.provenance or [])
    return FieldState(
        confirmed_value=row.confirmed_value,
        proposed_value=row.proposed_value,
        provenance=[provenance_from_dict(entry) for entry in entries],
        revision_id=row.revision_id,
    )
