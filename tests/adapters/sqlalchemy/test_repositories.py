"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session, sessionmaker

from convergent.adapters.sqlalchemy.mappings import diagnostic_run_table
from convergent.adapters.sqlalchemy.repositories import (
    SqlAlchemyContextGraphRepository,
    SqlAlchemyDiagnosticRunRepository,
    provenance_from_dict,
    provenance_to_dict,
)
from convergent.domain.errors import ConflictError
from convergent.domain.model import (
    ContextGraph,
    FieldState,
    Provenance,
    RunStatus,
    SourceKind,
    ToolId,
    new_revision_id,
)
from tests.helpers.runs import BASE_TIME, brand_payload, make_run

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _proposal(value: object, *, source: str = "brand_lab") -> FieldState:
    return FieldState(
        proposed_value=value,
        provenance=[
            Provenance(
                source=source,
                source_run_id="run-1",
                raw_path="findings.positioning",
                source_kind=SourceKind.DIAGNOSTIC_RUNS,
                confidence=0.8,
                run_created_at=BASE_TIME,
                recorded_at=BASE_TIME + timedelta(minutes=1),
            )
        ],
        revision_id=new_revision_id(),
    )


def test_list_runs_returns_newest_first_within_limit(sqlite_session: Session) -> None:
    repository = SqlAlchemyDiagnosticRunRepository(sqlite_session)
    for run_id, age in (("old", 5), ("new", 0), ("mid", 2)):
        repository.add(make_run(ToolId.BRAND_LAB, brand_payload(), run_id=run_id, age_days=age))
    repository.add(make_run(ToolId.WEBSITE_LAB, {}, run_id="other-tool"))
    repository.add(make_run(ToolId.BRAND_LAB, {}, run_id="other-company", company_id="globex"))
    sqlite_session.commit()

    runs = repository.list_runs(
        "acme", ToolId.BRAND_LAB, limit=2, kind=SourceKind.DIAGNOSTIC_RUNS
    )

    assert [run.id for run in runs] == ["new", "mid"]
    assert runs[0].raw_json == brand_payload()
    assert runs[0].created_at == BASE_TIME
    assert runs[0].status is RunStatus.COMPLETED
    assert runs[0].source_kind is SourceKind.DIAGNOSTIC_RUNS


def test_list_runs_with_zero_limit_is_empty(sqlite_session: Session) -> None:
    repository = SqlAlchemyDiagnosticRunRepository(sqlite_session)
    repository.add(make_run(ToolId.BRAND_LAB, brand_payload()))

    runs = repository.list_runs("acme", ToolId.BRAND_LAB, limit=0, kind=SourceKind.HEAVY_RUNS)

    assert runs == []


def test_unknown_stored_status_reads_as_unknown(sqlite_session: Session) -> None:
    repository = SqlAlchemyDiagnosticRunRepository(sqlite_session)
    repository.add(make_run(ToolId.BRAND_LAB, None))
    sqlite_session.execute(update(diagnostic_run_table).values(status="exploded"))

    (run,) = repository.list_runs(
        "acme", ToolId.BRAND_LAB, limit=1, kind=SourceKind.DIAGNOSTIC_RUNS
    )

    assert run.status is RunStatus.UNKNOWN
    assert run.raw_json is None


def test_heavy_runs_are_projected_per_tool(sqlite_session: Session) -> None:
    repository = SqlAlchemyDiagnosticRunRepository(sqlite_session)
    repository.add_heavy_run(
        run_id="heavy-brand",
        company_id="acme",
        evidence_pack={"brandLab": brand_payload(positioning="From heavy")},
        created_at=BASE_TIME,
    )
    repository.add_heavy_run(
        run_id="heavy-website",
        company_id="acme",
        evidence_pack={"websiteLabV4": {"pages": [1]}, "websiteLab": {"pages": [2]}},
        created_at=BASE_TIME - timedelta(days=1),
    )
    repository.add_heavy_run(
        run_id="heavy-empty", company_id="acme", evidence_pack=None, created_at=BASE_TIME
    )

    brand = repository.list_runs("acme", ToolId.BRAND_LAB, limit=5, kind=SourceKind.HEAVY_RUNS)
    website = repository.list_runs(
        "acme", ToolId.WEBSITE_LAB, limit=5, kind=SourceKind.HEAVY_RUNS
    )

    assert [run.id for run in brand] == ["heavy-brand"]
    assert brand[0].tool is ToolId.BRAND_LAB
    assert brand[0].source_kind is SourceKind.HEAVY_RUNS
    assert brand[0].raw_json == brand_payload(positioning="From heavy")
    assert [run.raw_json for run in website] == [{"pages": [1]}]


def test_add_rejects_heavy_runs(sqlite_session: Session) -> None:
    repository = SqlAlchemyDiagnosticRunRepository(sqlite_session)

    with pytest.raises(ValueError, match="add_heavy_run"):
        repository.add(make_run(ToolId.BRAND_LAB, {}, kind=SourceKind.HEAVY_RUNS))


def test_provenance_dict_round_trip() -> None:
    entry = _proposal("x").provenance[0]

    payload = provenance_to_dict(entry)

    assert payload["sourceKind"] == "diagnostic_runs"
    assert payload["runCreatedAt"] == BASE_TIME.isoformat()
    assert provenance_from_dict(payload) == entry


def test_missing_graph_is_empty(sqlite_session: Session) -> None:
    graph = SqlAlchemyContextGraphRepository(sqlite_session).get_graph("acme")

    assert graph == ContextGraph(company_id="acme")


def test_graph_round_trip_keeps_values_and_provenance(sqlite_session: Session) -> None:
    repository = SqlAlchemyContextGraphRepository(sqlite_session)
    graph = repository.get_graph("acme")
    graph.fields["brand.positioning"] = _proposal("Premium B2B solution")
    graph.fields["competition.primaryCompetitors"] = _proposal(
        [{"name": "Globex", "threatScore": 80.0}], source="competition_lab"
    )
    graph.fields["brand.tagline"] = FieldState(
        confirmed_value="Payroll, done.",
        provenance=[Provenance(source="user", recorded_at=BASE_TIME, human_confirmed=True)],
        revision_id=new_revision_id(),
    )

    saved = repository.save_graph("acme", graph, None)
    sqlite_session.commit()

    reloaded = SqlAlchemyContextGraphRepository(sqlite_session).get_graph("acme")
    assert reloaded.revision_id == saved.revision_id
    assert saved.graph.revision_id == saved.revision_id
    assert reloaded.fields == graph.fields
    assert reloaded.fields["brand.tagline"].is_confirmed


def test_stale_save_without_snapshot_conflicts(sqlite_session: Session) -> None:
    repository = SqlAlchemyContextGraphRepository(sqlite_session)
    graph = repository.get_graph("acme")
    graph.fields["brand.positioning"] = _proposal("First")
    repository.save_graph("acme", graph, None)

    stranger = SqlAlchemyContextGraphRepository(sqlite_session)
    with pytest.raises(ConflictError) as excinfo:
        stranger.save_graph("acme", ContextGraph(company_id="acme"), None)

    assert excinfo.value.expected_revision_id is None


def test_only_changed_paths_are_written(sqlite_session: Session) -> None:
    repository = SqlAlchemyContextGraphRepository(sqlite_session)
    graph = repository.get_graph("acme")
    graph.fields["brand.positioning"] = _proposal("First")
    graph.fields["brand.tagline"] = _proposal("Go")
    first = repository.save_graph("acme", graph, None)

    graph = first.graph.copy()
    unchanged_revision = graph.fields["brand.tagline"].revision_id
    graph.fields["brand.positioning"] = _proposal("Second")
    second = repository.save_graph("acme", graph, first.revision_id)

    assert second.revision_id != first.revision_id
    assert second.graph.fields["brand.positioning"].proposed_value == "Second"
    assert second.graph.fields["brand.tagline"].revision_id == unchanged_revision


def _sessions(engine: Engine) -> tuple[Session, Session]:
    factory = sessionmaker(bind=engine, future=True)
    return factory(), factory()


def test_concurrent_write_to_same_path_conflicts(sqlite_file_engine: Engine) -> None:
    first_session, second_session = _sessions(sqlite_file_engine)
    first = SqlAlchemyContextGraphRepository(first_session)
    second = SqlAlchemyContextGraphRepository(second_session)
    try:
        first_graph = first.get_graph("acme")
        second_graph = second.get_graph("acme")

        first_graph.fields["brand.positioning"] = _proposal("From brand lab")
        first.save_graph("acme", first_graph, first_graph.revision_id)
        first_session.commit()

        second_graph.fields["brand.positioning"] = _proposal("Stale writer")
        with pytest.raises(ConflictError) as excinfo:
            second.save_graph("acme", second_graph, second_graph.revision_id)
        second_session.rollback()
    finally:
        first_session.close()
        second_session.close()

    assert excinfo.value.paths == ("brand.positioning",)


def test_concurrent_writes_to_same_domain_conflict(sqlite_file_engine: Engine) -> None:
    first_session, second_session = _sessions(sqlite_file_engine)
    first = SqlAlchemyContextGraphRepository(first_session)
    second = SqlAlchemyContextGraphRepository(second_session)
    try:
        first_graph = first.get_graph("acme")
        second_graph = second.get_graph("acme")

        first_graph.fields["brand.positioning"] = _proposal("From brand lab")
        first.save_graph("acme", first_graph, first_graph.revision_id)
        first_session.commit()

        second_graph.fields["brand.tagline"] = _proposal("Stale tagline")
        with pytest.raises(ConflictError) as excinfo:
            second.save_graph("acme", second_graph, second_graph.revision_id)
        second_session.rollback()

        stored = SqlAlchemyContextGraphRepository(second_session).get_graph("acme")
    finally:
        first_session.close()
        second_session.close()

    assert excinfo.value.paths == ("brand.tagline",)
    assert set(stored.fields) == {"brand.positioning"}


def test_concurrent_writes_to_disjoint_domains_both_land(sqlite_file_engine: Engine) -> None:
    first_session, second_session = _sessions(sqlite_file_engine)
    first = SqlAlchemyContextGraphRepository(first_session)
    second = SqlAlchemyContextGraphRepository(second_session)
    try:
        first_graph = first.get_graph("acme")
        second_graph = second.get_graph("acme")

        first_graph.fields["brand.positioning"] = _proposal("From brand lab")
        first_saved = first.save_graph("acme", first_graph, first_graph.revision_id)
        first_session.commit()

        second_graph.fields["competition.threatSummary"] = _proposal(
            "Globex leads", source="competition_lab"
        )
        second_saved = second.save_graph("acme", second_graph, second_graph.revision_id)
        second_session.commit()
    finally:
        first_session.close()
        second_session.close()

    assert second_saved.revision_id != first_saved.revision_id
    assert set(second_saved.graph.fields) == {
        "brand.positioning",
        "competition.threatSummary",
    }
