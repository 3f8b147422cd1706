from __future__ import annotations

from convergent.adapters.labs import default_builders
from convergent.domain.candidates import FailureKind, SubjectCompany
from convergent.domain.model import RunStatus, SourceKind, ToolId
from convergent.domain.sources import SourceSelector
from tests.helpers.runs import FakeRunRepository, brand_payload, make_run

SUBJECT = SubjectCompany(company_id="acme", name="Acme", domain="acme.com")


def _selector(runs: FakeRunRepository, limit: int = 5) -> SourceSelector:
    return SourceSelector(runs=runs, builders=default_builders(), limit=limit)


def test_primary_kind_wins_and_fallback_is_never_queried() -> None:
    runs = FakeRunRepository(
        [
            make_run(ToolId.BRAND_LAB, brand_payload(positioning="Primary"), run_id="d1"),
            make_run(
                ToolId.BRAND_LAB,
                brand_payload(positioning="Fallback"),
                run_id="h1",
                kind=SourceKind.HEAVY_RUNS,
            ),
        ]
    )

    assert _selector(runs).supports("acme", "brand", subject=SUBJECT) is True
    assert runs.kinds_queried() == [SourceKind.DIAGNOSTIC_RUNS]


def test_select_falls_back_when_primary_is_unusable() -> None:
    runs = FakeRunRepository(
        [
            make_run(ToolId.BRAND_LAB, brand_payload(), run_id="d1"),
            make_run(
                ToolId.BRAND_LAB,
                brand_payload(positioning="Fallback"),
                run_id="h1",
                kind=SourceKind.HEAVY_RUNS,
            ),
        ]
    )

    selection = _selector(runs).select("acme", "brand", subject=SUBJECT)

    assert selection.found
    assert selection.kind is SourceKind.HEAVY_RUNS
    assert selection.run is not None and selection.run.id == "h1"
    assert selection.runs_examined == 2


def test_newest_usable_run_wins() -> None:
    runs = FakeRunRepository(
        [
            make_run(ToolId.BRAND_LAB, brand_payload(positioning="Old"), run_id="old", age_days=9),
            make_run(
                ToolId.BRAND_LAB, {"status": "running"}, run_id="new", status=RunStatus.RUNNING
            ),
            make_run(ToolId.BRAND_LAB, brand_payload(positioning="Mid"), run_id="mid", age_days=2),
        ]
    )

    selection = _selector(runs).select("acme", "brand", subject=SUBJECT)

    assert selection.run is not None
    assert selection.run.id == "mid"


def test_queries_are_page_bounded() -> None:
    runs = FakeRunRepository(
        [
            make_run(ToolId.BRAND_LAB, brand_payload(), run_id=f"r{i}", age_days=i)
            for i in range(3)
        ]
        + [make_run(ToolId.BRAND_LAB, brand_payload(positioning="Too old"), age_days=30)]
    )

    selection = _selector(runs, limit=3).select("acme", "brand", subject=SUBJECT)

    assert not selection.found
    assert selection.runs_examined == 3


def test_no_runs_reason() -> None:
    selection = _selector(FakeRunRepository()).select("acme", "brand", subject=SUBJECT)

    assert not selection.found
    assert selection.tool is ToolId.BRAND_LAB
    assert selection.reason == "No Brand Lab runs found for this company"
    assert selection.failure is None


def test_last_builder_failure_becomes_reason() -> None:
    runs = FakeRunRepository(
        [make_run(ToolId.COMPETITION_LAB, {"status": "failed", "competitors": []})]
    )

    selection = _selector(runs).select("acme", "competition", subject=SUBJECT)

    assert not selection.found
    assert selection.failure is not None
    assert selection.failure.kind is FailureKind.FAILED
    assert selection.reason == "Competition run failed"


def test_unknown_domain_is_not_supported() -> None:
    runs = FakeRunRepository()

    selection = _selector(runs).select("acme", "competitive", subject=SUBJECT)

    assert not selection.found
    assert selection.reason == "No source imports domain 'competitive'"
    assert runs.calls == []


def test_foreign_domain_values_do_not_win_the_source() -> None:
    runs = FakeRunRepository(
        [
            make_run(ToolId.WEBSITE_LAB, {"contentIntelligence": {"summary": "x"}}, run_id="d1"),
            make_run(
                ToolId.WEBSITE_LAB,
                {"websiteLab": {"siteAssessment": {"score": 64}}},
                run_id="h1",
                kind=SourceKind.HEAVY_RUNS,
            ),
        ]
    )

    selection = _selector(runs).select("acme", "website", subject=SUBJECT)

    assert selection.kind is SourceKind.HEAVY_RUNS
    assert selection.run is not None and selection.run.id == "h1"
    assert runs.kinds_queried() == [SourceKind.DIAGNOSTIC_RUNS, SourceKind.HEAVY_RUNS]


def test_run_without_values_for_domain_is_not_usable() -> None:
    runs = FakeRunRepository(
        [make_run(ToolId.WEBSITE_LAB, {"contentIntelligence": {"summary": "x"}})]
    )

    selection = _selector(runs).select("acme", "website", subject=SUBJECT)

    assert not selection.found
    assert selection.failure is None
    assert selection.reason == "No Website Lab run with usable data found"
