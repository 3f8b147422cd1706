from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.orm import Session

from convergent.adapters.sqlalchemy.repositories import SqlAlchemyDiagnosticRunRepository
from convergent.app import (
    clear_company_confirmation,
    company_readiness,
    company_supports_domain,
    confirm_company_field,
    import_company_domain,
)
from convergent.domain.model import ToolId
from convergent.domain.requirements import ReadinessMode
from tests.helpers.runs import (
    brand_payload,
    competition_v3_payload,
    make_run,
    v3_competitor,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.engine import Engine

    from convergent.adapters.sqlalchemy.unit_of_work import SqlAlchemyConvergenceUnitOfWork

    Factory = Callable[[], SqlAlchemyConvergenceUnitOfWork]


@pytest.fixture
def seeded_factory(sqlite_engine: Engine, sqlite_unit_of_work: Factory) -> Factory:
    with Session(sqlite_engine) as session:
        runs = SqlAlchemyDiagnosticRunRepository(session)
        runs.add(
            make_run(
                ToolId.BRAND_LAB,
                brand_payload(
                    positioning="Premium B2B payroll",
                    valueProposition="Payroll in minutes",
                    primaryAudience="Finance teams at mid-size firms",
                ),
                run_id="brand-1",
            )
        )
        runs.add(
            make_run(
                ToolId.COMPETITION_LAB,
                competition_v3_payload(
                    [
                        v3_competitor("Globex", threat=80),
                        v3_competitor("Acme Payroll", domain="acme.com", threat=90),
                    ]
                ),
                run_id="competition-1",
            )
        )
        session.commit()
    return sqlite_unit_of_work


def test_import_persists_and_reports_readiness(seeded_factory: Factory) -> None:
    result = import_company_domain("acme", "brand", unit_of_work_factory=seeded_factory)

    assert result.success
    assert result.source_run_ids == ["brand-1"]
    assert result.updated_paths == ["brand.positioning"]
    readiness = company_readiness("acme", unit_of_work_factory=seeded_factory)
    assert readiness == result.readiness
    assert readiness.mode is ReadinessMode.DEGRADED


def test_competition_import_rejects_self(seeded_factory: Factory) -> None:
    result = import_company_domain(
        "acme",
        "competition",
        company_name="Acme",
        company_domain="acme.com",
        unit_of_work_factory=seeded_factory,
    )

    assert result.success
    with seeded_factory() as uow:
        graph = uow.repositories.graphs.get_graph("acme")
    primary = graph.fields["competition.primaryCompetitors"].proposed_value
    assert isinstance(primary, list)
    assert [item["name"] for item in primary] == ["Globex"]


def test_trace_defaults_to_environment(
    seeded_factory: Factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("CONVERGENT_TRACE", "1")

    result = import_company_domain("acme", "brand", unit_of_work_factory=seeded_factory)

    assert result.proof is not None
    assert result.proof.source_run_ids == ["brand-1"]
    assert import_company_domain(
        "acme", "brand", trace=False, unit_of_work_factory=seeded_factory
    ).proof is None


def test_missing_domain_source(seeded_factory: Factory) -> None:
    assert company_supports_domain("acme", "brand", unit_of_work_factory=seeded_factory)
    assert not company_supports_domain("acme", "website", unit_of_work_factory=seeded_factory)

    result = import_company_domain("acme", "website", unit_of_work_factory=seeded_factory)

    assert not result.success
    assert result.reason == "No Website Lab runs found for this company"


def test_confirmation_blocks_and_clear_releases(seeded_factory: Factory) -> None:
    confirm_company_field(
        "acme", "brand.positioning", "Our own words", unit_of_work_factory=seeded_factory
    )

    blocked = import_company_domain(
        "acme", "brand", trace=True, unit_of_work_factory=seeded_factory
    )
    assert "brand.positioning" not in blocked.updated_paths
    assert blocked.proof is not None
    assert blocked.proof.dropped_by_reason["humanConfirmed"] == 1

    clear_company_confirmation("acme", "brand.positioning", unit_of_work_factory=seeded_factory)
    released = import_company_domain("acme", "brand", unit_of_work_factory=seeded_factory)

    assert "brand.positioning" in released.updated_paths
    with seeded_factory() as uow:
        state = uow.repositories.graphs.get_graph("acme").fields["brand.positioning"]
    assert state.confirmed_value is None
    assert state.proposed_value == "Premium B2B payroll"


def test_confirm_rejects_automated_source(seeded_factory: Factory) -> None:
    with pytest.raises(ValueError, match="human sources"):
        confirm_company_field(
            "acme",
            "brand.positioning",
            "x",
            source="brand_lab",
            unit_of_work_factory=seeded_factory,
        )
