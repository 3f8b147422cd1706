"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING

from convergent.adapters.labs import default_builders
from convergent.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyConvergenceUnitOfWork,
    is_started,
    startup,
)
from convergent.config import (
    get_competition_gate_config,
    get_import_config,
    get_sanitizer_config,
)
from convergent.domain.candidates import SubjectCompany
from convergent.domain.importing import ImportResult, import_domain, supports_domain
from convergent.domain.merge import clear_confirmation, confirm_field
from convergent.domain.ports.unit_of_work import ConvergenceUnitOfWork
from convergent.domain.requirements import DEFAULT_REQUIRED_FIELDS, graph_readiness

if TYPE_CHECKING:
    from collections.abc import Mapping

    from convergent.domain.candidates import CandidateBuilder
    from convergent.domain.model import FieldPath, SavedGraph, ToolId
    from convergent.domain.requirements import Readiness

UnitOfWorkFactory = Callable[[], ConvergenceUnitOfWork]

log = getLogger(__name__)


def _ensure_started(unit_of_work_factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if unit_of_work_factory is not None:
        return unit_of_work_factory
    if not is_started():
        startup()
    return SqlAlchemyConvergenceUnitOfWork


def _configured_builders() -> dict[ToolId, CandidateBuilder]:
    return default_builders(
        sanitizer=get_sanitizer_config(),
        gates=get_competition_gate_config(),
    )


def import_company_domain(
    company_id: str,
    domain: str,
    *,
    company_name: str | None = None,
    company_domain: str | None = None,
    trace: bool | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    builders: Mapping[ToolId, CandidateBuilder] | None = None,
) -> ImportResult:
    """Import one domain for one company using the configured adapters."""

    effective_uow = _ensure_started(unit_of_work_factory)
    config = get_import_config()
    effective_trace = config.trace if trace is None else trace
    log.info(
        "Starting import: company=%s, domain=%s, trace=%s", company_id, domain, effective_trace
    )

    result = import_domain(
        effective_uow,
        company_id=company_id,
        domain=domain,
        builders=builders or _configured_builders(),
        subject=SubjectCompany(company_id=company_id, name=company_name, domain=company_domain),
        trace=effective_trace,
        run_page_limit=config.run_page_limit,
        proof_preview_limit=config.proof_preview_limit,
    )

    log.info(
        "Finished import: company=%s, domain=%s, success=%s, fields_updated=%s",
        company_id,
        domain,
        result.success,
        result.fields_updated,
    )
    return result


def company_supports_domain(
    company_id: str,
    domain: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    builders: Mapping[ToolId, CandidateBuilder] | None = None,
) -> bool:
    return supports_domain(
        _ensure_started(unit_of_work_factory),
        company_id=company_id,
        domain=domain,
        builders=builders or _configured_builders(),
        run_page_limit=get_import_config().run_page_limit,
    )


def company_readiness(
    company_id: str,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Readiness:
    """Compute readiness from the company's stored context graph."""

    with _ensure_started(unit_of_work_factory)() as uow:
        graph = uow.repositories.graphs.get_graph(company_id)
    return graph_readiness(graph, DEFAULT_REQUIRED_FIELDS)


def confirm_company_field(
    company_id: str,
    path: FieldPath,
    value: object,
    *,
    source: str = "user",
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SavedGraph:
    """Record a human-confirmed value; later imports never overwrite it."""

    with _ensure_started(unit_of_work_factory)() as uow:
        graph = uow.repositories.graphs.get_graph(company_id)
        updated = confirm_field(graph, path, value, source=source)
        saved = uow.repositories.graphs.save_graph(company_id, updated, graph.revision_id)
        uow.commit()
    return saved


def clear_company_confirmation(
    company_id: str,
    path: FieldPath,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> SavedGraph:
    with _ensure_started(unit_of_work_factory)() as uow:
        graph = uow.repositories.graphs.get_graph(company_id)
        updated = clear_confirmation(graph, path)
        saved = uow.repositories.graphs.save_graph(company_id, updated, graph.revision_id)
        uow.commit()
    return saved
