"""Import one domain's facts for one company.

An import is a single read-merge-write inside one unit of work: select the
winning source, merge its candidates into the stored graph, save with an
optimistic revision check, then annotate and recompute readiness. "No data"
comes back as an unsuccessful :class:`ImportResult`; only infrastructure
errors and :class:`~convergent.domain.errors.ConflictError` are raised, and
the unit of work rolls back on the way out.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from convergent.config.importing import DEFAULT_PROOF_PREVIEW_LIMIT, DEFAULT_RUN_PAGE_LIMIT
from convergent.domain.candidates import SubjectCompany
from convergent.domain.classifier import classify_paths
from convergent.domain.merge import merge_candidates
from convergent.domain.proof import ProofRecorder
from convergent.domain.requirements import (
    DEFAULT_REQUIRED_FIELDS,
    graph_readiness,
    validate_specs,
)
from convergent.domain.sources import SourceSelector

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from convergent.domain.candidates import CandidateBuilder
    from convergent.domain.classifier import FieldClassification
    from convergent.domain.model import FieldPath, RequiredFieldSpec, SourceKind, ToolId
    from convergent.domain.ports import ConvergenceUnitOfWork
    from convergent.domain.proof import ProofRecord
    from convergent.domain.requirements import Readiness

type UnitOfWorkFactory = Callable[[], ConvergenceUnitOfWork]

log = getLogger(__name__)


class ImportFailureKind(StrEnum):
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    EXTRACTION_FAILED = "EXTRACTION_FAILED"


@dataclass(slots=True, kw_only=True)
class ImportResult:
    success: bool
    company_id: str
    domain: str
    updated_paths: list[FieldPath] = field(default_factory=list["FieldPath"])
    source_run_ids: list[str] = field(default_factory=list[str])
    source_kind: SourceKind | None = None
    tool: ToolId | None = None
    reason: str | None = None
    failure_kind: ImportFailureKind | None = None
    revision_id: str | None = None
    classifications: list[FieldClassification] = field(
        default_factory=list["FieldClassification"]
    )
    readiness: Readiness | None = None
    proof: ProofRecord | None = None

    @property
    def fields_updated(self) -> int:
        return len(self.updated_paths)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "success": self.success,
            "fieldsUpdated": self.fields_updated,
            "updatedPaths": list(self.updated_paths),
            "sourceRunIds": list(self.source_run_ids),
        }
        if not self.success:
            payload["reason"] = self.reason
            payload["failureKind"] = self.failure_kind.value if self.failure_kind else None
        if self.proof is not None:
            payload["proof"] = self.proof.to_dict()
        return payload


def import_domain(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    company_id: str,
    domain: str,
    builders: Mapping[ToolId, CandidateBuilder],
    subject: SubjectCompany | None = None,
    trace: bool = False,
    run_page_limit: int = DEFAULT_RUN_PAGE_LIMIT,
    proof_preview_limit: int = DEFAULT_PROOF_PREVIEW_LIMIT,
    required_fields: Sequence[RequiredFieldSpec] = DEFAULT_REQUIRED_FIELDS,
) -> ImportResult:
    """Import ``domain`` for ``company_id`` from the highest-priority usable source."""

    validate_specs(required_fields)
    effective_subject = subject or SubjectCompany(company_id=company_id)
    recorder = ProofRecorder(preview_limit=proof_preview_limit) if trace else None

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        selector = SourceSelector(
            runs=repositories.runs, builders=builders, limit=run_page_limit
        )
        selection = selector.select(company_id, domain, subject=effective_subject)

        if not selection.found:
            failure_kind = (
                ImportFailureKind.EXTRACTION_FAILED
                if selection.failure is not None
                else ImportFailureKind.SOURCE_UNAVAILABLE
            )
            log.info(
                "Import of %s for company %s found no usable source: %s",
                domain,
                company_id,
                selection.reason,
            )
            if recorder is not None and selection.reason:
                recorder.record_error(selection.reason)
            return ImportResult(
                success=False,
                company_id=company_id,
                domain=domain,
                tool=selection.tool,
                reason=selection.reason,
                failure_kind=failure_kind,
                proof=recorder.finish() if recorder is not None else None,
            )

        build = selection.build
        run = selection.run
        tool = selection.tool
        kind = selection.kind
        if build is None or run is None or tool is None or kind is None:
            raise RuntimeError("Source selection reported a match without a build")

        if recorder is not None:
            recorder.record_source(build, run.id)
            recorder.record_candidates(build.candidates)

        graph = repositories.graphs.get_graph(company_id)
        outcome = merge_candidates(
            graph, build.candidates, tool=tool, winning_kind=kind, domain=domain
        )
        if recorder is not None:
            recorder.record_merge(outcome)

        final_graph = outcome.graph
        revision_id = graph.revision_id
        if outcome.updated_paths:
            saved = repositories.graphs.save_graph(company_id, outcome.graph, graph.revision_id)
            uow.commit()
            final_graph = saved.graph
            revision_id = saved.revision_id

    values = {
        path: final_graph.fields[path].proposed_value for path in outcome.updated_paths
    }
    classifications = classify_paths(
        outcome.updated_paths, values, company_name=effective_subject.name
    )
    readiness = graph_readiness(final_graph, required_fields)

    log.info(
        "Imported %s for company %s from %s run %s: %d fields updated, readiness %d%%",
        domain,
        company_id,
        kind,
        run.id,
        len(outcome.updated_paths),
        readiness.percent,
    )
    return ImportResult(
        success=True,
        company_id=company_id,
        domain=domain,
        updated_paths=list(outcome.updated_paths),
        source_run_ids=[run.id],
        source_kind=kind,
        tool=tool,
        revision_id=revision_id,
        classifications=classifications,
        readiness=readiness,
        proof=recorder.finish() if recorder is not None else None,
    )


def supports_domain(
    unit_of_work_factory: UnitOfWorkFactory,
    *,
    company_id: str,
    domain: str,
    builders: Mapping[ToolId, CandidateBuilder],
    subject: SubjectCompany | None = None,
    run_page_limit: int = DEFAULT_RUN_PAGE_LIMIT,
) -> bool:
    """Whether an import of ``domain`` would find a usable source right now."""

    with unit_of_work_factory() as uow:
        selector = SourceSelector(
            runs=uow.repositories.runs, builders=builders, limit=run_page_limit
        )
        return selector.supports(
            company_id, domain, subject=subject or SubjectCompany(company_id=company_id)
        )
