"""Apply one pass of field candidates to a context graph.

Every candidate ends in exactly one bucket: persisted, or dropped for one of
the :class:`DropReason` values. Checks run in this order:

1. empty values are dropped (``emptyValue``);
2. paths holding a human-confirmed value are left alone (``humanConfirmed``);
3. paths outside the importing tool's domains, or outside the domain being
   imported, are dropped (``wrongDomainForField``), whether or not the path
   currently has a value;
4. a second candidate for a path already decided in this pass, or a candidate
   from a source kind that did not win the pass, is dropped (``sourcePriority``);
5. the existing proposal is compared with :func:`check_overwrite`; losing to a
   higher-ranked tool is ``domainAuthority``, losing to a primary source kind
   or a newer run is ``sourcePriority``.

The input graph is never mutated; a merged copy is returned.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from convergent.domain.model import (
    FieldState,
    Provenance,
    is_human_source,
    is_meaningful,
    new_revision_id,
    split_path,
)
from convergent.domain.priority import OverwriteReason, check_overwrite, owns_path

if TYPE_CHECKING:
    from collections.abc import Iterable

    from convergent.domain.model import (
        ContextGraph,
        FieldCandidate,
        FieldPath,
        SourceKind,
        ToolId,
    )

log = getLogger(__name__)

MAX_PROVENANCE_ENTRIES: Final = 20


class DropReason(StrEnum):
    EMPTY_VALUE = "emptyValue"
    DOMAIN_AUTHORITY = "domainAuthority"
    WRONG_DOMAIN_FOR_FIELD = "wrongDomainForField"
    SOURCE_PRIORITY = "sourcePriority"
    HUMAN_CONFIRMED = "humanConfirmed"


_OVERWRITE_DROPS: Final[dict[OverwriteReason, DropReason]] = {
    OverwriteReason.HUMAN_OVERRIDE: DropReason.HUMAN_CONFIRMED,
    OverwriteReason.LOWER_PRIORITY: DropReason.DOMAIN_AUTHORITY,
    OverwriteReason.LOWER_SOURCE_KIND: DropReason.SOURCE_PRIORITY,
    OverwriteReason.OLDER_RUN: DropReason.SOURCE_PRIORITY,
}


@dataclass(slots=True, frozen=True, kw_only=True)
class DroppedCandidate:
    candidate: FieldCandidate
    reason: DropReason
    detail: str

    @property
    def path(self) -> FieldPath:
        return self.candidate.path


@dataclass(slots=True, frozen=True, kw_only=True)
class MergeDecision:
    """Where one candidate ended up."""

    path: FieldPath
    persisted: bool
    drop_reason: DropReason | None = None
    overwrite_reason: OverwriteReason | None = None


@dataclass(slots=True, kw_only=True)
class MergeOutcome:
    graph: ContextGraph
    updated_paths: list[FieldPath] = field(default_factory=list["FieldPath"])
    dropped: list[DroppedCandidate] = field(default_factory=list["DroppedCandidate"])
    decisions: list[MergeDecision] = field(default_factory=list["MergeDecision"])

    @property
    def candidate_writes(self) -> int:
        return len(self.decisions)

    @property
    def persisted_writes(self) -> int:
        return len(self.updated_paths)

    def dropped_by_reason(self) -> dict[DropReason, int]:
        counts = Counter(item.reason for item in self.dropped)
        return {reason: counts.get(reason, 0) for reason in DropReason}


def merge_candidates(
    graph: ContextGraph,
    candidates: Iterable[FieldCandidate],
    *,
    tool: ToolId,
    winning_kind: SourceKind,
    domain: str | None = None,
    now: datetime | None = None,
) -> MergeOutcome:
    """Merge ``candidates`` produced by ``tool`` from ``winning_kind`` runs.

    With ``domain`` set, only paths inside that domain may be written.
    """

    recorded_at = now or datetime.now(tz=UTC)
    outcome = MergeOutcome(graph=graph.copy())
    decided: set[FieldPath] = set()

    def drop(candidate: FieldCandidate, reason: DropReason, detail: str) -> None:
        log.debug("Dropped %s from %s: %s (%s)", candidate.path, tool, reason, detail)
        outcome.dropped.append(DroppedCandidate(candidate=candidate, reason=reason, detail=detail))
        outcome.decisions.append(
            MergeDecision(path=candidate.path, persisted=False, drop_reason=reason)
        )

    for candidate in candidates:
        path = candidate.path
        if not is_meaningful(candidate.value):
            drop(candidate, DropReason.EMPTY_VALUE, "value is empty")
            continue

        state = outcome.graph.get(path)
        if state is not None and state.is_confirmed:
            drop(candidate, DropReason.HUMAN_CONFIRMED, "path holds a confirmed value")
            continue

        if candidate.tool is not tool or not owns_path(tool, path):
            drop(
                candidate,
                DropReason.WRONG_DOMAIN_FOR_FIELD,
                f"{candidate.tool} may not write domain {split_path(path)[0]!r}",
            )
            continue
        if domain is not None and candidate.domain != domain:
            drop(
                candidate,
                DropReason.WRONG_DOMAIN_FOR_FIELD,
                f"{path} is outside the imported domain {domain!r}",
            )
            continue

        if path in decided:
            drop(candidate, DropReason.SOURCE_PRIORITY, "path already decided in this pass")
            continue
        if candidate.source_kind is not winning_kind:
            drop(
                candidate,
                DropReason.SOURCE_PRIORITY,
                f"{candidate.source_kind} did not win this pass ({winning_kind})",
            )
            continue

        existing = state.latest if state is not None and state.has_proposal else None
        check = check_overwrite(
            path,
            existing,
            source=tool.value,
            source_kind=candidate.source_kind,
            run_created_at=candidate.run_created_at,
        )
        if not check.allowed:
            holder = existing.source if existing is not None else "unknown"
            drop(candidate, _OVERWRITE_DROPS[check.reason], f"{check.reason}: held by {holder}")
            continue

        decided.add(path)
        outcome.graph.fields[path] = _proposed_state(state, candidate, tool, recorded_at)
        outcome.updated_paths.append(path)
        outcome.decisions.append(
            MergeDecision(path=path, persisted=True, overwrite_reason=check.reason)
        )

    log.info(
        "Merged %d of %d candidates from %s for company %s",
        outcome.persisted_writes,
        outcome.candidate_writes,
        tool,
        graph.company_id,
    )
    return outcome


def _proposed_state(
    state: FieldState | None,
    candidate: FieldCandidate,
    tool: ToolId,
    recorded_at: datetime,
) -> FieldState:
    entry = Provenance(
        source=tool.value,
        source_run_id=candidate.evidence.source_run_id,
        raw_path=candidate.evidence.raw_path,
        source_kind=candidate.source_kind,
        confidence=candidate.confidence,
        run_created_at=candidate.run_created_at,
        recorded_at=recorded_at,
        is_inferred=candidate.evidence.is_inferred,
    )
    history = state.provenance if state is not None else []
    return FieldState(
        confirmed_value=state.confirmed_value if state is not None else None,
        proposed_value=candidate.value,
        provenance=[entry, *history][:MAX_PROVENANCE_ENTRIES],
        revision_id=new_revision_id(),
    )


# Human confirmation ------------------------------------------------------------


def confirm_field(
    graph: ContextGraph,
    path: FieldPath,
    value: object,
    *,
    source: str = "user",
    now: datetime | None = None,
) -> ContextGraph:
    """Return a copy of ``graph`` with ``value`` confirmed at ``path`` by a human."""

    split_path(path)
    if not is_human_source(source):
        raise ValueError(f"Only human sources may confirm fields, got {source!r}")
    if not is_meaningful(value):
        raise ValueError(f"Cannot confirm an empty value for {path}")

    updated = graph.copy()
    state = updated.get(path) or FieldState()
    entry = Provenance(
        source=source,
        recorded_at=now or datetime.now(tz=UTC),
        human_confirmed=True,
    )
    updated.fields[path] = FieldState(
        confirmed_value=value,
        proposed_value=state.proposed_value,
        provenance=[entry, *state.provenance][:MAX_PROVENANCE_ENTRIES],
        revision_id=new_revision_id(),
    )
    log.info("Confirmed %s for company %s (source %s)", path, graph.company_id, source)
    return updated


def clear_confirmation(graph: ContextGraph, path: FieldPath) -> ContextGraph:
    """Return a copy of ``graph`` with any human confirmation at ``path`` removed.

    The automated proposal and its provenance are kept, so the next import can
    update the path again.
    """

    state = graph.get(path)
    if state is None or not state.is_confirmed:
        return graph.copy()

    updated = graph.copy()
    updated.fields[path] = FieldState(
        confirmed_value=None,
        proposed_value=state.proposed_value,
        provenance=[entry for entry in state.provenance if not entry.human_confirmed],
        revision_id=new_revision_id(),
    )
    log.info("Cleared confirmation of %s for company %s", path, graph.company_id)
    return updated
