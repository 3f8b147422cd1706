"""Domain ownership and source priority rules.

``TOOL_DOMAINS`` says which graph domains a tool may write at all (domain
authority). ``DOMAIN_PRIORITY`` ranks sources within a domain; the first
entry is the most authoritative. Human sources outrank everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from convergent.domain.model import ToolId, domain_of, is_human_source

if TYPE_CHECKING:
    from datetime import datetime

    from convergent.domain.model import FieldPath, Provenance, SourceKind

TOOL_DOMAINS: Final[dict[ToolId, tuple[str, ...]]] = {
    ToolId.BRAND_LAB: ("brand", "productOffer", "audience"),
    ToolId.WEBSITE_LAB: ("website", "digitalInfra"),
    ToolId.COMPETITION_LAB: ("competition",),
}

# Domain a source selector resolves to a tool; the first owned domain of each tool.
DOMAIN_TOOLS: Final[dict[str, ToolId]] = {
    domains[0]: tool for tool, domains in TOOL_DOMAINS.items()
}

DOMAIN_PRIORITY: Final[dict[str, tuple[str, ...]]] = {
    "identity": ("gap_heavy", "gap_full", "gap_ia", "website_lab", "setup_wizard", "inferred"),
    "brand": ("brand_lab", "gap_heavy", "gap_full", "gap_ia", "inferred"),
    "audience": ("audience_lab", "gap_heavy", "gap_full", "gap_ia", "brand_lab", "inferred"),
    "productOffer": ("gap_heavy", "gap_full", "brand_lab", "website_lab", "gap_ia", "inferred"),
    "website": ("website_lab", "ux_lab", "gap_heavy", "gap_full", "gap_ia", "inferred"),
    "digitalInfra": ("website_lab", "gap_heavy", "gap_full", "gap_ia", "inferred"),
    "competition": ("competition_lab", "gap_heavy", "gap_full", "gap_ia", "inferred"),
    "competitive": ("gap_heavy", "gap_full", "gap_ia", "brand_lab", "inferred"),
}

HUMAN_PRIORITY: Final[int] = 1_000_000


class OverwriteReason(StrEnum):
    NO_EXISTING = "no_existing"
    HUMAN_OVERRIDE = "human_override"
    HIGHER_PRIORITY = "higher_priority"
    SAME_SOURCE_NEWER = "same_source_newer"
    SAME_PRIORITY_NEWER = "same_priority_newer"
    LOWER_PRIORITY = "lower_priority"
    OLDER_RUN = "older_run"
    LOWER_SOURCE_KIND = "lower_source_kind"


@dataclass(slots=True, frozen=True)
class PriorityCheck:
    allowed: bool
    reason: OverwriteReason


def owns_path(tool: ToolId, path: FieldPath) -> bool:
    return domain_of(path) in TOOL_DOMAINS.get(tool, ())


def source_priority(domain: str, source: str) -> int:
    """Higher is stronger; unknown sources score 0."""

    if is_human_source(source):
        return HUMAN_PRIORITY
    ranking = DOMAIN_PRIORITY.get(domain, ())
    if source not in ranking:
        return 0
    return len(ranking) - ranking.index(source)


def check_overwrite(
    path: FieldPath,
    existing: Provenance | None,
    *,
    source: str,
    source_kind: SourceKind,
    run_created_at: datetime,
) -> PriorityCheck:
    """Decide whether an automated write from ``source`` may replace ``existing``.

    Human provenance is handled by the merge engine before this is called.
    """

    if existing is None:
        return PriorityCheck(allowed=True, reason=OverwriteReason.NO_EXISTING)
    if is_human_source(existing.source) or existing.human_confirmed:
        return PriorityCheck(allowed=False, reason=OverwriteReason.HUMAN_OVERRIDE)

    domain = domain_of(path)
    existing_rank = source_priority(domain, existing.source)
    new_rank = source_priority(domain, source)
    if new_rank > existing_rank:
        return PriorityCheck(allowed=True, reason=OverwriteReason.HIGHER_PRIORITY)
    if new_rank < existing_rank:
        return PriorityCheck(allowed=False, reason=OverwriteReason.LOWER_PRIORITY)

    if existing.source_kind is not None and existing.source_kind is not source_kind:
        if source_kind.rank > existing.source_kind.rank:
            return PriorityCheck(allowed=False, reason=OverwriteReason.LOWER_SOURCE_KIND)
        return PriorityCheck(allowed=True, reason=OverwriteReason.HIGHER_PRIORITY)
    if existing.run_created_at is not None and run_created_at < existing.run_created_at:
        return PriorityCheck(allowed=False, reason=OverwriteReason.OLDER_RUN)
    if existing.source == source:
        return PriorityCheck(allowed=True, reason=OverwriteReason.SAME_SOURCE_NEWER)
    return PriorityCheck(allowed=True, reason=OverwriteReason.SAME_PRIORITY_NEWER)
