"""Candidate builders for the diagnostic labs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .brand import BrandLabBuilder
from .competition import CompetitionLabBuilder
from .website import WebsiteLabBuilder

if TYPE_CHECKING:
    from convergent.config import CompetitionGateConfig, SanitizerConfig
    from convergent.domain.candidates import CandidateBuilder
    from convergent.domain.model import ToolId


def default_builders(
    *,
    sanitizer: SanitizerConfig | None = None,
    gates: CompetitionGateConfig | None = None,
) -> dict[ToolId, CandidateBuilder]:
    """Return one builder per tool, keyed by tool id."""

    competition = CompetitionLabBuilder()
    if sanitizer is not None:
        competition.sanitizer = sanitizer
    if gates is not None:
        competition.gates = gates
    builders: tuple[CandidateBuilder, ...] = (BrandLabBuilder(), WebsiteLabBuilder(), competition)
    return {builder.tool: builder for builder in builders}


__all__ = [
    "BrandLabBuilder",
    "CompetitionLabBuilder",
    "WebsiteLabBuilder",
    "default_builders",
]
