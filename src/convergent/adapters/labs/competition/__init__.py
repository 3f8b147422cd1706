"""Competition Lab candidate builder."""

from __future__ import annotations

from .schema import CompetitionRunV3, CompetitionRunV4
from .translator import (
    CompetitionLabBuilder,
    ExcludedCompetitor,
    ExclusionReason,
    GatedCompetitors,
    build_competition_candidates,
    gate_v3,
    gate_v4,
)

__all__ = [
    "CompetitionLabBuilder",
    "CompetitionRunV3",
    "CompetitionRunV4",
    "ExcludedCompetitor",
    "ExclusionReason",
    "GatedCompetitors",
    "build_competition_candidates",
    "gate_v3",
    "gate_v4",
]
