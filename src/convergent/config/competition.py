"""Quality gates applied to Competition Lab output."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MIN_THREAT_SCORE = 25
DEFAULT_MIN_RELEVANCE_SCORE = 20
DEFAULT_MIN_OFFER_OVERLAP_SCORE = 0.2
DEFAULT_MIN_JTBD_MATCHES = 1
DEFAULT_PRIMARY_CAP = 5
DEFAULT_ALTERNATIVES_CAP = 10


@dataclass(frozen=True, slots=True)
class CompetitionGateConfig:
    min_threat_score: float = DEFAULT_MIN_THREAT_SCORE
    min_relevance_score: float = DEFAULT_MIN_RELEVANCE_SCORE
    min_offer_overlap_score: float = DEFAULT_MIN_OFFER_OVERLAP_SCORE
    min_jtbd_matches: int = DEFAULT_MIN_JTBD_MATCHES
    primary_cap: int = DEFAULT_PRIMARY_CAP
    alternatives_cap: int = DEFAULT_ALTERNATIVES_CAP


def get_competition_gate_config() -> CompetitionGateConfig:
    return CompetitionGateConfig()
