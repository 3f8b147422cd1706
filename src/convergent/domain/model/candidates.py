"""Field candidates: one proposed value for one path from one run."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from .paths import split_path
from .runs import SourceKind, ToolId

if TYPE_CHECKING:
    from .paths import FieldPath

SNIPPET_MAX_LENGTH: Final[int] = 200
DIRECT_CONFIDENCE: Final[float] = 0.75
INFERRED_CONFIDENCE: Final[float] = 0.45


class ConfidenceBand(StrEnum):
    DIRECT = "direct"
    INFERRED = "inferred"
    WEAK = "weak"


def confidence_band(confidence: float) -> ConfidenceBand:
    if confidence >= DIRECT_CONFIDENCE:
        return ConfidenceBand.DIRECT
    if confidence >= INFERRED_CONFIDENCE:
        return ConfidenceBand.INFERRED
    return ConfidenceBand.WEAK


def is_meaningful(value: object) -> bool:
    """Return whether ``value`` carries information worth persisting.

    ``0`` and ``False`` are meaningful; ``None``, blank strings and empty
    collections are not.
    """

    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return len(value) > 0
    return True


def make_snippet(value: object, *, limit: int = SNIPPET_MAX_LENGTH) -> str | None:
    """Render a short human-readable preview of ``value``."""

    if value is None:
        return None
    if isinstance(value, str):
        text = value
    else:
        try:
            text = json.dumps(value, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            text = str(value)
    return text[:limit]


@dataclass(slots=True, kw_only=True)
class Evidence:
    """Where a candidate came from, precise enough to inspect by hand."""

    source_run_id: str
    raw_path: str
    snippet: str | None = None
    is_inferred: bool = False


@dataclass(slots=True, kw_only=True)
class FieldCandidate:
    path: FieldPath
    value: object
    confidence: float
    evidence: Evidence
    tool: ToolId
    source_kind: SourceKind = SourceKind.DIAGNOSTIC_RUNS
    run_created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __post_init__(self) -> None:
        split_path(self.path)
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence out of range for {self.path}: {self.confidence}")
        if not self.evidence.raw_path:
            raise ValueError(f"Candidate for {self.path} is missing a raw path")

    @property
    def domain(self) -> str:
        return split_path(self.path)[0]

    @property
    def band(self) -> ConfidenceBand:
        return confidence_band(self.confidence)
