"""Competitor profiles produced by competition-shaped payloads."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Final


class CompetitorKind(StrEnum):
    """Classification a diagnostic run assigned to a competitor."""

    DIRECT = "direct"
    PARTIAL = "partial"
    FRACTIONAL = "fractional"
    PLATFORM = "platform"
    INTERNAL = "internal"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> CompetitorKind:
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class CompetitorRole(StrEnum):
    CORE = "core"
    SECONDARY = "secondary"
    ALTERNATIVE = "alternative"


KIND_TO_ROLE: Final[dict[CompetitorKind, CompetitorRole]] = {
    CompetitorKind.DIRECT: CompetitorRole.CORE,
    CompetitorKind.PARTIAL: CompetitorRole.SECONDARY,
}


def role_for_kind(kind: CompetitorKind) -> CompetitorRole:
    return KIND_TO_ROLE.get(kind, CompetitorRole.ALTERNATIVE)


@dataclass(slots=True, kw_only=True)
class CompetitorProfile:
    name: str
    domain: str | None = None
    positioning_text: str | None = None
    role: CompetitorRole = CompetitorRole.ALTERNATIVE
    threat_score: float | None = None
    removed_by_user: bool = False
    promoted_by_user: bool = False
    kind: CompetitorKind = CompetitorKind.UNKNOWN
    relevance_score: float | None = None
    confidence: float | None = None
    url: str | None = None
    category: str | None = None
    raw_path: str | None = None

    def to_value(self, *, label: str | None = None) -> dict[str, object]:
        """Serialise for storage in the context graph."""

        value: dict[str, object] = {"name": self.name, "role": self.role.value}
        if self.domain:
            value["domain"] = self.domain
        if self.url:
            value["url"] = self.url
        if self.kind is not CompetitorKind.UNKNOWN:
            value["type"] = self.kind.value
        if label:
            value["label"] = label
        if self.threat_score is not None:
            value["threatScore"] = self.threat_score
        if self.positioning_text:
            value["summary"] = self.positioning_text
        return value
