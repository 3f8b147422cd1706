from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .paths import FieldPath


class ImpactTier(StrEnum):
    """How much a field matters to downstream strategy decisions."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(slots=True, frozen=True, kw_only=True)
class RequiredFieldSpec:
    path: FieldPath
    alternatives: tuple[FieldPath, ...] = ()
    impact_tier: ImpactTier = ImpactTier.MEDIUM
    label: str | None = None

    def __post_init__(self) -> None:
        if self.impact_tier is ImpactTier.LOW:
            raise ValueError("Required fields must be HIGH or MEDIUM impact")

    @property
    def candidate_paths(self) -> tuple[FieldPath, ...]:
        return (self.path, *self.alternatives)

    @property
    def display_label(self) -> str:
        return self.label or self.path
