"""Check whether a company has enough grounded facts for strategy work."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from convergent.domain.errors import ConfigurationGap
from convergent.domain.model import ImpactTier, RequiredFieldSpec, is_modelled

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from convergent.domain.model import ContextGraph, FieldPath

log = getLogger(__name__)

FULL_MODE_MAX_MISSING: Final = 2

DEFAULT_REQUIRED_FIELDS: Final[tuple[RequiredFieldSpec, ...]] = (
    RequiredFieldSpec(
        path="brand.positioning", impact_tier=ImpactTier.HIGH, label="Brand positioning"
    ),
    RequiredFieldSpec(
        path="productOffer.valueProposition",
        impact_tier=ImpactTier.HIGH,
        label="Value proposition",
    ),
    RequiredFieldSpec(
        path="audience.primaryAudience",
        alternatives=("audience.icpDescription",),
        impact_tier=ImpactTier.HIGH,
        label="Primary audience",
    ),
    RequiredFieldSpec(
        path="competitive.competitors",
        alternatives=("competition.primaryCompetitors",),
        impact_tier=ImpactTier.HIGH,
        label="Competitors",
    ),
    RequiredFieldSpec(
        path="competitive.positionSummary",
        alternatives=("competition.positioningMapSummary",),
        impact_tier=ImpactTier.MEDIUM,
        label="Competitive position",
    ),
    RequiredFieldSpec(
        path="brand.differentiators",
        alternatives=("productOffer.differentiators",),
        impact_tier=ImpactTier.MEDIUM,
        label="Differentiators",
    ),
    RequiredFieldSpec(
        path="productOffer.primaryConversionAction",
        impact_tier=ImpactTier.MEDIUM,
        label="Primary conversion action",
    ),
    RequiredFieldSpec(
        path="identity.businessModel", impact_tier=ImpactTier.MEDIUM, label="Business model"
    ),
)


class SatisfactionMechanism(StrEnum):
    CONFIRMED = "confirmed"
    PROPOSED = "proposed"


class ReadinessMode(StrEnum):
    FULL = "FULL"
    DEGRADED = "DEGRADED"


@dataclass(slots=True, frozen=True, kw_only=True)
class RequirementResult:
    spec: RequiredFieldSpec
    satisfied: bool
    mechanism: SatisfactionMechanism | None = None
    matched_path: FieldPath | None = None


@dataclass(slots=True, frozen=True, kw_only=True)
class Readiness:
    percent: int
    mode: ReadinessMode
    missing: tuple[RequiredFieldSpec, ...] = ()
    results: tuple[RequirementResult, ...] = ()
    block_reason: str | None = None

    @property
    def missing_paths(self) -> tuple[FieldPath, ...]:
        return tuple(spec.path for spec in self.missing)

    def to_dict(self) -> dict[str, object]:
        return {
            "percent": self.percent,
            "mode": self.mode.value,
            "missing": [
                {
                    "path": spec.path,
                    "label": spec.display_label,
                    "impactTier": spec.impact_tier.value,
                }
                for spec in self.missing
            ],
            "satisfied": [
                {
                    "path": result.spec.path,
                    "mechanism": result.mechanism.value if result.mechanism else None,
                    "matchedPath": result.matched_path,
                }
                for result in self.results
                if result.satisfied
            ],
            "blockReason": self.block_reason,
        }


def validate_specs(specs: Iterable[RequiredFieldSpec]) -> None:
    """Raise :class:`ConfigurationGap` if any spec names a path the engine does not model."""

    unknown = [
        path for spec in specs for path in spec.candidate_paths if not is_modelled(path)
    ]
    if unknown:
        raise ConfigurationGap(unknown)


def _check(
    spec: RequiredFieldSpec,
    confirmed: frozenset[FieldPath],
    proposed: frozenset[FieldPath],
) -> RequirementResult:
    for mechanism, paths in (
        (SatisfactionMechanism.CONFIRMED, confirmed),
        (SatisfactionMechanism.PROPOSED, proposed),
    ):
        for path in spec.candidate_paths:
            if path in paths:
                return RequirementResult(
                    spec=spec, satisfied=True, mechanism=mechanism, matched_path=path
                )
    return RequirementResult(spec=spec, satisfied=False)


def check_requirements(
    specs: Iterable[RequiredFieldSpec],
    confirmed_paths: Iterable[FieldPath],
    proposed_paths: Iterable[FieldPath],
) -> list[RequirementResult]:
    """Evaluate each spec; a confirmed match anywhere wins over a proposed one."""

    confirmed = frozenset(confirmed_paths)
    proposed = frozenset(proposed_paths)
    return [_check(spec, confirmed, proposed) for spec in specs]


def compute_readiness(results: Sequence[RequirementResult]) -> Readiness:
    if not results:
        return Readiness(percent=100, mode=ReadinessMode.FULL)

    missing = tuple(result.spec for result in results if not result.satisfied)
    satisfied = len(results) - len(missing)
    percent = round(satisfied / len(results) * 100)
    critical = [spec for spec in missing if spec.impact_tier is ImpactTier.HIGH]
    full = not critical and len(missing) < FULL_MODE_MAX_MISSING
    block_reason = None
    if critical:
        labels = ", ".join(spec.display_label for spec in critical)
        block_reason = f"{len(critical)} critical inputs missing: {labels}"
    elif not full:
        labels = ", ".join(spec.display_label for spec in missing)
        block_reason = f"{len(missing)} inputs missing: {labels}"
    return Readiness(
        percent=percent,
        mode=ReadinessMode.FULL if full else ReadinessMode.DEGRADED,
        missing=missing,
        results=tuple(results),
        block_reason=block_reason,
    )


def graph_readiness(
    graph: ContextGraph, specs: Sequence[RequiredFieldSpec] = DEFAULT_REQUIRED_FIELDS
) -> Readiness:
    """Validate ``specs`` and compute readiness from the graph's current state."""

    validate_specs(specs)
    readiness = compute_readiness(
        check_requirements(specs, graph.confirmed_paths(), graph.proposed_paths())
    )
    log.debug(
        "Readiness for company %s: %d%% (%s)", graph.company_id, readiness.percent, readiness.mode
    )
    return readiness
