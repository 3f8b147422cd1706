"""Impact tiers, domain groups and specificity scores for field paths.

Classification is pure annotation: it never looks at or changes graph state,
and a path the tables do not know gets the conservative MEDIUM tier and the
``Other`` group instead of an error.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Final

from convergent.domain.model import ImpactTier

if TYPE_CHECKING:
    from collections.abc import Iterable

    from convergent.domain.model import FieldPath

DEFAULT_IMPACT_TIER: Final = ImpactTier.MEDIUM
DEFAULT_DOMAIN_GROUP: Final = "Other"
HIDDEN_SPECIFICITY_THRESHOLD: Final = 30

SUMMARY_SHAPED_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "website.executiveSummary",
        "website.websiteSummary",
        "identity.companyDescription",
        "brand.brandPerception",
        "brand.strategistView",
        "brand.brandPersonality",
    }
)

HIGH_IMPACT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "brand.positioning",
        "productOffer.valueProposition",
        "audience.primaryAudience",
        "audience.icpDescription",
        "brand.differentiators",
        "competitive.positionSummary",
        "competitive.competitors",
        "competition.primaryCompetitors",
    }
)

MEDIUM_IMPACT_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "productOffer.primaryConversionAction",
        "productOffer.primaryProducts",
        "audience.coreSegments",
        "audience.painPoints",
        "identity.businessModel",
        "performanceMedia.activeChannels",
        "operationalConstraints.minBudget",
        "operationalConstraints.maxBudget",
        "competition.marketAlternatives",
        "competition.positioningMapSummary",
    }
)

LOW_IMPACT_DOMAINS: Final[frozenset[str]] = frozenset({"website", "content", "seo"})

DOMAIN_GROUPS: Final[dict[str, str]] = {
    "identity": "Identity",
    "brand": "Brand",
    "audience": "Audience",
    "productOffer": "ProductOffer",
    "website": "Website",
    "content": "Content",
    "seo": "SEO",
    "competitive": "Competitive",
    "competition": "Competition",
    "performanceMedia": "Media",
    "operationalConstraints": "Constraints",
    "creative": "Creative",
    "digitalInfra": "Infrastructure",
}

_SUMMARY_KEY_MARKERS: Final = ("summary", "description", "narrative", "overview")
_SUMMARY_OPENINGS: Final = ("the company", "this company", "we are", "our company")

GENERIC_CLICHES: Final[tuple[str, ...]] = (
    "innovative", "seamless", "future-ready", "all-in-one", "growth", "streamline",
    "cutting-edge", "best-in-class", "world-class", "next-generation", "game-changing",
    "revolutionary", "transform", "empower", "leverage", "synergy", "holistic", "scalable",
    "robust", "comprehensive", "state-of-the-art", "leading", "trusted", "premier",
    "solutions", "drive results", "maximize", "optimize", "unlock", "reimagine",
    "adapt and grow", "changing market", "thrive", "dynamic", "agile", "disrupt", "paradigm",
    "best practices", "turnkey", "end-to-end", "full-stack", "one-stop", "frictionless",
    "supercharge", "accelerate growth", "digital transformation",
)  # fmt: skip

VAGUE_AUDIENCE_TERMS: Final[tuple[str, ...]] = (
    "businesses", "companies", "organizations", "enterprises", "teams", "professionals",
    "users", "customers", "clients", "stakeholders", "decision makers", "leaders",
)  # fmt: skip

CATEGORY_TERMS: Final[tuple[str, ...]] = (
    "customer support platform", "website builder", "payroll software", "crm",
    "email marketing", "marketing automation", "project management", "analytics platform",
    "data warehouse", "payment processing", "hr software", "accounting software",
    "inventory management", "e-commerce platform", "help desk", "live chat",
    "scheduling software", "booking system", "survey tool", "form builder",
    "video conferencing", "collaboration tool", "document management", "design tool",
    "no-code platform", "low-code", "api platform", "developer tools", "security platform",
    "compliance software",
)  # fmt: skip

SEGMENT_TERMS: Final[tuple[str, ...]] = (
    "mid-market", "enterprise", "smb", "small business", "startup", "agency", "agencies",
    "freelancer", "creator", "ecommerce brand", "e-commerce brand", "d2c",
    "direct-to-consumer", "b2b saas", "b2c", "healthcare", "fintech", "edtech",
    "real estate", "retail", "manufacturing", "logistics", "hospitality",
    "professional services", "legal", "accounting firm", "marketing agency",
    "design agency", "consulting",
)  # fmt: skip

INDUSTRY_TERMS: Final[tuple[str, ...]] = (
    "saas", "b2b", "b2c", "ecommerce", "e-commerce", "fintech", "healthtech", "edtech", "martech",
)  # fmt: skip
ROLE_TERMS: Final[tuple[str, ...]] = (
    "cto", "cmo", "cfo", "developer", "marketer", "founder", "engineer", "designer",
)  # fmt: skip
PRICING_TERMS: Final[tuple[str, ...]] = (
    "free tier", "free plan", "starter", "pro plan", "enterprise plan", "pricing", "/month",
    "/year", "$ ",
)  # fmt: skip

_DIGITS_RE: Final = re.compile(r"\d")


class FieldCategory(StrEnum):
    DERIVED_NARRATIVE = "derivedNarrative"
    CORE_POSITIONING = "corePositioning"
    TACTICAL = "tactical"
    EVIDENCE = "evidence"


@dataclass(slots=True, frozen=True)
class SpecificityResult:
    score: int
    reasons: tuple[str, ...]


@dataclass(slots=True, frozen=True, kw_only=True)
class FieldClassification:
    path: FieldPath
    impact_tier: ImpactTier
    domain_group: str
    category: FieldCategory
    specificity: SpecificityResult | None = None
    hidden_by_default: bool = False


def _domain(path: FieldPath) -> str:
    return path.split(".", 1)[0]


def impact_tier(path: FieldPath) -> ImpactTier:
    if path in SUMMARY_SHAPED_FIELDS:
        return ImpactTier.LOW
    if path in HIGH_IMPACT_FIELDS:
        return ImpactTier.HIGH
    if path in MEDIUM_IMPACT_FIELDS:
        return ImpactTier.MEDIUM
    if _domain(path) in LOW_IMPACT_DOMAINS:
        return ImpactTier.LOW
    return DEFAULT_IMPACT_TIER


def domain_group(path: FieldPath) -> str:
    return DOMAIN_GROUPS.get(_domain(path), DEFAULT_DOMAIN_GROUP)


def is_summary_shaped(path: FieldPath, value: object = None) -> bool:
    if path in SUMMARY_SHAPED_FIELDS:
        return True
    key = path.lower()
    if any(marker in key for marker in _SUMMARY_KEY_MARKERS):
        return True
    if isinstance(value, str) and len(value) > 300:
        return value.lower().startswith(_SUMMARY_OPENINGS)
    return False


def field_category(path: FieldPath, value: object = None) -> FieldCategory:
    if is_summary_shaped(path, value):
        return FieldCategory.DERIVED_NARRATIVE
    if path in HIGH_IMPACT_FIELDS:
        return FieldCategory.CORE_POSITIONING
    if path in MEDIUM_IMPACT_FIELDS:
        return FieldCategory.TACTICAL
    return FieldCategory.EVIDENCE


def specificity_score(
    text: str | None,
    *,
    company_name: str | None = None,
    anchor_count: int | None = None,
) -> SpecificityResult:
    """Score how specific (0-100) a piece of text is.

    ``anchor_count=None`` means anchors are unknown and neither penalised nor
    rewarded; ``0`` is penalised as ungrounded.
    """

    if not text or not text.strip():
        return SpecificityResult(score=0, reasons=("Empty or invalid text",))

    lower = text.lower()
    reasons: list[str] = []
    score = 70

    if anchor_count == 0:
        score -= 20
        reasons.append("No evidence anchors (ungrounded proposal)")

    cliches = [term for term in GENERIC_CLICHES if term in lower]
    reasons.extend(f'Contains cliche: "{term}"' for term in cliches[:3])
    score -= min(30, len(cliches) * 3)

    vague = [term for term in VAGUE_AUDIENCE_TERMS if term in lower]
    reasons.extend(f'Vague audience term: "{term}"' for term in vague[:2])
    score -= min(20, len(vague) * 5)

    if len(text) < 50:
        score -= 15
        reasons.append("Text too short (< 50 chars)")
    if len(text) > 500:
        score -= 5
        reasons.append("Text too long (> 500 chars)")
    if not _DIGITS_RE.search(text):
        score -= 10
        reasons.append("No specific numbers or metrics")

    if company_name and company_name.lower() in lower:
        score += 10
    if any(term in lower for term in CATEGORY_TERMS):
        score += 10
    if any(term in lower for term in SEGMENT_TERMS):
        score += 10
    if any(term in lower for term in INDUSTRY_TERMS):
        score += 5
    if any(term in lower for term in ROLE_TERMS):
        score += 5
    if any(term in lower for term in PRICING_TERMS):
        score += 5
    if anchor_count:
        score += 15
        if anchor_count >= 2:
            score += 5

    score = max(0, min(100, score))
    if not reasons and score < 70:
        reasons.append("Low overall specificity")
    return SpecificityResult(score=score, reasons=tuple(reasons))


def _as_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str, ensure_ascii=False)


def classify(
    path: FieldPath,
    value: object = None,
    *,
    company_name: str | None = None,
    anchor_count: int | None = None,
) -> FieldClassification:
    tier = impact_tier(path)
    specificity = (
        specificity_score(_as_text(value), company_name=company_name, anchor_count=anchor_count)
        if value is not None
        else None
    )
    hidden = tier is ImpactTier.LOW or (
        specificity is not None and specificity.score < HIDDEN_SPECIFICITY_THRESHOLD
    )
    return FieldClassification(
        path=path,
        impact_tier=tier,
        domain_group=domain_group(path),
        category=field_category(path, value),
        specificity=specificity,
        hidden_by_default=hidden,
    )


_TIER_ORDER: Final = {ImpactTier.HIGH: 0, ImpactTier.MEDIUM: 1, ImpactTier.LOW: 2}


def classify_paths(
    paths: Iterable[FieldPath],
    values: dict[FieldPath, object] | None = None,
    *,
    company_name: str | None = None,
) -> list[FieldClassification]:
    """Classify ``paths`` and order them most decision-relevant first."""

    lookup = values or {}
    classified = [
        classify(path, lookup.get(path), company_name=company_name) for path in set(paths)
    ]
    return sorted(classified, key=lambda item: (_TIER_ORDER[item.impact_tier], item.path))
