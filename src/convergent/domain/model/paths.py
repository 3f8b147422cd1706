"""Field path helpers and the registry of modelled paths."""

from __future__ import annotations

from typing import Final

type FieldPath = str


def split_path(path: FieldPath) -> tuple[str, str]:
    """Return ``(domain, field)`` for a ``domain.field`` path."""

    domain, sep, field_name = path.partition(".")
    if not sep or not domain or not field_name:
        raise ValueError(f"Invalid field path: {path!r}")
    return domain, field_name


def domain_of(path: FieldPath) -> str:
    return split_path(path)[0]


# Paths any component of the engine knows how to produce or reason about.
FIELD_REGISTRY: Final[frozenset[FieldPath]] = frozenset(
    {
        # identity
        "identity.businessName",
        "identity.industry",
        "identity.businessModel",
        "identity.companyDescription",
        # brand
        "brand.positioning",
        "brand.differentiators",
        "brand.toneOfVoice",
        "brand.tagline",
        "brand.strengths",
        "brand.weaknesses",
        "brand.messagingPillars",
        "brand.competitivePosition",
        "brand.visualIdentitySummary",
        "brand.brandPerception",
        "brand.brandPersonality",
        "brand.strategistView",
        # productOffer
        "productOffer.valueProposition",
        "productOffer.primaryProducts",
        "productOffer.primaryConversionAction",
        "productOffer.differentiators",
        # audience
        "audience.primaryAudience",
        "audience.icpDescription",
        "audience.coreSegments",
        "audience.painPoints",
        # website
        "website.websiteScore",
        "website.executiveSummary",
        "website.websiteSummary",
        "website.conversionBlocks",
        "website.quickWins",
        "website.recommendations",
        "website.funnelHealthScore",
        "website.pageCount",
        "website.trustScore",
        # content
        "content.contentSummary",
        # digitalInfra
        "digitalInfra.techStack",
        # performanceMedia / constraints
        "performanceMedia.activeChannels",
        "operationalConstraints.minBudget",
        "operationalConstraints.maxBudget",
        # competitive (legacy) and competition (successor)
        "competitive.competitors",
        "competitive.positionSummary",
        "competition.primaryCompetitors",
        "competition.marketAlternatives",
        "competition.differentiationAxes",
        "competition.positioningMapSummary",
        "competition.threatSummary",
    }
)


def is_modelled(path: FieldPath) -> bool:
    return path in FIELD_REGISTRY
