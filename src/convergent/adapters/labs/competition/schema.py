"""Pydantic models describing Competition Lab payloads (V4 and V3)."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from convergent.adapters.labs._support import blank_to_none


class CompetitionLabBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def _count_matches(value: object) -> object:
    if isinstance(value, list):
        return len(value)  # pyright: ignore[reportUnknownArgumentType]
    return value


# V4 ---------------------------------------------------------------------------


class SignalsUsed(CompetitionLabBaseModel):
    service_overlap: bool = Field(default=False, alias="serviceOverlap")
    product_overlap: bool = Field(default=False, alias="productOverlap")


class ScoredCompetitorRaw(CompetitionLabBaseModel):
    homepage_url: str | None = Field(default=None, alias="homepageUrl")
    summary: str | None = None
    signals_used: SignalsUsed | None = Field(default=None, alias="signalsUsed")

    _normalize_text = field_validator("homepage_url", "summary", mode="before")(blank_to_none)


class ScoredCompetitor(CompetitionLabBaseModel):
    name: str
    domain: str | None = None
    category: str | None = None
    overlap_score: float = Field(default=0, alias="overlapScore")
    why_this_matters: str | None = Field(default=None, alias="whyThisMatters")
    has_installation: bool = Field(default=False, alias="hasInstallation")
    has_national_reach: bool = Field(default=False, alias="hasNationalReach")
    is_major_retailer: bool = Field(default=False, alias="isMajorRetailer")
    price_positioning: str | None = Field(default=None, alias="pricePositioning")
    raw: ScoredCompetitorRaw | None = None
    removed_by_user: bool = Field(default=False, alias="removedByUser")
    promoted_by_user: bool = Field(default=False, alias="promotedByUser")

    _normalize_text = field_validator(
        "domain", "category", "why_this_matters", "price_positioning", mode="before"
    )(blank_to_none)


class ScoredCompetitors(CompetitionLabBaseModel):
    primary: list[ScoredCompetitor] = Field(default_factory=list["ScoredCompetitor"])
    contextual: list[ScoredCompetitor] = Field(default_factory=list["ScoredCompetitor"])
    alternatives: list[ScoredCompetitor] = Field(default_factory=list["ScoredCompetitor"])
    modality: str | None = None


class ModalityInference(CompetitionLabBaseModel):
    modality: str | None = None
    confidence: float | None = None
    explanation: str | None = None


class Execution(CompetitionLabBaseModel):
    status: str | None = None
    started_at: str | None = Field(default=None, alias="startedAt")
    completed_at: str | None = Field(default=None, alias="completedAt")
    error: str | None = None

    _normalize_text = field_validator("status", "error", mode="before")(blank_to_none)


class CompetitionRunV4(CompetitionLabBaseModel):
    version: Literal[4]
    status: str | None = None
    error: str | None = None
    execution: Execution = Field(default_factory=Execution)
    scored_competitors: ScoredCompetitors = Field(
        default_factory=ScoredCompetitors, alias="scoredCompetitors"
    )
    modality_inference: ModalityInference | None = Field(default=None, alias="modalityInference")

    _normalize_text = field_validator("status", "error", mode="before")(blank_to_none)

    @property
    def effective_status(self) -> str | None:
        return self.status or self.execution.status

    @property
    def effective_error(self) -> str | None:
        return self.error or self.execution.error

    @property
    def modality(self) -> str | None:
        if self.scored_competitors.modality:
            return self.scored_competitors.modality
        return self.modality_inference.modality if self.modality_inference else None


# V3 ---------------------------------------------------------------------------


class ClassificationSignals(CompetitionLabBaseModel):
    business_model_match: bool = Field(default=False, alias="businessModelMatch")
    same_market: bool = Field(default=False, alias="sameMarket")
    service_overlap: bool = Field(default=False, alias="serviceOverlap")


class Classification(CompetitionLabBaseModel):
    type: str | None = None
    confidence: float | None = None
    signals: ClassificationSignals | None = None


class CompetitorScores(CompetitionLabBaseModel):
    threat_score: float | None = Field(default=None, alias="threatScore")
    relevance_score: float | None = Field(default=None, alias="relevanceScore")


class CompetitorMetadata(CompetitionLabBaseModel):
    pricing_tier: str | None = Field(default=None, alias="pricingTier")
    service_model: str | None = Field(default=None, alias="serviceModel")
    business_model: str | None = Field(default=None, alias="businessModel")
    has_ai_capabilities: bool = Field(default=False, alias="hasAICapabilities")
    has_automation: bool = Field(default=False, alias="hasAutomation")
    service_regions: list[str] = Field(default_factory=list, alias="serviceRegions")
    tech_stack: list[str] = Field(default_factory=list, alias="techStack")

    _normalize_text = field_validator(
        "pricing_tier", "service_model", "business_model", mode="before"
    )(blank_to_none)


class CompetitorAnalysis(CompetitionLabBaseModel):
    differentiators: list[str] = Field(default_factory=list)
    why_competitor: str | None = Field(default=None, alias="whyCompetitor")

    _normalize_why = field_validator("why_competitor", mode="before")(blank_to_none)


class CompetitorV3(CompetitionLabBaseModel):
    name: str
    domain: str | None = None
    homepage_url: str | None = Field(default=None, alias="homepageUrl")
    summary: str | None = None
    category: str | None = None
    classification: Classification | None = None
    scores: CompetitorScores = Field(default_factory=CompetitorScores)
    offer_overlap_score: float | None = Field(default=None, alias="offerOverlapScore")
    jtbd_matches: int | None = Field(default=None, alias="jtbdMatches")
    metadata: CompetitorMetadata | None = None
    analysis: CompetitorAnalysis | None = None
    removed_by_user: bool = Field(default=False, alias="removedByUser")
    promoted_by_user: bool = Field(default=False, alias="promotedByUser")

    _normalize_text = field_validator(
        "domain", "homepage_url", "summary", "category", mode="before"
    )(blank_to_none)
    _normalize_matches = field_validator("jtbd_matches", mode="before")(_count_matches)


class RunSummaryV3(CompetitionLabBaseModel):
    quadrant_distribution: dict[str, int] = Field(
        default_factory=dict, alias="quadrantDistribution"
    )


class CompetitionRunV3(CompetitionLabBaseModel):
    status: str | None = None
    run_id: str | None = Field(default=None, alias="runId")
    created_at: str | None = Field(default=None, alias="createdAt")
    competitors: list[CompetitorV3] = Field(default_factory=list["CompetitorV3"])
    summary: RunSummaryV3 | None = None
    error: str | None = None

    _normalize_text = field_validator("status", "error", mode="before")(blank_to_none)
