"""Pydantic models describing Website Lab payload roots."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from convergent.adapters.labs._support import blank_to_none


class WebsiteLabBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SiteAssessment(WebsiteLabBaseModel):
    score: float | None = None
    executive_summary: str | None = Field(default=None, alias="executiveSummary")
    conversion_blocks: list[object] = Field(default_factory=list, alias="conversionBlocks")

    _normalize_summary = field_validator("executive_summary", mode="before")(blank_to_none)


class SiteGraph(WebsiteLabBaseModel):
    pages: list[object] = Field(default_factory=list)


class CtaIntelligence(WebsiteLabBaseModel):
    primary_cta: str | None = Field(default=None, alias="primaryCta")

    _normalize_cta = field_validator("primary_cta", mode="before")(blank_to_none)


class TrustAnalysis(WebsiteLabBaseModel):
    trust_score: float | None = Field(default=None, alias="trustScore")


class ContentIntelligence(WebsiteLabBaseModel):
    summary: str | None = None

    _normalize_summary = field_validator("summary", mode="before")(blank_to_none)


class Persona(WebsiteLabBaseModel):
    name: str | None = None

    _normalize_name = field_validator("name", mode="before")(blank_to_none)


class WebsiteLabResult(WebsiteLabBaseModel):
    """Fields the convergence engine reads from a located Website Lab root."""

    status: str | None = None
    site_assessment: SiteAssessment | None = Field(default=None, alias="siteAssessment")
    site_graph: SiteGraph | None = Field(default=None, alias="siteGraph")
    website_score: float | None = Field(default=None, alias="websiteScore")
    executive_summary: str | None = Field(default=None, alias="executiveSummary")
    quick_wins: list[object] = Field(default_factory=list, alias="quickWins")
    recommendations: list[object] = Field(default_factory=list)
    funnel_health_score: float | None = Field(default=None, alias="funnelHealthScore")
    cta_intelligence: CtaIntelligence | None = Field(default=None, alias="ctaIntelligence")
    trust_analysis: TrustAnalysis | None = Field(default=None, alias="trustAnalysis")
    content_intelligence: ContentIntelligence | None = Field(
        default=None, alias="contentIntelligence"
    )
    tech_stack: list[str] = Field(default_factory=list, alias="techStack")
    personas: list[Persona] = Field(default_factory=list)

    _normalize_text = field_validator("status", "executive_summary", mode="before")(
        blank_to_none
    )
