"""Translate Competition Lab runs into competition.* candidates.

Competitors are read from the newest payload shape present (V4 scored tiers,
else V3 classified competitors), sanitised against the subject company and
agency vocabulary, then quality-gated into a capped primary set and a capped
market-alternatives set. Only those two sets feed the derived summaries.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from convergent.adapters.labs._support import as_mapping, candidate, run_status_failure
from convergent.config.competition import CompetitionGateConfig
from convergent.config.sanitizer import SanitizerConfig
from convergent.domain.candidates import (
    AttemptedMapping,
    BuildResult,
    DebugBundle,
    FailureKind,
    MappingSkipReason,
    top_keys,
)
from convergent.domain.model import (
    CompetitorKind,
    CompetitorProfile,
    RunStatus,
    ToolId,
    is_meaningful,
    role_for_kind,
)
from convergent.domain.sanitizer import sanitize_competitors

from .schema import CompetitionRunV3, CompetitionRunV4, CompetitorV3, ScoredCompetitor

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from convergent.domain.candidates import SubjectCompany
    from convergent.domain.model import DiagnosticRun, FieldCandidate, FieldPath
    from convergent.domain.sanitizer import SanitizationResult

log = getLogger(__name__)

EXTRACTION_PATH_V4: Final = "competitionRunV4"
EXTRACTION_PATH_V3: Final = "competitionRunV3"

PRIMARY_PATH: Final = "competition.primaryCompetitors"
ALTERNATIVES_PATH: Final = "competition.marketAlternatives"
AXES_PATH: Final = "competition.differentiationAxes"
POSITIONING_PATH: Final = "competition.positioningMapSummary"
THREAT_PATH: Final = "competition.threatSummary"

# (V3, V4) confidence per target path
CONFIDENCES: Final[dict[FieldPath, tuple[float, float]]] = {
    PRIMARY_PATH: (0.85, 0.86),
    ALTERNATIVES_PATH: (0.65, 0.65),
    AXES_PATH: (0.55, 0.6),
    POSITIONING_PATH: (0.7, 0.72),
    THREAT_PATH: (0.75, 0.78),
}

CATEGORY_NEIGHBOR: Final = "Category Neighbor"
ALTERNATIVE_LABELS: Final[dict[CompetitorKind, str]] = {
    CompetitorKind.FRACTIONAL: "Fractional Executive",
    CompetitorKind.PLATFORM: "Platform/Tool",
    CompetitorKind.INTERNAL: "Internal Alternative",
    CompetitorKind.PARTIAL: CATEGORY_NEIGHBOR,
}

NO_COMPETITORS_MESSAGE: Final = "No Competition Lab run with competitors found"

_AXIS_KEYWORDS: Final[tuple[tuple[tuple[str, ...], str], ...]] = (
    (("price", "cost"), "pricing"),
    (("easy", "simple"), "ease-of-use"),
    (("integrat",), "integrations"),
    (("support", "service"), "support"),
    (("feature",), "features"),
    (("enterprise",), "enterprise-focus"),
    (("small", "smb"), "smb-focus"),
)
_WHY_AXIS_LABELS: Final = frozenset({"pricing", "ease-of-use", "integrations"})


class ExclusionReason(StrEnum):
    TYPE_EXCLUDED = "TYPE_EXCLUDED"
    LOW_THREAT_SCORE = "LOW_THREAT_SCORE"
    LOW_RELEVANCE_SCORE = "LOW_RELEVANCE_SCORE"
    CAP_EXCEEDED = "CAP_EXCEEDED"
    USER_REMOVED = "USER_REMOVED"


@dataclass(slots=True, frozen=True, kw_only=True)
class ExcludedCompetitor:
    name: str
    kind: CompetitorKind
    reason: ExclusionReason
    threat_score: float | None = None
    relevance_score: float | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "type": self.kind.value,
            "reason": self.reason.value,
            "threatScore": self.threat_score,
            "relevanceScore": self.relevance_score,
        }


@dataclass(slots=True, kw_only=True)
class GatedCompetitors:
    """Outcome of quality gating over sanitised competitors."""

    primary: list[CompetitorProfile] = field(default_factory=list["CompetitorProfile"])
    alternatives: list[tuple[CompetitorProfile, str]] = field(
        default_factory=list["tuple[CompetitorProfile, str]"]
    )
    excluded: list[ExcludedCompetitor] = field(default_factory=list["ExcludedCompetitor"])


@dataclass(slots=True)
class CompetitionLabBuilder:
    """Candidate builder for Competition Lab runs."""

    tool: ToolId = ToolId.COMPETITION_LAB
    sanitizer: SanitizerConfig = field(default_factory=SanitizerConfig)
    gates: CompetitionGateConfig = field(default_factory=CompetitionGateConfig)

    def __call__(self, run: DiagnosticRun, *, subject: SubjectCompany) -> BuildResult:
        return build_competition_candidates(
            run, subject=subject, sanitizer=self.sanitizer, gates=self.gates
        )


# Profiles -----------------------------------------------------------------------


def _v3_profile(record: CompetitorV3, index: int) -> CompetitorProfile:
    classification = record.classification
    kind = CompetitorKind.parse(classification.type if classification else None)
    why = record.analysis.why_competitor if record.analysis else None
    return CompetitorProfile(
        name=record.name.strip(),
        domain=record.domain,
        url=record.homepage_url,
        positioning_text=record.summary or why,
        kind=kind,
        role=role_for_kind(kind),
        threat_score=record.scores.threat_score,
        relevance_score=record.scores.relevance_score,
        confidence=classification.confidence if classification else None,
        category=record.category,
        removed_by_user=record.removed_by_user,
        promoted_by_user=record.promoted_by_user,
        raw_path=f"competitors[{index}]",
    )


def _v4_profile(record: ScoredCompetitor, kind: CompetitorKind, raw_path: str) -> CompetitorProfile:
    raw = record.raw
    return CompetitorProfile(
        name=record.name.strip(),
        domain=record.domain,
        url=raw.homepage_url if raw else None,
        positioning_text=record.why_this_matters or (raw.summary if raw else None),
        kind=kind,
        role=role_for_kind(kind),
        threat_score=record.overlap_score,
        category=record.category,
        removed_by_user=record.removed_by_user,
        promoted_by_user=record.promoted_by_user,
        raw_path=raw_path,
    )


# Gating -------------------------------------------------------------------------


def meets_quality_threshold(profile: CompetitorProfile, gates: CompetitionGateConfig) -> bool:
    return (profile.threat_score or 0) >= gates.min_threat_score or (
        profile.relevance_score or 0
    ) >= gates.min_relevance_score


def qualifies_via_signals(record: CompetitorV3, gates: CompetitionGateConfig) -> bool:
    """Whether a partial competitor carries enough overlap to count as direct."""

    signals = record.classification.signals if record.classification else None
    if signals is None or not (signals.business_model_match and signals.same_market):
        return False
    return (
        signals.service_overlap
        or (record.offer_overlap_score or 0) >= gates.min_offer_overlap_score
        or (record.jtbd_matches or 0) >= gates.min_jtbd_matches
    )


def _excluded(profile: CompetitorProfile, reason: ExclusionReason) -> ExcludedCompetitor:
    return ExcludedCompetitor(
        name=profile.name,
        kind=profile.kind,
        reason=reason,
        threat_score=profile.threat_score,
        relevance_score=profile.relevance_score,
    )


def _quality_key(profile: CompetitorProfile) -> tuple[bool, float, float, float]:
    return (
        profile.promoted_by_user,
        profile.threat_score or 0,
        profile.relevance_score or 0,
        profile.confidence or 0,
    )


def _alternative_key(item: tuple[CompetitorProfile, str]) -> float:
    profile = item[0]
    return (profile.relevance_score or 0) + (profile.threat_score or 0)


def _cap(
    gated: GatedCompetitors, gates: CompetitionGateConfig, *, sort: bool
) -> GatedCompetitors:
    primary = sorted(gated.primary, key=_quality_key, reverse=True) if sort else gated.primary
    alternatives = (
        sorted(gated.alternatives, key=_alternative_key, reverse=True)
        if sort
        else gated.alternatives
    )
    excluded = list(gated.excluded)
    excluded.extend(
        _excluded(profile, ExclusionReason.CAP_EXCEEDED)
        for profile in primary[gates.primary_cap :]
    )
    excluded.extend(
        _excluded(profile, ExclusionReason.CAP_EXCEEDED)
        for profile, _ in alternatives[gates.alternatives_cap :]
    )
    return GatedCompetitors(
        primary=primary[: gates.primary_cap],
        alternatives=alternatives[: gates.alternatives_cap],
        excluded=excluded,
    )


def gate_v3(
    accepted: Sequence[CompetitorProfile],
    records: dict[int, CompetitorV3],
    gates: CompetitionGateConfig,
) -> GatedCompetitors:
    gated = GatedCompetitors()
    for profile in accepted:
        if profile.removed_by_user:
            gated.excluded.append(_excluded(profile, ExclusionReason.USER_REMOVED))
            continue
        if profile.promoted_by_user:
            gated.primary.append(profile)
            continue
        meets = meets_quality_threshold(profile, gates)
        if profile.kind is CompetitorKind.DIRECT:
            if meets:
                gated.primary.append(profile)
            elif (profile.threat_score or 0) < gates.min_threat_score:
                gated.excluded.append(_excluded(profile, ExclusionReason.LOW_THREAT_SCORE))
            else:
                gated.excluded.append(_excluded(profile, ExclusionReason.LOW_RELEVANCE_SCORE))
        elif profile.kind is CompetitorKind.PARTIAL:
            if meets and qualifies_via_signals(records[id(profile)], gates):
                gated.primary.append(profile)
            else:
                gated.alternatives.append((profile, CATEGORY_NEIGHBOR))
        elif profile.kind in ALTERNATIVE_LABELS:
            gated.alternatives.append((profile, ALTERNATIVE_LABELS[profile.kind]))
        else:
            gated.excluded.append(_excluded(profile, ExclusionReason.TYPE_EXCLUDED))
    return _cap(gated, gates, sort=True)


def gate_v4(
    accepted: Sequence[CompetitorProfile], gates: CompetitionGateConfig
) -> GatedCompetitors:
    """V4 tiers are already ranked upstream; only user flags and caps apply."""

    gated = GatedCompetitors()
    for profile in accepted:
        if profile.removed_by_user:
            gated.excluded.append(_excluded(profile, ExclusionReason.USER_REMOVED))
        elif profile.kind is CompetitorKind.DIRECT or profile.promoted_by_user:
            gated.primary.append(profile)
        else:
            gated.alternatives.append(
                (profile, ALTERNATIVE_LABELS.get(profile.kind, CATEGORY_NEIGHBOR))
            )
    return _cap(gated, gates, sort=False)


# Summaries ----------------------------------------------------------------------


def _format_score(score: float) -> str:
    return f"{score:g}"


def v3_differentiation_axes(records: Iterable[CompetitorV3]) -> list[str]:
    axes: dict[str, None] = {}
    for record in records:
        metadata = record.metadata
        if metadata is not None:
            if metadata.pricing_tier:
                axes.setdefault("pricing")
            if metadata.service_model:
                axes.setdefault("service model")
            if metadata.business_model:
                axes.setdefault("business model")
            if metadata.has_ai_capabilities:
                axes.setdefault("AI capabilities")
            if metadata.has_automation:
                axes.setdefault("automation")
            if metadata.service_regions:
                axes.setdefault("geography")
            if metadata.tech_stack:
                axes.setdefault("technology")
        analysis = record.analysis
        if analysis is None:
            continue
        for text in (item.lower() for item in analysis.differentiators[:5]):
            for keywords, axis in _AXIS_KEYWORDS:
                if any(keyword in text for keyword in keywords):
                    axes.setdefault(axis)
        if analysis.why_competitor:
            why = analysis.why_competitor.lower()
            for keywords, axis in _AXIS_KEYWORDS:
                if axis in _WHY_AXIS_LABELS and any(keyword in why for keyword in keywords):
                    axes.setdefault(axis)
    return list(axes)


def v4_differentiation_axes(records: Iterable[ScoredCompetitor]) -> list[str]:
    axes: dict[str, None] = {}
    for record in records:
        if record.has_installation:
            axes.setdefault("installation")
        if record.has_national_reach:
            axes.setdefault("national-reach")
        if record.is_major_retailer:
            axes.setdefault("retail-presence")
        if record.price_positioning and record.price_positioning != "unknown":
            axes.setdefault("pricing")
        signals = record.raw.signals_used if record.raw else None
        if signals is not None and signals.service_overlap:
            axes.setdefault("service-model")
        if signals is not None and signals.product_overlap:
            axes.setdefault("product-overlap")
    return list(axes)


def v3_positioning_summary(
    primary: Sequence[CompetitorProfile],
    neighbors: Sequence[CompetitorProfile],
    direct_threats: int,
) -> str | None:
    parts: list[str] = []
    if primary:
        parts.append(f"Direct competitors: {', '.join(p.name for p in primary[:3])}")
    if neighbors:
        parts.append(f"Category neighbors: {', '.join(p.name for p in neighbors[:2])}")
    if direct_threats > 0:
        parts.append(f"{direct_threats} direct threats in competitive landscape")
    return ". ".join(parts) if parts else None


def v3_threat_summary(
    primary: Sequence[CompetitorProfile],
    records: dict[int, CompetitorV3],
    gates: CompetitionGateConfig,
) -> str | None:
    threats = [p for p in primary if (p.threat_score or 0) >= gates.min_threat_score][:3]
    if not threats:
        return None
    parts: list[str] = []
    for profile in threats:
        record = records[id(profile)]
        why = (record.analysis.why_competitor if record.analysis else None) or record.summary or ""
        score = _format_score(profile.threat_score or 0)
        parts.append(f"{profile.name} (threat: {score}%): {why[:80]}")
    return "; ".join(parts)


def v4_positioning_summary(
    primary: Sequence[CompetitorProfile], contextual: Sequence[CompetitorProfile]
) -> str | None:
    parts: list[str] = []
    if primary:
        parts.append(f"Primary: {', '.join(p.name for p in primary[:4])}")
    if contextual:
        parts.append(f"Contextual: {', '.join(p.name for p in contextual[:3])}")
    return " • ".join(parts) if parts else None


def v4_threat_summary(primary: Sequence[CompetitorProfile], modality: str | None) -> str | None:
    if not primary:
        return None
    top = ", ".join(
        f"{p.name} ({round(p.threat_score or 0)} overlap)" for p in primary[:3]
    )
    return f"{top} are the top direct threats. Modality: {modality or 'Unknown modality'}."


# Build --------------------------------------------------------------------------


def _decode(raw: object) -> object:
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Competition Lab payload is not valid JSON")
            return None
    return raw


def _payload_status(run: DiagnosticRun, payload_status: str | None) -> DiagnosticRun:
    """Fold the payload's own status into the run when the store says completed."""

    if run.status not in (RunStatus.COMPLETED, RunStatus.UNKNOWN) or payload_status is None:
        return run
    status = RunStatus.parse(payload_status)
    if status in (RunStatus.FAILED, RunStatus.PENDING, RunStatus.RUNNING):
        return replace(run, status=status)
    return run


def _sanitizer_stats(sanitized: SanitizationResult) -> dict[str, object]:
    return {
        "selfRejected": [item.competitor.name for item in sanitized.self_rejected],
        "agencyRejected": [item.competitor.name for item in sanitized.agency_rejected],
        "borderline": [item.competitor.name for item in sanitized.borderline],
    }


def _filtering_stats(
    profiles: Sequence[CompetitorProfile],
    sanitized: SanitizationResult,
    gated: GatedCompetitors,
    gates: CompetitionGateConfig,
) -> dict[str, object]:
    bucket_counts = {kind.value: 0 for kind in CompetitorKind}
    for profile in profiles:
        bucket_counts[profile.kind.value] += 1
    bucket_counts["total"] = len(profiles)
    return {
        "bucketCounts": bucket_counts,
        "sanitizer": _sanitizer_stats(sanitized),
        "afterFiltering": {
            "primaryCompetitors": len(gated.primary),
            "marketAlternatives": len(gated.alternatives),
        },
        "excluded": [item.to_dict() for item in gated.excluded],
        "thresholds": {
            "minThreatScore": gates.min_threat_score,
            "minRelevanceScore": gates.min_relevance_score,
            "minOfferOverlapScore": gates.min_offer_overlap_score,
            "minJtbdMatches": gates.min_jtbd_matches,
            "primaryCap": gates.primary_cap,
            "alternativesCap": gates.alternatives_cap,
        },
    }


@dataclass(slots=True)
class _CandidateSink:
    run: DiagnosticRun
    version_index: int
    candidates: list[FieldCandidate] = field(default_factory=list["FieldCandidate"])
    attempted: list[AttemptedMapping] = field(default_factory=list["AttemptedMapping"])

    def add(
        self, path: FieldPath, value: object, raw_path: str, *, is_inferred: bool = False
    ) -> None:
        record = AttemptedMapping(path=path)
        self.attempted.append(record)
        if is_meaningful(value):
            record.found = True
        else:
            record.reason = MappingSkipReason.EMPTY_VALUE
        self.candidates.append(
            candidate(
                self.run,
                path,
                value,
                confidence=CONFIDENCES[path][self.version_index],
                raw_path=raw_path,
                is_inferred=is_inferred,
            )
        )


def _finish(
    run: DiagnosticRun,
    extraction_path: str,
    keys: tuple[str, ...],
    sink: _CandidateSink,
    debug: DebugBundle,
    sanitized: SanitizationResult,
) -> BuildResult:
    if not any(is_meaningful(item.value) for item in sink.candidates):
        log.info("Competition Lab run %s has no candidates after quality filtering", run.id)
        result = BuildResult.failed(
            extraction_path,
            FailureKind.NO_FIELDS,
            "No candidates could be extracted after quality filtering",
            top_level_keys=keys,
            debug=debug,
        )
        result.competitors = sanitized
        return result
    log.debug("Competition Lab run %s produced %d candidates", run.id, len(sink.candidates))
    return BuildResult(
        extraction_path=extraction_path,
        candidates=sink.candidates,
        raw_keys_found=len(keys),
        top_level_keys=keys,
        debug=debug,
        competitors=sanitized,
    )


def _build_v4(
    run: DiagnosticRun,
    payload: CompetitionRunV4,
    keys: tuple[str, ...],
    *,
    subject: SubjectCompany,
    sanitizer: SanitizerConfig,
    gates: CompetitionGateConfig,
) -> BuildResult:
    tiers = payload.scored_competitors
    records: dict[int, ScoredCompetitor] = {}
    profiles: list[CompetitorProfile] = []
    for tier_name, tier, kind in (
        ("primary", tiers.primary, CompetitorKind.DIRECT),
        ("contextual", tiers.contextual, CompetitorKind.PARTIAL),
        ("alternatives", tiers.alternatives, CompetitorKind.PLATFORM),
    ):
        for index, record in enumerate(tier):
            profile = _v4_profile(record, kind, f"scoredCompetitors.{tier_name}[{index}]")
            records[id(profile)] = record
            profiles.append(profile)

    if not profiles:
        return BuildResult.failed(
            EXTRACTION_PATH_V4,
            FailureKind.NO_COMPETITORS,
            NO_COMPETITORS_MESSAGE,
            top_level_keys=keys,
        )

    sanitized = sanitize_competitors(profiles, subject, sanitizer)
    gated = gate_v4(sanitized.accepted, gates)
    contextual = [p for p, _ in gated.alternatives if p.kind is CompetitorKind.PARTIAL]

    sink = _CandidateSink(run=run, version_index=1)
    sink.add(
        PRIMARY_PATH,
        [p.to_value() for p in gated.primary],
        "competitionV4.scoredCompetitors.primary",
    )
    sink.add(
        ALTERNATIVES_PATH,
        [p.to_value(label=label) for p, label in gated.alternatives],
        "competitionV4.scoredCompetitors.contextual|alternatives",
    )
    sink.add(
        AXES_PATH,
        v4_differentiation_axes(records[id(p)] for p in (*gated.primary, *contextual)),
        "competitionV4.scoredCompetitors.signalsUsed",
        is_inferred=True,
    )
    sink.add(
        POSITIONING_PATH,
        v4_positioning_summary(gated.primary, contextual),
        "competitionV4.reduced.tiers",
    )
    sink.add(
        THREAT_PATH,
        v4_threat_summary(gated.primary, payload.modality),
        "competitionV4.reduced.tiers.primary",
    )

    debug = DebugBundle(
        root_top_keys=keys,
        sample_paths_found={
            "scoredCompetitors": True,
            "execution": payload.execution.status is not None,
            "modalityInference": payload.modality_inference is not None,
        },
        record_counts={
            "primary": len(tiers.primary),
            "contextual": len(tiers.contextual),
            "alternatives": len(tiers.alternatives),
        },
        attempted_mappings=sink.attempted,
        filtering_stats=_filtering_stats(profiles, sanitized, gated, gates),
    )
    return _finish(run, EXTRACTION_PATH_V4, keys, sink, debug, sanitized)


def _build_v3(
    run: DiagnosticRun,
    payload: CompetitionRunV3,
    keys: tuple[str, ...],
    *,
    subject: SubjectCompany,
    sanitizer: SanitizerConfig,
    gates: CompetitionGateConfig,
) -> BuildResult:
    records: dict[int, CompetitorV3] = {}
    profiles: list[CompetitorProfile] = []
    for index, record in enumerate(payload.competitors):
        profile = _v3_profile(record, index)
        records[id(profile)] = record
        profiles.append(profile)

    if not profiles:
        return BuildResult.failed(
            EXTRACTION_PATH_V3,
            FailureKind.NO_COMPETITORS,
            NO_COMPETITORS_MESSAGE,
            top_level_keys=keys,
        )

    sanitized = sanitize_competitors(profiles, subject, sanitizer)
    gated = gate_v3(sanitized.accepted, records, gates)
    neighbors = [p for p, label in gated.alternatives if label == CATEGORY_NEIGHBOR]
    direct_and_partial = [
        records[id(p)]
        for p in (*gated.primary, *neighbors)
        if p.kind in (CompetitorKind.DIRECT, CompetitorKind.PARTIAL)
    ]
    direct_threats = (
        payload.summary.quadrant_distribution.get("direct-threat", 0) if payload.summary else 0
    )

    sink = _CandidateSink(run=run, version_index=0)
    sink.add(
        PRIMARY_PATH,
        [p.to_value() for p in gated.primary],
        "competitors[type=direct|partial, qualityGated=true]",
    )
    sink.add(
        ALTERNATIVES_PATH,
        [p.to_value(label=label) for p, label in gated.alternatives],
        "competitors[type=fractional|platform|internal|partial]",
    )
    sink.add(
        AXES_PATH,
        v3_differentiation_axes(direct_and_partial),
        "competitors[type=direct|partial].metadata, analysis.differentiators",
        is_inferred=True,
    )
    sink.add(
        POSITIONING_PATH,
        v3_positioning_summary(gated.primary, neighbors, direct_threats),
        "competitors[type=direct, qualityGated=true]",
    )
    sink.add(
        THREAT_PATH,
        v3_threat_summary(gated.primary, records, gates),
        "competitors[type=direct, qualityGated=true].scores.threatScore",
    )

    debug = DebugBundle(
        root_top_keys=keys,
        sample_paths_found={
            "competitors": True,
            "status": payload.status is not None,
            "summary": payload.summary is not None,
            "runId": payload.run_id is not None,
        },
        record_counts={
            "competitors": len(profiles),
            "withUrls": sum(1 for p in profiles if p.url),
        },
        attempted_mappings=sink.attempted,
        filtering_stats=_filtering_stats(profiles, sanitized, gated, gates),
    )
    return _finish(run, EXTRACTION_PATH_V3, keys, sink, debug, sanitized)


def build_competition_candidates(
    run: DiagnosticRun | None,
    *,
    subject: SubjectCompany,
    sanitizer: SanitizerConfig | None = None,
    gates: CompetitionGateConfig | None = None,
) -> BuildResult:
    if run is None:
        return BuildResult.failed(
            EXTRACTION_PATH_V3, FailureKind.UNKNOWN_ERROR, "No competition run found"
        )

    sanitizer = sanitizer or SanitizerConfig()
    gates = gates or CompetitionGateConfig()
    decoded = _decode(run.raw_json)
    keys = top_keys(decoded)
    data = as_mapping(decoded)

    payload: CompetitionRunV4 | CompetitionRunV3 | None = None
    try:
        if data is not None and data.get("version") == 4:
            payload = CompetitionRunV4.model_validate(dict(data))
        elif data is not None and ("competitors" in data or "status" in data):
            payload = CompetitionRunV3.model_validate(dict(data))
    except ValidationError as exc:
        log.warning("Competition Lab run %s payload failed validation: %s", run.id, exc)
        payload = None

    is_v4 = isinstance(payload, CompetitionRunV4)
    extraction_path = EXTRACTION_PATH_V4 if is_v4 else EXTRACTION_PATH_V3

    if isinstance(payload, CompetitionRunV4):
        status, error = payload.effective_status, payload.effective_error
    elif payload is not None:
        status, error = payload.status, payload.error
    else:
        status, error = None, None

    failure = run_status_failure(
        _payload_status(run, status),
        label="Competition",
        extraction_path=extraction_path,
        top_level_keys=keys,
        error=error,
    )
    if failure is not None:
        return failure

    if payload is None:
        return BuildResult.failed(
            extraction_path,
            FailureKind.UNKNOWN_ERROR,
            "Competition Lab run payload is missing or unreadable",
            top_level_keys=keys,
        )

    if isinstance(payload, CompetitionRunV4):
        return _build_v4(run, payload, keys, subject=subject, sanitizer=sanitizer, gates=gates)
    return _build_v3(run, payload, keys, subject=subject, sanitizer=sanitizer, gates=gates)
