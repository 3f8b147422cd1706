"""Translate Website Lab runs into field candidates.

Website Lab output arrives wrapped in several historical containers. The root
finder tries the known container paths from newest to oldest and accepts the
first object that looks like Website Lab output; candidates are then read from
that single root only.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from convergent.adapters.labs._support import (
    as_mapping,
    candidate,
    clean_value,
    lookup,
    run_status_failure,
)
from convergent.domain.candidates import (
    AttemptedMapping,
    BuildResult,
    DebugBundle,
    FailureKind,
    MappingSkipReason,
    top_keys,
)
from convergent.domain.model import ToolId, is_meaningful
from convergent.domain.priority import owns_path

from .schema import WebsiteLabResult

if TYPE_CHECKING:
    from collections.abc import Mapping

    from convergent.domain.candidates import SubjectCompany
    from convergent.domain.model import DiagnosticRun, FieldCandidate, FieldPath

log = getLogger(__name__)

EXTRACTION_PATH: Final = "websiteLab"
BASE_CONFIDENCE: Final = 0.8

ROOT_PATHS: Final[tuple[str, ...]] = (
    "rawEvidence.labResultV4",
    "websiteLab",
    "lab",
    "websiteLabV4",
    "result",
    "output",
    "data",
    "result.websiteLab",
    "result.lab",
    "data.websiteLab",
    "output.websiteLab",
    "evidencePack.websiteLabV4",
    "evidencePack.websiteLab",
)

SIGNATURE_FIELDS: Final = frozenset(
    {
        "siteAssessment",
        "siteGraph",
        "pages",
        "heuristics",
        "personas",
        "trustAnalysis",
        "ctaIntelligence",
        "contentIntelligence",
        "visualBrandEvaluation",
        "impactMatrix",
        "strategistViews",
    }
)
SECONDARY_FIELDS: Final = frozenset(
    {
        "score",
        "scores",
        "summary",
        "executiveSummary",
        "uxScore",
        "seoScore",
        "conversionScore",
        "recommendations",
        "quickWins",
        "issues",
        "findings",
    }
)

FAILURE_STATUSES: Final = frozenset({"failed", "error", "aborted", "timeout", "cancelled"})
PENDING_STATUSES: Final = frozenset({"pending", "running", "queued", "in_progress"})
ERROR_FIELDS: Final = ("error", "errorMessage", "message", "statusMessage", "reason")
ERROR_KEYWORDS: Final[tuple[str, ...]] = (
    "diagnostic failed",
    "failed to fetch",
    "http error",
    "access denied",
    "permission denied",
    "forbidden",
    "rate limit",
    "rate-limit",
    "too many requests",
    "authentication failed",
    "connection refused",
    "connection timed out",
    "network error",
    "request failed",
    "could not complete",
    "unable to process",
    "retry later",
    "please try again",
    "timed out",
    "blocked",
)
_HTTP_ERROR_RE: Final = re.compile(
    r"\b(4\d{2}|5\d{2})\b.*\b(error|forbidden|unauthorized|not found|failed|denied|timeout)",
    re.IGNORECASE,
)


@dataclass(slots=True, frozen=True)
class FieldMapping:
    path: FieldPath
    source: str
    read: Callable[[WebsiteLabResult], object]
    multiplier: float = 1.0
    inferred: bool = False


def _score(result: WebsiteLabResult) -> object:
    if result.site_assessment is not None and result.site_assessment.score is not None:
        return result.site_assessment.score
    return result.website_score


def _summary(result: WebsiteLabResult) -> object:
    if result.site_assessment is not None and result.site_assessment.executive_summary:
        return result.site_assessment.executive_summary
    return result.executive_summary


def _page_count(result: WebsiteLabResult) -> object:
    if result.site_graph is None or not result.site_graph.pages:
        return None
    return len(result.site_graph.pages)


def _persona_audience(result: WebsiteLabResult) -> object:
    names = [persona.name for persona in result.personas if persona.name]
    return ", ".join(names[:3]) if names else None


WEBSITE_FIELD_MAPPINGS: Final[tuple[FieldMapping, ...]] = (
    FieldMapping("website.websiteScore", "siteAssessment.score|websiteScore", _score),
    FieldMapping(
        "website.executiveSummary", "siteAssessment.executiveSummary|executiveSummary", _summary
    ),
    FieldMapping(
        "website.conversionBlocks",
        "siteAssessment.conversionBlocks",
        lambda result: result.site_assessment.conversion_blocks if result.site_assessment else None,
    ),
    FieldMapping("website.quickWins", "quickWins", lambda result: result.quick_wins),
    FieldMapping(
        "website.recommendations", "recommendations", lambda result: result.recommendations
    ),
    FieldMapping(
        "website.funnelHealthScore", "funnelHealthScore", lambda result: result.funnel_health_score
    ),
    FieldMapping(
        "website.pageCount",
        "siteGraph.pages",
        _page_count,
    ),
    FieldMapping(
        "website.trustScore",
        "trustAnalysis.trustScore",
        lambda result: result.trust_analysis.trust_score if result.trust_analysis else None,
    ),
    FieldMapping(
        "productOffer.primaryConversionAction",
        "ctaIntelligence.primaryCta",
        lambda result: result.cta_intelligence.primary_cta if result.cta_intelligence else None,
    ),
    FieldMapping("digitalInfra.techStack", "techStack", lambda result: result.tech_stack),
    FieldMapping(
        "content.contentSummary",
        "contentIntelligence.summary",
        lambda result: (
            result.content_intelligence.summary if result.content_intelligence else None
        ),
    ),
    FieldMapping(
        "audience.primaryAudience",
        "personas[].name",
        _persona_audience,
        multiplier=0.6,
        inferred=True,
    ),
)


@dataclass(slots=True, frozen=True)
class LocatedRoot:
    root: Mapping[str, object]
    path: str
    matched_fields: tuple[str, ...]


@dataclass(slots=True)
class WebsiteLabBuilder:
    """Candidate builder for Website Lab runs."""

    tool: ToolId = ToolId.WEBSITE_LAB

    def __call__(self, run: DiagnosticRun, *, subject: SubjectCompany) -> BuildResult:
        _ = subject
        return build_website_candidates(run)


def _decode(raw: object) -> object:
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Website Lab payload is not valid JSON")
            return None
    return raw


def _matched_fields(candidate_root: object) -> tuple[str, ...] | None:
    mapping = as_mapping(candidate_root)
    if mapping is None:
        return None
    signature = tuple(key for key in mapping if key in SIGNATURE_FIELDS)
    if signature:
        return signature
    secondary = tuple(key for key in mapping if key in SECONDARY_FIELDS)
    return secondary if len(secondary) >= 2 else None


def find_website_lab_root(raw: object) -> LocatedRoot | None:
    """Locate the Website Lab data root inside ``raw``."""

    data = as_mapping(_decode(raw))
    if data is None:
        return None
    for path in ROOT_PATHS:
        node = lookup(data, path)
        matched = _matched_fields(node)
        if matched is not None:
            return LocatedRoot(root=as_mapping(node) or {}, path=path, matched_fields=matched)
    matched = _matched_fields(data)
    if matched is not None:
        return LocatedRoot(root=data, path="", matched_fields=matched)
    return None


def _error_text(value: object) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, default=str)
    lower = text.lower()
    if any(keyword in lower for keyword in ERROR_KEYWORDS) or _HTTP_ERROR_RE.search(text):
        return text[:500]
    return None


def detect_error_state(node: Mapping[str, object] | None) -> str | None:
    """Return an error message when ``node`` reports a failed diagnostic."""

    if node is None:
        return None
    status = node.get("status")
    if isinstance(status, str) and status.strip().lower() in FAILURE_STATUSES:
        return f"Diagnostic status: {status}"
    for field_name in ERROR_FIELDS:
        value = node.get(field_name)
        nested = as_mapping(value)
        if nested is not None:
            value = nested.get("message") or nested.get("error") or nested.get("reason")
        message = _error_text(value)
        if message is not None:
            return message
    return None


def _candidate(
    run: DiagnosticRun, mapping: FieldMapping, value: object, prefix: str
) -> FieldCandidate:
    return candidate(
        run,
        mapping.path,
        value,
        confidence=round(BASE_CONFIDENCE * mapping.multiplier, 4),
        raw_path=f"{prefix}{mapping.source}",
        is_inferred=mapping.inferred,
    )


def build_website_candidates(run: DiagnosticRun) -> BuildResult:
    decoded = _decode(run.raw_json)
    keys = top_keys(decoded)
    located = find_website_lab_root(decoded)
    extraction_path = f"{EXTRACTION_PATH}:{located.path or 'root'}" if located else EXTRACTION_PATH

    failure = run_status_failure(
        run, label="Website Lab", extraction_path=extraction_path, top_level_keys=keys
    )
    if failure is not None:
        return failure

    root_status = located.root.get("status") if located else None
    if isinstance(root_status, str) and root_status.strip().lower() in PENDING_STATUSES:
        return BuildResult.failed(
            extraction_path,
            FailureKind.INCOMPLETE,
            f"Website Lab run is {root_status.strip().lower()} - not complete",
            top_level_keys=keys,
        )

    error = detect_error_state(located.root if located else None) or detect_error_state(
        as_mapping(decoded)
    )
    if error is not None:
        log.info("Website Lab run %s reports an error state: %s", run.id, error)
        return BuildResult.failed(
            extraction_path, FailureKind.FAILED, error, top_level_keys=keys
        )

    if located is None:
        return BuildResult.failed(
            extraction_path,
            FailureKind.UNKNOWN_ERROR,
            "Website Lab output not found in run payload",
            top_level_keys=keys,
            debug=DebugBundle(
                root_top_keys=keys,
                sample_paths_found={path: lookup(decoded, path) is not None for path in ROOT_PATHS},
            ),
        )

    try:
        result = WebsiteLabResult.model_validate(dict(located.root))
    except ValidationError as exc:
        log.warning("Website Lab run %s root at %r failed validation", run.id, located.path)
        return BuildResult.failed(
            extraction_path,
            FailureKind.UNKNOWN_ERROR,
            f"Website Lab output is unreadable: {exc.error_count()} invalid fields",
            top_level_keys=keys,
        )

    prefix = f"{located.path}." if located.path else ""
    candidates: list[FieldCandidate] = []
    attempted: list[AttemptedMapping] = []
    skipped = {"empty_value": 0, "transform_failed": 0, "wrong_domain": 0}
    for mapping in WEBSITE_FIELD_MAPPINGS:
        record = AttemptedMapping(path=mapping.path)
        attempted.append(record)
        try:
            value = clean_value(mapping.read(result))
        except (TypeError, ValueError):
            record.reason = MappingSkipReason.TRANSFORM_FAILED
            skipped["transform_failed"] += 1
            continue
        if not is_meaningful(value):
            # The merge counts these as emptyValue.
            record.reason = MappingSkipReason.EMPTY_VALUE
            skipped["empty_value"] += 1
            candidates.append(_candidate(run, mapping, value, prefix))
            continue
        record.found = True
        if not owns_path(ToolId.WEBSITE_LAB, mapping.path):
            # Still emitted so the merge records the drop.
            record.reason = MappingSkipReason.WRONG_DOMAIN
            skipped["wrong_domain"] += 1
        candidates.append(_candidate(run, mapping, value, prefix))

    if not any(is_meaningful(item.value) for item in candidates):
        return BuildResult.failed(
            extraction_path,
            FailureKind.NO_FIELDS,
            "Website Lab output contained no usable fields",
            top_level_keys=keys,
            debug=DebugBundle(
                root_top_keys=keys,
                sample_paths_found={field_name: True for field_name in located.matched_fields},
                record_counts={"rootKeys": len(located.root)},
                attempted_mappings=attempted,
                filtering_stats={"skipped": skipped},
            ),
        )

    log.debug(
        "Website Lab run %s produced %d candidates from %r",
        run.id,
        len(candidates),
        located.path or "root",
    )
    return BuildResult(
        extraction_path=extraction_path,
        candidates=candidates,
        raw_keys_found=len(keys),
        top_level_keys=keys,
    )
