"""Translate Brand Lab runs into field candidates."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from pydantic import ValidationError

from convergent.adapters.labs._support import (
    as_mapping,
    candidate,
    clean_value,
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

from .schema import BrandLabLegacyPayload, BrandLabV2Payload

if TYPE_CHECKING:
    from convergent.domain.candidates import SubjectCompany
    from convergent.domain.model import DiagnosticRun, FieldCandidate, FieldPath

log = getLogger(__name__)

EXTRACTION_PATH_V2: Final = "brandLabV2"
EXTRACTION_PATH_LEGACY: Final = "brandLabV1"
DIRECT_CONFIDENCE: Final = 0.8

# target path -> source keys, first present alias wins
BRAND_FIELD_MAPPINGS: Final[tuple[tuple[FieldPath, tuple[str, ...]], ...]] = (
    ("brand.positioning", ("positioning", "positioningSummary")),
    ("productOffer.valueProposition", ("valueProposition", "valueProp")),
    ("audience.primaryAudience", ("primaryAudience",)),
    ("audience.icpDescription", ("icpDescription", "icp")),
    ("brand.differentiators", ("differentiators",)),
    ("brand.toneOfVoice", ("toneOfVoice", "voiceTone")),
    ("brand.tagline", ("tagline",)),
    ("brand.strengths", ("brandStrengths", "strengths")),
    ("brand.weaknesses", ("brandWeaknesses", "weaknesses")),
    ("brand.messagingPillars", ("messagingPillars",)),
    ("brand.competitivePosition", ("competitivePosition",)),
    ("brand.visualIdentitySummary", ("visualIdentity",)),
    ("brand.brandPerception", ("brandPerception",)),
    ("brand.brandPersonality", ("brandPersonality",)),
)

_KNOWN_SOURCE_KEYS: Final = frozenset(key for _, keys in BRAND_FIELD_MAPPINGS for key in keys)


@dataclass(slots=True)
class BrandLabBuilder:
    """Candidate builder for Brand Lab runs."""

    tool: ToolId = ToolId.BRAND_LAB

    def __call__(self, run: DiagnosticRun, *, subject: SubjectCompany) -> BuildResult:
        _ = subject
        return build_brand_candidates(run)


def _parse(raw: object) -> tuple[str, str, dict[str, object], str | None] | None:
    """Return ``(extraction_path, raw_prefix, findings, error)`` for the newest shape found."""

    try:
        current = BrandLabV2Payload.model_validate(raw)
    except ValidationError:
        pass
    else:
        return EXTRACTION_PATH_V2, "findings.", current.findings, current.error

    mapping = as_mapping(raw)
    if mapping is None or not _KNOWN_SOURCE_KEYS.intersection(mapping):
        return None
    legacy = BrandLabLegacyPayload.model_validate(mapping)
    return EXTRACTION_PATH_LEGACY, "", legacy.findings, legacy.error


def build_brand_candidates(run: DiagnosticRun) -> BuildResult:
    keys = top_keys(run.raw_json)
    parsed = _parse(run.raw_json)
    extraction_path = parsed[0] if parsed else EXTRACTION_PATH_V2

    failure = run_status_failure(
        run,
        label="Brand Lab",
        extraction_path=extraction_path,
        top_level_keys=keys,
        error=parsed[3] if parsed else None,
    )
    if failure is not None:
        return failure

    if parsed is None:
        log.info("Brand Lab run %s has no recognised payload shape", run.id)
        return BuildResult.failed(
            extraction_path,
            FailureKind.UNKNOWN_ERROR,
            "Brand Lab run payload is missing or unreadable",
            top_level_keys=keys,
        )

    extraction_path, prefix, findings, _error = parsed
    candidates: list[FieldCandidate] = []
    attempted: list[AttemptedMapping] = []
    for path, source_keys in BRAND_FIELD_MAPPINGS:
        mapping_record = AttemptedMapping(path=path)
        attempted.append(mapping_record)
        source_key = next((key for key in source_keys if key in findings), None)
        if source_key is None:
            mapping_record.reason = MappingSkipReason.NO_SOURCE_PATH
            continue
        value = clean_value(findings[source_key])
        if is_meaningful(value):
            mapping_record.found = True
        else:
            mapping_record.reason = MappingSkipReason.EMPTY_VALUE
        candidates.append(
            candidate(
                run,
                path,
                value,
                confidence=DIRECT_CONFIDENCE,
                raw_path=f"{prefix}{source_key}",
            )
        )

    if not any(is_meaningful(item.value) for item in candidates):
        return BuildResult.failed(
            extraction_path,
            FailureKind.NO_FIELDS,
            "No Brand Lab findings with usable values found",
            top_level_keys=keys,
            debug=DebugBundle(
                root_top_keys=keys,
                sample_paths_found={key: key in findings for key in sorted(_KNOWN_SOURCE_KEYS)},
                record_counts={"findings": len(findings)},
                attempted_mappings=attempted,
            ),
        )

    log.debug("Brand Lab run %s produced %d candidates", run.id, len(candidates))
    return BuildResult(
        extraction_path=extraction_path,
        candidates=candidates,
        raw_keys_found=len(keys),
        top_level_keys=keys,
    )
