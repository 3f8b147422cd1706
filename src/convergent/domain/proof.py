"""Audit trail for one import pass."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from convergent.config.importing import DEFAULT_PROOF_PREVIEW_LIMIT
from convergent.domain.merge import DropReason
from convergent.domain.model import make_snippet

if TYPE_CHECKING:
    from collections.abc import Iterable

    from convergent.domain.candidates import BuildResult
    from convergent.domain.merge import MergeOutcome
    from convergent.domain.model import FieldCandidate, FieldPath

VALUE_PREVIEW_LENGTH: Final = 120


@dataclass(slots=True, frozen=True, kw_only=True)
class CandidatePreview:
    path: FieldPath
    value_preview: str | None
    source: str
    confidence: float

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "valuePreview": self.value_preview,
            "source": self.source,
            "confidence": self.confidence,
        }


@dataclass(slots=True, kw_only=True)
class ProofRecord:
    """What one pass extracted and what happened to every candidate.

    The dropped-by-reason map always carries every reason, zero or not.
    """

    extraction_path: str | None = None
    raw_keys_found: int = 0
    candidate_writes: int = 0
    dropped_by_reason: dict[DropReason, int] = field(
        default_factory=lambda: dict.fromkeys(DropReason, 0)
    )
    persisted_writes: list[FieldPath] = field(default_factory=list["FieldPath"])
    source_run_ids: list[str] = field(default_factory=list[str])
    candidate_previews: list[CandidatePreview] = field(default_factory=list["CandidatePreview"])
    dropped: list[dict[str, str]] = field(default_factory=list["dict[str, str]"])
    errors: list[str] = field(default_factory=list[str])

    @property
    def dropped_total(self) -> int:
        return sum(self.dropped_by_reason.values())

    def to_dict(self) -> dict[str, object]:
        return {
            "extractionPath": self.extraction_path,
            "rawKeysFound": self.raw_keys_found,
            "candidateWrites": self.candidate_writes,
            "droppedByReason": {
                reason.value: self.dropped_by_reason.get(reason, 0) for reason in DropReason
            },
            "persistedWrites": list(self.persisted_writes),
            "sourceRunIds": list(self.source_run_ids),
            "candidatePreviews": [preview.to_dict() for preview in self.candidate_previews],
            "dropped": list(self.dropped),
            "errors": list(self.errors),
        }


@dataclass(slots=True)
class ProofRecorder:
    """Accumulate a :class:`ProofRecord` across the stages of an import."""

    preview_limit: int = DEFAULT_PROOF_PREVIEW_LIMIT
    record: ProofRecord = field(default_factory=ProofRecord)

    def record_source(self, build: BuildResult, run_id: str | None) -> None:
        self.record.extraction_path = build.extraction_path
        self.record.raw_keys_found = build.raw_keys_found
        if run_id is not None and run_id not in self.record.source_run_ids:
            self.record.source_run_ids.append(run_id)

    def record_candidates(self, candidates: Iterable[FieldCandidate]) -> None:
        for item in candidates:
            if len(self.record.candidate_previews) >= self.preview_limit:
                break
            self.record.candidate_previews.append(
                CandidatePreview(
                    path=item.path,
                    value_preview=make_snippet(item.value, limit=VALUE_PREVIEW_LENGTH),
                    source=item.tool.value,
                    confidence=item.confidence,
                )
            )

    def record_merge(self, outcome: MergeOutcome) -> None:
        self.record.candidate_writes = outcome.candidate_writes
        self.record.dropped_by_reason = outcome.dropped_by_reason()
        self.record.persisted_writes = list(outcome.updated_paths)
        self.record.dropped = [
            {"path": item.path, "reason": item.reason.value, "detail": item.detail}
            for item in outcome.dropped[: self.preview_limit]
        ]

    def record_error(self, message: str) -> None:
        self.record.errors.append(message)

    def finish(self) -> ProofRecord:
        return self.record
