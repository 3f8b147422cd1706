from __future__ import annotations

from datetime import UTC, datetime

from convergent.domain.candidates import BuildResult
from convergent.domain.merge import DropReason, merge_candidates
from convergent.domain.model import ContextGraph, Evidence, FieldCandidate, SourceKind, ToolId
from convergent.domain.proof import ProofRecord, ProofRecorder

NOW = datetime(2024, 5, 1, tzinfo=UTC)


def _candidate(path: str, value: object) -> FieldCandidate:
    return FieldCandidate(
        path=path,
        value=value,
        confidence=0.8,
        evidence=Evidence(source_run_id="run-1", raw_path=f"findings.{path}"),
        tool=ToolId.BRAND_LAB,
        run_created_at=NOW,
    )


def test_empty_record_has_every_drop_reason() -> None:
    payload = ProofRecord().to_dict()

    assert payload["droppedByReason"] == {reason.value: 0 for reason in DropReason}
    assert payload["candidateWrites"] == 0


def test_recorder_captures_pass() -> None:
    candidates = [
        _candidate("brand.positioning", "Premium B2B solution"),
        _candidate("brand.tagline", ""),
        _candidate("competition.threatSummary", "x"),
    ]
    build = BuildResult(
        extraction_path="brandLabV2",
        candidates=candidates,
        raw_keys_found=3,
        top_level_keys=("version", "status", "findings"),
    )
    outcome = merge_candidates(
        ContextGraph(company_id="acme"),
        candidates,
        tool=ToolId.BRAND_LAB,
        winning_kind=SourceKind.DIAGNOSTIC_RUNS,
        now=NOW,
    )

    recorder = ProofRecorder()
    recorder.record_source(build, "run-1")
    recorder.record_source(build, "run-1")
    recorder.record_candidates(candidates)
    recorder.record_merge(outcome)
    record = recorder.finish()

    assert record.extraction_path == "brandLabV2"
    assert record.raw_keys_found == 3
    assert record.source_run_ids == ["run-1"]
    assert record.candidate_writes == 3
    assert record.persisted_writes == ["brand.positioning"]
    assert record.dropped_total == 2
    assert record.candidate_writes == len(record.persisted_writes) + record.dropped_total
    payload = record.to_dict()
    assert payload["droppedByReason"]["emptyValue"] == 1
    assert payload["droppedByReason"]["wrongDomainForField"] == 1
    assert payload["candidatePreviews"][0] == {
        "path": "brand.positioning",
        "valuePreview": "Premium B2B solution",
        "source": "brand_lab",
        "confidence": 0.8,
    }


def test_previews_are_limited() -> None:
    recorder = ProofRecorder(preview_limit=2)

    recorder.record_candidates([_candidate("brand.tagline", f"t{i}") for i in range(5)])

    assert len(recorder.finish().candidate_previews) == 2
