from __future__ import annotations

import json

import pytest

from convergent.adapters.labs.website.translator import (
    build_website_candidates,
    detect_error_state,
    find_website_lab_root,
)
from convergent.domain.candidates import FailureKind, MappingSkipReason
from convergent.domain.model import RunStatus, ToolId
from tests.helpers.runs import make_run


def _lab_output() -> dict[str, object]:
    return {
        "siteAssessment": {
            "score": 72,
            "executiveSummary": "Clear offer, weak proof.",
            "conversionBlocks": ["No pricing page"],
        },
        "siteGraph": {"pages": [{"url": "/"}, {"url": "/pricing"}]},
        "ctaIntelligence": {"primaryCta": "Book a demo"},
        "techStack": ["Webflow", "HubSpot"],
        "contentIntelligence": {"summary": "Mostly product pages"},
        "personas": [{"name": "Ops lead"}, {"name": "CFO"}],
    }


def test_newest_container_wins() -> None:
    raw = {
        "rawEvidence": {"labResultV4": {"siteAssessment": {"score": 90}}},
        "websiteLab": {"siteAssessment": {"score": 10}},
    }

    located = find_website_lab_root(raw)

    assert located is not None
    assert located.path == "rawEvidence.labResultV4"
    assert located.matched_fields == ("siteAssessment",)


def test_root_needs_signature_or_two_secondary_fields() -> None:
    assert find_website_lab_root({"result": {"score": 3}}) is None
    located = find_website_lab_root({"result": {"score": 3, "summary": "ok"}})
    assert located is not None
    assert located.path == "result"


def test_payload_root_is_last_resort() -> None:
    located = find_website_lab_root(json.dumps({"pages": [], "other": 1}))

    assert located is not None
    assert located.path == ""


def test_candidates_come_from_located_root() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"websiteLabV4": _lab_output()})

    result = build_website_candidates(run)

    assert result.failure is None
    assert result.extraction_path == "websiteLab:websiteLabV4"
    values = {item.path: item.value for item in result.candidates}
    assert values["website.websiteScore"] == 72
    assert values["website.pageCount"] == 2
    assert values["productOffer.primaryConversionAction"] == "Book a demo"
    assert values["digitalInfra.techStack"] == ["Webflow", "HubSpot"]
    by_path = {item.path: item for item in result.candidates}
    assert by_path["website.executiveSummary"].evidence.raw_path == (
        "websiteLabV4.siteAssessment.executiveSummary|executiveSummary"
    )


def test_foreign_domain_candidates_are_still_emitted() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"websiteLab": _lab_output()})

    result = build_website_candidates(run)

    by_path = {item.path: item for item in result.candidates}
    audience = by_path["audience.primaryAudience"]
    assert audience.value == "Ops lead, CFO"
    assert audience.confidence == pytest.approx(0.48)
    assert audience.evidence.is_inferred
    assert "content.contentSummary" in by_path


def test_failed_status_in_root_is_reported() -> None:
    run = make_run(
        ToolId.WEBSITE_LAB,
        {"websiteLab": {"status": "failed", "siteAssessment": {"score": 1}}},
    )

    result = build_website_candidates(run)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.FAILED
    assert result.failure.message == "Diagnostic status: failed"


@pytest.mark.parametrize(
    ("node", "expected"),
    [
        ({"error": "Rate limit exceeded, retry later"}, "Rate limit exceeded, retry later"),
        ({"message": "403 Forbidden"}, "403 Forbidden"),
        ({"error": {"message": "Connection refused by host"}}, "Connection refused by host"),
        ({"message": "All good"}, None),
        (None, None),
    ],
)
def test_detect_error_state(node: dict[str, object] | None, expected: str | None) -> None:
    assert detect_error_state(node) == expected


def test_pending_root_is_incomplete() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"lab": {"status": "queued", "pages": []}})

    result = build_website_candidates(run)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.INCOMPLETE


def test_pending_run_status_wins_over_payload() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"lab": _lab_output()}, status=RunStatus.PENDING)

    result = build_website_candidates(run)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.INCOMPLETE


def test_missing_root_reports_probed_paths() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"unrelated": True})

    result = build_website_candidates(run)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.UNKNOWN_ERROR
    assert result.debug is not None
    assert result.debug.sample_paths_found["websiteLab"] is False


def test_empty_root_reports_no_fields() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"websiteLab": {"siteAssessment": {}, "personas": []}})

    result = build_website_candidates(run)

    assert result.failure is not None
    assert result.failure.kind is FailureKind.NO_FIELDS
    assert result.debug is not None
    reasons = {item.path: item.reason for item in result.debug.attempted_mappings}
    assert reasons["website.websiteScore"] is MappingSkipReason.EMPTY_VALUE


def test_empty_site_graph_yields_empty_page_count() -> None:
    output = _lab_output()
    output["siteGraph"] = {"pages": []}
    run = make_run(ToolId.WEBSITE_LAB, {"websiteLab": output})

    result = build_website_candidates(run)

    assert result.failure is None
    values = {item.path: item.value for item in result.candidates}
    assert values["website.pageCount"] is None
    assert values["website.websiteScore"] == 72


def test_foreign_domain_values_alone_are_not_usable_for_website() -> None:
    run = make_run(ToolId.WEBSITE_LAB, {"contentIntelligence": {"summary": "x"}})

    result = build_website_candidates(run)

    assert result.usable
    assert not result.usable_for("website")
    assert result.usable_for("content")
