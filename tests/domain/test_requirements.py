from __future__ import annotations

import pytest

from convergent.domain.errors import ConfigurationGap
from convergent.domain.merge import confirm_field
from convergent.domain.model import (
    ContextGraph,
    FieldState,
    ImpactTier,
    RequiredFieldSpec,
)
from convergent.domain.requirements import (
    DEFAULT_REQUIRED_FIELDS,
    ReadinessMode,
    SatisfactionMechanism,
    check_requirements,
    compute_readiness,
    graph_readiness,
    validate_specs,
)

COMPETITORS_SPEC = RequiredFieldSpec(
    path="competitive.competitors",
    alternatives=("competition.primaryCompetitors",),
    impact_tier=ImpactTier.HIGH,
)


def test_alternative_path_satisfies_via_proposed() -> None:
    [result] = check_requirements(
        [COMPETITORS_SPEC],
        confirmed_paths=[],
        proposed_paths=["competition.primaryCompetitors"],
    )

    assert result.satisfied
    assert result.mechanism is SatisfactionMechanism.PROPOSED
    assert result.matched_path == "competition.primaryCompetitors"


def test_confirming_the_value_flips_mechanism() -> None:
    graph = ContextGraph(
        company_id="acme",
        fields={
            "competition.primaryCompetitors": FieldState(
                proposed_value=[{"name": "Globex"}], revision_id="r1"
            )
        },
    )
    proposed = check_requirements(
        [COMPETITORS_SPEC], graph.confirmed_paths(), graph.proposed_paths()
    )

    confirmed_graph = confirm_field(
        graph, "competition.primaryCompetitors", [{"name": "Globex"}]
    )
    confirmed = check_requirements(
        [COMPETITORS_SPEC], confirmed_graph.confirmed_paths(), confirmed_graph.proposed_paths()
    )

    assert proposed[0].mechanism is SatisfactionMechanism.PROPOSED
    assert confirmed[0].mechanism is SatisfactionMechanism.CONFIRMED


def test_unsatisfied_spec() -> None:
    [result] = check_requirements([COMPETITORS_SPEC], [], ["brand.positioning"])

    assert not result.satisfied
    assert result.mechanism is None


def test_readiness_blocks_on_missing_high_impact_field() -> None:
    specs = [
        COMPETITORS_SPEC,
        RequiredFieldSpec(path="brand.positioning", impact_tier=ImpactTier.HIGH),
    ]

    readiness = compute_readiness(check_requirements(specs, [], ["brand.positioning"]))

    assert readiness.percent == 50
    assert readiness.mode is ReadinessMode.DEGRADED
    assert readiness.missing_paths == ("competitive.competitors",)
    assert readiness.block_reason is not None
    assert "1 critical inputs missing" in readiness.block_reason


def test_readiness_is_full_with_one_medium_gap() -> None:
    specs = [
        RequiredFieldSpec(path="brand.positioning", impact_tier=ImpactTier.HIGH),
        RequiredFieldSpec(path="identity.businessModel", impact_tier=ImpactTier.MEDIUM),
    ]

    readiness = compute_readiness(check_requirements(specs, [], ["brand.positioning"]))

    assert readiness.mode is ReadinessMode.FULL
    assert readiness.block_reason is None


def test_empty_spec_list_is_ready() -> None:
    readiness = compute_readiness([])

    assert readiness.percent == 100
    assert readiness.mode is ReadinessMode.FULL


def test_unmodelled_paths_are_configuration_gaps() -> None:
    spec = RequiredFieldSpec(path="brand.positioning", alternatives=("brand.nonsense",))

    with pytest.raises(ConfigurationGap) as exc:
        validate_specs([spec])

    assert exc.value.paths == ("brand.nonsense",)


def test_default_specs_are_valid() -> None:
    validate_specs(DEFAULT_REQUIRED_FIELDS)


def test_low_impact_specs_are_rejected() -> None:
    with pytest.raises(ValueError, match="HIGH or MEDIUM"):
        RequiredFieldSpec(path="website.websiteScore", impact_tier=ImpactTier.LOW)


def test_graph_readiness_of_empty_graph() -> None:
    readiness = graph_readiness(ContextGraph(company_id="acme"))

    assert readiness.percent == 0
    assert readiness.mode is ReadinessMode.DEGRADED
    assert len(readiness.missing) == len(DEFAULT_REQUIRED_FIELDS)
    payload = readiness.to_dict()
    assert payload["mode"] == "DEGRADED"
    assert payload["satisfied"] == []
