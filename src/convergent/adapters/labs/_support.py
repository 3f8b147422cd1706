"""Helpers shared by the lab candidate builders."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, cast

from convergent.domain.candidates import BuildResult, FailureKind
from convergent.domain.model import (
    Evidence,
    FieldCandidate,
    RunStatus,
    is_meaningful,
    make_snippet,
)

if TYPE_CHECKING:
    from convergent.domain.model import DiagnosticRun, FieldPath

_MISSING = object()


def blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def as_mapping(value: object) -> Mapping[str, object] | None:
    if isinstance(value, Mapping):
        return cast(Mapping[str, object], value)
    return None


def lookup(payload: object, dotted: str) -> object:
    """Walk ``dotted`` through nested mappings, returning ``None`` when absent."""

    current: object = payload
    for part in dotted.split("."):
        mapping = as_mapping(current)
        if mapping is None:
            return None
        current = mapping.get(part, _MISSING)
        if current is _MISSING:
            return None
    return current


def clean_value(value: object) -> object:
    """Strip strings and drop blank entries from lists."""

    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        items = cast(list[object], value)
        return [clean_value(item) for item in items if is_meaningful(item)]
    return value


def run_status_failure(
    run: DiagnosticRun,
    *,
    label: str,
    extraction_path: str,
    top_level_keys: tuple[str, ...] = (),
    error: str | None = None,
) -> BuildResult | None:
    """Return the typed failure for a failed or unfinished run, if any."""

    if run.status is RunStatus.FAILED:
        return BuildResult.failed(
            extraction_path,
            FailureKind.FAILED,
            error or f"{label} run failed",
            top_level_keys=top_level_keys,
        )
    if run.status in (RunStatus.PENDING, RunStatus.RUNNING):
        return BuildResult.failed(
            extraction_path,
            FailureKind.INCOMPLETE,
            f"{label} run is {run.status.value} - not complete",
            top_level_keys=top_level_keys,
        )
    return None


def candidate(
    run: DiagnosticRun,
    path: FieldPath,
    value: object,
    *,
    confidence: float,
    raw_path: str,
    is_inferred: bool = False,
) -> FieldCandidate:
    return FieldCandidate(
        path=path,
        value=value,
        confidence=confidence,
        evidence=Evidence(
            source_run_id=run.id,
            raw_path=raw_path,
            snippet=make_snippet(value),
            is_inferred=is_inferred,
        ),
        tool=run.tool,
        source_kind=run.source_kind,
        run_created_at=run.created_at,
    )
