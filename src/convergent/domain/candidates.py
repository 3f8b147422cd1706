"""Candidate builder contracts.

A builder turns one diagnostic run into field candidates. Builders never raise
for "no usable data": they return a :class:`BuildResult` with an empty
candidate list, a typed :class:`BuildFailure` and a :class:`DebugBundle`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from convergent.domain.model import is_meaningful

if TYPE_CHECKING:
    from convergent.domain.model import DiagnosticRun, FieldCandidate, FieldPath, ToolId
    from convergent.domain.sanitizer import SanitizationResult


class FailureKind(StrEnum):
    FAILED = "FAILED"
    INCOMPLETE = "INCOMPLETE"
    NO_COMPETITORS = "NO_COMPETITORS"
    NO_FIELDS = "NO_FIELDS"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(slots=True, frozen=True, kw_only=True)
class BuildFailure:
    kind: FailureKind
    message: str


class MappingSkipReason(StrEnum):
    EMPTY_VALUE = "empty_value"
    WRONG_DOMAIN = "wrong_domain"
    TRANSFORM_FAILED = "transform_failed"
    NO_SOURCE_PATH = "no_source_path"


@dataclass(slots=True, kw_only=True)
class AttemptedMapping:
    path: FieldPath
    attempted: bool = True
    found: bool = False
    reason: MappingSkipReason | None = None


@dataclass(slots=True, kw_only=True)
class DebugBundle:
    """Troubleshooting detail attached to a build with no usable output."""

    root_top_keys: tuple[str, ...] = ()
    sample_paths_found: dict[str, bool] = field(default_factory=dict["str", "bool"])
    record_counts: dict[str, int] = field(default_factory=dict["str", "int"])
    attempted_mappings: list[AttemptedMapping] = field(
        default_factory=list["AttemptedMapping"]
    )
    filtering_stats: dict[str, object] = field(default_factory=dict["str", "object"])


@dataclass(slots=True, kw_only=True)
class BuildResult:
    extraction_path: str
    candidates: list[FieldCandidate] = field(default_factory=list["FieldCandidate"])
    raw_keys_found: int = 0
    top_level_keys: tuple[str, ...] = ()
    failure: BuildFailure | None = None
    debug: DebugBundle | None = None
    competitors: SanitizationResult | None = None

    @property
    def usable(self) -> bool:
        return any(is_meaningful(item.value) for item in self.candidates)

    def usable_for(self, domain: str) -> bool:
        """Whether a non-empty candidate lands in ``domain``."""
        return any(
            item.domain == domain and is_meaningful(item.value) for item in self.candidates
        )

    @classmethod
    def failed(
        cls,
        extraction_path: str,
        kind: FailureKind,
        message: str,
        *,
        top_level_keys: tuple[str, ...] = (),
        debug: DebugBundle | None = None,
    ) -> BuildResult:
        return cls(
            extraction_path=extraction_path,
            raw_keys_found=len(top_level_keys),
            top_level_keys=top_level_keys,
            failure=BuildFailure(kind=kind, message=message),
            debug=debug or DebugBundle(root_top_keys=top_level_keys),
        )


@dataclass(slots=True, frozen=True, kw_only=True)
class SubjectCompany:
    """The company whose context is being built."""

    company_id: str
    name: str | None = None
    domain: str | None = None


@runtime_checkable
class CandidateBuilder(Protocol):
    """Turn one diagnostic run into field candidates."""

    tool: ToolId

    def __call__(self, run: DiagnosticRun, *, subject: SubjectCompany) -> BuildResult: ...


def top_keys(payload: object) -> tuple[str, ...]:
    if isinstance(payload, dict):
        return tuple(str(key) for key in payload)  # pyright: ignore[reportUnknownArgumentType, reportUnknownVariableType]
    return ()
