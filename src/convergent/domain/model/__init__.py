"""Domain model for the context convergence engine."""

from __future__ import annotations

from .candidates import (
    ConfidenceBand,
    Evidence,
    FieldCandidate,
    confidence_band,
    is_meaningful,
    make_snippet,
)
from .competitors import CompetitorKind, CompetitorProfile, CompetitorRole, role_for_kind
from .graph import (
    HUMAN_SOURCES,
    ContextGraph,
    FieldState,
    Provenance,
    SavedGraph,
    is_human_source,
    new_revision_id,
)
from .paths import FIELD_REGISTRY, FieldPath, domain_of, is_modelled, split_path
from .requirements import ImpactTier, RequiredFieldSpec
from .runs import DiagnosticRun, RunStatus, SourceKind, ToolId

__all__ = [
    "FIELD_REGISTRY",
    "HUMAN_SOURCES",
    "CompetitorKind",
    "CompetitorProfile",
    "CompetitorRole",
    "ConfidenceBand",
    "ContextGraph",
    "DiagnosticRun",
    "Evidence",
    "FieldCandidate",
    "FieldPath",
    "FieldState",
    "ImpactTier",
    "Provenance",
    "RequiredFieldSpec",
    "RunStatus",
    "SavedGraph",
    "SourceKind",
    "ToolId",
    "confidence_band",
    "domain_of",
    "is_human_source",
    "is_meaningful",
    "is_modelled",
    "make_snippet",
    "new_revision_id",
    "role_for_kind",
    "split_path",
]
