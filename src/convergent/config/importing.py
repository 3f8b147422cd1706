"""Defaults for import passes."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag

DEFAULT_RUN_PAGE_LIMIT = 5
DEFAULT_PROOF_PREVIEW_LIMIT = 50


@dataclass(frozen=True, slots=True)
class ImportConfig:
    run_page_limit: int = DEFAULT_RUN_PAGE_LIMIT
    proof_preview_limit: int = DEFAULT_PROOF_PREVIEW_LIMIT
    trace: bool = False


def get_import_config() -> ImportConfig:
    return ImportConfig(trace=env_flag("CONVERGENT_TRACE"))
