"""Website Lab candidate builder."""

from __future__ import annotations

from .schema import WebsiteLabResult
from .translator import (
    WEBSITE_FIELD_MAPPINGS,
    WebsiteLabBuilder,
    build_website_candidates,
    detect_error_state,
    find_website_lab_root,
)

__all__ = [
    "WEBSITE_FIELD_MAPPINGS",
    "WebsiteLabBuilder",
    "WebsiteLabResult",
    "build_website_candidates",
    "detect_error_state",
    "find_website_lab_root",
]
