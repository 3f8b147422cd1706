"""Pattern lists used to reject self-referencing and vendor competitors.

Every list here is heuristic. Operators can replace the agency vocabularies via
``CONVERGENT_AGENCY_NAME_TERMS`` and ``CONVERGENT_AGENCY_POSITIONING_TERMS``
(comma-separated plain words, matched on word boundaries).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .env import env_terms

DEFAULT_STRONG_NAME_PATTERNS: tuple[str, ...] = (
    r"\bagency\b",
    r"\bconsulting$",
    r"\bconsultants?$",
    r"\bmedia group$",
    r"\bdigital group$",
    r"\bcreative group$",
    r"\bcreative studio$",
    r"\bdesign studio$",
    r"\bstudio$",
)

# Common for product companies too, so each only counts as one weak signal.
DEFAULT_WEAK_NAME_PATTERNS: tuple[str, ...] = (
    r"\bsolutions$",
    r"\bservices$",
)

DEFAULT_STRONG_POSITIONING_PATTERNS: tuple[str, ...] = (
    r"\bagency\b",
    r"\bconsulting\b",
    r"\bconsultants?\b",
    r"\bfreelance\b",
    r"\bhire us\b",
    r"\bwork with us\b",
    r"\bwe help (?:companies|businesses|brands)\b",
    r"\byour (?:partner|agency)\b",
    r"\bbespoke\b",
    r"\btailored solutions\b",
    r"\bcustom (?:solutions|services)\b",
)

DEFAULT_WEAK_POSITIONING_PATTERNS: tuple[str, ...] = (
    r"\bservices?\b",
    r"\bportfolio\b",
    r"\bclients?\b",
    r"\bcase stud(?:y|ies)\b",
    r"\bour work\b",
    r"\bcontact us\b",
)

DEFAULT_SERVICE_PROVIDER_CATEGORIES: tuple[str, ...] = (
    "marketing agency",
    "digital agency",
    "creative agency",
    "seo agency",
    "ppc agency",
    "pr agency",
    "advertising agency",
    "branding agency",
    "web design",
    "consulting firm",
    "professional services",
)

DEFAULT_CORPORATE_SUFFIXES: tuple[str, ...] = (
    "inc",
    "incorporated",
    "llc",
    "ltd",
    "limited",
    "corp",
    "corporation",
    "co",
    "company",
    "gmbh",
    "plc",
)

DEFAULT_MIN_COMPANY_NAME_LENGTH = 3
DEFAULT_WEAK_SIGNAL_THRESHOLD = 2


@dataclass(frozen=True, slots=True)
class SanitizerConfig:
    strong_name_patterns: tuple[str, ...] = DEFAULT_STRONG_NAME_PATTERNS
    weak_name_patterns: tuple[str, ...] = DEFAULT_WEAK_NAME_PATTERNS
    strong_positioning_patterns: tuple[str, ...] = DEFAULT_STRONG_POSITIONING_PATTERNS
    weak_positioning_patterns: tuple[str, ...] = DEFAULT_WEAK_POSITIONING_PATTERNS
    service_provider_categories: tuple[str, ...] = DEFAULT_SERVICE_PROVIDER_CATEGORIES
    corporate_suffixes: tuple[str, ...] = DEFAULT_CORPORATE_SUFFIXES
    min_company_name_length: int = DEFAULT_MIN_COMPANY_NAME_LENGTH
    weak_signal_threshold: int = DEFAULT_WEAK_SIGNAL_THRESHOLD

    def __post_init__(self) -> None:
        if self.weak_signal_threshold < 1:
            raise ValueError("weak_signal_threshold must be at least 1")
        for pattern in (
            *self.strong_name_patterns,
            *self.weak_name_patterns,
            *self.strong_positioning_patterns,
            *self.weak_positioning_patterns,
        ):
            re.compile(pattern)


def _word_patterns(terms: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(rf"\b{re.escape(term)}\b" for term in terms)


def get_sanitizer_config() -> SanitizerConfig:
    name_terms = env_terms("CONVERGENT_AGENCY_NAME_TERMS")
    positioning_terms = env_terms("CONVERGENT_AGENCY_POSITIONING_TERMS")
    return SanitizerConfig(
        strong_name_patterns=(
            _word_patterns(name_terms) if name_terms is not None else DEFAULT_STRONG_NAME_PATTERNS
        ),
        strong_positioning_patterns=(
            _word_patterns(positioning_terms)
            if positioning_terms is not None
            else DEFAULT_STRONG_POSITIONING_PATTERNS
        ),
    )
