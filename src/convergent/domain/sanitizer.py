"""Competitor sanitation: drop the subject company itself and vendors/agencies.

Two independent filters run over the same draft list:

- the *self* filter matches on domain (exact or subdomain in either direction)
  and on name (exact, or the company name as a leading token when the
  candidate shares the company's root domain or has none);
- the *agency* filter matches on name vocabulary, service-provider categories
  and positioning text.

Both filters report separately, so one entity can show up in both rejection
lists. A competitor is accepted only when neither filter rejects it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache
from logging import getLogger
from typing import TYPE_CHECKING, Final

from convergent.config.sanitizer import SanitizerConfig

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from convergent.domain.candidates import SubjectCompany
    from convergent.domain.model import CompetitorProfile

log = getLogger(__name__)

_SCHEME_RE: Final = re.compile(r"^[a-z][a-z0-9+.-]*://")
_NON_WORD_RE: Final = re.compile(r"[^a-z0-9]+")
_SECOND_LEVEL_LABELS: Final[frozenset[str]] = frozenset({"co", "com", "org", "net", "ac", "gov"})


class SelfMatchReason(StrEnum):
    EXACT_DOMAIN = "exact_domain"
    SUBDOMAIN_OF_COMPANY = "subdomain_of_company"
    COMPANY_IS_SUBDOMAIN = "company_is_subdomain"
    EXACT_NAME = "exact_name"
    NAME_VARIANT = "name_variant"


class AgencyMatchReason(StrEnum):
    NAME_PATTERN = "name_pattern"
    CATEGORY = "category"
    POSITIONING_STRONG = "positioning_strong"
    POSITIONING_WEAK = "positioning_weak"


@dataclass(slots=True, frozen=True, kw_only=True)
class SelfRejection:
    competitor: CompetitorProfile
    reason: SelfMatchReason
    detail: str


@dataclass(slots=True, frozen=True, kw_only=True)
class AgencyRejection:
    competitor: CompetitorProfile
    reasons: tuple[AgencyMatchReason, ...]
    signals: tuple[str, ...]


@dataclass(slots=True, kw_only=True)
class AgencySignals:
    strong: list[tuple[AgencyMatchReason, str]] = field(
        default_factory=list["tuple[AgencyMatchReason, str]"]
    )
    weak: list[tuple[AgencyMatchReason, str]] = field(
        default_factory=list["tuple[AgencyMatchReason, str]"]
    )

    def is_agency(self, threshold: int) -> bool:
        return bool(self.strong) or len({term for _, term in self.weak}) >= threshold

    @property
    def reasons(self) -> tuple[AgencyMatchReason, ...]:
        seen: dict[AgencyMatchReason, None] = {}
        for reason, _ in (*self.strong, *self.weak):
            seen.setdefault(reason, None)
        return tuple(seen)

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(f"{reason.value}:{term}" for reason, term in (*self.strong, *self.weak))


@dataclass(slots=True, kw_only=True)
class SelfFilterResult:
    accepted: list[CompetitorProfile] = field(default_factory=list["CompetitorProfile"])
    rejected: list[SelfRejection] = field(default_factory=list["SelfRejection"])


@dataclass(slots=True, kw_only=True)
class AgencyFilterResult:
    accepted: list[CompetitorProfile] = field(default_factory=list["CompetitorProfile"])
    rejected: list[AgencyRejection] = field(default_factory=list["AgencyRejection"])
    borderline: list[AgencyRejection] = field(default_factory=list["AgencyRejection"])


@dataclass(slots=True, kw_only=True)
class SanitizationResult:
    accepted: list[CompetitorProfile] = field(default_factory=list["CompetitorProfile"])
    self_rejected: list[SelfRejection] = field(default_factory=list["SelfRejection"])
    agency_rejected: list[AgencyRejection] = field(default_factory=list["AgencyRejection"])
    borderline: list[AgencyRejection] = field(default_factory=list["AgencyRejection"])

    @property
    def rejected_count(self) -> int:
        rejected_ids = {id(item.competitor) for item in self.self_rejected}
        rejected_ids.update(id(item.competitor) for item in self.agency_rejected)
        return len(rejected_ids)


# Normalisation -----------------------------------------------------------------


def normalize_domain(value: str | None) -> str | None:
    """Lowercase a domain or URL and strip scheme, ``www.``, port and path."""

    if value is None:
        return None
    text = value.strip().lower()
    if not text:
        return None
    text = _SCHEME_RE.sub("", text)
    text = text.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    text = text.split("@")[-1].split(":", 1)[0].rstrip(".")
    text = text.removeprefix("www.")
    return text or None


def root_label(domain: str) -> str:
    """Return the registrable label of ``domain`` (``acme`` for ``shop.acme.co.uk``)."""

    labels = domain.split(".")
    if len(labels) == 1:
        return labels[0]
    if len(labels) >= 3 and labels[-2] in _SECOND_LEVEL_LABELS and len(labels[-1]) == 2:
        return labels[-3]
    return labels[-2]


def normalize_name(name: str | None, suffixes: Iterable[str] = ()) -> str:
    """Lowercase, collapse punctuation and drop trailing corporate suffixes."""

    if not name:
        return ""
    words = _NON_WORD_RE.sub(" ", name.lower()).split()
    suffix_set = set(suffixes)
    while len(words) > 1 and words[-1] in suffix_set:
        words.pop()
    return " ".join(words)


# Self filter --------------------------------------------------------------------


def find_self_match(
    competitor: CompetitorProfile,
    subject: SubjectCompany,
    config: SanitizerConfig | None = None,
) -> SelfRejection | None:
    """Return why ``competitor`` is the subject company itself, if it is."""

    effective = config or SanitizerConfig()
    competitor_domain = normalize_domain(competitor.domain) or normalize_domain(competitor.url)
    company_domain = normalize_domain(subject.domain)

    if competitor_domain and company_domain:
        if competitor_domain == company_domain:
            return SelfRejection(
                competitor=competitor,
                reason=SelfMatchReason.EXACT_DOMAIN,
                detail=f"domain {competitor_domain} is the company domain",
            )
        if competitor_domain.endswith(f".{company_domain}"):
            return SelfRejection(
                competitor=competitor,
                reason=SelfMatchReason.SUBDOMAIN_OF_COMPANY,
                detail=f"{competitor_domain} is a subdomain of {company_domain}",
            )
        if company_domain.endswith(f".{competitor_domain}"):
            return SelfRejection(
                competitor=competitor,
                reason=SelfMatchReason.COMPANY_IS_SUBDOMAIN,
                detail=f"{company_domain} is a subdomain of {competitor_domain}",
            )

    company_name = normalize_name(subject.name, effective.corporate_suffixes)
    competitor_name = normalize_name(competitor.name, effective.corporate_suffixes)
    if not company_name or not competitor_name:
        return None

    if competitor_name == company_name:
        return SelfRejection(
            competitor=competitor,
            reason=SelfMatchReason.EXACT_NAME,
            detail=f'name matches company name "{subject.name}"',
        )

    if len(company_name) < effective.min_company_name_length:
        return None
    shares_root = competitor_domain is None or (
        company_domain is not None and root_label(competitor_domain) == root_label(company_domain)
    )
    # normalize_name turns hyphens into spaces, so "Acme-Labs" leads with "acme ".
    if shares_root and competitor_name.startswith(f"{company_name} "):
        return SelfRejection(
            competitor=competitor,
            reason=SelfMatchReason.NAME_VARIANT,
            detail=f'name starts with company name "{subject.name}"',
        )
    return None


def filter_self_competitors(
    competitors: Sequence[CompetitorProfile],
    subject: SubjectCompany,
    config: SanitizerConfig | None = None,
) -> SelfFilterResult:
    result = SelfFilterResult()
    for competitor in competitors:
        rejection = find_self_match(competitor, subject, config)
        if rejection is None:
            result.accepted.append(competitor)
            continue
        log.info("Rejected self competitor %r: %s", competitor.name, rejection.detail)
        result.rejected.append(rejection)
    return result


# Agency filter ------------------------------------------------------------------


@lru_cache(maxsize=32)
def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


def _matches(patterns: tuple[str, ...], text: str) -> list[str]:
    hits: list[str] = []
    for pattern in _compile(patterns):
        match = pattern.search(text)
        if match is not None:
            hits.append(match.group(0).strip().lower())
    return hits


def collect_agency_signals(
    competitor: CompetitorProfile,
    config: SanitizerConfig | None = None,
) -> AgencySignals:
    effective = config or SanitizerConfig()
    signals = AgencySignals()
    name = normalize_name(competitor.name, effective.corporate_suffixes)

    signals.strong.extend(
        (AgencyMatchReason.NAME_PATTERN, hit)
        for hit in _matches(effective.strong_name_patterns, name)
    )
    signals.weak.extend(
        (AgencyMatchReason.NAME_PATTERN, hit)
        for hit in _matches(effective.weak_name_patterns, name)
    )

    category = (competitor.category or "").strip().lower()
    if category and category in effective.service_provider_categories:
        signals.strong.append((AgencyMatchReason.CATEGORY, category))

    text = competitor.positioning_text or ""
    if text.strip():
        signals.strong.extend(
            (AgencyMatchReason.POSITIONING_STRONG, hit)
            for hit in _matches(effective.strong_positioning_patterns, text)
        )
        signals.weak.extend(
            (AgencyMatchReason.POSITIONING_WEAK, hit)
            for hit in _matches(effective.weak_positioning_patterns, text)
        )
    return signals


def filter_agency_competitors(
    competitors: Sequence[CompetitorProfile],
    config: SanitizerConfig | None = None,
) -> AgencyFilterResult:
    effective = config or SanitizerConfig()
    result = AgencyFilterResult()
    for competitor in competitors:
        signals = collect_agency_signals(competitor, effective)
        if signals.is_agency(effective.weak_signal_threshold):
            log.info(
                "Rejected agency competitor %r: %s",
                competitor.name,
                ", ".join(signals.labels),
            )
            result.rejected.append(
                AgencyRejection(
                    competitor=competitor, reasons=signals.reasons, signals=signals.labels
                )
            )
            continue
        if signals.weak:
            log.warning(
                "Borderline agency match kept for %r: %s",
                competitor.name,
                ", ".join(signals.labels),
            )
            result.borderline.append(
                AgencyRejection(
                    competitor=competitor, reasons=signals.reasons, signals=signals.labels
                )
            )
        result.accepted.append(competitor)
    return result


def sanitize_competitors(
    competitors: Sequence[CompetitorProfile],
    subject: SubjectCompany,
    config: SanitizerConfig | None = None,
) -> SanitizationResult:
    """Run both filters over ``competitors`` and keep what neither rejects."""

    self_result = filter_self_competitors(competitors, subject, config)
    agency_result = filter_agency_competitors(competitors, config)
    rejected = {id(item.competitor) for item in self_result.rejected}
    rejected.update(id(item.competitor) for item in agency_result.rejected)
    return SanitizationResult(
        accepted=[competitor for competitor in competitors if id(competitor) not in rejected],
        self_rejected=self_result.rejected,
        agency_rejected=agency_result.rejected,
        borderline=agency_result.borderline,
    )
