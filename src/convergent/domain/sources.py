"""Pick the one source kind whose runs feed a domain import.

Source kinds are walked in :class:`SourceKind` order and the first run that
yields a non-empty candidate inside the requested domain wins. ``supports``
and the import itself both go through :meth:`SourceSelector.select`, so they
can never disagree.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from convergent.config.importing import DEFAULT_RUN_PAGE_LIMIT
from convergent.domain.model import SourceKind
from convergent.domain.priority import DOMAIN_TOOLS, TOOL_DOMAINS

if TYPE_CHECKING:
    from collections.abc import Mapping

    from convergent.domain.candidates import (
        BuildFailure,
        BuildResult,
        CandidateBuilder,
        SubjectCompany,
    )
    from convergent.domain.model import DiagnosticRun, ToolId
    from convergent.domain.ports import DiagnosticRunRepository

log = getLogger(__name__)

NO_RUNS_REASON: Final = "No {label} runs found for this company"
NO_USABLE_RUN_REASON: Final = "No {label} run with usable data found"

TOOL_LABELS: Final[dict[str, str]] = {
    "brand_lab": "Brand Lab",
    "website_lab": "Website Lab",
    "competition_lab": "Competition Lab",
}


@dataclass(slots=True, frozen=True, kw_only=True)
class SourceSelection:
    """Outcome of walking the source kinds for one domain.

    ``kind`` is ``None`` when no source produced candidates; ``reason`` then
    carries the user-visible explanation and ``failure`` the last builder
    failure seen, if any.
    """

    domain: str
    tool: ToolId | None = None
    kind: SourceKind | None = None
    run: DiagnosticRun | None = None
    build: BuildResult | None = None
    reason: str | None = None
    failure: BuildFailure | None = None
    runs_examined: int = 0

    @property
    def found(self) -> bool:
        return self.kind is not None


def tool_for_domain(domain: str) -> ToolId | None:
    """Return the tool that imports ``domain``, if any."""

    if domain in DOMAIN_TOOLS:
        return DOMAIN_TOOLS[domain]
    for tool, domains in TOOL_DOMAINS.items():
        if domain in domains:
            return tool
    return None


@dataclass(slots=True)
class SourceSelector:
    runs: DiagnosticRunRepository
    builders: Mapping[ToolId, CandidateBuilder]
    limit: int = DEFAULT_RUN_PAGE_LIMIT

    def select(self, company_id: str, domain: str, *, subject: SubjectCompany) -> SourceSelection:
        tool = tool_for_domain(domain)
        if tool is None or tool not in self.builders:
            return SourceSelection(domain=domain, reason=f"No source imports domain {domain!r}")

        builder = self.builders[tool]
        label = TOOL_LABELS.get(tool.value, tool.value)
        last_failure: BuildFailure | None = None
        examined = 0
        for kind in SourceKind:
            runs = self.runs.list_runs(company_id, tool, limit=self.limit, kind=kind)
            log.debug(
                "Found %d %s runs for company %s in %s", len(runs), tool, company_id, kind
            )
            for run in runs:
                examined += 1
                build = builder(run, subject=subject)
                if build.usable_for(domain):
                    log.info(
                        "Selected %s run %s from %s for domain %s",
                        tool,
                        run.id,
                        kind,
                        domain,
                    )
                    return SourceSelection(
                        domain=domain,
                        tool=tool,
                        kind=kind,
                        run=run,
                        build=build,
                        runs_examined=examined,
                    )
                if build.failure is None:
                    log.info("Skipping %s run %s: no values for %s", tool, run.id, domain)
                else:
                    last_failure = build.failure
                    log.info(
                        "Skipping %s run %s (%s): %s",
                        tool,
                        run.id,
                        build.failure.kind,
                        build.failure.message,
                    )

        if last_failure is not None:
            reason = last_failure.message
        elif examined == 0:
            reason = NO_RUNS_REASON.format(label=label)
        else:
            reason = NO_USABLE_RUN_REASON.format(label=label)
        return SourceSelection(
            domain=domain,
            tool=tool,
            reason=reason,
            failure=last_failure,
            runs_examined=examined,
        )

    def supports(self, company_id: str, domain: str, *, subject: SubjectCompany) -> bool:
        return self.select(company_id, domain, subject=subject).found
