"""Exceptions raised by the convergence core.

"No data" outcomes are never raised; they are returned as typed values
(:class:`convergent.domain.candidates.BuildFailure`,
:class:`convergent.domain.importing.ImportResult`). Only the conditions below
escape as exceptions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from convergent.config.errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from convergent.domain.model import FieldPath


class ConflictError(RuntimeError):
    """Raised when a graph write is based on a stale revision."""

    def __init__(
        self,
        company_id: str,
        *,
        expected_revision_id: str | None,
        current_revision_id: str | None,
        paths: Iterable[FieldPath] = (),
    ) -> None:
        self.company_id = company_id
        self.expected_revision_id = expected_revision_id
        self.current_revision_id = current_revision_id
        self.paths = tuple(sorted(paths))
        super().__init__(
            f"Context for company {company_id} changed since it was loaded; refresh and retry"
        )


class ConfigurationGap(ConfigurationError):
    """Raised when a required field spec references a path the engine does not model."""

    def __init__(self, paths: Iterable[FieldPath]) -> None:
        self.paths = tuple(sorted(set(paths)))
        super().__init__(f"Required fields reference unmodelled paths: {', '.join(self.paths)}")


class DirtyDraftError(RuntimeError):
    """Raised when regeneration would silently overwrite unsaved draft edits."""
