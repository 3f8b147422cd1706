"""Guard regeneration against silently discarding unsaved draft edits."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger

from convergent.domain.errors import DirtyDraftError

log = getLogger(__name__)


class DraftAction(StrEnum):
    SAVE_THEN_REGENERATE = "save_then_regenerate"
    DISCARD = "discard"


@dataclass(slots=True, frozen=True, kw_only=True)
class DraftState:
    dirty: bool
    action: DraftAction | None = None

    @property
    def must_save_first(self) -> bool:
        return self.dirty and self.action is DraftAction.SAVE_THEN_REGENERATE


def check_draft(
    draft_revision_id: str | None,
    saved_revision_id: str | None,
    action: DraftAction | None = None,
) -> DraftState:
    """Return the draft state, raising if a dirty draft has no explicit decision.

    A draft is dirty when it was not built from the last saved revision.
    """

    dirty = draft_revision_id != saved_revision_id
    if not dirty:
        return DraftState(dirty=False)
    if action is None:
        raise DirtyDraftError(
            "Draft has unsaved changes; save then regenerate, or discard them first"
        )
    log.info("Dirty draft resolved with %s", action)
    return DraftState(dirty=True, action=action)
