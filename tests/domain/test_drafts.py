from __future__ import annotations

import pytest

from convergent.domain.drafts import DraftAction, check_draft
from convergent.domain.errors import DirtyDraftError


def test_clean_draft_needs_no_decision() -> None:
    state = check_draft("rev-1", "rev-1")

    assert state.dirty is False
    assert state.must_save_first is False


def test_dirty_draft_without_decision_raises() -> None:
    with pytest.raises(DirtyDraftError):
        check_draft("rev-2", "rev-1")


@pytest.mark.parametrize(
    ("action", "save_first"),
    [(DraftAction.SAVE_THEN_REGENERATE, True), (DraftAction.DISCARD, False)],
)
def test_dirty_draft_with_decision(action: DraftAction, save_first: bool) -> None:
    state = check_draft("rev-2", "rev-1", action)

    assert state.dirty is True
    assert state.must_save_first is save_first
