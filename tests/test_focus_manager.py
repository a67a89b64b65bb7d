"""
Tests for FocusManager focus derivation and restore.
"""

import pytest

from flashdeck.exceptions import SessionValidationError
from flashdeck.focus_manager import FocusManager
from flashdeck.models import Session


@pytest.fixture
def focus_manager(clock) -> FocusManager:
    return FocusManager(clock=clock)


def _finished(cards, judgments, parent=None) -> Session:
    return Session(cards=tuple(cards), judgments=list(judgments), parent_session=parent)


def test_focus_keeps_missed_cards_in_order(focus_manager, make_cards, clock):
    cards = make_cards(4)
    session = _finished(cards, [True, False, True, False])

    focused = focus_manager.derive_focus(session)

    assert [c.card_id for c in focused.cards] == ["c1", "c3"]
    assert focused.judgments == []
    assert focused.index == 0
    assert not focused.revealed
    assert not focused.submitted
    assert focused.started_at == clock()
    assert focused.parent_session is session
    assert focused.is_focused


def test_focus_does_not_mutate_source(focus_manager, make_cards):
    session = _finished(make_cards(2), [False, False])
    focus_manager.derive_focus(session)
    assert session.judgments == [False, False]
    assert session.parent_session is None


def test_nothing_missed_returns_none(focus_manager, make_cards):
    session = _finished(make_cards(3), [True, True, True])
    assert focus_manager.derive_focus(session) is None


def test_focus_requires_complete_session(focus_manager, make_cards):
    session = _finished(make_cards(3), [False])
    with pytest.raises(SessionValidationError):
        focus_manager.derive_focus(session)


def test_focus_of_focus_keeps_original_anchor(focus_manager, make_cards):
    original = _finished(make_cards(4), [True, False, False, False])
    first_focus = focus_manager.derive_focus(original)
    first_focus.judgments.extend([True, False, True])

    second_focus = focus_manager.derive_focus(first_focus)

    assert [c.card_id for c in second_focus.cards] == ["c2"]
    assert second_focus.parent_session is original


def test_restore_replays_full_deck(focus_manager, make_cards, clock):
    cards = make_cards(3)
    original = _finished(cards, [False, True, False])
    focused = focus_manager.derive_focus(original)
    focused.judgments.extend([True, True])
    clock.advance(30)

    restored = focus_manager.restore(focused)

    assert restored.cards == original.cards
    assert restored.parent_session is None
    assert restored.judgments == []
    assert restored.started_at == clock()
    assert restored.session_uuid != original.session_uuid
    assert not restored.submitted


def test_restore_from_nested_focus_returns_to_original(focus_manager, make_cards):
    original = _finished(make_cards(3), [False, False, True])
    first = focus_manager.derive_focus(original)
    first.judgments.extend([False, True])
    second = focus_manager.derive_focus(first)

    restored = focus_manager.restore(second)

    assert [c.card_id for c in restored.cards] == ["c0", "c1", "c2"]


def test_restore_without_parent_raises(focus_manager, make_cards):
    with pytest.raises(SessionValidationError):
        focus_manager.restore(_finished(make_cards(1), [True]))


def test_missed_cards_helper(make_cards):
    session = _finished(make_cards(3), [False, True, False])
    assert [c.card_id for c in FocusManager.missed_cards(session)] == ["c0", "c2"]
