from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from gridmerge.core.hand import HandFSM


def test_starts_from_held_value() -> None:
    assert HandFSM(None).current_state.value == "empty"
    assert HandFSM(4).current_state.value == "holding"


def test_pickup_place_merge_transitions() -> None:
    hand = HandFSM(None)
    hand.pickup()
    assert hand.current_state == hand.holding
    hand.merge()
    assert hand.current_state == hand.holding
    hand.place()
    assert hand.current_state == hand.empty


def test_cannot_pick_up_a_second_token() -> None:
    hand = HandFSM(2)
    with pytest.raises(TransitionNotAllowed):
        hand.pickup()


def test_cannot_place_or_merge_with_empty_hand() -> None:
    with pytest.raises(TransitionNotAllowed):
        HandFSM(None).place()
    with pytest.raises(TransitionNotAllowed):
        HandFSM(None).merge()
