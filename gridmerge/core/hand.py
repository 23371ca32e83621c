from __future__ import annotations

from statemachine import State, StateMachine


class HandFSM(StateMachine):
    """FSM over the player's single inventory slot.

    - empty --pickup--> holding
    - holding --place--> empty
    - holding --merge--> holding (value doubles)

    There is no transition out of `holding` that picks up another token, so a second
    pickup raises `TransitionNotAllowed`. The engine owns the held value; this only
    guards transitions.
    """

    empty = State("empty", value="empty", initial=True)
    holding = State("holding", value="holding")

    pickup = empty.to(holding)
    place = holding.to(empty)
    merge = holding.to.itself()

    def __init__(self, held: int | None):
        super().__init__(start_value="empty" if held is None else "holding")
