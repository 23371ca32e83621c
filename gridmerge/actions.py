from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal
from uuid import UUID

import redis

from gridmerge.config import GameConfig
from gridmerge.core.coords import CellCoordinate, LatLng
from gridmerge.core.engine import GameState, InteractionEngine, Outcome
from gridmerge.core.events import GameEvent
from gridmerge.core.store import SpawnFn
from gridmerge.game_store import RedisGateway, require_game
from gridmerge.lock import game_lock
from gridmerge.streams import publish_events
from gridmerge.validators import ValidationContext, pipeline_for_action

logger = logging.getLogger(__name__)

ActionName = Literal["activate", "move", "step", "toggle_mode", "reset"]


@dataclass(frozen=True, slots=True)
class ActionResult:
    state: GameState
    outcome: str | None
    notice: str | None
    events: list[GameEvent]
    event_ids: list[str]

    @property
    def won(self) -> bool:
        return any(e.type == "WIN" for e in self.events)

    @property
    def redraw(self) -> bool:
        return any(e.type == "STATE_CHANGED" for e in self.events)


def dispatch_action(
    *,
    r: redis.Redis,
    game_id: UUID,
    action: ActionName,
    payload: dict[str, Any],
    config: GameConfig,
    spawn: SpawnFn | None = None,
) -> ActionResult:
    """Entry point for every gesture coming from a client.

    Applies an action by:
    - validating the payload shape
    - acquiring the per-session lock
    - loading the session state
    - running the interaction engine (which persists synchronously on every mutation)
    - appending the resulting events to the session's event stream
    """

    gid_str = str(game_id)
    pipeline_for_action(action).validate(ctx=ValidationContext(game_id=gid_str, action=action), payload=payload)

    with game_lock(r=r, game_id=gid_str):
        state = require_game(r=r, game_id=game_id, config=config, spawn=spawn)

        events: list[GameEvent] = []

        def _redraw() -> None:
            events.append(GameEvent.now(type="STATE_CHANGED", payload={"game_id": gid_str}))

        def _win(held: int) -> None:
            events.append(GameEvent.now(type="WIN", payload={"game_id": gid_str, "held": held}))

        geolocation_available = payload.get("geolocation_available")
        engine = InteractionEngine(
            state=state,
            config=config,
            gateway=RedisGateway(r=r, game_id=game_id),
            on_redraw=_redraw,
            on_win=_win,
        )

        outcome: Outcome | None = None

        if action == "activate":
            cell = CellCoordinate(i=int(payload["i"]), j=int(payload["j"]))
            outcome = engine.on_cell_activated(cell)
            events.insert(
                0,
                GameEvent.now(
                    type="INTERACTION",
                    payload={"game_id": gid_str, "cell": cell.key, "outcome": outcome.value, "held": state.held},
                ),
            )

        elif action == "move":
            outcome = engine.receive_position(LatLng(lat=float(payload["lat"]), lng=float(payload["lng"])))

        elif action == "step":
            outcome = engine.step(str(payload["key"]))

        elif action == "toggle_mode":
            engine.on_mode_toggled(
                geolocation_available=None if geolocation_available is None else bool(geolocation_available),
            )

        elif action == "reset":
            engine.reset()

        else:
            raise ValueError(f"Unknown action: {action}")

        # Either a refused mode switch or a persisted mode that could not be restored.
        notice = engine.notice
        if notice is not None:
            events.append(GameEvent.now(type="NOTICE", payload={"game_id": gid_str, "message": notice}))

        ids = publish_events(r=r, game_id=gid_str, events=events)

    logger.debug("game %s action %s -> %s", gid_str, action, outcome)
    return ActionResult(
        state=state,
        outcome=outcome.value if outcome is not None else None,
        notice=notice,
        events=events,
        event_ids=ids,
    )
