from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from gridmerge.config import GameConfig
from gridmerge.core.coords import CellCoordinate, LatLng, chebyshev, to_cell
from gridmerge.core.hand import HandFSM
from gridmerge.core.luck import TokenValue, spawn_value
from gridmerge.core.movement import (
    GeolocationSource,
    KeyboardSource,
    MovementController,
    MovementMode,
    MovementSource,
    make_movement_source,
)
from gridmerge.core.store import CellTokenStore, SpawnFn

logger = logging.getLogger(__name__)


class Outcome(StrEnum):
    noop = "noop"
    pickup = "pickup"
    place = "place"
    merge = "merge"
    out_of_range = "out_of_range"
    mismatch = "mismatch"
    # Movement input from the source that is not currently subscribed.
    ignored = "ignored"
    moved = "moved"


@dataclass(slots=True)
class GameState:
    """Everything one session mutates: the override store, the held token, the player, the mode."""

    store: CellTokenStore
    position: LatLng
    held: TokenValue | None = None
    mode: MovementMode = MovementMode.keyboard


def default_spawn_for(config: GameConfig) -> SpawnFn:
    def _spawn(cell: CellCoordinate) -> TokenValue | None:
        return spawn_value(cell, spawn_probability=config.spawn_probability)

    return _spawn


class PersistenceGateway(Protocol):
    def save(self, state: GameState) -> None:  # pragma: no cover
        ...

    def clear(self) -> None:  # pragma: no cover
        ...


@dataclass(slots=True)
class InteractionEngine:
    """Pickup / place / merge state machine over a GameState.

    Contract:
      - every event handler runs to completion and either mutates state (then persists
        synchronously and triggers a redraw) or leaves state untouched.
      - rejected interactions are ordinary outcomes, never exceptions.
      - `on_win` fires once each time the held value crosses the win threshold.
    """

    state: GameState
    config: GameConfig
    gateway: PersistenceGateway | None = None
    on_redraw: Callable[[], None] | None = None
    on_win: Callable[[TokenValue], None] | None = None
    geolocation_available: bool = True
    movement: MovementController = field(init=False)
    # Latest non-fatal notice for the user (a movement source that could not be acquired).
    notice: str | None = field(default=None, init=False)
    _keyboard: KeyboardSource = field(init=False)
    _geolocation: GeolocationSource = field(init=False)

    def __post_init__(self) -> None:
        self._start_movement()

    # ---- presentation inputs -------------------------------------------------

    def on_cell_activated(self, cell: CellCoordinate) -> Outcome:
        if not self.in_range(cell):
            logger.debug("cell %s too far from player", cell.key)
            return Outcome.out_of_range

        held = self.state.held
        value = self.state.store.get(cell)
        hand = HandFSM(held)

        if held is None and value is None:
            return Outcome.noop

        if held is None:
            hand.pickup()
            self.state.store.set(cell, None)
            outcome = Outcome.pickup
            new_held: TokenValue | None = value
        elif value is None:
            hand.place()
            self.state.store.set(cell, held)
            outcome = Outcome.place
            new_held = None
        elif value == held:
            hand.merge()
            self.state.store.set(cell, None)
            outcome = Outcome.merge
            new_held = held * 2
        else:
            logger.debug("cannot merge held %s with %s at %s", held, value, cell.key)
            return Outcome.mismatch

        logger.debug("%s at %s: held %s -> %s", outcome, cell.key, held, new_held)
        self._set_held(new_held)
        self._commit()
        return outcome

    def on_player_moved(self, position: LatLng) -> None:
        self.state.position = position
        logger.debug("player moved to %s (cell %s)", position, self.player_cell.key)
        self._commit()

    def step(self, key: str) -> Outcome:
        return Outcome.moved if self._keyboard.press(key) else Outcome.ignored

    def receive_position(self, position: LatLng) -> Outcome:
        return Outcome.moved if self._geolocation.receive(position) else Outcome.ignored

    def on_mode_toggled(self, *, geolocation_available: bool | None = None) -> str | None:
        """Switch movement source; returns a user-facing notice when the switch was refused."""

        if geolocation_available is not None:
            self._geolocation.available = geolocation_available and self.config.geolocation_enabled

        notice = self.movement.toggle()
        if notice is not None:
            self.notice = notice
            return notice

        self.state.mode = self.movement.mode
        self._commit()
        return None

    def reset(self) -> None:
        """Start a new game: drop every override and persisted field, restore defaults."""

        if self.gateway is not None:
            self.gateway.clear()
        self.state.store.clear()
        self.state.held = None
        self.state.position = self.config.start_position
        self.state.mode = self.config.default_mode
        if self._start_movement() is None and self.on_redraw is not None:
            self.on_redraw()

    # ---- queries -------------------------------------------------------------

    @property
    def player_cell(self) -> CellCoordinate:
        return to_cell(self.state.position, origin=self.config.origin, tile_degrees=self.config.tile_degrees)

    def in_range(self, cell: CellCoordinate) -> bool:
        # Always from the latest position; never cached.
        return chebyshev(self.player_cell, cell) <= self.config.interaction_radius

    # ---- internals -----------------------------------------------------------

    def _start_movement(self) -> str | None:
        """Subscribe the source for the current mode; an unavailable one falls back to keyboard."""

        def _position() -> LatLng:
            return self.state.position

        self._keyboard = make_movement_source(
            MovementMode.keyboard,
            emit=self.on_player_moved,
            position=_position,
            tile_degrees=self.config.tile_degrees,
        )
        self._geolocation = make_movement_source(
            MovementMode.geolocation,
            emit=self.on_player_moved,
            position=_position,
            tile_degrees=self.config.tile_degrees,
            geolocation_available=self.geolocation_available and self.config.geolocation_enabled,
        )
        sources: dict[MovementMode, MovementSource] = {
            MovementMode.keyboard: self._keyboard,
            MovementMode.geolocation: self._geolocation,
        }
        self.movement = MovementController(sources=sources, mode=self.state.mode)

        notice = self.movement.start()
        if notice is None:
            return None
        self.notice = f"{notice}; switched to {self.movement.mode.value} mode"
        self.state.mode = self.movement.mode
        self._commit()
        return self.notice

    def _set_held(self, new_held: TokenValue | None) -> None:
        previous = self.state.held
        self.state.held = new_held

        threshold = self.config.win_threshold
        was_winning = previous is not None and previous >= threshold
        if new_held is not None and new_held >= threshold and not was_winning:
            logger.info("win: holding %s (threshold %s)", new_held, threshold)
            if self.on_win is not None:
                self.on_win(new_held)

    def _commit(self) -> None:
        if self.gateway is not None:
            self.gateway.save(self.state)
        if self.on_redraw is not None:
            self.on_redraw()
