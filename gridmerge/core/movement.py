from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Literal, Protocol, overload

from gridmerge.core.coords import LatLng

logger = logging.getLogger(__name__)

MoveSink = Callable[[LatLng], None]


class MovementMode(StrEnum):
    keyboard = "keyboard"
    geolocation = "geolocation"


class MovementSourceUnavailable(RuntimeError):
    """The requested movement source could not be acquired."""


class MovementSource(Protocol):
    mode: MovementMode
    enabled: bool

    def enable(self) -> None:  # pragma: no cover
        ...

    def disable(self) -> None:  # pragma: no cover
        ...


# WASD -> (dlat, dlng) in tiles.
KEY_STEPS: dict[str, tuple[int, int]] = {
    "w": (1, 0),
    "s": (-1, 0),
    "a": (0, -1),
    "d": (0, 1),
}


@dataclass(slots=True)
class KeyboardSource:
    """Discrete steps: each key press moves the player exactly one tile."""

    emit: MoveSink
    position: Callable[[], LatLng]
    tile_degrees: float
    mode: MovementMode = MovementMode.keyboard
    enabled: bool = False

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def press(self, key: str) -> bool:
        step = KEY_STEPS.get(key.lower())
        if step is None or not self.enabled:
            return False
        here = self.position()
        dlat, dlng = step
        target = LatLng(lat=here.lat + dlat * self.tile_degrees, lng=here.lng + dlng * self.tile_degrees)
        logger.debug("keyboard step %r to %s", key, target)
        self.emit(target)
        return True


@dataclass(slots=True)
class GeolocationSource:
    """Continuous position updates pushed by the client's location watch."""

    emit: MoveSink
    available: bool = True
    mode: MovementMode = MovementMode.geolocation
    enabled: bool = False

    def enable(self) -> None:
        if not self.available:
            raise MovementSourceUnavailable("Geolocation is not available")
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False

    def receive(self, position: LatLng) -> bool:
        if not self.enabled:
            return False
        logger.debug("geolocation update to %s", position)
        self.emit(position)
        return True


@overload
def make_movement_source(
    mode: Literal[MovementMode.keyboard],
    *,
    emit: MoveSink,
    position: Callable[[], LatLng],
    tile_degrees: float,
    geolocation_available: bool = ...,
) -> KeyboardSource: ...


@overload
def make_movement_source(
    mode: Literal[MovementMode.geolocation],
    *,
    emit: MoveSink,
    position: Callable[[], LatLng],
    tile_degrees: float,
    geolocation_available: bool = ...,
) -> GeolocationSource: ...


@overload
def make_movement_source(
    mode: MovementMode,
    *,
    emit: MoveSink,
    position: Callable[[], LatLng],
    tile_degrees: float,
    geolocation_available: bool = ...,
) -> KeyboardSource | GeolocationSource: ...


def make_movement_source(
    mode: MovementMode,
    *,
    emit: MoveSink,
    position: Callable[[], LatLng],
    tile_degrees: float,
    geolocation_available: bool = True,
) -> KeyboardSource | GeolocationSource:
    if mode == MovementMode.keyboard:
        return KeyboardSource(emit=emit, position=position, tile_degrees=tile_degrees)
    if mode == MovementMode.geolocation:
        return GeolocationSource(emit=emit, available=geolocation_available)
    raise ValueError(f"Unknown movement mode: {mode}")


@dataclass(slots=True)
class MovementController:
    """Keeps exactly one movement source subscribed at a time."""

    sources: dict[MovementMode, MovementSource]
    mode: MovementMode = MovementMode.keyboard
    _started: bool = field(default=False, init=False)

    def start(self) -> str | None:
        """Enable the source for the current mode, falling back to keyboard if it is unavailable."""

        self._started = True
        try:
            self.sources[self.mode].enable()
        except MovementSourceUnavailable as e:
            logger.warning("movement source %s unavailable at start: %s", self.mode, e)
            self.mode = MovementMode.keyboard
            self.sources[self.mode].enable()
            return str(e)
        return None

    def toggle(self) -> str | None:
        """Switch to the other source.

        Returns a notice if the new source could not be acquired; the controller then
        stays in (and re-enables) the previous mode.
        """

        if not self._started:
            self.start()

        previous = self.sources[self.mode]
        next_mode = MovementMode.geolocation if self.mode == MovementMode.keyboard else MovementMode.keyboard
        nxt = self.sources[next_mode]

        previous.disable()
        try:
            nxt.enable()
        except MovementSourceUnavailable as e:
            previous.enable()
            logger.info("mode toggle to %s refused: %s", next_mode, e)
            return f"{e}; staying in {self.mode.value} mode"

        self.mode = next_mode
        logger.debug("movement mode -> %s", next_mode)
        return None

    def source(self, mode: MovementMode) -> MovementSource:
        return self.sources[mode]
