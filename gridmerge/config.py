from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from gridmerge.core.coords import GRID_ORIGIN, LatLng
from gridmerge.core.luck import SPAWN_PROBABILITY, is_token_value
from gridmerge.core.movement import MovementMode


@dataclass(frozen=True, slots=True)
class GameConfig:
    # Edge length of a cell, in degrees.
    tile_degrees: float = 0.0001
    # Max Chebyshev distance (in cells) between the player and a cell they interact with.
    interaction_radius: int = 3
    win_threshold: int = 64
    spawn_probability: float = SPAWN_PROBABILITY
    origin: LatLng = GRID_ORIGIN
    start_position: LatLng = LatLng(lat=36.997936938057016, lng=-122.05703507501151)
    default_mode: MovementMode = MovementMode.keyboard
    # Deployment switch; when off, the geolocation source can never be acquired.
    geolocation_enabled: bool = True

    def __post_init__(self) -> None:
        if self.tile_degrees <= 0:
            raise ValueError("tile_degrees must be positive")
        if self.interaction_radius < 0:
            raise ValueError("interaction_radius must be >= 0")
        if not is_token_value(self.win_threshold):
            raise ValueError("win_threshold must be a positive power of two")
        if not 0 < self.spawn_probability <= 1:
            raise ValueError("spawn_probability must be in (0, 1]")


def _truthy(raw: str) -> bool:
    return raw.strip().casefold() in {"1", "true", "yes", "on"}


def load_config_from_env(environ: Mapping[str, str] | None = None) -> GameConfig:
    """Build a GameConfig from `GRIDMERGE_*` environment variables; unset ones keep their defaults."""

    env = os.environ if environ is None else environ
    defaults = GameConfig()

    def _get(name: str) -> str | None:
        raw = env.get(f"GRIDMERGE_{name}")
        return raw if raw not in (None, "") else None

    tile = _get("TILE_DEGREES")
    radius = _get("INTERACTION_RADIUS")
    threshold = _get("WIN_THRESHOLD")
    spawn = _get("SPAWN_PROBABILITY")
    lat = _get("START_LAT")
    lng = _get("START_LNG")
    mode = _get("DEFAULT_MODE")
    geo = _get("GEOLOCATION_ENABLED")

    return GameConfig(
        tile_degrees=float(tile) if tile else defaults.tile_degrees,
        interaction_radius=int(radius) if radius else defaults.interaction_radius,
        win_threshold=int(threshold) if threshold else defaults.win_threshold,
        spawn_probability=float(spawn) if spawn else defaults.spawn_probability,
        start_position=LatLng(
            lat=float(lat) if lat else defaults.start_position.lat,
            lng=float(lng) if lng else defaults.start_position.lng,
        ),
        default_mode=MovementMode(mode) if mode else defaults.default_mode,
        geolocation_enabled=_truthy(geo) if geo else defaults.geolocation_enabled,
    )


_CONFIG: GameConfig | None = None


def init_config(*, config: GameConfig | None = None) -> GameConfig:
    """Load config once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _CONFIG
    if _CONFIG is None:
        _CONFIG = config if config is not None else load_config_from_env()
    return _CONFIG


def reset_config_for_tests() -> None:
    global _CONFIG
    _CONFIG = None


def get_config() -> GameConfig:
    if _CONFIG is None:
        return init_config()
    return _CONFIG
