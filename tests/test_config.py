from __future__ import annotations

import pytest

from gridmerge.config import GameConfig, get_config, init_config, load_config_from_env
from gridmerge.core.coords import LatLng
from gridmerge.core.movement import MovementMode


def test_defaults_without_env() -> None:
    cfg = load_config_from_env({})
    assert cfg == GameConfig()
    assert cfg.interaction_radius == 3
    assert cfg.win_threshold == 64
    assert cfg.spawn_probability == 0.15
    assert cfg.default_mode == MovementMode.keyboard


def test_env_overrides() -> None:
    cfg = load_config_from_env(
        {
            "GRIDMERGE_TILE_DEGREES": "0.001",
            "GRIDMERGE_INTERACTION_RADIUS": "5",
            "GRIDMERGE_WIN_THRESHOLD": "128",
            "GRIDMERGE_START_LAT": "10",
            "GRIDMERGE_START_LNG": "20",
            "GRIDMERGE_DEFAULT_MODE": "geolocation",
            "GRIDMERGE_GEOLOCATION_ENABLED": "false",
        }
    )
    assert cfg.tile_degrees == 0.001
    assert cfg.interaction_radius == 5
    assert cfg.win_threshold == 128
    assert cfg.start_position == LatLng(lat=10.0, lng=20.0)
    assert cfg.default_mode == MovementMode.geolocation
    assert cfg.geolocation_enabled is False


@pytest.mark.parametrize(
    "env",
    [
        {"GRIDMERGE_WIN_THRESHOLD": "50"},
        {"GRIDMERGE_TILE_DEGREES": "0"},
        {"GRIDMERGE_INTERACTION_RADIUS": "-1"},
        {"GRIDMERGE_DEFAULT_MODE": "teleport"},
        {"GRIDMERGE_SPAWN_PROBABILITY": "1.5"},
    ],
)
def test_invalid_env_is_rejected(env: dict[str, str]) -> None:
    with pytest.raises(ValueError):
        load_config_from_env(env)


def test_init_config_caches_first_instance() -> None:
    first = init_config(config=GameConfig(interaction_radius=7))
    assert init_config(config=GameConfig(interaction_radius=1)) is first
    assert get_config().interaction_radius == 7
