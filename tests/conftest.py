from __future__ import annotations

from collections.abc import Generator

import fakeredis
import pytest

from gridmerge.config import GameConfig, reset_config_for_tests
from gridmerge.core.coords import LatLng


@pytest.fixture(autouse=True)
def _reset_config() -> Generator[None, None, None]:
    """Never let a cached config leak between tests."""

    reset_config_for_tests()
    yield
    reset_config_for_tests()


@pytest.fixture()
def config() -> GameConfig:
    """Small, test-friendly config: the player starts in the middle of cell (0, 0)."""

    return GameConfig(
        tile_degrees=0.0001,
        interaction_radius=3,
        win_threshold=4,
        start_position=LatLng(lat=0.00005, lng=0.00005),
    )


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def client_and_redis(config: GameConfig):
    """FastAPI TestClient wired to fakeredis and the test config."""

    from fastapi.testclient import TestClient

    from gridmerge.api.deps import get_game_config, get_redis
    from gridmerge.main import app

    r = fakeredis.FakeRedis(decode_responses=True)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_game_config] = lambda: config
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
