from __future__ import annotations

from uuid import UUID

import fakeredis
from fastapi.testclient import TestClient

from gridmerge.config import GameConfig
from gridmerge.core.coords import CellCoordinate
from gridmerge.game_store import load_game, save_game


def test_ws_receives_redraw_and_win(
    client_and_redis: tuple[TestClient, fakeredis.FakeRedis], config: GameConfig
) -> None:
    client, r = client_and_redis
    game_id = client.post("/game").json()["game_id"]

    state = load_game(r=r, game_id=UUID(game_id), config=config)
    state.store.set(CellCoordinate(1, 1), 4)
    save_game(r=r, game_id=UUID(game_id), state=state)

    with client.websocket_connect(f"/ws/game/{game_id}") as ws:
        res = client.post(f"/game/{game_id}/activate", json={"i": 1, "j": 1})
        assert res.status_code == 200

        first = ws.receive_json()
        second = ws.receive_json()

    assert first == {"type": "win", "game_id": game_id, "held": 4}
    assert second == {"type": "state_changed", "game_id": game_id}


def test_ws_receives_notice_when_mode_switch_refused(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    game_id = client.post("/game").json()["game_id"]

    with client.websocket_connect(f"/ws/game/{game_id}") as ws:
        client.post(f"/game/{game_id}/mode/toggle", json={"geolocation_available": False})
        msg = ws.receive_json()

    assert msg["type"] == "notice"
    assert "keyboard" in msg["message"]
