from __future__ import annotations

from uuid import uuid4

import fakeredis
import pytest

from gridmerge.actions import dispatch_action
from gridmerge.config import GameConfig
from gridmerge.core.coords import CellCoordinate, LatLng
from gridmerge.game_store import create_game, load_game, save_game
from gridmerge.lock import game_lock
from gridmerge.streams import read_events


def _seed(r: fakeredis.FakeRedis, config: GameConfig, cells: dict[tuple[int, int], int | None], held: int | None = None):
    gid = create_game(r=r)
    state = load_game(r=r, game_id=gid, config=config)
    for (i, j), v in cells.items():
        state.store.set(CellCoordinate(i, j), v)
    state.held = held
    save_game(r=r, game_id=gid, state=state)
    return gid


def test_activate_persists_and_logs_events(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {(2, 2): 1})

    result = dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 2, "j": 2}, config=config)

    assert result.outcome == "pickup"
    assert result.redraw
    assert not result.won

    reloaded = load_game(r=r, game_id=gid, config=config)
    assert reloaded.held == 1
    assert reloaded.store.get(CellCoordinate(2, 2)) is None

    events = read_events(r=r, game_id=str(gid))
    types = [fields["type"] for _, fields in events]
    assert types == ["INTERACTION", "STATE_CHANGED"]
    assert events[0][1]["outcome"] == "pickup"
    assert events[0][1]["cell"] == "2,2"


def test_merge_reaching_threshold_reports_win(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {(1, 1): 2}, held=2)

    result = dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 1, "j": 1}, config=config)

    assert result.outcome == "merge"
    assert result.won
    assert result.state.held == 4
    win = next(e for e in result.events if e.type == "WIN")
    assert win.payload["held"] == 4


def test_rejected_interaction_writes_nothing(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {(9, 9): 1})
    before = r.hgetall(f"gridmerge:game:{gid}:overrides")

    result = dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 9, "j": 9}, config=config)

    assert result.outcome == "out_of_range"
    assert not result.redraw
    assert r.hgetall(f"gridmerge:game:{gid}:overrides") == before
    assert load_game(r=r, game_id=gid, config=config).held is None


def test_step_and_move_follow_active_mode(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {})

    assert dispatch_action(r=r, game_id=gid, action="step", payload={"key": "w"}, config=config).outcome == "moved"
    assert dispatch_action(r=r, game_id=gid, action="move", payload={"lat": 1.0, "lng": 1.0}, config=config).outcome == "ignored"

    toggled = dispatch_action(r=r, game_id=gid, action="toggle_mode", payload={"geolocation_available": True}, config=config)
    assert toggled.notice is None
    assert toggled.state.mode == "geolocation"

    assert dispatch_action(r=r, game_id=gid, action="step", payload={"key": "w"}, config=config).outcome == "ignored"
    moved = dispatch_action(r=r, game_id=gid, action="move", payload={"lat": 1.0, "lng": 1.0}, config=config)
    assert moved.outcome == "moved"

    state = load_game(r=r, game_id=gid, config=config)
    assert state.mode == "geolocation"
    assert (state.position.lat, state.position.lng) == (1.0, 1.0)


def test_unavailable_geolocation_is_a_notice(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {})

    result = dispatch_action(
        r=r, game_id=gid, action="toggle_mode", payload={"geolocation_available": False}, config=config
    )

    assert result.notice is not None
    assert result.state.mode == "keyboard"
    assert [e.type for e in result.events] == ["NOTICE"]


def test_reset_clears_everything(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {(0, 1): 2, (0, 2): None}, held=8)

    result = dispatch_action(r=r, game_id=gid, action="reset", payload={}, config=config)

    assert result.redraw
    assert not r.exists(f"gridmerge:game:{gid}:overrides")
    state = load_game(r=r, game_id=gid, config=config)
    assert state.held is None
    assert len(state.store) == 0
    assert state.position == config.start_position


def test_unknown_game_and_bad_payloads_raise(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    with pytest.raises(ValueError, match="Game not found"):
        dispatch_action(r=r, game_id=uuid4(), action="activate", payload={"i": 0, "j": 0}, config=config)

    gid = _seed(r, config, {})
    with pytest.raises(ValueError):
        dispatch_action(r=r, game_id=gid, action="activate", payload={"i": "x", "j": 0}, config=config)
    with pytest.raises(ValueError):
        dispatch_action(r=r, game_id=gid, action="teleport", payload={}, config=config)  # type: ignore[arg-type]


def test_busy_session_is_refused(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {(1, 1): 1})

    with game_lock(r=r, game_id=str(gid)):
        with pytest.raises(ValueError, match="busy"):
            dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 1, "j": 1}, config=config)

    assert dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 1, "j": 1}, config=config).outcome == "pickup"


def test_picked_up_cell_stays_empty_despite_corrupt_override_entry(r: fakeredis.FakeRedis, config: GameConfig) -> None:
    gid = _seed(r, config, {(1, 1): 2})
    r.hset(f"gridmerge:game:{gid}:overrides", mapping={"garbage": "1"})

    result = dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 1, "j": 1}, config=config)
    assert result.outcome == "pickup"

    reloaded = load_game(r=r, game_id=gid, config=config)
    assert reloaded.held == 2
    assert reloaded.store.get(CellCoordinate(1, 1)) is None
    again = dispatch_action(r=r, game_id=gid, action="activate", payload={"i": 1, "j": 1}, config=config)
    assert again.outcome == "place"


def test_persisted_geolocation_mode_falls_back_with_notice() -> None:
    r = fakeredis.FakeRedis(decode_responses=True)
    cfg = GameConfig(geolocation_enabled=False, win_threshold=4, start_position=LatLng(lat=0.00005, lng=0.00005))
    gid = create_game(r=r)
    r.set(f"gridmerge:game:{gid}:mode", "geolocation")

    result = dispatch_action(r=r, game_id=gid, action="step", payload={"key": "w"}, config=cfg)

    assert result.outcome == "moved"
    assert result.notice is not None
    assert result.state.mode == "keyboard"
    assert [e.type for e in result.events] == ["STATE_CHANGED", "STATE_CHANGED", "NOTICE"]
    assert r.get(f"gridmerge:game:{gid}:mode") == "keyboard"
