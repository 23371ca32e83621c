from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from uuid import UUID, uuid4

import redis
from pydantic import ValidationError

from gridmerge.api.models import PlayerPosition
from gridmerge.config import GameConfig
from gridmerge.core.coords import CellCoordinate, LatLng
from gridmerge.core.engine import GameState, default_spawn_for
from gridmerge.core.luck import TokenValue, is_token_value
from gridmerge.core.movement import MovementMode
from gridmerge.core.store import CellTokenStore, SpawnFn

logger = logging.getLogger(__name__)

GAMES_SET_KEY = "gridmerge:games"
GAME_KEY_PREFIX = "gridmerge:game:"  # + {uuid}:{field}

OVERRIDES_FIELD = "overrides"
HELD_FIELD = "held"
POSITION_FIELD = "position"
MODE_FIELD = "mode"

ALL_FIELDS = (OVERRIDES_FIELD, HELD_FIELD, POSITION_FIELD, MODE_FIELD)


def _field_key(game_id: UUID, field: str) -> str:
    return f"{GAME_KEY_PREFIX}{game_id}:{field}"


# ---- decoding: each field independently falls back to its default ----------


def _decode_overrides(raw: dict[str, str] | None) -> dict[str, TokenValue | None]:
    """Decode the override hash entry by entry; a bad entry is dropped on its own."""

    if not raw:
        return {}
    out: dict[str, TokenValue | None] = {}
    for key, encoded in raw.items():
        try:
            cell = CellCoordinate.from_key(key)
            value = json.loads(encoded)
            if value is not None and not is_token_value(value):
                raise ValueError(f"bad token value {value!r}")
        except (ValueError, TypeError) as e:
            logger.warning("discarding malformed persisted override %r: %s", key, e)
            continue
        out[cell.key] = value
    return out


def _decode_held(raw: str | None) -> TokenValue | None:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning("discarding malformed persisted held token: %r", raw)
        return None
    if not is_token_value(value):
        logger.warning("discarding invalid persisted held token: %r", raw)
        return None
    return value


def _decode_position(raw: str | None, *, default: LatLng) -> LatLng:
    if not raw:
        return default
    try:
        pos = PlayerPosition.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("discarding malformed persisted position: %s", e.errors()[:1])
        return default
    return LatLng(lat=pos.lat, lng=pos.lng)


def _decode_mode(raw: str | None, *, default: MovementMode) -> MovementMode:
    if not raw:
        return default
    try:
        return MovementMode(raw)
    except ValueError:
        logger.warning("discarding unknown persisted movement mode: %r", raw)
        return default


def _read_field(read: Callable[[str], Any], key: str) -> Any:
    # A key of the wrong Redis type reads as absent; the next save overwrites it.
    try:
        return read(key)
    except redis.ResponseError as e:
        logger.warning("discarding unreadable persisted field %s: %s", key, e)
        return None


# ---- sessions ---------------------------------------------------------------


def create_game(*, r: redis.Redis) -> UUID:
    game_id = uuid4()
    r.sadd(GAMES_SET_KEY, str(game_id))
    return game_id


def game_exists(*, r: redis.Redis, game_id: UUID) -> bool:
    return bool(r.sismember(GAMES_SET_KEY, str(game_id)))


def load_game(*, r: redis.Redis, game_id: UUID, config: GameConfig, spawn: SpawnFn | None = None) -> GameState:
    """Rebuild a session's state; missing or malformed fields come back as defaults."""

    raw_overrides = _read_field(r.hgetall, _field_key(game_id, OVERRIDES_FIELD))
    raw_held = _read_field(r.get, _field_key(game_id, HELD_FIELD))
    raw_position = _read_field(r.get, _field_key(game_id, POSITION_FIELD))
    raw_mode = _read_field(r.get, _field_key(game_id, MODE_FIELD))

    store = CellTokenStore.from_overrides(
        _decode_overrides(raw_overrides),
        spawn=spawn or default_spawn_for(config),
    )
    return GameState(
        store=store,
        held=_decode_held(raw_held),
        position=_decode_position(raw_position, default=config.start_position),
        mode=_decode_mode(raw_mode, default=config.default_mode),
    )


def require_game(*, r: redis.Redis, game_id: UUID, config: GameConfig, spawn: SpawnFn | None = None) -> GameState:
    if not game_exists(r=r, game_id=game_id):
        raise ValueError("Game not found")
    return load_game(r=r, game_id=game_id, config=config, spawn=spawn)


def save_game(*, r: redis.Redis, game_id: UUID, state: GameState) -> None:
    overrides = {k: json.dumps(v) for k, v in state.store.overrides.items()}
    position = PlayerPosition(lat=state.position.lat, lng=state.position.lng)

    # The override hash is rewritten whole so entries dropped at load never come back.
    pipe = r.pipeline()
    pipe.delete(_field_key(game_id, OVERRIDES_FIELD))
    if overrides:
        pipe.hset(_field_key(game_id, OVERRIDES_FIELD), mapping=overrides)
    if state.held is None:
        pipe.delete(_field_key(game_id, HELD_FIELD))
    else:
        pipe.set(_field_key(game_id, HELD_FIELD), str(state.held))
    pipe.set(_field_key(game_id, POSITION_FIELD), position.model_dump_json())
    pipe.set(_field_key(game_id, MODE_FIELD), state.mode.value)
    pipe.execute()


def clear_game(*, r: redis.Redis, game_id: UUID) -> None:
    """Drop all four persisted fields; the session itself stays registered."""

    r.delete(*(_field_key(game_id, f) for f in ALL_FIELDS))


def list_games(*, r: redis.Redis) -> list[UUID]:
    out: list[UUID] = []
    for sid in sorted(r.smembers(GAMES_SET_KEY)):
        try:
            out.append(UUID(sid))
        except ValueError:
            continue
    return out


@dataclass(frozen=True, slots=True)
class RedisGateway:
    """Persistence gateway for one session, handed to the InteractionEngine."""

    r: redis.Redis
    game_id: UUID

    def save(self, state: GameState) -> None:
        save_game(r=self.r, game_id=self.game_id, state=state)

    def clear(self) -> None:
        clear_game(r=self.r, game_id=self.game_id)
