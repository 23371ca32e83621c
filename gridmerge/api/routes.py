from __future__ import annotations

from typing import Any
from uuid import UUID

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status

from gridmerge.actions import ActionName, ActionResult, dispatch_action
from gridmerge.api.deps import get_game_config, get_redis
from gridmerge.api.models import (
    ActionResponse,
    ActivateCellRequest,
    Bounds,
    Cell,
    CellView,
    GameListResponse,
    GameView,
    GridView,
    MoveRequest,
    PlayerPosition,
    StepRequest,
    ToggleModeRequest,
)
from gridmerge.config import GameConfig
from gridmerge.core.coords import LatLng, cells_in_view, chebyshev, to_bounds, to_cell
from gridmerge.core.engine import GameState
from gridmerge.game_store import create_game, game_exists, list_games, require_game
from gridmerge.streams import events_key, read_events
from gridmerge.websocket_hub import hub

router = APIRouter()

# Cells drawn around the player when the client doesn't send its view bounds.
DEFAULT_VIEW_RADIUS = 10
MAX_GRID_CELLS = 4096


def _position(p: LatLng) -> PlayerPosition:
    return PlayerPosition(lat=p.lat, lng=p.lng)


def _game_view(*, game_id: UUID, state: GameState, config: GameConfig) -> GameView:
    cell = to_cell(state.position, origin=config.origin, tile_degrees=config.tile_degrees)
    return GameView(
        game_id=game_id,
        held=state.held,
        position=_position(state.position),
        player_cell=Cell(i=cell.i, j=cell.j),
        mode=state.mode,
        override_count=len(state.store),
        win_threshold=config.win_threshold,
        interaction_radius=config.interaction_radius,
    )


def _require(r: redis.Redis, game_id: UUID, config: GameConfig) -> GameState:
    try:
        return require_game(r=r, game_id=game_id, config=config)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


async def _run_action(
    *,
    r: redis.Redis,
    config: GameConfig,
    game_id: UUID,
    action: ActionName,
    payload: dict[str, Any],
) -> ActionResponse:
    if not game_exists(r=r, game_id=game_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    try:
        result: ActionResult = dispatch_action(r=r, game_id=game_id, action=action, payload=payload, config=config)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    await hub.broadcast_events(str(game_id), result.events)
    return ActionResponse(
        game=_game_view(game_id=game_id, state=result.state, config=config),
        outcome=result.outcome,
        notice=result.notice,
        won=result.won,
    )


@router.websocket("/ws/game/{game_id}")
async def game_updates_ws(websocket: WebSocket, game_id: UUID) -> None:
    gid = str(game_id)
    await hub.connect(gid, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(gid, websocket)
    except Exception:
        await hub.disconnect(gid, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/game", response_model=GameView, status_code=status.HTTP_201_CREATED)
async def create_game_route(
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> GameView:
    game_id = create_game(r=r)
    state = require_game(r=r, game_id=game_id, config=config)
    return _game_view(game_id=game_id, state=state, config=config)


@router.get("/game", response_model=GameListResponse)
async def list_games_route(r: redis.Redis = Depends(get_redis)) -> GameListResponse:
    return GameListResponse(games=list_games(r=r))


@router.get("/game/{game_id}", response_model=GameView)
async def get_game_route(
    game_id: UUID,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> GameView:
    state = _require(r, game_id, config)
    return _game_view(game_id=game_id, state=state, config=config)


@router.get("/game/{game_id}/grid", response_model=GridView)
async def grid_route(
    game_id: UUID,
    south: float | None = None,
    west: float | None = None,
    north: float | None = None,
    east: float | None = None,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> GridView:
    """Cells overlapping the client's view, with their current token and whether they're in reach.

    Without view bounds, a square window around the player is returned.
    """

    state = _require(r, game_id, config)
    tile = config.tile_degrees
    player = to_cell(state.position, origin=config.origin, tile_degrees=tile)

    bounds = (south, west, north, east)
    if all(b is None for b in bounds):
        sw = to_bounds(player.offset(-DEFAULT_VIEW_RADIUS, -DEFAULT_VIEW_RADIUS), origin=config.origin, tile_degrees=tile).center
        ne = to_bounds(player.offset(DEFAULT_VIEW_RADIUS, DEFAULT_VIEW_RADIUS), origin=config.origin, tile_degrees=tile).center
        margin = 0
    elif any(b is None for b in bounds):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="south, west, north and east must be given together",
        )
    else:
        sw = LatLng(lat=float(south), lng=float(west))  # type: ignore[arg-type]
        ne = LatLng(lat=float(north), lng=float(east))  # type: ignore[arg-type]
        margin = 1

    lo = to_cell(sw, origin=config.origin, tile_degrees=tile)
    hi = to_cell(ne, origin=config.origin, tile_degrees=tile)
    n_cells = (abs(hi.i - lo.i) + 1 + 2 * margin) * (abs(hi.j - lo.j) + 1 + 2 * margin)
    if n_cells > MAX_GRID_CELLS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"view covers {n_cells} cells (max {MAX_GRID_CELLS})",
        )

    cells: list[CellView] = []
    for cell in cells_in_view(sw, ne, origin=config.origin, tile_degrees=tile, margin=margin):
        b = to_bounds(cell, origin=config.origin, tile_degrees=tile)
        cells.append(
            CellView(
                i=cell.i,
                j=cell.j,
                token=state.store.get(cell),
                bounds=Bounds(south_west=_position(b.south_west), north_east=_position(b.north_east)),
                in_range=chebyshev(player, cell) <= config.interaction_radius,
                overridden=state.store.is_overridden(cell),
            )
        )

    return GridView(game_id=game_id, player_cell=Cell(i=player.i, j=player.j), held=state.held, cells=cells)


@router.post("/game/{game_id}/activate", response_model=ActionResponse)
async def activate_cell_route(
    game_id: UUID,
    payload: ActivateCellRequest,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> ActionResponse:
    return await _run_action(r=r, config=config, game_id=game_id, action="activate", payload=payload.model_dump())


@router.post("/game/{game_id}/move", response_model=ActionResponse)
async def move_route(
    game_id: UUID,
    payload: MoveRequest,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> ActionResponse:
    return await _run_action(r=r, config=config, game_id=game_id, action="move", payload=payload.model_dump())


@router.post("/game/{game_id}/step", response_model=ActionResponse)
async def step_route(
    game_id: UUID,
    payload: StepRequest,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> ActionResponse:
    return await _run_action(r=r, config=config, game_id=game_id, action="step", payload=payload.model_dump())


@router.post("/game/{game_id}/mode/toggle", response_model=ActionResponse)
async def toggle_mode_route(
    game_id: UUID,
    payload: ToggleModeRequest | None = None,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> ActionResponse:
    body = (payload or ToggleModeRequest()).model_dump()
    return await _run_action(r=r, config=config, game_id=game_id, action="toggle_mode", payload=body)


@router.post("/game/{game_id}/reset", response_model=ActionResponse)
async def reset_route(
    game_id: UUID,
    r: redis.Redis = Depends(get_redis),
    config: GameConfig = Depends(get_game_config),
) -> ActionResponse:
    return await _run_action(r=r, config=config, game_id=game_id, action="reset", payload={})


@router.get("/game/{game_id}/events")
async def get_game_events_route(
    game_id: UUID,
    count: int = 20,
    r: redis.Redis = Depends(get_redis),
) -> dict[str, object]:
    """Debug endpoint: read the session's event stream.

    Intended for local/dev testing when redis-cli isn't available.
    """

    if count < 1 or count > 200:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 200")

    entries = read_events(r=r, game_id=str(game_id), count=count)
    events = [{"id": eid, "fields": fields} for eid, fields in entries]
    return {"game_id": str(game_id), "stream": events_key(str(game_id)), "events": events}
