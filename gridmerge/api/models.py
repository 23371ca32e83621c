from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from gridmerge.core.movement import MovementMode


class PlayerPosition(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Cell(BaseModel):
    i: int
    j: int


class ActivateCellRequest(Cell):
    pass


class MoveRequest(PlayerPosition):
    pass


class StepRequest(BaseModel):
    key: str = Field(..., min_length=1, max_length=1)


class ToggleModeRequest(BaseModel):
    # Whether the client could acquire a location watch.
    geolocation_available: bool = True


class GameView(BaseModel):
    game_id: UUID
    held: int | None = None
    position: PlayerPosition
    player_cell: Cell
    mode: MovementMode
    override_count: int = 0
    win_threshold: int
    interaction_radius: int


class ActionResponse(BaseModel):
    game: GameView
    outcome: str | None = None
    notice: str | None = None
    won: bool = False


class Bounds(BaseModel):
    south_west: PlayerPosition
    north_east: PlayerPosition


class CellView(BaseModel):
    i: int
    j: int
    token: int | None = None
    bounds: Bounds
    in_range: bool
    overridden: bool = False


class GridView(BaseModel):
    game_id: UUID
    player_cell: Cell
    held: int | None = None
    cells: list[CellView] = Field(default_factory=list)


class GameListResponse(BaseModel):
    games: list[UUID]
