from __future__ import annotations

import math
from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class CellCoordinate:
    """Integer grid index (i = latitude axis, j = longitude axis) relative to the grid origin."""

    i: int
    j: int

    @property
    def key(self) -> str:
        return f"{self.i},{self.j}"

    @staticmethod
    def from_key(key: str) -> "CellCoordinate":
        parts = key.split(",")
        if len(parts) != 2:
            raise ValueError(f"Malformed cell key: {key!r}")
        return CellCoordinate(i=int(parts[0]), j=int(parts[1]))

    def offset(self, di: int, dj: int) -> "CellCoordinate":
        return CellCoordinate(i=self.i + di, j=self.j + dj)


@dataclass(frozen=True, slots=True)
class CellBounds:
    south_west: LatLng
    north_east: LatLng

    @property
    def center(self) -> LatLng:
        return LatLng(
            lat=(self.south_west.lat + self.north_east.lat) / 2,
            lng=(self.south_west.lng + self.north_east.lng) / 2,
        )


GRID_ORIGIN = LatLng(lat=0.0, lng=0.0)


def to_cell(position: LatLng, *, origin: LatLng = GRID_ORIGIN, tile_degrees: float) -> CellCoordinate:
    return CellCoordinate(
        i=math.floor((position.lat - origin.lat) / tile_degrees),
        j=math.floor((position.lng - origin.lng) / tile_degrees),
    )


def to_bounds(cell: CellCoordinate, *, origin: LatLng = GRID_ORIGIN, tile_degrees: float) -> CellBounds:
    south = origin.lat + cell.i * tile_degrees
    west = origin.lng + cell.j * tile_degrees
    return CellBounds(
        south_west=LatLng(lat=south, lng=west),
        north_east=LatLng(lat=south + tile_degrees, lng=west + tile_degrees),
    )


def cells_in_view(
    south_west: LatLng,
    north_east: LatLng,
    *,
    origin: LatLng = GRID_ORIGIN,
    tile_degrees: float,
    margin: int = 1,
) -> Iterator[CellCoordinate]:
    """Yield every cell overlapping the view rectangle, plus `margin` extra rings.

    Row-major from the south-west corner.
    """

    lo = to_cell(south_west, origin=origin, tile_degrees=tile_degrees)
    hi = to_cell(north_east, origin=origin, tile_degrees=tile_degrees)
    for i in range(min(lo.i, hi.i) - margin, max(lo.i, hi.i) + margin + 1):
        for j in range(min(lo.j, hi.j) - margin, max(lo.j, hi.j) + margin + 1):
            yield CellCoordinate(i=i, j=j)


def chebyshev(a: CellCoordinate, b: CellCoordinate) -> int:
    return max(abs(a.i - b.i), abs(a.j - b.j))
