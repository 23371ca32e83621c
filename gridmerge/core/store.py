from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType

from gridmerge.core.coords import CellCoordinate
from gridmerge.core.luck import TokenValue, is_token_value, spawn_value

logger = logging.getLogger(__name__)

SpawnFn = Callable[[CellCoordinate], TokenValue | None]


class CellTokenStore:
    """Authoritative token value per cell.

    Cells that were never touched are not stored: their value is recomputed from the
    deterministic generator on every read. Only cells whose state diverges from the
    generated default (the overrides) are kept, keyed by the canonical cell key, so
    memory grows with the number of cells ever touched and not with the area explored.
    """

    def __init__(self, *, spawn: SpawnFn = spawn_value, overrides: Mapping[str, TokenValue | None] | None = None) -> None:
        self._spawn = spawn
        self._overrides: dict[str, TokenValue | None] = {}
        for key, value in (overrides or {}).items():
            self.set(CellCoordinate.from_key(key), value)

    @classmethod
    def from_overrides(
        cls,
        overrides: Mapping[str, TokenValue | None],
        *,
        spawn: SpawnFn = spawn_value,
    ) -> "CellTokenStore":
        return cls(spawn=spawn, overrides=overrides)

    def get(self, cell: CellCoordinate) -> TokenValue | None:
        key = cell.key
        if key in self._overrides:
            return self._overrides[key]
        return self._spawn(cell)

    def set(self, cell: CellCoordinate, value: TokenValue | None) -> None:
        if value is not None and not is_token_value(value):
            raise ValueError(f"Token value must be a positive power of two, got {value!r}")
        self._overrides[cell.key] = value
        logger.debug("override %s -> %s", cell.key, value)

    def is_overridden(self, cell: CellCoordinate) -> bool:
        return cell.key in self._overrides

    @property
    def overrides(self) -> Mapping[str, TokenValue | None]:
        return MappingProxyType(dict(self._overrides))

    def clear(self) -> None:
        self._overrides.clear()

    def __len__(self) -> int:
        return len(self._overrides)
