from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable

from gridmerge.core.coords import CellCoordinate

logger = logging.getLogger(__name__)

TokenValue = int

# roll < SPAWN_PROBABILITY spawns a token; the lower half of that band spawns the low value.
SPAWN_PROBABILITY = 0.15
LOW_VALUE = 1
HIGH_VALUE = 2

RollFn = Callable[[CellCoordinate], float]


def roll(cell: CellCoordinate) -> float:
    """Stable pseudo-random number in [0, 1) keyed by the cell's canonical string.

    No seed is stored anywhere: the same cell always hashes to the same value.
    """

    h = hashlib.blake2b(cell.key.encode("utf-8"), digest_size=8).digest()
    return (int.from_bytes(h, "little") & ((1 << 53) - 1)) / float(1 << 53)


def spawn_value_for_roll(r: float, *, spawn_probability: float = SPAWN_PROBABILITY) -> TokenValue | None:
    if r >= spawn_probability:
        return None
    return LOW_VALUE if r < spawn_probability / 2 else HIGH_VALUE


def spawn_value(
    cell: CellCoordinate,
    *,
    roll_fn: RollFn = roll,
    spawn_probability: float = SPAWN_PROBABILITY,
) -> TokenValue | None:
    value = spawn_value_for_roll(roll_fn(cell), spawn_probability=spawn_probability)
    if value is not None:
        logger.debug("spawn token %s at %s", value, cell.key)
    return value


def is_token_value(value: object) -> bool:
    # bool is an int subclass; True must not pass as token 1.
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value > 0 and (value & (value - 1)) == 0
