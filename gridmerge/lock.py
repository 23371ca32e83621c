from __future__ import annotations

from contextlib import contextmanager
from uuid import uuid4

import redis


@contextmanager
def game_lock(*, r: redis.Redis, game_id: str, ttl_ms: int = 5_000):
    """Per-session lock so two interactions on one game never interleave.

    Busy sessions are refused rather than waited on; the client simply retries the gesture.
    """

    key = f"gridmerge:lock:{game_id}"
    token = uuid4().hex
    acquired = r.set(key, token, nx=True, px=ttl_ms)
    if not acquired:
        raise ValueError("Game is busy")
    try:
        yield
    finally:
        # Only release our own lock; after a TTL expiry someone else may hold it.
        if r.get(key) == token:
            r.delete(key)
