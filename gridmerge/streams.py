from __future__ import annotations

from collections.abc import Sequence
from typing import cast

import redis

from gridmerge.core.events import GameEvent

# Cap per-session history; older entries are trimmed approximately.
EVENTS_MAXLEN = 1_000


def events_key(game_id: str) -> str:
    return f"gridmerge:events:{game_id}"


def publish_events(*, r: redis.Redis, game_id: str, events: Sequence[GameEvent]) -> list[str]:
    """Append events to the session's event stream."""

    ids: list[str] = []
    for event in events:
        stream_id = r.xadd(events_key(game_id), event.as_fields(), maxlen=EVENTS_MAXLEN, approximate=True)
        ids.append(cast(str, stream_id))
    return ids


def read_events(*, r: redis.Redis, game_id: str, count: int = 20) -> list[tuple[str, dict[str, str]]]:
    """Most recent `count` events, oldest first."""

    entries = r.xrevrange(events_key(game_id), count=count)
    return list(reversed(entries))
