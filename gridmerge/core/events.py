from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventType = Literal[
    "INTERACTION",
    "STATE_CHANGED",
    "WIN",
    "NOTICE",
]


@dataclass(frozen=True, slots=True)
class GameEvent:
    type: EventType
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, payload: dict[str, Any]) -> "GameEvent":
        return GameEvent(type=type, payload=payload, ts=datetime.now(timezone.utc))

    def as_fields(self) -> dict[str, str]:
        """Flat string fields, as stored in a Redis stream entry."""

        fields = {"type": self.type, "ts": self.ts.isoformat()}
        fields.update({str(k): "" if v is None else str(v) for k, v in self.payload.items()})
        return fields
