from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from gridmerge.core.movement import KEY_STEPS


@dataclass(frozen=True, slots=True)
class ValidationContext:
    """Inputs available to validators.

    Keep this tight and serializable-ish so we can safely log it.
    """

    game_id: str
    action: str


class PayloadValidator(ABC):
    """A small, composable validation unit for an incoming action payload.

    Only malformed input is rejected here. Moves that the game rules refuse (a cell out
    of range, a mismatched merge) are valid payloads and come back as outcomes.
    """

    @abstractmethod
    def validate(self, *, ctx: ValidationContext, payload: dict[str, Any]) -> None:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class IntegerFieldsValidator(PayloadValidator):
    fields: tuple[str, ...]

    def validate(self, *, ctx: ValidationContext, payload: dict[str, Any]) -> None:
        for name in self.fields:
            value = payload.get(name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"Action '{ctx.action}' requires integer '{name}'")


@dataclass(frozen=True, slots=True)
class RangeFieldValidator(PayloadValidator):
    """Validate a finite numeric field within [low, high]."""

    name: str
    low: float
    high: float

    def validate(self, *, ctx: ValidationContext, payload: dict[str, Any]) -> None:
        value = payload.get(self.name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(f"Action '{ctx.action}' requires numeric '{self.name}'")
        if not self.low <= value <= self.high:
            raise ValueError(f"'{self.name}' must be between {self.low} and {self.high}")


@dataclass(frozen=True, slots=True)
class StepKeyValidator(PayloadValidator):
    def validate(self, *, ctx: ValidationContext, payload: dict[str, Any]) -> None:
        key = payload.get("key")
        if not isinstance(key, str) or key.lower() not in KEY_STEPS:
            allowed = ",".join(sorted(KEY_STEPS))
            raise ValueError(f"Unknown movement key {key!r} (allowed: {allowed})")


@dataclass(frozen=True, slots=True)
class OptionalBoolValidator(PayloadValidator):
    name: str

    def validate(self, *, ctx: ValidationContext, payload: dict[str, Any]) -> None:
        value = payload.get(self.name)
        if value is not None and not isinstance(value, bool):
            raise ValueError(f"'{self.name}' must be a boolean")


@dataclass(frozen=True, slots=True)
class ValidatorPipeline:
    validators: tuple[PayloadValidator, ...]

    def validate(self, *, ctx: ValidationContext, payload: dict[str, Any]) -> None:
        for v in self.validators:
            v.validate(ctx=ctx, payload=payload)


DEFAULT_ACTION_PIPELINES: dict[str, ValidatorPipeline] = {
    "activate": ValidatorPipeline(validators=(IntegerFieldsValidator(fields=("i", "j")),)),
    "move": ValidatorPipeline(
        validators=(
            RangeFieldValidator(name="lat", low=-90, high=90),
            RangeFieldValidator(name="lng", low=-180, high=180),
        )
    ),
    "step": ValidatorPipeline(validators=(StepKeyValidator(),)),
    "toggle_mode": ValidatorPipeline(validators=(OptionalBoolValidator(name="geolocation_available"),)),
    "reset": ValidatorPipeline(validators=()),
}


def pipeline_for_action(action: str) -> ValidatorPipeline:
    pipe = DEFAULT_ACTION_PIPELINES.get(action)
    if pipe is None:
        raise ValueError(f"Unknown action: {action}")
    return pipe
