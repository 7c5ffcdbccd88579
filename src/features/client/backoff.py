"""Backoff strategies mapping an attempt count to a delay.

A strategy is any callable taking the 1-based attempt count and returning
the delay in seconds. The models below are frozen and hold no mutable
state, so a single instance can be shared by concurrent calls.
"""

import random
from collections.abc import Callable
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator


BackoffStrategy = Callable[[int], float]


class ConstantBackoff(BaseModel):
    """Same delay before every retry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    delay_seconds: Annotated[float, Field(ge=0.0)] = 1.0

    def __call__(self, attempt: int) -> float:
        return self.delay_seconds


class LinearBackoff(BaseModel):
    """Delay grows by a fixed increment per attempt.

    delay = initial_seconds + increment_seconds * (attempt - 1), capped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    initial_seconds: Annotated[float, Field(ge=0.0)] = 0.5
    increment_seconds: Annotated[float, Field(ge=0.0)] = 0.5
    max_seconds: Annotated[float, Field(ge=0.0)] = 30.0

    def __call__(self, attempt: int) -> float:
        delay = self.initial_seconds + self.increment_seconds * max(attempt - 1, 0)
        return min(delay, self.max_seconds)


class ExponentialBackoff(BaseModel):
    """Exponential backoff.

    delay = base_seconds * (exponential_base ^ (attempt - 1)), capped at
    max_seconds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_seconds: Annotated[float, Field(ge=0.0, le=60.0)] = 0.1
    exponential_base: Annotated[float, Field(ge=1.0, le=10.0)] = 2.0
    max_seconds: Annotated[float, Field(ge=0.0, le=3600.0)] = 30.0

    @model_validator(mode="after")
    def validate_cap(self) -> "ExponentialBackoff":
        """The cap must not be below the base delay."""
        if self.max_seconds < self.base_seconds:
            msg = "max_seconds must be >= base_seconds"
            raise ValueError(msg)
        return self

    def ceiling(self, attempt: int) -> float:
        """Capped exponential delay for an attempt, before any jitter."""
        exponent = max(attempt - 1, 0)
        # Avoid float overflow for very large attempt counts.
        if exponent > 1024:  # noqa: PLR2004
            return self.max_seconds
        delay = self.base_seconds * (self.exponential_base**exponent)
        return min(delay, self.max_seconds)

    def __call__(self, attempt: int) -> float:
        return self.ceiling(attempt)


class ExponentialJitterBackoff(ExponentialBackoff):
    """Exponential backoff with full jitter.

    The delay is drawn uniformly from [0, ceiling(attempt)] so concurrent
    callers do not retry in lockstep.
    """

    def __call__(self, attempt: int) -> float:
        return random.uniform(0.0, self.ceiling(attempt))  # noqa: S311


def no_backoff(attempt: int) -> float:  # noqa: ARG001
    """Retry immediately."""
    return 0.0
