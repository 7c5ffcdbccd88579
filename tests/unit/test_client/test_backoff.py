"""Unit tests for backoff strategies."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.features.client.backoff import (
    ConstantBackoff,
    ExponentialBackoff,
    ExponentialJitterBackoff,
    LinearBackoff,
    no_backoff,
)


class TestConstantBackoff:
    def test_same_delay_every_attempt(self) -> None:
        backoff = ConstantBackoff(delay_seconds=0.25)

        assert [backoff(n) for n in (1, 2, 10)] == [0.25, 0.25, 0.25]

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ConstantBackoff(delay_seconds=-1)


class TestLinearBackoff:
    def test_grows_by_increment(self) -> None:
        backoff = LinearBackoff(initial_seconds=1.0, increment_seconds=0.5)

        assert [backoff(n) for n in (1, 2, 3)] == [1.0, 1.5, 2.0]

    def test_capped(self) -> None:
        backoff = LinearBackoff(initial_seconds=1.0, increment_seconds=10, max_seconds=5)

        assert backoff(4) == 5


class TestExponentialBackoff:
    """Tests for exponential backoff."""

    def test_doubles_each_attempt(self) -> None:
        """Delay doubles from the base delay."""
        backoff = ExponentialBackoff(base_seconds=1.0, exponential_base=2.0)

        assert [backoff(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max(self) -> None:
        backoff = ExponentialBackoff(base_seconds=1.0, max_seconds=10.0)

        assert backoff(10) == 10.0

    def test_huge_attempt_does_not_overflow(self) -> None:
        backoff = ExponentialBackoff(base_seconds=1.0, max_seconds=60.0)

        assert backoff(100_000) == 60.0

    def test_max_below_base_rejected(self) -> None:
        with pytest.raises(ValidationError, match="max_seconds"):
            ExponentialBackoff(base_seconds=5.0, max_seconds=1.0)

    def test_is_frozen(self) -> None:
        backoff = ExponentialBackoff()

        with pytest.raises(ValidationError):
            backoff.base_seconds = 3.0  # type: ignore[misc]


class TestExponentialJitterBackoff:
    """Tests for jittered backoff."""

    def test_delay_within_ceiling(self) -> None:
        backoff = ExponentialJitterBackoff(base_seconds=1.0, max_seconds=4.0)

        for attempt in range(1, 8):
            assert 0.0 <= backoff(attempt) <= backoff.ceiling(attempt)

    def test_draws_from_full_range(self) -> None:
        """The delay is drawn uniformly between zero and the ceiling."""
        backoff = ExponentialJitterBackoff(base_seconds=1.0)

        with patch("src.features.client.backoff.random.uniform") as uniform:
            uniform.return_value = 0.7
            assert backoff(3) == 0.7

        uniform.assert_called_once_with(0.0, 4.0)


def test_no_backoff_is_zero() -> None:
    assert no_backoff(1) == 0.0
    assert no_backoff(50) == 0.0
