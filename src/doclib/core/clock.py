# src/doclib/core/clock.py
"""Clock abstraction for testable flag timestamps.

This module provides a Clock protocol that abstracts wall-clock access,
so the flag state machine never reads the ambient time directly and
transition timestamps can be controlled in tests.

Production code uses SystemClock (the default).
Tests inject MockClock or AdvancingClock to control time.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract wall clock for flag timestamps.

    Implementations:
    - SystemClock: Uses datetime.now(UTC) (production)
    - MockClock: Returns a controllable fixed time (testing)
    - AdvancingClock: Moves forward on every read (testing)
    """

    def now(self) -> datetime:
        """Return the current time.

        Must be timezone-aware UTC. Flag timestamps are compared against
        each other and against stored values, so naive datetimes are
        not allowed.

        Returns:
            Current UTC time.
        """
        ...


class SystemClock:
    """Production clock using the system wall clock."""

    def now(self) -> datetime:
        """Return the current UTC time."""
        return datetime.now(UTC)


class MockClock:
    """Controllable clock for deterministic testing.

    Allows tests to advance time programmatically without sleep().

    Example:
        clock = MockClock(start=datetime(2024, 1, 1, tzinfo=UTC))
        context = FlagContext("ner", version, store, clock=clock)

        context.start(document_id)  # started at 00:00:00
        clock.advance(5.0)
        assert context.is_run_recently(document_id)

        clock.advance(6.0)  # 11s after start, tolerance is 10s
        assert not context.is_run_recently(document_id)
    """

    def __init__(self, start: datetime | None = None) -> None:
        """Initialize mock clock at a given time.

        Args:
            start: Initial time (default: the current system time).

        Raises:
            ValueError: If start is a naive datetime.
        """
        if start is not None and start.tzinfo is None:
            raise ValueError("MockClock start must be timezone-aware")
        self._current = (start or datetime.now(UTC)).astimezone(UTC)

    def now(self) -> datetime:
        """Return current mock time."""
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Args:
            seconds: Amount to advance (must be non-negative).

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += timedelta(seconds=seconds)

    def set(self, value: datetime) -> None:
        """Set mock time to an absolute value.

        Unlike advance(), this can move time backwards.
        """
        if value.tzinfo is None:
            raise ValueError("MockClock time must be timezone-aware")
        self._current = value.astimezone(UTC)


class AdvancingClock:
    """Clock that steps forward by a fixed amount on every read.

    Successive transitions recorded through this clock always get strictly
    increasing timestamps, even on platforms with coarse clock resolution.
    """

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(milliseconds=1)) -> None:
        if step <= timedelta(0):
            raise ValueError(f"AdvancingClock step must be positive, got {step}")
        if start is not None and start.tzinfo is None:
            raise ValueError("AdvancingClock start must be timezone-aware")
        self._current = (start or datetime.now(UTC)).astimezone(UTC)
        self._step = step

    @classmethod
    def from_current_time(cls, step: timedelta = timedelta(milliseconds=1)) -> AdvancingClock:
        return cls(datetime.now(UTC), step)

    def now(self) -> datetime:
        self._current += self._step
        return self._current


# Default clock for production use
DEFAULT_CLOCK: Clock = SystemClock()
