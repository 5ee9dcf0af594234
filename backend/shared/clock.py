"""Time source: protocol, system clock (production), and manual clock (tests).

Every expiry comparison in the service goes through a single Clock so that
tests can move time forward deterministically instead of patching ``time``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Supply the current instant as a timezone-aware UTC datetime."""

    def now(self) -> datetime: ...


class SystemClock:
    """Production clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)


class ManualClock:
    """Clock that only moves when told to. Intended for tests.

    Lives beside SystemClock rather than in a conftest because both the
    shared and vault test trees inject it, and test directories are not
    importable packages.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start if start is not None else datetime.now(tz=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> datetime:
        """Move the clock forward and return the new instant."""
        self._now += timedelta(seconds=seconds)
        return self._now

    def set(self, instant: datetime) -> None:
        self._now = instant


def to_epoch(instant: datetime) -> float:
    """Convert a datetime to epoch seconds, treating naive values as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=UTC)
    return instant.timestamp()


def from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=UTC)
