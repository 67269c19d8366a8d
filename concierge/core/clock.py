# concierge/core/clock.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Protocol

UTC = timezone.utc


def as_utc(dt: datetime, assume: tzinfo = UTC) -> datetime:
    """
    Normalize a datetime to UTC.
    Naive values are read as wall time in `assume` (UTC unless told otherwise).
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=assume)
    return dt.astimezone(UTC)


def today_midnight(now: datetime, tz: tzinfo = UTC) -> datetime:
    """Midnight that starts `now`'s calendar day in `tz`, returned in UTC."""
    local = as_utc(now).astimezone(tz)
    return local_midnight(local.date(), tz)


def local_midnight(day: date, tz: tzinfo = UTC) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(UTC)


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock, always UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock that only moves when told to. Used by tests and replays."""

    def __init__(self, at: datetime):
        self._at = as_utc(at)

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = as_utc(at)

    def advance(self, **delta: float) -> datetime:
        self._at = self._at + timedelta(**delta)
        return self._at
