# concierge/scheduling/interval.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from concierge.core.clock import as_utc
from concierge.core.errors import InvalidInterval


@dataclass(frozen=True)
class TimeInterval:
    """
    Time range between `start` and `finish`, both held in UTC.

    Naive datetimes are taken to be UTC already.
    """

    start: datetime
    finish: datetime

    def __post_init__(self):
        start = as_utc(self.start)
        finish = as_utc(self.finish)
        if start > finish:
            raise InvalidInterval(f"interval finishes before it starts: {start.isoformat()} > {finish.isoformat()}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "finish", finish)

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "TimeInterval":
        if minutes < 0:
            raise InvalidInterval(f"negative duration: {minutes}")
        return cls(start, as_utc(start) + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.finish - self.start

    def overlaps(self, candidate: "TimeInterval") -> bool:
        """
        Whether this (existing) interval affects `candidate`.

        Union of four cases:
          A. existing contains or equals candidate
          B. existing finish falls strictly inside candidate
          C. existing start falls strictly inside candidate
          D. existing lies strictly inside candidate
        Intervals that only touch at an endpoint do not overlap, except a
        zero-length candidate sitting inside (or on the edge of) the existing one.
        """
        es, ef = self.start, self.finish
        cs, cf = candidate.start, candidate.finish
        return (
            (ef >= cf and es <= cs)
            or (ef < cf and ef > cs)
            or (es > cs and es < cf)
            or (es > cs and ef < cf)
        )

    def contains(self, moment: datetime) -> bool:
        moment = as_utc(moment)
        return self.start <= moment <= self.finish

    def __str__(self) -> str:
        return f"[{self.start.isoformat()} - {self.finish.isoformat()}]"
