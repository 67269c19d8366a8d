# concierge/scheduling/scopes.py
"""
Composable appointment filters.

A scope answers the same question two ways: `matches()` for appointments
already in memory and `clause()` for a SQLAlchemy query over the ORM model.
Scopes combine with `&`, `|` and `~`.

    scope = of_business(7) & active() & ~served()
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import TYPE_CHECKING, Any, Iterable

import sqlalchemy as sa

from concierge.core.clock import UTC, as_utc, local_midnight, today_midnight
from concierge.scheduling.interval import TimeInterval
from concierge.scheduling.status import ACTIVE_STATUSES, AppointmentStatus

if TYPE_CHECKING:
    from concierge.scheduling.appointment import Appointment


class Scope:
    def matches(self, appointment: "Appointment") -> bool:
        raise NotImplementedError

    def clause(self, model) -> Any:
        raise NotImplementedError

    def __and__(self, other: "Scope") -> "Scope":
        return AllOf(self, other)

    def __or__(self, other: "Scope") -> "Scope":
        return AnyOf(self, other)

    def __invert__(self) -> "Scope":
        return Not(self)


class AllOf(Scope):
    def __init__(self, *scopes: Scope):
        self.scopes = scopes

    def matches(self, appointment):
        return all(s.matches(appointment) for s in self.scopes)

    def clause(self, model):
        return sa.and_(*(s.clause(model) for s in self.scopes))

    def __repr__(self):
        return "(" + " & ".join(map(repr, self.scopes)) + ")"


class AnyOf(Scope):
    def __init__(self, *scopes: Scope):
        self.scopes = scopes

    def matches(self, appointment):
        return any(s.matches(appointment) for s in self.scopes)

    def clause(self, model):
        return sa.or_(*(s.clause(model) for s in self.scopes))

    def __repr__(self):
        return "(" + " | ".join(map(repr, self.scopes)) + ")"


class Not(Scope):
    def __init__(self, scope: Scope):
        self.scope = scope

    def matches(self, appointment):
        return not self.scope.matches(appointment)

    def clause(self, model):
        return sa.not_(self.scope.clause(model))

    def __repr__(self):
        return f"~{self.scope!r}"


class Everything(Scope):
    def matches(self, appointment):
        return True

    def clause(self, model):
        return sa.true()

    def __repr__(self):
        return "everything"


class StatusIn(Scope):
    def __init__(self, statuses: Iterable[AppointmentStatus]):
        self.statuses = frozenset(AppointmentStatus(s) for s in statuses)

    def matches(self, appointment):
        return appointment.status in self.statuses

    def clause(self, model):
        return model.status.in_(sorted(s.value for s in self.statuses))

    def __repr__(self):
        return f"status_in({''.join(sorted(s.value for s in self.statuses))})"


class OfBusiness(Scope):
    # Ids are opaque; compared as text so stored and in-memory forms agree
    def __init__(self, business_id: Any):
        self.business_id = str(business_id)

    def matches(self, appointment):
        return str(appointment.business_id) == self.business_id

    def clause(self, model):
        return model.business_id == self.business_id

    def __repr__(self):
        return f"of_business({self.business_id})"


class StartsFrom(Scope):
    def __init__(self, moment: datetime):
        self.moment = as_utc(moment)

    def matches(self, appointment):
        return appointment.start_at >= self.moment

    def clause(self, model):
        return model.start_at >= self.moment

    def __repr__(self):
        return f"starts_from({self.moment.isoformat()})"


class StartsUntil(Scope):
    def __init__(self, moment: datetime):
        self.moment = as_utc(moment)

    def matches(self, appointment):
        return appointment.start_at <= self.moment

    def clause(self, model):
        return model.start_at <= self.moment

    def __repr__(self):
        return f"till_date({self.moment.isoformat()})"


class StartsBefore(Scope):
    def __init__(self, moment: datetime):
        self.moment = as_utc(moment)

    def matches(self, appointment):
        return appointment.start_at < self.moment

    def clause(self, model):
        return model.start_at < self.moment

    def __repr__(self):
        return f"starts_before({self.moment.isoformat()})"


class AffectingInterval(Scope):
    """Appointments whose interval affects the candidate (see TimeInterval.overlaps)."""

    def __init__(self, candidate: TimeInterval):
        self.candidate = candidate

    def matches(self, appointment):
        return appointment.interval.overlaps(self.candidate)

    def clause(self, model):
        cs, cf = self.candidate.start, self.candidate.finish
        return sa.or_(
            sa.and_(model.ends_at >= cf, model.start_at <= cs),
            sa.and_(model.ends_at < cf, model.ends_at > cs),
            sa.and_(model.start_at > cs, model.start_at < cf),
            sa.and_(model.start_at > cs, model.ends_at < cf),
        )

    def __repr__(self):
        return f"affecting({self.candidate})"


# ---------- named scopes ----------

def everything() -> Scope:
    return Everything()


def status_in(*statuses: AppointmentStatus) -> Scope:
    return StatusIn(statuses)


def active() -> Scope:
    return StatusIn(ACTIVE_STATUSES)


def served() -> Scope:
    return StatusIn([AppointmentStatus.SERVED])


def annulated() -> Scope:
    return StatusIn([AppointmentStatus.ANNULATED])


def unserved() -> Scope:
    return ~served()


def of_business(business_id: Any) -> Scope:
    return OfBusiness(business_id)


def starts_from(moment: datetime) -> Scope:
    return StartsFrom(moment)


def till_date(moment: datetime) -> Scope:
    return StartsUntil(moment)


def future(now: datetime, tz: tzinfo = UTC) -> Scope:
    """Appointments starting today (in `tz`) or later."""
    return StartsFrom(today_midnight(now, tz))


def of_date(day: date, tz: tzinfo = UTC) -> Scope:
    """Appointments starting on `day` as seen in `tz`."""
    start = local_midnight(day, tz)
    end = local_midnight(day + timedelta(days=1), tz)
    return StartsFrom(start) & StartsBefore(end)


def unarchived(midnight: datetime) -> Scope:
    """Still-active appointments from before `midnight`, plus everything from it on."""
    return (active() & StartsUntil(midnight)) | StartsFrom(midnight)


def affecting_interval(candidate: TimeInterval) -> Scope:
    return AffectingInterval(candidate)


def overlap_scope(name: str, now: datetime, tz: tzinfo = UTC) -> Scope:
    """Scope selected by the OVERLAP_SCOPE setting."""
    if name == "active":
        return active()
    if name == "unarchived":
        return unarchived(today_midnight(now, tz))
    if name == "all":
        return everything()
    raise ValueError(f"unknown overlap scope: {name!r}")
