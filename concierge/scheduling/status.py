# concierge/scheduling/status.py
"""
Appointment status workflow.

Hard status is what gets stored. Soft status (active, pending, future, due)
is derived from hard status and a reference time, and is never stored.

Transitions:
    (unset)   -> Reserved
    Reserved  -> Confirmed -> Served
    Reserved  -> Served
    Reserved  -> Annulated
    Confirmed -> Annulated

Annulated and Served are final. Nothing goes back to Reserved.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from concierge.core.clock import as_utc

if TYPE_CHECKING:
    from concierge.scheduling.appointment import Appointment


class AppointmentStatus(str, Enum):
    RESERVED = "R"
    CONFIRMED = "C"
    ANNULATED = "A"
    SERVED = "S"

    @property
    def label(self) -> str:
        return self.name.lower()


ACTIVE_STATUSES = frozenset({AppointmentStatus.RESERVED, AppointmentStatus.CONFIRMED})


class Action(str, Enum):
    RESERVE = "reserve"
    CONFIRM = "confirm"
    ANNULATE = "annulate"
    SERVE = "serve"


TARGETS = {
    Action.RESERVE: AppointmentStatus.RESERVED,
    Action.CONFIRM: AppointmentStatus.CONFIRMED,
    Action.ANNULATE: AppointmentStatus.ANNULATED,
    Action.SERVE: AppointmentStatus.SERVED,
}


# ---------- guard predicates ----------

def is_due(appointment: "Appointment", now: datetime) -> bool:
    return appointment.start_at <= as_utc(now)


def is_future(appointment: "Appointment", now: datetime) -> bool:
    return not is_due(appointment, now)


def is_active(appointment: "Appointment") -> bool:
    return appointment.status in ACTIVE_STATUSES


def is_pending(appointment: "Appointment", now: datetime) -> bool:
    return is_active(appointment) and is_future(appointment, now)


def is_confirmable(appointment: "Appointment", now: datetime) -> bool:
    return appointment.status == AppointmentStatus.RESERVED and is_future(appointment, now)


def is_serveable(appointment: "Appointment", now: datetime) -> bool:
    return is_active(appointment) and is_due(appointment, now)


def is_annulable(appointment: "Appointment") -> bool:
    return is_active(appointment)


def is_reservable(appointment: "Appointment") -> bool:
    return appointment.status is None


@dataclass(frozen=True)
class SoftStatus:
    active: bool
    pending: bool
    future: bool
    due: bool


def soft_status(appointment: "Appointment", now: datetime) -> SoftStatus:
    return SoftStatus(
        active=is_active(appointment),
        pending=is_pending(appointment, now),
        future=is_future(appointment, now),
        due=is_due(appointment, now),
    )


# ---------- transition results ----------

@dataclass(frozen=True)
class TransitionResult:
    appointment: "Appointment"
    action: Action
    previous: Optional[AppointmentStatus]
    status: Optional[AppointmentStatus]
    reason: Optional[str] = None

    @property
    def refused(self) -> bool:
        return False


@dataclass(frozen=True)
class TransitionApplied(TransitionResult):
    pass


@dataclass(frozen=True)
class TransitionRefused(TransitionResult):
    """Guard failed. `status` equals `previous`; nothing was changed."""

    @property
    def refused(self) -> bool:
        return True


class StatusMachine:
    """Checks and applies hard status transitions against a reference time."""

    def guard(self, appointment: "Appointment", action: Action, now: datetime) -> Optional[str]:
        """Return why `action` is not allowed right now, or None when it is."""
        action = Action(action)
        if action is Action.RESERVE:
            if not is_reservable(appointment):
                return f"already {appointment.status_label}"
        elif action is Action.CONFIRM:
            if appointment.status != AppointmentStatus.RESERVED:
                return f"only reserved appointments can be confirmed (is {appointment.status_label or 'unset'})"
            if not is_future(appointment, now):
                return "appointment already started"
        elif action is Action.ANNULATE:
            if not is_annulable(appointment):
                return f"appointment is not active (is {appointment.status_label or 'unset'})"
        elif action is Action.SERVE:
            if not is_active(appointment):
                return f"appointment is not active (is {appointment.status_label or 'unset'})"
            if not is_due(appointment, now):
                return "appointment is not due yet"
        return None

    def check(self, appointment: "Appointment", action: Action, now: datetime) -> TransitionResult:
        """First step: decide the outcome without touching the appointment."""
        action = Action(action)
        previous = appointment.status
        reason = self.guard(appointment, action, now)
        if reason is not None:
            return TransitionRefused(appointment, action, previous, previous, reason)
        return TransitionApplied(appointment, action, previous, TARGETS[action])

    def apply(self, result: TransitionResult) -> TransitionResult:
        """
        Second step: write the new status onto the appointment.

        Refused results pass through untouched. An applied result is refused
        here if the appointment's status moved since it was checked.
        """
        if result.refused:
            return result
        appointment = result.appointment
        if appointment.status != result.previous:
            current = appointment.status
            return TransitionRefused(
                appointment, result.action, current, current,
                "status changed since the transition was checked",
            )
        appointment._set_status(result.status)
        return result
