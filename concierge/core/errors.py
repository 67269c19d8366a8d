"""
Exceptions raised by the scheduling core.

A refused status transition is not an exception; see
``concierge.scheduling.status.TransitionRefused``.
"""
from typing import Any, Optional, Sequence


class ConciergeError(Exception):
    """Base class for every error raised by this package."""


class InvalidInterval(ConciergeError, ValueError):
    """Raised when a time interval finishes before it starts."""


class AlreadyReserved(ConciergeError):
    """Raised when reserve is called on an appointment that was reserved before."""


class DuplicateAppointment(ConciergeError):
    """Same (start, contact, business, service) tuple is already booked."""

    def __init__(self, fingerprint: str, existing_id: Optional[int] = None):
        self.fingerprint = fingerprint
        self.existing_id = existing_id
        msg = f"Appointment already exists with fingerprint {fingerprint}"
        if existing_id is not None:
            msg += f" (id={existing_id})"
        super().__init__(msg)


class SchedulingConflict(ConciergeError):
    """The proposed interval collides with other appointments of the business."""

    def __init__(self, business_id: Any, conflicts: Sequence[Any]):
        self.business_id = business_id
        self.appointments = tuple(conflicts)
        self.conflicts = tuple(a.id for a in self.appointments)
        super().__init__(
            f"Interval collides with {len(self.conflicts)} appointment(s) "
            f"of business {business_id}: {list(self.conflicts)}"
        )


class StoreError(ConciergeError):
    """The record store failed. Raised with the original error as __cause__."""
