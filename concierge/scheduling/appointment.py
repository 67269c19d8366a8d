# concierge/scheduling/appointment.py
from __future__ import annotations

import copy
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Optional

from concierge.core.clock import UTC, as_utc
from concierge.core.errors import InvalidInterval
from concierge.scheduling.fingerprint import fingerprint
from concierge.scheduling.interval import TimeInterval
from concierge.scheduling.status import AppointmentStatus


class Appointment:
    """
    A reservation of a Service, provided by a Business, for a Contact, at a
    given start time with an optional duration and comments.

    Contact, business, service, issuer and vacancy ids are opaque keys owned
    elsewhere. Status changes go through the lifecycle, never by assignment
    from callers.
    """

    def __init__(
        self,
        *,
        start_at: datetime,
        contact_id: Any,
        business_id: Any,
        service_id: Any,
        issuer_id: Any = None,
        duration: Optional[int] = None,
        finish_at: Optional[datetime] = None,
        comments: Optional[str] = None,
        vacancy_id: Any = None,
        status: Optional[AppointmentStatus] = None,
        id: Optional[int] = None,
        hash: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.issuer_id = issuer_id
        self.contact_id = contact_id
        self.business_id = business_id
        self.service_id = service_id
        self.vacancy_id = vacancy_id
        self.start_at = start_at
        self.duration = duration
        self.finish_at = finish_at
        self.comments = comments
        self._set_status(status)
        self._hash = hash
        self.created_at = created_at
        self.updated_at = updated_at

    # ---------- temporal ----------

    @property
    def start_at(self) -> datetime:
        return self._start_at

    @start_at.setter
    def start_at(self, value: datetime) -> None:
        self._start_at = as_utc(value)

    @property
    def duration(self) -> Optional[int]:
        return self._duration

    @duration.setter
    def duration(self, value: Optional[int]) -> None:
        if value is not None and value < 0:
            raise InvalidInterval(f"negative duration: {value}")
        self._duration = value

    @property
    def finish_at(self) -> datetime:
        """Explicit finish, else start plus duration, else start itself."""
        if self._finish_at is not None:
            return self._finish_at
        if self._duration is not None:
            return self._start_at + timedelta(minutes=self._duration)
        return self._start_at

    @finish_at.setter
    def finish_at(self, value: Optional[datetime]) -> None:
        self._finish_at = as_utc(value) if value is not None else None

    @property
    def explicit_finish_at(self) -> Optional[datetime]:
        return self._finish_at

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_at, self.finish_at)

    def local_date(self, tz: tzinfo = UTC) -> date:
        """Calendar date of the appointment in the business timezone."""
        return self.start_at.astimezone(tz).date()

    # ---------- other attributes ----------

    @property
    def comments(self) -> Optional[str]:
        return self._comments

    @comments.setter
    def comments(self, value: Optional[str]) -> None:
        self._comments = (value or "").strip() or None

    @property
    def hash(self) -> str:
        if self._hash is None:
            return self.rehash()
        return self._hash

    def rehash(self) -> str:
        """Recompute the fingerprint from the current field values."""
        self._hash = fingerprint(self.start_at, self.contact_id, self.business_id, self.service_id)
        return self._hash

    @property
    def status(self) -> Optional[AppointmentStatus]:
        """Hard status. Read-only; only lifecycle actions move it."""
        return self._status

    def _set_status(self, value: Optional[AppointmentStatus]) -> None:
        self._status = AppointmentStatus(value) if value is not None else None

    @property
    def status_label(self) -> str:
        return self.status.label if self.status is not None else ""

    def is_reserved(self) -> bool:
        return self.status == AppointmentStatus.RESERVED

    def copy(self) -> "Appointment":
        return copy.copy(self)

    def __repr__(self) -> str:
        return (
            f"Appointment(id={self.id!r}, business_id={self.business_id!r}, "
            f"start_at={self.start_at.isoformat()}, finish_at={self.finish_at.isoformat()}, "
            f"status={self.status.value if self.status else None!r})"
        )
