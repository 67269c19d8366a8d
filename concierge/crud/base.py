# concierge/crud/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Optional, Sequence

from concierge.scheduling.appointment import Appointment
from concierge.scheduling.interval import TimeInterval
from concierge.scheduling import scopes
from concierge.scheduling.scopes import Scope


class AppointmentStore(ABC):
    """
    Record store for appointments.

    Implementations must make `reserving(business_id)` exclusive per business:
    while one caller holds it, no other proposal for that business can read
    its appointments for an overlap check or commit a new one.
    """

    async def save(self, appointment: Appointment) -> Appointment:
        """Persist the appointment. The fingerprint is recomputed on every save."""
        appointment.rehash()
        return await self._write(appointment)

    async def find_overlapping(
        self,
        business_id: Any,
        interval: TimeInterval,
        scope: Optional[Scope] = None,
        exclude_id: Optional[int] = None,
    ) -> Sequence[Appointment]:
        """Appointments of `business_id` (within `scope`) affecting `interval`."""
        where = scopes.of_business(business_id) & scopes.affecting_interval(interval)
        if scope is not None:
            where = where & scope
        found = await self.query(where, for_update=True)
        return [a for a in found if exclude_id is None or a.id != exclude_id]

    @abstractmethod
    async def get(self, appointment_id: int) -> Optional[Appointment]:
        raise NotImplementedError

    @abstractmethod
    async def find_by_fingerprint(self, fingerprint: str) -> Optional[Appointment]:
        raise NotImplementedError

    @abstractmethod
    async def query(
        self,
        scope: Optional[Scope] = None,
        limit: Optional[int] = None,
        *,
        for_update: bool = False,
    ) -> Sequence[Appointment]:
        """Appointments matching `scope`, ordered by start time."""
        raise NotImplementedError

    @abstractmethod
    def reserving(self, business_id: Any) -> AsyncContextManager[None]:
        """Hold the business exclusively for a check-then-persist sequence."""
        raise NotImplementedError

    @abstractmethod
    async def _write(self, appointment: Appointment) -> Appointment:
        raise NotImplementedError
