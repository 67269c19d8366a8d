# concierge/crud/memory.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional, Sequence

from concierge.core.errors import DuplicateAppointment
from concierge.crud.base import AppointmentStore
from concierge.scheduling.appointment import Appointment
from concierge.scheduling.scopes import Scope


class MemoryAppointmentStore(AppointmentStore):
    """Process-local store. Keeps detached copies so callers can't mutate rows."""

    def __init__(self) -> None:
        self._rows: dict[int, Appointment] = {}
        self._next_id = 1
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def reserving(self, business_id: Any) -> AsyncIterator[None]:
        lock = self._locks.setdefault(str(business_id), asyncio.Lock())
        async with lock:
            yield

    async def get(self, appointment_id: int) -> Optional[Appointment]:
        row = self._rows.get(appointment_id)
        return row.copy() if row is not None else None

    async def find_by_fingerprint(self, fingerprint: str) -> Optional[Appointment]:
        for row in self._rows.values():
            if row.hash == fingerprint:
                return row.copy()
        return None

    async def query(
        self,
        scope: Optional[Scope] = None,
        limit: Optional[int] = None,
        *,
        for_update: bool = False,
    ) -> Sequence[Appointment]:
        rows = [r for r in self._rows.values() if scope is None or scope.matches(r)]
        rows.sort(key=lambda r: (r.start_at, r.id))
        if limit is not None:
            rows = rows[:limit]
        return [r.copy() for r in rows]

    async def _write(self, appointment: Appointment) -> Appointment:
        for row in self._rows.values():
            if row.hash == appointment.hash and row.id != appointment.id:
                raise DuplicateAppointment(appointment.hash, row.id)

        now = datetime.now(timezone.utc)
        if appointment.id is None:
            appointment.id = self._next_id
            self._next_id += 1
            appointment.created_at = now
        appointment.updated_at = now
        self._rows[appointment.id] = appointment.copy()
        return appointment

    def __len__(self) -> int:
        return len(self._rows)
