# concierge/services/overlap.py
"""
Overlap Detection Service

Finds the appointments of a business whose interval affects a candidate
interval. Overlap only means something inside one business.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from concierge.core.clock import Clock, SystemClock
from concierge.core.config import settings
from concierge.core.logging import get_logger
from concierge.crud.base import AppointmentStore
from concierge.scheduling import scopes
from concierge.scheduling.appointment import Appointment
from concierge.scheduling.interval import TimeInterval
from concierge.scheduling.scopes import Scope

logger = get_logger(__name__)


class OverlapQuery:
    def __init__(
        self,
        store: AppointmentStore,
        clock: Optional[Clock] = None,
        scope_name: Optional[str] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.scope_name = scope_name or settings.OVERLAP_SCOPE

    def default_scope(self, now: Optional[datetime] = None) -> Scope:
        return scopes.overlap_scope(self.scope_name, now or self.clock.now(), settings.business_tz)

    async def find_affecting(
        self,
        business_id: Any,
        candidate: TimeInterval,
        scope: Optional[Scope] = None,
        exclude_id: Optional[int] = None,
    ) -> List[Appointment]:
        """
        Appointments of `business_id` affecting `candidate`, ordered by start.

        Args:
            business_id: business whose resource pool is checked
            candidate: interval being proposed
            scope: extra filter; defaults to the OVERLAP_SCOPE setting
            exclude_id: appointment to ignore (the one being edited)

        Returns an empty list when nothing collides.
        """
        if scope is None:
            scope = self.default_scope()

        found = await self.store.find_overlapping(business_id, candidate, scope, exclude_id=exclude_id)

        # Same row can't count twice; the store's predicate is re-checked in UTC
        seen: set = set()
        affecting: List[Appointment] = []
        for appt in found:
            if appt.id in seen or not appt.interval.overlaps(candidate):
                continue
            seen.add(appt.id)
            affecting.append(appt)

        affecting.sort(key=lambda a: (a.start_at, a.id))
        logger.debug(
            "overlap_checked",
            business_id=str(business_id),
            start_at=candidate.start.isoformat(),
            finish_at=candidate.finish.isoformat(),
            scope=repr(scope),
            affecting=[a.id for a in affecting],
        )
        return affecting
