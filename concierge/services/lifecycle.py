# concierge/services/lifecycle.py
from __future__ import annotations

from typing import Optional

from concierge.core.clock import Clock, SystemClock
from concierge.core.errors import AlreadyReserved, DuplicateAppointment, SchedulingConflict, StoreError
from concierge.core.logging import get_logger, operation_context
from concierge.crud.base import AppointmentStore
from concierge.scheduling.appointment import Appointment
from concierge.scheduling.status import (
    Action,
    StatusMachine,
    TransitionApplied,
    TransitionRefused,
    TransitionResult,
)
from concierge.services.overlap import OverlapQuery

logger = get_logger(__name__)


class AppointmentLifecycle:
    """
    Creates appointments and moves them through their hard statuses.

    Every guard is evaluated against `clock.now()` at call time.
    """

    def __init__(
        self,
        store: AppointmentStore,
        clock: Optional[Clock] = None,
        overlap: Optional[OverlapQuery] = None,
        machine: Optional[StatusMachine] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.overlap = overlap or OverlapQuery(store, self.clock)
        self.machine = machine or StatusMachine()

    # ---------- reservation ----------

    async def check_reservation(self, appointment: Appointment) -> None:
        """
        Validate a proposal without writing anything:
        1) resolve the interval (explicit finish > start + duration > start)
        2) reject an identical (start, contact, business, service) tuple
        3) reject any collision with the business's appointments
        """
        candidate = appointment.interval

        fingerprint = appointment.rehash()
        existing = await self.store.find_by_fingerprint(fingerprint)
        if existing is not None:
            raise DuplicateAppointment(fingerprint, existing.id)

        conflicts = await self.overlap.find_affecting(
            appointment.business_id, candidate, exclude_id=appointment.id
        )
        if conflicts:
            raise SchedulingConflict(appointment.business_id, conflicts)

    async def reserve(self, appointment: Appointment) -> Appointment:
        """
        Check and persist a new appointment as Reserved.

        The checks and the write happen while holding the business, so two
        concurrent proposals can't both pass the overlap check. If anything
        fails, including the final commit, the proposal is handed back as
        the caller gave it.
        """
        if appointment.id is not None or appointment.status is not None:
            raise AlreadyReserved(
                f"Appointment {appointment.id} is already {appointment.status_label or 'stored'}"
            )

        with operation_context(
            "reserve",
            business_id=str(appointment.business_id),
            contact_id=str(appointment.contact_id),
        ):
            try:
                async with self.store.reserving(appointment.business_id):
                    try:
                        await self.check_reservation(appointment)
                    except DuplicateAppointment as e:
                        logger.info("reservation_rejected", reason="duplicate", existing_id=e.existing_id)
                        raise
                    except SchedulingConflict as e:
                        logger.info("reservation_rejected", reason="conflict", conflicts=list(e.conflicts))
                        raise

                    result = self.machine.apply(
                        self.machine.check(appointment, Action.RESERVE, self.clock.now())
                    )
                    if result.refused:
                        raise AlreadyReserved(result.reason)

                    saved = await self.store.save(appointment)
            except BaseException:
                _unsave(appointment)
                raise

            logger.info(
                "appointment_reserved",
                appointment_id=saved.id,
                start_at=saved.start_at.isoformat(),
                finish_at=saved.finish_at.isoformat(),
                hash=saved.hash,
            )
            return saved

    # ---------- status transitions ----------

    def check_transition(self, appointment: Appointment, action: Action) -> TransitionResult:
        """First step of a transition: decide, don't touch anything."""
        return self.machine.check(appointment, action, self.clock.now())

    async def commit(self, result: TransitionResult) -> TransitionResult:
        """
        Second step: apply an allowed transition and persist it.

        Refused results are returned as they are and nothing is written.
        The guard is evaluated again against the stored row while holding
        the business, so a stale copy can't move a final status. Only the
        status is written; when the stored status has moved, the caller's
        copy is brought up to date and the transition is refused.
        """
        appointment = result.appointment
        with operation_context(result.action.value, appointment_id=appointment.id):
            if result.refused:
                logger.info("transition_refused", status=_code(result.status), reason=result.reason)
                return result

            if result.action is Action.RESERVE:
                return self._refuse(result, result.previous, "new appointments go through reserve()")

            async with self.store.reserving(appointment.business_id):
                stored = await self.store.get(appointment.id)
                if stored is None:
                    raise StoreError(f"Appointment {appointment.id} does not exist")

                if stored.status != result.previous:
                    appointment._set_status(stored.status)
                    return self._refuse(result, stored.status, "status changed since the transition was checked")

                # Guards are time-dependent; re-check right before writing
                recheck = self.machine.apply(
                    self.machine.check(stored, result.action, self.clock.now())
                )
                if recheck.refused:
                    return self._refuse(result, recheck.status, recheck.reason)

                await self.store.save(stored)

            appointment._set_status(stored.status)
            appointment.updated_at = stored.updated_at
            logger.info("transition_applied", previous=_code(result.previous), status=_code(stored.status))
            return TransitionApplied(appointment, result.action, result.previous, stored.status)

    def _refuse(self, result: TransitionResult, status, reason: str) -> TransitionRefused:
        logger.info("transition_refused", status=_code(status), reason=reason)
        return TransitionRefused(result.appointment, result.action, status, status, reason)

    async def transition(self, appointment: Appointment, action: Action) -> TransitionResult:
        return await self.commit(self.check_transition(appointment, action))

    async def confirm(self, appointment: Appointment) -> TransitionResult:
        return await self.transition(appointment, Action.CONFIRM)

    async def annulate(self, appointment: Appointment) -> TransitionResult:
        return await self.transition(appointment, Action.ANNULATE)

    async def serve(self, appointment: Appointment) -> TransitionResult:
        return await self.transition(appointment, Action.SERVE)


def _code(status) -> Optional[str]:
    return status.value if status is not None else None


def _unsave(appointment: Appointment) -> None:
    appointment._set_status(None)
    appointment.id = None
    appointment.created_at = None
    appointment.updated_at = None
