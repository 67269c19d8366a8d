# concierge/crud/appointment.py

from __future__ import annotations
import asyncio
from datetime import datetime
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from concierge.core.clock import as_utc
from concierge.core.errors import DuplicateAppointment, StoreError
from concierge.core.logging import get_logger
from concierge.crud.base import AppointmentStore
from concierge.db.models.appointment import AppointmentRecord
from concierge.scheduling.appointment import Appointment
from concierge.scheduling.scopes import Scope

logger = get_logger(__name__)


def _key(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def to_record(appt: Appointment, record: AppointmentRecord) -> AppointmentRecord:
    record.hash = appt.hash
    record.issuer_id = _key(appt.issuer_id)
    record.contact_id = _key(appt.contact_id)
    record.business_id = _key(appt.business_id)
    record.service_id = _key(appt.service_id)
    record.vacancy_id = _key(appt.vacancy_id)
    record.start_at = appt.start_at
    record.finish_at = appt.explicit_finish_at
    record.ends_at = appt.finish_at
    record.duration = appt.duration
    record.status = appt.status.value if appt.status is not None else None
    record.comments = appt.comments
    return record


def to_appointment(record: AppointmentRecord) -> Appointment:
    # SQLite hands datetimes back naive; Appointment reads naive as UTC
    return Appointment(
        id=record.id,
        hash=record.hash,
        issuer_id=record.issuer_id,
        contact_id=record.contact_id,
        business_id=record.business_id,
        service_id=record.service_id,
        vacancy_id=record.vacancy_id,
        start_at=record.start_at,
        finish_at=record.finish_at,
        duration=record.duration,
        status=record.status,
        comments=record.comments,
        created_at=_utc(record.created_at),
        updated_at=_utc(record.updated_at),
    )


class SqlAppointmentStore(AppointmentStore):
    """
    SQLAlchemy-backed store.

    Outside `reserving()` every call runs in its own short transaction.
    Inside it, all calls share one transaction that commits when the block
    exits cleanly and rolls back otherwise.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        if session_factory is None:
            from concierge.db.session import AsyncSessionLocal
            session_factory = AsyncSessionLocal
        self._session_factory = session_factory
        self._active: ContextVar[Optional[AsyncSession]] = ContextVar(f"appointment_session_{id(self)}", default=None)
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        session = self._active.get()
        if session is not None:
            yield session
            return
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("store_error", error=str(e), error_type=type(e).__name__)
                raise StoreError(str(e)) from e
            except BaseException:
                await session.rollback()
                raise

    @asynccontextmanager
    async def reserving(self, business_id: Any) -> AsyncIterator[None]:
        lock = self._locks.setdefault(str(business_id), asyncio.Lock())
        async with lock:
            async with self._session_factory() as session:
                token = self._active.set(session)
                try:
                    if session.bind is not None and session.bind.dialect.name == "postgresql":
                        # Serializes proposals for this business across processes until commit
                        await session.execute(
                            sa.select(sa.func.pg_advisory_xact_lock(sa.func.hashtext(str(business_id))))
                        )
                    yield
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error("store_error", error=str(e), error_type=type(e).__name__,
                                 business_id=str(business_id))
                    raise StoreError(str(e)) from e
                except BaseException:
                    await session.rollback()
                    raise
                finally:
                    self._active.reset(token)

    async def get(self, appointment_id: int) -> Optional[Appointment]:
        async with self._session() as db:
            record = await db.get(AppointmentRecord, appointment_id)
            return to_appointment(record) if record is not None else None

    async def find_by_fingerprint(self, fingerprint: str) -> Optional[Appointment]:
        async with self._session() as db:
            res = await db.execute(
                sa.select(AppointmentRecord).where(AppointmentRecord.hash == fingerprint)
            )
            record = res.scalar_one_or_none()
            return to_appointment(record) if record is not None else None

    async def query(
        self,
        scope: Optional[Scope] = None,
        limit: Optional[int] = None,
        *,
        for_update: bool = False,
    ) -> Sequence[Appointment]:
        q = sa.select(AppointmentRecord)
        if scope is not None:
            q = q.where(scope.clause(AppointmentRecord))
        q = q.order_by(AppointmentRecord.start_at.asc(), AppointmentRecord.id.asc())
        if limit is not None:
            q = q.limit(limit)
        if for_update:
            q = q.with_for_update()
        async with self._session() as db:
            res = await db.execute(q)
            return [to_appointment(r) for r in res.scalars().all()]

    async def _write(self, appointment: Appointment) -> Appointment:
        async with self._session() as db:
            if appointment.id is None:
                record = AppointmentRecord()
                db.add(record)
            else:
                record = await db.get(AppointmentRecord, appointment.id)
                if record is None:
                    raise StoreError(f"Appointment {appointment.id} does not exist")
            to_record(appointment, record)
            try:
                await db.flush()
            except IntegrityError as e:
                await db.rollback()
                if "hash" not in str(e.orig):
                    raise StoreError(str(e)) from e
                raise DuplicateAppointment(appointment.hash) from e
            saved = to_appointment(record)

        appointment.id = saved.id
        appointment.created_at = saved.created_at
        appointment.updated_at = saved.updated_at
        return appointment
