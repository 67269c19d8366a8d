# concierge/db/models/appointment.py

from __future__ import annotations
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column
from concierge.db.session import Base


class AppointmentRecord(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Backstop against two writers committing the same reservation
        sa.UniqueConstraint("hash", name="uq_appointments_hash"),
        sa.Index("ix_appointments_business_id_start_at", "business_id", "start_at"),
        sa.Index("ix_appointments_business_id_ends_at", "business_id", "ends_at"),
        sa.Index("ix_appointments_status", "status"),
    )

    id: Mapped[int] = mapped_column(
        sa.BigInteger().with_variant(sa.Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    hash: Mapped[str] = mapped_column(sa.String(32), nullable=False)

    # Opaque keys owned by other registries
    issuer_id: Mapped[str | None] = mapped_column(sa.String(64))
    contact_id: Mapped[str | None] = mapped_column(sa.String(64))
    business_id: Mapped[str] = mapped_column(sa.String(64), nullable=False)
    service_id: Mapped[str | None] = mapped_column(sa.String(64))
    vacancy_id: Mapped[str | None] = mapped_column(sa.String(64))

    # Store as timezone-aware UTC
    start_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    # Explicit finish as given by the caller, if any
    finish_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
    # Resolved finish; what overlap queries compare against
    ends_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    duration: Mapped[int | None] = mapped_column(sa.Integer)

    status: Mapped[str] = mapped_column(sa.String(1), nullable=False, server_default="R")
    comments: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)  # Python-side timezone-aware default
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
