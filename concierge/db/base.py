# concierge/db/base.py

"""
This file imports all the ORM models so Alembic can discover them.
Whenever you add a new model, import it here.
"""
from sqlalchemy.ext.asyncio import AsyncEngine

from concierge.db.models.appointment import AppointmentRecord
from concierge.db.session import engine, Base


async def init_db(bind: AsyncEngine | None = None):
    """Initialize database by creating all tables"""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
