"""
Pytest configuration and shared fixtures.
"""

import os
from datetime import datetime, timezone

# Keep the module-level engine away from any real database file
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("OVERLAP_SCOPE", "active")
os.environ.setdefault("BUSINESS_TIMEZONE", "UTC")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from concierge.core.clock import FixedClock
from concierge.crud.appointment import SqlAppointmentStore
from concierge.crud.memory import MemoryAppointmentStore
from concierge.db.base import init_db
from concierge.db.session import make_session_factory
from concierge.scheduling.appointment import Appointment
from concierge.services.lifecycle import AppointmentLifecycle

UTC = timezone.utc

# Test database configuration
TEST_DATABASE_URL = "sqlite+aiosqlite://"

# Reference "now" for every clock-driven test
NOW = datetime(2024, 1, 10, 9, 0, tzinfo=UTC)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def make_appointment():
    """Factory for unsaved appointments with sensible defaults."""
    def _make(start_at=None, duration=30, contact_id=1, business_id="B1", service_id=10, **kwargs):
        return Appointment(
            start_at=start_at or datetime(2024, 1, 10, 10, 0, tzinfo=UTC),
            duration=duration,
            contact_id=contact_id,
            business_id=business_id,
            service_id=service_id,
            issuer_id=kwargs.pop("issuer_id", 99),
            **kwargs,
        )
    return _make


@pytest.fixture
def memory_store():
    return MemoryAppointmentStore()


@pytest.fixture
def lifecycle(memory_store, clock):
    return AppointmentLifecycle(memory_store, clock)


@pytest_asyncio.fixture
async def sql_engine():
    """In-memory SQLite shared across sessions through a single connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_store(sql_engine):
    return SqlAppointmentStore(make_session_factory(sql_engine))


@pytest.fixture
def sql_lifecycle(sql_store, clock):
    return AppointmentLifecycle(sql_store, clock)


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "essential: Core functionality tests")
    config.addinivalue_line("markers", "integration: Tests against a real (SQLite) database")
