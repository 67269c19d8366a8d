"""
Tests for services/overlap.py

Overlap detection scoped to one business, status filtering and exclusion of
the appointment being edited.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from concierge.scheduling import scopes
from concierge.scheduling.interval import TimeInterval
from concierge.scheduling.status import AppointmentStatus
from concierge.services.overlap import OverlapQuery

UTC = timezone.utc
T = datetime(2024, 1, 10, 10, 0, tzinfo=UTC)


def at(minutes):
    return T + timedelta(minutes=minutes)


async def seed(store, make_appointment, start, duration, status="R", **kwargs):
    appt = make_appointment(start_at=start, duration=duration, status=status, **kwargs)
    return await store.save(appt)


@pytest.fixture
def overlap(memory_store, clock):
    return OverlapQuery(memory_store, clock, scope_name="active")


@pytest.mark.essential
class TestFindAffecting:

    @pytest.mark.asyncio
    async def test_no_collision_returns_empty(self, overlap, memory_store, make_appointment):
        await seed(memory_store, make_appointment, T, 30)
        assert await overlap.find_affecting("B1", TimeInterval(at(30), at(60))) == []

    @pytest.mark.asyncio
    async def test_partial_overlap_found(self, overlap, memory_store, make_appointment):
        existing = await seed(memory_store, make_appointment, T, 30)
        found = await overlap.find_affecting("B1", TimeInterval(at(15), at(45)))
        assert [a.id for a in found] == [existing.id]

    @pytest.mark.asyncio
    async def test_other_business_ignored(self, overlap, memory_store, make_appointment):
        await seed(memory_store, make_appointment, T, 30, business_id="B2")
        assert await overlap.find_affecting("B1", TimeInterval(at(0), at(30))) == []

    @pytest.mark.asyncio
    async def test_inactive_ignored_by_default(self, overlap, memory_store, make_appointment):
        await seed(memory_store, make_appointment, T, 30, status="A")
        await seed(memory_store, make_appointment, T, 30, status="S", contact_id=2)
        assert await overlap.find_affecting("B1", TimeInterval(at(0), at(30))) == []

    @pytest.mark.asyncio
    async def test_explicit_scope(self, overlap, memory_store, make_appointment):
        annulated = await seed(memory_store, make_appointment, T, 30, status="A")
        found = await overlap.find_affecting("B1", TimeInterval(at(0), at(30)), scope=scopes.everything())
        assert [a.id for a in found] == [annulated.id]

    @pytest.mark.asyncio
    async def test_exclude_id(self, overlap, memory_store, make_appointment):
        existing = await seed(memory_store, make_appointment, T, 30)
        found = await overlap.find_affecting("B1", existing.interval, exclude_id=existing.id)
        assert found == []

    @pytest.mark.asyncio
    async def test_results_ordered_by_start(self, overlap, memory_store, make_appointment):
        late = await seed(memory_store, make_appointment, at(40), 30, contact_id=2)
        early = await seed(memory_store, make_appointment, at(0), 30, contact_id=3)
        found = await overlap.find_affecting("B1", TimeInterval(at(10), at(50)))
        assert [a.id for a in found] == [early.id, late.id]

    @pytest.mark.asyncio
    async def test_unarchived_scope_from_setting(self, memory_store, clock, make_appointment):
        overlap = OverlapQuery(memory_store, clock, scope_name="unarchived")
        annulated = await seed(memory_store, make_appointment, T, 30, status="A")
        found = await overlap.find_affecting("B1", TimeInterval(at(0), at(30)))
        assert [a.id for a in found] == [annulated.id]
        assert found[0].status is AppointmentStatus.ANNULATED


@pytest.mark.essential
class TestOverlapProperty:

    @pytest.mark.asyncio
    async def test_agrees_with_brute_force(self, overlap, memory_store, make_appointment):
        rng = random.Random(42)
        seeded = []
        for i in range(40):
            start = rng.randint(0, 600)
            seeded.append(await seed(memory_store, make_appointment, at(start), rng.randint(0, 90), contact_id=i))

        for _ in range(200):
            s = rng.randint(0, 650)
            candidate = TimeInterval(at(s), at(s + rng.randint(0, 90)))
            expected = {
                a.id for a in seeded
                if (a.start_at <= candidate.start and a.finish_at >= candidate.finish)
                or (a.start_at < candidate.finish and a.finish_at > candidate.start)
            }
            found = await overlap.find_affecting("B1", candidate)
            assert {a.id for a in found} == expected
