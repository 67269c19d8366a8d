"""
Tests for the Appointment entity: finish resolution, normalization, hashing.
"""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from concierge.core.errors import InvalidInterval
from concierge.scheduling.appointment import Appointment
from concierge.scheduling.fingerprint import fingerprint
from concierge.scheduling.status import AppointmentStatus

UTC = timezone.utc
T = datetime(2024, 1, 10, 10, 0, tzinfo=UTC)


@pytest.mark.unit
class TestFinishResolution:

    def test_duration_resolves_finish(self, make_appointment):
        appt = make_appointment(start_at=T, duration=45)
        assert appt.finish_at == T + timedelta(minutes=45)

    def test_explicit_finish_wins_over_duration(self, make_appointment):
        explicit = T + timedelta(hours=2)
        appt = make_appointment(start_at=T, duration=45, finish_at=explicit)
        assert appt.finish_at == explicit

    def test_no_duration_falls_back_to_start(self, make_appointment):
        appt = make_appointment(start_at=T, duration=None)
        assert appt.finish_at == T
        assert appt.interval.duration == timedelta(0)

    def test_zero_duration(self, make_appointment):
        assert make_appointment(start_at=T, duration=0).finish_at == T

    def test_finish_follows_start_changes(self, make_appointment):
        appt = make_appointment(start_at=T, duration=30)
        appt.start_at = T + timedelta(hours=1)
        assert appt.finish_at == T + timedelta(hours=1, minutes=30)

    def test_negative_duration_rejected(self, make_appointment):
        with pytest.raises(InvalidInterval):
            make_appointment(duration=-5)

    def test_explicit_finish_before_start_fails_on_interval(self, make_appointment):
        appt = make_appointment(start_at=T, finish_at=T - timedelta(minutes=1))
        with pytest.raises(InvalidInterval):
            appt.interval


@pytest.mark.unit
class TestAttributes:

    def test_start_normalized_to_utc(self, make_appointment):
        local = datetime(2024, 1, 10, 3, 0, tzinfo=ZoneInfo("America/Edmonton"))
        appt = make_appointment(start_at=local)
        assert appt.start_at == T
        assert appt.start_at.tzinfo == UTC

    @pytest.mark.parametrize("raw,expected", [
        ("  bring x-rays  ", "bring x-rays"),
        ("", None),
        ("   ", None),
        (None, None),
    ])
    def test_comments_trimmed(self, make_appointment, raw, expected):
        assert make_appointment(comments=raw).comments == expected

    def test_status_label(self, make_appointment):
        assert make_appointment().status_label == ""
        assert make_appointment(status="A").status_label == "annulated"

    def test_status_is_read_only(self, make_appointment):
        appt = make_appointment(status="R")
        with pytest.raises(AttributeError):
            appt.status = AppointmentStatus.SERVED
        assert appt.status is AppointmentStatus.RESERVED

    def test_status_accepts_code(self, make_appointment):
        appt = make_appointment(status="C")
        assert appt.status is AppointmentStatus.CONFIRMED
        assert not appt.is_reserved()

    def test_local_date(self, make_appointment):
        appt = make_appointment(start_at=datetime(2024, 1, 10, 2, 0, tzinfo=UTC))
        assert appt.local_date() == date(2024, 1, 10)
        assert appt.local_date(ZoneInfo("America/Edmonton")) == date(2024, 1, 9)

    def test_copy_is_detached(self, make_appointment):
        appt = make_appointment()
        other = appt.copy()
        other.comments = "changed"
        assert appt.comments is None


@pytest.mark.unit
class TestHash:

    def test_hash_computed_lazily(self, make_appointment):
        appt = make_appointment(start_at=T, contact_id=1, business_id="B1", service_id=10)
        assert appt.hash == fingerprint(T, 1, "B1", 10)

    def test_stored_hash_kept_until_rehash(self, make_appointment):
        appt = make_appointment(start_at=T)
        original = appt.hash
        appt.start_at = T + timedelta(minutes=15)
        assert appt.hash == original
        assert appt.rehash() != original
        assert appt.hash == fingerprint(appt.start_at, appt.contact_id, appt.business_id, appt.service_id)

    def test_hash_ignores_id_and_issuer(self, make_appointment):
        a = make_appointment(id=1, issuer_id=5)
        b = make_appointment(id=2, issuer_id=6)
        assert a.hash == b.hash
