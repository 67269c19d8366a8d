# concierge/scheduling/fingerprint.py
"""
Deterministic appointment fingerprint.

The fingerprint identifies a reservation attempt by what was asked for, not by
row id: same start, contact, business and service means same appointment.
It doubles as the idempotency key behind the unique index on `hash`.
"""
from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any, Optional

from concierge.core.clock import as_utc

FIELD_SEPARATOR = "/"
ESCAPE = "\\"
START_FORMAT = "%Y-%m-%d %H:%M:%S"


def _part(value: Any) -> str:
    # Missing parts hash as empty strings so the fingerprint is always computable
    if value is None:
        return ""
    if isinstance(value, datetime):
        return as_utc(value).strftime(START_FORMAT)
    # Escape the separator inside ids so field boundaries stay unambiguous
    text = str(value)
    return text.replace(ESCAPE, ESCAPE * 2).replace(FIELD_SEPARATOR, ESCAPE + FIELD_SEPARATOR)


def fingerprint(
    start_at: Optional[datetime],
    contact_id: Any,
    business_id: Any,
    service_id: Any,
) -> str:
    """md5 over `start/contact/business/service`, start rendered in UTC to the second."""
    content = FIELD_SEPARATOR.join(
        _part(v) for v in (start_at, contact_id, business_id, service_id)
    )
    return hashlib.md5(content.encode(), usedforsecurity=False).hexdigest()
