"""
Send-time calculation for column triggers.

`now` is always passed in so results are deterministic under test.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from app.shared.core.constants import MILLISECONDS_PER_HOUR


def compute_send_time(delay_hours: Optional[float], now: datetime) -> datetime:
    """
    Absolute time a triggered message becomes due.

    None is treated as 0 (send immediately). Fractional hours are honoured
    (0.5 -> 30 minutes). No clamping and no timezone shifting: the result
    is in the same frame as `now`.
    """
    delay_ms = (delay_hours or 0) * MILLISECONDS_PER_HOUR
    return now + timedelta(milliseconds=delay_ms)


def to_iso(value: datetime) -> str:
    """Serialize as ISO-8601 UTC with a 'Z' suffix, e.g. 2024-01-01T11:00:00Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.isoformat(timespec="milliseconds" if value.microsecond else "seconds")
    return text.replace("+00:00", "Z")
