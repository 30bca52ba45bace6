"""Shared serialization utilities for API schemas."""

from datetime import datetime

from playcast.utils.time_utils import ensure_utc


def serialize_optional_utc_datetime(dt: datetime | None) -> str | None:
    """Serialize as ISO 8601 with UTC offset; naive values are assumed to be UTC.

    Output format: 2025-12-03T10:30:00+00:00
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
