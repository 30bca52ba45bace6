from datetime import datetime, timezone
from typing import Any

utc_now = lambda: datetime.now(timezone.utc)  # noqa: E731


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_mongo_datetime(v: Any) -> Any:
    """Accept stored datetimes as UTC-aware values.

    Handles Extended JSON (`{'$date': '2024-11-01T08:00:00Z'}`, as written by
    mongoimport) and naive datetimes returned by clients without `tz_aware`.
    Anything else is passed through for pydantic to validate.
    """
    if isinstance(v, dict) and "$date" in v:
        v = datetime.fromisoformat(str(v["$date"]).replace("Z", "+00:00"))
    if isinstance(v, datetime):
        return ensure_utc(v)
    return v
