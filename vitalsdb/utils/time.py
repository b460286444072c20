from __future__ import annotations
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ms_to_dt_utc(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)


def ms_to_utc_iso(ms: int) -> str:
    """Return ISO-8601 string of the given epoch ms in UTC."""
    return ms_to_dt_utc(ms).isoformat()


def as_utc(dt: datetime) -> datetime:
    # BSON dates come back naive unless the client is tz_aware
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
