from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes pass through.

    Motor hands back stored kickoffs and grade timestamps as naive UTC
    datetimes. Wrap them before comparing against utcnow() or a window bound.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def as_utc(dt: datetime | None) -> datetime | None:
    """None-safe ensure_utc for optional grade dates in API responses."""
    if dt is None:
        return None
    return ensure_utc(dt)


def league_tz(name: str) -> ZoneInfo:
    """Timezone that defines a league's calendar day and SMS send times."""
    return ZoneInfo(name)
