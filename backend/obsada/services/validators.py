from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status

from obsada.config import settings
from obsada.utils import ensure_utc, utcnow

MATCH_DURATION = settings.MATCH_DURATION_HOURS
GRADE_ENTRY_TIME_WINDOW = settings.GRADE_ENTRY_WINDOW_HOURS
OVERALL_GRADE_ENTRY_TIME_WINDOW = settings.OVERALL_GRADE_ENTRY_WINDOW_HOURS


def is_within_entry_window(
    reference_time: datetime,
    window_hours: float,
    now: Optional[datetime] = None,
) -> bool:
    """True once ``window_hours`` have elapsed since ``reference_time``.

    There is no upper bound: the window stays open indefinitely.
    """
    now = ensure_utc(now) if now is not None else utcnow()
    return now >= ensure_utc(reference_time) + timedelta(hours=window_hours)


def validate_entry_time(
    reference_time: datetime,
    window_hours: float,
    now: Optional[datetime] = None,
) -> None:
    """Raise 400 while the entry window has not opened yet."""
    if not is_within_entry_window(reference_time, window_hours, now):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Entry is allowed only {window_hours:g} hours after match start.",
        )
