"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def end_date_from_duration(start: datetime, duration_days: int) -> datetime:
    """Campaign end date: start plus duration in calendar days"""
    return start + timedelta(days=duration_days)
