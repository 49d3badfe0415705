"""Date manipulation utilities"""

from datetime import date, datetime, timedelta, timezone


def add_days(from_date: date, days: int) -> date:
    """Calendar days, no business-day adjustment"""
    return from_date + timedelta(days=days)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
