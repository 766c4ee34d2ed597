"""Date manipulation utilities"""

from datetime import date, datetime, timedelta
from typing import Any, Optional


def parse_date(value: Any) -> Optional[date]:
    """Parse ISO dates/datetimes ('2024-12-10', '2024-12-10T08:00:00.000Z') into a date"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def format_date_for_api(value: Any) -> Optional[str]:
    """Format a date for query parameters (YYYY-MM-DD)"""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value.split("T")[0]
    if isinstance(value, datetime):
        return value.date().isoformat()
    return value.isoformat()


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)


def compact_date(day: date) -> str:
    """YYYYMMDD, as used in document numbers"""
    return day.strftime("%Y%m%d")
