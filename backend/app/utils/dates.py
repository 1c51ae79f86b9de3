"""Whole-day date arithmetic for milestone scheduling."""
from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utc_today() -> date:
    """Current date in UTC (the "today" used by status transitions)."""
    return datetime.now(timezone.utc).date()


def end_date_for(start: date, duration: int) -> date:
    # duration counts the start day itself
    return start + timedelta(days=duration - 1)


def next_start_date(end_date: date, completion_date: Optional[date] = None) -> date:
    """Day after the completion date when set, else after the end date."""
    return (completion_date or end_date) + timedelta(days=1)
