from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import List


def now() -> datetime:
    # Timezone-aware local timestamp
    return datetime.now().astimezone()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    return (end - start).days


def local_time(moment: datetime) -> datetime:
    # Naive timestamps are assumed to already be local
    if moment.tzinfo is not None:
        return moment.astimezone()
    return moment


def local_day(moment: datetime) -> date:
    """
    Calendar day of a timestamp in local time.
    """
    return local_time(moment).date()


def within_last_n_days(day: date, n: int, today_: date) -> bool:
    """
    True when day falls in the inclusive window of n days ending on today_.
    """
    cutoff = today_ - timedelta(days=n - 1)
    return cutoff <= day <= today_


def last_n_days(n: int, today_: date) -> List[date]:
    return [today_ - timedelta(days=i) for i in range(n - 1, -1, -1)]


def month_matrix(year: int, month: int) -> List[dict]:
    """
    42 day cells (6 weeks) for a month view, weeks starting on Sunday.
    """
    first = date(year, month, 1)
    # weekday(): Mon=0 ... Sun=6
    lead = (first.weekday() + 1) % 7
    start = first - timedelta(days=lead)
    cells = []
    for i in range(42):
        d = start + timedelta(days=i)
        cells.append({"day": d, "label": d.day, "in_month": d.month == month})
    return cells
