from __future__ import annotations
from datetime import datetime, date
from typing import List
from icalendar import Calendar
from pydantic import BaseModel


class ExamCandidate(BaseModel):
    title: str
    day: date


def _normalize_to_date(value) -> date | None:
    dt_value = getattr(value, "dt", value)

    if isinstance(dt_value, datetime):
        if dt_value.tzinfo:
            dt_value = dt_value.astimezone()
        return dt_value.date()
    if isinstance(dt_value, date):
        return dt_value
    return None


def parse_ics_bytes(data: bytes) -> List[ExamCandidate]:
    cal = Calendar.from_ical(data)
    out: List[ExamCandidate] = []

    for component in cal.walk():
        if component.name != "VEVENT":
            continue

        summary = str(component.get("SUMMARY", "")).strip() or "Untitled"
        dtstart = component.get("DTSTART")
        if not dtstart:
            continue

        day = _normalize_to_date(dtstart)
        if day is None:
            continue

        out.append(ExamCandidate(title=summary, day=day))

    return sorted(out, key=lambda x: (x.day, x.title.lower()))
