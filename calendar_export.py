from __future__ import annotations
from datetime import date, timedelta
from typing import List
from icalendar import Calendar, Event as IcsEvent
from models import Subject


def _all_day_event(uid: str, summary: str, day: date, description: str) -> IcsEvent:
    event = IcsEvent()
    event.add("uid", f"{uid}@studypace")
    event.add("summary", summary)
    event.add("dtstart", day)
    event.add("dtend", day + timedelta(days=1))
    event.add("description", description)
    return event


def reviews_to_ics(
    subjects: List[Subject],
    today: date,
    horizon_days: int = 30,
) -> bytes:
    """
    All-day review and exam events for the next horizon_days.
    Overdue reviews land on today.
    """
    cal = Calendar()
    cal.add("PRODID", "-//StudyPace//Local//")
    cal.add("version", "2.0")
    cal.add("X-WR-CALNAME", "StudyPace Reviews")

    last_day = today + timedelta(days=horizon_days)
    for s in sorted(subjects, key=lambda x: (x.review_day(today), x.name.lower())):
        review = max(today, s.review_day(today))
        if review <= last_day:
            desc = f"Review every {s.interval_days} day(s)."
            if s.review_day(today) < today:
                desc += f" Overdue since {s.review_day(today).isoformat()}."
            cal.add_component(_all_day_event(
                f"review-{s.id}-{review.strftime('%Y%m%d')}",
                f"Review: {s.name}",
                review,
                desc,
            ))

        if s.exam_date >= today:
            cal.add_component(_all_day_event(
                f"exam-{s.id}",
                f"Exam: {s.name}",
                s.exam_date,
                f"{(s.exam_date - today).days} day(s) left at export time.",
            ))

    return cal.to_ical()
