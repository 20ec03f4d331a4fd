from __future__ import annotations
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Set
from pydantic import BaseModel
from dates import last_n_days, local_day, local_time, within_last_n_days
from models import DEFAULT_COLOR, AppState, Session, Subject

UNKNOWN_SUBJECT = "Unknown"


def session_day(session: Session) -> date:
    return local_day(session.completed_at)


def marked_days(manual_studied: Dict[date, bool]) -> Set[date]:
    return {d for d, flag in manual_studied.items() if flag}


def studied_days(sessions: Iterable[Session], manual_studied: Dict[date, bool]) -> Set[date]:
    return {session_day(s) for s in sessions} | marked_days(manual_studied)


def due_today(subjects: List[Subject], today: date) -> List[Subject]:
    due = [s for s in subjects if s.is_due(today)]
    # sorted() is stable, so equal dates keep insertion order
    return sorted(due, key=lambda s: s.review_day(today))


def due_on(subjects: List[Subject], day: date, today: date) -> List[Subject]:
    return [s for s in subjects if s.review_day(today) <= day]


def sessions_on(sessions: Iterable[Session], day: date) -> int:
    return sum(1 for s in sessions if session_day(s) == day)


def activity_on(sessions: Iterable[Session], manual_studied: Dict[date, bool], day: date) -> int:
    return sessions_on(sessions, day) + (1 if manual_studied.get(day) else 0)


def today_count(sessions: Iterable[Session], manual_studied: Dict[date, bool], today: date) -> int:
    # Not capped: a busy day can exceed the goal
    return activity_on(sessions, manual_studied, today)


def goal_fraction(done: int, goal: int) -> float:
    return max(0.0, min(1.0, done / max(1, goal)))


def streak(sessions: Iterable[Session], manual_studied: Dict[date, bool], today: date) -> int:
    """
    Consecutive studied days ending today. A day without activity today
    means no streak, whatever happened yesterday.
    """
    days = studied_days(sessions, manual_studied)
    count = 0
    cursor = today
    while cursor in days:
        count += 1
        cursor -= timedelta(days=1)
    return count


def dashboard_stats(state: AppState, today: date) -> dict:
    done = today_count(state.sessions, state.manual_studied, today)
    return {
        "total_subjects": len(state.subjects),
        "due_today": len(due_today(state.subjects, today)),
        "streak": streak(state.sessions, state.manual_studied, today),
        "today_done": done,
        "goal": state.daily_goal,
        "goal_fraction": goal_fraction(done, state.daily_goal),
    }


def subject_stats(
    subjects: List[Subject],
    sessions: List[Session],
    today: date,
    window_days: int = 7,
) -> List[dict]:
    rows = []
    for s in subjects:
        own = [x for x in sessions if x.subject_id == s.id]
        recent = sum(1 for x in own if within_last_n_days(session_day(x), window_days, today))
        rows.append({
            "id": s.id,
            "name": s.name,
            "color": s.color or DEFAULT_COLOR,
            "exam_date": s.exam_date,
            "next_review_date": s.review_day(today),
            "interval_days": s.interval_days,
            "ease_streak": s.ease_streak,
            "total_sessions": len(own),
            "recent_sessions": recent,
            "due": s.is_due(today),
        })

    rows.sort(key=lambda r: (not r["due"], -r["recent_sessions"]))
    return rows


def range_activity(
    sessions: List[Session],
    manual_studied: Dict[date, bool],
    today: date,
    days: int = 7,
) -> List[dict]:
    counts: Dict[date, int] = {}
    for s in sessions:
        d = session_day(s)
        counts[d] = counts.get(d, 0) + 1

    out = []
    for d in last_n_days(days, today):
        label = d.strftime("%a") if days <= 7 else d.strftime("%b %d")
        out.append({
            "day": d,
            "label": label,
            "count": counts.get(d, 0) + (1 if manual_studied.get(d) else 0),
        })
    return out


def history(subjects: List[Subject], sessions: List[Session], limit: int = 30) -> List[dict]:
    by_id = {s.id: s for s in subjects}
    newest = sorted(sessions, key=lambda x: x.completed_at, reverse=True)[:limit]
    rows = []
    for x in newest:
        subject = by_id.get(x.subject_id or "")
        rows.append({
            "id": x.id,
            "day": session_day(x),
            "time": local_time(x.completed_at).strftime("%H:%M"),
            "subject_id": subject.id if subject else "",
            "subject_name": subject.name if subject else UNKNOWN_SUBJECT,
            "color": subject.color if subject else DEFAULT_COLOR,
            "difficulty": x.difficulty or "",
            "minutes": x.minutes,
            "note": x.note,
        })
    return rows


def subject_detail(
    subjects: List[Subject],
    sessions: List[Session],
    subject_id: str,
    today: date,
    recent: int = 10,
    window_days: int = 7,
) -> Optional[dict]:
    subject = next((s for s in subjects if s.id == subject_id), None)
    if subject is None:
        return None

    own = [x for x in sessions if x.subject_id == subject_id]
    return {
        "subject": subject,
        "total_sessions": len(own),
        "recent_sessions": sum(
            1 for x in own if within_last_n_days(session_day(x), window_days, today)
        ),
        "sessions": sorted(own, key=lambda x: x.completed_at, reverse=True)[:recent],
        "due": subject.is_due(today),
    }


class Achievement(BaseModel):
    key: str
    title: str
    description: str
    current: int
    target: int
    unlocked: bool

    @property
    def progress(self) -> float:
        return min(self.current, self.target) / max(1, self.target)

    @property
    def progress_text(self) -> str:
        return f"{min(self.current, self.target)} / {self.target}"


def achievements(
    subjects: List[Subject],
    sessions: List[Session],
    manual_studied: Dict[date, bool],
    today: date,
) -> List[Achievement]:
    """
    Derived from current data every time; nothing here is persisted.
    """
    n_subjects = len(subjects)
    n_sessions = len(sessions)
    best = streak(sessions, manual_studied, today)
    queue_clear = n_subjects > 0 and not due_today(subjects, today)

    def counter(key: str, title: str, description: str, current: int, target: int) -> Achievement:
        return Achievement(
            key=key,
            title=title,
            description=description,
            current=current,
            target=target,
            unlocked=current >= target,
        )

    return [
        counter("getting_started", "Getting Started", "Add your first subject.", n_subjects, 1),
        counter("first_review", "First Review", "Complete your first Pomodoro.", n_sessions, 1),
        counter("three_reviews", "Consistency", "Complete 3 Pomodoros.", n_sessions, 3),
        counter("ten_reviews", "Dedicated", "Complete 10 Pomodoros.", n_sessions, 10),
        counter("streak_3", "Streak Starter", "Reach a 3-day streak.", best, 3),
        counter("streak_7", "Weekly Warrior", "Reach a 7-day streak.", best, 7),
        Achievement(
            key="clear_due",
            title="Clear the Queue",
            description="Have 0 due reviews today.",
            current=1 if queue_clear else 0,
            target=1,
            unlocked=queue_clear,
        ),
    ]


def achievements_summary(items: List[Achievement]) -> dict:
    total = len(items) or 1
    unlocked = sum(1 for a in items if a.unlocked)
    return {"unlocked": unlocked, "total": len(items), "percent": round(unlocked / total * 100)}
