from __future__ import annotations
from datetime import date
from dates import add_days
from models import Difficulty, Subject, TimerMode

MAX_EASY_INTERVAL = 30
MIN_MEDIUM_INTERVAL = 2
MAX_MEDIUM_INTERVAL = 14


def next_interval(interval_days: int, ease_streak: int, difficulty: Difficulty) -> tuple[int, int]:
    """
    Three-bucket review rule. Returns (interval_days, ease_streak).
    - easy: double the interval (capped at 30 days), extend the streak
    - medium: hold the interval inside [2, 14], reset the streak
    - hard: back to a single day, reset the streak
    """
    interval = max(1, interval_days)
    if difficulty == "easy":
        return min(MAX_EASY_INTERVAL, interval * 2), ease_streak + 1
    if difficulty == "medium":
        return min(MAX_MEDIUM_INTERVAL, max(MIN_MEDIUM_INTERVAL, interval)), 0
    return 1, 0


def apply_feedback(subject: Subject, difficulty: Difficulty, today: date) -> Subject:
    interval, streak = next_interval(subject.interval_days, subject.ease_streak, difficulty)
    return subject.model_copy(update={
        "interval_days": interval,
        "ease_streak": streak,
        "next_review_date": add_days(today, interval),
    })


def is_long_break(cycle_count: int, cycles_before_long_break: int) -> bool:
    return cycle_count > 0 and cycle_count % max(1, cycles_before_long_break) == 0


def choose_break_mode(cycle_count: int, cycles_before_long_break: int) -> TimerMode:
    if is_long_break(cycle_count, cycles_before_long_break):
        return TimerMode.LONG
    return TimerMode.SHORT
