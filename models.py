from __future__ import annotations
from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, get_args


Difficulty = Literal["easy", "medium", "hard"]
Permission = Literal["granted", "denied", "default"]

DIFFICULTIES = get_args(Difficulty)

DEFAULT_COLOR = "#2563eb"


class TimerMode(str, Enum):
    POMODORO = "pomodoro"
    SHORT = "short"
    LONG = "long"


def clamp(value: Any, low: int, high: int, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


class Subject(BaseModel):
    id: str
    name: str
    exam_date: date
    next_review_date: Optional[date] = None
    color: str = DEFAULT_COLOR
    interval_days: int = Field(default=1, ge=1)
    ease_streak: int = Field(default=0, ge=0)

    def review_day(self, today: date) -> date:
        # Subjects without a review date count as due today
        return self.next_review_date or today

    def is_due(self, today: date) -> bool:
        return self.review_day(today) <= today


class Session(BaseModel):
    id: str
    subject_id: Optional[str] = None
    type: Literal["pomodoro"] = "pomodoro"
    minutes: int = Field(gt=0)
    completed_at: datetime
    difficulty: Optional[Difficulty] = None
    note: str = ""


class TimerSettings(BaseModel):
    pomodoro_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 15
    cycles_before_long_break: int = 4
    auto_start_break: bool = True
    auto_start_next_focus: bool = True
    end_sound: bool = True

    # Out-of-range writes are clamped, not rejected
    @field_validator("pomodoro_minutes", mode="before")
    @classmethod
    def _clamp_pomodoro(cls, v: Any) -> int:
        return clamp(v, 5, 90, 25)

    @field_validator("short_break_minutes", mode="before")
    @classmethod
    def _clamp_short(cls, v: Any) -> int:
        return clamp(v, 1, 30, 5)

    @field_validator("long_break_minutes", mode="before")
    @classmethod
    def _clamp_long(cls, v: Any) -> int:
        return clamp(v, 5, 60, 15)

    @field_validator("cycles_before_long_break", mode="before")
    @classmethod
    def _clamp_cycles(cls, v: Any) -> int:
        return clamp(v, 2, 8, 4)


class AppState(BaseModel):
    theme: Literal["light", "dark"] = "light"
    onboarding_done: bool = False

    notifications_enabled: bool = False
    notification_permission: Permission = "default"
    last_due_notify_day: Optional[date] = None

    daily_goal: int = 2
    timer: TimerSettings = Field(default_factory=TimerSettings)
    pomodoro_cycle_count: int = Field(default=0, ge=0)

    subjects: List[Subject] = Field(default_factory=list)
    sessions: List[Session] = Field(default_factory=list)

    calendar_notes: Dict[date, str] = Field(default_factory=dict)
    manual_studied: Dict[date, bool] = Field(default_factory=dict)

    @field_validator("daily_goal", mode="before")
    @classmethod
    def _clamp_goal(cls, v: Any) -> int:
        return clamp(v, 1, 10, 2)

    def find_subject(self, subject_id: Optional[str]) -> Optional[Subject]:
        if not subject_id:
            return None
        for s in self.subjects:
            if s.id == subject_id:
                return s
        return None
