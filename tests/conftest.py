from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

import pytest

from controller import StudyController
from models import AppState, Permission, Session, Subject

TODAY = date(2026, 10, 18)


def local_dt(day: date, hour: int = 10, minute: int = 0) -> datetime:
    """Timezone-aware local timestamp on the given calendar day."""
    return datetime(day.year, day.month, day.day, hour, minute).astimezone()


def make_subject(sid: str = "s1", name: str = "Math", **kwargs) -> Subject:
    fields = {"exam_date": TODAY + timedelta(days=30), "next_review_date": TODAY}
    fields.update(kwargs)
    return Subject(id=sid, name=name, **fields)


def make_session(
    subject_id: Optional[str],
    day: date = TODAY,
    hour: int = 10,
    sid: Optional[str] = None,
    **kwargs,
) -> Session:
    return Session(
        id=sid or f"{subject_id}-{day.isoformat()}-{hour}",
        subject_id=subject_id,
        minutes=kwargs.pop("minutes", 25),
        completed_at=local_dt(day, hour),
        **kwargs,
    )


class MemoryStore:
    def __init__(self, state: Optional[AppState] = None):
        self.state = state or AppState()
        self.saves = 0

    def load(self) -> AppState:
        return self.state.model_copy(deep=True)

    def save(self, state: AppState) -> None:
        self.state = state.model_copy(deep=True)
        self.saves += 1


class FixedClock:
    def __init__(self, day: date = TODAY, hour: int = 9):
        self.moment = local_dt(day, hour)

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, **kwargs) -> None:
        self.moment = self.moment + timedelta(**kwargs)


class FakeNotifier:
    def __init__(self, permission: Permission = "granted", supported: bool = True):
        self.permission = permission
        self.supported = supported
        self.sent: List[Tuple[str, str]] = []

    def request_permission(self) -> Permission:
        return self.permission

    def notify(self, title: str, body: str) -> None:
        self.sent.append((title, body))


class FakeSound:
    supported = True

    def __init__(self):
        self.plays = 0

    def play_completion_sound(self) -> None:
        self.plays += 1


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def sound() -> FakeSound:
    return FakeSound()


@pytest.fixture
def controller(store, clock, notifier, sound) -> StudyController:
    return StudyController(store, notifier=notifier, sound=sound, clock=clock)
