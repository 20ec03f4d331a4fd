from __future__ import annotations
from datetime import date
from typing import Optional, Protocol
from models import AppState, Permission
from analytics import due_today

APP_TITLE = "StudyPace"


class Notifier(Protocol):
    supported: bool

    def request_permission(self) -> Permission: ...

    def notify(self, title: str, body: str) -> None: ...


class SoundPlayer(Protocol):
    supported: bool

    def play_completion_sound(self) -> None: ...


class NullNotifier:
    """Stand-in for environments without notification support."""

    supported = False

    def request_permission(self) -> Permission:
        return "denied"

    def notify(self, title: str, body: str) -> None:
        return None


class NullSound:
    supported = False

    def play_completion_sound(self) -> None:
        return None


def due_reminder(state: AppState, today: date) -> Optional[tuple[str, str]]:
    """
    Title and body of today's due reminder, or None when nothing should be
    sent: notifications off, permission missing, already sent today, or
    nothing due.
    """
    if not state.notifications_enabled or state.notification_permission != "granted":
        return None
    if state.last_due_notify_day == today:
        return None
    due = due_today(state.subjects, today)
    if not due:
        return None
    return f"{APP_TITLE} reminder", f"{len(due)} subject(s) due for review today."
