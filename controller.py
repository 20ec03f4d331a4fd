"""Single owner of the StudyPace state record.

Every read and write of subjects, sessions, configuration and the timer
goes through `StudyController`. Storage, notifications and sound are
injected so any backing store or device can be swapped in.
"""

from __future__ import annotations
import logging
import random
from datetime import date, datetime
from typing import Any, Callable, Optional, Tuple
from uuid import uuid4

import dates
from models import DIFFICULTIES, AppState, Difficulty, Session, Subject, TimerMode, TimerSettings, clamp
from notifications import APP_TITLE, NullNotifier, NullSound, Notifier, SoundPlayer, due_reminder
from pomodoro import PomodoroTimer, TickResult
from scheduler import apply_feedback
from storage import StateStore

logger = logging.getLogger(__name__)

SUBJECT_COLORS = ["#2563eb", "#7c3aed", "#16a34a", "#ea580c", "#dc2626", "#0891b2"]
MAX_DAY_NOTE_CHARS = 250


class StudyController:
    def __init__(
        self,
        store: StateStore,
        notifier: Optional[Notifier] = None,
        sound: Optional[SoundPlayer] = None,
        clock: Callable[[], datetime] = dates.now,
    ):
        self.store = store
        self.notifier = notifier or NullNotifier()
        self.sound = sound or NullSound()
        self.clock = clock

        self.state: AppState = store.load()
        self.timer = PomodoroTimer(self.state.timer, self.state.pomodoro_cycle_count)
        self.selected_subject_id: Optional[str] = (
            self.state.subjects[0].id if self.state.subjects else None
        )
        self.session_note = ""
        self._pending_session_id: Optional[str] = None

    # ---- Helpers ----

    def _save(self) -> None:
        self.store.save(self.state)

    def today(self) -> date:
        return dates.local_day(self.clock())

    @property
    def focus_subject(self) -> Optional[Subject]:
        selected = self.state.find_subject(self.selected_subject_id)
        if selected:
            return selected
        return self.state.subjects[0] if self.state.subjects else None

    @property
    def pending_session(self) -> Optional[Session]:
        if self._pending_session_id is None:
            return None
        return next((s for s in self.state.sessions if s.id == self._pending_session_id), None)

    # ---- Subjects ----

    def add_subject(self, name: str, exam_date: Optional[date], color: Optional[str] = None) -> Subject:
        name = (name or "").strip()
        if not name:
            raise ValueError("Subject name is required.")
        if exam_date is None:
            raise ValueError("Exam date is required.")

        subject = Subject(
            id=str(uuid4()),
            name=name,
            exam_date=exam_date,
            next_review_date=self.today(),
            color=color or random.choice(SUBJECT_COLORS),
            interval_days=1,
            ease_streak=0,
        )
        self.state.subjects.append(subject)
        if len(self.state.subjects) == 1:
            self.selected_subject_id = subject.id
        self._save()
        logger.info("Added subject %s (exam %s)", subject.name, subject.exam_date)
        return subject

    def edit_subject(
        self,
        subject_id: str,
        name: str,
        exam_date: Optional[date],
        next_review_date: Optional[date] = None,
        color: Optional[str] = None,
    ) -> Subject:
        """
        Direct edit. Bypasses the review algorithm, so interval and ease
        streak are left alone.
        """
        current = self.state.find_subject(subject_id)
        if current is None:
            raise ValueError("Subject not found.")
        name = (name or "").strip()
        if not name:
            raise ValueError("Subject name cannot be empty.")
        if exam_date is None:
            raise ValueError("Exam date is required.")

        updated = current.model_copy(update={
            "name": name,
            "exam_date": exam_date,
            "next_review_date": next_review_date or current.next_review_date,
            "color": color or current.color,
        })
        self.state.subjects = [updated if s.id == subject_id else s for s in self.state.subjects]
        self._save()
        return updated

    def delete_subject(self, subject_id: str) -> None:
        before = len(self.state.sessions)
        self.state.subjects = [s for s in self.state.subjects if s.id != subject_id]
        self.state.sessions = [x for x in self.state.sessions if x.subject_id != subject_id]
        if self.selected_subject_id == subject_id:
            self.selected_subject_id = self.state.subjects[0].id if self.state.subjects else None
        self._save()
        logger.info("Deleted subject %s and %d session(s)", subject_id, before - len(self.state.sessions))

    def select_subject(self, subject_id: str) -> None:
        if self.state.find_subject(subject_id) is None:
            raise ValueError("Subject not found.")
        self.selected_subject_id = subject_id

    # ---- Configuration ----

    def update_timer_settings(self, **changes: Any) -> TimerSettings:
        merged = {**self.state.timer.model_dump(), **changes}
        settings = TimerSettings.model_validate(merged)
        self.state.timer = settings
        self.timer.apply_settings(settings)
        self._save()
        return settings

    def set_daily_goal(self, goal: Any) -> int:
        self.state.daily_goal = clamp(goal, 1, 10, self.state.daily_goal)
        self._save()
        return self.state.daily_goal

    def set_theme(self, theme: str) -> None:
        if theme not in ("light", "dark"):
            raise ValueError("Theme must be 'light' or 'dark'.")
        self.state.theme = theme
        self._save()

    def finish_onboarding(self) -> None:
        self.state.onboarding_done = True
        self._save()

    # ---- Timer ----

    def start(self) -> TickResult:
        return self._handle(self.timer.start())

    def pause(self) -> None:
        self.timer.pause()

    def toggle(self) -> TickResult:
        return self._handle(self.timer.toggle())

    def tick(self) -> TickResult:
        return self._handle(self.timer.tick())

    def advance(self, seconds: int) -> Tuple[TickResult, int]:
        """
        Deliver several one-second ticks, stopping at the first completion
        so its event is handled before anything else happens.

        Returns the last tick result and how many seconds were consumed;
        the caller keeps the rest for the next call.
        """
        result = TickResult()
        consumed = 0
        for _ in range(max(0, seconds)):
            result = self.tick()
            consumed += 1
            if result.events or not self.timer.running:
                break
        return result, consumed

    def set_mode(self, mode: TimerMode) -> None:
        self.timer.set_mode(mode)

    def reset_timer(self) -> None:
        self.timer.reset()

    def skip(self) -> TickResult:
        return self._handle(self.timer.skip())

    def add_time(self, minutes: int) -> None:
        self.timer.add_time(minutes)

    def _handle(self, result: TickResult) -> TickResult:
        if result.completed_mode is not None and self.state.timer.end_sound:
            self.sound.play_completion_sound()
        if result.focus_completed:
            self._record_session()
        elif result.break_completed:
            logger.info("%s break finished", result.completed_mode.value)
        return result

    def _record_session(self) -> Session:
        subject = self.focus_subject
        session = Session(
            id=str(uuid4()),
            subject_id=subject.id if subject else None,
            minutes=self.state.timer.pomodoro_minutes,
            completed_at=self.clock(),
            note=self.session_note.strip(),
        )
        self.state.sessions.append(session)
        self.state.pomodoro_cycle_count = self.timer.cycle_count
        self._pending_session_id = session.id
        self.session_note = ""
        self._save()
        logger.info(
            "Recorded %d-minute session for %s (cycle %d)",
            session.minutes,
            subject.name if subject else "no subject",
            self.timer.cycle_count,
        )
        return session

    # ---- Feedback ----

    def submit_feedback(self, difficulty: Difficulty) -> TimerMode:
        """
        Attach a difficulty to the session that just finished, reschedule
        its subject, and move the timer into the next break.
        """
        if not self.timer.awaiting_feedback:
            raise ValueError("No finished session is waiting for feedback.")
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty: {difficulty!r}")

        session = self.pending_session
        if session is not None:
            rated = session.model_copy(update={"difficulty": difficulty})
            self.state.sessions = [rated if x.id == session.id else x for x in self.state.sessions]

            subject = self.state.find_subject(session.subject_id)
            if subject is not None:
                updated = apply_feedback(subject, difficulty, self.today())
                self.state.subjects = [
                    updated if s.id == subject.id else s for s in self.state.subjects
                ]
                logger.info(
                    "Rated %s %s: next review %s (every %d day(s))",
                    updated.name, difficulty, updated.next_review_date, updated.interval_days,
                )

        self._pending_session_id = None
        mode = self.timer.begin_break()
        self._save()
        logger.info("Cycle %d done, starting %s break", self.timer.cycle_count, mode.value)
        return mode

    def dismiss_feedback(self) -> None:
        if not self.timer.awaiting_feedback:
            return
        self._pending_session_id = None
        self.timer.dismiss_feedback()

    # ---- Calendar ----

    def toggle_studied(self, day: date) -> bool:
        marked = not self.state.manual_studied.get(day, False)
        if marked:
            self.state.manual_studied[day] = True
        else:
            self.state.manual_studied.pop(day, None)
        self._save()
        return marked

    def save_day_note(self, day: date, text: str) -> str:
        note = (text or "").strip()[:MAX_DAY_NOTE_CHARS]
        if note:
            self.state.calendar_notes[day] = note
        else:
            self.state.calendar_notes.pop(day, None)
        self._save()
        return note

    def note_for(self, day: date) -> str:
        return self.state.calendar_notes.get(day, "")

    # ---- Notifications ----

    def enable_notifications(self) -> str:
        if not self.notifier.supported:
            return "Notifications not supported here"
        permission = self.notifier.request_permission()
        self.state.notification_permission = permission
        self.state.notifications_enabled = permission == "granted"
        self._save()
        if permission == "granted":
            self.notifier.notify(APP_TITLE, "Notifications enabled")
            return "Notifications enabled"
        return "Notification permission not granted"

    def test_notification(self) -> str:
        if self.state.timer.end_sound:
            self.sound.play_completion_sound()
        if not self.notifier.supported:
            return "Sound played (no notification support)"
        if self.state.notification_permission != "granted":
            return "Sound played. Allow notifications for a popup"
        self.notifier.notify(f"{APP_TITLE} Test", "This is a test reminder")
        return "Test notification sent"

    def check_due_reminder(self) -> bool:
        today = self.today()
        message = due_reminder(self.state, today)
        if message is None:
            return False
        self.notifier.notify(*message)
        self.state.last_due_notify_day = today
        self._save()
        logger.info("Sent due reminder for %s", today)
        return True

    # ---- Reset ----

    def reset_all_data(self) -> None:
        self.state = AppState(notification_permission=self.state.notification_permission)
        self.timer.restart(self.state.timer, cycle_count=0)
        self.selected_subject_id = None
        self.session_note = ""
        self._pending_session_id = None
        self._save()
        logger.info("All data reset")
