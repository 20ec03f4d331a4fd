"""Pomodoro timer state machine.

Pure logic: no clock, no I/O. The caller delivers one `tick()` per elapsed
second while the timer runs and reacts to the events each call returns.

Modes cycle pomodoro -> (short | long) -> pomodoro. A finished pomodoro
parks the machine in an awaiting-feedback state; nothing starts again until
`begin_break()` or `dismiss_feedback()` releases it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from models import TimerMode, TimerSettings
from scheduler import choose_break_mode


class TimerEvent(Enum):
    FOCUS_COMPLETED = "focus_completed"
    BREAK_COMPLETED = "break_completed"


class FeedbackPendingError(RuntimeError):
    """Raised when the timer is driven while a finished pomodoro awaits feedback."""


@dataclass
class TickResult:
    events: List[TimerEvent] = field(default_factory=list)
    completed_mode: Optional[TimerMode] = None

    @property
    def focus_completed(self) -> bool:
        return TimerEvent.FOCUS_COMPLETED in self.events

    @property
    def break_completed(self) -> bool:
        return TimerEvent.BREAK_COMPLETED in self.events


def duration_seconds(settings: TimerSettings, mode: TimerMode) -> int:
    if mode == TimerMode.POMODORO:
        return settings.pomodoro_minutes * 60
    if mode == TimerMode.SHORT:
        return settings.short_break_minutes * 60
    return settings.long_break_minutes * 60


def format_seconds(seconds: int) -> str:
    """Format a countdown as 'MM:SS'."""
    seconds = max(0, seconds)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class PomodoroTimer:
    def __init__(self, settings: TimerSettings, cycle_count: int = 0):
        self._settings = settings
        self._mode = TimerMode.POMODORO
        self._seconds_remaining = duration_seconds(settings, TimerMode.POMODORO)
        self._running = False
        self._cycle_count = max(0, cycle_count)
        self._awaiting_feedback = False

    # ---- Read-only properties ----

    @property
    def mode(self) -> TimerMode:
        return self._mode

    @property
    def seconds_remaining(self) -> int:
        return self._seconds_remaining

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def awaiting_feedback(self) -> bool:
        return self._awaiting_feedback

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    @property
    def total_seconds(self) -> int:
        return duration_seconds(self._settings, self._mode)

    @property
    def progress_percent(self) -> int:
        total = max(1, self.total_seconds)
        done = total - max(0, self._seconds_remaining)
        return max(0, min(100, round(done / total * 100)))

    # ---- Configuration ----

    def apply_settings(self, settings: TimerSettings) -> None:
        """
        Swap in new durations. A countdown already in progress keeps its
        remaining time; an untouched idle countdown picks up the new length.
        """
        untouched = (
            not self._running
            and not self._awaiting_feedback
            and self._seconds_remaining == self.total_seconds
        )
        self._settings = settings
        if untouched:
            self._seconds_remaining = self.total_seconds

    # ---- Transitions ----

    def _ensure_not_pending(self) -> None:
        if self._awaiting_feedback:
            raise FeedbackPendingError("Rate the finished session before starting another one.")

    def start(self) -> TickResult:
        self._ensure_not_pending()
        self._running = True
        if self._seconds_remaining <= 0:
            return self._complete()
        return TickResult()

    def pause(self) -> None:
        self._running = False

    def toggle(self) -> TickResult:
        if self._running:
            self.pause()
            return TickResult()
        return self.start()

    def tick(self) -> TickResult:
        # No ticks are delivered while paused or while feedback is pending
        if not self._running or self._awaiting_feedback:
            return TickResult()
        self._seconds_remaining = max(0, self._seconds_remaining - 1)
        if self._seconds_remaining == 0:
            return self._complete()
        return TickResult()

    def set_mode(self, mode: TimerMode) -> None:
        self._ensure_not_pending()
        self._enter(mode, run=False)

    def reset(self) -> None:
        self._ensure_not_pending()
        self._enter(self._mode, run=False)

    def skip(self) -> TickResult:
        self._ensure_not_pending()
        self._running = False
        self._seconds_remaining = 0
        return self._complete()

    def add_time(self, minutes: int) -> None:
        self._ensure_not_pending()
        self._seconds_remaining = max(0, self._seconds_remaining + minutes * 60)

    def begin_break(self) -> TimerMode:
        """
        Release the feedback gate and move into the break the cycle count
        calls for, auto-started when configured.
        """
        self._awaiting_feedback = False
        mode = choose_break_mode(self._cycle_count, self._settings.cycles_before_long_break)
        self._enter(mode, run=self._settings.auto_start_break)
        return mode

    def dismiss_feedback(self) -> TimerMode:
        """Release the gate without a rating; the break it leads to stays paused."""
        self._awaiting_feedback = False
        mode = choose_break_mode(self._cycle_count, self._settings.cycles_before_long_break)
        self._enter(mode, run=False)
        return mode

    def restart(self, settings: TimerSettings, cycle_count: int = 0) -> None:
        self._settings = settings
        self._cycle_count = max(0, cycle_count)
        self._awaiting_feedback = False
        self._enter(TimerMode.POMODORO, run=False)

    def _enter(self, mode: TimerMode, run: bool) -> None:
        self._mode = mode
        self._seconds_remaining = duration_seconds(self._settings, mode)
        self._running = run

    def _complete(self) -> TickResult:
        completed = self._mode
        self._running = False
        self._seconds_remaining = 0

        if completed == TimerMode.POMODORO:
            self._cycle_count += 1
            self._awaiting_feedback = True
            return TickResult(events=[TimerEvent.FOCUS_COMPLETED], completed_mode=completed)

        self._enter(TimerMode.POMODORO, run=self._settings.auto_start_next_focus)
        return TickResult(events=[TimerEvent.BREAK_COMPLETED], completed_mode=completed)
