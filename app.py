from __future__ import annotations
import io
import logging
import os
import time
import wave
import numpy as np
import pandas as pd
import streamlit as st
from datetime import date

from analytics import (
    achievements,
    achievements_summary,
    dashboard_stats,
    due_on,
    due_today,
    history,
    range_activity,
    sessions_on,
    subject_detail,
    subject_stats,
)
from calendar_export import reviews_to_ics
from calendar_import import parse_ics_bytes
from controller import StudyController
from dates import month_matrix
from models import Permission, TimerMode
from pdf_export import progress_report_to_pdf
from pomodoro import FeedbackPendingError, format_seconds
from storage import JsonStateStore

logging.basicConfig(
    level=os.environ.get("STUDYPACE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

MODE_LABELS = {
    TimerMode.POMODORO: "Pomodoro",
    TimerMode.SHORT: "Short break",
    TimerMode.LONG: "Long break",
}
WEEKDAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
PAGES = ["Dashboard", "Timer", "Subjects", "Calendar", "Analytics", "Achievements", "Settings"]

st.set_page_config(page_title="StudyPace", page_icon="📚", layout="wide")


class ToastNotifier:
    """In-app notifications shown as toasts on the next render."""

    supported = True

    def request_permission(self) -> Permission:
        return "granted"

    def notify(self, title: str, body: str) -> None:
        _queue_toast(f"{title}: {body}")


def _beep_wav() -> bytes:
    rate = 22050
    chunks = []
    for freq in (880, 990, 880):
        t = np.linspace(0, 0.18, int(rate * 0.18), endpoint=False)
        tone = 0.16 * np.sin(2 * np.pi * freq * t) * np.linspace(1, 0, t.size)
        chunks.append(tone)
        chunks.append(np.zeros(int(rate * 0.1)))
    samples = (np.concatenate(chunks) * 32767).astype(np.int16)

    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(samples.tobytes())
    return buf.getvalue()


class BrowserSound:
    supported = True

    def play_completion_sound(self) -> None:
        st.session_state.play_sound = True


def _ensure_session_state() -> StudyController:
    if "controller" not in st.session_state:
        st.session_state.controller = StudyController(
            JsonStateStore(), notifier=ToastNotifier(), sound=BrowserSound()
        )
    if "last_tick" not in st.session_state:
        st.session_state.last_tick = time.monotonic()
    return st.session_state.controller


def _queue_toast(message: str) -> None:
    st.session_state.setdefault("toast_messages", []).append(message)


def _flush_toast() -> None:
    for message in st.session_state.pop("toast_messages", []):
        st.toast(message)
    if st.session_state.pop("play_sound", False):
        st.audio(_beep_wav(), format="audio/wav", autoplay=True)


def _go_study(subject_id: str) -> None:
    st.session_state.controller.select_subject(subject_id)
    st.session_state.nav_page = "Timer"


@st.dialog("How hard was it?")
def _feedback_dialog() -> None:
    session = ctl.pending_session
    subject = ctl.state.find_subject(session.subject_id) if session else None
    st.write(f"Session finished: **{subject.name if subject else 'Unknown'}**")
    st.caption("Your rating decides when this subject comes back for review.")
    cols = st.columns(3)
    for col, difficulty in zip(cols, ("easy", "medium", "hard")):
        if col.button(difficulty.capitalize(), use_container_width=True, type="primary"):
            mode = ctl.submit_feedback(difficulty)
            st.session_state.last_tick = time.monotonic()
            _queue_toast(f"Saved {difficulty.upper()} → {MODE_LABELS[mode]}")
            st.rerun()
    if st.button("Skip rating"):
        ctl.dismiss_feedback()
        st.rerun()


def render_dashboard() -> None:
    st.header("Dashboard")
    today = ctl.today()
    state = ctl.state

    if not state.onboarding_done:
        st.info("Welcome! Add subjects, run the Pomodoro timer, and rate difficulty. "
                "StudyPace schedules your next review.")
        if st.button("Let's go"):
            ctl.finish_onboarding()
            st.rerun()

    if not state.subjects:
        st.subheader("No subjects yet")
        st.write("Start tracking your first exam on the Subjects page.")
        return

    stats = dashboard_stats(state, today)
    st.subheader("Today's goal")
    st.progress(stats["goal_fraction"], text=f"{stats['today_done']} / {stats['goal']} reviews")

    a, b, c = st.columns(3)
    a.metric("Total subjects", stats["total_subjects"])
    b.metric("Due today", stats["due_today"])
    c.metric("Streak", stats["streak"])

    st.divider()
    st.subheader("Due for review")
    due = due_today(state.subjects, today)
    if not due:
        st.success("Nothing due today.")
    for s in due:
        left, right = st.columns([4, 1])
        left.write(f"**{s.name}** · review {s.review_day(today).isoformat()} · exam {s.exam_date.isoformat()}")
        right.button("Study", key=f"study_{s.id}", on_click=_go_study, args=(s.id,))


def render_timer() -> None:
    st.header("Timer")
    state = ctl.state
    if state.subjects:
        ids = [s.id for s in state.subjects]
        focus = ctl.focus_subject
        chosen = st.selectbox(
            "Subject",
            ids,
            index=ids.index(focus.id) if focus else 0,
            format_func=lambda sid: state.find_subject(sid).name,
        )
        if chosen != ctl.selected_subject_id:
            ctl.select_subject(chosen)
    else:
        st.caption("No subjects yet: sessions will be recorded without a subject.")

    ctl.session_note = st.text_input("Session note (optional)", value=ctl.session_note)

    try:
        mode_cols = st.columns(3)
        for col, mode in zip(mode_cols, TimerMode):
            if col.button(MODE_LABELS[mode], use_container_width=True,
                          type="primary" if ctl.timer.mode == mode else "secondary"):
                ctl.set_mode(mode)
                st.rerun()

        _timer_face()

        start_col, reset_col, skip_col, plus_col, minus_col = st.columns(5)
        if start_col.button("Pause" if ctl.timer.running else "Start", type="primary"):
            ctl.toggle()
            st.session_state.last_tick = time.monotonic()
            st.rerun()
        if reset_col.button("Reset"):
            ctl.reset_timer()
            st.rerun()
        if skip_col.button("Skip"):
            ctl.skip()
            _queue_toast("Skipped")
            st.rerun()
        if plus_col.button("+5 min"):
            ctl.add_time(5)
            st.rerun()
        if minus_col.button("-5 min"):
            ctl.add_time(-5)
            st.rerun()
    except FeedbackPendingError as e:
        st.warning(str(e))

    st.caption(f"Completed cycles: {ctl.timer.cycle_count} · "
               f"long break every {state.timer.cycles_before_long_break}")


@st.fragment(run_every=1)
def _timer_face() -> None:
    timer = ctl.timer
    now = time.monotonic()
    if timer.running:
        elapsed = int(now - st.session_state.last_tick)
        if elapsed >= 1:
            result, consumed = ctl.advance(elapsed)
            st.session_state.last_tick += consumed
            if result.events:
                st.rerun()
    else:
        st.session_state.last_tick = now

    st.markdown(f"## {MODE_LABELS[timer.mode]} · {format_seconds(timer.seconds_remaining)}")
    st.progress(timer.progress_percent / 100)


def render_subjects() -> None:
    st.header("Subjects")
    state = ctl.state

    st.subheader("Add subject")
    with st.form("add_subject_form", clear_on_submit=True):
        col1, col2 = st.columns([2, 1])
        with col1:
            name = st.text_input("Subject", placeholder="e.g., IT103 Database Systems")
        with col2:
            exam_date = st.date_input("Exam date", value=None)
        if st.form_submit_button("Start tracking", type="primary"):
            try:
                ctl.add_subject(name, exam_date)
            except ValueError as e:
                st.warning(str(e))
            else:
                st.toast("Subject added.")

    with st.expander("Import exams from calendar (.ics)", expanded=False):
        uploaded = st.file_uploader("Upload .ics file", type=["ics"], key="ics_upload")
        if uploaded:
            try:
                candidates = parse_ics_bytes(uploaded.read())
            except ValueError as e:
                st.error(f"Could not read ICS file: {e}")
                candidates = []
            if not candidates:
                st.warning("No events found in this file.")
            else:
                picked = st.multiselect(
                    "Events to add as subjects",
                    options=list(range(len(candidates))),
                    format_func=lambda i: f"{candidates[i].title} ({candidates[i].day.isoformat()})",
                )
                if st.button("Add selected") and picked:
                    for i in picked:
                        ctl.add_subject(candidates[i].title, candidates[i].day)
                    _queue_toast(f"{len(picked)} subject(s) imported.")
                    st.rerun()

    st.divider()
    st.subheader("Subjects manager")
    if not state.subjects:
        st.info("No subjects yet.")
        return

    today = ctl.today()
    rows = [
        {
            "Select": False,
            "id": s.id,
            "Name": s.name,
            "Exam date": s.exam_date,
            "Next review": s.review_day(today),
            "Interval (d)": s.interval_days,
            "Color": s.color,
        }
        for s in state.subjects
    ]
    df = pd.DataFrame(rows).set_index("id")
    edited = st.data_editor(
        df,
        hide_index=True,
        use_container_width=True,
        column_config={
            "Select": st.column_config.CheckboxColumn("Select"),
            "Name": st.column_config.TextColumn("Name"),
            "Exam date": st.column_config.DateColumn("Exam date"),
            "Next review": st.column_config.DateColumn("Next review"),
            "Interval (d)": st.column_config.NumberColumn("Interval (d)", format="%d"),
            "Color": st.column_config.TextColumn("Color"),
        },
        disabled=["Interval (d)"],
        key="subjects_editor",
    )

    edited_records = edited.reset_index().to_dict("records")
    selected_ids = [row["id"] for row in edited_records if row.get("Select")]
    selected_names = [row["Name"] for row in edited_records if row.get("Select")]

    col_apply, col_delete = st.columns([1, 1])

    if col_apply.button("Apply changes"):
        try:
            for row in edited_records:
                ctl.edit_subject(
                    row["id"],
                    name=str(row.get("Name") or ""),
                    exam_date=_coerce_date(row.get("Exam date")),
                    next_review_date=_coerce_date(row.get("Next review")),
                    color=str(row.get("Color") or "") or None,
                )
        except ValueError as e:
            st.warning(str(e))
        else:
            _queue_toast("Subjects updated.")
            st.rerun()

    if col_delete.button("Delete selected"):
        if not selected_ids:
            st.warning("Select at least one subject to delete.")
        else:

            @st.dialog("Delete selected subjects?")
            def _confirm_subject_delete() -> None:
                st.write("This will remove the subjects and their sessions.")
                st.write(", ".join(selected_names))
                if st.button("Delete", type="primary"):
                    for sid in selected_ids:
                        ctl.delete_subject(sid)
                    _queue_toast("Subjects deleted.")
                    st.rerun()

            _confirm_subject_delete()


def _coerce_date(value: object) -> date | None:
    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def render_calendar() -> None:
    st.header("Calendar")
    state = ctl.state
    today = ctl.today()

    selected = st.date_input("Day", value=today, key="calendar_day")
    cells = month_matrix(selected.year, selected.month)
    studied = {d for d, flag in state.manual_studied.items() if flag}
    grid = []
    for week in range(6):
        row = {}
        for i, cell in enumerate(cells[week * 7:(week + 1) * 7]):
            d = cell["day"]
            mark = ""
            if sessions_on(state.sessions, d) or d in studied:
                mark += " ✅"
            if d in state.calendar_notes:
                mark += " 📝"
            row[WEEKDAY_LABELS[i]] = f"{cell['label']}{mark}" if cell["in_month"] else ""
        grid.append(row)
    st.table(pd.DataFrame(grid))

    st.subheader(selected.strftime("%A, %Y-%m-%d"))
    a, b = st.columns(2)
    a.metric("Sessions", sessions_on(state.sessions, selected))
    b.metric("Due by this day", len(due_on(state.subjects, selected, today)))

    marked = state.manual_studied.get(selected, False)
    if st.button("Unmark studied" if marked else "Mark as studied"):
        now_marked = ctl.toggle_studied(selected)
        _queue_toast(f"Marked {selected.isoformat()} as studied" if now_marked
                     else f"Unmarked {selected.isoformat()}")
        st.rerun()

    draft = st.text_area("Note", value=ctl.note_for(selected), max_chars=250,
                         key=f"note_{selected.isoformat()}")
    if st.button("Save note"):
        saved = ctl.save_day_note(selected, draft)
        _queue_toast("Note saved." if saved else "Note removed.")
        st.rerun()


def render_analytics() -> None:
    st.header("Analytics")
    state = ctl.state
    today = ctl.today()

    overview, subjects_tab, history_tab = st.tabs(["Overview", "Subjects", "History"])

    with overview:
        window = st.radio("Range", [7, 30], horizontal=True, format_func=lambda n: f"{n} days")
        activity = range_activity(state.sessions, state.manual_studied, today, days=window)
        chart = pd.DataFrame(activity).set_index("day")[["count"]]
        st.bar_chart(chart)
        stats = dashboard_stats(state, today)
        a, b, c = st.columns(3)
        a.metric("Sessions in range", sum(x["count"] for x in activity))
        b.metric("Streak", stats["streak"])
        c.metric("Total sessions", len(state.sessions))

    rows = subject_stats(state.subjects, state.sessions, today)
    with subjects_tab:
        if not rows:
            st.info("No subjects yet.")
        else:
            table = pd.DataFrame(rows).drop(columns=["id", "color"])
            st.dataframe(table, use_container_width=True, hide_index=True)
            pick = st.selectbox("Details", [r["id"] for r in rows],
                                format_func=lambda sid: state.find_subject(sid).name)
            detail = subject_detail(state.subjects, state.sessions, pick, today)
            if detail:
                s = detail["subject"]
                st.write(f"**{s.name}**: every {s.interval_days} day(s), ease streak {s.ease_streak}, "
                         f"{detail['total_sessions']} total, {detail['recent_sessions']} in the last 7 days")
                st.table([
                    {"Completed": x.completed_at.strftime("%Y-%m-%d %H:%M"),
                     "Minutes": x.minutes, "Difficulty": x.difficulty or "-", "Note": x.note}
                    for x in detail["sessions"]
                ])

    recent = history(state.subjects, state.sessions)
    with history_tab:
        if not recent:
            st.info("No sessions yet.")
        else:
            st.dataframe(pd.DataFrame(recent).drop(columns=["id", "subject_id", "color"]),
                         use_container_width=True, hide_index=True)

    st.divider()
    st.subheader("Exports")
    st.download_button(
        "Download review calendar (ICS)",
        data=reviews_to_ics(state.subjects, today),
        file_name=f"studypace_reviews_{today.isoformat()}.ics",
        mime="text/calendar",
    )
    st.download_button(
        "Download progress report (PDF)",
        data=progress_report_to_pdf(
            today,
            dashboard_stats(state, today),
            rows,
            range_activity(state.sessions, state.manual_studied, today, days=7),
            recent,
            achievements(state.subjects, state.sessions, state.manual_studied, today),
        ),
        file_name=f"studypace_report_{today.isoformat()}.pdf",
        mime="application/pdf",
    )


def render_achievements() -> None:
    st.header("Achievements")
    state = ctl.state
    items = achievements(state.subjects, state.sessions, state.manual_studied, ctl.today())
    summary = achievements_summary(items)
    st.progress(summary["percent"] / 100,
                text=f"{summary['unlocked']} of {summary['total']} unlocked")
    for a in items:
        icon = "🏅" if a.unlocked else "🔒"
        st.write(f"{icon} **{a.title}**: {a.description}")
        st.progress(a.progress, text=a.progress_text)


def render_settings() -> None:
    st.header("Settings")
    state = ctl.state

    st.subheader("Timer")
    with st.form("timer_settings_form"):
        t = state.timer
        pomodoro = st.slider("Pomodoro (minutes)", 5, 90, t.pomodoro_minutes)
        short = st.slider("Short break (minutes)", 1, 30, t.short_break_minutes)
        long_ = st.slider("Long break (minutes)", 5, 60, t.long_break_minutes)
        cycles = st.slider("Long break every N cycles", 2, 8, t.cycles_before_long_break)
        auto_break = st.checkbox("Auto-start breaks", value=t.auto_start_break)
        auto_focus = st.checkbox("Auto-start next Pomodoro", value=t.auto_start_next_focus)
        sound = st.checkbox("End sound", value=t.end_sound)
        goal = st.number_input("Daily goal (1-10)", 1, 10, state.daily_goal)
        if st.form_submit_button("Save settings", type="primary"):
            ctl.update_timer_settings(
                pomodoro_minutes=pomodoro,
                short_break_minutes=short,
                long_break_minutes=long_,
                cycles_before_long_break=cycles,
                auto_start_break=auto_break,
                auto_start_next_focus=auto_focus,
                end_sound=sound,
            )
            ctl.set_daily_goal(goal)
            st.toast("Settings saved.")

    st.subheader("Notifications")
    st.caption(f"Permission: {state.notification_permission}")
    n1, n2 = st.columns(2)
    if n1.button("Enabled" if state.notifications_enabled else "Enable"):
        _queue_toast(ctl.enable_notifications())
        st.rerun()
    if n2.button("Test 🔔"):
        _queue_toast(ctl.test_notification())
        st.rerun()

    st.subheader("Appearance")
    theme = st.radio("Theme", ["light", "dark"], horizontal=True,
                     index=0 if state.theme == "light" else 1)
    if theme != state.theme:
        ctl.set_theme(theme)

    st.divider()
    if st.button("Reset app data"):

        @st.dialog("Reset all data?")
        def _confirm_reset() -> None:
            st.write("This will clear subjects, sessions, notes and settings.")
            if st.button("Reset", type="primary"):
                ctl.reset_all_data()
                _queue_toast("Reset done.")
                st.rerun()

        _confirm_reset()


ctl = _ensure_session_state()

st.title("StudyPace")
st.caption("Exam tracking with a Pomodoro timer and review scheduling.")
ctl.check_due_reminder()
_flush_toast()

if "nav_page" not in st.session_state:
    st.session_state.nav_page = "Dashboard"

with st.sidebar:
    st.header("Navigate")
    page = st.radio("Page", PAGES, key="nav_page", label_visibility="collapsed")
    st.caption(f"Timer: {MODE_LABELS[ctl.timer.mode]} {format_seconds(ctl.timer.seconds_remaining)}"
               + (" (running)" if ctl.timer.running else ""))
    st.caption("Data is stored locally on this machine.")

if ctl.timer.awaiting_feedback:
    _feedback_dialog()

if page == "Dashboard":
    render_dashboard()
elif page == "Timer":
    render_timer()
elif page == "Subjects":
    render_subjects()
elif page == "Calendar":
    render_calendar()
elif page == "Analytics":
    render_analytics()
elif page == "Achievements":
    render_achievements()
elif page == "Settings":
    render_settings()
