from datetime import timedelta

import pytest

from analytics import (
    UNKNOWN_SUBJECT,
    achievements,
    achievements_summary,
    dashboard_stats,
    due_on,
    due_today,
    goal_fraction,
    history,
    range_activity,
    streak,
    studied_days,
    subject_detail,
    subject_stats,
    today_count,
)
from models import AppState
from conftest import TODAY, make_session, make_subject


def days_ago(n: int):
    return TODAY - timedelta(days=n)


class TestDueToday:
    def test_includes_today_and_overdue_only(self):
        subjects = [
            make_subject("a", next_review_date=TODAY),
            make_subject("b", next_review_date=days_ago(3)),
            make_subject("c", next_review_date=TODAY + timedelta(days=1)),
        ]
        assert [s.id for s in due_today(subjects, TODAY)] == ["b", "a"]

    def test_missing_review_date_counts_as_today(self):
        subjects = [make_subject("a", next_review_date=None)]
        assert [s.id for s in due_today(subjects, TODAY)] == ["a"]

    def test_ties_keep_insertion_order(self):
        subjects = [make_subject(sid, next_review_date=days_ago(1)) for sid in ("x", "y", "z")]
        assert [s.id for s in due_today(subjects, TODAY)] == ["x", "y", "z"]

    def test_grows_as_days_pass(self):
        subjects = [make_subject(str(i), next_review_date=TODAY + timedelta(days=i)) for i in range(5)]
        sizes = [len(due_today(subjects, TODAY + timedelta(days=d))) for d in range(6)]
        assert sizes == sorted(sizes)
        assert sizes[-1] == 5

    def test_due_on_future_day(self):
        subjects = [make_subject("a", next_review_date=TODAY + timedelta(days=2))]
        assert due_on(subjects, TODAY + timedelta(days=1), TODAY) == []
        assert len(due_on(subjects, TODAY + timedelta(days=2), TODAY)) == 1


class TestTodayProgress:
    def test_counts_sessions_and_manual_mark(self):
        sessions = [make_session("a", TODAY, hour=9), make_session("a", TODAY, hour=11),
                    make_session("a", days_ago(1))]
        assert today_count(sessions, {TODAY: True}, TODAY) == 3

    def test_not_capped_by_goal(self):
        sessions = [make_session("a", TODAY, hour=h) for h in range(8, 13)]
        assert today_count(sessions, {}, TODAY) == 5
        assert goal_fraction(5, 2) == 1.0

    def test_goal_fraction_partial(self):
        assert goal_fraction(1, 4) == 0.25


class TestStreak:
    def test_empty_history(self):
        assert streak([], {}, TODAY) == 0

    def test_zero_when_today_missing(self):
        sessions = [make_session("a", days_ago(n)) for n in range(1, 6)]
        assert streak(sessions, {}, TODAY) == 0

    def test_counts_consecutive_days(self):
        sessions = [make_session("a", days_ago(n)) for n in (0, 1, 2, 4)]
        assert streak(sessions, {}, TODAY) == 3

    def test_manual_marks_fill_gaps(self):
        sessions = [make_session("a", TODAY), make_session("a", days_ago(2))]
        assert streak(sessions, {days_ago(1): True}, TODAY) == 3

    def test_unmarked_flag_ignored(self):
        assert streak([], {TODAY: False}, TODAY) == 0

    def test_multiple_sessions_same_day_count_once(self):
        sessions = [make_session("a", TODAY, hour=h) for h in (8, 9, 10)]
        assert streak(sessions, {}, TODAY) == 1

    def test_studied_days_union(self):
        days = studied_days([make_session("a", TODAY)], {days_ago(1): True, days_ago(2): False})
        assert days == {TODAY, days_ago(1)}


class TestSubjectStats:
    def test_totals_window_and_due(self):
        subjects = [
            make_subject("a", next_review_date=TODAY + timedelta(days=3)),
            make_subject("b", next_review_date=TODAY),
        ]
        sessions = [
            make_session("a", TODAY),
            make_session("a", days_ago(6)),
            make_session("a", days_ago(7)),
            make_session("b", days_ago(1)),
        ]
        rows = {r["id"]: r for r in subject_stats(subjects, sessions, TODAY)}
        assert rows["a"]["total_sessions"] == 3
        assert rows["a"]["recent_sessions"] == 2
        assert rows["a"]["due"] is False
        assert rows["b"]["due"] is True

    def test_due_first_then_recent_activity(self):
        subjects = [make_subject("quiet", next_review_date=TODAY + timedelta(days=1)),
                    make_subject("busy", next_review_date=TODAY + timedelta(days=1)),
                    make_subject("due", next_review_date=TODAY)]
        sessions = [make_session("busy", TODAY, hour=h) for h in (8, 9)]
        order = [r["id"] for r in subject_stats(subjects, sessions, TODAY)]
        assert order == ["due", "busy", "quiet"]

    def test_custom_window(self):
        subjects = [make_subject("a")]
        sessions = [make_session("a", days_ago(20))]
        assert subject_stats(subjects, sessions, TODAY, window_days=30)[0]["recent_sessions"] == 1


class TestRangeActivity:
    @pytest.mark.parametrize("days", [7, 30])
    def test_window_ends_today(self, days):
        buckets = range_activity([], {}, TODAY, days=days)
        assert len(buckets) == days
        assert buckets[-1]["day"] == TODAY
        assert buckets[0]["day"] == days_ago(days - 1)

    def test_counts_sessions_and_marks(self):
        sessions = [make_session("a", TODAY, hour=8), make_session("a", TODAY, hour=9),
                    make_session("a", days_ago(10))]
        buckets = range_activity(sessions, {days_ago(1): True}, TODAY, days=7)
        counts = {b["day"]: b["count"] for b in buckets}
        assert counts[TODAY] == 2
        assert counts[days_ago(1)] == 1
        assert sum(counts.values()) == 3


class TestHistory:
    def test_newest_first_with_limit(self):
        subjects = [make_subject("a")]
        sessions = [make_session("a", days_ago(n)) for n in range(5)]
        rows = history(subjects, sessions, limit=3)
        assert [r["day"] for r in rows] == [TODAY, days_ago(1), days_ago(2)]
        assert rows[0]["subject_name"] == "Math"
        assert rows[0]["time"] == "10:00"

    def test_dangling_and_missing_subject_are_unknown(self):
        sessions = [make_session("gone", TODAY, hour=9), make_session(None, TODAY, hour=8)]
        rows = history([], sessions)
        assert {r["subject_name"] for r in rows} == {UNKNOWN_SUBJECT}
        assert all(r["subject_id"] == "" for r in rows)

    def test_subject_detail(self):
        subjects = [make_subject("a")]
        sessions = [make_session("a", days_ago(n)) for n in range(12)] + [make_session("b", TODAY)]
        detail = subject_detail(subjects, sessions, "a", TODAY)
        assert detail["total_sessions"] == 12
        assert detail["recent_sessions"] == 7
        assert len(detail["sessions"]) == 10
        assert subject_detail(subjects, sessions, "missing", TODAY) is None


class TestAchievements:
    def by_key(self, subjects, sessions, marks=None):
        return {a.key: a for a in achievements(subjects, sessions, marks or {}, TODAY)}

    def test_nothing_unlocked_on_empty_state(self):
        items = self.by_key([], [])
        assert not any(a.unlocked for a in items.values())
        assert items["clear_due"].current == 0

    def test_session_counters(self):
        items = self.by_key([make_subject("a")], [make_session("a", TODAY, hour=h) for h in (8, 9, 10)])
        assert items["getting_started"].unlocked
        assert items["first_review"].unlocked
        assert items["three_reviews"].unlocked
        assert not items["ten_reviews"].unlocked
        assert items["ten_reviews"].progress_text == "3 / 10"
        assert items["ten_reviews"].progress == pytest.approx(0.3)

    def test_streak_achievements(self):
        sessions = [make_session("a", days_ago(n)) for n in range(3)]
        items = self.by_key([make_subject("a")], sessions)
        assert items["streak_3"].unlocked
        assert not items["streak_7"].unlocked
        assert items["streak_7"].progress_text == "3 / 7"

    def test_clear_queue_needs_a_subject_and_empty_due_list(self):
        not_due = make_subject("a", next_review_date=TODAY + timedelta(days=2))
        assert self.by_key([not_due], [])["clear_due"].unlocked
        assert not self.by_key([make_subject("b")], [])["clear_due"].unlocked

    def test_recomputed_not_sticky(self):
        sessions = [make_session("a", TODAY)]
        assert self.by_key([make_subject("a")], sessions)["first_review"].unlocked
        assert not self.by_key([make_subject("a")], [])["first_review"].unlocked

    def test_summary(self):
        items = achievements([make_subject("a")], [make_session("a", TODAY)], {}, TODAY)
        summary = achievements_summary(items)
        assert summary == {"unlocked": 2, "total": 7, "percent": 29}


class TestDashboardStats:
    def test_values(self):
        state = AppState(
            daily_goal=4,
            subjects=[make_subject("a"), make_subject("b", next_review_date=TODAY + timedelta(days=5))],
            sessions=[make_session("a", TODAY)],
            manual_studied={TODAY: True},
        )
        stats = dashboard_stats(state, TODAY)
        assert stats["total_subjects"] == 2
        assert stats["due_today"] == 1
        assert stats["streak"] == 1
        assert stats["today_done"] == 2
        assert stats["goal"] == 4
        assert stats["goal_fraction"] == 0.5
