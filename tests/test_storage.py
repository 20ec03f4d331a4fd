import json
from datetime import timedelta
from pathlib import Path

from models import AppState, TimerSettings
from paths import default_state_path, get_data_dir
from storage import JsonStateStore, load_json, save_json
from conftest import TODAY, make_session, make_subject


def test_missing_file_loads_default_state(tmp_path: Path) -> None:
    store = JsonStateStore(tmp_path / "state.json")
    assert store.load() == AppState()


def test_round_trip_preserves_state(tmp_path: Path) -> None:
    store = JsonStateStore(tmp_path / "state.json")
    state = AppState(
        daily_goal=5,
        timer=TimerSettings(pomodoro_minutes=40),
        pomodoro_cycle_count=3,
        subjects=[make_subject("a", interval_days=4, next_review_date=TODAY + timedelta(days=4))],
        sessions=[make_session("a", TODAY, difficulty="easy", note="ch. 2")],
        manual_studied={TODAY: True},
        calendar_notes={TODAY: "mock exam"},
        last_due_notify_day=TODAY,
    )
    store.save(state)
    loaded = store.load()
    assert loaded.subjects == state.subjects
    assert loaded.sessions[0].completed_at == state.sessions[0].completed_at
    assert loaded.sessions[0].difficulty == "easy"
    assert loaded.manual_studied == {TODAY: True}
    assert loaded.calendar_notes == {TODAY: "mock exam"}
    assert loaded.pomodoro_cycle_count == 3
    assert loaded.timer.pomodoro_minutes == 40


def test_save_is_full_overwrite(tmp_path: Path) -> None:
    store = JsonStateStore(tmp_path / "state.json")
    store.save(AppState(subjects=[make_subject("a")]))
    store.save(AppState())
    assert store.load().subjects == []
    assert not (tmp_path / "state.json.tmp").exists()


def test_corrupt_json_recovers_with_backup(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonStateStore(path).load() == AppState()
    assert (tmp_path / "state.json.bak").read_text(encoding="utf-8") == "{not json"
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_undecodable_bytes_recover_with_backup(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_bytes(b"\xff\xfe\x00garbage\x80")
    assert JsonStateStore(path).load() == AppState()
    assert (tmp_path / "state.json.bak").read_bytes() == b"\xff\xfe\x00garbage\x80"
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_empty_file_recovers(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    path.write_text("   ", encoding="utf-8")
    assert JsonStateStore(path).load() == AppState()


def test_invalid_structure_falls_back_to_default(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    save_json(path, {"subjects": [{"id": "a", "name": "Math", "exam_date": "not-a-date"}]})
    assert JsonStateStore(path).load() == AppState()


def test_non_object_json_falls_back_to_default(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    save_json(path, [1, 2, 3])
    assert JsonStateStore(path).load() == AppState()


def test_out_of_range_stored_settings_are_clamped(tmp_path: Path) -> None:
    path = tmp_path / "state.json"
    save_json(path, {"daily_goal": 99, "timer": {"pomodoro_minutes": 1, "long_break_minutes": 500}})
    state = JsonStateStore(path).load()
    assert state.daily_goal == 10
    assert state.timer.pomodoro_minutes == 5
    assert state.timer.long_break_minutes == 60


def test_load_json_default_for_missing(tmp_path: Path) -> None:
    assert load_json(tmp_path / "nope.json", {"x": 1}) == {"x": 1}


def test_data_dir_env_override(tmp_path: Path, monkeypatch) -> None:
    target = tmp_path / "custom"
    monkeypatch.setenv("STUDYPACE_DATA_DIR", str(target))
    assert get_data_dir() == target
    assert target.is_dir()
    assert default_state_path() == target / "state.json"
    assert JsonStateStore().path == target / "state.json"
