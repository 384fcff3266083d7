"""Tests for the Pomodoro timer: the pure state machine and its API."""

import sys
import os
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from study_tracker import pomodoro

T0 = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


def _settings(**overrides):
    return {**pomodoro.DEFAULT_SETTINGS, **overrides}


class TestPhaseOrder:

    def test_work_then_short_break(self):
        assert pomodoro.next_mode("work", 1, _settings()) == "shortBreak"

    def test_long_break_every_nth_session(self):
        assert pomodoro.next_mode("work", 4, _settings()) == "longBreak"
        assert pomodoro.next_mode("work", 2, _settings(sessionsBeforeLongBreak=2)) == "longBreak"

    def test_break_returns_to_work(self):
        assert pomodoro.next_mode("shortBreak", 1, _settings()) == "work"
        assert pomodoro.next_mode("longBreak", 4, _settings()) == "work"


class TestCountdown:

    def test_initial_state(self):
        state = pomodoro.initial_state(_settings())
        assert state["mode"] == "work"
        assert state["remaining_seconds"] == 25 * 60
        assert not state["running"]

    def test_running_timer_counts_down(self):
        settings = _settings()
        state = pomodoro.start(pomodoro.initial_state(settings), settings, T0)
        assert pomodoro.remaining(state, settings, T0 + timedelta(minutes=10)) == 15 * 60

    def test_paused_timer_holds(self):
        settings = _settings()
        state = pomodoro.start(pomodoro.initial_state(settings), settings, T0)
        state = pomodoro.pause(state, settings, T0 + timedelta(minutes=5))
        assert pomodoro.remaining(state, settings, T0 + timedelta(hours=2)) == 20 * 60

    def test_finished_work_phase_waits_at_break(self):
        settings = _settings()
        state = pomodoro.start(pomodoro.initial_state(settings), settings, T0)
        state, finished = pomodoro.advance(state, settings, T0 + timedelta(minutes=30))
        assert finished == [{"mode": "work", "duration_minutes": 25}]
        assert state["mode"] == "shortBreak"
        assert state["remaining_seconds"] == 5 * 60
        assert not state["running"]
        assert state["completed_sessions"] == 1

    def test_auto_start_carries_overshoot(self):
        settings = _settings(autoStartBreaks=True)
        state = pomodoro.start(pomodoro.initial_state(settings), settings, T0)
        state, _ = pomodoro.advance(state, settings, T0 + timedelta(minutes=27))
        assert state["mode"] == "shortBreak"
        assert state["running"]
        assert state["remaining_seconds"] == 3 * 60

    def test_progress_and_display(self):
        settings = _settings()
        state = pomodoro.start(pomodoro.initial_state(settings), settings, T0)
        assert round(pomodoro.progress(state, settings, T0 + timedelta(minutes=5)), 2) == 20.0
        assert pomodoro.format_time(25 * 60) == "25:00"
        assert pomodoro.format_time(65) == "01:05"
        assert pomodoro.format_time(-3) == "00:00"


class TestControls:

    def test_reset_refills_and_keeps_sessions(self):
        settings = _settings()
        state = {**pomodoro.initial_state(settings), "completed_sessions": 2, "remaining_seconds": 10}
        state = pomodoro.reset(state, settings, T0)
        assert state["remaining_seconds"] == 25 * 60
        assert state["completed_sessions"] == 2

    def test_skip_counts_work_session(self):
        settings = _settings()
        state = pomodoro.skip(pomodoro.initial_state(settings), settings, T0)
        assert state["mode"] == "shortBreak"
        assert state["completed_sessions"] == 1

    def test_skip_break_does_not_count(self):
        settings = _settings()
        state = pomodoro.switch_mode(pomodoro.initial_state(settings), "longBreak", settings)
        state = pomodoro.skip(state, settings, T0)
        assert state["mode"] == "work"
        assert state["completed_sessions"] == 0

    def test_switch_mode_stops_at_full_length(self):
        settings = _settings()
        running = pomodoro.start(pomodoro.initial_state(settings), settings, T0)
        state = pomodoro.switch_mode(running, "longBreak", settings)
        assert state["mode"] == "longBreak"
        assert state["remaining_seconds"] == 15 * 60
        assert not state["running"]


class TestPomodoroAPI:

    def test_default_timer(self, client, auth):
        resp = client.get("/api/pomodoro", headers=auth)
        assert resp.status_code == 200
        data = resp.json()
        assert data["mode"] == "work"
        assert data["display"] == "25:00"
        assert data["settings"]["workDuration"] == 25

    def test_start_and_pause(self, client, auth):
        assert client.post("/api/pomodoro/start", headers=auth).json()["running"] is True
        assert client.post("/api/pomodoro/pause", headers=auth).json()["running"] is False

    def test_skip_advances_phase(self, client, auth):
        data = client.post("/api/pomodoro/skip", headers=auth).json()
        assert data["mode"] == "shortBreak"
        assert data["completed_sessions"] == 1

    def test_settings_update_resets_phase(self, client, auth):
        resp = client.put("/api/pomodoro/settings", json={"workDuration": 50}, headers=auth)
        assert resp.status_code == 200
        assert resp.json()["display"] == "50:00"

    def test_settings_out_of_range(self, client, auth):
        resp = client.put("/api/pomodoro/settings", json={"workDuration": 0}, headers=auth)
        assert resp.status_code == 400

    def test_switch_mode(self, client, auth):
        data = client.post("/api/pomodoro/mode", json={"mode": "longBreak"}, headers=auth).json()
        assert data["mode"] == "longBreak"
        assert data["display"] == "15:00"

    def test_unknown_action_and_mode(self, client, auth):
        assert client.post("/api/pomodoro/rewind", headers=auth).status_code == 400
        assert client.post("/api/pomodoro/mode", json={"mode": "nap"}, headers=auth).status_code == 400
