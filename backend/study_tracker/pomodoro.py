"""
Pomodoro timer engine.

The timer is a pure state machine over plain dicts so that it can be stored as
JSON and recomputed from the wall clock on any later request:

    state = {
        "mode": "work" | "shortBreak" | "longBreak",
        "remaining_seconds": int,      # at the moment of started_at
        "running": bool,
        "started_at": ISO-8601 | None, # anchor while running
        "completed_sessions": int,     # finished work phases
    }

Phase order:
    work -> shortBreak, or longBreak after every Nth completed work phase
    any break -> work
The auto-start flags decide whether the next phase keeps running.
"""

from datetime import datetime, timezone

MODES = ("work", "shortBreak", "longBreak")
ACTIONS = ("start", "pause", "reset", "skip")

DEFAULT_SETTINGS = {
    "workDuration": 25,  # minutes
    "shortBreakDuration": 5,
    "longBreakDuration": 15,
    "sessionsBeforeLongBreak": 4,
    "autoStartBreaks": False,
    "autoStartWork": False,
    "soundEnabled": True,
}


def duration_seconds(mode: str, settings: dict) -> int:
    """Length of a full phase of *mode* in seconds."""
    if mode not in MODES:
        raise ValueError(f"Unknown timer mode: {mode}")
    return int(settings[f"{mode}Duration"]) * 60


def initial_state(settings: dict) -> dict:
    return {
        "mode": "work",
        "remaining_seconds": duration_seconds("work", settings),
        "running": False,
        "started_at": None,
        "completed_sessions": 0,
    }


def _parse(ts: str | None) -> datetime | None:
    return datetime.fromisoformat(ts) if ts else None


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def next_mode(mode: str, completed_sessions: int, settings: dict) -> str:
    """Mode that follows *mode*; completed_sessions already counts a just-finished work phase."""
    if mode != "work":
        return "work"
    if completed_sessions % int(settings["sessionsBeforeLongBreak"]) == 0:
        return "longBreak"
    return "shortBreak"


def _auto_start(mode: str, settings: dict) -> bool:
    return bool(settings["autoStartWork"] if mode == "work" else settings["autoStartBreaks"])


def _complete_phase(state: dict, settings: dict) -> dict:
    """Finish the current phase and set up the next one (not yet anchored)."""
    completed = state["completed_sessions"] + (1 if state["mode"] == "work" else 0)
    mode = next_mode(state["mode"], completed, settings)
    return {
        "mode": mode,
        "remaining_seconds": duration_seconds(mode, settings),
        "running": _auto_start(mode, settings),
        "started_at": None,
        "completed_sessions": completed,
    }


def advance(state: dict, settings: dict, now: datetime | None = None) -> tuple[dict, list[dict]]:
    """Bring a stored state up to *now*.

    Returns the new state and the list of phases that finished in between, as
    ``{"mode": ..., "duration_minutes": ...}``. A phase that auto-starts picks
    up the overshoot of the one before it; a phase that does not auto-start
    waits at full length.
    """
    if not state["running"] or not state["started_at"]:
        return dict(state), []

    now = _now(now)
    elapsed = max(0, int((now - _parse(state["started_at"])).total_seconds()))
    remaining = state["remaining_seconds"] - elapsed
    current = dict(state)
    finished = []

    while current["running"] and remaining <= 0:
        overshoot = -remaining
        finished.append({
            "mode": current["mode"],
            "duration_minutes": duration_seconds(current["mode"], settings) // 60,
        })
        current = _complete_phase(current, settings)
        remaining = current["remaining_seconds"]
        if current["running"]:
            remaining -= overshoot

    if current["running"]:
        current["remaining_seconds"] = remaining
        current["started_at"] = now.isoformat()
    return current, finished


def start(state: dict, settings: dict, now: datetime | None = None) -> dict:
    if state["running"]:
        return advance(state, settings, now)[0]
    return {**state, "running": True, "started_at": _now(now).isoformat()}


def pause(state: dict, settings: dict, now: datetime | None = None) -> dict:
    current, _ = advance(state, settings, now)
    return {**current, "running": False, "started_at": None}


def reset(state: dict, settings: dict, now: datetime | None = None) -> dict:
    """Stop and refill the current phase; completed sessions are kept."""
    current, _ = advance(state, settings, now)
    return {
        **current,
        "remaining_seconds": duration_seconds(current["mode"], settings),
        "running": False,
        "started_at": None,
    }


def skip(state: dict, settings: dict, now: datetime | None = None) -> dict:
    """End the current phase right away, as if its countdown had reached zero."""
    current, _ = advance(state, settings, now)
    nxt = _complete_phase(current, settings)
    if nxt["running"]:
        nxt["started_at"] = _now(now).isoformat()
    return nxt


def switch_mode(state: dict, mode: str, settings: dict) -> dict:
    """Jump to *mode* at full length, stopped."""
    return {
        **state,
        "mode": mode,
        "remaining_seconds": duration_seconds(mode, settings),
        "running": False,
        "started_at": None,
    }


def remaining(state: dict, settings: dict, now: datetime | None = None) -> int:
    return advance(state, settings, now)[0]["remaining_seconds"]


def progress(state: dict, settings: dict, now: datetime | None = None) -> float:
    """Percentage of the current phase already elapsed (0-100)."""
    current, _ = advance(state, settings, now)
    total = duration_seconds(current["mode"], settings)
    return (total - current["remaining_seconds"]) / total * 100


def format_time(seconds: int) -> str:
    """MM:SS, minutes not capped at 59."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
