"""Pomodoro router: a persisted focus timer per user."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from study_tracker import pomodoro
from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.pomodoro import PomodoroTimer
from study_tracker.schemas.pomodoro import PomodoroSettingsUpdate, ModeRequest, PomodoroResponse
from study_tracker.middleware.auth import get_current_user

router = APIRouter(prefix="/api/pomodoro", tags=["pomodoro"])


def _get_timer(db: Session, user_id: str) -> PomodoroTimer:
    timer = db.query(PomodoroTimer).filter(PomodoroTimer.user_id == user_id).first()
    if not timer:
        settings = dict(pomodoro.DEFAULT_SETTINGS)
        timer = PomodoroTimer(user_id=user_id, settings=settings, state=pomodoro.initial_state(settings))
        db.add(timer)
        db.commit()
        db.refresh(timer)
    return timer


def _save(db: Session, timer: PomodoroTimer, state: dict, finished: list[dict], now: datetime) -> PomodoroResponse:
    # Reassign so the JSON column is flagged dirty
    timer.state = dict(state)
    db.commit()
    remaining = state["remaining_seconds"]
    total = pomodoro.duration_seconds(state["mode"], timer.settings)
    return PomodoroResponse(
        settings=timer.settings,
        mode=state["mode"],
        running=state["running"],
        remaining_seconds=remaining,
        display=pomodoro.format_time(remaining),
        progress=round((total - remaining) / total * 100, 2),
        completed_sessions=state["completed_sessions"],
        completed_phases=finished,
    )


@router.get("", response_model=PomodoroResponse)
def get_timer(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Current timer, advanced to now; completed_phases lists phases that ended since the last call."""
    timer = _get_timer(db, current_user.id)
    now = datetime.now(timezone.utc)
    state, finished = pomodoro.advance(timer.state, timer.settings, now)
    return _save(db, timer, state, finished, now)


@router.put("/settings", response_model=PomodoroResponse)
def update_settings(
    req: PomodoroSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change durations or flags; the timer stops and refills the current phase."""
    timer = _get_timer(db, current_user.id)
    timer.settings = {**timer.settings, **req.model_dump(exclude_none=True)}
    now = datetime.now(timezone.utc)
    state = pomodoro.reset(timer.state, timer.settings, now)
    return _save(db, timer, state, [], now)


@router.post("/mode", response_model=PomodoroResponse)
def switch_mode(
    req: ModeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if req.mode not in pomodoro.MODES:
        raise HTTPException(status_code=400, detail=f"mode must be one of: {', '.join(pomodoro.MODES)}")
    timer = _get_timer(db, current_user.id)
    now = datetime.now(timezone.utc)
    state, finished = pomodoro.advance(timer.state, timer.settings, now)
    state = pomodoro.switch_mode(state, req.mode, timer.settings)
    return _save(db, timer, state, finished, now)


@router.post("/{action}", response_model=PomodoroResponse)
def timer_action(
    action: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """start | pause | reset | skip."""
    if action not in pomodoro.ACTIONS:
        raise HTTPException(status_code=400, detail=f"action must be one of: {', '.join(pomodoro.ACTIONS)}")
    timer = _get_timer(db, current_user.id)
    now = datetime.now(timezone.utc)
    state, finished = pomodoro.advance(timer.state, timer.settings, now)
    state = getattr(pomodoro, action)(state, timer.settings, now)
    return _save(db, timer, state, finished, now)
