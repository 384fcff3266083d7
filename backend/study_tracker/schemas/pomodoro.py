"""Pomodoro timer schemas."""

from typing import Optional
from pydantic import BaseModel, Field


class PomodoroSettingsUpdate(BaseModel):
    workDuration: Optional[int] = Field(default=None, ge=1, le=180)
    shortBreakDuration: Optional[int] = Field(default=None, ge=1, le=60)
    longBreakDuration: Optional[int] = Field(default=None, ge=1, le=120)
    sessionsBeforeLongBreak: Optional[int] = Field(default=None, ge=1, le=12)
    autoStartBreaks: Optional[bool] = None
    autoStartWork: Optional[bool] = None
    soundEnabled: Optional[bool] = None


class ModeRequest(BaseModel):
    mode: str


class PomodoroResponse(BaseModel):
    settings: dict
    mode: str
    running: bool
    remaining_seconds: int
    display: str
    progress: float
    completed_sessions: int
    completed_phases: list[dict] = []
