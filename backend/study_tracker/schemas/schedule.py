"""Weekly schedule, planned task and suggestion schemas."""

from typing import Optional
from pydantic import BaseModel


class ScheduleBlockCreate(BaseModel):
    day_of_week: int
    available_start: str
    available_end: str
    label: Optional[str] = None
    block_type: Optional[str] = None
    location: Optional[str] = None
    is_recurring: bool = True


class ScheduleBlockUpdate(BaseModel):
    day_of_week: Optional[int] = None
    available_start: Optional[str] = None
    available_end: Optional[str] = None
    label: Optional[str] = None
    block_type: Optional[str] = None
    location: Optional[str] = None
    is_recurring: Optional[bool] = None


class ScheduleReplace(BaseModel):
    blocks: list[ScheduleBlockCreate]


class ScheduleBlockResponse(BaseModel):
    id: str
    day_of_week: int
    available_start: str
    available_end: str
    label: Optional[str]
    block_type: str
    location: Optional[str]
    is_recurring: bool

    class Config:
        from_attributes = True


class TaskCreate(BaseModel):
    scheduled_date: str
    scheduled_start: str
    scheduled_end: str
    assignment_id: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    task_type: Optional[str] = None
    priority: int = 0


class TaskUpdate(BaseModel):
    scheduled_date: Optional[str] = None
    scheduled_start: Optional[str] = None
    scheduled_end: Optional[str] = None
    completed: Optional[bool] = None
    notes: Optional[str] = None
    title: Optional[str] = None
    task_type: Optional[str] = None
    priority: Optional[int] = None


class SuggestionAction(BaseModel):
    action: str
    suggestionId: Optional[str] = None
