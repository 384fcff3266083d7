"""Worklog request/response schemas."""

from datetime import date
from typing import Optional
from pydantic import BaseModel


class WorklogCreate(BaseModel):
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    topic: Optional[str] = None
    worklog_type: Optional[str] = None
    date_completed: Optional[date] = None
    course_id: Optional[str] = None
    assignment_id: Optional[str] = None
    storage_path: Optional[str] = None
    raw_extracted_text: Optional[str] = None


class WorklogUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    topic: Optional[str] = None
    worklog_type: Optional[str] = None
    date_completed: Optional[date] = None
    course_id: Optional[str] = None
    assignment_id: Optional[str] = None
    raw_extracted_text: Optional[str] = None
