"""Shared course request/response schemas."""

from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel


class SharedCourseCreate(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None


class JoinRequest(BaseModel):
    invite_code: str


class SharedCourseResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    color: str
    created_by: Optional[str]
    invite_code: str
    created_at: str
    updated_at: str
    user_role: str
    member_count: int


class SharedAssignmentCreate(BaseModel):
    title: str
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    estimated_duration: Optional[Any] = None  # invalid values fall back to 60
    raw_input_text: Optional[str] = None


class Creator(BaseModel):
    id: str
    email: str
    full_name: Optional[str]


class SharedAssignmentResponse(BaseModel):
    id: str
    shared_course_id: str
    created_by: Optional[str]
    title: str
    description: Optional[str]
    due_date: Optional[str]
    priority: str
    estimated_duration: int
    raw_input_text: Optional[str]
    created_at: str
    creator: Optional[Creator] = None
    is_copied: bool = False
    is_dismissed: bool = False


class SuggestCourseRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
