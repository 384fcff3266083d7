"""Assignment request/response schemas."""

from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel

from study_tracker.schemas.course import CourseResponse
from study_tracker.schemas.study_material import StudyMaterialResponse


class AssignmentCreate(BaseModel):
    title: str
    description: Optional[str] = None
    course_id: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    estimated_duration: Optional[Any] = None  # checked by is_valid_duration
    raw_input_text: Optional[str] = None


class AssignmentUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    course_id: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    estimated_duration: Optional[Any] = None
    raw_input_text: Optional[str] = None


class AssignmentResponse(BaseModel):
    id: str
    user_id: str
    course_id: Optional[str]
    title: str
    description: Optional[str]
    due_date: Optional[str]
    priority: str
    status: str
    estimated_duration: int
    raw_input_text: Optional[str]
    created_at: str
    updated_at: str
    course: Optional[CourseResponse] = None

    class Config:
        from_attributes = True


class AssignmentImageCreate(BaseModel):
    storage_path: str
    extracted_text: Optional[str] = None


class AssignmentImageResponse(BaseModel):
    id: str
    assignment_id: str
    storage_path: str
    signed_url: str
    extracted_text: Optional[str]
    created_at: str


class AssignmentDetailResponse(AssignmentResponse):
    study_materials: list[StudyMaterialResponse] = []
    images: list[AssignmentImageResponse] = []
