"""Course request/response schemas."""

from typing import Optional
from pydantic import BaseModel


class CourseCreate(BaseModel):
    name: str
    color: Optional[str] = None
    instructor: Optional[str] = None


class CourseUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    instructor: Optional[str] = None


class CourseResponse(BaseModel):
    id: str
    user_id: str
    name: str
    color: str
    instructor: Optional[str]
    created_at: str

    class Config:
        from_attributes = True
