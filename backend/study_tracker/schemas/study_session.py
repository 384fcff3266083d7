"""Study session request schemas."""

from typing import Optional
from pydantic import BaseModel


class StudySessionRequest(BaseModel):
    topic: str
    unit: Optional[str] = None
    subject: Optional[str] = None
    dateFrom: Optional[str] = None
    dateTo: Optional[str] = None
    courseId: Optional[str] = None
    includeWorklogs: bool = True
    includeAssignments: bool = True


class SessionMaterialRequest(BaseModel):
    content: Optional[str] = None
    type: Optional[str] = None
    topic: Optional[str] = None
    unit: Optional[str] = None


class GradeQuestion(BaseModel):
    question: str = ""
    correctAnswer: str = ""
    studentAnswer: str = ""


class GradeRequest(BaseModel):
    questions: list[GradeQuestion]


class AnalyzeImageRequest(BaseModel):
    imageBase64: Optional[str] = None
    mimeType: str = "image/jpeg"
