"""Study material request/response schemas and the content shapes the model must return."""

from typing import Literal, Optional, Any
from pydantic import BaseModel


# ── Generated content shapes (camelCase, as stored and served) ───────────────

class ImportantTerm(BaseModel):
    term: str
    definition: str


class NotesContent(BaseModel):
    summary: str
    keyPoints: list[str] = []
    importantTerms: list[ImportantTerm] = []


class GuideSection(BaseModel):
    title: str
    content: str
    keyTakeaways: list[str] = []


class StudyGuideContent(BaseModel):
    sections: list[GuideSection]
    reviewQuestions: list[str] = []


class PracticeQuestion(BaseModel):
    id: str = ""
    question: str
    type: Literal["multiple_choice", "short_answer", "true_false"]
    options: Optional[list[str]] = None
    correctAnswer: str
    explanation: str = ""


class PracticeTestContent(BaseModel):
    questions: list[PracticeQuestion]


class Flashcard(BaseModel):
    id: str = ""
    front: str
    back: str


class FlashcardsContent(BaseModel):
    cards: list[Flashcard]


# ── Requests / responses ─────────────────────────────────────────────────────

class GenerateMaterialRequest(BaseModel):
    content: Optional[str] = None
    type: Optional[str] = None


class MaterialCreate(BaseModel):
    type: str
    content: Optional[str] = None


class StudyMaterialResponse(BaseModel):
    id: str
    assignment_id: str
    user_id: str
    type: str
    title: str
    content: dict[str, Any]
    created_at: str

    class Config:
        from_attributes = True


class ParseAssignmentRequest(BaseModel):
    text: Optional[str] = None


class ParsedAssignment(BaseModel):
    title: str
    description: str = ""
    due_date: Optional[str] = None
    priority: str = "medium"
    estimated_duration: int = 60
