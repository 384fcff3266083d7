"""Study material generation: notes, study guides, practice tests, flashcards.

Each material type has its own system prompt and sampling temperature. The
model's reply is parsed with parse_ai_json and validated against the content
shape for that type before it is returned or stored.
"""

import logging

from pydantic import BaseModel, ValidationError

from study_tracker.schemas.study_material import (
    NotesContent,
    StudyGuideContent,
    PracticeTestContent,
    FlashcardsContent,
    ParsedAssignment,
)
from study_tracker.services.ai_client import chat
from study_tracker.services.ai_json import parse_ai_json, AIResponseParseError
from study_tracker.services.validation import (
    VALID_MATERIAL_TYPES,
    is_valid_priority,
    is_valid_duration,
)

logger = logging.getLogger(__name__)

NOTES_SYSTEM = """You are a helpful study assistant. Generate concise study notes from the given content.
Return a JSON object with:
- summary: A brief 2-3 sentence summary
- keyPoints: An array of 5-7 key points
- importantTerms: An array of objects with term and definition
Only return valid JSON, no markdown."""

STUDY_GUIDE_SYSTEM = """You are a helpful study assistant. Generate a comprehensive study guide from the given content.
Return a JSON object with:
- sections: An array of objects with title, content (detailed explanation), and keyTakeaways (array of strings)
- reviewQuestions: An array of 5-10 review questions
Only return valid JSON, no markdown."""

PRACTICE_TEST_SYSTEM = """You are a helpful study assistant. Generate a practice test from the given content.
Return a JSON object with:
- questions: An array of 10-15 question objects with:
  - id: unique identifier (q1, q2, etc.)
  - question: the question text
  - type: "multiple_choice", "short_answer", or "true_false"
  - options: array of 4 choices (only for multiple_choice)
  - correctAnswer: the correct answer
  - explanation: brief explanation of why this is correct
Only return valid JSON, no markdown."""

FLASHCARDS_SYSTEM = """You are a helpful study assistant. Generate flashcards from the given content.
Return a JSON object with:
- cards: An array of 15-25 flashcard objects with:
  - id: unique identifier (card1, card2, etc.)
  - front: the question or term
  - back: the answer or definition
Only return valid JSON, no markdown."""

PARSE_ASSIGNMENT_SYSTEM = """You are a helpful assistant that parses assignment information from raw text.
Extract and return a JSON object with:
- title: A concise title for the assignment
- description: A detailed description
- due_date: ISO date string if a due date is mentioned, null otherwise
- priority: "low", "medium", or "high" based on urgency/importance mentioned
- estimated_duration: Estimated time to complete in minutes (default 60)
Only return valid JSON, no markdown."""

# type -> (system prompt, temperature, max_tokens, content model)
MATERIAL_TEMPLATES: dict[str, tuple[str, float, int, type[BaseModel]]] = {
    "notes": (NOTES_SYSTEM, 0.3, 2000, NotesContent),
    "study_guide": (STUDY_GUIDE_SYSTEM, 0.4, 3000, StudyGuideContent),
    "practice_test": (PRACTICE_TEST_SYSTEM, 0.5, 4000, PracticeTestContent),
    "flashcards": (FLASHCARDS_SYSTEM, 0.3, 3000, FlashcardsContent),
}

MATERIAL_TITLE_PREFIX = {
    "notes": "Study Notes",
    "study_guide": "Study Guide",
    "practice_test": "Practice Test",
    "flashcards": "Flashcards",
}


def material_title(material_type: str, assignment_title: str) -> str:
    return f"{MATERIAL_TITLE_PREFIX[material_type]}: {assignment_title}"


def _fill_ids(content: dict, material_type: str) -> dict:
    if material_type == "practice_test":
        for i, q in enumerate(content["questions"], start=1):
            q["id"] = q["id"] or f"q{i}"
    elif material_type == "flashcards":
        for i, card in enumerate(content["cards"], start=1):
            card["id"] = card["id"] or f"card{i}"
    return content


def validate_material(material_type: str, data) -> dict:
    """Check parsed model output against the content shape for *material_type*."""
    model = MATERIAL_TEMPLATES[material_type][3]
    try:
        content = model.model_validate(data).model_dump(exclude_none=True)
    except ValidationError as e:
        logger.warning("Generated %s has the wrong shape: %s", material_type, e.error_count())
        raise AIResponseParseError(f"Generated {material_type} has an unexpected shape") from e
    return _fill_ids(content, material_type)


async def generate_material(material_type: str, content: str, context: str = "") -> dict:
    """Generate one study material of *material_type* from *content*.

    *context* is an optional header placed before the content (used by study
    sessions to name the topic and unit).
    """
    if material_type not in VALID_MATERIAL_TYPES:
        raise ValueError("Valid type is required (notes, study_guide, practice_test, flashcards)")

    system, temperature, max_tokens, _ = MATERIAL_TEMPLATES[material_type]
    user_content = f"{context}\n\n{content}" if context else content
    raw = await chat(
        system=system,
        messages=[{"role": "user", "content": user_content}],
        max_tokens=max_tokens,
        temperature=temperature,
    )
    return validate_material(material_type, parse_ai_json(raw))


async def parse_assignment_text(text: str) -> dict:
    """Turn free-form assignment text into structured assignment fields."""
    raw = await chat(
        system=PARSE_ASSIGNMENT_SYSTEM,
        messages=[{"role": "user", "content": text}],
        max_tokens=1000,
        temperature=0.2,
    )
    data = parse_ai_json(raw)
    if not isinstance(data, dict):
        raise AIResponseParseError()

    priority = data.get("priority")
    duration = data.get("estimated_duration")
    due_date = data.get("due_date")
    parsed = ParsedAssignment(
        title=str(data.get("title") or text.strip().splitlines()[0][:200]),
        description=str(data.get("description") or ""),
        due_date=due_date if isinstance(due_date, str) and due_date else None,
        priority=priority if is_valid_priority(priority) else "medium",
        estimated_duration=duration if is_valid_duration(duration) else 60,
    )
    return parsed.model_dump()
