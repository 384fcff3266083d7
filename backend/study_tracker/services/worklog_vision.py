"""Read a photo of schoolwork with the vision model and draft a worklog from it."""

from datetime import date

from study_tracker.services.ai_client import chat
from study_tracker.services.ai_json import parse_ai_json, AIResponseParseError
from study_tracker.services.validation import VALID_WORKLOG_TYPES, is_valid_date

WORKLOG_IMAGE_PROMPT = """You are an intelligent assistant that extracts information from photos of student schoolwork.

CURRENT DATE: {date_context}

TASK: Analyze this photo of completed schoolwork and extract ALL visible information.

IMPORTANT - This is likely HANDWRITTEN content:
- Be extra careful when reading handwriting
- Do your best to interpret messy handwriting
- Include "[unclear]" if text is unreadable

OUTPUT FORMAT - Return ONLY a valid JSON object:
{{
  "title": "Descriptive title based on content",
  "topic": "Main subject/topic",
  "content": "Full transcription of ALL visible text",
  "date_completed": "YYYY-MM-DD or null",
  "worklog_type": "classwork|homework|notes|quiz|test|project|other",
  "description": "1-2 sentence summary"
}}

FIELD GUIDELINES:
1. TITLE: Create a descriptive title (e.g., "Math Chapter 5 Problems", "Biology Lab Report")
2. TOPIC: Main subject (e.g., "Algebra", "World War II", "Photosynthesis")
3. CONTENT: Transcribe ALL visible text including written answers, math work, diagrams described in text, notes and corrections
4. DATE_COMPLETED: Extract any date visible, format as YYYY-MM-DD, or null
5. WORKLOG_TYPE: classwork (done in class), homework, notes, quiz (short quiz), test (major exam), project, other
6. DESCRIPTION: Brief summary of the work

CRITICAL: Return ONLY valid JSON. No markdown, no extra text, no code blocks."""


def date_context(today: date | None = None) -> str:
    today = today or date.today()
    return f"Today: {today.strftime('%B')} {today.day}, {today.year} ({today.strftime('%A')})\nISO: {today.isoformat()}"


def _clean(data: dict) -> dict:
    worklog_type = data.get("worklog_type")
    completed = data.get("date_completed")
    return {
        "title": str(data.get("title") or "Untitled work"),
        "topic": data.get("topic") or None,
        "content": data.get("content") or "",
        "date_completed": completed if is_valid_date(completed) else None,
        "worklog_type": worklog_type if worklog_type in VALID_WORKLOG_TYPES else "other",
        "description": data.get("description") or "",
    }


async def analyze_worklog_image(image_base64: str, mime_type: str = "image/jpeg") -> dict:
    """Return ``{"success", "data", "raw_text"}`` for one schoolwork photo."""
    raw = await chat(
        system="",
        messages=[{"role": "user", "content": WORKLOG_IMAGE_PROMPT.format(date_context=date_context())}],
        max_tokens=4000,
        temperature=0.2,
        images=[{"data": image_base64, "mime_type": mime_type}],
    )
    data = parse_ai_json(raw)
    if not isinstance(data, dict):
        raise AIResponseParseError()
    return {"success": True, "data": _clean(data), "raw_text": raw}
