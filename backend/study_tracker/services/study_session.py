"""Study session service: gather a student's relevant work for a topic and grade answers.

Building a session takes up to three model calls:
  1. expand the topic into related terms and a course context,
  2. pick the relevant items out of the student's worklogs and assignments,
  3. summarise the collected material into an overview.
An unusable reply at any step degrades the session instead of failing it.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from study_tracker.models.assignment import Assignment
from study_tracker.models.worklog import Worklog
from study_tracker.services.ai_client import chat
from study_tracker.services.ai_json import parse_ai_json, AIResponseParseError
from study_tracker.services.study_materials import generate_material

logger = logging.getLogger(__name__)

MAX_OVERVIEW_CHARS = 8000
DEFAULT_STUDY_MINUTES = 60
FALLBACK_FEEDBACK = "Unable to grade this answer automatically. Please review manually."

EXPAND_SYSTEM = """You are an expert in academic curricula, especially College Board AP courses, IB programs, and standard high school/college courses.

Given a study topic, generate a comprehensive list of related subtopics, concepts, and keywords that would help find relevant study materials.

For example:
- "Chemistry of Life" (AP Bio Unit 1) -> proteins, amino acids, carbohydrates, lipids, nucleic acids, enzymes, macromolecules, dehydration synthesis, hydrolysis, pH, water properties
- "World War II" (AP History) -> axis powers, allied powers, holocaust, D-Day, Pearl Harbor, atomic bomb, fascism, Nazi Germany
- "Quadratic Functions" (Algebra) -> parabola, vertex, axis of symmetry, roots, factoring, quadratic formula, discriminant, completing the square

Return a JSON object with:
- relatedTerms: Array of 20-40 related terms, concepts, and keywords (lowercase)
- broaderContext: Brief description of what this topic covers
- courseContext: What course/exam this likely relates to (e.g., "AP Biology", "AP US History")

Only return valid JSON, no markdown."""

RELEVANCE_SYSTEM = """You are helping a student find study materials related to their topic.

Given a study topic and a list of the student's work, identify which items are relevant.

Be INCLUSIVE - if a material MIGHT be related to the topic, include it. Consider:
- Direct mentions of the topic
- Subtopics that fall under this topic
- Prerequisites or foundational concepts
- Related labs, experiments, or activities
- Practice problems on related concepts

Return a JSON object with:
- relevantIndices: Array of numbers (the indices [0], [1], etc. of relevant materials)
- reasoning: Brief explanation of why these are relevant

Only return valid JSON, no markdown."""

OVERVIEW_SYSTEM = """You are a helpful study assistant. Analyze the student's work and create a study plan overview.

Return a JSON object with:
- keyTopics: Array of 5-10 key topics/concepts found in the material
- recommendedFocus: Array of 3-5 areas the student should focus on most
- estimatedStudyTime: Estimated total study time in minutes
- summary: A brief 2-3 sentence summary of what this material covers

Only return valid JSON, no markdown."""

GRADE_SYSTEM = """You are a helpful and encouraging teacher grading student answers on a practice test.

TASK: Evaluate each student answer against the expected answer.

GRADING PHILOSOPHY - Be GENEROUS and focus on understanding:
- If the main concept is captured, mark it correct (even with different wording)
- Accept partial answers that show understanding
- Accept synonyms, alternative phrasings, and equivalent explanations
- Focus on conceptual understanding, not exact wording or memorization
- Give partial credit liberally for partially correct answers

OUTPUT FORMAT - Return ONLY a valid JSON object:
{
  "grades": [
    {"questionIndex": 0, "isCorrect": true, "score": 100, "feedback": "Excellent! Your answer correctly identifies..."},
    {"questionIndex": 1, "isCorrect": false, "score": 60, "feedback": "Good attempt! You got X right, but missed Y..."}
  ]
}

GRADING SCALE:
- 100: Perfect or excellent answer
- 80-99: Correct with minor omissions
- 60-79: Partially correct, shows understanding
- 40-59: Some correct elements, needs work
- 20-39: Minimal understanding shown
- 0-19: Incorrect or no attempt

FEEDBACK RULES:
- Always start with something positive
- Explain what was correct and gently explain what was missing
- Keep feedback to 1-2 sentences

CRITICAL: Return ONLY valid JSON. No markdown, no extra text, no code blocks."""


def _join(*parts) -> str:
    return "\n\n".join(p for p in parts if p)


def _topic_line(topic: str, unit: str | None, subject: str | None) -> str:
    line = f"Topic: {topic}"
    if unit:
        line += f"\nUnit: {unit}"
    if subject:
        line += f"\nSubject/Course: {subject}"
    return line


# ─────────────────────────────────────────────────────────────────────────────
# Step 1: topic expansion
# ─────────────────────────────────────────────────────────────────────────────

async def expand_topic(topic: str, unit: str | None = None, subject: str | None = None) -> tuple[list[str], str]:
    """Return (related_terms, course_context); both empty when the reply is unusable."""
    raw = await chat(
        system=EXPAND_SYSTEM,
        messages=[{"role": "user", "content": _topic_line(topic, unit, subject)}],
        max_tokens=1500,
        temperature=0.3,
    )
    try:
        data = parse_ai_json(raw)
    except AIResponseParseError:
        return [], ""
    if not isinstance(data, dict):
        return [], ""
    terms = [str(t) for t in data.get("relatedTerms") or [] if isinstance(t, (str, int, float))]
    return terms, str(data.get("courseContext") or "")


def search_terms(topic: str, unit: str | None, subject: str | None, related: list[str]) -> list[str]:
    terms = [topic, unit, subject, *related]
    return [t.lower() for t in terms if t]


# ─────────────────────────────────────────────────────────────────────────────
# Step 2: candidate collection and relevance
# ─────────────────────────────────────────────────────────────────────────────

def _worklog_candidate(wl: Worklog) -> dict:
    return {
        "id": wl.id,
        "type": "worklog",
        "title": wl.title,
        "date": wl.date_completed.isoformat() if wl.date_completed else "",
        "topic": wl.topic,
        "summary": " | ".join(p for p in (wl.title, wl.topic, (wl.description or "")[:200]) if p),
        "full_content": _join(wl.title, wl.description, wl.content),
        "has_content": bool(wl.content or wl.description),
    }


def _assignment_candidate(a: Assignment) -> dict:
    return {
        "id": a.id,
        "type": "assignment",
        "title": a.title,
        "date": a.created_at.isoformat() if a.created_at else "",
        "topic": None,
        "summary": " | ".join(p for p in (a.title, (a.description or "")[:200]) if p),
        "full_content": _join(a.title, a.description, a.raw_input_text),
        "has_content": bool(a.description or a.raw_input_text),
    }


def collect_candidates(
    db: Session,
    user_id: str,
    course_id: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    include_worklogs: bool = True,
    include_assignments: bool = True,
) -> list[dict]:
    """Worklogs (newest completed first) followed by assignments (newest created first)."""
    start = datetime.fromisoformat(date_from).date() if date_from else None
    end = datetime.fromisoformat(date_to).date() if date_to else None
    candidates = []

    if include_worklogs:
        q = db.query(Worklog).filter(Worklog.user_id == user_id)
        if course_id:
            q = q.filter(Worklog.course_id == course_id)
        if start:
            q = q.filter(Worklog.date_completed >= start)
        if end:
            q = q.filter(Worklog.date_completed <= end)
        candidates.extend(_worklog_candidate(wl) for wl in q.order_by(Worklog.date_completed.desc()).all())

    if include_assignments:
        q = db.query(Assignment).filter(Assignment.user_id == user_id)
        if course_id:
            q = q.filter(Assignment.course_id == course_id)
        if start:
            q = q.filter(Assignment.created_at >= datetime.combine(start, datetime.min.time()))
        if end:
            # dateTo is inclusive of the whole day
            q = q.filter(Assignment.created_at < datetime.combine(end + timedelta(days=1), datetime.min.time()))
        candidates.extend(_assignment_candidate(a) for a in q.order_by(Assignment.created_at.desc()).all())

    return candidates


def keyword_filter(candidates: list[dict], terms: list[str]) -> list[dict]:
    """Items whose summary or full content contains any search term (case-insensitive)."""
    hits = []
    for c in candidates:
        text = f"{c['summary']} {c['full_content']}".lower()
        if any(term in text for term in terms):
            hits.append(c)
    return hits


def material_list(items: list[dict]) -> str:
    return "\n".join(
        f'[{i}] {m["type"]}: "{m["title"]}" - {m["summary"][:150]}' for i, m in enumerate(items)
    )


def pick_indices(data, count: int) -> list[int] | None:
    """Valid indices from a relevance reply, or None when the reply has no index list."""
    if not isinstance(data, dict) or not isinstance(data.get("relevantIndices"), list):
        return None
    picked = []
    for i in data["relevantIndices"]:
        if isinstance(i, bool) or not isinstance(i, int):
            continue
        if 0 <= i < count and i not in picked:
            picked.append(i)
    return picked


async def select_relevant(
    topic: str,
    unit: str | None,
    course_context: str,
    candidates: list[dict],
    keyword_hits: list[dict],
) -> set[str]:
    """Ids of relevant candidates as judged by the model.

    The model sees the keyword hits, or every candidate when nothing matched.
    An unparseable reply falls back to the keyword hits.
    """
    to_evaluate = keyword_hits or candidates
    if not to_evaluate:
        return set()

    header = f"Study Topic: {topic}"
    if unit:
        header += f" ({unit})"
    if course_context:
        header += f"\nCourse: {course_context}"

    raw = await chat(
        system=RELEVANCE_SYSTEM,
        messages=[{"role": "user", "content": f"{header}\n\nStudent's Materials:\n{material_list(to_evaluate)}"}],
        max_tokens=1000,
        temperature=0.2,
    )
    try:
        indices = pick_indices(parse_ai_json(raw), len(to_evaluate))
    except AIResponseParseError:
        return {c["id"] for c in keyword_hits}
    if indices is None:
        return set()
    return {to_evaluate[i]["id"] for i in indices}


# ─────────────────────────────────────────────────────────────────────────────
# Step 3: sources and overview
# ─────────────────────────────────────────────────────────────────────────────

def build_sources(candidates: list[dict], relevant_ids: set[str]) -> list[dict]:
    """Relevant candidates that actually carry content; worklogs first."""
    sources = []
    for kind in ("worklog", "assignment"):
        for c in candidates:
            if c["type"] != kind or c["id"] not in relevant_ids or not c["has_content"]:
                continue
            source = {
                "type": c["type"],
                "id": c["id"],
                "title": c["title"],
                "date": c["date"],
                "content": c["full_content"],
            }
            if c["topic"]:
                source["topic"] = c["topic"]
            sources.append(source)
    return sources


def combine_sources(sources: list[dict]) -> str:
    return "\n\n".join(
        f"--- {s['type'].upper()}: {s['title']} ({s['date']}) ---\n{s['content']}" for s in sources
    )


def date_range(sources: list[dict]) -> dict:
    days = sorted(s["date"][:10] for s in sources if s["date"])
    if not days:
        return {"from": "", "to": ""}
    return {"from": days[0], "to": days[-1]}


async def generate_overview(
    topic: str,
    unit: str | None,
    subject: str | None,
    course_context: str,
    combined: str,
) -> dict:
    """Overview of the collected work; {} when there is nothing to summarise or the call fails."""
    if not combined:
        return {}

    prompt = f"The student wants to study for: {topic}"
    if unit:
        prompt += f" (Unit: {unit})"
    if subject:
        prompt += f" in {subject}"
    if course_context:
        prompt += f"\nThis appears to be for: {course_context}"
    prompt += f"\n\nHere is their collected work:\n\n{combined[:MAX_OVERVIEW_CHARS]}"

    try:
        raw = await chat(
            system=OVERVIEW_SYSTEM,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=1500,
            temperature=0.3,
        )
        data = parse_ai_json(raw)
    except Exception:
        logger.exception("Study session overview failed")
        return {}
    return data if isinstance(data, dict) else {}


async def build_study_session(
    db: Session,
    user_id: str,
    topic: str,
    unit: str | None = None,
    subject: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    course_id: str | None = None,
    include_worklogs: bool = True,
    include_assignments: bool = True,
) -> dict:
    related, course_context = await expand_topic(topic, unit, subject)
    terms = search_terms(topic, unit, subject, related)

    candidates = collect_candidates(
        db, user_id, course_id, date_from, date_to, include_worklogs, include_assignments
    )
    relevant_ids: set[str] = set()
    if candidates:
        hits = keyword_filter(candidates, terms)
        relevant_ids = await select_relevant(topic, unit, course_context, candidates, hits)

    sources = build_sources(candidates, relevant_ids)
    combined = combine_sources(sources)
    overview = await generate_overview(topic, unit, subject, course_context, combined)

    return {
        "topic": topic,
        "unit": unit,
        "subject": subject,
        "courseContext": course_context,
        "relatedTerms": related[:15],
        "sources": sources,
        "combinedContent": combined,
        "overview": {
            "topic": topic,
            "unit": unit,
            "totalSources": len(sources),
            "worklogCount": sum(1 for s in sources if s["type"] == "worklog"),
            "assignmentCount": sum(1 for s in sources if s["type"] == "assignment"),
            "dateRange": date_range(sources),
            "keyTopics": overview.get("keyTopics") or [],
            "recommendedFocus": overview.get("recommendedFocus") or [],
            "estimatedStudyTime": overview.get("estimatedStudyTime") or DEFAULT_STUDY_MINUTES,
            "summary": overview.get("summary") or "",
        },
    }


# ─────────────────────────────────────────────────────────────────────────────
# Materials and grading
# ─────────────────────────────────────────────────────────────────────────────

def session_context(topic: str | None, unit: str | None) -> str:
    header = f"STUDY SESSION CONTEXT:\nTopic: {topic or 'General'}"
    if unit:
        header += f"\nUnit: {unit}"
    return header


async def generate_session_material(material_type: str, content: str, topic: str | None, unit: str | None) -> dict:
    return await generate_material(
        material_type,
        f"STUDENT'S COLLECTED WORK:\n{content}",
        context=session_context(topic, unit),
    )


def fallback_grades(count: int) -> list[dict]:
    return [
        {"questionIndex": i, "isCorrect": False, "score": 50, "feedback": FALLBACK_FEEDBACK}
        for i in range(count)
    ]


def _clean_grade(item: dict, index: int) -> dict:
    try:
        score = int(round(float(item.get("score", 0))))
    except (TypeError, ValueError, OverflowError):
        score = 0
    return {
        "questionIndex": item.get("questionIndex", index) if isinstance(item.get("questionIndex"), int) else index,
        "isCorrect": bool(item.get("isCorrect", False)),
        "score": max(0, min(100, score)),
        "feedback": str(item.get("feedback") or ""),
    }


async def grade_answers(questions: list[dict]) -> list[dict]:
    """Grade short answers; an unparseable reply gives every question the fallback grade."""
    formatted = "\n---\n".join(
        f"\nQuestion {i + 1}: {q.get('question', '')}\n"
        f"Expected Answer: {q.get('correctAnswer', '')}\n"
        f"Student's Answer: {q.get('studentAnswer', '')}\n"
        for i, q in enumerate(questions)
    )
    raw = await chat(
        system=GRADE_SYSTEM,
        messages=[{"role": "user", "content": f"Please grade these short answer questions:\n\n{formatted}"}],
        max_tokens=2000,
        temperature=0.3,
    )
    try:
        data = parse_ai_json(raw)
    except AIResponseParseError:
        return fallback_grades(len(questions))

    grades = data.get("grades") if isinstance(data, dict) else data
    if not isinstance(grades, list):
        return fallback_grades(len(questions))
    return [_clean_grade(g, i) for i, g in enumerate(grades) if isinstance(g, dict)]
