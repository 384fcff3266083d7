"""Schedule suggestion service: ask the model for study sessions and keep only well-formed ones.

The model decides when to study; this module only serialises the inputs,
checks the shape of what comes back and persists the survivors.
"""

import json
import logging
from datetime import date, timedelta

from sqlalchemy.orm import Session

from study_tracker.models.assignment import Assignment
from study_tracker.models.schedule import ScheduleBlock, PlannedTask, ScheduleSuggestion
from study_tracker.services.ai_client import chat
from study_tracker.services.ai_json import parse_ai_json, AIResponseParseError
from study_tracker.services.validation import (
    is_valid_date,
    is_valid_time,
    normalize_end_time,
    parse_date,
    parse_time,
)

logger = logging.getLogger(__name__)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
PLANNING_HORIZON_DAYS = 14
PARSE_FAILURE_INSIGHTS = "Unable to generate suggestions at this time. Please try again."

SCHEDULER_SYSTEM = """You are an intelligent study scheduler assistant. Your job is to help students schedule their study time effectively.

Given:
1. A student's weekly availability (recurring schedule blocks)
2. Their pending assignments with due dates and estimated duration
3. Already scheduled tasks (to avoid conflicts)

Create a study plan that:
- Schedules study sessions BEFORE due dates (ideally 1-2 days before)
- Uses the student's available "study" and "free" time blocks
- Avoids scheduling during "class" blocks
- Breaks large assignments into multiple sessions if needed
- Prioritizes urgent assignments (due soon) and high-priority items
- Leaves some buffer time - don't over-schedule
- Considers the assignment's estimated duration

Today's date is: {today} ({weekday})

Return a JSON object with:
{{
  "suggestions": [
    {{
      "assignmentId": "uuid",
      "assignmentTitle": "title for display",
      "date": "YYYY-MM-DD",
      "startTime": "HH:MM",
      "endTime": "HH:MM",
      "reason": "Brief explanation of why this time slot",
      "location": "suggested location based on schedule"
    }}
  ],
  "insights": "A brief paragraph with study tips based on their workload"
}}

Only return valid JSON, no markdown."""


class ScheduleNotConfigured(ValueError):
    def __init__(self):
        super().__init__("Please set up your weekly schedule first")


def _weekday_index(d: date) -> int:
    # date.weekday() is Monday=0; blocks use Sunday=0
    return (d.weekday() + 1) % 7


def format_blocks(blocks: list[ScheduleBlock]) -> list[dict]:
    return [
        {
            "day": DAY_NAMES[b.day_of_week],
            "dayNumber": b.day_of_week,
            "start": b.available_start.isoformat(),
            "end": b.available_end.isoformat(),
            "type": b.block_type,
            "label": b.label or b.block_type,
            "location": b.location,
        }
        for b in blocks
    ]


def format_assignments(assignments: list[Assignment]) -> list[dict]:
    return [
        {
            "id": a.id,
            "title": a.title,
            "course": a.course.name if a.course else "Unknown",
            "dueDate": a.due_date.isoformat() if a.due_date else None,
            "priority": a.priority,
            "estimatedMinutes": a.estimated_duration or 60,
            "status": a.status,
        }
        for a in assignments
    ]


def format_tasks(tasks: list[PlannedTask]) -> list[dict]:
    return [
        {
            "date": t.scheduled_date.isoformat(),
            "start": t.scheduled_start.isoformat(),
            "end": t.scheduled_end.isoformat(),
            "assignmentId": t.assignment_id,
        }
        for t in tasks
    ]


def build_prompt(blocks: list[dict], assignments: list[dict], tasks: list[dict]) -> str:
    return (
        "Here's my schedule and assignments:\n\n"
        f"WEEKLY AVAILABILITY:\n{json.dumps(blocks, indent=2)}\n\n"
        f"PENDING ASSIGNMENTS:\n{json.dumps(assignments, indent=2)}\n\n"
        f"ALREADY SCHEDULED (avoid conflicts):\n{json.dumps(tasks, indent=2)}\n\n"
        "Please create a study schedule for the next 2 weeks."
    )


def validate_suggestions(items, valid_assignment_ids: set[str]) -> list[dict]:
    """Keep suggestions with a real date, HH:MM[:SS] times, start < end and a known assignment."""
    if not isinstance(items, list):
        return []
    valid = []
    for item in items:
        if not isinstance(item, dict):
            continue
        day = item.get("date")
        start = item.get("startTime")
        end = item.get("endTime")
        if not (is_valid_date(day) and is_valid_time(start) and is_valid_time(end)):
            continue
        end = normalize_end_time(end)
        if parse_time(start) >= parse_time(end):
            continue
        assignment_id = item.get("assignmentId")
        if not isinstance(assignment_id, str) or assignment_id not in valid_assignment_ids:
            continue
        valid.append({**item, "endTime": end})

    dropped = len(items) - len(valid)
    if dropped:
        logger.info("Dropped %d malformed schedule suggestion(s)", dropped)
    return valid


async def generate_suggestions(db: Session, user_id: str, today: date | None = None) -> dict:
    today = today or date.today()

    blocks = (
        db.query(ScheduleBlock)
        .filter(ScheduleBlock.user_id == user_id)
        .order_by(ScheduleBlock.day_of_week, ScheduleBlock.available_start)
        .all()
    )
    if not blocks:
        raise ScheduleNotConfigured()

    assignments = (
        db.query(Assignment)
        .filter(Assignment.user_id == user_id, Assignment.status != "completed")
        .order_by(Assignment.due_date.is_(None), Assignment.due_date)
        .all()
    )
    if not assignments:
        return {"suggestions": [], "insights": "", "message": "No pending assignments to schedule"}

    tasks = (
        db.query(PlannedTask)
        .filter(
            PlannedTask.user_id == user_id,
            PlannedTask.scheduled_date >= today,
            PlannedTask.scheduled_date <= today + timedelta(days=PLANNING_HORIZON_DAYS),
        )
        .all()
    )

    system = SCHEDULER_SYSTEM.format(today=today.isoformat(), weekday=DAY_NAMES[_weekday_index(today)])
    raw = await chat(
        system=system,
        messages=[{
            "role": "user",
            "content": build_prompt(format_blocks(blocks), format_assignments(assignments), format_tasks(tasks)),
        }],
        max_tokens=3000,
        temperature=0.7,
    )

    try:
        data = parse_ai_json(raw)
        if not isinstance(data, dict):
            raise AIResponseParseError()
    except AIResponseParseError:
        return {"suggestions": [], "insights": PARSE_FAILURE_INSIGHTS, "error": "Failed to parse AI response"}

    suggestions = validate_suggestions(data.get("suggestions") or [], {a.id for a in assignments})
    if suggestions:
        db.query(ScheduleSuggestion).filter(
            ScheduleSuggestion.user_id == user_id,
            ScheduleSuggestion.status == "pending",
        ).delete(synchronize_session=False)
        for s in suggestions:
            db.add(ScheduleSuggestion(
                user_id=user_id,
                assignment_id=s["assignmentId"],
                suggested_date=parse_date(s["date"]),
                suggested_start=parse_time(s["startTime"]),
                suggested_end=parse_time(s["endTime"]),
                reason=s.get("reason"),
                status="pending",
            ))
        db.commit()

    return {"suggestions": suggestions, "insights": str(data.get("insights") or "")}


def _accept(db: Session, suggestion: ScheduleSuggestion) -> None:
    db.add(PlannedTask(
        user_id=suggestion.user_id,
        assignment_id=suggestion.assignment_id,
        scheduled_date=suggestion.suggested_date,
        scheduled_start=suggestion.suggested_start,
        scheduled_end=suggestion.suggested_end,
        notes=suggestion.reason,
        ai_generated=True,
        task_type="assignment",
    ))
    suggestion.status = "accepted"


def apply_suggestion_action(db: Session, user_id: str, action: str, suggestion_id: str | None = None) -> None:
    """accept | dismiss one pending suggestion, or acceptAll | dismissAll of them."""
    if action in ("acceptAll", "dismissAll"):
        pending = (
            db.query(ScheduleSuggestion)
            .filter(ScheduleSuggestion.user_id == user_id, ScheduleSuggestion.status == "pending")
            .all()
        )
        for s in pending:
            if action == "acceptAll":
                _accept(db, s)
            else:
                s.status = "dismissed"
        db.commit()
        return

    if action not in ("accept", "dismiss"):
        raise ValueError("Invalid action")
    if not suggestion_id:
        raise ValueError("suggestionId is required")

    suggestion = (
        db.query(ScheduleSuggestion)
        .filter(ScheduleSuggestion.id == suggestion_id, ScheduleSuggestion.user_id == user_id)
        .first()
    )
    if not suggestion:
        raise LookupError("Suggestion not found")

    if action == "accept":
        _accept(db, suggestion)
    else:
        suggestion.status = "dismissed"
    db.commit()
