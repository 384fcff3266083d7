"""Schedule router: weekly availability blocks and AI schedule suggestions."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.schedule import ScheduleBlock, ScheduleSuggestion
from study_tracker.schemas.schedule import (
    ScheduleBlockCreate,
    ScheduleBlockUpdate,
    ScheduleReplace,
    ScheduleBlockResponse,
    SuggestionAction,
)
from study_tracker.middleware.auth import get_current_user
from study_tracker.middleware.rate_limit import ai_rate_limit
from study_tracker.routers.courses import course_to_response
from study_tracker.services import scheduler
from study_tracker.services.ai_client import AIClientError
from study_tracker.services.validation import (
    VALID_BLOCK_TYPES,
    is_valid_time,
    normalize_end_time,
    parse_time,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedule", tags=["schedule"])

SUGGESTION_ACTIONS = ("accept", "dismiss", "acceptAll", "dismissAll")


def _block_to_response(block: ScheduleBlock) -> ScheduleBlockResponse:
    return ScheduleBlockResponse(
        id=block.id,
        day_of_week=block.day_of_week,
        available_start=block.available_start.isoformat(),
        available_end=block.available_end.isoformat(),
        label=block.label,
        block_type=block.block_type,
        location=block.location,
        is_recurring=block.is_recurring,
    )


def _validate_block(day_of_week, start: str, end: str, block_type: str | None):
    """Return (start, end) as times, raising 400 on any invalid field."""
    if day_of_week is None or not 0 <= day_of_week <= 6:
        raise HTTPException(status_code=400, detail="day_of_week must be between 0 (Sunday) and 6 (Saturday)")
    if not is_valid_time(start) or not is_valid_time(end):
        raise HTTPException(status_code=400, detail="Times must be HH:MM or HH:MM:SS")
    start_t = parse_time(start)
    end_t = parse_time(normalize_end_time(end))
    if start_t >= end_t:
        raise HTTPException(status_code=400, detail="Start time must be before end time")
    if block_type is not None and block_type not in VALID_BLOCK_TYPES:
        raise HTTPException(status_code=400, detail=f"block_type must be one of: {', '.join(VALID_BLOCK_TYPES)}")
    return start_t, end_t


def _new_block(user_id: str, req: ScheduleBlockCreate) -> ScheduleBlock:
    start, end = _validate_block(req.day_of_week, req.available_start, req.available_end, req.block_type)
    return ScheduleBlock(
        user_id=user_id,
        day_of_week=req.day_of_week,
        available_start=start,
        available_end=end,
        label=req.label,
        block_type=req.block_type or "study",
        location=req.location,
        is_recurring=req.is_recurring,
    )


def _list_blocks(db: Session, user_id: str) -> list[ScheduleBlock]:
    return (
        db.query(ScheduleBlock)
        .filter(ScheduleBlock.user_id == user_id)
        .order_by(ScheduleBlock.day_of_week, ScheduleBlock.available_start)
        .all()
    )


@router.get("", response_model=list[ScheduleBlockResponse])
def list_blocks(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [_block_to_response(b) for b in _list_blocks(db, current_user.id)]


@router.post("", response_model=ScheduleBlockResponse, status_code=201)
def create_block(
    req: ScheduleBlockCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    block = _new_block(current_user.id, req)
    db.add(block)
    db.commit()
    db.refresh(block)
    return _block_to_response(block)


@router.put("", response_model=list[ScheduleBlockResponse])
def replace_blocks(
    req: ScheduleReplace,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Replace the whole weekly schedule in one go."""
    blocks = [_new_block(current_user.id, b) for b in req.blocks]
    db.query(ScheduleBlock).filter(ScheduleBlock.user_id == current_user.id).delete(synchronize_session=False)
    db.add_all(blocks)
    db.commit()
    return [_block_to_response(b) for b in _list_blocks(db, current_user.id)]


# ── AI suggestions (declared before /{block_id} routes) ──────────────────────

@router.post("/generate")
@ai_rate_limit
async def generate_schedule(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Ask the model for study sessions over the next two weeks."""
    try:
        return await scheduler.generate_suggestions(db, current_user.id)
    except scheduler.ScheduleNotConfigured as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "needsSchedule": True})
    except AIClientError:
        logger.exception("Schedule generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate schedule suggestions")


@router.get("/suggestions")
def list_suggestions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    suggestions = (
        db.query(ScheduleSuggestion)
        .filter(ScheduleSuggestion.user_id == current_user.id, ScheduleSuggestion.status == "pending")
        .order_by(ScheduleSuggestion.suggested_date, ScheduleSuggestion.suggested_start)
        .all()
    )
    return [
        {
            "id": s.id,
            "assignment_id": s.assignment_id,
            "suggested_date": s.suggested_date.isoformat(),
            "suggested_start": s.suggested_start.isoformat(),
            "suggested_end": s.suggested_end.isoformat(),
            "reason": s.reason,
            "status": s.status,
            "created_at": s.created_at.isoformat(),
            "assignment": {
                "id": s.assignment.id,
                "title": s.assignment.title,
                "due_date": s.assignment.due_date.isoformat() if s.assignment.due_date else None,
                "priority": s.assignment.priority,
                "course": course_to_response(s.assignment.course).model_dump() if s.assignment.course else None,
            } if s.assignment else None,
        }
        for s in suggestions
    ]


@router.post("/suggestions")
def act_on_suggestion(
    req: SuggestionAction,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if req.action not in SUGGESTION_ACTIONS:
        raise HTTPException(status_code=400, detail="Invalid request")
    try:
        scheduler.apply_suggestion_action(db, current_user.id, req.action, req.suggestionId)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "action": req.action}


# ── Single block ─────────────────────────────────────────────────────────────

def _get_own_block(db: Session, block_id: str, user_id: str) -> ScheduleBlock:
    block = db.query(ScheduleBlock).filter(ScheduleBlock.id == block_id, ScheduleBlock.user_id == user_id).first()
    if not block:
        raise HTTPException(status_code=404, detail="Schedule block not found")
    return block


@router.patch("/{block_id}", response_model=ScheduleBlockResponse)
def update_block(
    block_id: str,
    req: ScheduleBlockUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    block = _get_own_block(db, block_id, current_user.id)
    updates = req.model_dump(exclude_unset=True)

    day = updates.get("day_of_week", block.day_of_week)
    start, end = _validate_block(
        day,
        updates.get("available_start") or block.available_start.isoformat(),
        updates.get("available_end") or block.available_end.isoformat(),
        updates.get("block_type"),
    )
    block.day_of_week = day
    block.available_start = start
    block.available_end = end
    for field in ("label", "block_type", "location", "is_recurring"):
        if field in updates and updates[field] is not None:
            setattr(block, field, updates[field])
    db.commit()
    db.refresh(block)
    return _block_to_response(block)


@router.delete("/{block_id}")
def delete_block(
    block_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db.delete(_get_own_block(db, block_id, current_user.id))
    db.commit()
    return {"success": True}
