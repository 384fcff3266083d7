"""Study session router: topic-based review built from the student's own work."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.schemas.study_session import StudySessionRequest, SessionMaterialRequest, GradeRequest
from study_tracker.middleware.auth import get_current_user
from study_tracker.middleware.rate_limit import ai_rate_limit
from study_tracker.services import study_session
from study_tracker.services.ai_client import AIClientError
from study_tracker.services.ai_json import AIResponseParseError
from study_tracker.services.validation import VALID_MATERIAL_TYPES, is_valid_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/study-session", tags=["study-session"])


@router.post("")
@ai_rate_limit
async def create_study_session(
    request: Request,
    req: StudySessionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Collect the worklogs and assignments relevant to a topic, plus an overview."""
    topic = req.topic.strip()
    if not topic:
        raise HTTPException(status_code=400, detail="Topic is required")
    for value in (req.dateFrom, req.dateTo):
        if value and not is_valid_date(value):
            raise HTTPException(status_code=400, detail="Dates must be YYYY-MM-DD")

    try:
        data = await study_session.build_study_session(
            db,
            current_user.id,
            topic,
            unit=req.unit,
            subject=req.subject,
            date_from=req.dateFrom,
            date_to=req.dateTo,
            course_id=req.courseId,
            include_worklogs=req.includeWorklogs,
            include_assignments=req.includeAssignments,
        )
    except AIClientError:
        logger.exception("Study session build failed")
        raise HTTPException(status_code=500, detail="Internal server error")
    return {"success": True, "data": data}


@router.post("/generate")
@ai_rate_limit
async def generate_session_material(
    request: Request,
    req: SessionMaterialRequest,
    current_user: User = Depends(get_current_user),
):
    if not req.content or not req.content.strip():
        raise HTTPException(status_code=400, detail="Content is required")
    if req.type not in VALID_MATERIAL_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Valid type is required (notes, study_guide, practice_test, flashcards)",
        )
    try:
        content = await study_session.generate_session_material(req.type, req.content, req.topic, req.unit)
    except (AIClientError, AIResponseParseError):
        logger.exception("Study session material generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate study material")
    return {
        "success": True,
        "type": req.type,
        "content": content,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/grade")
@ai_rate_limit
async def grade_answers(
    request: Request,
    req: GradeRequest,
    current_user: User = Depends(get_current_user),
):
    """Grade short answers; unreadable model output yields neutral fallback grades."""
    questions = [q.model_dump() for q in req.questions]
    try:
        grades = await study_session.grade_answers(questions)
    except AIClientError:
        logger.exception("Grading failed")
        raise HTTPException(status_code=500, detail="Failed to grade answers")
    return {"success": True, "grades": grades}
