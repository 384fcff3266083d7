"""Worklogs router: records of completed schoolwork, optionally with a photo."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.course import Course
from study_tracker.models.assignment import Assignment
from study_tracker.models.worklog import Worklog
from study_tracker.schemas.worklog import WorklogCreate, WorklogUpdate
from study_tracker.middleware.auth import get_current_user
from study_tracker.routers.courses import course_to_response
from study_tracker.services import storage
from study_tracker.services.validation import VALID_WORKLOG_TYPES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/worklogs", tags=["worklogs"])

UPDATABLE_FIELDS = (
    "title",
    "description",
    "content",
    "topic",
    "worklog_type",
    "date_completed",
    "course_id",
    "assignment_id",
    "raw_extracted_text",
)


def worklog_to_dict(worklog: Worklog) -> dict:
    image_url = worklog.image_url
    if storage.is_owned_key(worklog.user_id, worklog.storage_path):
        image_url = storage.create_signed_url(storage.WORKLOG_IMAGES, worklog.storage_path)
    return {
        "id": worklog.id,
        "user_id": worklog.user_id,
        "course_id": worklog.course_id,
        "assignment_id": worklog.assignment_id,
        "title": worklog.title,
        "description": worklog.description,
        "content": worklog.content,
        "topic": worklog.topic,
        "worklog_type": worklog.worklog_type,
        "date_completed": worklog.date_completed.isoformat(),
        "image_url": image_url,
        "storage_path": worklog.storage_path,
        "raw_extracted_text": worklog.raw_extracted_text,
        "created_at": worklog.created_at.isoformat(),
        "updated_at": worklog.updated_at.isoformat(),
        "course": course_to_response(worklog.course).model_dump() if worklog.course else None,
        "assignment": (
            {"id": worklog.assignment.id, "title": worklog.assignment.title}
            if worklog.assignment else None
        ),
    }


def _get_own_worklog(db: Session, worklog_id: str, user_id: str) -> Worklog:
    worklog = db.query(Worklog).filter(Worklog.id == worklog_id, Worklog.user_id == user_id).first()
    if not worklog:
        raise HTTPException(status_code=404, detail="Worklog not found")
    return worklog


def _check_links(db: Session, user_id: str, course_id: str | None, assignment_id: str | None) -> None:
    if course_id and not db.query(Course.id).filter(Course.id == course_id, Course.user_id == user_id).first():
        raise HTTPException(status_code=400, detail="Course not found")
    if assignment_id and not (
        db.query(Assignment.id).filter(Assignment.id == assignment_id, Assignment.user_id == user_id).first()
    ):
        raise HTTPException(status_code=400, detail="Assignment not found")


@router.get("")
def list_worklogs(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    worklogs = (
        db.query(Worklog)
        .filter(Worklog.user_id == current_user.id)
        .order_by(Worklog.date_completed.desc(), Worklog.created_at.desc())
        .all()
    )
    return {"worklogs": [worklog_to_dict(w) for w in worklogs]}


@router.post("", status_code=201)
def create_worklog(
    req: WorklogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    title = req.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    worklog_type = req.worklog_type or "classwork"
    if worklog_type not in VALID_WORKLOG_TYPES:
        raise HTTPException(status_code=400, detail=f"Worklog type must be one of: {', '.join(VALID_WORKLOG_TYPES)}")
    if req.storage_path and not storage.is_owned_key(current_user.id, req.storage_path):
        raise HTTPException(status_code=400, detail="Invalid storage path")
    _check_links(db, current_user.id, req.course_id, req.assignment_id)

    worklog = Worklog(
        user_id=current_user.id,
        course_id=req.course_id,
        assignment_id=req.assignment_id,
        title=title,
        description=req.description,
        content=req.content,
        topic=req.topic,
        worklog_type=worklog_type,
        storage_path=req.storage_path,
        raw_extracted_text=req.raw_extracted_text,
    )
    if req.date_completed:
        worklog.date_completed = req.date_completed
    db.add(worklog)
    db.commit()
    db.refresh(worklog)
    return {"worklog": worklog_to_dict(worklog)}


@router.get("/{worklog_id}")
def get_worklog(
    worklog_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"worklog": worklog_to_dict(_get_own_worklog(db, worklog_id, current_user.id))}


@router.patch("/{worklog_id}")
def update_worklog(
    worklog_id: str,
    req: WorklogUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    worklog = _get_own_worklog(db, worklog_id, current_user.id)
    updates = {k: v for k, v in req.model_dump(exclude_unset=True).items() if k in UPDATABLE_FIELDS}

    if "title" in updates:
        if not (updates["title"] or "").strip():
            raise HTTPException(status_code=400, detail="Title is required")
        updates["title"] = updates["title"].strip()
    if "worklog_type" in updates and updates["worklog_type"] not in VALID_WORKLOG_TYPES:
        raise HTTPException(status_code=400, detail=f"Worklog type must be one of: {', '.join(VALID_WORKLOG_TYPES)}")
    if "date_completed" in updates and updates["date_completed"] is None:
        raise HTTPException(status_code=400, detail="date_completed cannot be empty")
    _check_links(db, current_user.id, updates.get("course_id"), updates.get("assignment_id"))

    for field, value in updates.items():
        setattr(worklog, field, value)
    db.commit()
    db.refresh(worklog)
    return {"worklog": worklog_to_dict(worklog)}


@router.delete("/{worklog_id}")
def delete_worklog(
    worklog_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a worklog and its stored photo."""
    worklog = _get_own_worklog(db, worklog_id, current_user.id)
    if worklog.storage_path:
        storage.remove(storage.WORKLOG_IMAGES, current_user.id, [worklog.storage_path])
    db.delete(worklog)
    db.commit()
    return {"success": True}
