"""Planned tasks router: concrete study sessions on the calendar."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.assignment import Assignment
from study_tracker.models.schedule import PlannedTask
from study_tracker.schemas.schedule import TaskCreate, TaskUpdate
from study_tracker.middleware.auth import get_current_user
from study_tracker.routers.courses import course_to_response
from study_tracker.services.validation import (
    VALID_TASK_TYPES,
    is_valid_date,
    is_valid_time,
    normalize_end_time,
    parse_date,
    parse_time,
)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def task_to_dict(task: PlannedTask) -> dict:
    assignment = task.assignment
    return {
        "id": task.id,
        "user_id": task.user_id,
        "assignment_id": task.assignment_id,
        "scheduled_date": task.scheduled_date.isoformat(),
        "scheduled_start": task.scheduled_start.isoformat(),
        "scheduled_end": task.scheduled_end.isoformat(),
        "completed": task.completed,
        "notes": task.notes,
        "title": task.title,
        "task_type": task.task_type,
        "ai_generated": task.ai_generated,
        "priority": task.priority,
        "created_at": task.created_at.isoformat(),
        "assignment": {
            "id": assignment.id,
            "title": assignment.title,
            "status": assignment.status,
            "course": course_to_response(assignment.course).model_dump() if assignment.course else None,
        } if assignment else None,
    }


def _slot(day: str, start: str, end: str):
    if not is_valid_date(day):
        raise HTTPException(status_code=400, detail="scheduled_date must be YYYY-MM-DD")
    if not is_valid_time(start) or not is_valid_time(end):
        raise HTTPException(status_code=400, detail="Times must be HH:MM or HH:MM:SS")
    start_t = parse_time(start)
    end_t = parse_time(normalize_end_time(end))
    if start_t >= end_t:
        raise HTTPException(status_code=400, detail="Start time must be before end time")
    return parse_date(day), start_t, end_t


def _get_own_task(db: Session, task_id: str, user_id: str) -> PlannedTask:
    task = db.query(PlannedTask).filter(PlannedTask.id == task_id, PlannedTask.user_id == user_id).first()
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("")
def list_tasks(
    date: str | None = None,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Tasks for one day, a date range, or all of them."""
    for value in (date, start_date, end_date):
        if value is not None and not is_valid_date(value):
            raise HTTPException(status_code=400, detail="Dates must be YYYY-MM-DD")

    query = db.query(PlannedTask).filter(PlannedTask.user_id == current_user.id)
    if date:
        query = query.filter(PlannedTask.scheduled_date == parse_date(date))
    else:
        if start_date:
            query = query.filter(PlannedTask.scheduled_date >= parse_date(start_date))
        if end_date:
            query = query.filter(PlannedTask.scheduled_date <= parse_date(end_date))
    tasks = query.order_by(PlannedTask.scheduled_date, PlannedTask.scheduled_start).all()
    return [task_to_dict(t) for t in tasks]


@router.post("", status_code=201)
def create_task(
    req: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    day, start, end = _slot(req.scheduled_date, req.scheduled_start, req.scheduled_end)
    task_type = req.task_type or "assignment"
    if task_type not in VALID_TASK_TYPES:
        raise HTTPException(status_code=400, detail=f"task_type must be one of: {', '.join(VALID_TASK_TYPES)}")
    if req.assignment_id and not (
        db.query(Assignment.id)
        .filter(Assignment.id == req.assignment_id, Assignment.user_id == current_user.id)
        .first()
    ):
        raise HTTPException(status_code=400, detail="Assignment not found")

    task = PlannedTask(
        user_id=current_user.id,
        assignment_id=req.assignment_id,
        scheduled_date=day,
        scheduled_start=start,
        scheduled_end=end,
        title=req.title,
        notes=req.notes,
        task_type=task_type,
        priority=req.priority,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task_to_dict(task)


@router.patch("/{task_id}")
def update_task(
    task_id: str,
    req: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Mark complete, reschedule, or edit notes."""
    task = _get_own_task(db, task_id, current_user.id)
    updates = req.model_dump(exclude_unset=True)

    if {"scheduled_date", "scheduled_start", "scheduled_end"} & updates.keys():
        day, start, end = _slot(
            updates.get("scheduled_date") or task.scheduled_date.isoformat(),
            updates.get("scheduled_start") or task.scheduled_start.isoformat(),
            updates.get("scheduled_end") or task.scheduled_end.isoformat(),
        )
        task.scheduled_date, task.scheduled_start, task.scheduled_end = day, start, end
    if "task_type" in updates and updates["task_type"] not in VALID_TASK_TYPES:
        raise HTTPException(status_code=400, detail=f"task_type must be one of: {', '.join(VALID_TASK_TYPES)}")
    for field in ("completed", "notes", "title", "task_type", "priority"):
        if field in updates and (updates[field] is not None or field in ("notes", "title")):
            setattr(task, field, updates[field])
    db.commit()
    db.refresh(task)
    return task_to_dict(task)


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    db.delete(_get_own_task(db, task_id, current_user.id))
    db.commit()
    return {"success": True}
