"""Courses router: a student's own courses."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.course import Course
from study_tracker.schemas.course import CourseCreate, CourseUpdate, CourseResponse
from study_tracker.middleware.auth import get_current_user
from study_tracker.services.validation import is_valid_hex_color

router = APIRouter(prefix="/api/courses", tags=["courses"])


def course_to_response(course: Course) -> CourseResponse:
    return CourseResponse(
        id=course.id,
        user_id=course.user_id,
        name=course.name,
        color=course.color,
        instructor=course.instructor,
        created_at=course.created_at.isoformat(),
    )


def _get_own_course(db: Session, course_id: str, user_id: str) -> Course:
    course = db.query(Course).filter(Course.id == course_id, Course.user_id == user_id).first()
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course


@router.get("", response_model=list[CourseResponse])
def list_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    courses = db.query(Course).filter(Course.user_id == current_user.id).order_by(Course.name).all()
    return [course_to_response(c) for c in courses]


@router.post("", response_model=CourseResponse, status_code=201)
def create_course(
    req: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    name = req.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Course name is required")
    if req.color is not None and not is_valid_hex_color(req.color):
        raise HTTPException(status_code=400, detail="Color must be a hex value like #3b82f6")

    course = Course(
        user_id=current_user.id,
        name=name,
        color=req.color or "#3b82f6",
        instructor=(req.instructor or "").strip() or None,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course_to_response(course)


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: str,
    req: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    course = _get_own_course(db, course_id, current_user.id)
    if req.name is not None:
        if not req.name.strip():
            raise HTTPException(status_code=400, detail="Course name is required")
        course.name = req.name.strip()
    if req.color is not None:
        if not is_valid_hex_color(req.color):
            raise HTTPException(status_code=400, detail="Color must be a hex value like #3b82f6")
        course.color = req.color
    if req.instructor is not None:
        course.instructor = req.instructor.strip() or None
    db.commit()
    db.refresh(course)
    return course_to_response(course)


@router.delete("/{course_id}")
def delete_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a course; its assignments and worklogs stay, unlinked."""
    course = _get_own_course(db, course_id, current_user.id)
    # children are unlinked by the ORM (no delete cascade on these relationships)
    db.delete(course)
    db.commit()
    return {"success": True}
