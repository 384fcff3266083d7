"""Shared courses router: invite-code groups and their shared assignments."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.shared_course import SharedCourse, SharedAssignment
from study_tracker.schemas.shared_course import (
    SharedCourseCreate,
    SharedCourseResponse,
    JoinRequest,
    SharedAssignmentCreate,
    SharedAssignmentResponse,
    Creator,
    SuggestCourseRequest,
)
from study_tracker.middleware.auth import get_current_user
from study_tracker.middleware.rate_limit import ai_rate_limit
from study_tracker.routers.assignments import assignment_to_response
from study_tracker.services import shared_courses as service
from study_tracker.services.validation import is_valid_hex_color

router = APIRouter(prefix="/api", tags=["shared-courses"])


def _course_to_response(db: Session, course: SharedCourse, role: str) -> SharedCourseResponse:
    return SharedCourseResponse(
        id=course.id,
        name=course.name,
        description=course.description,
        color=course.color,
        created_by=course.created_by,
        invite_code=course.invite_code,
        created_at=course.created_at.isoformat(),
        updated_at=course.updated_at.isoformat(),
        user_role=role,
        member_count=service.member_count(db, course.id),
    )


def _assignment_to_response(
    assignment: SharedAssignment, is_copied: bool = False, is_dismissed: bool = False
) -> SharedAssignmentResponse:
    creator = assignment.creator
    return SharedAssignmentResponse(
        id=assignment.id,
        shared_course_id=assignment.shared_course_id,
        created_by=assignment.created_by,
        title=assignment.title,
        description=assignment.description,
        due_date=assignment.due_date.isoformat() if assignment.due_date else None,
        priority=assignment.priority,
        estimated_duration=assignment.estimated_duration,
        raw_input_text=assignment.raw_input_text,
        created_at=assignment.created_at.isoformat(),
        creator=Creator(id=creator.id, email=creator.email, full_name=creator.full_name) if creator else None,
        is_copied=is_copied,
        is_dismissed=is_dismissed,
    )


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.get("/shared-courses", response_model=list[SharedCourseResponse])
def list_shared_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return [
        _course_to_response(db, m.shared_course, m.role)
        for m in service.list_memberships(db, current_user.id)
    ]


@router.post("/shared-courses", response_model=SharedCourseResponse, status_code=201)
def create_shared_course(
    req: SharedCourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not req.name.strip():
        raise HTTPException(status_code=400, detail="Course name is required")
    if req.color is not None and not is_valid_hex_color(req.color):
        raise HTTPException(status_code=400, detail="Color must be a hex value like #3b82f6")
    course = service.create_course(db, current_user.id, req.name, req.description, req.color)
    return _course_to_response(db, course, "owner")


@router.post("/shared-courses/join", response_model=SharedCourseResponse)
def join_shared_course(
    req: JoinRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        course = service.join_course(db, current_user.id, req.invite_code)
    except (LookupError, ValueError) as e:
        raise _http_error(e)
    return _course_to_response(db, course, "member")


@router.post("/shared-courses/{course_id}/leave")
def leave_shared_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        service.leave_course(db, current_user.id, course_id)
    except (PermissionError, ValueError) as e:
        raise _http_error(e)
    return {"message": "Successfully left the course"}


@router.delete("/shared-courses/{course_id}")
def delete_shared_course(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a shared course with all its members and assignments (owner only)."""
    try:
        service.delete_course(db, current_user.id, course_id)
    except PermissionError as e:
        raise _http_error(e)
    return {"message": "Course deleted successfully"}


# ── Shared assignments ───────────────────────────────────────────────────────

@router.get("/shared-courses/{course_id}/assignments", response_model=list[SharedAssignmentResponse])
def list_shared_assignments(
    course_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        rows = service.list_assignments(db, current_user.id, course_id)
    except PermissionError as e:
        raise _http_error(e)
    return [_assignment_to_response(a, copied, dismissed) for a, copied, dismissed in rows]


@router.post(
    "/shared-courses/{course_id}/assignments",
    response_model=SharedAssignmentResponse,
    status_code=201,
)
def create_shared_assignment(
    course_id: str,
    req: SharedAssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        assignment = service.create_assignment(db, current_user.id, course_id, req.model_dump())
    except (PermissionError, ValueError) as e:
        raise _http_error(e)
    return _assignment_to_response(assignment)


@router.delete("/shared-courses/{course_id}/assignments/{assignment_id}")
def delete_shared_assignment(
    course_id: str,
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        service.delete_assignment(db, current_user.id, course_id, assignment_id)
    except (PermissionError, LookupError) as e:
        raise _http_error(e)
    return {"message": "Assignment deleted successfully"}


@router.post("/shared-courses/{course_id}/assignments/{assignment_id}/copy")
def copy_shared_assignment(
    course_id: str,
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Copy a shared assignment into the caller's own assignments."""
    try:
        local = service.copy_assignment(db, current_user.id, course_id, assignment_id)
    except service.AlreadyCopied as e:
        return JSONResponse(
            status_code=400,
            content={"detail": str(e), "local_assignment_id": e.local_assignment_id},
        )
    except (PermissionError, LookupError) as e:
        raise _http_error(e)
    return {
        "message": "Assignment copied successfully",
        "local_assignment": assignment_to_response(local).model_dump(),
    }


@router.post("/shared-courses/{course_id}/assignments/{assignment_id}/dismiss")
def dismiss_shared_assignment(
    course_id: str,
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        service.dismiss_assignment(db, current_user.id, course_id, assignment_id)
    except (PermissionError, LookupError) as e:
        raise _http_error(e)
    return {"message": "Assignment dismissed successfully"}


@router.delete("/shared-courses/{course_id}/assignments/{assignment_id}/dismiss")
def undismiss_shared_assignment(
    course_id: str,
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        service.undismiss_assignment(db, current_user.id, course_id, assignment_id)
    except PermissionError as e:
        raise _http_error(e)
    return {"message": "Assignment undismissed successfully"}


# ── Course suggestion ────────────────────────────────────────────────────────

@router.post("/suggest-shared-course")
@ai_rate_limit
async def suggest_shared_course(
    request: Request,
    req: SuggestCourseRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Guess which of the caller's shared courses an assignment belongs to."""
    course_id = await service.suggest_course(db, current_user.id, req.title, req.description)
    return {"suggested_course_id": course_id}
