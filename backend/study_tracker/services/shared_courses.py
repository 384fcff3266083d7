"""Shared course service: membership, shared assignments, copies and dismissals.

Membership rules raise PermissionError (403), missing rows LookupError (404) and
rejected requests ValueError (400); the router maps them onto HTTP responses.
"""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from study_tracker.models.assignment import Assignment
from study_tracker.models.course import Course
from study_tracker.models.shared_course import (
    SharedCourse,
    SharedCourseMember,
    SharedAssignment,
    UserSharedAssignmentCopy,
    UserDismissedSharedAssignment,
)
from study_tracker.services.ai_client import chat
from study_tracker.services.ai_json import parse_ai_json
from study_tracker.services.validation import (
    generate_invite_code,
    is_valid_duration,
    is_valid_priority,
)

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 5

SUGGEST_COURSE_SYSTEM = """You are a helpful assistant that matches assignments to courses.

Given an assignment's title and description, determine which course it most likely belongs to.

OUTPUT FORMAT - Return ONLY a valid JSON object:
{
  "course_number": 1
}

Where course_number is the number (1-indexed) of the best matching course from the list.
If none of the courses seem to match well, return the number of the most general or likely course.

CRITICAL: Return ONLY valid JSON. No markdown, no extra text, no code blocks."""


class AlreadyCopied(ValueError):
    def __init__(self, local_assignment_id: str | None):
        super().__init__("Assignment already copied")
        self.local_assignment_id = local_assignment_id


def member_count(db: Session, course_id: str) -> int:
    return (
        db.query(func.count(SharedCourseMember.id))
        .filter(SharedCourseMember.shared_course_id == course_id)
        .scalar()
    )


def get_membership(db: Session, course_id: str, user_id: str) -> SharedCourseMember | None:
    return (
        db.query(SharedCourseMember)
        .filter(SharedCourseMember.shared_course_id == course_id, SharedCourseMember.user_id == user_id)
        .first()
    )


def require_membership(db: Session, course_id: str, user_id: str) -> SharedCourseMember:
    membership = get_membership(db, course_id, user_id)
    if not membership:
        raise PermissionError("Not a member of this course")
    return membership


def list_memberships(db: Session, user_id: str) -> list[SharedCourseMember]:
    return (
        db.query(SharedCourseMember)
        .filter(SharedCourseMember.user_id == user_id)
        .order_by(SharedCourseMember.joined_at)
        .all()
    )


def _unique_invite_code(db: Session) -> str:
    for _ in range(INVITE_CODE_ATTEMPTS):
        code = generate_invite_code()
        if not db.query(SharedCourse.id).filter(SharedCourse.invite_code == code).first():
            return code
    raise RuntimeError("Could not generate a unique invite code")


def create_course(db: Session, user_id: str, name: str, description: str | None, color: str | None) -> SharedCourse:
    course = SharedCourse(
        name=name.strip(),
        description=(description or "").strip() or None,
        color=color or "#3b82f6",
        created_by=user_id,
        invite_code=_unique_invite_code(db),
    )
    course.members.append(SharedCourseMember(user_id=user_id, role="owner"))
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def join_course(db: Session, user_id: str, invite_code: str) -> SharedCourse:
    code = (invite_code or "").strip().lower()
    if not code:
        raise ValueError("Invite code is required")

    course = db.query(SharedCourse).filter(SharedCourse.invite_code == code).first()
    if not course:
        raise LookupError("Invalid invite code")
    if get_membership(db, course.id, user_id):
        raise ValueError("You are already a member of this course")

    db.add(SharedCourseMember(shared_course_id=course.id, user_id=user_id, role="member"))
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent join of the same user
        db.rollback()
        raise ValueError("You are already a member of this course")
    db.refresh(course)
    return course


def leave_course(db: Session, user_id: str, course_id: str) -> None:
    membership = require_membership(db, course_id, user_id)
    if membership.role == "owner":
        raise ValueError("Course owners cannot leave. You must delete the course first.")

    assignment_ids = [
        row.id for row in db.query(SharedAssignment.id).filter(SharedAssignment.shared_course_id == course_id)
    ]
    if assignment_ids:
        db.query(UserDismissedSharedAssignment).filter(
            UserDismissedSharedAssignment.user_id == user_id,
            UserDismissedSharedAssignment.shared_assignment_id.in_(assignment_ids),
        ).delete(synchronize_session=False)
    db.delete(membership)
    db.commit()


def delete_course(db: Session, user_id: str, course_id: str) -> None:
    membership = require_membership(db, course_id, user_id)
    if membership.role != "owner":
        raise PermissionError("Only the course owner can delete this course")
    course = db.query(SharedCourse).filter(SharedCourse.id == course_id).first()
    db.delete(course)
    db.commit()


# ── Shared assignments ───────────────────────────────────────────────────────

def list_assignments(db: Session, user_id: str, course_id: str) -> list[tuple[SharedAssignment, bool, bool]]:
    """(assignment, is_copied, is_dismissed) for every assignment in the course, by due date."""
    require_membership(db, course_id, user_id)
    assignments = (
        db.query(SharedAssignment)
        .filter(SharedAssignment.shared_course_id == course_id)
        .order_by(SharedAssignment.due_date.is_(None), SharedAssignment.due_date)
        .all()
    )
    ids = [a.id for a in assignments]
    copied = {
        row.shared_assignment_id
        for row in db.query(UserSharedAssignmentCopy.shared_assignment_id).filter(
            UserSharedAssignmentCopy.user_id == user_id,
            UserSharedAssignmentCopy.shared_assignment_id.in_(ids),
        )
    } if ids else set()
    dismissed = {
        row.shared_assignment_id
        for row in db.query(UserDismissedSharedAssignment.shared_assignment_id).filter(
            UserDismissedSharedAssignment.user_id == user_id,
            UserDismissedSharedAssignment.shared_assignment_id.in_(ids),
        )
    } if ids else set()
    return [(a, a.id in copied, a.id in dismissed) for a in assignments]


def create_assignment(db: Session, user_id: str, course_id: str, data: dict) -> SharedAssignment:
    title = (data.get("title") or "").strip()
    if not title:
        raise ValueError("Title is required")
    require_membership(db, course_id, user_id)

    priority = data.get("priority")
    duration = data.get("estimated_duration")
    assignment = SharedAssignment(
        shared_course_id=course_id,
        created_by=user_id,
        title=title,
        description=(data.get("description") or "").strip() or None,
        due_date=data.get("due_date"),
        priority=priority if is_valid_priority(priority) else "medium",
        estimated_duration=duration if is_valid_duration(duration) else 60,
        raw_input_text=data.get("raw_input_text") or None,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def _get_assignment(db: Session, course_id: str, assignment_id: str) -> SharedAssignment:
    assignment = (
        db.query(SharedAssignment)
        .filter(SharedAssignment.id == assignment_id, SharedAssignment.shared_course_id == course_id)
        .first()
    )
    if not assignment:
        raise LookupError("Assignment not found")
    return assignment


def delete_assignment(db: Session, user_id: str, course_id: str, assignment_id: str) -> None:
    membership = require_membership(db, course_id, user_id)
    assignment = _get_assignment(db, course_id, assignment_id)
    if membership.role != "owner" and assignment.created_by != user_id:
        raise PermissionError("Only course owners or the assignment creator can delete this assignment")
    db.delete(assignment)
    db.commit()


def copy_assignment(db: Session, user_id: str, course_id: str, assignment_id: str) -> Assignment:
    """Copy a shared assignment into the user's own list, at most once per user."""
    require_membership(db, course_id, user_id)

    existing = (
        db.query(UserSharedAssignmentCopy)
        .filter(
            UserSharedAssignmentCopy.shared_assignment_id == assignment_id,
            UserSharedAssignmentCopy.user_id == user_id,
        )
        .first()
    )
    if existing:
        raise AlreadyCopied(existing.local_assignment_id)

    shared = _get_assignment(db, course_id, assignment_id)
    local_course = (
        db.query(Course)
        .filter(Course.user_id == user_id, func.lower(Course.name) == shared.shared_course.name.lower())
        .first()
    )

    local = Assignment(
        user_id=user_id,
        course_id=local_course.id if local_course else None,
        title=shared.title,
        description=shared.description,
        due_date=shared.due_date,
        priority=shared.priority,
        estimated_duration=shared.estimated_duration,
        raw_input_text=shared.raw_input_text,
        status="pending",
    )
    db.add(local)
    db.flush()
    db.add(UserSharedAssignmentCopy(
        shared_assignment_id=assignment_id,
        user_id=user_id,
        local_assignment_id=local.id,
    ))
    try:
        db.commit()
    except IntegrityError:
        # The local assignment goes with the rolled-back copy record
        db.rollback()
        raise AlreadyCopied(None)
    db.refresh(local)
    return local


def dismiss_assignment(db: Session, user_id: str, course_id: str, assignment_id: str) -> None:
    """Hide a shared assignment; dismissing twice is a no-op."""
    require_membership(db, course_id, user_id)
    _get_assignment(db, course_id, assignment_id)

    exists = (
        db.query(UserDismissedSharedAssignment.id)
        .filter(
            UserDismissedSharedAssignment.shared_assignment_id == assignment_id,
            UserDismissedSharedAssignment.user_id == user_id,
        )
        .first()
    )
    if exists:
        return
    db.add(UserDismissedSharedAssignment(shared_assignment_id=assignment_id, user_id=user_id))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()


def undismiss_assignment(db: Session, user_id: str, course_id: str, assignment_id: str) -> None:
    require_membership(db, course_id, user_id)
    db.query(UserDismissedSharedAssignment).filter(
        UserDismissedSharedAssignment.shared_assignment_id == assignment_id,
        UserDismissedSharedAssignment.user_id == user_id,
    ).delete(synchronize_session=False)
    db.commit()


# ── Course suggestion ────────────────────────────────────────────────────────

async def suggest_course(db: Session, user_id: str, title: str | None, description: str | None) -> str | None:
    """Pick the shared course an assignment most likely belongs to."""
    if not title and not description:
        return None

    courses = [m.shared_course for m in list_memberships(db, user_id) if m.shared_course]
    if not courses:
        return None
    if len(courses) == 1:
        return courses[0].id

    course_list = "\n".join(
        f'{i}. "{c.name}"' + (f" - {c.description}" if c.description else "")
        for i, c in enumerate(courses, start=1)
    )
    assignment_info = f"Title: {title or 'Not provided'}\nDescription: {description or 'Not provided'}"
    try:
        raw = await chat(
            system=SUGGEST_COURSE_SYSTEM,
            messages=[{
                "role": "user",
                "content": (
                    f"ASSIGNMENT:\n{assignment_info}\n\nAVAILABLE COURSES:\n{course_list}\n\n"
                    "Which course does this assignment belong to?"
                ),
            }],
            max_tokens=100,
            temperature=0.1,
        )
        data = parse_ai_json(raw)
    except Exception:
        logger.exception("Shared course suggestion failed")
        return courses[0].id

    number = data.get("course_number") if isinstance(data, dict) else None
    if isinstance(number, int) and not isinstance(number, bool) and 1 <= number <= len(courses):
        return courses[number - 1].id
    return courses[0].id
