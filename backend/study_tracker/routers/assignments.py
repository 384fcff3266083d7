"""Assignments router: assignment CRUD, attached images and per-assignment study materials."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from study_tracker.database import get_db
from study_tracker.models.user import User
from study_tracker.models.course import Course
from study_tracker.models.assignment import Assignment, AssignmentImage
from study_tracker.models.study_material import StudyMaterial
from study_tracker.schemas.assignment import (
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentResponse,
    AssignmentDetailResponse,
    AssignmentImageCreate,
    AssignmentImageResponse,
)
from study_tracker.schemas.study_material import MaterialCreate, StudyMaterialResponse
from study_tracker.middleware.auth import get_current_user
from study_tracker.middleware.rate_limit import ai_rate_limit
from study_tracker.routers.courses import course_to_response
from study_tracker.services import storage
from study_tracker.services.ai_client import AIClientError
from study_tracker.services.ai_json import AIResponseParseError
from study_tracker.services.study_materials import generate_material, material_title
from study_tracker.services.validation import (
    VALID_MATERIAL_TYPES,
    VALID_STATUSES,
    is_valid_duration,
    is_valid_priority,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/assignments", tags=["assignments"])


def material_to_response(material: StudyMaterial) -> StudyMaterialResponse:
    return StudyMaterialResponse(
        id=material.id,
        assignment_id=material.assignment_id,
        user_id=material.user_id,
        type=material.type,
        title=material.title,
        content=material.content,
        created_at=material.created_at.isoformat(),
    )


def image_to_response(image: AssignmentImage) -> AssignmentImageResponse:
    return AssignmentImageResponse(
        id=image.id,
        assignment_id=image.assignment_id,
        storage_path=image.storage_path,
        signed_url=storage.create_signed_url(storage.ASSIGNMENT_IMAGES, image.storage_path),
        extracted_text=image.extracted_text,
        created_at=image.created_at.isoformat(),
    )


def assignment_to_response(assignment: Assignment, with_materials: bool = False) -> AssignmentResponse:
    fields = dict(
        id=assignment.id,
        user_id=assignment.user_id,
        course_id=assignment.course_id,
        title=assignment.title,
        description=assignment.description,
        due_date=assignment.due_date.isoformat() if assignment.due_date else None,
        priority=assignment.priority,
        status=assignment.status,
        estimated_duration=assignment.estimated_duration,
        raw_input_text=assignment.raw_input_text,
        created_at=assignment.created_at.isoformat(),
        updated_at=assignment.updated_at.isoformat(),
        course=course_to_response(assignment.course) if assignment.course else None,
    )
    if with_materials:
        return AssignmentDetailResponse(
            **fields,
            study_materials=[material_to_response(m) for m in assignment.study_materials],
            images=[image_to_response(img) for img in assignment.images],
        )
    return AssignmentResponse(**fields)


def _get_own_assignment(db: Session, assignment_id: str, user_id: str) -> Assignment:
    assignment = (
        db.query(Assignment)
        .filter(Assignment.id == assignment_id, Assignment.user_id == user_id)
        .first()
    )
    if not assignment:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return assignment


def _check_course(db: Session, course_id: str | None, user_id: str) -> None:
    if course_id and not db.query(Course.id).filter(Course.id == course_id, Course.user_id == user_id).first():
        raise HTTPException(status_code=400, detail="Course not found")


@router.get("", response_model=list[AssignmentResponse])
def list_assignments(
    status: str | None = None,
    course_id: str | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the user's assignments, soonest due first (undated last)."""
    query = db.query(Assignment).filter(Assignment.user_id == current_user.id)
    if status:
        query = query.filter(Assignment.status == status)
    if course_id:
        query = query.filter(Assignment.course_id == course_id)
    assignments = query.order_by(Assignment.due_date.is_(None), Assignment.due_date).all()
    return [assignment_to_response(a) for a in assignments]


@router.post("", response_model=AssignmentResponse, status_code=201)
def create_assignment(
    req: AssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    title = req.title.strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    if req.priority is not None and not is_valid_priority(req.priority):
        raise HTTPException(status_code=400, detail="Priority must be low, medium or high")
    if req.estimated_duration is not None and not is_valid_duration(req.estimated_duration):
        raise HTTPException(status_code=400, detail="Estimated duration must be 1-1440 minutes")
    _check_course(db, req.course_id, current_user.id)

    assignment = Assignment(
        user_id=current_user.id,
        course_id=req.course_id,
        title=title,
        description=req.description,
        due_date=req.due_date,
        priority=req.priority or "medium",
        status="pending",
        estimated_duration=req.estimated_duration or 60,
        raw_input_text=req.raw_input_text,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment_to_response(assignment)


@router.get("/{assignment_id}", response_model=AssignmentDetailResponse)
def get_assignment(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    assignment = _get_own_assignment(db, assignment_id, current_user.id)
    return assignment_to_response(assignment, with_materials=True)


@router.patch("/{assignment_id}", response_model=AssignmentResponse)
def update_assignment(
    assignment_id: str,
    req: AssignmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    assignment = _get_own_assignment(db, assignment_id, current_user.id)
    updates = req.model_dump(exclude_unset=True)

    if "title" in updates:
        if not (updates["title"] or "").strip():
            raise HTTPException(status_code=400, detail="Title is required")
        updates["title"] = updates["title"].strip()
    if "priority" in updates and not is_valid_priority(updates["priority"]):
        raise HTTPException(status_code=400, detail="Priority must be low, medium or high")
    if "status" in updates and updates["status"] not in VALID_STATUSES:
        raise HTTPException(status_code=400, detail="Status must be pending, in_progress or completed")
    if "estimated_duration" in updates and not is_valid_duration(updates["estimated_duration"]):
        raise HTTPException(status_code=400, detail="Estimated duration must be 1-1440 minutes")
    if "course_id" in updates:
        _check_course(db, updates["course_id"], current_user.id)

    for field, value in updates.items():
        setattr(assignment, field, value)
    db.commit()
    db.refresh(assignment)
    return assignment_to_response(assignment)


@router.delete("/{assignment_id}")
def delete_assignment(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete an assignment with its materials, planned tasks, suggestions and images."""
    assignment = _get_own_assignment(db, assignment_id, current_user.id)
    image_paths = [img.storage_path for img in assignment.images]
    if image_paths:
        storage.remove(storage.ASSIGNMENT_IMAGES, current_user.id, image_paths)
    db.delete(assignment)
    db.commit()
    return {"success": True}


@router.post("/{assignment_id}/images", response_model=AssignmentImageResponse, status_code=201)
def attach_image(
    assignment_id: str,
    req: AssignmentImageCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Attach an uploaded assignment-images object to the assignment."""
    assignment = _get_own_assignment(db, assignment_id, current_user.id)
    if not storage.is_owned_key(current_user.id, req.storage_path):
        raise HTTPException(status_code=400, detail="Invalid storage path")
    if not storage.object_path(storage.ASSIGNMENT_IMAGES, req.storage_path).is_file():
        raise HTTPException(status_code=400, detail="Image not uploaded")

    image = AssignmentImage(
        assignment_id=assignment.id,
        user_id=current_user.id,
        storage_path=req.storage_path,
        extracted_text=req.extracted_text,
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    return image_to_response(image)


# ── Study materials ──────────────────────────────────────────────────────────

@router.get("/{assignment_id}/materials", response_model=list[StudyMaterialResponse])
def list_materials(
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    assignment = _get_own_assignment(db, assignment_id, current_user.id)
    return [material_to_response(m) for m in assignment.study_materials]


@router.post("/{assignment_id}/materials", response_model=StudyMaterialResponse, status_code=201)
@ai_rate_limit
async def create_material(
    request: Request,
    assignment_id: str,
    req: MaterialCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Generate a study material for the assignment and store it.

    Uses the supplied content, otherwise the assignment's own text.
    """
    assignment = _get_own_assignment(db, assignment_id, current_user.id)
    if req.type not in VALID_MATERIAL_TYPES:
        raise HTTPException(
            status_code=400,
            detail="Valid type is required (notes, study_guide, practice_test, flashcards)",
        )

    source = (req.content or "").strip() or "\n\n".join(
        p for p in (assignment.title, assignment.description, assignment.raw_input_text) if p
    )
    try:
        content = await generate_material(req.type, source)
    except (AIClientError, AIResponseParseError):
        logger.exception("Study material generation failed for assignment %s", assignment.id)
        raise HTTPException(status_code=500, detail="Failed to generate study material")

    material = StudyMaterial(
        assignment_id=assignment.id,
        user_id=current_user.id,
        type=req.type,
        title=material_title(req.type, assignment.title),
        content=content,
    )
    db.add(material)
    db.commit()
    db.refresh(material)
    return material_to_response(material)


def _get_own_material(db: Session, assignment_id: str, material_id: str, user_id: str) -> StudyMaterial:
    material = (
        db.query(StudyMaterial)
        .filter(
            StudyMaterial.id == material_id,
            StudyMaterial.assignment_id == assignment_id,
            StudyMaterial.user_id == user_id,
        )
        .first()
    )
    if not material:
        raise HTTPException(status_code=404, detail="Study material not found")
    return material


@router.get("/{assignment_id}/materials/{material_id}", response_model=StudyMaterialResponse)
def get_material(
    assignment_id: str,
    material_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return material_to_response(_get_own_material(db, assignment_id, material_id, current_user.id))


@router.delete("/{assignment_id}/materials/{material_id}")
def delete_material(
    assignment_id: str,
    material_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    material = _get_own_material(db, assignment_id, material_id, current_user.id)
    db.delete(material)
    db.commit()
    return {"success": True}
