"""Assignment and AssignmentImage models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from study_tracker.database import Base


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)
    priority = Column(String(10), nullable=False, default="medium")  # low | medium | high
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending | in_progress | completed
    estimated_duration = Column(Integer, nullable=False, default=60)  # minutes
    raw_input_text = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="assignments")
    course = relationship("Course", back_populates="assignments")
    images = relationship("AssignmentImage", back_populates="assignment", cascade="all, delete-orphan")
    study_materials = relationship(
        "StudyMaterial",
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="StudyMaterial.created_at.desc()",
    )
    planned_tasks = relationship("PlannedTask", back_populates="assignment", cascade="all, delete-orphan")
    suggestions = relationship("ScheduleSuggestion", back_populates="assignment", cascade="all, delete-orphan")
    worklogs = relationship("Worklog", back_populates="assignment")
    shared_copies = relationship("UserSharedAssignmentCopy", back_populates="local_assignment")


class AssignmentImage(Base):
    __tablename__ = "assignment_images"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    storage_path = Column(String(1024), nullable=False)
    extracted_text = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    assignment = relationship("Assignment", back_populates="images")
