"""Shared courses: invite-code groups collaborating on a list of assignments."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from study_tracker.database import Base


class SharedCourse(Base):
    __tablename__ = "shared_courses"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=False, default="#3b82f6")
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    invite_code = Column(String(20), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    members = relationship("SharedCourseMember", back_populates="shared_course", cascade="all, delete-orphan")
    assignments = relationship("SharedAssignment", back_populates="shared_course", cascade="all, delete-orphan")


class SharedCourseMember(Base):
    __tablename__ = "shared_course_members"
    __table_args__ = (UniqueConstraint("shared_course_id", "user_id", name="uq_shared_course_member"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shared_course_id = Column(String(36), ForeignKey("shared_courses.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    role = Column(String(10), nullable=False, default="member")  # owner | member
    joined_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    shared_course = relationship("SharedCourse", back_populates="members")
    user = relationship("User", back_populates="memberships")


class SharedAssignment(Base):
    __tablename__ = "shared_assignments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shared_course_id = Column(String(36), ForeignKey("shared_courses.id"), nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True)
    priority = Column(String(10), nullable=False, default="medium")
    estimated_duration = Column(Integer, nullable=False, default=60)
    raw_input_text = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    shared_course = relationship("SharedCourse", back_populates="assignments")
    creator = relationship("User")
    copies = relationship("UserSharedAssignmentCopy", back_populates="shared_assignment", cascade="all, delete-orphan")
    dismissals = relationship(
        "UserDismissedSharedAssignment", back_populates="shared_assignment", cascade="all, delete-orphan"
    )


class UserSharedAssignmentCopy(Base):
    __tablename__ = "user_shared_assignment_copies"
    __table_args__ = (UniqueConstraint("shared_assignment_id", "user_id", name="uq_shared_assignment_copy"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shared_assignment_id = Column(String(36), ForeignKey("shared_assignments.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    local_assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=True)
    copied_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    shared_assignment = relationship("SharedAssignment", back_populates="copies")
    local_assignment = relationship("Assignment", back_populates="shared_copies")


class UserDismissedSharedAssignment(Base):
    __tablename__ = "user_dismissed_shared_assignments"
    __table_args__ = (UniqueConstraint("shared_assignment_id", "user_id", name="uq_dismissed_shared_assignment"),)

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shared_assignment_id = Column(String(36), ForeignKey("shared_assignments.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    dismissed_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    shared_assignment = relationship("SharedAssignment", back_populates="dismissals")
