"""User model: account plus the profile fields shown in the dashboard."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import relationship

from study_tracker.database import Base

DEFAULT_PROFILE_SETTINGS = {
    "notifications": True,
    "theme": "light",
    "defaultView": "list",
}


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    settings = Column(JSON, nullable=False, default=lambda: dict(DEFAULT_PROFILE_SETTINGS))
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    # Relationships
    courses = relationship("Course", back_populates="user", cascade="all, delete-orphan")
    assignments = relationship("Assignment", back_populates="user", cascade="all, delete-orphan")
    worklogs = relationship("Worklog", back_populates="user", cascade="all, delete-orphan")
    schedule_blocks = relationship("ScheduleBlock", back_populates="user", cascade="all, delete-orphan")
    planned_tasks = relationship("PlannedTask", back_populates="user", cascade="all, delete-orphan")
    memberships = relationship("SharedCourseMember", back_populates="user", cascade="all, delete-orphan")
