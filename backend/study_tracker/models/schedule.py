"""Weekly availability blocks, planned tasks and AI schedule suggestions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, String, Date, DateTime, ForeignKey, Integer, Text, Time
from sqlalchemy.orm import relationship

from study_tracker.database import Base


class ScheduleBlock(Base):
    __tablename__ = "user_schedule"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False, index=True)  # 0=Sunday .. 6=Saturday
    available_start = Column(Time, nullable=False)
    available_end = Column(Time, nullable=False)
    label = Column(String(255), nullable=True)
    block_type = Column(String(10), nullable=False, default="study")  # class | study | free | work | other
    location = Column(String(255), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="schedule_blocks")


class PlannedTask(Base):
    __tablename__ = "planned_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=True)
    scheduled_date = Column(Date, nullable=False, index=True)
    scheduled_start = Column(Time, nullable=False)
    scheduled_end = Column(Time, nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    title = Column(String(500), nullable=True)
    task_type = Column(String(20), nullable=False, default="assignment")  # assignment | study | review | break
    ai_generated = Column(Boolean, nullable=False, default=False)
    priority = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="planned_tasks")
    assignment = relationship("Assignment", back_populates="planned_tasks")


class ScheduleSuggestion(Base):
    __tablename__ = "schedule_suggestions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=True)
    suggested_date = Column(Date, nullable=False)
    suggested_start = Column(Time, nullable=False)
    suggested_end = Column(Time, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(10), nullable=False, default="pending", index=True)  # pending | accepted | dismissed
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    assignment = relationship("Assignment", back_populates="suggestions")
