"""Worklog model: a record of completed schoolwork."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Column, String, Date, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from study_tracker.database import Base


class Worklog(Base):
    __tablename__ = "worklogs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    assignment_id = Column(String(36), ForeignKey("assignments.id"), nullable=True)
    course_id = Column(String(36), ForeignKey("courses.id"), nullable=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    topic = Column(String(255), nullable=True)
    # classwork | homework | notes | quiz | test | project | other
    worklog_type = Column(String(20), nullable=False, default="classwork")
    date_completed = Column(Date, nullable=False, default=date.today, index=True)
    image_url = Column(String(2048), nullable=True)
    storage_path = Column(String(1024), nullable=True)
    raw_extracted_text = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    user = relationship("User", back_populates="worklogs")
    course = relationship("Course", back_populates="worklogs")
    assignment = relationship("Assignment", back_populates="worklogs")
