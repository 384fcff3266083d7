"""SQLAlchemy ORM models."""

from study_tracker.models.user import User
from study_tracker.models.course import Course
from study_tracker.models.assignment import Assignment, AssignmentImage
from study_tracker.models.study_material import StudyMaterial
from study_tracker.models.worklog import Worklog
from study_tracker.models.schedule import ScheduleBlock, PlannedTask, ScheduleSuggestion
from study_tracker.models.shared_course import (
    SharedCourse,
    SharedCourseMember,
    SharedAssignment,
    UserSharedAssignmentCopy,
    UserDismissedSharedAssignment,
)
from study_tracker.models.pomodoro import PomodoroTimer

__all__ = [
    "User",
    "Course",
    "Assignment",
    "AssignmentImage",
    "StudyMaterial",
    "Worklog",
    "ScheduleBlock",
    "PlannedTask",
    "ScheduleSuggestion",
    "SharedCourse",
    "SharedCourseMember",
    "SharedAssignment",
    "UserSharedAssignmentCopy",
    "UserDismissedSharedAssignment",
    "PomodoroTimer",
]
