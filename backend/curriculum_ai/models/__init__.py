"""SQLAlchemy ORM models."""

from curriculum_ai.models.user import User
from curriculum_ai.models.lesson import Lesson
from curriculum_ai.models.generated_content import GeneratedContent
from curriculum_ai.models.classroom import Classroom, ClassroomStudent, ClassroomLesson
from curriculum_ai.models.assignment import Assignment, AssignmentSubmission
from curriculum_ai.models.message import Message

__all__ = [
    "User",
    "Lesson",
    "GeneratedContent",
    "Classroom",
    "ClassroomStudent",
    "ClassroomLesson",
    "Assignment",
    "AssignmentSubmission",
    "Message",
]
