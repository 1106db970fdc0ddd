from .user import User
from .course import Course
from .enrollment import Enrollment
from .lesson import Lesson
from .assignment import Assignment
from .submission import Submission

__all__ = [
    "User",
    "Course",
    "Enrollment",
    "Lesson",
    "Assignment",
    "Submission"
]
