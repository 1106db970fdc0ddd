from typing import Optional
from ..core.exceptions import DuplicateSubmissionError, NotFoundError, ValidationError
from ..core.storage import Storage
from ..models.submission import Submission
import logging

logger = logging.getLogger(__name__)

MIN_GRADE = 0
MAX_GRADE = 100


async def can_submit(storage: Storage, assignment_id: int, student_id: int) -> bool:
    """
    True while the student has no submission for the assignment.

    This is only the early rejection path; the unique constraint on
    (assignment_id, student_id) is what actually stops a duplicate row.
    """
    submissions = await storage.get_submissions(assignment_id)
    return not any(s.student_id == student_id for s in submissions)


async def create_submission(storage: Storage, assignment_id: int, student_id: int,
                            content: Optional[str] = None, file_url: Optional[str] = None) -> Submission:
    if not await storage.get_assignment(assignment_id):
        raise NotFoundError("Assignment not found")

    if not await can_submit(storage, assignment_id, student_id):
        logger.warning(f"Student {student_id} already submitted assignment {assignment_id}")
        raise DuplicateSubmissionError()

    submission = await storage.insert_submission(assignment_id, student_id, content=content, file_url=file_url)
    logger.info(f"Student {student_id} submitted assignment {assignment_id} (submission {submission.id})")
    return submission


def validate_grade(grade) -> int:
    if isinstance(grade, bool) or not isinstance(grade, int):
        raise ValidationError("Grade must be an integer", field="grade")
    if grade < MIN_GRADE or grade > MAX_GRADE:
        raise ValidationError(f"Grade must be between {MIN_GRADE} and {MAX_GRADE}", field="grade")
    return grade


async def grade_submission(storage: Storage, submission_id: int, grade: int,
                           feedback: Optional[str] = None) -> Submission:
    """Set grade and feedback, replacing whatever was there before"""
    grade = validate_grade(grade)

    submission = await storage.update_submission_grade(submission_id, grade, feedback)
    if not submission:
        raise NotFoundError("Submission not found")

    logger.info(f"Graded submission {submission_id}: {grade}")
    return submission
