from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import List, Optional
from ..core.auth import get_current_user, require_action, CurrentUser
from ..core.exceptions import LearnHubError, InternalError, NotFoundError, ValidationError, DuplicateSubmissionError
from ..core.policy import Action
from ..core.storage import Storage, get_storage
from ..utils.calculations import get_student_stats
from ..utils.submissions import can_submit, create_submission
from ..utils.uploads import ASSIGNMENTS, save_upload, remove_upload
from .schemas import (
    CamelModel, EnrollmentResponse, EnrollmentWithCourse, FileSubmissionResponse,
    StudentStats, SubmissionResponse, SubmissionWithAssignment
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


class SubmissionCreate(CamelModel):
    content: Optional[str] = None
    file_url: Optional[str] = None


# Enrollments
@router.post("/courses/{course_id}/enroll", response_model=EnrollmentResponse)
async def enroll(course_id: int, storage: Storage = Depends(get_storage),
                 user: CurrentUser = Depends(require_action(Action.ENROLL))):
    try:
        if not await storage.get_course(course_id):
            raise NotFoundError("Course not found")

        if await storage.get_enrollment(user.id, course_id):
            raise ValidationError("Already enrolled in this course")

        enrollment = await storage.enroll_user(user.id, course_id)
        logger.info(f"User {user.id} enrolled in course {course_id}")
        return enrollment
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error enrolling user {user.id} in course {course_id}: {e}")
        raise InternalError("Error enrolling in course")


@router.get("/enrollments", response_model=List[EnrollmentWithCourse])
async def get_enrollments(storage: Storage = Depends(get_storage),
                          user: CurrentUser = Depends(get_current_user)):
    try:
        return await storage.get_enrollments(user.id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error getting enrollments for user {user.id}: {e}")
        raise InternalError("Error retrieving enrollments")


# Submissions
@router.post("/assignments/{assignment_id}/submissions", response_model=SubmissionResponse,
             status_code=status.HTTP_201_CREATED)
async def submit_assignment(assignment_id: int, submission: SubmissionCreate,
                            storage: Storage = Depends(get_storage),
                            user: CurrentUser = Depends(require_action(Action.SUBMIT_ASSIGNMENT))):
    try:
        return await create_submission(
            storage, assignment_id, user.id,
            content=submission.content,
            file_url=submission.file_url
        )
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error submitting assignment {assignment_id}: {e}")
        raise InternalError("Error creating submission")


@router.post("/assignments/{assignment_id}/submit-file", response_model=FileSubmissionResponse)
async def submit_file(assignment_id: int, file: UploadFile = File(...), content: Optional[str] = Form(None),
                      storage: Storage = Depends(get_storage),
                      user: CurrentUser = Depends(require_action(Action.SUBMIT_ASSIGNMENT))):
    file_url = None
    try:
        if not await storage.get_assignment(assignment_id):
            raise NotFoundError("Assignment not found")

        # Reject before touching the disk
        if not await can_submit(storage, assignment_id, user.id):
            raise DuplicateSubmissionError()

        file_url = await save_upload(file, ASSIGNMENTS)
        submission = await create_submission(storage, assignment_id, user.id, content=content, file_url=file_url)
        return FileSubmissionResponse(file_url=file_url, submission_id=submission.id)
    except LearnHubError:
        if file_url:
            remove_upload(file_url)
        raise
    except Exception as e:
        logger.error(f"Error submitting file for assignment {assignment_id}: {e}")
        if file_url:
            remove_upload(file_url)
        raise InternalError("Error uploading submission")


@router.get("/student/submissions", response_model=List[SubmissionWithAssignment])
async def get_my_submissions(storage: Storage = Depends(get_storage),
                             user: CurrentUser = Depends(get_current_user)):
    try:
        return await storage.get_student_submissions(user.id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error getting submissions for student {user.id}: {e}")
        raise InternalError("Error retrieving submissions")


@router.get("/student/stats", response_model=StudentStats)
async def get_my_stats(storage: Storage = Depends(get_storage),
                       user: CurrentUser = Depends(get_current_user)):
    try:
        return await get_student_stats(storage, user.id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error calculating stats for student {user.id}: {e}")
        raise InternalError("Error retrieving student stats")
