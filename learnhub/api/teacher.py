from datetime import datetime
from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import Field
from typing import List, Optional
from ..core.auth import get_current_user, require_action, CurrentUser
from ..core.exceptions import LearnHubError, InternalError, NotFoundError, UnauthorizedError, ValidationError
from ..core.policy import Action, Role
from ..core.storage import Storage, get_storage
from ..utils.calculations import (
    get_course_analytics, get_course_assignment_stats,
    get_instructor_dashboard, get_instructor_total_students
)
from ..utils.submissions import grade_submission
from ..utils.uploads import LESSONS, save_upload, remove_upload, is_video
from .schemas import (
    AssignmentResponse, CamelModel, CourseAnalytics, CourseAssignmentStats, CourseResponse,
    InstructorDashboard, InstructorStats, LessonResponse, LessonUploadResponse,
    SubmissionResponse, SubmissionWithStudent, SuccessResponse
)
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


# Request Models
class CourseCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str
    # Only honoured for admins, who create courses on an instructor's behalf
    instructor_id: Optional[int] = None


class LessonCreate(CamelModel):
    title: str = Field(min_length=1)
    content: Optional[str] = None
    video_url: Optional[str] = None
    pdf_url: Optional[str] = None
    order: int = 0


class AssignmentCreate(CamelModel):
    title: str = Field(min_length=1)
    description: str
    due_date: Optional[datetime] = None


class GradeUpdate(CamelModel):
    grade: int = Field(ge=0, le=100, strict=True)
    feedback: Optional[str] = None


async def _get_owned_course(storage: Storage, course_id: int, user: CurrentUser):
    course = await storage.get_course(course_id)
    if not course:
        raise NotFoundError("Course not found")
    if course.instructor_id != user.id:
        logger.error(f"User {user.id} does not own course {course_id}")
        raise UnauthorizedError()
    return course


async def _resolve_instructor_id(storage: Storage, course: CourseCreate, user: CurrentUser) -> int:
    instructor_id = user.id if user.role == Role.INSTRUCTOR else course.instructor_id
    if instructor_id is None:
        raise ValidationError("instructorId is required", field="instructorId")

    instructor = await storage.get_user(instructor_id)
    if not instructor or instructor.role != Role.INSTRUCTOR.value:
        raise ValidationError("Course owner must be an instructor", field="instructorId")
    return instructor_id


# Courses
@router.post("/courses", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(course: CourseCreate, storage: Storage = Depends(get_storage),
                        user: CurrentUser = Depends(require_action(Action.CREATE_COURSE))):
    try:
        instructor_id = await _resolve_instructor_id(storage, course, user)
        db_course = await storage.create_course(course.title, course.description, instructor_id)
        logger.info(f"Course {db_course.id} created for instructor {instructor_id}")
        return db_course
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error creating course: {e}")
        raise InternalError("Error creating course")


@router.delete("/courses/{course_id}", response_model=SuccessResponse)
async def delete_course(course_id: int, storage: Storage = Depends(get_storage),
                        user: CurrentUser = Depends(require_action(Action.DELETE_COURSE))):
    try:
        await _get_owned_course(storage, course_id, user)
        await storage.delete_course(course_id)
        return {"success": True}
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error deleting course {course_id}: {e}")
        raise InternalError("Error deleting course")


# Lessons
@router.post("/courses/{course_id}/lessons", response_model=LessonResponse, status_code=status.HTTP_201_CREATED)
async def create_lesson(course_id: int, lesson: LessonCreate, storage: Storage = Depends(get_storage),
                        user: CurrentUser = Depends(require_action(Action.MANAGE_LESSONS))):
    try:
        if not await storage.get_course(course_id):
            raise NotFoundError("Course not found")

        return await storage.create_lesson(
            course_id=course_id,
            title=lesson.title,
            content=lesson.content,
            video_url=lesson.video_url,
            pdf_url=lesson.pdf_url,
            order=lesson.order
        )
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error creating lesson in course {course_id}: {e}")
        raise InternalError("Error creating lesson")


@router.delete("/lessons/{lesson_id}", response_model=SuccessResponse)
async def delete_lesson(lesson_id: int, storage: Storage = Depends(get_storage),
                        user: CurrentUser = Depends(require_action(Action.MANAGE_LESSONS))):
    try:
        if not await storage.get_lesson(lesson_id):
            raise NotFoundError("Lesson not found")

        await storage.delete_lesson(lesson_id)
        return {"success": True}
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error deleting lesson {lesson_id}: {e}")
        raise InternalError("Failed to delete lesson")


@router.post("/lessons/{lesson_id}/upload", response_model=LessonUploadResponse)
async def upload_lesson_file(lesson_id: int, file: UploadFile = File(...), storage: Storage = Depends(get_storage),
                             user: CurrentUser = Depends(require_action(Action.UPLOAD_LESSON_FILE))):
    file_url = None
    try:
        if not await storage.get_lesson(lesson_id):
            raise NotFoundError("Lesson not found")

        file_url = await save_upload(file, LESSONS)
        if is_video(file.content_type):
            file_type = "video"
            await storage.update_lesson(lesson_id, video_url=file_url)
        else:
            file_type = "pdf"
            await storage.update_lesson(lesson_id, pdf_url=file_url)

        logger.info(f"Attached {file_type} {file_url} to lesson {lesson_id}")
        return LessonUploadResponse(file_url=file_url, file_type=file_type)
    except LearnHubError:
        if file_url:
            remove_upload(file_url)
        raise
    except Exception as e:
        logger.error(f"Error uploading file for lesson {lesson_id}: {e}")
        if file_url:
            remove_upload(file_url)
        raise InternalError("Failed to upload file")


# Assignments
@router.post("/courses/{course_id}/assignments", response_model=AssignmentResponse,
             status_code=status.HTTP_201_CREATED)
async def create_assignment(course_id: int, assignment: AssignmentCreate, storage: Storage = Depends(get_storage),
                            user: CurrentUser = Depends(require_action(Action.MANAGE_ASSIGNMENTS))):
    try:
        if not await storage.get_course(course_id):
            raise NotFoundError("Course not found")

        return await storage.create_assignment(
            course_id=course_id,
            title=assignment.title,
            description=assignment.description,
            due_date=assignment.due_date
        )
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error creating assignment in course {course_id}: {e}")
        raise InternalError("Error creating assignment")


# Submissions
@router.get("/assignments/{assignment_id}/submissions", response_model=List[SubmissionWithStudent])
async def list_submissions(assignment_id: int, storage: Storage = Depends(get_storage),
                           user: CurrentUser = Depends(require_action(Action.VIEW_SUBMISSIONS))):
    try:
        return await storage.get_submissions(assignment_id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error listing submissions for assignment {assignment_id}: {e}")
        raise InternalError("Error retrieving submissions")


@router.patch("/submissions/{submission_id}/grade", response_model=SubmissionResponse)
async def grade(submission_id: int, update: GradeUpdate, storage: Storage = Depends(get_storage),
                user: CurrentUser = Depends(require_action(Action.GRADE_SUBMISSION))):
    try:
        return await grade_submission(storage, submission_id, update.grade, update.feedback)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error grading submission {submission_id}: {e}")
        raise InternalError("Error grading submission")


# Stats & analytics
@router.get("/instructor/stats", response_model=InstructorStats)
async def get_instructor_stats(storage: Storage = Depends(get_storage),
                               user: CurrentUser = Depends(get_current_user)):
    try:
        return {"total_students": await get_instructor_total_students(storage, user.id)}
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error calculating instructor stats for {user.id}: {e}")
        raise InternalError("Error retrieving instructor stats")


@router.get("/courses/{course_id}/analytics", response_model=CourseAnalytics)
async def course_analytics(course_id: int, storage: Storage = Depends(get_storage),
                           user: CurrentUser = Depends(require_action(Action.VIEW_ANALYTICS))):
    try:
        await _get_owned_course(storage, course_id, user)
        return await get_course_analytics(storage, course_id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error calculating analytics for course {course_id}: {e}")
        raise InternalError("Error retrieving course analytics")


@router.get("/courses/{course_id}/assignment-stats", response_model=CourseAssignmentStats)
async def course_assignment_stats(course_id: int, storage: Storage = Depends(get_storage),
                                  user: CurrentUser = Depends(require_action(Action.VIEW_ANALYTICS))):
    try:
        await _get_owned_course(storage, course_id, user)
        return await get_course_assignment_stats(storage, course_id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error calculating assignment stats for course {course_id}: {e}")
        raise InternalError("Error retrieving assignment stats")


@router.get("/instructor/dashboard", response_model=InstructorDashboard)
async def instructor_dashboard(storage: Storage = Depends(get_storage),
                               user: CurrentUser = Depends(require_action(Action.VIEW_ANALYTICS))):
    try:
        return await get_instructor_dashboard(storage, user.id)
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error building dashboard for instructor {user.id}: {e}")
        raise InternalError("Error retrieving dashboard")
