from fastapi import APIRouter, Depends
from typing import List
from ..core.exceptions import LearnHubError, InternalError, NotFoundError
from ..core.storage import Storage, get_storage
from .schemas import AssignmentResponse, CourseDetail, CourseResponse, CourseWithInstructor, LessonResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/courses", response_model=List[CourseWithInstructor])
async def list_courses(storage: Storage = Depends(get_storage)):
    """List all courses with their instructor"""
    try:
        return await storage.get_courses()
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error listing courses: {e}")
        raise InternalError("Error retrieving courses")


@router.get("/courses/{course_id}", response_model=CourseDetail)
async def get_course(course_id: int, storage: Storage = Depends(get_storage)):
    """Get a course with its ordered lessons and its assignments"""
    try:
        course = await storage.get_course(course_id)
        if not course:
            logger.warning(f"Course {course_id} not found")
            raise NotFoundError("Course not found")

        lessons = await storage.get_lessons(course_id)
        assignments = await storage.get_assignments(course_id)

        return CourseDetail(
            **CourseResponse.model_validate(course).model_dump(),
            lessons=[LessonResponse.model_validate(lesson) for lesson in lessons],
            assignments=[AssignmentResponse.model_validate(a) for a in assignments]
        )
    except LearnHubError:
        raise
    except Exception as e:
        logger.error(f"Error fetching course {course_id}: {e}")
        raise InternalError("Error retrieving course")
