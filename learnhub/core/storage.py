from typing import Iterable, List, Optional
from datetime import datetime, timezone
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import Depends
from .database import get_db
from .exceptions import DuplicateSubmissionError, InternalError
from ..models import User, Course, Enrollment, Lesson, Assignment, Submission
import logging

logger = logging.getLogger(__name__)

LESSON_UPDATABLE_FIELDS = {"content", "video_url", "pdf_url"}


class Storage:
    """
    Persistence gateway over the six LMS tables.

    Bound to a single session; build one per request. Lookups return None or
    an empty list for missing rows and never raise for absence.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, obj, what: str):
        try:
            self.session.add(obj)
            await self.session.commit()
            await self.session.refresh(obj)
            return obj
        except SQLAlchemyError as e:
            logger.error(f"Error saving {what}: {e}")
            await self.session.rollback()
            raise InternalError(f"Error saving {what}")

    # Users
    async def get_user(self, user_id: int) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.session.execute(select(User).filter(User.username == username))
        return result.scalar_one_or_none()

    async def create_user(self, username: str, password_hash: str, role: str, name: str) -> User:
        return await self._save(User(username=username, password=password_hash, role=role, name=name), "user")

    # Courses
    async def get_courses(self) -> List[Course]:
        result = await self.session.execute(
            select(Course).options(selectinload(Course.instructor)).order_by(Course.id)
        )
        return list(result.scalars().all())

    async def get_course(self, course_id: int) -> Optional[Course]:
        return await self.session.get(Course, course_id)

    async def get_courses_by_instructor(self, instructor_id: int) -> List[Course]:
        result = await self.session.execute(
            select(Course).filter(Course.instructor_id == instructor_id).order_by(Course.id)
        )
        return list(result.scalars().all())

    async def create_course(self, title: str, description: str, instructor_id: int) -> Course:
        return await self._save(
            Course(title=title, description=description, instructor_id=instructor_id), "course"
        )

    async def delete_course(self, course_id: int) -> None:
        """
        Delete a course with its submissions, assignments, lessons and
        enrollments. Everything is committed together or not at all.
        """
        try:
            assignment_ids = (await self.session.execute(
                select(Assignment.id).filter(Assignment.course_id == course_id)
            )).scalars().all()

            for assignment_id in assignment_ids:
                await self.session.execute(delete(Submission).where(Submission.assignment_id == assignment_id))

            await self.session.execute(delete(Assignment).where(Assignment.course_id == course_id))
            await self.session.execute(delete(Lesson).where(Lesson.course_id == course_id))
            await self.session.execute(delete(Enrollment).where(Enrollment.course_id == course_id))
            await self.session.execute(delete(Course).where(Course.id == course_id))
            await self.session.commit()
            logger.info(f"Deleted course {course_id} with {len(assignment_ids)} assignments")
        except SQLAlchemyError as e:
            logger.error(f"Error deleting course {course_id}, rolled back: {e}")
            await self.session.rollback()
            raise InternalError("Error deleting course")

    # Enrollments
    async def enroll_user(self, student_id: int, course_id: int) -> Enrollment:
        return await self._save(Enrollment(student_id=student_id, course_id=course_id), "enrollment")

    async def get_enrollment(self, student_id: int, course_id: int) -> Optional[Enrollment]:
        result = await self.session.execute(
            select(Enrollment)
            .filter(Enrollment.student_id == student_id, Enrollment.course_id == course_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_enrollments(self, student_id: int) -> List[Enrollment]:
        result = await self.session.execute(
            select(Enrollment)
            .join(Course, Enrollment.course_id == Course.id)
            .options(selectinload(Enrollment.course))
            .filter(Enrollment.student_id == student_id)
            .order_by(Enrollment.id)
        )
        return list(result.scalars().all())

    async def get_course_enrollments(self, course_id: int) -> List[Enrollment]:
        result = await self.session.execute(
            select(Enrollment)
            .join(User, Enrollment.student_id == User.id)
            .options(selectinload(Enrollment.student))
            .filter(Enrollment.course_id == course_id)
            .order_by(Enrollment.id)
        )
        return list(result.scalars().all())

    async def get_enrollments_for_courses(self, course_ids: Iterable[int]) -> List[Enrollment]:
        course_ids = list(course_ids)
        if not course_ids:
            return []
        result = await self.session.execute(select(Enrollment).filter(Enrollment.course_id.in_(course_ids)))
        return list(result.scalars().all())

    async def get_enrollment_count(self, course_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Enrollment.id)).filter(Enrollment.course_id == course_id)
        )
        return result.scalar() or 0

    # Lessons
    async def create_lesson(self, course_id: int, title: str, content: Optional[str] = None,
                            video_url: Optional[str] = None, pdf_url: Optional[str] = None,
                            order: int = 0) -> Lesson:
        lesson = Lesson(course_id=course_id, title=title, content=content,
                        video_url=video_url, pdf_url=pdf_url, order=order)
        return await self._save(lesson, "lesson")

    async def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        return await self.session.get(Lesson, lesson_id)

    async def get_lessons(self, course_id: int) -> List[Lesson]:
        result = await self.session.execute(
            select(Lesson).filter(Lesson.course_id == course_id).order_by(Lesson.order, Lesson.id)
        )
        return list(result.scalars().all())

    async def update_lesson(self, lesson_id: int, **fields) -> Optional[Lesson]:
        unknown = set(fields) - LESSON_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update lesson fields: {', '.join(sorted(unknown))}")

        lesson = await self.get_lesson(lesson_id)
        if not lesson:
            return None
        for name, value in fields.items():
            setattr(lesson, name, value)
        return await self._save(lesson, "lesson")

    async def delete_lesson(self, lesson_id: int) -> None:
        try:
            await self.session.execute(delete(Lesson).where(Lesson.id == lesson_id))
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting lesson {lesson_id}: {e}")
            await self.session.rollback()
            raise InternalError("Error deleting lesson")

    # Assignments
    async def create_assignment(self, course_id: int, title: str, description: str,
                                due_date: Optional[datetime] = None) -> Assignment:
        if due_date is not None and due_date.tzinfo is not None:
            # SQLite keeps only the wall-clock part, so store UTC
            due_date = due_date.astimezone(timezone.utc)
        assignment = Assignment(course_id=course_id, title=title, description=description, due_date=due_date)
        return await self._save(assignment, "assignment")

    async def get_assignment(self, assignment_id: int) -> Optional[Assignment]:
        return await self.session.get(Assignment, assignment_id)

    async def get_assignments(self, course_id: int) -> List[Assignment]:
        result = await self.session.execute(
            select(Assignment).filter(Assignment.course_id == course_id).order_by(Assignment.id)
        )
        return list(result.scalars().all())

    # Submissions
    async def insert_submission(self, assignment_id: int, student_id: int, content: Optional[str] = None,
                                file_url: Optional[str] = None) -> Submission:
        submission = Submission(assignment_id=assignment_id, student_id=student_id,
                                content=content, file_url=file_url)
        try:
            self.session.add(submission)
            await self.session.commit()
        except IntegrityError as e:
            # uq_submission_assignment_student caught a concurrent duplicate
            logger.warning(f"Duplicate submission for assignment {assignment_id} by student {student_id}: {e}")
            await self.session.rollback()
            raise DuplicateSubmissionError()
        except SQLAlchemyError as e:
            logger.error(f"Error saving submission: {e}")
            await self.session.rollback()
            raise InternalError("Error saving submission")
        await self.session.refresh(submission)
        return submission

    async def get_submission(self, submission_id: int) -> Optional[Submission]:
        return await self.session.get(Submission, submission_id)

    async def get_submissions(self, assignment_id: int) -> List[Submission]:
        result = await self.session.execute(
            select(Submission)
            .options(selectinload(Submission.student))
            .filter(Submission.assignment_id == assignment_id)
            .order_by(Submission.id)
        )
        return list(result.scalars().all())

    async def get_student_submissions(self, student_id: int) -> List[Submission]:
        result = await self.session.execute(
            select(Submission)
            .options(selectinload(Submission.assignment))
            .filter(Submission.student_id == student_id)
            .order_by(Submission.id)
        )
        return list(result.scalars().all())

    async def update_submission_grade(self, submission_id: int, grade: int,
                                      feedback: Optional[str] = None) -> Optional[Submission]:
        submission = await self.get_submission(submission_id)
        if not submission:
            return None
        submission.grade = grade
        submission.feedback = feedback
        return await self._save(submission, "submission grade")


async def get_storage(db: AsyncSession = Depends(get_db)) -> Storage:
    """Dependency giving each request its own gateway over its own session"""
    return Storage(db)
