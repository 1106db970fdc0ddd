from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set
from ..core.storage import Storage
import logging

logger = logging.getLogger(__name__)


def round_half_up(numerator: int, denominator: int) -> int:
    """
    Round numerator / denominator to the nearest integer, halves going up.

    Works on integers so 77.5 always becomes 78, unlike round().
    Both arguments must be non-negative and denominator non-zero.
    """
    return (2 * numerator + denominator) // (2 * denominator)


def average_grade(grades: List[int]) -> Optional[int]:
    """Rounded mean of the grades, None for an empty list"""
    if not grades:
        return None
    return round_half_up(sum(grades), len(grades))


def completion_rate(enrolled_count: int, submitters_per_assignment: Iterable[Set[int]]) -> int:
    """
    Percentage of (student, assignment) pairs with a submission.

    Each assignment contributes its distinct submitters capped at the
    enrollment size, so duplicate or stale rows never push it over 100.
    """
    submitters_per_assignment = list(submitters_per_assignment)
    total_possible = enrolled_count * len(submitters_per_assignment)
    if total_possible <= 0:
        return 0

    achieved = sum(min(len(submitters), enrolled_count) for submitters in submitters_per_assignment)
    rate = round_half_up(100 * achieved, total_possible)
    return max(0, min(100, rate))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_student_stats(storage: Storage, student_id: int, now: Optional[datetime] = None):
    """
    Average grade over graded submissions (0 when none) and the number of
    unsubmitted assignments that are still open in the student's courses
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    logger.info(f"Calculating stats for student {student_id}")

    submissions = await storage.get_student_submissions(student_id)
    grades = [s.grade for s in submissions if s.grade is not None]
    avg = average_grade(grades)

    submitted_ids = {s.assignment_id for s in submissions}
    course_ids = {e.course_id for e in await storage.get_enrollments(student_id)}

    upcoming = 0
    for course_id in sorted(course_ids):
        for assignment in await storage.get_assignments(course_id):
            if assignment.id in submitted_ids:
                continue
            if assignment.due_date is None or _as_utc(assignment.due_date) >= now:
                upcoming += 1

    return {
        "average_grade": avg if avg is not None else 0,
        "upcoming_assignments": upcoming
    }


async def get_instructor_total_students(storage: Storage, instructor_id: int) -> int:
    """Distinct students enrolled in any course the instructor owns"""
    courses = await storage.get_courses_by_instructor(instructor_id)
    if not courses:
        return 0

    enrollments = await storage.get_enrollments_for_courses(c.id for c in courses)
    return len({e.student_id for e in enrollments})


async def get_course_analytics(storage: Storage, course_id: int):
    logger.info(f"Calculating analytics for course {course_id}")

    enrolled_students = [
        {
            "id": enrollment.student.id,
            "name": enrollment.student.name,
            "username": enrollment.student.username,
            "enrolled_at": enrollment.enrolled_at
        }
        for enrollment in await storage.get_course_enrollments(course_id)
    ]

    return {
        "enrolled_students": enrolled_students,
        "total_enrolled": len(enrolled_students)
    }


async def get_course_assignment_stats(storage: Storage, course_id: int):
    logger.info(f"Calculating assignment stats for course {course_id}")

    assignments = []
    for assignment in await storage.get_assignments(course_id):
        submissions = await storage.get_submissions(assignment.id)
        grades = [s.grade for s in submissions if s.grade is not None]

        assignments.append({
            "id": assignment.id,
            "title": assignment.title,
            "due_date": assignment.due_date,
            "total_submissions": len(submissions),
            "graded_submissions": len(grades),
            "average_grade": average_grade(grades)
        })

    return {"assignments": assignments}


async def get_instructor_dashboard(storage: Storage, instructor_id: int):
    logger.info(f"Building dashboard for instructor {instructor_id}")

    courses = await storage.get_courses_by_instructor(instructor_id)

    courses_data = []
    for course in courses:
        analytics = await get_course_analytics(storage, course.id)
        enrolled_count = analytics["total_enrolled"]
        assignments = await storage.get_assignments(course.id)

        submitters = []
        for assignment in assignments:
            submissions = await storage.get_submissions(assignment.id)
            submitters.append({s.student_id for s in submissions})

        courses_data.append({
            "id": course.id,
            "title": course.title,
            "enrolled_count": enrolled_count,
            "assignment_count": len(assignments),
            "completion_rate": completion_rate(enrolled_count, submitters)
        })

    total_students = await get_instructor_total_students(storage, instructor_id)

    logger.info(f"Dashboard for instructor {instructor_id}: {len(courses)} courses, {total_students} students")
    return {
        "courses": courses_data,
        "total_students": total_students,
        "total_courses": len(courses)
    }
