from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from learnhub.core.database import AsyncSessionLocal
from learnhub.core.exceptions import InternalError
from learnhub.core.policy import Role
from learnhub.core.storage import Storage
from learnhub.models import Assignment, Enrollment, Lesson, Submission


@pytest.fixture
async def course_with_content(storage, make_user):
    instructor = await make_user(Role.INSTRUCTOR)
    student = await make_user(Role.STUDENT)
    course = await storage.create_course("Algebra", "Linear equations", instructor.id)
    lesson = await storage.create_lesson(course.id, "Intro", content="x + 1 = 2")
    assignment = await storage.create_assignment(course.id, "Homework 1", "Solve it")
    await storage.enroll_user(student.id, course.id)
    await storage.insert_submission(assignment.id, student.id, content="x = 1")
    return {
        "instructor": instructor,
        "student": student,
        "course": course,
        "lesson": lesson,
        "assignment": assignment,
    }


async def test_lookups_return_none_for_missing_rows(storage):
    assert await storage.get_user(999) is None
    assert await storage.get_user_by_username("nobody") is None
    assert await storage.get_course(999) is None
    assert await storage.get_lesson(999) is None
    assert await storage.get_assignment(999) is None
    assert await storage.get_submission(999) is None
    assert await storage.get_lessons(999) == []
    assert await storage.get_enrollments(999) == []
    assert await storage.get_enrollments_for_courses([]) == []


async def test_get_courses_embeds_instructor(storage, make_user):
    instructor = await make_user(Role.INSTRUCTOR, name="Prof. Smith")
    await storage.create_course("Biology", "Cells", instructor.id)

    courses = await storage.get_courses()

    assert len(courses) == 1
    assert courses[0].instructor.name == "Prof. Smith"


async def test_lessons_ordered_by_order_then_id(storage, make_user):
    instructor = await make_user(Role.INSTRUCTOR)
    course = await storage.create_course("History", "Dates", instructor.id)
    third = await storage.create_lesson(course.id, "Third", order=2)
    first = await storage.create_lesson(course.id, "First", order=1)
    second = await storage.create_lesson(course.id, "Second", order=1)

    lessons = await storage.get_lessons(course.id)

    assert [lesson.id for lesson in lessons] == [first.id, second.id, third.id]


async def test_update_lesson_attaches_file_url(storage, make_user):
    instructor = await make_user(Role.INSTRUCTOR)
    course = await storage.create_course("Art", "Colours", instructor.id)
    lesson = await storage.create_lesson(course.id, "Red")

    updated = await storage.update_lesson(lesson.id, pdf_url="/uploads/lessons/red.pdf")

    assert updated.pdf_url == "/uploads/lessons/red.pdf"
    assert await storage.update_lesson(999, pdf_url="x") is None


async def test_update_lesson_rejects_unknown_fields(storage):
    with pytest.raises(ValueError):
        await storage.update_lesson(1, course_id=2)


async def test_enrollment_count_and_student_embedding(course_with_content, storage):
    course = course_with_content["course"]

    assert await storage.get_enrollment_count(course.id) == 1
    enrollments = await storage.get_course_enrollments(course.id)
    assert enrollments[0].student.id == course_with_content["student"].id


async def test_delete_lesson(course_with_content, storage):
    lesson = course_with_content["lesson"]

    await storage.delete_lesson(lesson.id)

    async with AsyncSessionLocal() as fresh:
        assert await Storage(fresh).get_lesson(lesson.id) is None


async def test_delete_course_cascades(course_with_content, storage, make_user):
    course = course_with_content["course"]
    assignment = course_with_content["assignment"]

    # Unrelated course must survive
    other = await storage.create_course("Other", "Untouched", course_with_content["instructor"].id)
    await storage.create_lesson(other.id, "Keep me")

    await storage.delete_course(course.id)

    async with AsyncSessionLocal() as fresh:
        fresh_storage = Storage(fresh)
        assert await fresh_storage.get_course(course.id) is None
        assert await fresh_storage.get_lessons(course.id) == []
        assert await fresh_storage.get_assignments(course.id) == []
        assert await fresh_storage.get_course_enrollments(course.id) == []
        assert await fresh_storage.get_submissions(assignment.id) == []

        for model, column in [
            (Lesson, Lesson.course_id),
            (Assignment, Assignment.course_id),
            (Enrollment, Enrollment.course_id),
        ]:
            rows = (await fresh.execute(select(model).filter(column == course.id))).scalars().all()
            assert rows == []
        rows = (await fresh.execute(
            select(Submission).filter(Submission.assignment_id == assignment.id)
        )).scalars().all()
        assert rows == []

        assert await fresh_storage.get_course(other.id) is not None
        assert len(await fresh_storage.get_lessons(other.id)) == 1


async def test_delete_course_is_safe_to_repeat(course_with_content, storage):
    course = course_with_content["course"]

    await storage.delete_course(course.id)
    await storage.delete_course(course.id)

    async with AsyncSessionLocal() as fresh:
        assert await Storage(fresh).get_course(course.id) is None


async def test_failed_delete_course_rolls_back(course_with_content, storage, monkeypatch):
    course_id = course_with_content["course"].id
    lesson_id = course_with_content["lesson"].id
    assignment_id = course_with_content["assignment"].id
    execute = storage.session.execute

    async def failing_execute(statement, *args, **kwargs):
        if str(statement).startswith("DELETE FROM courses"):
            raise SQLAlchemyError("database is locked")
        return await execute(statement, *args, **kwargs)

    monkeypatch.setattr(storage.session, "execute", failing_execute)

    with pytest.raises(InternalError):
        await storage.delete_course(course_id)

    async with AsyncSessionLocal() as fresh:
        fresh_storage = Storage(fresh)
        assert await fresh_storage.get_course(course_id) is not None
        assert await fresh_storage.get_lesson(lesson_id) is not None
        assert await fresh_storage.get_assignment(assignment_id) is not None
        assert len(await fresh_storage.get_submissions(assignment_id)) == 1
        assert await fresh_storage.get_enrollment_count(course_id) == 1


async def test_create_assignment_stores_due_date_in_utc(storage, make_user):
    instructor = await make_user(Role.INSTRUCTOR)
    course = await storage.create_course("Geography", "Time zones", instructor.id)
    tashkent = timezone(timedelta(hours=5))
    due = datetime(2030, 1, 1, 17, 30, tzinfo=tashkent)

    assignment = await storage.create_assignment(course.id, "Map", "Draw it", due_date=due)

    async with AsyncSessionLocal() as fresh:
        stored = (await Storage(fresh).get_assignment(assignment.id)).due_date
    assert stored.replace(tzinfo=None) == datetime(2030, 1, 1, 12, 30)
