import pytest
from sqlalchemy import func, select

from learnhub.core.exceptions import DuplicateSubmissionError, NotFoundError, ValidationError
from learnhub.core.policy import Role
from learnhub.models import Submission
from learnhub.utils.submissions import can_submit, create_submission, grade_submission


@pytest.fixture
async def assignment(storage, make_user):
    instructor = await make_user(Role.INSTRUCTOR)
    course = await storage.create_course("Physics", "Motion", instructor.id)
    return await storage.create_assignment(course.id, "Lab report", "Measure g")


async def _count_submissions(session) -> int:
    return (await session.execute(select(func.count(Submission.id)))).scalar()


class TestSubmissionGate:
    async def test_first_submission_allowed(self, storage, make_user, assignment):
        student = await make_user()

        assert await can_submit(storage, assignment.id, student.id)
        submission = await create_submission(storage, assignment.id, student.id, content="g = 9.8")

        assert submission.id is not None
        assert submission.grade is None
        assert submission.feedback is None
        assert not await can_submit(storage, assignment.id, student.id)

    async def test_second_submission_rejected_without_writing(self, storage, session, make_user, assignment):
        student = await make_user()
        await create_submission(storage, assignment.id, student.id, content="first")

        with pytest.raises(DuplicateSubmissionError):
            await create_submission(storage, assignment.id, student.id, content="second")

        assert await _count_submissions(session) == 1

    async def test_other_students_unaffected(self, storage, make_user, assignment):
        first, second = await make_user(), await make_user()
        await create_submission(storage, assignment.id, first.id)

        assert await can_submit(storage, assignment.id, second.id)
        await create_submission(storage, assignment.id, second.id)

    async def test_unique_constraint_backs_up_the_gate(self, storage, session, make_user, assignment):
        # Simulates two requests that both passed can_submit
        student = await make_user()
        await storage.insert_submission(assignment.id, student.id, content="one")

        with pytest.raises(DuplicateSubmissionError):
            await storage.insert_submission(assignment.id, student.id, content="two")

        assert await _count_submissions(session) == 1

    async def test_missing_assignment(self, storage, make_user):
        student = await make_user()

        with pytest.raises(NotFoundError):
            await create_submission(storage, 404, student.id)


class TestGrading:
    async def test_regrade_overwrites(self, storage, session, make_user, assignment):
        student = await make_user()
        submission = await create_submission(storage, assignment.id, student.id, content="answer")
        submitted_at = submission.submitted_at

        await grade_submission(storage, submission.id, 90, "good")
        graded = await grade_submission(storage, submission.id, 95, "better")

        assert graded.grade == 95
        assert graded.feedback == "better"
        assert graded.submitted_at == submitted_at
        assert await _count_submissions(session) == 1

    async def test_feedback_optional(self, storage, make_user, assignment):
        student = await make_user()
        submission = await create_submission(storage, assignment.id, student.id)

        graded = await grade_submission(storage, submission.id, 0)

        assert graded.grade == 0
        assert graded.feedback is None

    @pytest.mark.parametrize("grade", [-1, 101, 90.5, "90", True])
    async def test_invalid_grade(self, storage, make_user, assignment, grade):
        student = await make_user()
        submission = await create_submission(storage, assignment.id, student.id)

        with pytest.raises(ValidationError) as exc_info:
            await grade_submission(storage, submission.id, grade)

        assert exc_info.value.field == "grade"

    async def test_missing_submission(self, storage):
        with pytest.raises(NotFoundError):
            await grade_submission(storage, 12345, 50)
