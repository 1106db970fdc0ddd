import pytest

from learnhub.core.policy import Action, Role, can_perform


@pytest.mark.parametrize("action", [
    Action.CREATE_COURSE,
    Action.MANAGE_LESSONS,
    Action.MANAGE_ASSIGNMENTS,
    Action.VIEW_SUBMISSIONS,
    Action.GRADE_SUBMISSION,
])
def test_staff_only_actions(action):
    assert can_perform(Role.ADMIN, action)
    assert can_perform(Role.INSTRUCTOR, action)
    assert not can_perform(Role.STUDENT, action)


@pytest.mark.parametrize("action", [Action.DELETE_COURSE, Action.VIEW_ANALYTICS, Action.UPLOAD_LESSON_FILE])
def test_instructor_only_actions(action):
    assert can_perform(Role.INSTRUCTOR, action)
    assert not can_perform(Role.ADMIN, action)
    assert not can_perform(Role.STUDENT, action)


@pytest.mark.parametrize("role", list(Role))
def test_everyone_can_enroll_and_submit(role):
    assert can_perform(role, Action.ENROLL)
    assert can_perform(role, Action.SUBMIT_ASSIGNMENT)


def test_accepts_role_strings():
    assert can_perform("instructor", Action.GRADE_SUBMISSION)
    assert not can_perform("student", Action.GRADE_SUBMISSION)


def test_unknown_role_is_denied():
    assert not can_perform("teacher", Action.ENROLL)
    assert not can_perform(None, Action.ENROLL)
