import enum


class Role(str, enum.Enum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


class Action(str, enum.Enum):
    CREATE_COURSE = "create_course"
    DELETE_COURSE = "delete_course"
    MANAGE_LESSONS = "manage_lessons"
    UPLOAD_LESSON_FILE = "upload_lesson_file"
    MANAGE_ASSIGNMENTS = "manage_assignments"
    VIEW_SUBMISSIONS = "view_submissions"
    GRADE_SUBMISSION = "grade_submission"
    VIEW_ANALYTICS = "view_analytics"
    SUBMIT_ASSIGNMENT = "submit_assignment"
    ENROLL = "enroll"


_STAFF = frozenset({Role.ADMIN, Role.INSTRUCTOR})
_EVERYONE = frozenset(Role)

PERMISSIONS = {
    Action.CREATE_COURSE: _STAFF,
    Action.DELETE_COURSE: frozenset({Role.INSTRUCTOR}),
    Action.MANAGE_LESSONS: _STAFF,
    Action.UPLOAD_LESSON_FILE: frozenset({Role.INSTRUCTOR}),
    Action.MANAGE_ASSIGNMENTS: _STAFF,
    Action.VIEW_SUBMISSIONS: _STAFF,
    Action.GRADE_SUBMISSION: _STAFF,
    Action.VIEW_ANALYTICS: frozenset({Role.INSTRUCTOR}),
    Action.SUBMIT_ASSIGNMENT: _EVERYONE,
    Action.ENROLL: _EVERYONE,
}


def can_perform(role, action: Action) -> bool:
    """Return True if a user with ``role`` may perform ``action``.

    Unknown role strings are never allowed anything.
    """
    try:
        role = Role(role)
    except ValueError:
        return False
    return role in PERMISSIONS.get(action, frozenset())
