from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts camelCase or snake_case input"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserResponse(CamelModel):
    id: int
    username: str
    role: str
    name: str


class CourseResponse(CamelModel):
    id: int
    title: str
    description: str
    instructor_id: int


class CourseWithInstructor(CourseResponse):
    instructor: UserResponse


class LessonResponse(CamelModel):
    id: int
    course_id: int
    title: str
    content: Optional[str] = None
    video_url: Optional[str] = None
    pdf_url: Optional[str] = None
    order: int


class AssignmentResponse(CamelModel):
    id: int
    course_id: int
    title: str
    description: str
    due_date: Optional[datetime] = None


class CourseDetail(CourseResponse):
    lessons: List[LessonResponse]
    assignments: List[AssignmentResponse]


class EnrollmentResponse(CamelModel):
    id: int
    student_id: int
    course_id: int
    enrolled_at: Optional[datetime] = None


class EnrollmentWithCourse(EnrollmentResponse):
    course: CourseResponse


class SubmissionResponse(CamelModel):
    id: int
    assignment_id: int
    student_id: int
    content: Optional[str] = None
    file_url: Optional[str] = None
    grade: Optional[int] = None
    feedback: Optional[str] = None
    submitted_at: Optional[datetime] = None


class SubmissionWithStudent(SubmissionResponse):
    student: UserResponse


class SubmissionWithAssignment(SubmissionResponse):
    assignment: AssignmentResponse


class SuccessResponse(CamelModel):
    success: bool


class FileSubmissionResponse(CamelModel):
    file_url: str
    submission_id: int


class LessonUploadResponse(CamelModel):
    file_url: str
    file_type: str


# Stats and analytics
class StudentStats(CamelModel):
    average_grade: int
    upcoming_assignments: int


class InstructorStats(CamelModel):
    total_students: int


class EnrolledStudent(CamelModel):
    id: int
    name: str
    username: str
    enrolled_at: Optional[datetime] = None


class CourseAnalytics(CamelModel):
    enrolled_students: List[EnrolledStudent]
    total_enrolled: int


class AssignmentStats(CamelModel):
    id: int
    title: str
    due_date: Optional[datetime] = None
    total_submissions: int
    graded_submissions: int
    average_grade: Optional[int] = None


class CourseAssignmentStats(CamelModel):
    assignments: List[AssignmentStats]


class DashboardCourse(CamelModel):
    id: int
    title: str
    enrolled_count: int
    assignment_count: int
    completion_rate: int


class InstructorDashboard(CamelModel):
    courses: List[DashboardCourse]
    total_students: int
    total_courses: int
