from .core.auth import get_password_hash
from .core.database import AsyncSessionLocal
from .core.policy import Role
from .core.storage import Storage
import logging

logger = logging.getLogger(__name__)

DEMO_USERS = [
    ("admin", "admin123", Role.ADMIN, "System Admin"),
    ("instructor", "instructor123", Role.INSTRUCTOR, "Prof. Smith"),
    ("student", "student123", Role.STUDENT, "John Doe"),
]


async def seed_demo_data(storage: Storage) -> bool:
    """
    Create demo users and one course, unless an 'admin' user already exists.
    Returns True if anything was created.
    """
    if await storage.get_user_by_username("admin"):
        logger.info("Demo data already present, skipping seed")
        return False

    users = {}
    for username, password, role, name in DEMO_USERS:
        users[username] = await storage.create_user(
            username=username,
            password_hash=get_password_hash(password),
            role=role.value,
            name=name
        )

    course = await storage.create_course(
        title="Introduction to Web Development",
        description="Learn the basics of HTML, CSS, and JavaScript.",
        instructor_id=users["instructor"].id
    )
    await storage.create_lesson(
        course_id=course.id,
        title="HTML Basics",
        content="HTML stands for HyperText Markup Language.",
        order=1
    )

    logger.info(f"Seeded {len(users)} demo users and course {course.id}")
    return True


async def run_seed():
    async with AsyncSessionLocal() as session:
        await seed_demo_data(Storage(session))
