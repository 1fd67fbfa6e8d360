"""
Sample data for an empty store.

Each sample user is created independently: one failure is logged and the
remaining users are still created.
"""

import logging
from datetime import timedelta

from app.core.errors import AppError
from app.models.entities import (
    Announcement, Assignment, ClassRecord, Role, Schedule, utcnow,
)
from app.services.identity import IdentityStore

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "Password@123"

SAMPLE_USERS = [
    {"username": "admin", "email": "admin@educonnect.edu", "role": Role.ADMIN},
    {"username": "teacher1", "email": "teacher1@educonnect.edu", "role": Role.TEACHER},
    {"username": "student1", "email": "student1@educonnect.edu", "role": Role.STUDENT,
     "student_id": "STU2024001"},
    {"username": "parent1", "email": "parent1@educonnect.edu", "role": Role.PARENT,
     "student_id": "STU2024001"},
]


def create_users(identity: IdentityStore, users_data: list[dict], password: str = SAMPLE_PASSWORD):
    """Create users one by one. Returns (created, failed_usernames)."""
    created, failed = [], []
    for data in users_data:
        try:
            user = identity.create_account(
                data["username"], data["email"], data.get("password", password),
                data["role"], data.get("student_id"),
            )
            created.append(user)
        except AppError as e:
            logger.error("Error creating user %s: %s", data.get("username"), e.message)
            failed.append(data.get("username"))
        except Exception:
            logger.exception("Error creating user %s", data.get("username"))
            failed.append(data.get("username"))
    return created, failed


def initialize_sample_data(identity: IdentityStore) -> bool:
    """Seed sample users, a class, an assignment, an announcement and a schedule.

    Returns False when the store already has users.
    """
    store = identity.store
    user_count = store.count_users()
    logger.info("Current user count: %d", user_count)
    if user_count:
        logger.info("Database already has data")
        return False

    logger.info("Creating sample data...")
    created, _ = create_users(identity, SAMPLE_USERS)

    teacher = next((u for u in created if u.role is Role.TEACHER), None)
    student = next((u for u in created if u.role is Role.STUDENT), None)
    if teacher is None or student is None:
        logger.warning("Sample teacher or student missing, skipping class data")
        return True

    now = utcnow()
    sample_class = ClassRecord(
        name="Mathematics 101", subject="Mathematics",
        teacher_id=teacher.id, students=[student.id],
    )
    store.insert_class(sample_class)

    store.insert_assignment(Assignment(
        title="Algebra Basics Assignment",
        description="Complete exercises 1-10 on algebraic expressions",
        due_date=now + timedelta(days=7),
        class_id=sample_class.id,
        teacher_id=teacher.id,
    ))

    store.insert_announcement(Announcement(
        title="Welcome to EduConnect!",
        content="Welcome to our school management system. We are excited to have you here!",
        author_id=teacher.id,
        target_roles=[Role.TEACHER, Role.STUDENT, Role.PARENT, Role.ADMIN],
    ))

    store.insert_schedule(Schedule(
        title="Parent-Teacher Meeting",
        description="Monthly parent-teacher meeting to discuss student progress",
        date=now + timedelta(days=3),
        start_time="14:00",
        end_time="16:00",
        created_by=teacher.id,
        participants=[teacher.id, student.id],
    ))

    logger.info("Sample data initialization completed")
    return True
