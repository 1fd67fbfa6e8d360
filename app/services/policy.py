"""
Authorization policy.

is_allowed() is a pure decision over (actor, action, target). Rules are
evaluated in order and the first one that applies decides:

1. admin may do anything
2. only admin creates classes, manages users, sees admin data
3. class/assignment mutations belong to the owning teacher
4. self-enroll: students, onto classes they are not yet in
5. submit: students enrolled in the assignment's class
6. reads: self, a parent's linked child, a teacher's own classes and the
   students enrolled in them (as an Enrollment)
7. deny

Targets by action:
- ENROLL, UNENROLL, CREATE_ASSIGNMENT, SELF_ENROLL, SUBMIT,
  VIEW_ROSTER: the ClassRecord (for SUBMIT, the assignment's class)
- GRADE, DELETE_ASSIGNMENT, VIEW_SUBMISSIONS: the Assignment
- READ_RECORDS: the User whose records are read, a ClassRecord, or an
  Enrollment (class + student)
- CREATE_CLASS, MANAGE_USERS, VIEW_ADMIN_DATA, CREATE_ANNOUNCEMENT: None
"""

import logging
from enum import Enum
from typing import NamedTuple

from app.core.errors import ForbiddenError
from app.models.entities import Assignment, ClassRecord, Role, User

logger = logging.getLogger(__name__)


class Action(str, Enum):
    CREATE_CLASS = "create_class"
    ENROLL = "enroll"
    UNENROLL = "unenroll"
    SELF_ENROLL = "self_enroll"
    VIEW_ROSTER = "view_roster"
    CREATE_ASSIGNMENT = "create_assignment"
    SUBMIT = "submit"
    GRADE = "grade"
    DELETE_ASSIGNMENT = "delete_assignment"
    VIEW_SUBMISSIONS = "view_submissions"
    READ_RECORDS = "read_records"
    CREATE_ANNOUNCEMENT = "create_announcement"
    MANAGE_USERS = "manage_users"
    VIEW_ADMIN_DATA = "view_admin_data"


ADMIN_ONLY = {Action.CREATE_CLASS, Action.MANAGE_USERS, Action.VIEW_ADMIN_DATA}

OWNER_ACTIONS = {
    Action.ENROLL,
    Action.UNENROLL,
    Action.CREATE_ASSIGNMENT,
    Action.GRADE,
    Action.DELETE_ASSIGNMENT,
    Action.VIEW_SUBMISSIONS,
}


class Enrollment(NamedTuple):
    """READ_RECORDS target for a student looked at through one class."""
    cls: ClassRecord
    student: User


def _owner_id(target) -> str | None:
    if isinstance(target, (ClassRecord, Assignment)):
        return target.teacher_id
    return None


def _can_read(actor: User, target) -> bool:
    if isinstance(target, Enrollment):
        if not target.cls.has_student(target.student.id):
            return False
        if actor.role is Role.TEACHER:
            return target.cls.teacher_id == actor.id
        return _can_read(actor, target.student)
    if isinstance(target, User):
        if target.id == actor.id:
            return True
        if actor.role is Role.PARENT:
            return (
                target.role is Role.STUDENT
                and actor.student_id is not None
                and target.student_id == actor.student_id
            )
        return False
    if isinstance(target, ClassRecord):
        if actor.role is Role.TEACHER:
            return target.teacher_id == actor.id
        if actor.role is Role.STUDENT:
            return target.has_student(actor.id)
    return False


def is_allowed(actor: User, action: Action, target=None) -> bool:
    if actor.role is Role.ADMIN:
        return True

    if action in ADMIN_ONLY:
        return False

    if action in OWNER_ACTIONS:
        return actor.role is Role.TEACHER and _owner_id(target) == actor.id

    if action is Action.SELF_ENROLL:
        return (
            actor.role is Role.STUDENT
            and isinstance(target, ClassRecord)
            and not target.has_student(actor.id)
        )

    if action is Action.SUBMIT:
        return (
            actor.role is Role.STUDENT
            and isinstance(target, ClassRecord)
            and target.has_student(actor.id)
        )

    if action is Action.VIEW_ROSTER:
        return _can_read(actor, target)

    if action is Action.READ_RECORDS:
        return _can_read(actor, target)

    if action is Action.CREATE_ANNOUNCEMENT:
        return actor.role is Role.TEACHER

    return False


def authorize(actor: User, action: Action, target=None, message: str | None = None) -> None:
    """Raise ForbiddenError unless is_allowed()."""
    if not is_allowed(actor, action, target):
        logger.warning(
            "Denied %s for user %s (%s) on %s",
            action.value, actor.id, actor.role.value, getattr(target, "id", None),
        )
        raise ForbiddenError(message)
