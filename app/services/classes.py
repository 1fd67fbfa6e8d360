"""
Class/enrollment manager: class creation and roster membership.

A student appears at most once in a roster. Every roster change is one atomic
store.update_class() call, and the duplicate check is repeated inside it so
concurrent enrollments of the same student cannot both succeed.
"""

import logging
from typing import List, Optional

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.entities import ClassRecord, Role, User
from app.services.policy import Action, authorize
from app.services.store import Store

logger = logging.getLogger(__name__)


def linked_child(store: Store, parent: User) -> Optional[User]:
    """First student sharing the parent's external student id."""
    if not parent.student_id:
        return None
    return store.find_user_by_student_id(parent.student_id, Role.STUDENT)


def records_subject(store: Store, actor: User) -> Optional[User]:
    """The student whose records a student/parent actor looks at."""
    if actor.role is Role.STUDENT:
        return actor
    if actor.role is Role.PARENT:
        return linked_child(store, actor)
    return None


class ClassManager:
    def __init__(self, store: Store):
        self.store = store

    def _get_class(self, class_id: str) -> ClassRecord:
        cls = self.store.get_class(class_id)
        if cls is None:
            raise NotFoundError("Class not found")
        return cls

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create_class(self, actor: User, name: str, subject: str, teacher_id: str) -> ClassRecord:
        authorize(actor, Action.CREATE_CLASS)

        if not name or not subject or not teacher_id:
            raise ValidationError("Name, subject and teacher are required")

        teacher = self.store.get_user(teacher_id)
        if teacher is None or teacher.role is not Role.TEACHER:
            raise ValidationError("Invalid teacher ID")

        record = ClassRecord(name=name.strip(), subject=subject.strip(), teacher_id=teacher.id)
        self.store.insert_class(record)
        logger.info("Class %s created by %s (teacher %s)", record.name, actor.id, teacher.id)
        return record

    def _append_student(self, class_id: str, student_id: str, message: str) -> ClassRecord:
        def add(cls: ClassRecord) -> None:
            if cls.has_student(student_id):
                raise ConflictError(message)
            cls.students.append(student_id)

        return self.store.update_class(class_id, add)

    def enroll(self, actor: User, class_id: str, student_id: str) -> ClassRecord:
        if not student_id:
            raise ValidationError("Student ID is required")

        cls = self._get_class(class_id)
        authorize(actor, Action.ENROLL, cls,
                  "You do not have permission to enroll students in this class")

        student = self.store.get_user(student_id)
        if student is None:
            raise NotFoundError("Student not found")
        if student.role is not Role.STUDENT:
            raise ValidationError("Only students can be enrolled in a class")

        if cls.has_student(student.id):
            raise ConflictError("Student is already enrolled in this class")

        updated = self._append_student(class_id, student.id, "Student is already enrolled in this class")
        logger.info("Student %s enrolled in class %s by %s", student.id, class_id, actor.id)
        return updated

    def self_enroll(self, actor: User, class_id: str) -> ClassRecord:
        if actor.role is not Role.STUDENT:
            raise ForbiddenError("Only students can self-enroll")

        cls = self._get_class(class_id)
        if cls.has_student(actor.id):
            raise ConflictError("You are already enrolled in this class")
        authorize(actor, Action.SELF_ENROLL, cls, "Only students can self-enroll")

        updated = self._append_student(class_id, actor.id, "You are already enrolled in this class")
        logger.info("Student %s self-enrolled in class %s", actor.id, class_id)
        return updated

    def unenroll(self, actor: User, class_id: str, student_id: str) -> ClassRecord:
        cls = self._get_class(class_id)
        authorize(actor, Action.UNENROLL, cls, "You do not have permission to manage this class")

        def remove(record: ClassRecord) -> None:
            record.students = [s for s in record.students if s != student_id]

        updated = self.store.update_class(class_id, remove)
        logger.info("Student %s removed from class %s by %s", student_id, class_id, actor.id)
        return updated

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def visible_classes(self, actor: User) -> List[ClassRecord]:
        if actor.role is Role.ADMIN:
            classes = self.store.list_classes()
        elif actor.role is Role.TEACHER:
            classes = self.store.list_classes(teacher_id=actor.id)
        else:
            subject = records_subject(self.store, actor)
            classes = self.store.list_classes(student_id=subject.id) if subject else []
        return sorted(classes, key=lambda c: c.name)

    def roster(self, actor: User, class_id: str) -> List[User]:
        cls = self._get_class(class_id)
        authorize(actor, Action.VIEW_ROSTER, cls)
        students = []
        for sid in cls.students:
            user = self.store.get_user(sid)
            if user is not None:
                students.append(user)
        return students
