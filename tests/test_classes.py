import threading

import pytest

from app.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.services.classes import ClassManager


@pytest.fixture
def manager(store):
    return ClassManager(store)


# ---- create_class ----

def test_admin_creates_class_with_empty_roster(manager, admin, teacher):
    cls = manager.create_class(admin, "Integration Math", "Mathematics", teacher.id)
    assert cls.teacher_id == teacher.id
    assert cls.students == []
    assert manager.store.get_class(cls.id) is not None


def test_create_class_rejects_non_teacher(manager, admin, student):
    with pytest.raises(ValidationError):
        manager.create_class(admin, "Math", "Mathematics", student.id)


def test_create_class_rejects_unknown_teacher(manager, admin):
    with pytest.raises(ValidationError):
        manager.create_class(admin, "Math", "Mathematics", "missing")


def test_teacher_cannot_create_class(manager, teacher):
    with pytest.raises(ForbiddenError):
        manager.create_class(teacher, "Math", "Mathematics", teacher.id)


# ---- enroll ----

def test_owning_teacher_enrolls_student(manager, teacher, student, course):
    cls = manager.enroll(teacher, course.id, student.id)
    assert cls.students == [student.id]
    assert manager.store.get_class(course.id).students == [student.id]


def test_enroll_twice_conflicts_and_roster_unchanged(manager, admin, student, course):
    manager.enroll(admin, course.id, student.id)
    with pytest.raises(ConflictError):
        manager.enroll(admin, course.id, student.id)
    assert len(manager.store.get_class(course.id).students) == 1


def test_enroll_missing_class(manager, admin, student):
    with pytest.raises(NotFoundError):
        manager.enroll(admin, "nope", student.id)


def test_enroll_missing_student(manager, admin, course):
    with pytest.raises(NotFoundError):
        manager.enroll(admin, course.id, "nope")


def test_enroll_non_student_is_validation_error(manager, admin, parent, course):
    with pytest.raises(ValidationError):
        manager.enroll(admin, course.id, parent.id)


def test_non_owning_teacher_cannot_enroll(manager, other_teacher, student, course):
    with pytest.raises(ForbiddenError):
        manager.enroll(other_teacher, course.id, student.id)


def test_concurrent_enrollment_keeps_single_entry(manager, admin, student, course):
    errors = []

    def worker():
        try:
            manager.enroll(admin, course.id, student.id)
        except ConflictError as e:
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert manager.store.get_class(course.id).students == [student.id]
    assert len(errors) == 7


# ---- self_enroll ----

def test_student_self_enrolls(manager, student, course):
    cls = manager.self_enroll(student, course.id)
    assert student.id in cls.students


def test_self_enroll_twice_conflicts(manager, student, course):
    manager.self_enroll(student, course.id)
    with pytest.raises(ConflictError):
        manager.self_enroll(student, course.id)


def test_self_enroll_restricted_to_students(manager, teacher, parent, course):
    for actor in (teacher, parent):
        with pytest.raises(ForbiddenError):
            manager.self_enroll(actor, course.id)


def test_self_enroll_missing_class(manager, student):
    with pytest.raises(NotFoundError):
        manager.self_enroll(student, "nope")


# ---- unenroll ----

def test_unenroll_is_idempotent(manager, teacher, student, course):
    manager.enroll(teacher, course.id, student.id)
    manager.unenroll(teacher, course.id, student.id)
    cls = manager.unenroll(teacher, course.id, student.id)
    assert cls.students == []


def test_unenroll_requires_owner(manager, other_teacher, student, course):
    with pytest.raises(ForbiddenError):
        manager.unenroll(other_teacher, course.id, student.id)


# ---- reads ----

def test_visible_classes_by_role(manager, admin, teacher, other_teacher, student, parent, other_parent, course):
    manager.create_class(admin, "Biology", "Science", other_teacher.id)
    manager.enroll(teacher, course.id, student.id)

    assert [c.name for c in manager.visible_classes(admin)] == ["Biology", "c1"]
    assert [c.name for c in manager.visible_classes(teacher)] == ["c1"]
    assert [c.name for c in manager.visible_classes(student)] == ["c1"]
    assert [c.name for c in manager.visible_classes(parent)] == ["c1"]
    assert manager.visible_classes(other_parent) == []


def test_roster(manager, teacher, other_teacher, student, course):
    manager.enroll(teacher, course.id, student.id)
    assert [u.id for u in manager.roster(teacher, course.id)] == [student.id]
    with pytest.raises(ForbiddenError):
        manager.roster(other_teacher, course.id)
