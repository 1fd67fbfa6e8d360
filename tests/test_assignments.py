import asyncio
import io

import pytest
from fastapi import UploadFile

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.entities import ClassRecord, Submission, SubmissionStatus
from app.services.assignments import AssignmentEngine, evaluate_status
from app.services.classes import ClassManager
from app.services.files import LocalFileStore, read_upload
from tests.conftest import FixedClock, at


@pytest.fixture
def clock():
    return FixedClock(at("2024-12-20T09:00:00"))


@pytest.fixture
def engine(store, clock, tmp_path):
    return AssignmentEngine(store, LocalFileStore(str(tmp_path), 64), clock=clock)


@pytest.fixture
def enrolled(store, teacher, student, course):
    ClassManager(store).enroll(teacher, course.id, student.id)
    return course


@pytest.fixture
def a1(engine, teacher, enrolled):
    return engine.create_assignment(teacher, "a1", "Exercises 1-10", "2024-12-31", enrolled.id)


# ---- create ----

def test_create_copies_class_teacher(engine, admin, teacher, course):
    a = engine.create_assignment(admin, "a", "d", "2024-12-31T23:59:00Z", course.id)
    assert a.teacher_id == teacher.id
    assert a.max_score == 100
    assert a.submissions == []


def test_teacher_copy_does_not_follow_reassignment(engine, store, teacher, other_teacher, course):
    a = engine.create_assignment(teacher, "a", "d", "2024-12-31", course.id)

    def reassign(cls: ClassRecord):
        cls.teacher_id = other_teacher.id

    store.update_class(course.id, reassign)
    assert store.get_assignment(a.id).teacher_id == teacher.id


def test_create_requires_class_owner(engine, other_teacher, course):
    with pytest.raises(ForbiddenError):
        engine.create_assignment(other_teacher, "a", "d", "2024-12-31", course.id)


def test_create_missing_class(engine, admin):
    with pytest.raises(NotFoundError):
        engine.create_assignment(admin, "a", "d", "2024-12-31", "nope")


def test_create_requires_fields_and_valid_date(engine, teacher, course):
    with pytest.raises(ValidationError):
        engine.create_assignment(teacher, "", "d", "2024-12-31", course.id)
    with pytest.raises(ValidationError):
        engine.create_assignment(teacher, "a", "d", "not a date", course.id)


# ---- submit ----

def test_submit_creates_submitted(engine, student, a1):
    sub = engine.submit(student, a1.id, description="done")
    assert sub.status is SubmissionStatus.SUBMITTED
    assert sub.description == "done"


def test_resubmission_replaces_in_place(engine, store, teacher, student, other_student, a1, enrolled, clock):
    ClassManager(store).enroll(teacher, enrolled.id, other_student.id)
    engine.submit(student, a1.id, description="first")
    engine.submit(other_student, a1.id, description="other")
    engine.grade(teacher, a1.id, student.id, grade=70, score=35, feedback="ok")

    clock.now = at("2024-12-22T09:00:00")
    engine.submit(student, a1.id, description="second")

    stored = store.get_assignment(a1.id)
    assert [s.student_id for s in stored.submissions] == [student.id, other_student.id]
    sub = stored.submissions[0]
    assert sub.description == "second"
    assert sub.grade is None
    assert sub.feedback is None
    assert sub.status is SubmissionStatus.SUBMITTED


def test_submit_requires_enrollment(engine, other_student, a1):
    with pytest.raises(ForbiddenError):
        engine.submit(other_student, a1.id)


def test_admin_may_submit_without_enrollment(engine, admin, a1):
    sub = engine.submit(admin, a1.id)
    assert sub.student_id == admin.id


def test_submit_missing_assignment(engine, student):
    with pytest.raises(NotFoundError):
        engine.submit(student, "nope")


def test_submit_upload_stores_file(engine, student, a1, tmp_path):
    sub = engine.submit_upload(student, a1.id, b"answers", "work.txt", "see file")
    assert sub.file_name == "work.txt"
    assert sub.file_url.startswith("/uploads/assignments/")
    stored_name = sub.file_url.rsplit("/", 1)[1]
    assert (tmp_path / "assignments" / stored_name).read_bytes() == b"answers"


def test_submit_upload_checks_access_before_storing(engine, other_student, a1, tmp_path):
    with pytest.raises(ForbiddenError):
        engine.submit_upload(other_student, a1.id, b"answers", "work.txt")
    assert not (tmp_path / "assignments").exists()


def test_submit_upload_rejects_large_file(engine, student, a1):
    with pytest.raises(ValidationError):
        engine.submit_upload(student, a1.id, b"x" * 65, "big.bin")


# ---- evaluate_status ----

def test_late_submission_evaluates_late(a1):
    a1.submissions.append(Submission(student_id="s", submitted_at=at("2025-01-02T00:00:00")))
    evaluate_status(a1)
    assert a1.submissions[0].status is SubmissionStatus.LATE


def test_graded_never_reverts(a1):
    a1.submissions.append(Submission(
        student_id="s", submitted_at=at("2025-01-02T00:00:00"), status=SubmissionStatus.GRADED,
    ))
    evaluate_status(a1)
    evaluate_status(a1)
    assert a1.submissions[0].status is SubmissionStatus.GRADED


def test_on_time_submission_evaluates_submitted(a1):
    a1.submissions.append(Submission(
        student_id="s", submitted_at=at("2024-12-01T00:00:00"), status=SubmissionStatus.LATE,
    ))
    evaluate_status(a1)
    assert a1.submissions[0].status is SubmissionStatus.SUBMITTED


# ---- grade ----

def test_grading_scenario(engine, store, teacher, student, a1, clock):
    clock.now = at("2025-01-02T10:00:00")
    sub = engine.submit(student, a1.id)
    assert sub.status is SubmissionStatus.LATE

    graded = engine.grade(teacher, a1.id, student.id, grade=85, score=42.5, max_score=50)
    assert graded.status is SubmissionStatus.GRADED
    assert graded.grade == 85
    assert graded.score == 42.5
    assert graded.graded_at == clock.now

    stored = evaluate_status(store.get_assignment(a1.id))
    assert stored.max_score == 50
    assert stored.submissions[0].status is SubmissionStatus.GRADED


def test_non_owning_teacher_cannot_grade_but_admin_can(engine, admin, other_teacher, student, a1):
    engine.submit(student, a1.id)
    with pytest.raises(ForbiddenError):
        engine.grade(other_teacher, a1.id, student.id, grade=90)
    assert engine.grade(admin, a1.id, student.id, grade=90).grade == 90


def test_grade_without_submission_not_found(engine, teacher, student, a1):
    with pytest.raises(NotFoundError):
        engine.grade(teacher, a1.id, student.id, grade=90)


def test_grade_bounds(engine, teacher, student, a1):
    engine.submit(student, a1.id)
    with pytest.raises(ValidationError):
        engine.grade(teacher, a1.id, student.id, grade=101)
    with pytest.raises(ValidationError):
        engine.grade(teacher, a1.id, student.id, grade=50, score=-1)


def test_grade_zero_is_kept(engine, teacher, student, a1):
    engine.submit(student, a1.id)
    assert engine.grade(teacher, a1.id, student.id, grade=0).grade == 0


# ---- delete ----

def test_delete_assignment(engine, store, teacher, student, a1):
    engine.submit(student, a1.id)
    engine.delete_assignment(teacher, a1.id)
    assert store.get_assignment(a1.id) is None


def test_delete_requires_owner(engine, other_teacher, a1):
    with pytest.raises(ForbiddenError):
        engine.delete_assignment(other_teacher, a1.id)


def test_delete_missing(engine, admin):
    with pytest.raises(NotFoundError):
        engine.delete_assignment(admin, "nope")


# ---- reads ----

def test_submissions_overview_lists_unsubmitted(engine, store, teacher, student, other_student, a1, enrolled):
    ClassManager(store).enroll(teacher, enrolled.id, other_student.id)
    engine.submit(student, a1.id)
    overview = engine.submissions_overview(teacher, a1.id)
    assert [s["id"] for s in overview["class_students"]] == [student.id, other_student.id]
    assert [s["id"] for s in overview["unsubmitted_students"]] == [other_student.id]
    assert overview["assignment"]["submissions"][0]["student"]["username"] == "s1"


def test_grades_for_student_and_parent(engine, teacher, student, parent, other_parent, a1):
    engine.submit(student, a1.id)
    engine.grade(teacher, a1.id, student.id, grade=85, feedback="good")

    for actor in (student, parent):
        rows = engine.grades(actor)
        assert len(rows) == 1
        assert rows[0]["grade"] == 85
        assert rows[0]["class_name"] == "c1"
        assert rows[0]["teacher_name"] == "t1"
        assert rows[0]["status"] == "graded"

    assert engine.grades(other_parent) == []


def test_grades_for_teacher_cover_own_assignments(engine, teacher, other_teacher, student, a1):
    engine.submit(student, a1.id)
    assert [r["student_name"] for r in engine.grades(teacher)] == ["s1"]
    assert engine.grades(other_teacher) == []


def test_grades_sorted_by_due_date_desc(engine, teacher, student, enrolled, a1):
    later = engine.create_assignment(teacher, "a2", "d", "2025-02-01", enrolled.id)
    engine.submit(student, a1.id)
    engine.submit(student, later.id)
    assert [r["assignment_title"] for r in engine.grades(student)] == ["a2", "a1"]


def test_grades_report_late_status(engine, student, a1, clock):
    clock.now = at("2025-01-02T00:00:00")
    engine.submit(student, a1.id)
    assert engine.grades(student)[0]["status"] == "late"


def test_read_upload_stops_after_limit():
    buffer = io.BytesIO(b"x" * 1000)
    upload = UploadFile(file=buffer, filename="big.bin")
    with pytest.raises(ValidationError):
        asyncio.run(read_upload(upload, 64))
    assert buffer.tell() == 65


def test_read_upload_within_limit():
    upload = UploadFile(file=io.BytesIO(b"answers"), filename="work.txt")
    assert asyncio.run(read_upload(upload, 64)) == b"answers"
