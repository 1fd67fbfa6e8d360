import pytest

from app.core.errors import ForbiddenError, ValidationError
from app.models.entities import Announcement, Role, Schedule
from app.services.assignments import AssignmentEngine
from app.services.bulletins import BulletinService
from app.services.classes import ClassManager
from app.services.dashboard import (
    DASHBOARDS, DashboardAggregator, RoleDashboard, average_grade, round_half_up,
)
from tests.conftest import FixedClock, at


@pytest.fixture
def clock():
    return FixedClock(at("2024-12-20T09:00:00"))


@pytest.fixture
def engine(store, clock):
    return AssignmentEngine(store, clock=clock)


@pytest.fixture
def aggregator(store, clock):
    return DashboardAggregator(store, clock=clock)


@pytest.fixture
def course_work(store, engine, teacher, student, course):
    ClassManager(store).enroll(teacher, course.id, student.id)
    a1 = engine.create_assignment(teacher, "a1", "d", "2024-12-31", course.id)
    a2 = engine.create_assignment(teacher, "a2", "d", "2024-12-01", course.id)
    return a1, a2


def stats(view) -> dict:
    return {s.label: s.value for s in view.dashboard_stats}


# ---- stats per role ----

def test_admin_stats(aggregator, admin, teacher, other_teacher, student, parent, course_work):
    view = aggregator.compute_dashboard(admin)
    assert stats(view) == {
        "Total Users": 5,
        "Active Teachers": 2,
        "Active Students": 1,
        "Total Classes": 1,
    }
    assert len(view.assignments) == 2


def test_teacher_stats(aggregator, teacher, other_teacher, course_work):
    assert stats(aggregator.compute_dashboard(teacher)) == {
        "My Classes": 1,
        "Total Students": 1,
        "Pending Assignments": 1,
        "Total Assignments": 2,
    }
    assert stats(aggregator.compute_dashboard(other_teacher))["My Classes"] == 0


def test_student_stats(aggregator, engine, student, course_work):
    a1, _ = course_work
    before = stats(aggregator.compute_dashboard(student))
    assert before["Pending Assignments"] == 1
    assert before["Submitted Assignments"] == 0

    engine.submit(student, a1.id)
    after = stats(aggregator.compute_dashboard(student))
    assert after["Pending Assignments"] == 0
    assert after["Submitted Assignments"] == 1
    assert after["Total Assignments"] == 2


def test_parent_sees_linked_child(aggregator, engine, teacher, student, parent, other_parent, course_work):
    a1, a2 = course_work
    engine.submit(student, a1.id)
    engine.submit(student, a2.id)
    engine.grade(teacher, a1.id, student.id, grade=85)
    engine.grade(teacher, a2.id, student.id, grade=90)

    view = aggregator.compute_dashboard(parent)
    assert [a["title"] for a in view.assignments] == ["a2", "a1"]
    assert stats(view)["Average Grade"] == "88%"
    assert stats(view)["Child's Classes"] == 1

    orphan = aggregator.compute_dashboard(other_parent)
    assert orphan.assignments == []
    assert orphan.classes == []
    assert stats(orphan)["Average Grade"] == "N/A"


def test_assignments_sorted_by_due_date(aggregator, student, course_work):
    view = aggregator.compute_dashboard(student)
    assert [a["title"] for a in view.assignments] == ["a2", "a1"]
    assert view.user["username"] == "s1"
    assert "password_hash" not in view.user


def test_dashboard_embeds_class_joins(aggregator, teacher, student, course_work):
    view = aggregator.compute_dashboard(teacher)
    cls = view.classes[0]
    assert cls["teacher"] == {"id": teacher.id, "username": "t1"}
    assert cls["students"] == [{"id": student.id, "username": "s1"}]
    assert view.assignments[0]["class"]["name"] == "c1"


# ---- average grade ----

def test_round_half_up():
    assert round_half_up(87.5) == 88
    assert round_half_up(86.5) == 87
    assert round_half_up(86.49) == 86


def test_average_grade_without_grades(course_work, student):
    assert average_grade(list(course_work), student.id) == "N/A"


# ---- announcements and schedules ----

def test_announcements_filtered_by_role(store, aggregator, admin, teacher, student):
    store.insert_announcement(Announcement(
        title="all", content="c", author_id=admin.id, created_at=at("2024-12-01T00:00:00"),
    ))
    store.insert_announcement(Announcement(
        title="teachers", content="c", author_id=admin.id,
        target_roles=[Role.TEACHER], created_at=at("2024-12-02T00:00:00"),
    ))
    store.insert_announcement(Announcement(
        title="hidden", content="c", author_id=admin.id, is_active=False,
    ))

    assert [a["title"] for a in aggregator.announcements_for(teacher)] == ["teachers", "all"]
    student_view = aggregator.announcements_for(student)
    assert [a["title"] for a in student_view] == ["all"]
    assert student_view[0]["author"]["username"] == "admin"


def test_announcements_limited(store, aggregator, admin, student):
    for i in range(12):
        store.insert_announcement(Announcement(title=f"n{i}", content="c", author_id=admin.id))
    assert len(aggregator.announcements_for(student)) == 10


def test_schedules_for_creator_or_participant(store, aggregator, teacher, student, parent):
    store.insert_schedule(Schedule(
        title="later", date=at("2024-12-24T00:00:00"), start_time="10:00",
        created_by=teacher.id, participants=[student.id],
    ))
    store.insert_schedule(Schedule(
        title="sooner", date=at("2024-12-23T00:00:00"), start_time="09:00",
        created_by=student.id,
    ))

    assert [s["title"] for s in aggregator.schedules_for(student)] == ["sooner", "later"]
    assert [s["title"] for s in aggregator.schedules_for(teacher)] == ["later"]
    assert aggregator.schedules_for(parent) == []


# ---- bulletin service ----

def test_create_announcement_permissions(store, teacher, student):
    service = BulletinService(store)
    created = service.create_announcement(teacher, "Exam", "Friday", [Role.STUDENT])
    assert created["author"]["username"] == "t1"
    with pytest.raises(ForbiddenError):
        service.create_announcement(student, "Party", "Now")
    with pytest.raises(ValidationError):
        service.create_announcement(teacher, "", "Now")


def test_author_sees_own_targeted_announcement(store, teacher):
    service = BulletinService(store)
    service.create_announcement(teacher, "Exam", "Friday", [Role.STUDENT])
    assert [a["title"] for a in service.list_announcements(teacher)] == ["Exam"]


def test_schedule_participants_deduplicated(store, teacher, student, parent):
    service = BulletinService(store)
    created = service.create_schedule(
        teacher, "Meeting", "2024-12-23", "14:00", participants=[student.id, student.id],
    )
    assert created["participants"] == [student.id]
    assert created["creator"]["username"] == "t1"
    assert len(service.list_schedules(student)) == 1
    assert service.list_schedules(parent) == []


def test_schedule_listing_wider_than_dashboard(store, aggregator, admin, teacher, other_teacher, student):
    service = BulletinService(store)
    service.create_schedule(other_teacher, "Staff only", "2024-12-23", "09:00", participants=[student.id])

    for actor in (admin, teacher):
        assert [s["title"] for s in service.list_schedules(actor)] == ["Staff only"]
        assert aggregator.schedules_for(actor) == []
        assert aggregator.compute_dashboard(actor).schedules == []

    assert [s["title"] for s in aggregator.schedules_for(student)] == ["Staff only"]


def test_every_role_has_a_dashboard():
    assert set(DASHBOARDS) == set(Role)
    with pytest.raises(TypeError):
        RoleDashboard()
