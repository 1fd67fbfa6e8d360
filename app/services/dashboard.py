"""
Dashboard aggregator.

Every role gets the same envelope:
    {user, announcements, schedules, classes, assignments, dashboard_stats}

The role-specific part (classes, assignments, stats) comes from one
RoleDashboard per Role, looked up in DASHBOARDS. Announcements and schedules
are shared: global or role-targeted announcements, and schedules the actor
created or participates in.
"""

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from app.models.entities import Assignment, ClassRecord, Role, User, utcnow
from app.services.assignments import evaluate_status
from app.services.classes import linked_child
from app.services.policy import Action, authorize
from app.services.store import Store
from app.services import views

ANNOUNCEMENT_LIMIT = 10
NOT_AVAILABLE = "N/A"


class StatCard(BaseModel):
    label: str
    value: int | str
    description: str


class DashboardView(BaseModel):
    user: dict
    announcements: List[dict] = Field(default_factory=list)
    schedules: List[dict] = Field(default_factory=list)
    classes: List[dict] = Field(default_factory=list)
    assignments: List[dict] = Field(default_factory=list)
    dashboard_stats: List[StatCard] = Field(default_factory=list)


class RoleData(BaseModel):
    classes: List[ClassRecord] = Field(default_factory=list)
    assignments: List[Assignment] = Field(default_factory=list)
    stats: List[StatCard] = Field(default_factory=list)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def average_grade(assignments: List[Assignment], student_id: str) -> str:
    grades = []
    for a in assignments:
        sub = a.submission_for(student_id)
        if sub is not None and sub.grade is not None:
            grades.append(sub.grade)
    if not grades:
        return NOT_AVAILABLE
    return f"{round_half_up(sum(grades) / len(grades))}%"


def _sorted_by_due(assignments: List[Assignment]) -> List[Assignment]:
    return sorted((evaluate_status(a) for a in assignments), key=lambda a: a.due_date)


def _student_progress(assignments: List[Assignment], student_id: str, now: datetime):
    submitted = sum(1 for a in assignments if a.submission_for(student_id) is not None)
    pending = sum(
        1 for a in assignments
        if a.submission_for(student_id) is None and a.due_date > now
    )
    return pending, submitted


class RoleDashboard(ABC):
    """Computes the role-specific part of a dashboard."""

    @abstractmethod
    def compute(self, store: Store, actor: User, now: datetime) -> RoleData: ...


class AdminDashboard(RoleDashboard):
    def compute(self, store, actor, now):
        classes = sorted(store.list_classes(), key=lambda c: c.name)
        return RoleData(
            classes=classes,
            assignments=_sorted_by_due(store.list_assignments()),
            stats=[
                StatCard(label="Total Users", value=store.count_users(),
                         description="All system users"),
                StatCard(label="Active Teachers",
                         value=store.count_users(role=Role.TEACHER, active=True),
                         description="Teaching staff"),
                StatCard(label="Active Students",
                         value=store.count_users(role=Role.STUDENT, active=True),
                         description="Enrolled students"),
                StatCard(label="Total Classes", value=store.count_classes(),
                         description="Classes created"),
            ],
        )


class TeacherDashboard(RoleDashboard):
    def compute(self, store, actor, now):
        classes = sorted(store.list_classes(teacher_id=actor.id), key=lambda c: c.name)
        assignments = _sorted_by_due(store.list_assignments(teacher_id=actor.id))
        pending = sum(1 for a in assignments if a.due_date > now)
        return RoleData(
            classes=classes,
            assignments=assignments,
            stats=[
                StatCard(label="My Classes", value=len(classes),
                         description="Classes you teach"),
                StatCard(label="Total Students", value=sum(len(c.students) for c in classes),
                         description="Students across all classes"),
                StatCard(label="Pending Assignments", value=pending,
                         description="Assignments still open"),
                StatCard(label="Total Assignments", value=len(assignments),
                         description="All assignments created"),
            ],
        )


def _enrolled_data(store: Store, student: Optional[User]):
    if student is None:
        return [], []
    classes = sorted(store.list_classes(student_id=student.id), key=lambda c: c.name)
    assignments = _sorted_by_due(store.list_assignments(class_ids=[c.id for c in classes]))
    return classes, assignments


class StudentDashboard(RoleDashboard):
    def compute(self, store, actor, now):
        classes, assignments = _enrolled_data(store, actor)
        pending, submitted = _student_progress(assignments, actor.id, now)
        return RoleData(
            classes=classes,
            assignments=assignments,
            stats=[
                StatCard(label="Enrolled Classes", value=len(classes),
                         description="Classes you're enrolled in"),
                StatCard(label="Pending Assignments", value=pending,
                         description="Assignments to submit"),
                StatCard(label="Submitted Assignments", value=submitted,
                         description="Assignments submitted"),
                StatCard(label="Total Assignments", value=len(assignments),
                         description="All assignments"),
            ],
        )


class ParentDashboard(RoleDashboard):
    def compute(self, store, actor, now):
        child = linked_child(store, actor)
        if child is not None:
            authorize(actor, Action.READ_RECORDS, child)
        classes, assignments = _enrolled_data(store, child)

        if child is not None:
            pending, submitted = _student_progress(assignments, child.id, now)
            avg = average_grade(assignments, child.id)
        else:
            pending, submitted, avg = 0, 0, NOT_AVAILABLE

        return RoleData(
            classes=classes,
            assignments=assignments,
            stats=[
                StatCard(label="Child's Classes", value=len(classes),
                         description="Classes your child is enrolled in"),
                StatCard(label="Child's Assignments", value=len(assignments),
                         description="Total assignments"),
                StatCard(label="Pending", value=pending,
                         description="Assignments to complete"),
                StatCard(label="Submitted", value=submitted,
                         description="Assignments submitted"),
                StatCard(label="Average Grade", value=avg,
                         description="Child's performance"),
            ],
        )


DASHBOARDS: dict[Role, RoleDashboard] = {
    Role.ADMIN: AdminDashboard(),
    Role.TEACHER: TeacherDashboard(),
    Role.STUDENT: StudentDashboard(),
    Role.PARENT: ParentDashboard(),
}


class DashboardAggregator:
    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def announcements_for(self, actor: User) -> List[dict]:
        visible = [a for a in self.store.list_announcements() if a.visible_to(actor.role)]
        visible.sort(key=lambda a: a.created_at, reverse=True)
        visible = visible[:ANNOUNCEMENT_LIMIT]
        authors = views.load_users(self.store, [a.author_id for a in visible])
        return [views.announcement_view(a, authors) for a in visible]

    def schedules_for(self, actor: User) -> List[dict]:
        return views.schedules_view(self.store, self.store.list_schedules(user_id=actor.id))

    def compute_dashboard(self, actor: User) -> DashboardView:
        authorize(actor, Action.READ_RECORDS, actor)
        role_data = DASHBOARDS[actor.role].compute(self.store, actor, self.clock())
        return DashboardView(
            user=actor.public(),
            announcements=self.announcements_for(actor),
            schedules=self.schedules_for(actor),
            classes=views.classes_view(self.store, role_data.classes),
            assignments=views.assignments_view(self.store, role_data.assignments),
            dashboard_stats=role_data.stats,
        )

