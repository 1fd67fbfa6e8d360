"""
Persistence store interface + in-memory implementation.

Every method returns detached copies, so callers never mutate stored state
directly. Per-document atomicity is provided by update_class/update_assignment:
the mutator runs against a private copy of the current document and the result
replaces the stored document in a single step. A mutator that raises leaves the
document untouched.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional, List

from app.core.errors import ConflictError, NotFoundError
from app.models.entities import (
    Announcement, Assignment, ClassRecord, Role, Schedule, Session, User,
)

ClassMutator = Callable[[ClassRecord], None]
AssignmentMutator = Callable[[Assignment], None]


class Store(ABC):
    # ---- users ----
    @abstractmethod
    def insert_user(self, user: User) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def find_user_by_login(self, identifier: str) -> Optional[User]:
        """Match on username or email."""

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def find_user_by_firebase_uid(self, uid: str) -> Optional[User]: ...

    @abstractmethod
    def find_user_by_student_id(self, student_id: str, role: Role) -> Optional[User]: ...

    @abstractmethod
    def list_users(self, role: Optional[Role] = None) -> List[User]: ...

    @abstractmethod
    def count_users(self, role: Optional[Role] = None, active: Optional[bool] = None) -> int: ...

    @abstractmethod
    def update_user(self, user_id: str, fields: dict) -> User: ...

    @abstractmethod
    def delete_user(self, user_id: str) -> bool: ...

    # ---- classes ----
    @abstractmethod
    def insert_class(self, record: ClassRecord) -> ClassRecord: ...

    @abstractmethod
    def get_class(self, class_id: str) -> Optional[ClassRecord]: ...

    @abstractmethod
    def list_classes(
        self, teacher_id: Optional[str] = None, student_id: Optional[str] = None
    ) -> List[ClassRecord]: ...

    @abstractmethod
    def count_classes(self) -> int: ...

    @abstractmethod
    def update_class(self, class_id: str, mutate: ClassMutator) -> ClassRecord: ...

    # ---- assignments ----
    @abstractmethod
    def insert_assignment(self, assignment: Assignment) -> Assignment: ...

    @abstractmethod
    def get_assignment(self, assignment_id: str) -> Optional[Assignment]: ...

    @abstractmethod
    def list_assignments(
        self, teacher_id: Optional[str] = None, class_ids: Optional[Iterable[str]] = None
    ) -> List[Assignment]:
        """class_ids=None means no filter; an empty iterable matches nothing."""

    @abstractmethod
    def update_assignment(self, assignment_id: str, mutate: AssignmentMutator) -> Assignment: ...

    @abstractmethod
    def delete_assignment(self, assignment_id: str) -> bool: ...

    # ---- announcements ----
    @abstractmethod
    def insert_announcement(self, announcement: Announcement) -> Announcement: ...

    @abstractmethod
    def list_announcements(self, active_only: bool = True) -> List[Announcement]: ...

    # ---- schedules ----
    @abstractmethod
    def insert_schedule(self, schedule: Schedule) -> Schedule: ...

    @abstractmethod
    def list_schedules(self, user_id: Optional[str] = None) -> List[Schedule]:
        """user_id limits results to schedules it created or participates in."""

    # ---- sessions ----
    @abstractmethod
    def insert_session(self, session: Session) -> Session: ...

    @abstractmethod
    def get_session(self, token: str) -> Optional[Session]: ...

    @abstractmethod
    def delete_session(self, token: str) -> None: ...


class InMemoryStore(Store):
    """Dict-backed store guarded by one lock. Used for development and tests."""

    def __init__(self):
        self._lock = threading.RLock()
        self._users: dict[str, User] = {}
        self._classes: dict[str, ClassRecord] = {}
        self._assignments: dict[str, Assignment] = {}
        self._announcements: dict[str, Announcement] = {}
        self._schedules: dict[str, Schedule] = {}
        self._sessions: dict[str, Session] = {}

    @staticmethod
    def _copy(record):
        return record.model_copy(deep=True) if record is not None else None

    # ---- users ----
    def insert_user(self, user: User) -> User:
        with self._lock:
            for existing in self._users.values():
                if existing.username == user.username:
                    raise ConflictError("Username already exists")
                if existing.email == user.email:
                    raise ConflictError("Email already registered")
            self._users[user.id] = self._copy(user)
            return self._copy(user)

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._copy(self._users.get(user_id))

    def _first_user(self, predicate) -> Optional[User]:
        with self._lock:
            for u in self._users.values():
                if predicate(u):
                    return self._copy(u)
        return None

    def find_user_by_login(self, identifier: str) -> Optional[User]:
        return self._first_user(lambda u: u.username == identifier or u.email == identifier)

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self._first_user(lambda u: u.email == email)

    def find_user_by_firebase_uid(self, uid: str) -> Optional[User]:
        return self._first_user(lambda u: u.firebase_uid == uid)

    def find_user_by_student_id(self, student_id: str, role: Role) -> Optional[User]:
        return self._first_user(lambda u: u.student_id == student_id and u.role == role)

    def list_users(self, role: Optional[Role] = None) -> List[User]:
        with self._lock:
            return [self._copy(u) for u in self._users.values() if role is None or u.role == role]

    def count_users(self, role: Optional[Role] = None, active: Optional[bool] = None) -> int:
        with self._lock:
            return sum(
                1 for u in self._users.values()
                if (role is None or u.role == role) and (active is None or u.is_active == active)
            )

    def update_user(self, user_id: str, fields: dict) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError("User not found")
            updated = user.model_copy(update=fields, deep=True)
            self._users[user_id] = updated
            return self._copy(updated)

    def delete_user(self, user_id: str) -> bool:
        with self._lock:
            return self._users.pop(user_id, None) is not None

    # ---- classes ----
    def insert_class(self, record: ClassRecord) -> ClassRecord:
        with self._lock:
            self._classes[record.id] = self._copy(record)
            return self._copy(record)

    def get_class(self, class_id: str) -> Optional[ClassRecord]:
        with self._lock:
            return self._copy(self._classes.get(class_id))

    def list_classes(self, teacher_id=None, student_id=None) -> List[ClassRecord]:
        with self._lock:
            return [
                self._copy(c) for c in self._classes.values()
                if (teacher_id is None or c.teacher_id == teacher_id)
                and (student_id is None or student_id in c.students)
            ]

    def count_classes(self) -> int:
        with self._lock:
            return len(self._classes)

    def update_class(self, class_id: str, mutate: ClassMutator) -> ClassRecord:
        with self._lock:
            current = self._classes.get(class_id)
            if current is None:
                raise NotFoundError("Class not found")
            working = self._copy(current)
            mutate(working)
            self._classes[class_id] = working
            return self._copy(working)

    # ---- assignments ----
    def insert_assignment(self, assignment: Assignment) -> Assignment:
        with self._lock:
            self._assignments[assignment.id] = self._copy(assignment)
            return self._copy(assignment)

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        with self._lock:
            return self._copy(self._assignments.get(assignment_id))

    def list_assignments(self, teacher_id=None, class_ids=None) -> List[Assignment]:
        wanted = set(class_ids) if class_ids is not None else None
        with self._lock:
            return [
                self._copy(a) for a in self._assignments.values()
                if (teacher_id is None or a.teacher_id == teacher_id)
                and (wanted is None or a.class_id in wanted)
            ]

    def update_assignment(self, assignment_id: str, mutate: AssignmentMutator) -> Assignment:
        with self._lock:
            current = self._assignments.get(assignment_id)
            if current is None:
                raise NotFoundError("Assignment not found")
            working = self._copy(current)
            mutate(working)
            self._assignments[assignment_id] = working
            return self._copy(working)

    def delete_assignment(self, assignment_id: str) -> bool:
        with self._lock:
            return self._assignments.pop(assignment_id, None) is not None

    # ---- announcements ----
    def insert_announcement(self, announcement: Announcement) -> Announcement:
        with self._lock:
            self._announcements[announcement.id] = self._copy(announcement)
            return self._copy(announcement)

    def list_announcements(self, active_only: bool = True) -> List[Announcement]:
        with self._lock:
            return [
                self._copy(a) for a in self._announcements.values()
                if a.is_active or not active_only
            ]

    # ---- schedules ----
    def insert_schedule(self, schedule: Schedule) -> Schedule:
        with self._lock:
            self._schedules[schedule.id] = self._copy(schedule)
            return self._copy(schedule)

    def list_schedules(self, user_id: Optional[str] = None) -> List[Schedule]:
        with self._lock:
            return [
                self._copy(s) for s in self._schedules.values()
                if user_id is None or s.involves(user_id)
            ]

    # ---- sessions ----
    def insert_session(self, session: Session) -> Session:
        with self._lock:
            self._sessions[session.token] = self._copy(session)
            return self._copy(session)

    def get_session(self, token: str) -> Optional[Session]:
        with self._lock:
            return self._copy(self._sessions.get(token))

    def delete_session(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)
