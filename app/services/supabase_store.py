"""
Supabase-backed store.

Tables: users, classes, assignments, announcements, schedules, sessions.
Class rosters and assignment submissions are stored inline (jsonb/array
columns) so each document is updated as a single row. Atomic updates use a
`version` column as a compare-and-swap guard: read row, apply mutator, write
back only if the version is unchanged, retry otherwise.
"""

import logging
from typing import Optional, List

from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import ConflictError, NotFoundError
from app.models.entities import (
    Announcement, Assignment, ClassRecord, Role, Schedule, Session, User,
)
from app.services.store import Store, ClassMutator, AssignmentMutator

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
MAX_CAS_RETRIES = 5


def _row(model) -> dict:
    return model.model_dump(mode="json")


def _one(result) -> Optional[dict]:
    # maybe_single() returns None (not an empty response) when no row matches
    if result is None or not result.data:
        return None
    return result.data


class SupabaseStore(Store):
    def __init__(self, client: Client):
        self.db = client

    # ---- users ----
    def insert_user(self, user: User) -> User:
        try:
            self.db.table("users").insert(_row(user)).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError("User already exists")
            raise
        return user

    def _user_where(self, column: str, value) -> Optional[User]:
        result = self.db.table("users").select("*").eq(column, value).limit(1).execute()
        return User.model_validate(result.data[0]) if result.data else None

    def get_user(self, user_id: str) -> Optional[User]:
        return self._user_where("id", user_id)

    def find_user_by_login(self, identifier: str) -> Optional[User]:
        # Two eq() lookups keep the identifier out of PostgREST filter syntax
        return self._user_where("username", identifier) or self._user_where("email", identifier)

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self._user_where("email", email)

    def find_user_by_firebase_uid(self, uid: str) -> Optional[User]:
        return self._user_where("firebase_uid", uid)

    def find_user_by_student_id(self, student_id: str, role: Role) -> Optional[User]:
        result = (
            self.db.table("users")
            .select("*")
            .eq("student_id", student_id)
            .eq("role", role.value)
            .order("created_at")
            .limit(1)
            .execute()
        )
        return User.model_validate(result.data[0]) if result.data else None

    def list_users(self, role: Optional[Role] = None) -> List[User]:
        query = self.db.table("users").select("*")
        if role is not None:
            query = query.eq("role", role.value)
        return [User.model_validate(r) for r in query.order("created_at").execute().data]

    def count_users(self, role: Optional[Role] = None, active: Optional[bool] = None) -> int:
        query = self.db.table("users").select("id", count="exact")
        if role is not None:
            query = query.eq("role", role.value)
        if active is not None:
            query = query.eq("is_active", active)
        return query.execute().count or 0

    def update_user(self, user_id: str, fields: dict) -> User:
        current = self.get_user(user_id)
        if current is None:
            raise NotFoundError("User not found")
        updated = current.model_copy(update=fields)
        payload = {k: v for k, v in _row(updated).items() if k in fields}
        self.db.table("users").update(payload).eq("id", user_id).execute()
        return updated

    def delete_user(self, user_id: str) -> bool:
        result = self.db.table("users").delete().eq("id", user_id).execute()
        return bool(result.data)

    # ---- compare-and-swap helper ----
    def _cas_update(self, table: str, doc_id: str, model, mutate, missing: str):
        for attempt in range(MAX_CAS_RETRIES):
            row = _one(self.db.table(table).select("*").eq("id", doc_id).maybe_single().execute())
            if row is None:
                raise NotFoundError(missing)
            version = row.pop("version", 0) or 0
            working = model.model_validate(row)
            mutate(working)
            payload = _row(working)
            payload["version"] = version + 1
            result = (
                self.db.table(table)
                .update(payload)
                .eq("id", doc_id)
                .eq("version", version)
                .execute()
            )
            if result.data:
                return working
            logger.info("Concurrent write on %s/%s, retrying (%d)", table, doc_id, attempt + 1)
        raise ConflictError("Document is being modified concurrently, try again")

    # ---- classes ----
    def insert_class(self, record: ClassRecord) -> ClassRecord:
        self.db.table("classes").insert({**_row(record), "version": 0}).execute()
        return record

    def get_class(self, class_id: str) -> Optional[ClassRecord]:
        result = self.db.table("classes").select("*").eq("id", class_id).limit(1).execute()
        if not result.data:
            return None
        row = dict(result.data[0])
        row.pop("version", None)
        return ClassRecord.model_validate(row)

    def list_classes(self, teacher_id=None, student_id=None) -> List[ClassRecord]:
        query = self.db.table("classes").select("*")
        if teacher_id is not None:
            query = query.eq("teacher_id", teacher_id)
        if student_id is not None:
            query = query.contains("students", [student_id])
        rows = query.execute().data
        return [ClassRecord.model_validate({k: v for k, v in r.items() if k != "version"}) for r in rows]

    def count_classes(self) -> int:
        return self.db.table("classes").select("id", count="exact").execute().count or 0

    def update_class(self, class_id: str, mutate: ClassMutator) -> ClassRecord:
        return self._cas_update("classes", class_id, ClassRecord, mutate, "Class not found")

    # ---- assignments ----
    def insert_assignment(self, assignment: Assignment) -> Assignment:
        self.db.table("assignments").insert({**_row(assignment), "version": 0}).execute()
        return assignment

    def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        result = self.db.table("assignments").select("*").eq("id", assignment_id).limit(1).execute()
        if not result.data:
            return None
        row = dict(result.data[0])
        row.pop("version", None)
        return Assignment.model_validate(row)

    def list_assignments(self, teacher_id=None, class_ids=None) -> List[Assignment]:
        if class_ids is not None:
            class_ids = list(class_ids)
            if not class_ids:
                return []
        query = self.db.table("assignments").select("*")
        if teacher_id is not None:
            query = query.eq("teacher_id", teacher_id)
        if class_ids is not None:
            query = query.in_("class_id", class_ids)
        rows = query.execute().data
        return [Assignment.model_validate({k: v for k, v in r.items() if k != "version"}) for r in rows]

    def update_assignment(self, assignment_id: str, mutate: AssignmentMutator) -> Assignment:
        return self._cas_update("assignments", assignment_id, Assignment, mutate, "Assignment not found")

    def delete_assignment(self, assignment_id: str) -> bool:
        result = self.db.table("assignments").delete().eq("id", assignment_id).execute()
        return bool(result.data)

    # ---- announcements ----
    def insert_announcement(self, announcement: Announcement) -> Announcement:
        self.db.table("announcements").insert(_row(announcement)).execute()
        return announcement

    def list_announcements(self, active_only: bool = True) -> List[Announcement]:
        query = self.db.table("announcements").select("*")
        if active_only:
            query = query.eq("is_active", True)
        return [Announcement.model_validate(r) for r in query.execute().data]

    # ---- schedules ----
    def insert_schedule(self, schedule: Schedule) -> Schedule:
        self.db.table("schedules").insert(_row(schedule)).execute()
        return schedule

    def list_schedules(self, user_id: Optional[str] = None) -> List[Schedule]:
        query = self.db.table("schedules").select("*")
        if user_id is not None:
            query = query.or_(f"created_by.eq.{user_id},participants.cs.{{{user_id}}}")
        return [Schedule.model_validate(r) for r in query.execute().data]

    # ---- sessions ----
    def insert_session(self, session: Session) -> Session:
        self.db.table("sessions").insert(_row(session)).execute()
        return session

    def get_session(self, token: str) -> Optional[Session]:
        result = self.db.table("sessions").select("*").eq("token", token).limit(1).execute()
        return Session.model_validate(result.data[0]) if result.data else None

    def delete_session(self, token: str) -> None:
        self.db.table("sessions").delete().eq("token", token).execute()
