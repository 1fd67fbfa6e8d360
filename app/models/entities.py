"""
Domain records shared by the store, the services and the routers.

Records reference each other by id only. Joins are done explicitly by the
services that need them.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    LATE = "late"
    GRADED = "graded"


# ---- User ----
class User(BaseModel):
    id: str = Field(default_factory=new_id)
    username: str
    email: str
    password_hash: str = ""
    role: Role
    student_id: Optional[str] = None
    firebase_uid: Optional[str] = None
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    last_login: Optional[datetime] = None

    def public(self) -> dict:
        return self.model_dump(mode="json", exclude={"password_hash"})

    def brief(self) -> dict:
        return {"id": self.id, "username": self.username}


# ---- Class ----
class ClassRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    subject: str
    teacher_id: str
    students: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def has_student(self, student_id: str) -> bool:
        return student_id in self.students


# ---- Assignment / Submission ----
class Submission(BaseModel):
    student_id: str
    submitted_at: datetime = Field(default_factory=utcnow)
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    description: Optional[str] = None
    grade: Optional[float] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    status: SubmissionStatus = SubmissionStatus.SUBMITTED


class Assignment(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: str
    due_date: datetime
    class_id: str
    teacher_id: str
    max_score: float = 100
    submissions: List[Submission] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def submission_index(self, student_id: str) -> int:
        for i, sub in enumerate(self.submissions):
            if sub.student_id == student_id:
                return i
        return -1

    def submission_for(self, student_id: str) -> Optional[Submission]:
        idx = self.submission_index(student_id)
        return self.submissions[idx] if idx >= 0 else None


# ---- Announcement ----
class Announcement(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    content: str
    author_id: str
    target_roles: List[Role] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)

    def visible_to(self, role: Role) -> bool:
        return not self.target_roles or role in self.target_roles


# ---- Schedule ----
class Schedule(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    description: Optional[str] = None
    date: datetime
    start_time: str
    end_time: Optional[str] = None
    created_by: str
    participants: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    def involves(self, user_id: str) -> bool:
        return self.created_by == user_id or user_id in self.participants


# ---- Session ----
class Session(BaseModel):
    token: str
    user_id: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
