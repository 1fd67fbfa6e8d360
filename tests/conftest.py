import os

os.environ.setdefault("SEED_SAMPLE_DATA", "false")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.database import get_store
from app.core.security import get_identity
from app.main import app
from app.models.entities import ClassRecord, Role, User
from app.services.files import LocalFileStore, get_file_store
from app.services.identity import IdentityStore
from app.services.store import InMemoryStore


def fake_hash(password: str) -> str:
    return "hashed:" + password


def fake_check(password: str, hashed: str) -> bool:
    return hashed == "hashed:" + password


def at(text: str) -> datetime:
    return datetime.fromisoformat(text).replace(tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store():
    return InMemoryStore()


def _add_user(store, username, role, student_id=None, is_active=True):
    user = User(
        username=username,
        email=f"{username}@school.test",
        password_hash=fake_hash("Password@123"),
        role=role,
        student_id=student_id,
        is_active=is_active,
    )
    return store.insert_user(user)


@pytest.fixture
def admin(store):
    return _add_user(store, "admin", Role.ADMIN)


@pytest.fixture
def teacher(store):
    return _add_user(store, "t1", Role.TEACHER)


@pytest.fixture
def other_teacher(store):
    return _add_user(store, "t2", Role.TEACHER)


@pytest.fixture
def student(store):
    return _add_user(store, "s1", Role.STUDENT, student_id="X")


@pytest.fixture
def other_student(store):
    return _add_user(store, "s2", Role.STUDENT, student_id="Z")


@pytest.fixture
def parent(store):
    return _add_user(store, "p1", Role.PARENT, student_id="X")


@pytest.fixture
def other_parent(store):
    return _add_user(store, "p2", Role.PARENT, student_id="Y")


@pytest.fixture
def course(store, teacher):
    return store.insert_class(ClassRecord(name="c1", subject="Mathematics", teacher_id=teacher.id))


@pytest.fixture
def identity(store):
    return IdentityStore(store, fake_hash, fake_check, mode="session")


@pytest.fixture
def client(store, tmp_path):
    mock_identity = IdentityStore(store, fake_hash, fake_check, mode="mock")
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_identity] = lambda: mock_identity
    app.dependency_overrides[get_file_store] = lambda: LocalFileStore(str(tmp_path), 1024)
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer mock-{user.email}"}
