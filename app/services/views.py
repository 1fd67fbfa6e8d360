"""
Explicit read-through joins used to render records for API responses.

Records only hold ids; these helpers fetch the referenced users/classes once
per response and embed brief versions ({id, username} / {id, name}).
"""

from typing import Dict, Iterable, List

from app.models.entities import Announcement, Assignment, ClassRecord, Schedule, User
from app.services.store import Store


def load_users(store: Store, ids: Iterable[str]) -> Dict[str, User]:
    users = {}
    for uid in set(ids):
        user = store.get_user(uid)
        if user is not None:
            users[uid] = user
    return users


def load_classes(store: Store, ids: Iterable[str]) -> Dict[str, ClassRecord]:
    classes = {}
    for cid in set(ids):
        cls = store.get_class(cid)
        if cls is not None:
            classes[cid] = cls
    return classes


def _brief(users: Dict[str, User], uid: str) -> dict | None:
    user = users.get(uid)
    return user.brief() if user else None


def class_view(cls: ClassRecord, users: Dict[str, User]) -> dict:
    data = cls.model_dump(mode="json")
    data["teacher"] = _brief(users, cls.teacher_id)
    data["students"] = [_brief(users, s) or {"id": s, "username": None} for s in cls.students]
    return data


def classes_view(store: Store, classes: List[ClassRecord]) -> List[dict]:
    ids = [c.teacher_id for c in classes] + [s for c in classes for s in c.students]
    users = load_users(store, ids)
    return [class_view(c, users) for c in classes]


def assignment_view(a: Assignment, classes: Dict[str, ClassRecord], users: Dict[str, User]) -> dict:
    data = a.model_dump(mode="json")
    cls = classes.get(a.class_id)
    data["class"] = {"id": cls.id, "name": cls.name} if cls else None
    data["teacher"] = _brief(users, a.teacher_id)
    for sub in data["submissions"]:
        sub["student"] = _brief(users, sub["student_id"])
    return data


def assignments_view(store: Store, assignments: List[Assignment]) -> List[dict]:
    classes = load_classes(store, [a.class_id for a in assignments])
    ids = [a.teacher_id for a in assignments] + [
        s.student_id for a in assignments for s in a.submissions
    ]
    users = load_users(store, ids)
    return [assignment_view(a, classes, users) for a in assignments]


def announcement_view(announcement: Announcement, authors: Dict[str, User]) -> dict:
    data = announcement.model_dump(mode="json")
    author = authors.get(announcement.author_id)
    data["author"] = author.brief() if author else None
    return data


def schedules_view(store: Store, schedules: List[Schedule]) -> List[dict]:
    ordered = sorted(schedules, key=lambda s: (s.date, s.start_time))
    users = load_users(
        store, [s.created_by for s in ordered] + [p for s in ordered for p in s.participants]
    )
    result = []
    for s in ordered:
        data = s.model_dump(mode="json")
        data["creator"] = _brief(users, s.created_by)
        data["participant_users"] = [users[p].brief() for p in s.participants if p in users]
        result.append(data)
    return result
