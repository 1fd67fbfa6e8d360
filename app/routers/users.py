"""
User administration router: admin only.

Admin can:
- Create users of any role
- Delete users (not themselves)
- List teachers, students and classes
"""

from fastapi import APIRouter, Depends, status
from app.core.database import get_store
from app.core.security import get_current_user, get_identity
from app.models.entities import Role, User
from app.schemas.auth import UserRegister
from app.services.identity import IdentityStore
from app.services.policy import Action, authorize
from app.services.store import Store
from app.services import views
from app.utils.response import success_response

router = APIRouter(prefix="/api", tags=["Users"])


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserRegister,
    user: User = Depends(get_current_user),
    identity: IdentityStore = Depends(get_identity),
):
    created = identity.create_user(
        user, body.username.strip(), body.email.lower(), body.password, body.role, body.student_id,
    )
    return success_response(data=created.public(), message="User created successfully")


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    user: User = Depends(get_current_user),
    identity: IdentityStore = Depends(get_identity),
):
    identity.delete_user(user, user_id)
    return success_response(message="User deleted successfully")


@router.get("/admin-data")
async def admin_data(
    user: User = Depends(get_current_user),
    store: Store = Depends(get_store),
):
    authorize(user, Action.VIEW_ADMIN_DATA)
    classes = sorted(store.list_classes(), key=lambda c: c.name)
    return success_response(data={
        "teachers": [u.public() for u in store.list_users(role=Role.TEACHER)],
        "students": [u.public() for u in store.list_users(role=Role.STUDENT)],
        "classes": views.classes_view(store, classes),
    })
