"""
Classes router: class creation, enrollment, rosters.
"""

from fastapi import APIRouter, Depends, status
from app.core.database import get_store
from app.core.dependencies import get_class_manager
from app.core.security import get_current_user, require_role
from app.models.entities import Role, User
from app.schemas.classes import ClassCreate, EnrollStudent
from app.services.classes import ClassManager
from app.services.store import Store
from app.services import views
from app.utils.response import success_response

router = APIRouter(prefix="/api/classes", tags=["Classes"])


@router.get("")
async def list_classes(
    user: User = Depends(get_current_user),
    manager: ClassManager = Depends(get_class_manager),
    store: Store = Depends(get_store),
):
    classes = manager.visible_classes(user)
    return success_response(data=views.classes_view(store, classes))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_class(
    body: ClassCreate,
    user: User = Depends(get_current_user),
    manager: ClassManager = Depends(get_class_manager),
    store: Store = Depends(get_store),
):
    record = manager.create_class(user, body.name, body.subject, body.teacher_id)
    return success_response(
        data=views.classes_view(store, [record])[0],
        message="Class created successfully",
    )


@router.post("/{class_id}/enroll")
async def enroll_student(
    class_id: str,
    body: EnrollStudent,
    user: User = Depends(get_current_user),
    manager: ClassManager = Depends(get_class_manager),
    store: Store = Depends(get_store),
):
    record = manager.enroll(user, class_id, body.student_id)
    return success_response(
        data=views.classes_view(store, [record])[0],
        message="Student enrolled successfully",
    )


@router.delete("/{class_id}/enroll/{student_id}")
async def remove_student(
    class_id: str,
    student_id: str,
    user: User = Depends(get_current_user),
    manager: ClassManager = Depends(get_class_manager),
):
    manager.unenroll(user, class_id, student_id)
    return success_response(message="Student removed from class successfully")


@router.get("/{class_id}/students")
async def class_students(
    class_id: str,
    user: User = Depends(get_current_user),
    manager: ClassManager = Depends(get_class_manager),
):
    students = manager.roster(user, class_id)
    return success_response(data=[s.public() for s in students])


@router.post("/{class_id}/self-enroll")
async def self_enroll(
    class_id: str,
    user: User = Depends(require_role([Role.STUDENT])),
    manager: ClassManager = Depends(get_class_manager),
):
    record = manager.self_enroll(user, class_id)
    return success_response(
        data={"id": record.id, "name": record.name, "subject": record.subject},
        message="Successfully enrolled in class",
    )
