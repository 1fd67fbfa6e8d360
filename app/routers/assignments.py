"""
Assignments router: creation, submission, grading, deletion.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from app.core.database import get_store
from app.core.dependencies import get_assignment_engine
from app.core.security import get_current_user
from app.models.entities import User
from app.schemas.assignments import AssignmentCreate, SubmissionGrade
from app.services.assignments import AssignmentEngine
from app.services.files import FileStore, get_file_store, read_upload
from app.services.store import Store
from app.services import views
from app.utils.response import success_response

router = APIRouter(prefix="/api/assignments", tags=["Assignments"])


@router.get("")
async def list_assignments(
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    store: Store = Depends(get_store),
):
    assignments = engine.visible_assignments(user)
    return success_response(data=views.assignments_view(store, assignments))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    body: AssignmentCreate,
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    store: Store = Depends(get_store),
):
    assignment = engine.create_assignment(
        user, body.title, body.description, body.due_date, body.class_id,
    )
    return success_response(
        data=views.assignments_view(store, [assignment])[0],
        message="Assignment created successfully",
    )


@router.post("/{assignment_id}/submit")
async def submit_assignment(
    assignment_id: str,
    file: Optional[UploadFile] = File(None),
    description: Optional[str] = Form(None),
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
    file_store: FileStore = Depends(get_file_store),
):
    data, filename = None, None
    if file is not None and file.filename:
        data = await read_upload(file, file_store.max_bytes)
        filename = file.filename

    submission = engine.submit_upload(user, assignment_id, data, filename, description)
    return success_response(
        data=submission.model_dump(mode="json"),
        message="Assignment submitted successfully",
    )


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    engine.delete_assignment(user, assignment_id)
    return success_response(message="Assignment deleted successfully")


@router.post("/{assignment_id}/submissions/{student_id}/grade")
async def grade_submission(
    assignment_id: str,
    student_id: str,
    body: SubmissionGrade,
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    submission = engine.grade(
        user, assignment_id, student_id,
        grade=body.grade,
        score=body.score,
        feedback=body.feedback,
        max_score=body.max_score,
    )
    return success_response(
        data=submission.model_dump(mode="json"),
        message="Grade submitted successfully",
    )


@router.get("/{assignment_id}/submissions")
async def get_submissions(
    assignment_id: str,
    user: User = Depends(get_current_user),
    engine: AssignmentEngine = Depends(get_assignment_engine),
):
    return success_response(data=engine.submissions_overview(user, assignment_id))
