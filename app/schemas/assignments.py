from pydantic import BaseModel
from typing import Optional


class AssignmentCreate(BaseModel):
    title: str
    description: str
    due_date: str
    class_id: str


class SubmissionGrade(BaseModel):
    grade: Optional[float] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    max_score: Optional[float] = None
