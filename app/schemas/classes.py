from pydantic import BaseModel


class ClassCreate(BaseModel):
    name: str
    subject: str
    teacher_id: str


class EnrollStudent(BaseModel):
    student_id: str
