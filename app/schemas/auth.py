"""
Pydantic schemas for authentication and user management.
"""

from pydantic import BaseModel, EmailStr
from typing import Optional

from app.models.entities import Role


class UserRegister(BaseModel):
    username: str
    email: EmailStr
    password: str
    role: Role
    student_id: Optional[str] = None


class UserLogin(BaseModel):
    username: str
    password: str
    role: Optional[Role] = None
