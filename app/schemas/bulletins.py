"""
Pydantic schemas for announcements and schedules.
"""

from pydantic import BaseModel
from typing import Optional, List

from app.models.entities import Role


class AnnouncementCreate(BaseModel):
    title: str
    content: str
    target_roles: List[Role] = []


class ScheduleCreate(BaseModel):
    title: str
    date: str
    start_time: str
    description: Optional[str] = None
    end_time: Optional[str] = None
    participants: List[str] = []
