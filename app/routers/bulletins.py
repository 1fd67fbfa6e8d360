"""
Announcements + schedules router.
"""

from fastapi import APIRouter, Depends, status
from app.core.dependencies import get_bulletins
from app.core.security import get_current_user
from app.models.entities import User
from app.schemas.bulletins import AnnouncementCreate, ScheduleCreate
from app.services.bulletins import BulletinService
from app.utils.response import success_response

router = APIRouter(prefix="/api", tags=["Announcements & Schedules"])


# ===== ANNOUNCEMENTS =====

@router.post("/announcements", status_code=status.HTTP_201_CREATED)
async def create_announcement(
    body: AnnouncementCreate,
    user: User = Depends(get_current_user),
    bulletins: BulletinService = Depends(get_bulletins),
):
    data = bulletins.create_announcement(user, body.title, body.content, body.target_roles)
    return success_response(data=data, message="Announcement created successfully")


@router.get("/announcements")
async def list_announcements(
    user: User = Depends(get_current_user),
    bulletins: BulletinService = Depends(get_bulletins),
):
    return success_response(data=bulletins.list_announcements(user))


# ===== SCHEDULES =====

@router.post("/schedules", status_code=status.HTTP_201_CREATED)
async def create_schedule(
    body: ScheduleCreate,
    user: User = Depends(get_current_user),
    bulletins: BulletinService = Depends(get_bulletins),
):
    data = bulletins.create_schedule(
        user, body.title, body.date, body.start_time,
        description=body.description,
        end_time=body.end_time,
        participants=body.participants,
    )
    return success_response(data=data, message="Schedule created successfully")


@router.get("/schedules")
async def list_schedules(
    user: User = Depends(get_current_user),
    bulletins: BulletinService = Depends(get_bulletins),
):
    return success_response(data=bulletins.list_schedules(user))
