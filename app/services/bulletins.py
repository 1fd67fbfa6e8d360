"""
Announcements and schedules: creation plus the listing endpoints.

The listing rules here are wider than the dashboard's:
- announcements also include the ones the actor wrote
- admins and teachers see every schedule
"""

import logging
from typing import List, Optional

from app.core.errors import ValidationError
from app.models.entities import Announcement, Role, Schedule, User
from app.services.policy import Action, authorize
from app.services.store import Store
from app.services import views
from app.utils.dates import parse_timestamp

logger = logging.getLogger(__name__)


class BulletinService:
    def __init__(self, store: Store):
        self.store = store

    # ---- announcements ----
    def create_announcement(
        self, actor: User, title: str, content: str, target_roles: Optional[List[Role]] = None,
    ) -> dict:
        if not title or not content:
            raise ValidationError("Title and content are required")
        authorize(actor, Action.CREATE_ANNOUNCEMENT,
                  message="Access denied. Only admins and teachers can create announcements.")

        announcement = Announcement(
            title=title,
            content=content,
            author_id=actor.id,
            target_roles=list(target_roles or []),
        )
        self.store.insert_announcement(announcement)
        logger.info("Announcement %s created by %s", announcement.id, actor.id)
        return views.announcement_view(announcement, {actor.id: actor})

    def list_announcements(self, actor: User) -> List[dict]:
        visible = [
            a for a in self.store.list_announcements()
            if a.visible_to(actor.role) or a.author_id == actor.id
        ]
        visible.sort(key=lambda a: a.created_at, reverse=True)
        authors = views.load_users(self.store, [a.author_id for a in visible])
        return [views.announcement_view(a, authors) for a in visible]

    # ---- schedules ----
    def create_schedule(
        self,
        actor: User,
        title: str,
        date,
        start_time: str,
        description: Optional[str] = None,
        end_time: Optional[str] = None,
        participants: Optional[List[str]] = None,
    ) -> dict:
        if not title or not date or not start_time:
            raise ValidationError("Title, date and start time are required")

        schedule = Schedule(
            title=title,
            description=description,
            date=parse_timestamp(date),
            start_time=start_time,
            end_time=end_time,
            created_by=actor.id,
            participants=list(dict.fromkeys(participants or [])),
        )
        self.store.insert_schedule(schedule)
        logger.info("Schedule %s created by %s", schedule.id, actor.id)
        return views.schedules_view(self.store, [schedule])[0]

    def list_schedules(self, actor: User) -> List[dict]:
        if actor.role in (Role.ADMIN, Role.TEACHER):
            schedules = self.store.list_schedules()
        else:
            schedules = self.store.list_schedules(user_id=actor.id)
        return views.schedules_view(self.store, schedules)
