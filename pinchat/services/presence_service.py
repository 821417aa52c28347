from datetime import datetime, timedelta, timezone
from uuid import UUID
from typing import List

from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from pinchat.core.config import settings
from pinchat.models.room_membership import RoomMembership
from pinchat.models.user import User


class PresenceService:
    """
    Derives "online" from the last time a user made an authenticated request.
    The signal is approximate and never used for authorization.
    """

    def __init__(self, db: AsyncSession, window_seconds: int = settings.presence_window_seconds):
        self.db = db
        self.window = timedelta(seconds=window_seconds)

    async def touch(self, user_id: UUID, now: datetime = None) -> None:
        """Record activity for a user."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(last_active_at=now or datetime.now(timezone.utc))
        )
        await self.db.commit()

    async def list_online(self, room_id: UUID, exclude_user_id: UUID = None, now: datetime = None) -> List[User]:
        """Participants of the room seen within the presence window, ordered by username."""
        threshold = (now or datetime.now(timezone.utc)) - self.window
        query = (
            select(User)
            .join(RoomMembership, RoomMembership.user_id == User.id)
            .filter(
                and_(
                    RoomMembership.room_id == room_id,
                    User.last_active_at >= threshold,
                )
            )
            .order_by(User.username)
        )
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())
