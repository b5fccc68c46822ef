from typing import List
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import transaction, utcnow
from carematch.exceptions import NotFoundError, PermissionDeniedError
from carematch.models.api.notifications import NotificationResponse
from carematch.repositories.notification_repository import NotificationRepository
from carematch.repositories.profile_repository import ProfileRepository


class NotificationService:
    """Recipient-side access to notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notification_repo = NotificationRepository(db)
        self.profile_repo = ProfileRepository(db)

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[NotificationResponse]:
        return await self.notification_repo.list_for_user(
            user_id, unread_only=unread_only, limit=limit, offset=offset
        )

    async def mark_read(
        self, notification_id: UUID, actor_id: UUID
    ) -> NotificationResponse:
        """Only the recipient may mark a notification read. Idempotent."""
        actor = await self.profile_repo.get_by_id(actor_id)
        if not actor:
            raise NotFoundError("Profile", actor_id)

        async with transaction(self.db):
            notification = await self.notification_repo.get_by_id(
                notification_id, for_update=True
            )
            if not notification:
                raise NotFoundError("Notification", notification_id)
            if notification.user_id != actor_id:
                raise PermissionDeniedError(actor.role.value, "mark_notification_read")
            if notification.is_read:
                return notification
            updated = await self.notification_repo.update(
                notification_id, {"is_read": True, "read_at": utcnow()}
            )
            if not updated:
                raise NotFoundError("Notification", notification_id)
        return updated

    async def mark_all_read(self, user_id: UUID) -> int:
        async with transaction(self.db):
            return await self.notification_repo.mark_all_read(user_id, utcnow())
