from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.models.api.notifications import NotificationResponse
from carematch.models.db.notification_model import NotificationModel
from carematch.repositories.base_repository import BaseRepository


class NotificationRepository(BaseRepository[NotificationModel, NotificationResponse]):
    """Repository for notifications; ``enqueue`` is the delivery sink."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, NotificationModel)

    async def enqueue(
        self,
        user_id: UUID,
        title: str,
        message: str,
        type: str,
        action_url: Optional[str] = None,
    ) -> NotificationResponse:
        return await self._insert(
            NotificationModel(
                user_id=user_id,
                title=title,
                message=message,
                type=type,
                is_read=False,
                action_url=action_url,
            )
        )

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[NotificationResponse]:
        query = select(self.model_class).where(self.model_class.user_id == user_id)
        if unread_only:
            query = query.where(self.model_class.is_read.is_(False))
        query = query.order_by(self.model_class.created_at.desc())
        result = await self.db.execute(query.limit(limit).offset(offset))
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def mark_all_read(self, user_id: UUID, read_at: datetime) -> int:
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.user_id == user_id,
                self.model_class.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    def _to_pydantic(self, db_model: Any) -> NotificationResponse:
        """Convert SQLAlchemy NotificationModel to Pydantic NotificationResponse."""
        return NotificationResponse.model_validate(db_model)
