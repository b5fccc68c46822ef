from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.models.api.messages import MessageResponse
from carematch.models.db.conversation_model import ConversationModel
from carematch.models.db.message_model import MessageModel
from carematch.repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository[MessageModel, MessageResponse]):
    """Repository for message operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, MessageModel)

    async def append(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        content: str,
        message_type: str,
        sequence: int,
        created_at: datetime,
    ) -> MessageResponse:
        return await self._insert(
            MessageModel(
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                message_type=message_type,
                sequence=sequence,
                is_read=False,
                created_at=created_at,
            )
        )

    async def get_by_conversation(
        self,
        conversation_id: UUID,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[MessageResponse]:
        """Get messages for a conversation in append order."""
        query = (
            select(self.model_class)
            .where(self.model_class.conversation_id == conversation_id)
            .order_by(self.model_class.sequence)
        )  # type: ignore
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)
        result = await self.db.execute(query)
        db_models = result.scalars().all()
        return [self._to_pydantic(db_model) for db_model in db_models]

    async def mark_read(
        self, conversation_id: UUID, reader_id: UUID, read_at: datetime
    ) -> int:
        """Mark every unread message not sent by the reader as read."""
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.conversation_id == conversation_id,
                self.model_class.sender_id != reader_id,
                self.model_class.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def count_unread_for_reader(self, reader_id: UUID) -> int:
        """Unread messages addressed to the reader across all their conversations."""
        query = (
            select(func.count())
            .select_from(self.model_class)
            .join(
                ConversationModel,
                ConversationModel.id == self.model_class.conversation_id,
            )
            .where(
                (ConversationModel.patient_id == reader_id)
                | (ConversationModel.counsellor_profile_id == reader_id),
                self.model_class.sender_id != reader_id,
                self.model_class.is_read.is_(False),
            )
        )
        result = await self.db.execute(query)
        return int(result.scalar_one())

    def _to_pydantic(self, db_model: Any) -> MessageResponse:
        """Convert SQLAlchemy MessageModel to Pydantic MessageResponse."""
        return MessageResponse.model_validate(db_model)
