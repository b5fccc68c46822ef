from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import utcnow
from carematch.models.api.conversations import ConversationResponse
from carematch.models.db.conversation_model import ConversationModel
from carematch.repositories.base_repository import BaseRepository


class ConversationRepository(BaseRepository[ConversationModel, ConversationResponse]):
    """Repository for conversation operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ConversationModel)

    async def create_for_assignment(
        self,
        patient_id: UUID,
        counsellor_id: UUID,
        counsellor_profile_id: UUID,
        assignment_id: Optional[UUID],
    ) -> ConversationResponse:
        """Create a new conversation between a patient and a counsellor."""
        return await self._insert(
            ConversationModel(
                patient_id=patient_id,
                counsellor_id=counsellor_id,
                counsellor_profile_id=counsellor_profile_id,
                assignment_id=assignment_id,
                is_active=True,
                message_count=0,
            )
        )

    async def get_by_assignment(
        self, assignment_id: UUID
    ) -> Optional[ConversationResponse]:
        query = select(self.model_class).where(
            self.model_class.assignment_id == assignment_id
        )
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def list_for_participant(
        self,
        profile_id: UUID,
        limit: Optional[int] = 50,
        offset: Optional[int] = 0,
    ) -> List[ConversationResponse]:
        """Conversations the profile takes part in, most recently active first."""
        query = (
            select(self.model_class)
            .where(
                or_(
                    self.model_class.patient_id == profile_id,
                    self.model_class.counsellor_profile_id == profile_id,
                )
            )
            .order_by(
                self.model_class.last_message_at.desc().nulls_last(),
                self.model_class.created_at.desc(),
            )
        )

        # Apply pagination
        if limit is not None:
            query = query.limit(limit)
        if offset is not None:
            query = query.offset(offset)

        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def next_sequence(self, conversation_id: UUID, sent_at: datetime) -> int:
        """Allocate the next message sequence. Caller must hold the row lock."""
        db_model = await self._get_model(conversation_id, for_update=True)
        if db_model is None:
            raise LookupError(f"Conversation {conversation_id} not found")
        db_model.message_count = db_model.message_count + 1
        db_model.last_message_at = sent_at
        await self.db.flush()
        return int(db_model.message_count)

    async def deactivate_for_assignment(self, assignment_id: UUID) -> int:
        stmt = (
            update(self.model_class)
            .where(self.model_class.assignment_id == assignment_id)
            .values(is_active=False, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    def _to_pydantic(self, db_model: Any) -> ConversationResponse:
        """Convert SQLAlchemy ConversationModel to Pydantic ConversationResponse."""
        return ConversationResponse.model_validate(db_model)
