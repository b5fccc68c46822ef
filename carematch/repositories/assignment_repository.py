from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.exceptions import ConflictError
from carematch.models.api.assignments import AssignmentResponse
from carematch.models.db.assignment_model import AssignmentModel
from carematch.models.db.conversation_model import ConversationModel
from carematch.models.enums import AssignmentStatus
from carematch.repositories.base_repository import BaseRepository


class AssignmentRepository(BaseRepository[AssignmentModel, AssignmentResponse]):
    """Repository for counsellor assignment operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, AssignmentModel)

    async def create_active(
        self,
        patient_id: UUID,
        counsellor_id: UUID,
        assigned_by: Optional[UUID],
        notes: Optional[str] = None,
    ) -> AssignmentResponse:
        """Insert an active assignment.

        The partial unique index on active rows turns a concurrent
        double-booking into ConflictError(already_assigned).
        """
        db_model = AssignmentModel(
            patient_id=patient_id,
            counsellor_id=counsellor_id,
            status=AssignmentStatus.ACTIVE.value,
            assigned_by=assigned_by,
            notes=notes,
        )
        try:
            return await self._insert(db_model)
        except IntegrityError as e:
            raise ConflictError(
                ConflictError.ALREADY_ASSIGNED,
                "Patient already has an active assignment",
                patient_id=patient_id,
            ) from e

    async def get_active_for_patient(
        self, patient_id: UUID
    ) -> Optional[AssignmentResponse]:
        query = select(self.model_class).where(
            self.model_class.patient_id == patient_id,
            self.model_class.status == AssignmentStatus.ACTIVE.value,
        )
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def list_for_counsellor(
        self, counsellor_id: UUID, status: Optional[str] = None
    ) -> List[AssignmentResponse]:
        query = select(self.model_class).where(
            self.model_class.counsellor_id == counsellor_id
        )
        if status:
            query = query.where(self.model_class.status == status)
        query = query.order_by(self.model_class.assigned_at.desc())
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def active_counts_by_counsellor(self) -> dict:
        query = (
            select(self.model_class.counsellor_id, func.count())
            .where(self.model_class.status == AssignmentStatus.ACTIVE.value)
            .group_by(self.model_class.counsellor_id)
        )
        result = await self.db.execute(query)
        return {counsellor_id: int(total) for counsellor_id, total in result.all()}

    async def list_active_without_conversation(self) -> List[AssignmentResponse]:
        """Active assignments whose conversation was never created."""
        query = (
            select(self.model_class)
            .outerjoin(
                ConversationModel,
                ConversationModel.assignment_id == self.model_class.id,
            )
            .where(
                self.model_class.status == AssignmentStatus.ACTIVE.value,
                ConversationModel.id.is_(None),
            )
            .order_by(self.model_class.assigned_at)
        )
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    def _to_pydantic(self, db_model: Any) -> AssignmentResponse:
        """Convert SQLAlchemy AssignmentModel to Pydantic AssignmentResponse."""
        return AssignmentResponse.model_validate(db_model)
