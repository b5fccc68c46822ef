from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.models.api.sessions import SessionResponse
from carematch.models.db.session_model import SessionRequestModel
from carematch.models.enums import SessionStatus
from carematch.repositories.base_repository import BaseRepository

OPEN_STATUSES = (SessionStatus.REQUESTED.value, SessionStatus.CONFIRMED.value)


class SessionRepository(BaseRepository[SessionRequestModel, SessionResponse]):
    """Repository for session requests between assigned pairs."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, SessionRequestModel)

    async def create_request(
        self,
        patient_id: UUID,
        counsellor_id: UUID,
        assignment_id: UUID,
        session_type: str,
        scheduled_for: datetime,
        duration_minutes: int,
        notes: Optional[str] = None,
    ) -> SessionResponse:
        return await self._insert(
            SessionRequestModel(
                patient_id=patient_id,
                counsellor_id=counsellor_id,
                assignment_id=assignment_id,
                session_type=session_type,
                status=SessionStatus.REQUESTED.value,
                scheduled_for=scheduled_for,
                duration_minutes=duration_minutes,
                notes=notes,
            )
        )

    async def list_sessions(
        self,
        patient_id: Optional[UUID] = None,
        counsellor_id: Optional[UUID] = None,
        status: Optional[str] = None,
        scheduled_from: Optional[datetime] = None,
        scheduled_until: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SessionResponse]:
        """Sessions in schedule order, optionally narrowed to one side of a pair."""
        query = select(self.model_class)
        if patient_id is not None:
            query = query.where(self.model_class.patient_id == patient_id)
        if counsellor_id is not None:
            query = query.where(self.model_class.counsellor_id == counsellor_id)
        if status:
            query = query.where(self.model_class.status == status)
        if scheduled_from is not None:
            query = query.where(self.model_class.scheduled_for >= scheduled_from)
        if scheduled_until is not None:
            query = query.where(self.model_class.scheduled_for < scheduled_until)
        query = query.order_by(
            self.model_class.scheduled_for.asc(), self.model_class.created_at.asc()
        )
        result = await self.db.execute(query.limit(limit).offset(offset))
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def cancel_open_for_assignment(
        self, assignment_id: UUID, cancelled_by: UUID, cancelled_at: datetime
    ) -> int:
        """Cancel every requested or confirmed session of an ended assignment."""
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.assignment_id == assignment_id,
                self.model_class.status.in_(OPEN_STATUSES),
            )
            .values(
                status=SessionStatus.CANCELLED.value,
                cancelled_at=cancelled_at,
                cancelled_by=cancelled_by,
                updated_at=cancelled_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return int(result.rowcount or 0)

    async def count_by_status(self) -> Dict[str, int]:
        query = select(self.model_class.status, func.count()).group_by(
            self.model_class.status
        )
        result = await self.db.execute(query)
        return {status: int(total) for status, total in result.all()}

    def _to_pydantic(self, db_model: Any) -> SessionResponse:
        """Convert SQLAlchemy SessionRequestModel to Pydantic SessionResponse."""
        return SessionResponse.model_validate(db_model)
