from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import exists, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from carematch.database import utcnow
from carematch.models.api.counsellors import CounsellorResponse
from carematch.models.db.counsellor_model import CounsellorModel
from carematch.models.db.profile_model import ProfileModel
from carematch.models.enums import CounsellorStatus
from carematch.repositories.base_repository import BaseRepository


class CounsellorRepository(BaseRepository[CounsellorModel, CounsellorResponse]):
    """Repository for counsellor operations, including the matching pool query."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, CounsellorModel)

    async def create_counsellor(
        self,
        profile_id: UUID,
        gender: str,
        max_patients: int,
        specializations: List[str],
        bio: Optional[str] = None,
        status: str = CounsellorStatus.PENDING.value,
        is_available: bool = True,
        rating: float = 0.0,
    ) -> CounsellorResponse:
        """Insert a new counsellor row."""
        return await self._insert(
            CounsellorModel(
                profile_id=profile_id,
                gender=gender,
                status=status,
                is_available=is_available,
                max_patients=max_patients,
                current_patients=0,
                rating=rating,
                specializations=specializations,
                bio=bio,
            )
        )

    async def get_by_profile_id(self, profile_id: UUID) -> Optional[CounsellorResponse]:
        query = self._select().where(self.model_class.profile_id == profile_id)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def find_candidates(
        self, gender: str, limit: Optional[int] = None
    ) -> List[CounsellorResponse]:
        """Approved, available counsellors with spare capacity of one gender.

        Counsellors whose profile was deactivated are never candidates.
        Ordered by rating (desc), then current load (asc); creation time and id
        make the order total.
        """
        query = (
            self._select()
            .where(
                self.model_class.gender == gender,
                self.model_class.status == CounsellorStatus.APPROVED.value,
                self.model_class.is_available.is_(True),
                self.model_class.current_patients < self.model_class.max_patients,
                self._profile_active(),
            )
            .order_by(
                self.model_class.rating.desc(),
                self.model_class.current_patients.asc(),
                self.model_class.created_at.asc(),
                self.model_class.id.asc(),
            )
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def list_counsellors(
        self, status: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[CounsellorResponse]:
        query = self._select().order_by(self.model_class.created_at)
        if status:
            query = query.where(self.model_class.status == status)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    async def claim_slot(self, counsellor_id: UUID) -> bool:
        """Atomically take one patient slot if the counsellor is still eligible.

        Returns False when the conditional update matched no row (full,
        unavailable, no longer approved or deactivated).
        """
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.id == counsellor_id,
                self.model_class.status == CounsellorStatus.APPROVED.value,
                self.model_class.is_available.is_(True),
                self.model_class.current_patients < self.model_class.max_patients,
                self._profile_active(),
            )
            .values(
                current_patients=self.model_class.current_patients + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def release_slot(self, counsellor_id: UUID) -> bool:
        """Give back one patient slot. Never drops below zero."""
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.id == counsellor_id,
                self.model_class.current_patients > 0,
            )
            .values(
                current_patients=self.model_class.current_patients - 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def set_max_patients(self, counsellor_id: UUID, max_patients: int) -> bool:
        """Change capacity unless it would fall below the current load."""
        stmt = (
            update(self.model_class)
            .where(
                self.model_class.id == counsellor_id,
                self.model_class.current_patients <= max_patients,
            )
            .values(max_patients=max_patients, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def set_status(
        self,
        counsellor_id: UUID,
        status: str,
        approved_by: Optional[UUID] = None,
        approved_at: Optional[datetime] = None,
    ) -> Optional[CounsellorResponse]:
        values: Dict[str, Any] = {"status": status}
        if approved_by is not None:
            values["approved_by"] = approved_by
            values["approved_at"] = approved_at or utcnow()
        return await self.update(counsellor_id, values)

    async def count_by_status(self) -> Dict[str, int]:
        query = select(self.model_class.status, func.count()).group_by(
            self.model_class.status
        )
        result = await self.db.execute(query)
        return {status: int(total) for status, total in result.all()}

    async def load_by_id(self) -> Dict[UUID, int]:
        """Map of counsellor id to its recorded current_patients."""
        query = select(self.model_class.id, self.model_class.current_patients)
        result = await self.db.execute(query)
        return {counsellor_id: int(load) for counsellor_id, load in result.all()}

    async def _get_model(
        self, id: UUID, for_update: bool = False
    ) -> Optional[CounsellorModel]:
        query = (
            self._select()
            .where(self.model_class.id == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=self.model_class)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _profile_active(self) -> Any:
        return exists().where(
            ProfileModel.id == self.model_class.profile_id,
            ProfileModel.is_active.is_(True),
        )

    def _select(self) -> Any:
        return select(self.model_class).options(selectinload(self.model_class.profile))

    def _to_pydantic(self, db_model: Any) -> CounsellorResponse:
        """Convert SQLAlchemy CounsellorModel to Pydantic CounsellorResponse."""
        return CounsellorResponse(
            id=db_model.id,
            profile_id=db_model.profile_id,
            full_name=db_model.profile.full_name if db_model.profile else None,
            gender=db_model.gender,
            status=db_model.status,
            is_available=db_model.is_available,
            max_patients=db_model.max_patients,
            current_patients=db_model.current_patients,
            rating=db_model.rating,
            total_reviews=db_model.total_reviews,
            specializations=db_model.specializations or [],
            bio=db_model.bio,
            approved_by=db_model.approved_by,
            approved_at=db_model.approved_at,
            created_at=db_model.created_at,
            updated_at=db_model.updated_at,
        )
