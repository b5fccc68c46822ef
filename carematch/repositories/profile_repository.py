from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.models.api.profiles import ProfileResponse
from carematch.models.db.profile_model import ProfileModel
from carematch.repositories.base_repository import BaseRepository


class ProfileRepository(BaseRepository[ProfileModel, ProfileResponse]):
    """Repository for profile operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, ProfileModel)

    async def create_profile(
        self,
        email: str,
        full_name: str,
        role: str,
        gender: Optional[str] = None,
        phone: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        emergency_contact: Optional[str] = None,
        emergency_phone: Optional[str] = None,
        profile_completed: bool = False,
        is_active: bool = True,
    ) -> ProfileResponse:
        """Insert a new profile."""
        return await self._insert(
            ProfileModel(
                email=email,
                full_name=full_name,
                role=role,
                gender=gender,
                phone=phone,
                date_of_birth=date_of_birth,
                emergency_contact=emergency_contact,
                emergency_phone=emergency_phone,
                profile_completed=profile_completed,
                is_active=is_active,
            )
        )

    async def get_by_email(self, email: str) -> Optional[ProfileResponse]:
        query = select(self.model_class).where(self.model_class.email == email)
        result = await self.db.execute(query)
        db_model = result.scalar_one_or_none()
        return self._to_pydantic(db_model) if db_model else None

    async def count_by_role(self) -> Dict[str, int]:
        query = select(self.model_class.role, func.count()).group_by(
            self.model_class.role
        )
        result = await self.db.execute(query)
        return {role: int(total) for role, total in result.all()}

    async def list_profiles(
        self, role: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[ProfileResponse]:
        query = select(self.model_class).order_by(self.model_class.created_at)
        if role:
            query = query.where(self.model_class.role == role)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return [self._to_pydantic(db_model) for db_model in result.scalars().all()]

    def _to_pydantic(self, db_model: Any) -> ProfileResponse:
        """Convert SQLAlchemy ProfileModel to Pydantic ProfileResponse."""
        return ProfileResponse.model_validate(db_model)
