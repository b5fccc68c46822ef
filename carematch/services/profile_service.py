import logging
from datetime import date
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carematch.config import MatchingPolicy, load_policy
from carematch.database import transaction
from carematch.exceptions import ConflictError, NotFoundError, ValidationError
from carematch.models.api.profiles import (
    EligibilityResponse,
    ProfileCompletionRequest,
    ProfileCreateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
)
from carematch.models.enums import Role
from carematch.repositories.profile_repository import ProfileRepository
from carematch.roles import Capability, require_capability, require_owner_or_capability
from carematch.services.eligibility_service import check_eligibility

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for the profile store: registration, updates and completion."""

    def __init__(self, db: AsyncSession, policy: Optional[MatchingPolicy] = None):
        self.db = db
        self.policy = policy or load_policy()
        self.profile_repo = ProfileRepository(db)

    async def require_profile(self, profile_id: UUID) -> ProfileResponse:
        profile = await self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Profile", profile_id)
        return profile

    async def create_profile(self, request: ProfileCreateRequest) -> ProfileResponse:
        async with transaction(self.db):
            if await self.profile_repo.get_by_email(request.email):
                raise ConflictError(
                    ConflictError.INTEGRITY_VIOLATION,
                    "A profile with this email already exists",
                    email=request.email,
                )
            profile = await self.profile_repo.create_profile(
                email=request.email,
                full_name=request.full_name,
                role=request.role.value,
                gender=request.gender.value if request.gender else None,
                phone=request.phone,
                date_of_birth=request.date_of_birth,
                emergency_contact=request.emergency_contact,
                emergency_phone=request.emergency_phone,
            )
        logger.info("Registered %s profile %s", profile.role.value, profile.id)
        return profile

    async def get_profile(self, profile_id: UUID) -> ProfileResponse:
        return await self.require_profile(profile_id)

    async def update_profile(
        self, profile_id: UUID, request: ProfileUpdateRequest, actor_id: UUID
    ) -> ProfileResponse:
        """Apply a partial update.

        A completed profile whose required fields are blanked out loses its
        completion flag.
        """
        actor = await self.require_profile(actor_id)
        require_owner_or_capability(actor, profile_id, Capability.MANAGE_ASSIGNMENTS)

        async with transaction(self.db):
            profile = await self.require_profile(profile_id)
            values = self._column_values(request.model_dump(exclude_unset=True))
            merged = profile.model_copy(update=values)
            if profile.profile_completed and profile.role == Role.PATIENT:
                values["profile_completed"] = self._eligibility(merged).eligible
            updated = await self.profile_repo.update(profile_id, values)
        if not updated:
            raise NotFoundError("Profile", profile_id)
        return updated

    async def complete_profile(
        self, profile_id: UUID, request: ProfileCompletionRequest, actor_id: UUID
    ) -> ProfileResponse:
        """Store the safety fields and mark the profile completed.

        Nothing is written unless the result would be eligible.
        """
        actor = await self.require_profile(actor_id)
        require_owner_or_capability(actor, profile_id, Capability.MANAGE_ASSIGNMENTS)

        async with transaction(self.db):
            profile = await self.require_profile(profile_id)
            values = self._column_values(request.model_dump(exclude_unset=True))
            merged = profile.model_copy(update=values)
            result = self._eligibility(merged)
            if not result.eligible:
                raise ValidationError(result.reasons, "Profile is incomplete")
            values["profile_completed"] = True
            updated = await self.profile_repo.update(profile_id, values)
        if not updated:
            raise NotFoundError("Profile", profile_id)
        logger.info("Profile %s completed", profile_id)
        return updated

    async def get_eligibility(
        self, profile_id: UUID, today: Optional[date] = None
    ) -> EligibilityResponse:
        profile = await self.require_profile(profile_id)
        return self._eligibility(profile, today)

    async def deactivate_profile(
        self, profile_id: UUID, actor_id: UUID
    ) -> ProfileResponse:
        """Soft-delete: profiles are never physically removed."""
        actor = await self.require_profile(actor_id)
        require_capability(actor, Capability.MANAGE_COUNSELLORS)
        async with transaction(self.db):
            updated = await self.profile_repo.update(profile_id, {"is_active": False})
            if not updated:
                raise NotFoundError("Profile", profile_id)
        return updated

    def _eligibility(
        self, profile: ProfileResponse, today: Optional[date] = None
    ) -> EligibilityResponse:
        return check_eligibility(
            profile, today=today, minimum_age=self.policy.minimum_patient_age
        )

    def _column_values(self, data: Dict[str, Any]) -> Dict[str, Any]:
        # Enums are stored by value
        return {
            key: value.value if hasattr(value, "value") else value
            for key, value in data.items()
        }
