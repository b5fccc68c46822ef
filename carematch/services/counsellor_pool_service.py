import logging
from typing import Dict, FrozenSet, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import transaction, utcnow
from carematch.exceptions import ConflictError, NotFoundError, ValidationError
from carematch.models.api.counsellors import CounsellorCreateRequest, CounsellorResponse
from carematch.models.enums import CounsellorStatus, Gender, Role
from carematch.repositories.counsellor_repository import CounsellorRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.roles import Capability, require_capability, require_owner_or_capability

logger = logging.getLogger(__name__)

STATUS_TRANSITIONS: Dict[CounsellorStatus, FrozenSet[CounsellorStatus]] = {
    CounsellorStatus.PENDING: frozenset(
        {CounsellorStatus.APPROVED, CounsellorStatus.REJECTED}
    ),
    CounsellorStatus.APPROVED: frozenset({CounsellorStatus.SUSPENDED}),
    CounsellorStatus.SUSPENDED: frozenset({CounsellorStatus.APPROVED}),
    CounsellorStatus.REJECTED: frozenset(),
}


class CounsellorPoolService:
    """Service over the counsellor pool: candidate queries and administration."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.counsellor_repo = CounsellorRepository(db)
        self.profile_repo = ProfileRepository(db)

    async def find_candidates(
        self, gender: Gender, limit: Optional[int] = None
    ) -> List[CounsellorResponse]:
        """Eligible counsellors of ``gender``, best candidate first."""
        return await self.counsellor_repo.find_candidates(gender.value, limit=limit)

    async def get_counsellor(self, counsellor_id: UUID) -> CounsellorResponse:
        counsellor = await self.counsellor_repo.get_by_id(counsellor_id)
        if not counsellor:
            raise NotFoundError("Counsellor", counsellor_id)
        return counsellor

    async def list_counsellors(
        self,
        status: Optional[CounsellorStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[CounsellorResponse]:
        return await self.counsellor_repo.list_counsellors(
            status=status.value if status else None, limit=limit, offset=offset
        )

    async def register_counsellor(
        self, request: CounsellorCreateRequest
    ) -> CounsellorResponse:
        """Create a pending counsellor record for a counsellor profile."""
        async with transaction(self.db):
            profile = await self.profile_repo.get_by_id(request.profile_id)
            if not profile:
                raise NotFoundError("Profile", request.profile_id)
            if profile.role != Role.COUNSELLOR:
                raise ValidationError(["role"], "Profile is not a counsellor")
            gender = request.gender or profile.gender
            if gender is None:
                raise ValidationError(["gender"], "Counsellor gender is required")
            if await self.counsellor_repo.get_by_profile_id(profile.id):
                raise ConflictError(
                    ConflictError.INTEGRITY_VIOLATION,
                    "Counsellor already registered for this profile",
                    profile_id=profile.id,
                )
            counsellor = await self.counsellor_repo.create_counsellor(
                profile_id=profile.id,
                gender=gender.value,
                max_patients=request.max_patients,
                specializations=request.specializations,
                bio=request.bio,
            )
        logger.info("Registered counsellor %s (pending)", counsellor.id)
        return counsellor

    async def approve(self, counsellor_id: UUID, actor_id: UUID) -> CounsellorResponse:
        return await self._transition(counsellor_id, CounsellorStatus.APPROVED, actor_id)

    async def suspend(self, counsellor_id: UUID, actor_id: UUID) -> CounsellorResponse:
        return await self._transition(counsellor_id, CounsellorStatus.SUSPENDED, actor_id)

    async def reject(self, counsellor_id: UUID, actor_id: UUID) -> CounsellorResponse:
        return await self._transition(counsellor_id, CounsellorStatus.REJECTED, actor_id)

    async def set_availability(
        self, counsellor_id: UUID, is_available: bool, actor_id: UUID
    ) -> CounsellorResponse:
        """Counsellors toggle their own availability; admins toggle anyone's."""
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            counsellor = await self.get_counsellor(counsellor_id)
            require_owner_or_capability(
                actor, counsellor.profile_id, Capability.MANAGE_COUNSELLORS
            )
            updated = await self.counsellor_repo.update(
                counsellor_id, {"is_available": is_available}
            )
        if not updated:
            raise NotFoundError("Counsellor", counsellor_id)
        return updated

    async def set_capacity(
        self, counsellor_id: UUID, max_patients: int, actor_id: UUID
    ) -> CounsellorResponse:
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            require_capability(actor, Capability.MANAGE_COUNSELLORS)
            counsellor = await self.get_counsellor(counsellor_id)
            if not await self.counsellor_repo.set_max_patients(
                counsellor_id, max_patients
            ):
                raise ConflictError(
                    ConflictError.CAPACITY_BELOW_LOAD,
                    "Capacity cannot drop below the current number of patients",
                    current_patients=counsellor.current_patients,
                    max_patients=max_patients,
                )
            updated = await self.get_counsellor(counsellor_id)
        return updated

    async def _transition(
        self, counsellor_id: UUID, target: CounsellorStatus, actor_id: UUID
    ) -> CounsellorResponse:
        async with transaction(self.db):
            actor = await self._require_actor(actor_id)
            require_capability(actor, Capability.MANAGE_COUNSELLORS)
            counsellor = await self.counsellor_repo.get_by_id(
                counsellor_id, for_update=True
            )
            if not counsellor:
                raise NotFoundError("Counsellor", counsellor_id)
            if target not in STATUS_TRANSITIONS[counsellor.status]:
                raise ConflictError(
                    ConflictError.INVALID_TRANSITION,
                    f"Cannot move counsellor from {counsellor.status.value} "
                    f"to {target.value}",
                    counsellor_id=counsellor_id,
                )
            approved_by = actor.id if target == CounsellorStatus.APPROVED else None
            updated = await self.counsellor_repo.set_status(
                counsellor_id,
                target.value,
                approved_by=approved_by,
                approved_at=utcnow() if approved_by else None,
            )
        if not updated:
            raise NotFoundError("Counsellor", counsellor_id)
        logger.info(
            "Counsellor %s moved to %s by %s", counsellor_id, target.value, actor_id
        )
        return updated

    async def _require_actor(self, actor_id: UUID):
        actor = await self.profile_repo.get_by_id(actor_id)
        if not actor:
            raise NotFoundError("Profile", actor_id)
        return actor
