import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carematch.exceptions import NotFoundError
from carematch.models.api.matching import OversightStats
from carematch.models.enums import AssignmentStatus
from carematch.repositories.assignment_repository import AssignmentRepository
from carematch.repositories.conversation_repository import ConversationRepository
from carematch.repositories.counsellor_repository import CounsellorRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.repositories.session_repository import SessionRepository
from carematch.roles import Capability, require_capability

logger = logging.getLogger(__name__)


class OversightService:
    """Read-only counts for the admin dashboard."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.profile_repo = ProfileRepository(db)
        self.counsellor_repo = CounsellorRepository(db)
        self.assignment_repo = AssignmentRepository(db)
        self.conversation_repo = ConversationRepository(db)
        self.session_repo = SessionRepository(db)

    async def stats(self, actor_id: UUID) -> OversightStats:
        actor = await self.profile_repo.get_by_id(actor_id)
        if not actor:
            raise NotFoundError("Profile", actor_id)
        require_capability(actor, Capability.VIEW_OVERSIGHT)

        loads = await self.counsellor_repo.load_by_id()
        active = await self.assignment_repo.active_counts_by_counsellor()

        # Recorded load must equal the number of active assignments
        mismatches = sorted(
            (
                counsellor_id
                for counsellor_id, load in loads.items()
                if load != active.get(counsellor_id, 0)
            ),
            key=str,
        )
        if mismatches:
            logger.warning("Capacity mismatch for counsellors: %s", mismatches)

        return OversightStats(
            profiles_by_role=await self.profile_repo.count_by_role(),
            counsellors_by_status=await self.counsellor_repo.count_by_status(),
            active_assignments=await self.assignment_repo.count(
                status=AssignmentStatus.ACTIVE.value
            ),
            conversations=await self.conversation_repo.count(),
            sessions_by_status=await self.session_repo.count_by_status(),
            capacity_mismatches=mismatches,
        )
