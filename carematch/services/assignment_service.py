import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carematch import events
from carematch.clients.base_event_client import BaseEventClient
from carematch.config import MatchingPolicy, load_policy
from carematch.database import transaction, utcnow
from carematch.exceptions import (
    CapacityExceededError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from carematch.models.api.assignments import AssignmentResponse
from carematch.models.api.profiles import ProfileResponse
from carematch.models.enums import AssignmentStatus
from carematch.repositories.assignment_repository import AssignmentRepository
from carematch.repositories.conversation_repository import ConversationRepository
from carematch.repositories.counsellor_repository import CounsellorRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.repositories.session_repository import SessionRepository
from carematch.roles import Capability, has_capability

logger = logging.getLogger(__name__)


class AssignmentService:
    """Service for the assignment lifecycle.

    Creating an assignment and taking a counsellor slot happen in the same
    transaction; ending one gives the slot back.
    """

    def __init__(
        self,
        db: AsyncSession,
        events_client: Optional[BaseEventClient] = None,
        policy: Optional[MatchingPolicy] = None,
    ):
        self.db = db
        self.events_client = events_client
        self.policy = policy or load_policy()
        self.assignment_repo = AssignmentRepository(db)
        self.counsellor_repo = CounsellorRepository(db)
        self.conversation_repo = ConversationRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.session_repo = SessionRepository(db)

    async def create_assignment(
        self,
        patient_id: UUID,
        counsellor_id: UUID,
        actor_id: Optional[UUID] = None,
        notes: Optional[str] = None,
    ) -> AssignmentResponse:
        """Insert an active assignment and take one slot from the counsellor.

        Runs inside the caller's transaction and does not commit. Raises
        ConflictError(already_assigned) when the patient is already paired and
        CapacityExceededError when the counsellor filled up first.
        """
        existing = await self.assignment_repo.get_active_for_patient(patient_id)
        if existing:
            raise ConflictError(
                ConflictError.ALREADY_ASSIGNED,
                "Patient already has an active assignment",
                patient_id=patient_id,
                assignment_id=existing.id,
            )

        if not await self.counsellor_repo.claim_slot(counsellor_id):
            raise CapacityExceededError(counsellor_id)

        assignment = await self.assignment_repo.create_active(
            patient_id=patient_id,
            counsellor_id=counsellor_id,
            assigned_by=actor_id,
            notes=notes,
        )
        logger.info(
            "Assignment %s created: patient %s -> counsellor %s",
            assignment.id,
            patient_id,
            counsellor_id,
        )
        return assignment

    async def get_assignment(self, assignment_id: UUID) -> AssignmentResponse:
        assignment = await self.assignment_repo.get_by_id(assignment_id)
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    async def get_active_for_patient(
        self, patient_id: UUID
    ) -> Optional[AssignmentResponse]:
        return await self.assignment_repo.get_active_for_patient(patient_id)

    async def list_for_counsellor(
        self, counsellor_id: UUID, status: Optional[AssignmentStatus] = None
    ) -> List[AssignmentResponse]:
        return await self.assignment_repo.list_for_counsellor(
            counsellor_id, status=status.value if status else None
        )

    async def complete_assignment(
        self, assignment_id: UUID, actor_id: UUID
    ) -> AssignmentResponse:
        """active -> completed, releasing the slot when the policy says so."""
        return await self._finish(
            assignment_id,
            actor_id,
            target=AssignmentStatus.COMPLETED,
            release=self.policy.completion_releases_capacity,
        )

    async def cancel_assignment(
        self, assignment_id: UUID, actor_id: UUID
    ) -> AssignmentResponse:
        """active -> cancelled. Cancellation always releases the slot."""
        return await self._finish(
            assignment_id, actor_id, target=AssignmentStatus.CANCELLED, release=True
        )

    async def _finish(
        self,
        assignment_id: UUID,
        actor_id: UUID,
        target: AssignmentStatus,
        release: bool,
    ) -> AssignmentResponse:
        async with transaction(self.db):
            actor = await self.profile_repo.get_by_id(actor_id)
            if not actor:
                raise NotFoundError("Profile", actor_id)

            assignment = await self.assignment_repo.get_by_id(
                assignment_id, for_update=True
            )
            if not assignment:
                raise NotFoundError("Assignment", assignment_id)

            await self._check_can_end(actor, assignment, target)

            if assignment.status != AssignmentStatus.ACTIVE:
                raise ConflictError(
                    ConflictError.INVALID_TRANSITION,
                    f"Cannot move assignment from {assignment.status.value} "
                    f"to {target.value}",
                    assignment_id=assignment_id,
                )

            now = utcnow()
            values = {"status": target.value}
            if target == AssignmentStatus.COMPLETED:
                values["completed_at"] = now
            else:
                values["cancelled_at"] = now
            updated = await self.assignment_repo.update(assignment_id, values)
            if not updated:
                raise NotFoundError("Assignment", assignment_id)

            if release and not await self.counsellor_repo.release_slot(
                assignment.counsellor_id
            ):
                logger.warning(
                    "Counsellor %s had no slot to release for assignment %s",
                    assignment.counsellor_id,
                    assignment_id,
                )

            await self.conversation_repo.deactivate_for_assignment(assignment_id)
            closed = await self.session_repo.cancel_open_for_assignment(
                assignment_id, actor_id, now
            )
            if closed:
                logger.info(
                    "Cancelled %d open sessions of assignment %s", closed, assignment_id
                )

        logger.info("Assignment %s %s by %s", assignment_id, target.value, actor_id)
        event_type = (
            events.ASSIGNMENT_COMPLETED
            if target == AssignmentStatus.COMPLETED
            else events.ASSIGNMENT_CANCELLED
        )
        await events.publish_event(
            self.events_client,
            event_type,
            {
                "assignment_id": str(updated.id),
                "patient_id": str(updated.patient_id),
                "counsellor_id": str(updated.counsellor_id),
                "capacity_released": release,
            },
        )
        return updated

    async def _check_can_end(
        self,
        actor: ProfileResponse,
        assignment: AssignmentResponse,
        target: AssignmentStatus,
    ) -> None:
        if has_capability(actor, Capability.MANAGE_ASSIGNMENTS):
            return

        if has_capability(actor, Capability.END_ASSIGNMENT):
            counsellor = await self.counsellor_repo.get_by_id(assignment.counsellor_id)
            if counsellor and counsellor.profile_id == actor.id:
                return

        # Patients may withdraw from their own pairing but not complete it
        if (
            target == AssignmentStatus.CANCELLED
            and actor.id == assignment.patient_id
            and has_capability(actor, Capability.WITHDRAW_ASSIGNMENT)
        ):
            return

        capability = (
            Capability.END_ASSIGNMENT
            if target == AssignmentStatus.COMPLETED
            else Capability.WITHDRAW_ASSIGNMENT
        )
        raise PermissionDeniedError(actor.role.value, capability.value)
