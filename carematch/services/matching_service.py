import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carematch import events
from carematch.clients.base_event_client import BaseEventClient
from carematch.config import MatchingPolicy, load_policy
from carematch.database import transaction
from carematch.exceptions import (
    CapacityExceededError,
    CarematchError,
    ConflictError,
    FanoutError,
    NoCandidateError,
    NotFoundError,
)
from carematch.models.api.assignments import AssignmentResponse
from carematch.models.api.counsellors import CounsellorResponse
from carematch.models.api.matching import MatchResponse
from carematch.models.api.profiles import ProfileResponse
from carematch.models.enums import Gender
from carematch.repositories.assignment_repository import AssignmentRepository
from carematch.repositories.counsellor_repository import CounsellorRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.roles import Capability, require_capability
from carematch.services.assignment_service import AssignmentService
from carematch.services.eligibility_service import ensure_eligible
from carematch.services.fanout_service import FanoutService

logger = logging.getLogger(__name__)


class MatchingService:
    """Service pairing patients with counsellors of the same gender."""

    def __init__(
        self,
        db: AsyncSession,
        events_client: Optional[BaseEventClient] = None,
        policy: Optional[MatchingPolicy] = None,
    ):
        self.db = db
        self.events_client = events_client
        self.policy = policy or load_policy()
        self.profile_repo = ProfileRepository(db)
        self.counsellor_repo = CounsellorRepository(db)
        self.assignment_repo = AssignmentRepository(db)
        self.assignment_service = AssignmentService(db, events_client, self.policy)
        self.fanout_service = FanoutService(db)

    async def select_counsellor(
        self, patient_id: UUID, gender: Optional[Gender]
    ) -> CounsellorResponse:
        """Head of the pool ordering for ``gender``."""
        if gender is None:
            raise NoCandidateError(None)
        candidates = await self.counsellor_repo.find_candidates(gender.value, limit=1)
        if not candidates:
            logger.info(
                "No %s counsellor available for patient %s", gender.value, patient_id
            )
            raise NoCandidateError(gender.value)
        return candidates[0]

    async def request_match(self, patient_id: UUID, actor_id: UUID) -> MatchResponse:
        """
        Pair a patient with the best available counsellor:

        1. Check the actor may request for this patient
        2. Check the patient is eligible
        3. Select a counsellor and create the assignment in one transaction,
           re-selecting if the chosen counsellor fills up first
        4. Open the conversation and notify the counsellor
        """
        # Step 1: Authorise
        actor = await self._require_profile(actor_id)
        if actor_id == patient_id:
            require_capability(actor, Capability.REQUEST_MATCH)
        else:
            require_capability(actor, Capability.MANAGE_ASSIGNMENTS)

        # Step 2: Eligibility
        patient = await self._require_profile(patient_id)
        ensure_eligible(patient, minimum_age=self.policy.minimum_patient_age)

        # Step 3: Select and assign
        assignment = await self._assign_with_retry(patient, actor_id)

        # Step 4: Fanout
        return await self._after_assignment(assignment)

    async def assign_manually(
        self,
        patient_id: UUID,
        counsellor_id: UUID,
        actor_id: UUID,
        notes: Optional[str] = None,
    ) -> MatchResponse:
        """Admin pairing with a chosen counsellor.

        The gender rule is not applied; eligibility and capacity are.
        """
        actor = await self._require_profile(actor_id)
        require_capability(actor, Capability.MANAGE_ASSIGNMENTS)

        patient = await self._require_profile(patient_id)
        ensure_eligible(patient, minimum_age=self.policy.minimum_patient_age)

        async with transaction(self.db):
            if not await self.counsellor_repo.get_by_id(counsellor_id):
                raise NotFoundError("Counsellor", counsellor_id)
            assignment = await self.assignment_service.create_assignment(
                patient_id=patient_id,
                counsellor_id=counsellor_id,
                actor_id=actor_id,
                notes=notes,
            )
        return await self._after_assignment(assignment)

    async def _assign_with_retry(
        self, patient: ProfileResponse, actor_id: UUID
    ) -> AssignmentResponse:
        last_error: Optional[CapacityExceededError] = None
        for attempt in range(1, self.policy.max_match_attempts + 1):
            try:
                async with transaction(self.db):
                    existing = await self.assignment_repo.get_active_for_patient(
                        patient.id
                    )
                    if existing:
                        raise ConflictError(
                            ConflictError.ALREADY_ASSIGNED,
                            "Patient already has an active assignment",
                            patient_id=patient.id,
                            assignment_id=existing.id,
                        )
                    counsellor = await self.select_counsellor(
                        patient.id, patient.gender
                    )
                    return await self.assignment_service.create_assignment(
                        patient_id=patient.id,
                        counsellor_id=counsellor.id,
                        actor_id=actor_id,
                    )
            except CapacityExceededError as e:
                last_error = e
                logger.warning(
                    "Counsellor %s filled up while matching patient %s "
                    "(attempt %d/%d)",
                    e.counsellor_id,
                    patient.id,
                    attempt,
                    self.policy.max_match_attempts,
                )
        if last_error is None:
            raise NoCandidateError(patient.gender.value if patient.gender else None)
        raise last_error

    async def _after_assignment(self, assignment: AssignmentResponse) -> MatchResponse:
        try:
            conversation = await self.fanout_service.on_assignment_created(assignment)
        except (CarematchError, SQLAlchemyError) as e:
            logger.error(
                "Assignment %s committed but fanout failed: %s", assignment.id, e
            )
            raise FanoutError("assignment", assignment.id, e) from e

        await events.publish_event(
            self.events_client,
            events.ASSIGNMENT_CREATED,
            {
                "assignment_id": str(assignment.id),
                "patient_id": str(assignment.patient_id),
                "counsellor_id": str(assignment.counsellor_id),
                "conversation_id": str(conversation.id),
            },
        )
        return MatchResponse(assignment=assignment, conversation=conversation)

    async def _require_profile(self, profile_id: UUID) -> ProfileResponse:
        profile = await self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Profile", profile_id)
        return profile
