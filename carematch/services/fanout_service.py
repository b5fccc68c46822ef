import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import transaction
from carematch.exceptions import ConflictError, NotFoundError
from carematch.models.api.assignments import AssignmentResponse
from carematch.models.api.conversations import ConversationResponse
from carematch.models.api.messages import MessageResponse
from carematch.models.api.notifications import NotificationResponse
from carematch.models.enums import NotificationType
from carematch.repositories.assignment_repository import AssignmentRepository
from carematch.repositories.conversation_repository import ConversationRepository
from carematch.repositories.counsellor_repository import CounsellorRepository
from carematch.repositories.notification_repository import NotificationRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.roles import Capability, require_capability

logger = logging.getLogger(__name__)


def conversation_url(conversation_id: UUID) -> str:
    return f"/messages/{conversation_id}"


class FanoutService:
    """Side effects of committed writes: conversations and notifications."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.assignment_repo = AssignmentRepository(db)
        self.conversation_repo = ConversationRepository(db)
        self.counsellor_repo = CounsellorRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.profile_repo = ProfileRepository(db)

    async def on_assignment_created(
        self, assignment: AssignmentResponse
    ) -> ConversationResponse:
        """
        Open the conversation for a new assignment:

        1. Return the existing conversation if one was already opened
        2. Otherwise create it and notify the counsellor, in one transaction

        Safe to call any number of times for the same assignment; the
        counsellor is notified only by the call that created the conversation.
        """
        async with transaction(self.db):
            conversation, created = await self._ensure_conversation(assignment)
            if created:
                patient = await self.profile_repo.get_by_id(assignment.patient_id)
                patient_name = patient.full_name if patient else "A patient"
                await self.notification_repo.enqueue(
                    user_id=conversation.counsellor_profile_id,
                    title="New patient assigned",
                    message=f"{patient_name} has been assigned to you.",
                    type=NotificationType.ASSIGNMENT.value,
                    action_url=conversation_url(conversation.id),
                )

        if created:
            logger.info(
                "Conversation %s opened for assignment %s",
                conversation.id,
                assignment.id,
            )
        return conversation

    async def on_message_appended(
        self,
        message: MessageResponse,
        conversation: ConversationResponse,
        recipient_viewing: bool = False,
    ) -> Optional[NotificationResponse]:
        """Notify the other participant unless they are looking at the thread."""
        if recipient_viewing:
            return None

        recipient_id = conversation.other_participant(message.sender_id)
        async with transaction(self.db):
            sender = await self.profile_repo.get_by_id(message.sender_id)
            sender_name = sender.full_name if sender else "Someone"
            notification = await self.notification_repo.enqueue(
                user_id=recipient_id,
                title="New message",
                message=f"{sender_name} sent you a message.",
                type=NotificationType.MESSAGE.value,
                action_url=conversation_url(conversation.id),
            )
        return notification

    async def repair_missing_conversations(
        self, actor_id: UUID
    ) -> List[ConversationResponse]:
        """Replay the assignment fanout for active assignments left without one."""
        actor = await self.profile_repo.get_by_id(actor_id)
        if not actor:
            raise NotFoundError("Profile", actor_id)
        require_capability(actor, Capability.MANAGE_ASSIGNMENTS)

        orphans = await self.assignment_repo.list_active_without_conversation()
        # End the read transaction before each repair opens its own
        await self.db.commit()

        repaired = []
        for assignment in orphans:
            repaired.append(await self.on_assignment_created(assignment))
        if repaired:
            logger.info("Repaired %d missing conversations", len(repaired))
        return repaired

    async def _ensure_conversation(
        self, assignment: AssignmentResponse
    ) -> Tuple[ConversationResponse, bool]:
        existing = await self.conversation_repo.get_by_assignment(assignment.id)
        if existing:
            return existing, False

        counsellor = await self.counsellor_repo.get_by_id(assignment.counsellor_id)
        if not counsellor:
            raise NotFoundError("Counsellor", assignment.counsellor_id)

        try:
            async with self.db.begin_nested():
                conversation = await self.conversation_repo.create_for_assignment(
                    patient_id=assignment.patient_id,
                    counsellor_id=assignment.counsellor_id,
                    counsellor_profile_id=counsellor.profile_id,
                    assignment_id=assignment.id,
                )
        except IntegrityError as e:
            # Another caller opened it first
            winner = await self.conversation_repo.get_by_assignment(assignment.id)
            if not winner:
                raise ConflictError(
                    ConflictError.DUPLICATE_CONVERSATION,
                    "Conversation could not be opened for assignment",
                    assignment_id=assignment.id,
                ) from e
            return winner, False
        return conversation, True
