import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carematch import events
from carematch.clients.base_event_client import BaseEventClient
from carematch.database import transaction, utcnow
from carematch.exceptions import (
    CarematchError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carematch.models.api.conversations import ConversationResponse
from carematch.models.api.messages import MessageResponse
from carematch.models.api.profiles import ProfileResponse
from carematch.models.enums import MessageType
from carematch.repositories.conversation_repository import ConversationRepository
from carematch.repositories.message_repository import MessageRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.roles import Capability, has_capability, require_capability
from carematch.services.fanout_service import FanoutService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 1000


class MessageService:
    """Service for appending, listing and reading messages in a conversation."""

    def __init__(self, db: AsyncSession, events_client: Optional[BaseEventClient] = None):
        self.db = db
        self.events_client = events_client
        self.conversation_repo = ConversationRepository(db)
        self.message_repo = MessageRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.fanout_service = FanoutService(db)

    async def append_message(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        recipient_viewing: bool = False,
    ) -> MessageResponse:
        """
        Append a message to a conversation:

        1. Validate the content and the sender
        2. Take the conversation lock and allocate the next sequence
        3. Store the message and commit
        4. Notify the other participant and publish the event
        """
        # Step 1: Validate
        if not content or not content.strip():
            raise ValidationError(["content"], "Message content cannot be empty")

        sender = await self._require_profile(sender_id)
        require_capability(sender, Capability.SEND_MESSAGE)

        async with transaction(self.db):
            conversation = await self.conversation_repo.get_by_id(
                conversation_id, for_update=True
            )
            if not conversation:
                raise NotFoundError("Conversation", conversation_id)
            if sender_id not in conversation.participants:
                raise PermissionDeniedError(
                    sender.role.value, Capability.SEND_MESSAGE.value
                )
            if not conversation.is_active:
                raise ConflictError(
                    ConflictError.CONVERSATION_CLOSED,
                    "Conversation is closed",
                    conversation_id=conversation_id,
                )

            # Step 2: Sequence under the conversation lock
            sent_at = utcnow()
            sequence = await self.conversation_repo.next_sequence(
                conversation_id, sent_at
            )

            # Step 3: Store
            message = await self.message_repo.append(
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                message_type=message_type.value,
                sequence=sequence,
                created_at=sent_at,
            )

        logger.debug(
            "Message %s appended to %s as #%d", message.id, conversation_id, sequence
        )

        # Step 4: Fanout. A failed notification never fails the stored message.
        try:
            await self.fanout_service.on_message_appended(
                message, conversation, recipient_viewing=recipient_viewing
            )
        except (CarematchError, SQLAlchemyError) as e:
            logger.error("Message %s stored but notification failed: %s", message.id, e)

        await events.publish_event(
            self.events_client,
            events.MESSAGE_APPENDED,
            {
                "message_id": str(message.id),
                "conversation_id": str(conversation_id),
                "sender_id": str(sender_id),
                "sequence": message.sequence,
            },
        )
        return message

    async def mark_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        """Mark everything the reader received as read. Returns rows changed."""
        reader = await self._require_profile(reader_id)
        async with transaction(self.db):
            conversation = await self.conversation_repo.get_by_id(
                conversation_id, for_update=True
            )
            if not conversation:
                raise NotFoundError("Conversation", conversation_id)
            if reader_id not in conversation.participants:
                raise PermissionDeniedError(reader.role.value, "read_messages")
            marked = await self.message_repo.mark_read(
                conversation_id, reader_id, utcnow()
            )

        if marked:
            await events.publish_event(
                self.events_client,
                events.MESSAGES_READ,
                {
                    "conversation_id": str(conversation_id),
                    "reader_id": str(reader_id),
                    "marked": marked,
                },
            )
        return marked

    async def list_messages(
        self,
        conversation_id: UUID,
        viewer_id: UUID,
        limit: Optional[int] = 100,
        offset: Optional[int] = 0,
    ) -> List[MessageResponse]:
        """Messages in append order, visible to participants and oversight."""
        if limit is not None and (limit <= 0 or limit > MAX_PAGE_SIZE):
            raise ValidationError(["limit"], "Limit must be between 1 and 1000")
        if offset is not None and offset < 0:
            raise ValidationError(["offset"], "Offset must be non-negative")

        viewer = await self._require_profile(viewer_id)
        conversation = await self.conversation_repo.get_by_id(conversation_id)
        if not conversation:
            raise NotFoundError("Conversation", conversation_id)
        self._require_visible(viewer, conversation)

        return await self.message_repo.get_by_conversation(
            conversation_id, limit=limit, offset=offset
        )

    async def unread_count(self, reader_id: UUID) -> int:
        await self._require_profile(reader_id)
        return await self.message_repo.count_unread_for_reader(reader_id)

    async def list_conversations(
        self,
        profile_id: UUID,
        viewer_id: UUID,
        limit: Optional[int] = 50,
        offset: Optional[int] = 0,
    ) -> List[ConversationResponse]:
        """A profile's conversations, most recently active first."""
        viewer = await self._require_profile(viewer_id)
        if viewer_id != profile_id:
            require_capability(viewer, Capability.VIEW_OVERSIGHT)
        return await self.conversation_repo.list_for_participant(
            profile_id, limit=limit, offset=offset
        )

    def _require_visible(
        self, viewer: ProfileResponse, conversation: ConversationResponse
    ) -> None:
        if viewer.is_active and viewer.id in conversation.participants:
            return
        if has_capability(viewer, Capability.VIEW_OVERSIGHT):
            return
        raise PermissionDeniedError(viewer.role.value, "read_messages")

    async def _require_profile(self, profile_id: UUID) -> ProfileResponse:
        profile = await self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Profile", profile_id)
        return profile
