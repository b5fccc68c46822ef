from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carematch.models.enums import MessageType


class SendMessageRequest(BaseModel):
    """Request model for sending a message into a conversation."""

    content: str = Field(..., description="Message content")
    message_type: MessageType = Field(default=MessageType.TEXT)
    recipient_viewing: bool = Field(
        default=False,
        description="Recipient currently has the conversation open; "
        "suppresses the message notification",
    )


class MessageResponse(BaseModel):
    """Response model for message data."""

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    message_type: MessageType
    sequence: int
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
