from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ConversationResponse(BaseModel):
    """Response model for conversation data."""

    id: UUID
    patient_id: UUID
    counsellor_id: UUID
    counsellor_profile_id: UUID
    assignment_id: Optional[UUID]
    is_active: bool
    last_message_at: Optional[datetime]
    message_count: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def participants(self) -> List[UUID]:
        """Profile ids allowed to read and write in this conversation."""
        return [self.patient_id, self.counsellor_profile_id]

    def other_participant(self, profile_id: UUID) -> UUID:
        if profile_id == self.patient_id:
            return self.counsellor_profile_id
        return self.patient_id


class UnreadCountResponse(BaseModel):
    unread: int


class MarkReadResponse(BaseModel):
    conversation_id: UUID
    marked: int
