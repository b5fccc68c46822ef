from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from carematch.models.enums import NotificationType


class NotificationResponse(BaseModel):
    """Response model for notification data."""

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    is_read: bool
    action_url: Optional[str]
    read_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
