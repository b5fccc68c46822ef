# Export all models
from .api import (
    AssignmentResponse,
    ConversationResponse,
    CounsellorResponse,
    MessageResponse,
    NotificationResponse,
    ProfileResponse,
)
from .db import (
    AssignmentModel,
    ConversationModel,
    CounsellorModel,
    MessageModel,
    NotificationModel,
    ProfileModel,
)

__all__ = [
    # API models
    "AssignmentResponse",
    "ConversationResponse",
    "CounsellorResponse",
    "MessageResponse",
    "NotificationResponse",
    "ProfileResponse",
    # DB models
    "AssignmentModel",
    "ConversationModel",
    "CounsellorModel",
    "MessageModel",
    "NotificationModel",
    "ProfileModel",
]
