# Repository classes for database operations
from .assignment_repository import AssignmentRepository
from .base_repository import BaseRepository
from .conversation_repository import ConversationRepository
from .counsellor_repository import CounsellorRepository
from .message_repository import MessageRepository
from .notification_repository import NotificationRepository
from .profile_repository import ProfileRepository

__all__ = [
    "AssignmentRepository",
    "BaseRepository",
    "ConversationRepository",
    "CounsellorRepository",
    "MessageRepository",
    "NotificationRepository",
    "ProfileRepository",
]
