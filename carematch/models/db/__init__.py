# SQLAlchemy database models
from .assignment_model import AssignmentModel
from .conversation_model import ConversationModel
from .counsellor_model import CounsellorModel
from .message_model import MessageModel
from .notification_model import NotificationModel
from .profile_model import ProfileModel
from .session_model import SessionRequestModel

__all__ = [
    "AssignmentModel",
    "ConversationModel",
    "CounsellorModel",
    "MessageModel",
    "NotificationModel",
    "ProfileModel",
    "SessionRequestModel",
]
