# API models for request/response contracts
from .assignments import AssignmentResponse, ManualAssignmentRequest
from .conversations import ConversationResponse, MarkReadResponse, UnreadCountResponse
from .counsellors import (
    AvailabilityUpdateRequest,
    CapacityUpdateRequest,
    CounsellorCreateRequest,
    CounsellorResponse,
)
from .matching import MatchRequest, MatchResponse, OversightStats
from .messages import MessageResponse, SendMessageRequest
from .notifications import NotificationResponse
from .profiles import (
    EligibilityResponse,
    ProfileCompletionRequest,
    ProfileCreateRequest,
    ProfileResponse,
    ProfileUpdateRequest,
)
from .sessions import (
    SessionCompleteRequest,
    SessionConfirmRequest,
    SessionRequestCreate,
    SessionResponse,
)

__all__ = [
    "AssignmentResponse",
    "AvailabilityUpdateRequest",
    "CapacityUpdateRequest",
    "ConversationResponse",
    "CounsellorCreateRequest",
    "CounsellorResponse",
    "EligibilityResponse",
    "ManualAssignmentRequest",
    "MarkReadResponse",
    "MatchRequest",
    "MatchResponse",
    "MessageResponse",
    "NotificationResponse",
    "OversightStats",
    "ProfileCompletionRequest",
    "ProfileCreateRequest",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "SendMessageRequest",
    "SessionCompleteRequest",
    "SessionConfirmRequest",
    "SessionRequestCreate",
    "SessionResponse",
    "UnreadCountResponse",
]
