from enum import Enum


class Role(str, Enum):
    PATIENT = "patient"
    COUNSELLOR = "counsellor"
    ADMIN = "admin"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class CounsellorStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    SUSPENDED = "suspended"
    REJECTED = "rejected"


class AssignmentStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MessageType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class SessionType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"
    CHAT = "chat"


class SessionStatus(str, Enum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class NotificationType(str, Enum):
    APPOINTMENT = "appointment"
    ASSIGNMENT = "assignment"
    MESSAGE = "message"
    WELLNESS = "wellness"
    SYSTEM = "system"
    REMINDER = "reminder"


def sql_in(enum_class: type) -> str:
    """Render enum values as a SQL IN list for CHECK constraints."""
    return ", ".join(f"'{member.value}'" for member in enum_class)
