import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)

from carematch.database import Base, utcnow
from carematch.models.enums import NotificationType, sql_in


class NotificationModel(Base):
    """SQLAlchemy model for notifications table."""

    __tablename__ = "notifications"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(20), nullable=False, default=NotificationType.SYSTEM.value)
    is_read = Column(Boolean, nullable=False, default=False)
    action_url = Column(String(500))
    read_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        CheckConstraint(
            f"type IN ({sql_in(NotificationType)})", name="ck_notifications_type"
        ),
        Index("idx_notifications_user_unread", "user_id", "is_read"),
    )
