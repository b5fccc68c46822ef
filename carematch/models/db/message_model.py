import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from carematch.database import Base, utcnow
from carematch.models.enums import MessageType, sql_in


class MessageModel(Base):
    """SQLAlchemy model for messages table."""

    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id"), nullable=False)
    sender_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), nullable=False, default=MessageType.TEXT.value)
    # Order key within the conversation, allocated under the conversation lock
    sequence = Column(Integer, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # Relationships
    conversation = relationship("ConversationModel", back_populates="messages")

    __table_args__ = (
        CheckConstraint(
            f"message_type IN ({sql_in(MessageType)})", name="ck_messages_type"
        ),
        UniqueConstraint("conversation_id", "sequence", name="uq_messages_sequence"),
        Index("idx_messages_unread", "conversation_id", "is_read"),
    )
