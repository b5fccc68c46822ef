import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Uuid
from sqlalchemy.orm import relationship

from carematch.database import Base, utcnow


class ConversationModel(Base):
    """SQLAlchemy model for conversations table."""

    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    counsellor_id = Column(Uuid, ForeignKey("counsellors.id"), nullable=False)
    # Denormalised so participant checks need no join
    counsellor_profile_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    assignment_id = Column(
        Uuid, ForeignKey("counsellor_assignments.id"), unique=True, nullable=True
    )
    is_active = Column(Boolean, nullable=False, default=True)
    last_message_at = Column(DateTime(timezone=True))
    # Highest message sequence handed out so far
    message_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    messages = relationship(
        "MessageModel",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="MessageModel.sequence",
    )
