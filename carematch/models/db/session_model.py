import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)

from carematch.database import Base, utcnow
from carematch.models.enums import SessionStatus, SessionType, sql_in


class SessionRequestModel(Base):
    """SQLAlchemy model for session_requests table."""

    __tablename__ = "session_requests"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    counsellor_id = Column(Uuid, ForeignKey("counsellors.id"), nullable=False)
    assignment_id = Column(
        Uuid, ForeignKey("counsellor_assignments.id"), nullable=False
    )
    session_type = Column(String(10), nullable=False)
    status = Column(
        String(20), nullable=False, default=SessionStatus.REQUESTED.value
    )
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    notes = Column(Text)
    meeting_link = Column(String(500))
    confirmed_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    cancelled_by = Column(Uuid, ForeignKey("profiles.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            f"session_type IN ({sql_in(SessionType)})",
            name="ck_session_requests_type",
        ),
        CheckConstraint(
            f"status IN ({sql_in(SessionStatus)})", name="ck_session_requests_status"
        ),
        CheckConstraint("duration_minutes > 0", name="ck_session_requests_duration"),
        Index("idx_session_requests_counsellor_time", "counsellor_id", "scheduled_for"),
        Index("idx_session_requests_assignment_status", "assignment_id", "status"),
    )
