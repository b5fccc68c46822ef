import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    text,
)

from carematch.database import Base, utcnow
from carematch.models.enums import AssignmentStatus, sql_in


class AssignmentModel(Base):
    """SQLAlchemy model for counsellor_assignments table."""

    __tablename__ = "counsellor_assignments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    patient_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False)
    counsellor_id = Column(Uuid, ForeignKey("counsellors.id"), nullable=False)
    status = Column(String(20), nullable=False, default=AssignmentStatus.ACTIVE.value)
    assigned_by = Column(Uuid, ForeignKey("profiles.id"))
    assigned_at = Column(DateTime(timezone=True), default=utcnow)
    completed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            f"status IN ({sql_in(AssignmentStatus)})", name="ck_assignments_status"
        ),
        # A patient can hold at most one active assignment
        Index(
            "uq_assignments_active_patient",
            "patient_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("idx_assignments_counsellor_status", "counsellor_id", "status"),
    )
