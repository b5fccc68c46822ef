import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from carematch.database import Base, utcnow
from carematch.models.enums import CounsellorStatus, Gender, sql_in


class CounsellorModel(Base):
    """SQLAlchemy model for counsellors table."""

    __tablename__ = "counsellors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    profile_id = Column(Uuid, ForeignKey("profiles.id"), nullable=False, unique=True)
    gender = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default=CounsellorStatus.PENDING.value)
    is_available = Column(Boolean, nullable=False, default=True)
    max_patients = Column(Integer, nullable=False, default=10)
    # Must equal the number of active assignments for this counsellor
    current_patients = Column(Integer, nullable=False, default=0)
    rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)
    specializations = Column(JSON, default=list)
    bio = Column(Text)
    approved_by = Column(Uuid, ForeignKey("profiles.id"))
    approved_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    profile = relationship("ProfileModel", foreign_keys=[profile_id])

    __table_args__ = (
        CheckConstraint(f"gender IN ({sql_in(Gender)})", name="ck_counsellors_gender"),
        CheckConstraint(
            f"status IN ({sql_in(CounsellorStatus)})", name="ck_counsellors_status"
        ),
        CheckConstraint("max_patients >= 0", name="ck_counsellors_max_patients"),
        CheckConstraint(
            "current_patients >= 0 AND current_patients <= max_patients",
            name="ck_counsellors_capacity",
        ),
        Index("idx_counsellors_pool", "gender", "status", "is_available"),
    )
