import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, Date, DateTime, String, Uuid

from carematch.database import Base, utcnow
from carematch.models.enums import Gender, Role, sql_in


class ProfileModel(Base):
    """SQLAlchemy model for profiles table."""

    __tablename__ = "profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=Role.PATIENT.value)
    gender = Column(String(10))
    phone = Column(String(50))
    date_of_birth = Column(Date)
    emergency_contact = Column(String(255))
    emergency_phone = Column(String(50))
    profile_completed = Column(Boolean, nullable=False, default=False)
    # Profiles are never deleted, only deactivated
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(f"role IN ({sql_in(Role)})", name="ck_profiles_role"),
        CheckConstraint(f"gender IN ({sql_in(Gender)})", name="ck_profiles_gender"),
    )
