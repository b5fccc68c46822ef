from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carematch.models.enums import Gender, Role


class ProfileCreateRequest(BaseModel):
    """Request model for registering a profile."""

    email: str = Field(..., description="Unique login email")
    full_name: str = Field(..., min_length=1, description="Display name")
    role: Role = Field(default=Role.PATIENT, description="Platform role")
    gender: Optional[Gender] = Field(default=None, description="Recorded gender")
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """Partial update of a profile; unset fields are left untouched."""

    full_name: Optional[str] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None


class ProfileCompletionRequest(BaseModel):
    """Fields a patient must provide before requesting a counsellor.

    Fields are optional here so missing ones come back as eligibility
    reasons instead of a schema error.
    """

    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    gender: Optional[Gender] = None


class ProfileResponse(BaseModel):
    """Response model for profile data."""

    id: UUID
    email: str
    full_name: str
    role: Role
    gender: Optional[Gender]
    phone: Optional[str]
    date_of_birth: Optional[date]
    emergency_contact: Optional[str]
    emergency_phone: Optional[str]
    profile_completed: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EligibilityResponse(BaseModel):
    """Outcome of the matching eligibility check."""

    eligible: bool
    reasons: List[str] = Field(default_factory=list)
