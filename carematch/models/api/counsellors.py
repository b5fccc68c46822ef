from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carematch.models.enums import CounsellorStatus, Gender


class CounsellorCreateRequest(BaseModel):
    """Request model for registering a counsellor (starts as pending)."""

    profile_id: UUID
    gender: Optional[Gender] = Field(
        default=None, description="Defaults to the profile's gender"
    )
    max_patients: int = Field(default=10, ge=0)
    specializations: List[str] = Field(default_factory=list)
    bio: Optional[str] = None


class AvailabilityUpdateRequest(BaseModel):
    is_available: bool


class CapacityUpdateRequest(BaseModel):
    max_patients: int = Field(..., ge=0)


class CounsellorResponse(BaseModel):
    """Response model for counsellor data."""

    id: UUID
    profile_id: UUID
    full_name: Optional[str] = None
    gender: Gender
    status: CounsellorStatus
    is_available: bool
    max_patients: int
    current_patients: int
    rating: float
    total_reviews: int
    specializations: List[str]
    bio: Optional[str]
    approved_by: Optional[UUID]
    approved_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @property
    def has_capacity(self) -> bool:
        return self.current_patients < self.max_patients
