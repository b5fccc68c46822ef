from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from carematch.models.enums import SessionStatus, SessionType


class SessionRequestCreate(BaseModel):
    """A patient asks their assigned counsellor for a session."""

    session_type: SessionType
    patient_id: Optional[UUID] = Field(
        default=None, description="Defaults to the acting profile"
    )
    counsellor_id: Optional[UUID] = Field(
        default=None, description="Must be the patient's assigned counsellor"
    )
    scheduled_for: Optional[datetime] = Field(
        default=None, description="Defaults to one day from now"
    )
    duration_minutes: int = Field(default=60, ge=15, le=240)
    notes: Optional[str] = None


class SessionConfirmRequest(BaseModel):
    meeting_link: Optional[str] = Field(default=None, max_length=500)


class SessionCompleteRequest(BaseModel):
    attended: bool = True


class SessionResponse(BaseModel):
    """Response model for session request data."""

    id: UUID
    patient_id: UUID
    counsellor_id: UUID
    assignment_id: UUID
    session_type: SessionType
    status: SessionStatus
    scheduled_for: datetime
    duration_minutes: int
    notes: Optional[str]
    meeting_link: Optional[str]
    confirmed_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
