from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from carematch.models.enums import AssignmentStatus


class ManualAssignmentRequest(BaseModel):
    """Admin request to pair a patient with a specific counsellor."""

    patient_id: UUID
    counsellor_id: UUID
    notes: Optional[str] = None


class AssignmentResponse(BaseModel):
    """Response model for assignment data."""

    id: UUID
    patient_id: UUID
    counsellor_id: UUID
    status: AssignmentStatus
    assigned_by: Optional[UUID]
    assigned_at: datetime
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    notes: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
