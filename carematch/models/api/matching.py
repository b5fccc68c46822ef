from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from carematch.models.api.assignments import AssignmentResponse
from carematch.models.api.conversations import ConversationResponse


class MatchRequest(BaseModel):
    """Request a counsellor for a patient (defaults to the acting profile)."""

    patient_id: Optional[UUID] = None


class MatchResponse(BaseModel):
    """Result of a successful match."""

    assignment: AssignmentResponse
    conversation: ConversationResponse


class OversightStats(BaseModel):
    """Counts shown on the admin dashboard."""

    profiles_by_role: Dict[str, int]
    counsellors_by_status: Dict[str, int]
    active_assignments: int
    conversations: int
    sessions_by_status: Dict[str, int]
    capacity_mismatches: List[UUID]
