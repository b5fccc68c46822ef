from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.clients.base_event_client import BaseEventClient
from carematch.config import MatchingPolicy
from carematch.database import get_db
from carematch.dependencies import get_actor_id, get_events, get_policy
from carematch.models.api.assignments import AssignmentResponse, ManualAssignmentRequest
from carematch.models.api.conversations import ConversationResponse
from carematch.models.api.matching import MatchResponse
from carematch.services.assignment_service import AssignmentService
from carematch.services.fanout_service import FanoutService
from carematch.services.matching_service import MatchingService

router = APIRouter()


@router.post("", response_model=MatchResponse, status_code=201)
async def assign_manually(
    request: ManualAssignmentRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
    policy: MatchingPolicy = Depends(get_policy),
) -> MatchResponse:
    """Admin pairing of a patient with a specific counsellor."""
    service = MatchingService(db, events_client, policy)
    return await service.assign_manually(
        request.patient_id, request.counsellor_id, actor_id, notes=request.notes
    )


@router.post("/repair-conversations", response_model=List[ConversationResponse])
async def repair_conversations(
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> List[ConversationResponse]:
    """Open conversations for active assignments whose fanout never finished."""
    service = FanoutService(db)
    return await service.repair_missing_conversations(actor_id)


@router.get("/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: UUID,
    db: AsyncSession = Depends(get_db),
    policy: MatchingPolicy = Depends(get_policy),
) -> AssignmentResponse:
    service = AssignmentService(db, policy=policy)
    return await service.get_assignment(assignment_id)


@router.post("/{assignment_id}/complete", response_model=AssignmentResponse)
async def complete_assignment(
    assignment_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
    policy: MatchingPolicy = Depends(get_policy),
) -> AssignmentResponse:
    service = AssignmentService(db, events_client, policy)
    return await service.complete_assignment(assignment_id, actor_id)


@router.post("/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_assignment(
    assignment_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
    policy: MatchingPolicy = Depends(get_policy),
) -> AssignmentResponse:
    service = AssignmentService(db, events_client, policy)
    return await service.cancel_assignment(assignment_id, actor_id)
