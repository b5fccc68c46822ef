from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.clients.base_event_client import BaseEventClient
from carematch.config import MatchingPolicy
from carematch.database import get_db
from carematch.dependencies import get_actor_id, get_events, get_policy
from carematch.models.api.matching import MatchRequest, MatchResponse
from carematch.services.matching_service import MatchingService

router = APIRouter()


@router.post("", response_model=MatchResponse, status_code=201)
async def request_match(
    request: MatchRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
    policy: MatchingPolicy = Depends(get_policy),
) -> MatchResponse:
    """
    Match a patient with an available counsellor of the same gender.

    The patient defaults to the acting profile; admins may pass ``patient_id``.
    """
    service = MatchingService(db, events_client, policy)
    return await service.request_match(request.patient_id or actor_id, actor_id)
