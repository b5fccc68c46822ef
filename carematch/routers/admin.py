from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import get_db
from carematch.dependencies import get_actor_id
from carematch.models.api.matching import OversightStats
from carematch.services.oversight_service import OversightService

router = APIRouter()


@router.get("/stats", response_model=OversightStats)
async def get_stats(
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> OversightStats:
    """Dashboard counts, plus counsellors whose recorded load has drifted."""
    service = OversightService(db)
    return await service.stats(actor_id)
