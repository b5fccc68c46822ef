from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.database import get_db
from carematch.dependencies import get_actor_id
from carematch.models.api.notifications import NotificationResponse
from carematch.services.notification_service import NotificationService

router = APIRouter()


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> List[NotificationResponse]:
    """The acting profile's notifications, newest first."""
    service = NotificationService(db)
    return await service.list_for_user(
        actor_id, unread_only=unread_only, limit=limit, offset=offset
    )


@router.post("/read-all")
async def mark_all_read(
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> Dict[str, int]:
    service = NotificationService(db)
    return {"marked": await service.mark_all_read(actor_id)}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> NotificationResponse:
    service = NotificationService(db)
    return await service.mark_read(notification_id, actor_id)
