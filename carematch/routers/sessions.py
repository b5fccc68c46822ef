from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.clients.base_event_client import BaseEventClient
from carematch.database import get_db
from carematch.dependencies import get_actor_id, get_events
from carematch.models.api.sessions import (
    SessionCompleteRequest,
    SessionConfirmRequest,
    SessionRequestCreate,
    SessionResponse,
)
from carematch.models.enums import SessionStatus
from carematch.services.session_service import SessionService

router = APIRouter()


@router.post("", response_model=SessionResponse, status_code=201)
async def request_session(
    request: SessionRequestCreate,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
) -> SessionResponse:
    """
    Request a session with the patient's assigned counsellor.

    The counsellor is notified. Patients without an active assignment get 409.
    """
    service = SessionService(db, events_client)
    return await service.request_session(
        request.patient_id or actor_id, actor_id, request
    )


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    status: Optional[SessionStatus] = Query(None, description="Filter by status"),
    scheduled_from: Optional[datetime] = Query(None),
    scheduled_until: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> List[SessionResponse]:
    """The acting profile's sessions in schedule order."""
    service = SessionService(db)
    return await service.list_sessions(
        actor_id,
        status=status,
        scheduled_from=scheduled_from,
        scheduled_until=scheduled_until,
        limit=limit,
        offset=offset,
    )


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    service = SessionService(db)
    return await service.get_session(session_id, actor_id)


@router.post("/{session_id}/confirm", response_model=SessionResponse)
async def confirm_session(
    session_id: UUID,
    request: Optional[SessionConfirmRequest] = None,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
) -> SessionResponse:
    service = SessionService(db, events_client)
    return await service.confirm_session(
        session_id, actor_id, meeting_link=request.meeting_link if request else None
    )


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(
    session_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
) -> SessionResponse:
    service = SessionService(db, events_client)
    return await service.cancel_session(session_id, actor_id)


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_session(
    session_id: UUID,
    request: Optional[SessionCompleteRequest] = None,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
) -> SessionResponse:
    """Close a confirmed session; ``attended: false`` records a no-show."""
    service = SessionService(db, events_client)
    return await service.complete_session(
        session_id, actor_id, attended=request.attended if request else True
    )
