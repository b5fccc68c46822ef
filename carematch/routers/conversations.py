from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.clients.base_event_client import BaseEventClient
from carematch.database import get_db
from carematch.dependencies import get_actor_id, get_events
from carematch.models.api.conversations import (
    ConversationResponse,
    MarkReadResponse,
    UnreadCountResponse,
)
from carematch.models.api.messages import MessageResponse, SendMessageRequest
from carematch.services.message_service import MessageService

router = APIRouter()


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    profile_id: Optional[UUID] = Query(
        None, description="Whose conversations to list; defaults to the actor"
    ),
    limit: Optional[int] = Query(
        50, description="Maximum number of conversations to return", ge=1, le=1000
    ),
    offset: Optional[int] = Query(
        0, description="Number of conversations to skip", ge=0
    ),
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> List[ConversationResponse]:
    """
    List conversations, most recently active first.

    Query parameters:
    - profile_id: Participant to list for (admins only when not the actor)
    - limit: Maximum number of conversations to return (default: 50, max: 1000)
    - offset: Number of conversations to skip (default: 0)
    """
    service = MessageService(db)
    return await service.list_conversations(
        profile_id or actor_id, actor_id, limit=limit, offset=offset
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> UnreadCountResponse:
    service = MessageService(db)
    return UnreadCountResponse(unread=await service.unread_count(actor_id))


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def get_conversation_messages(
    conversation_id: UUID,
    limit: Optional[int] = Query(
        100, description="Maximum number of messages to return", ge=1, le=1000
    ),
    offset: Optional[int] = Query(0, description="Number of messages to skip", ge=0),
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> List[MessageResponse]:
    """
    Get the messages of a conversation in the order they were sent.

    Query parameters:
    - limit: Maximum number of messages to return (default: 100, max: 1000)
    - offset: Number of messages to skip (default: 0)
    """
    service = MessageService(db)
    return await service.list_messages(
        conversation_id, actor_id, limit=limit, offset=offset
    )


@router.post(
    "/{conversation_id}/messages", response_model=MessageResponse, status_code=201
)
async def send_message(
    conversation_id: UUID,
    request: SendMessageRequest,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
) -> MessageResponse:
    service = MessageService(db, events_client)
    return await service.append_message(
        conversation_id,
        actor_id,
        request.content,
        message_type=request.message_type,
        recipient_viewing=request.recipient_viewing,
    )


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_conversation_read(
    conversation_id: UUID,
    actor_id: UUID = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
    events_client: BaseEventClient = Depends(get_events),
) -> MarkReadResponse:
    """Mark every message the actor received in this conversation as read."""
    service = MessageService(db, events_client)
    marked = await service.mark_read(conversation_id, actor_id)
    return MarkReadResponse(conversation_id=conversation_id, marked=marked)
