"""FastAPI dependencies shared by the routers."""

from uuid import UUID

from fastapi import Header, HTTPException

from carematch.clients.base_event_client import BaseEventClient
from carematch.config import MatchingPolicy, load_policy
from carematch.events import get_event_client


async def get_actor_id(x_profile_id: str = Header(..., alias="X-Profile-Id")) -> UUID:
    """Acting profile, as asserted by the authenticating gateway."""
    try:
        return UUID(x_profile_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-Profile-Id header")


def get_policy() -> MatchingPolicy:
    return load_policy()


def get_events() -> BaseEventClient:
    return get_event_client()
