"""
Post-commit domain events.

Publishing is best effort: the write has already committed, so a relay
failure is logged and never propagated.
"""

import logging
from typing import Any, Dict, Optional

from carematch import config
from carematch.clients.base_event_client import BaseEventClient
from carematch.clients.memory_event_client import InMemoryEventClient
from carematch.clients.webhook_event_client import WebhookEventClient

logger = logging.getLogger(__name__)

ASSIGNMENT_CREATED = "assignment.created"
ASSIGNMENT_COMPLETED = "assignment.completed"
ASSIGNMENT_CANCELLED = "assignment.cancelled"
MESSAGE_APPENDED = "message.appended"
MESSAGES_READ = "messages.read"
SESSION_REQUESTED = "session.requested"
SESSION_CONFIRMED = "session.confirmed"
SESSION_CANCELLED = "session.cancelled"
SESSION_COMPLETED = "session.completed"

_event_client: Optional[BaseEventClient] = None


def get_event_client() -> BaseEventClient:
    """Dependency returning the process-wide event relay."""
    global _event_client
    if _event_client is None:
        if config.REALTIME_WEBHOOK_URL:
            _event_client = WebhookEventClient(
                base_url=config.REALTIME_WEBHOOK_URL, api_key=config.REALTIME_API_KEY
            )
        else:
            _event_client = InMemoryEventClient(
                history_size=config.REALTIME_HISTORY_SIZE
            )
    return _event_client


async def publish_event(
    client: Optional[BaseEventClient], event_type: str, payload: Dict[str, Any]
) -> bool:
    """Publish after commit. Returns False if the relay failed."""
    if client is None:
        return False
    try:
        await client.publish(event_type, payload)
    except Exception:
        logger.exception("Failed to publish %s event", event_type)
        return False
    logger.debug("Published %s event", event_type)
    return True
