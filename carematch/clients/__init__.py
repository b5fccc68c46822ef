# Realtime event relays
from .base_event_client import BaseEventClient
from .memory_event_client import InMemoryEventClient
from .webhook_event_client import WebhookEventClient

__all__ = ["BaseEventClient", "InMemoryEventClient", "WebhookEventClient"]
