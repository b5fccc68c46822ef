from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

import httpx

from carematch.clients.base_event_client import BaseEventClient


class WebhookEventClient(BaseEventClient):
    """Relays events to a live-subscription layer over HTTP using httpx."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 5.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        """POST the event envelope to ``{base_url}/events``."""
        envelope = {
            "event_id": str(uuid4()),
            "type": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": payload,
        }

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/events", json=envelope, headers=headers
            )
            response.raise_for_status()
