from abc import ABC, abstractmethod
from typing import Any, Dict


class BaseEventClient(ABC):
    """Abstract base class for realtime event relays."""

    @abstractmethod
    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Publish a committed domain event.

        Args:
            event_type: Dotted event name, e.g. ``assignment.created``
            payload: JSON-serialisable event body
        """
