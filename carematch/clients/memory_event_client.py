from collections import defaultdict, deque
from typing import Any, Awaitable, Callable, DefaultDict, Deque, Dict, List, Tuple

from carematch.clients.base_event_client import BaseEventClient

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]

DEFAULT_HISTORY_SIZE = 1000


class InMemoryEventClient(BaseEventClient):
    """In-process event relay with per-type subscribers.

    Only the most recent ``history_size`` events are kept, so a long-running
    process does not grow without bound.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE) -> None:
        self._history: Deque[Tuple[str, Dict[str, Any]]] = deque(maxlen=history_size)
        self._subscribers: DefaultDict[str, List[EventHandler]] = defaultdict(list)

    @property
    def published(self) -> List[Tuple[str, Dict[str, Any]]]:
        """Retained events, oldest first."""
        return list(self._history)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._subscribers[event_type].append(handler)

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        self._history.append((event_type, payload))
        for handler in list(self._subscribers[event_type]):
            await handler(payload)

    def events_of(self, event_type: str) -> List[Dict[str, Any]]:
        return [payload for kind, payload in self._history if kind == event_type]
