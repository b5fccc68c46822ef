from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from carematch import events
from carematch.clients.base_event_client import BaseEventClient
from carematch.clients.memory_event_client import InMemoryEventClient
from carematch.clients.webhook_event_client import WebhookEventClient


class TestBaseEventClient:
    """Unit tests for BaseEventClient abstract base class."""

    def test_base_client_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            BaseEventClient()  # type: ignore

    def test_publish_must_be_implemented(self) -> None:
        class IncompleteClient(BaseEventClient):
            pass

        with pytest.raises(TypeError, match="Can't instantiate abstract class"):
            IncompleteClient()  # type: ignore


class TestInMemoryEventClient:
    async def test_records_and_dispatches(self) -> None:
        client = InMemoryEventClient()
        received: List[Dict[str, Any]] = []

        async def handler(payload: Dict[str, Any]) -> None:
            received.append(payload)

        client.subscribe(events.MESSAGE_APPENDED, handler)
        await client.publish(events.MESSAGE_APPENDED, {"sequence": 1})
        await client.publish(events.MESSAGES_READ, {"marked": 2})

        assert received == [{"sequence": 1}]
        assert client.events_of(events.MESSAGES_READ) == [{"marked": 2}]
        assert [kind for kind, _ in client.published] == [
            events.MESSAGE_APPENDED,
            events.MESSAGES_READ,
        ]

    async def test_history_is_bounded(self) -> None:
        client = InMemoryEventClient(history_size=3)

        for sequence in range(1, 6):
            await client.publish(events.MESSAGE_APPENDED, {"sequence": sequence})

        assert client.events_of(events.MESSAGE_APPENDED) == [
            {"sequence": 3},
            {"sequence": 4},
            {"sequence": 5},
        ]
        assert len(client.published) == 3


class TestWebhookEventClient:
    """Unit tests for WebhookEventClient."""

    @pytest.fixture
    def client(self) -> WebhookEventClient:
        return WebhookEventClient(
            base_url="http://test-realtime.com/", api_key="test-api-key"
        )

    def test_client_initialization(self, client: WebhookEventClient) -> None:
        assert client.base_url == "http://test-realtime.com"
        assert client.api_key == "test-api-key"
        assert client.timeout == 5.0

    async def test_publish_posts_envelope(self, client: WebhookEventClient) -> None:
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_http = AsyncMock()
            mock_http.post.return_value = mock_response
            mock_client_class.return_value.__aenter__.return_value = mock_http

            await client.publish(events.ASSIGNMENT_CREATED, {"assignment_id": "a-1"})

            mock_http.post.assert_called_once()
            call_args = mock_http.post.call_args
            assert call_args[0][0] == "http://test-realtime.com/events"

            envelope = call_args[1]["json"]
            assert envelope["type"] == events.ASSIGNMENT_CREATED
            assert envelope["data"] == {"assignment_id": "a-1"}
            assert "event_id" in envelope
            assert "timestamp" in envelope

            headers = call_args[1]["headers"]
            assert headers["Authorization"] == "Bearer test-api-key"
            assert headers["Content-Type"] == "application/json"

    async def test_publish_raises_on_http_error(
        self, client: WebhookEventClient
    ) -> None:
        request = httpx.Request("POST", "http://test-realtime.com/events")
        error = httpx.HTTPStatusError(
            "Server error", request=request, response=httpx.Response(500, request=request)
        )
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock(side_effect=error)

        with patch("httpx.AsyncClient") as mock_client_class:
            mock_http = AsyncMock()
            mock_http.post.return_value = mock_response
            mock_client_class.return_value.__aenter__.return_value = mock_http

            with pytest.raises(httpx.HTTPStatusError):
                await client.publish(events.MESSAGES_READ, {"marked": 1})


class TestPublishEvent:
    async def test_success(self) -> None:
        client = InMemoryEventClient()

        assert await events.publish_event(client, events.MESSAGES_READ, {"marked": 1})
        assert client.events_of(events.MESSAGES_READ) == [{"marked": 1}]

    async def test_relay_failure_is_swallowed(self) -> None:
        client = MagicMock(spec=BaseEventClient)
        client.publish = AsyncMock(side_effect=httpx.ConnectError("refused"))

        result = await events.publish_event(
            client, events.ASSIGNMENT_CREATED, {"assignment_id": "a-1"}
        )

        assert result is False
        client.publish.assert_awaited_once()

    async def test_no_client(self) -> None:
        assert await events.publish_event(None, events.MESSAGES_READ, {}) is False

    def test_default_client_is_in_memory(self) -> None:
        with (
            patch.object(events, "_event_client", None),
            patch.object(events.config, "REALTIME_WEBHOOK_URL", None),
        ):
            assert isinstance(events.get_event_client(), InMemoryEventClient)

    async def test_default_client_does_not_grow_without_bound(self) -> None:
        with (
            patch.object(events, "_event_client", None),
            patch.object(events.config, "REALTIME_WEBHOOK_URL", None),
            patch.object(events.config, "REALTIME_HISTORY_SIZE", 100),
        ):
            client = events.get_event_client()

        for _ in range(1000):
            await events.publish_event(client, events.MESSAGES_READ, {"marked": 1})

        assert isinstance(client, InMemoryEventClient)
        assert len(client.published) == 100

    def test_webhook_client_when_configured(self) -> None:
        with (
            patch.object(events, "_event_client", None),
            patch.object(events.config, "REALTIME_WEBHOOK_URL", "http://relay"),
            patch.object(events.config, "REALTIME_API_KEY", "key"),
        ):
            client = events.get_event_client()

        assert isinstance(client, WebhookEventClient)
        assert client.base_url == "http://relay"
