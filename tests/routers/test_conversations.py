from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from carematch.exceptions import ConflictError, PermissionDeniedError
from carematch.main import app
from carematch.models.api.conversations import ConversationResponse
from carematch.models.api.messages import MessageResponse
from carematch.models.enums import MessageType

SERVICE = "carematch.services.message_service.MessageService"


class TestConversationsRouter:
    """Unit tests for the conversations router endpoints."""

    @pytest.fixture
    def client(self) -> TestClient:
        """Test client for FastAPI app."""
        return TestClient(app)

    @pytest.fixture
    def actor_id(self) -> UUID:
        return uuid4()

    @pytest.fixture
    def headers(self, actor_id: UUID) -> dict:
        return {"X-Profile-Id": str(actor_id)}

    @pytest.fixture
    def sample_conversation(self, actor_id: UUID) -> ConversationResponse:
        now = datetime.now(timezone.utc)
        return ConversationResponse(
            id=uuid4(),
            patient_id=actor_id,
            counsellor_id=uuid4(),
            counsellor_profile_id=uuid4(),
            assignment_id=uuid4(),
            is_active=True,
            last_message_at=now,
            message_count=2,
            created_at=now,
            updated_at=now,
        )

    @pytest.fixture
    def sample_message(self, actor_id: UUID) -> MessageResponse:
        return MessageResponse(
            id=uuid4(),
            conversation_id=uuid4(),
            sender_id=actor_id,
            content="Hello",
            message_type=MessageType.TEXT,
            sequence=1,
            is_read=False,
            read_at=None,
            created_at=datetime.now(timezone.utc),
        )

    def test_requires_actor_header(self, client: TestClient) -> None:
        response = client.get("/api/conversations")
        assert response.status_code == 422

    def test_list_defaults_to_actor(
        self,
        client: TestClient,
        headers: dict,
        actor_id: UUID,
        sample_conversation: ConversationResponse,
    ) -> None:
        with patch(
            f"{SERVICE}.list_conversations",
            new_callable=AsyncMock,
            return_value=[sample_conversation],
        ) as mock_list:
            response = client.get("/api/conversations?limit=10", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(sample_conversation.id)
        mock_list.assert_called_once_with(actor_id, actor_id, limit=10, offset=0)

    def test_list_for_other_profile(
        self, client: TestClient, headers: dict, actor_id: UUID
    ) -> None:
        other_id = uuid4()
        with patch(
            f"{SERVICE}.list_conversations",
            new_callable=AsyncMock,
            side_effect=PermissionDeniedError("patient", "view_oversight"),
        ) as mock_list:
            response = client.get(
                f"/api/conversations?profile_id={other_id}", headers=headers
            )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"
        assert mock_list.call_args[0][:2] == (other_id, actor_id)

    def test_pagination_bounds(self, client: TestClient, headers: dict) -> None:
        response = client.get("/api/conversations?limit=0", headers=headers)
        assert response.status_code == 422

        response = client.get("/api/conversations?offset=-1", headers=headers)
        assert response.status_code == 422

    def test_unread_count(self, client: TestClient, headers: dict) -> None:
        with patch(
            f"{SERVICE}.unread_count", new_callable=AsyncMock, return_value=4
        ):
            response = client.get("/api/conversations/unread-count", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"unread": 4}

    def test_get_messages(
        self, client: TestClient, headers: dict, sample_message: MessageResponse
    ) -> None:
        conversation_id = uuid4()
        with patch(
            f"{SERVICE}.list_messages",
            new_callable=AsyncMock,
            return_value=[sample_message],
        ):
            response = client.get(
                f"/api/conversations/{conversation_id}/messages", headers=headers
            )

        assert response.status_code == 200
        assert response.json()[0]["sequence"] == 1

    def test_send_message(
        self,
        client: TestClient,
        headers: dict,
        actor_id: UUID,
        sample_message: MessageResponse,
    ) -> None:
        conversation_id = uuid4()
        with patch(
            f"{SERVICE}.append_message",
            new_callable=AsyncMock,
            return_value=sample_message,
        ) as mock_append:
            response = client.post(
                f"/api/conversations/{conversation_id}/messages",
                json={"content": "Hello", "recipient_viewing": True},
                headers=headers,
            )

        assert response.status_code == 201
        assert response.json()["content"] == "Hello"
        args, kwargs = mock_append.call_args
        assert args == (conversation_id, actor_id, "Hello")
        assert kwargs == {"message_type": MessageType.TEXT, "recipient_viewing": True}

    def test_send_message_validation(self, client: TestClient, headers: dict) -> None:
        response = client.post(
            f"/api/conversations/{uuid4()}/messages", json={}, headers=headers
        )
        assert response.status_code == 422

    def test_send_to_closed_conversation(
        self, client: TestClient, headers: dict
    ) -> None:
        with patch(
            f"{SERVICE}.append_message",
            new_callable=AsyncMock,
            side_effect=ConflictError(ConflictError.CONVERSATION_CLOSED),
        ):
            response = client.post(
                f"/api/conversations/{uuid4()}/messages",
                json={"content": "Hello"},
                headers=headers,
            )

        assert response.status_code == 409
        assert response.json()["context"]["reason"] == "conversation_closed"

    def test_mark_read(self, client: TestClient, headers: dict) -> None:
        conversation_id = uuid4()
        with patch(f"{SERVICE}.mark_read", new_callable=AsyncMock, return_value=3):
            response = client.post(
                f"/api/conversations/{conversation_id}/read", headers=headers
            )

        assert response.status_code == 200
        assert response.json() == {
            "conversation_id": str(conversation_id),
            "marked": 3,
        }

    def test_wrong_http_method(self, client: TestClient, headers: dict) -> None:
        response = client.get(f"/api/conversations/{uuid4()}/read", headers=headers)
        assert response.status_code == 405
