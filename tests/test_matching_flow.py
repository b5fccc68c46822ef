"""End-to-end flow through the HTTP API against a real database."""

from typing import Any, AsyncGenerator, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carematch import events as event_types
from carematch.clients.memory_event_client import InMemoryEventClient
from carematch.config import MatchingPolicy
from carematch.database import get_db
from carematch.dependencies import get_events, get_policy
from carematch.main import app


@pytest.fixture
async def api(
    session_factory: async_sessionmaker, events: InMemoryEventClient
) -> AsyncGenerator[AsyncClient, None]:
    async def override_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_events] = lambda: events
    app.dependency_overrides[get_policy] = lambda: MatchingPolicy()
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def as_actor(profile: Dict[str, Any]) -> Dict[str, str]:
    return {"X-Profile-Id": profile["id"]}


async def create_profile(api: AsyncClient, **fields: Any) -> Dict[str, Any]:
    response = await api.post("/api/profiles", json=fields)
    assert response.status_code == 201, response.text
    return response.json()


async def test_patient_is_matched_and_talks_to_counsellor(
    api: AsyncClient, events: InMemoryEventClient
) -> None:
    admin = await create_profile(
        api, email="admin@example.com", full_name="Admin User", role="admin"
    )
    counsellor_profile = await create_profile(
        api,
        email="riley@example.com",
        full_name="Dr. Riley Chen",
        role="counsellor",
        gender="female",
    )
    patient = await create_profile(
        api, email="pat@example.com", full_name="Pat Lee", gender="female"
    )

    # Counsellor joins the pool
    response = await api.post(
        "/api/counsellors",
        json={"profile_id": counsellor_profile["id"], "max_patients": 2},
    )
    assert response.status_code == 201
    counsellor = response.json()
    assert counsellor["status"] == "pending"
    assert counsellor["gender"] == "female"

    response = await api.get("/api/counsellors/candidates?gender=female")
    assert response.json() == []

    response = await api.post(
        f"/api/counsellors/{counsellor['id']}/approve", headers=as_actor(admin)
    )
    assert response.status_code == 200
    assert response.json()["approved_by"] == admin["id"]

    # An incomplete patient is turned away with the missing fields
    response = await api.post("/api/matches", json={}, headers=as_actor(patient))
    assert response.status_code == 422
    assert "phone" in response.json()["context"]["reasons"]

    response = await api.post(
        f"/api/profiles/{patient['id']}/complete",
        json={
            "phone": "+15550100",
            "date_of_birth": "1994-03-02",
            "emergency_contact": "Sam Lee",
            "emergency_phone": "+15550101",
        },
        headers=as_actor(patient),
    )
    assert response.status_code == 200
    assert response.json()["profile_completed"] is True

    response = await api.post("/api/matches", json={}, headers=as_actor(patient))
    assert response.status_code == 201, response.text
    match = response.json()
    assert match["assignment"]["counsellor_id"] == counsellor["id"]
    conversation_id = match["conversation"]["id"]

    # A second request is refused while the first assignment is active
    response = await api.post("/api/matches", json={}, headers=as_actor(patient))
    assert response.status_code == 409
    assert response.json()["context"]["reason"] == "already_assigned"

    response = await api.get("/api/notifications", headers=as_actor(counsellor_profile))
    notes = response.json()
    assert [n["title"] for n in notes] == ["New patient assigned"]
    assert notes[0]["action_url"] == f"/messages/{conversation_id}"

    # Conversation
    for text in ("Hello", "Is now a good time?"):
        response = await api.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"content": text},
            headers=as_actor(patient),
        )
        assert response.status_code == 201

    response = await api.get(
        "/api/conversations/unread-count", headers=as_actor(counsellor_profile)
    )
    assert response.json() == {"unread": 2}

    response = await api.get(
        f"/api/conversations/{conversation_id}/messages",
        headers=as_actor(counsellor_profile),
    )
    assert [m["sequence"] for m in response.json()] == [1, 2]

    response = await api.post(
        f"/api/conversations/{conversation_id}/read",
        headers=as_actor(counsellor_profile),
    )
    assert response.json()["marked"] == 2

    # Patient asks for a session
    response = await api.post(
        "/api/sessions", json={"session_type": "video"}, headers=as_actor(patient)
    )
    assert response.status_code == 201, response.text
    session = response.json()
    assert session["counsellor_id"] == counsellor["id"]

    response = await api.get("/api/notifications", headers=as_actor(counsellor_profile))
    assert response.json()[0]["title"] == "New Session Request"
    assert response.json()[0]["type"] == "appointment"

    response = await api.get("/api/admin/stats", headers=as_actor(admin))
    stats = response.json()
    assert stats["active_assignments"] == 1
    assert stats["sessions_by_status"] == {"requested": 1}
    assert stats["capacity_mismatches"] == []

    # Counsellor closes the case
    response = await api.post(
        f"/api/assignments/{match['assignment']['id']}/complete",
        headers=as_actor(counsellor_profile),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"

    response = await api.post(
        f"/api/conversations/{conversation_id}/messages",
        json={"content": "One more thing"},
        headers=as_actor(patient),
    )
    assert response.status_code == 409

    response = await api.get(f"/api/counsellors/{counsellor['id']}")
    assert response.json()["current_patients"] == 0

    # The open session request closed with the assignment
    response = await api.get(
        f"/api/sessions/{session['id']}", headers=as_actor(patient)
    )
    assert response.json()["status"] == "cancelled"

    assert [kind for kind, _ in events.published] == [
        event_types.ASSIGNMENT_CREATED,
        event_types.MESSAGE_APPENDED,
        event_types.MESSAGE_APPENDED,
        event_types.MESSAGES_READ,
        event_types.SESSION_REQUESTED,
        event_types.ASSIGNMENT_COMPLETED,
    ]


async def test_outsider_cannot_read_conversation(
    api: AsyncClient, make_profile: Any, make_counsellor: Any
) -> None:
    patient = await make_profile()
    outsider = await make_profile()
    await make_counsellor()

    response = await api.post(
        "/api/matches", json={}, headers={"X-Profile-Id": str(patient.id)}
    )
    assert response.status_code == 201
    conversation_id = response.json()["conversation"]["id"]

    response = await api.get(
        f"/api/conversations/{conversation_id}/messages",
        headers={"X-Profile-Id": str(outsider.id)},
    )
    assert response.status_code == 403
    assert response.json()["error"] == "permission_denied"
