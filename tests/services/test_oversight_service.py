from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from carematch.clients.memory_event_client import InMemoryEventClient
from carematch.config import MatchingPolicy
from carematch.exceptions import PermissionDeniedError
from carematch.models.enums import CounsellorStatus
from carematch.services.matching_service import MatchingService
from carematch.services.oversight_service import OversightService


class TestOversightService:
    async def test_stats(
        self,
        make_profile: Any,
        make_admin: Any,
        make_counsellor: Any,
        session_factory: async_sessionmaker,
        events: InMemoryEventClient,
    ) -> None:
        admin = await make_admin()
        patient = await make_profile()
        await make_profile()
        await make_counsellor()
        await make_counsellor(status=CounsellorStatus.PENDING)
        async with session_factory() as session:
            await MatchingService(session, events, MatchingPolicy()).request_match(
                patient.id, patient.id
            )

        async with session_factory() as session:
            stats = await OversightService(session).stats(admin.id)

        assert stats.profiles_by_role == {"admin": 1, "patient": 2, "counsellor": 2}
        assert stats.counsellors_by_status == {"approved": 1, "pending": 1}
        assert stats.active_assignments == 1
        assert stats.conversations == 1
        assert stats.sessions_by_status == {}
        assert stats.capacity_mismatches == []

    async def test_reports_capacity_drift(
        self,
        make_admin: Any,
        make_counsellor: Any,
        session_factory: async_sessionmaker,
    ) -> None:
        admin = await make_admin()
        # Load recorded without any active assignment behind it
        drifted = await make_counsellor(current_patients=2)

        async with session_factory() as session:
            stats = await OversightService(session).stats(admin.id)

        assert stats.capacity_mismatches == [drifted.id]

    async def test_requires_oversight_capability(
        self, make_profile: Any, session_factory: async_sessionmaker
    ) -> None:
        patient = await make_profile()

        async with session_factory() as session:
            with pytest.raises(PermissionDeniedError):
                await OversightService(session).stats(patient.id)
