import os
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, AsyncGenerator, Awaitable, Callable, Generator, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from dotenv import load_dotenv

load_dotenv()

# The app module builds its engine at import time
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'carematch-test.db'}",
)
os.environ.setdefault("ENV", "test")
os.environ.setdefault("AUTO_CREATE_SCHEMA", "true")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import func, select  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
)

import carematch.models.db  # noqa: E402,F401
from carematch.clients.memory_event_client import InMemoryEventClient  # noqa: E402
from carematch.config import MatchingPolicy  # noqa: E402
from carematch.database import Base, create_engine_for_url  # noqa: E402
from carematch.main import app  # noqa: E402
from carematch.models.api.assignments import AssignmentResponse  # noqa: E402
from carematch.models.api.conversations import ConversationResponse  # noqa: E402
from carematch.models.api.counsellors import CounsellorResponse  # noqa: E402
from carematch.models.api.matching import MatchResponse  # noqa: E402
from carematch.models.api.profiles import ProfileResponse  # noqa: E402
from carematch.models.enums import (  # noqa: E402
    AssignmentStatus,
    CounsellorStatus,
    Gender,
    Role,
)
from carematch.repositories.counsellor_repository import (  # noqa: E402
    CounsellorRepository,
)
from carematch.repositories.profile_repository import ProfileRepository  # noqa: E402

ProfileFactory = Callable[..., Awaitable[ProfileResponse]]
RowCounter = Callable[..., Awaitable[int]]
CounsellorFactory = Callable[..., Awaitable[CounsellorResponse]]


@pytest.fixture(scope="function")
async def test_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite database per test, with the production engine settings."""
    engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'carematch.db'}")

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Clean up
    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(
    session_factory: async_sessionmaker,
) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session for integration tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def mock_db() -> AsyncGenerator[AsyncMock, None]:
    """Create a mock database session for unit tests."""
    mock_session = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.close = AsyncMock()
    mock_session.flush = AsyncMock()
    mock_session.execute = AsyncMock()
    mock_session.add = MagicMock()  # add is sync, not async

    yield mock_session


@pytest.fixture
def client() -> Generator[TestClient, Any, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def events() -> InMemoryEventClient:
    return InMemoryEventClient()


@pytest.fixture
def policy() -> MatchingPolicy:
    return MatchingPolicy()


@pytest.fixture
def make_profile(session_factory: async_sessionmaker) -> ProfileFactory:
    """Factory for committed profiles. Defaults to an eligible adult patient."""

    async def _make(
        role: Role = Role.PATIENT,
        gender: Optional[Gender] = Gender.FEMALE,
        completed: bool = True,
        **overrides: Any,
    ) -> ProfileResponse:
        values = {
            "email": f"{uuid4().hex}@example.com",
            "full_name": "Alex Morgan",
            "role": role.value,
            "gender": gender.value if gender else None,
            "phone": "+15550100",
            "date_of_birth": date(1990, 5, 17),
            "emergency_contact": "Sam Morgan",
            "emergency_phone": "+15550101",
            "profile_completed": completed,
        }
        values.update(overrides)
        async with session_factory() as session:
            profile = await ProfileRepository(session).create_profile(**values)
            await session.commit()
        return profile

    return _make


@pytest.fixture
def make_admin(make_profile: ProfileFactory) -> ProfileFactory:
    async def _make(**overrides: Any) -> ProfileResponse:
        overrides.setdefault("full_name", "Admin User")
        return await make_profile(role=Role.ADMIN, completed=False, **overrides)

    return _make


@pytest.fixture
def make_counsellor(
    session_factory: async_sessionmaker, make_profile: ProfileFactory
) -> CounsellorFactory:
    """Factory for committed counsellors. Defaults to approved and available."""

    async def _make(
        gender: Gender = Gender.FEMALE,
        rating: float = 4.5,
        max_patients: int = 5,
        current_patients: int = 0,
        status: CounsellorStatus = CounsellorStatus.APPROVED,
        is_available: bool = True,
        full_name: str = "Dr. Riley Chen",
    ) -> CounsellorResponse:
        profile = await make_profile(
            role=Role.COUNSELLOR, gender=gender, completed=False, full_name=full_name
        )
        async with session_factory() as session:
            repo = CounsellorRepository(session)
            counsellor = await repo.create_counsellor(
                profile_id=profile.id,
                gender=gender.value,
                max_patients=max_patients,
                specializations=["anxiety"],
                status=status.value,
                is_available=is_available,
                rating=rating,
            )
            if current_patients:
                updated = await repo.update(
                    counsellor.id, {"current_patients": current_patients}
                )
                assert updated is not None
                counsellor = updated
            await session.commit()
        return counsellor

    return _make


@pytest.fixture
def count_rows(session_factory: async_sessionmaker) -> RowCounter:
    """Count rows of a model in a short-lived session of its own."""

    async def _count(model: Any, **filters: Any) -> int:
        query = select(func.count()).select_from(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        async with session_factory() as session:
            result = await session.execute(query)
            return int(result.scalar_one())

    return _count


@pytest.fixture
def load_counsellor(
    session_factory: async_sessionmaker,
) -> Callable[..., Awaitable[CounsellorResponse]]:
    async def _load(counsellor_id: Any) -> CounsellorResponse:
        async with session_factory() as session:
            counsellor = await CounsellorRepository(session).get_by_id(counsellor_id)
        assert counsellor is not None
        return counsellor

    return _load


@pytest.fixture
def build_match() -> Callable[[UUID], MatchResponse]:
    """Factory for an unsaved MatchResponse, for router tests."""

    def _build(patient_id: UUID) -> MatchResponse:
        now = datetime.now(timezone.utc)
        assignment = AssignmentResponse(
            id=uuid4(),
            patient_id=patient_id,
            counsellor_id=uuid4(),
            status=AssignmentStatus.ACTIVE,
            assigned_by=None,
            assigned_at=now,
            completed_at=None,
            cancelled_at=None,
            notes=None,
            created_at=now,
        )
        conversation = ConversationResponse(
            id=uuid4(),
            patient_id=patient_id,
            counsellor_id=assignment.counsellor_id,
            counsellor_profile_id=uuid4(),
            assignment_id=assignment.id,
            is_active=True,
            last_message_at=None,
            message_count=0,
            created_at=now,
            updated_at=now,
        )
        return MatchResponse(assignment=assignment, conversation=conversation)

    return _build
