from datetime import date
from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from carematch.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carematch.models.api.profiles import (
    ProfileCompletionRequest,
    ProfileCreateRequest,
    ProfileUpdateRequest,
)
from carematch.models.enums import Gender, Role
from carematch.services.profile_service import ProfileService


class TestProfileService:
    """Integration tests for ProfileService against SQLite."""

    @pytest.fixture
    def service(self, test_db: AsyncSession, policy: Any) -> ProfileService:
        return ProfileService(test_db, policy)

    async def test_create_profile(self, service: ProfileService) -> None:
        profile = await service.create_profile(
            ProfileCreateRequest(
                email="new@example.com", full_name="New Patient", gender=Gender.MALE
            )
        )

        assert profile.role == Role.PATIENT
        assert profile.gender == Gender.MALE
        assert profile.profile_completed is False
        assert profile.is_active is True

    async def test_duplicate_email_conflicts(self, service: ProfileService) -> None:
        request = ProfileCreateRequest(email="dup@example.com", full_name="First")
        await service.create_profile(request)

        with pytest.raises(ConflictError) as exc_info:
            await service.create_profile(request)
        assert exc_info.value.reason == ConflictError.INTEGRITY_VIOLATION

    async def test_get_missing_profile(self, service: ProfileService) -> None:
        with pytest.raises(NotFoundError):
            await service.get_profile(uuid4())

    async def test_complete_profile(
        self, service: ProfileService, make_profile: Any
    ) -> None:
        patient = await make_profile(
            completed=False,
            phone=None,
            date_of_birth=None,
            emergency_contact=None,
            emergency_phone=None,
        )

        completed = await service.complete_profile(
            patient.id,
            ProfileCompletionRequest(
                phone="+15550123",
                date_of_birth=date(1995, 3, 2),
                emergency_contact="Pat Doe",
                emergency_phone="+15550124",
            ),
            actor_id=patient.id,
        )

        assert completed.profile_completed is True
        assert completed.phone == "+15550123"

    async def test_incomplete_submission_writes_nothing(
        self, service: ProfileService, make_profile: Any
    ) -> None:
        patient = await make_profile(
            completed=False, phone=None, emergency_contact=None
        )

        with pytest.raises(ValidationError) as exc_info:
            await service.complete_profile(
                patient.id,
                ProfileCompletionRequest(phone="+15550123"),
                actor_id=patient.id,
            )

        assert exc_info.value.reasons == ["emergency_contact"]
        reloaded = await service.get_profile(patient.id)
        assert reloaded.phone is None
        assert reloaded.profile_completed is False

    async def test_other_patient_cannot_complete(
        self, service: ProfileService, make_profile: Any
    ) -> None:
        patient = await make_profile(completed=False)
        stranger = await make_profile()

        with pytest.raises(PermissionDeniedError):
            await service.complete_profile(
                patient.id, ProfileCompletionRequest(), actor_id=stranger.id
            )

    async def test_clearing_required_field_drops_completion(
        self, service: ProfileService, make_profile: Any
    ) -> None:
        patient = await make_profile()

        updated = await service.update_profile(
            patient.id, ProfileUpdateRequest(emergency_phone=None), actor_id=patient.id
        )

        assert updated.emergency_phone is None
        assert updated.profile_completed is False

    async def test_get_eligibility(
        self, service: ProfileService, make_profile: Any
    ) -> None:
        patient = await make_profile(emergency_contact=None)

        result = await service.get_eligibility(patient.id)

        assert result.eligible is False
        assert result.reasons == ["emergency_contact"]

    async def test_deactivate_requires_admin(
        self, service: ProfileService, make_profile: Any, make_admin: Any
    ) -> None:
        patient = await make_profile()
        admin = await make_admin()

        with pytest.raises(PermissionDeniedError):
            await service.deactivate_profile(patient.id, actor_id=patient.id)

        deactivated = await service.deactivate_profile(patient.id, actor_id=admin.id)
        assert deactivated.is_active is False
