from datetime import date, datetime, timezone
from typing import Any
from uuid import uuid4

import pytest

from carematch.exceptions import ValidationError
from carematch.models.api.profiles import ProfileResponse
from carematch.models.enums import Gender, Role
from carematch.services.eligibility_service import (
    calculate_age,
    check_eligibility,
    ensure_eligible,
)

TODAY = date(2024, 6, 15)


def build_profile(**overrides: Any) -> ProfileResponse:
    now = datetime.now(timezone.utc)
    values = {
        "id": uuid4(),
        "email": "patient@example.com",
        "full_name": "Alex Morgan",
        "role": Role.PATIENT,
        "gender": Gender.FEMALE,
        "phone": "+15550100",
        "date_of_birth": date(1990, 5, 17),
        "emergency_contact": "Sam Morgan",
        "emergency_phone": "+15550101",
        "profile_completed": True,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    values.update(overrides)
    return ProfileResponse(**values)


class TestCalculateAge:
    def test_birthday_already_passed(self) -> None:
        assert calculate_age(date(2000, 1, 1), TODAY) == 24

    def test_birthday_later_this_year(self) -> None:
        assert calculate_age(date(2000, 12, 31), TODAY) == 23

    def test_birthday_today(self) -> None:
        assert calculate_age(date(2006, 6, 15), TODAY) == 18


class TestCheckEligibility:
    """Unit tests for the matching eligibility check."""

    def test_complete_adult_patient_is_eligible(self) -> None:
        result = check_eligibility(build_profile(), today=TODAY)

        assert result.eligible is True
        assert result.reasons == []

    def test_missing_emergency_contact(self) -> None:
        result = check_eligibility(build_profile(emergency_contact=None), today=TODAY)

        assert result.eligible is False
        assert result.reasons == ["emergency_contact"]

    def test_blank_fields_count_as_missing(self) -> None:
        result = check_eligibility(
            build_profile(phone="   ", emergency_phone=""), today=TODAY
        )

        assert result.reasons == ["phone", "emergency_phone"]

    def test_all_fields_missing_reported_in_order(self) -> None:
        result = check_eligibility(
            build_profile(
                phone=None,
                date_of_birth=None,
                emergency_contact=None,
                emergency_phone=None,
            ),
            today=TODAY,
        )

        assert result.reasons == [
            "phone",
            "date_of_birth",
            "emergency_contact",
            "emergency_phone",
        ]

    def test_underage_patient(self) -> None:
        # Turns 18 tomorrow
        result = check_eligibility(
            build_profile(date_of_birth=date(2006, 6, 16)), today=TODAY
        )

        assert result.eligible is False
        assert result.reasons == ["date_of_birth"]

    def test_eighteenth_birthday_is_eligible(self) -> None:
        result = check_eligibility(
            build_profile(date_of_birth=date(2006, 6, 15)), today=TODAY
        )

        assert result.eligible is True

    def test_minimum_age_is_configurable(self) -> None:
        result = check_eligibility(
            build_profile(date_of_birth=date(2008, 1, 1)), today=TODAY, minimum_age=16
        )

        assert result.eligible is True

    def test_non_patient_is_not_eligible(self) -> None:
        result = check_eligibility(build_profile(role=Role.COUNSELLOR), today=TODAY)

        assert result.reasons == ["role"]

    def test_missing_gender(self) -> None:
        result = check_eligibility(build_profile(gender=None), today=TODAY)

        assert result.reasons == ["gender"]


class TestEnsureEligible:
    def test_passes_for_eligible_profile(self) -> None:
        ensure_eligible(build_profile(), today=TODAY)

    def test_raises_with_reasons(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ensure_eligible(build_profile(emergency_phone=None), today=TODAY)

        assert exc_info.value.reasons == ["emergency_phone"]
        assert exc_info.value.details == {"reasons": ["emergency_phone"]}

    def test_requires_completion_flag(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ensure_eligible(build_profile(profile_completed=False), today=TODAY)

        assert exc_info.value.reasons == ["profile_completed"]

    def test_completion_flag_can_be_skipped(self) -> None:
        ensure_eligible(
            build_profile(profile_completed=False), today=TODAY, require_completed=False
        )
