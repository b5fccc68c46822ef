"""
Matching eligibility.

A patient may request a counsellor only once the safety fields are present
and they are an adult. The check is pure: it reports every failing field
instead of stopping at the first one.
"""

from datetime import date
from typing import List, Optional

from carematch.exceptions import ValidationError
from carematch.models.api.profiles import EligibilityResponse, ProfileResponse
from carematch.models.enums import Role

REQUIRED_FIELDS = ("phone", "date_of_birth", "emergency_contact", "emergency_phone")
DEFAULT_MINIMUM_AGE = 18


def calculate_age(date_of_birth: date, today: date) -> int:
    """Whole years, one less if this year's birthday has not happened yet."""
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def check_eligibility(
    profile: ProfileResponse,
    today: Optional[date] = None,
    minimum_age: int = DEFAULT_MINIMUM_AGE,
) -> EligibilityResponse:
    today = today or date.today()
    reasons: List[str] = []

    if profile.role != Role.PATIENT:
        reasons.append("role")

    for field in REQUIRED_FIELDS:
        if _is_missing(getattr(profile, field)):
            reasons.append(field)

    if (
        profile.date_of_birth is not None
        and calculate_age(profile.date_of_birth, today) < minimum_age
    ):
        reasons.append("date_of_birth")

    # Gender-matched support cannot pick a pool without it
    if profile.gender is None:
        reasons.append("gender")

    return EligibilityResponse(eligible=not reasons, reasons=reasons)


def ensure_eligible(
    profile: ProfileResponse,
    today: Optional[date] = None,
    minimum_age: int = DEFAULT_MINIMUM_AGE,
    require_completed: bool = True,
) -> None:
    """Raise ValidationError unless the profile may request matching."""
    result = check_eligibility(profile, today=today, minimum_age=minimum_age)
    reasons = list(result.reasons)
    if require_completed and not reasons and not profile.profile_completed:
        reasons.append("profile_completed")
    if reasons:
        raise ValidationError(reasons, "Profile is not eligible for matching")
