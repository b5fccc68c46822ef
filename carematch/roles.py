"""
Role capabilities.

Roles form a closed set; every privileged operation asks for a capability
instead of comparing role strings.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional
from uuid import UUID

from carematch.exceptions import PermissionDeniedError
from carematch.models.api.profiles import ProfileResponse
from carematch.models.enums import Role


class Capability(str, Enum):
    REQUEST_MATCH = "request_match"
    MANAGE_ASSIGNMENTS = "manage_assignments"
    END_ASSIGNMENT = "end_assignment"
    WITHDRAW_ASSIGNMENT = "withdraw_assignment"
    MANAGE_COUNSELLORS = "manage_counsellors"
    SEND_MESSAGE = "send_message"
    VIEW_OVERSIGHT = "view_oversight"
    REQUEST_SESSION = "request_session"
    MANAGE_SESSIONS = "manage_sessions"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.PATIENT: frozenset(
        {
            Capability.REQUEST_MATCH,
            Capability.WITHDRAW_ASSIGNMENT,
            Capability.SEND_MESSAGE,
            Capability.REQUEST_SESSION,
        }
    ),
    Role.COUNSELLOR: frozenset(
        {
            Capability.END_ASSIGNMENT,
            Capability.SEND_MESSAGE,
            Capability.MANAGE_SESSIONS,
        }
    ),
    Role.ADMIN: frozenset(
        {
            Capability.MANAGE_ASSIGNMENTS,
            Capability.MANAGE_COUNSELLORS,
            Capability.VIEW_OVERSIGHT,
        }
    ),
}


def has_capability(profile: ProfileResponse, capability: Capability) -> bool:
    """Deactivated profiles hold no capabilities."""
    if not profile.is_active:
        return False
    return capability in ROLE_CAPABILITIES.get(profile.role, frozenset())


def require_capability(profile: ProfileResponse, capability: Capability) -> None:
    if not has_capability(profile, capability):
        raise PermissionDeniedError(profile.role.value, capability.value)


def require_owner_or_capability(
    profile: ProfileResponse,
    owner_id: Optional[UUID],
    capability: Capability,
) -> None:
    """Allow the owner of a record, or anyone holding ``capability``."""
    if profile.is_active and owner_id is not None and profile.id == owner_id:
        return
    require_capability(profile, capability)
