"""
Error taxonomy of the matching engine.

Every error carries a machine readable ``code`` and a ``details`` dict so the
presentation layer can decide its own copy.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID


class CarematchError(Exception):
    """Base exception for the matching engine."""

    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CarematchError):
    """Raised when input is incomplete or invalid, with field-level reasons."""

    code = "validation_error"

    def __init__(self, reasons: List[str], message: Optional[str] = None):
        super().__init__(
            message=message or f"Validation failed: {', '.join(reasons)}",
            details={"reasons": list(reasons)},
        )
        self.reasons = list(reasons)


class NotFoundError(CarematchError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity: str, identifier: Any):
        super().__init__(
            message=f"{entity} not found: {identifier}",
            details={"entity": entity, "identifier": str(identifier)},
        )


class NoCandidateError(CarematchError):
    """Raised when no eligible counsellor matches the request."""

    code = "no_candidate"

    def __init__(self, gender: Optional[str]):
        super().__init__(
            message=f"No available counsellor found for gender: {gender}",
            details={"gender": gender},
        )


class ConflictError(CarematchError):
    """Raised when a write conflicts with current state (stale view or race)."""

    code = "conflict"

    ALREADY_ASSIGNED = "already_assigned"
    DUPLICATE_CONVERSATION = "duplicate_conversation"
    INVALID_TRANSITION = "invalid_transition"
    CONVERSATION_CLOSED = "conversation_closed"
    CAPACITY_BELOW_LOAD = "capacity_below_load"
    NOT_ASSIGNED = "not_assigned"
    INTEGRITY_VIOLATION = "integrity_violation"

    def __init__(self, reason: str, message: Optional[str] = None, **details: Any):
        super().__init__(
            message=message or f"Conflict: {reason}",
            details={"reason": reason, **{k: str(v) for k, v in details.items()}},
        )
        self.reason = reason


class CapacityExceededError(CarematchError):
    """Raised when the target counsellor filled up before the write landed."""

    code = "capacity_exceeded"

    def __init__(self, counsellor_id: UUID):
        super().__init__(
            message=f"Counsellor has no remaining capacity: {counsellor_id}",
            details={"counsellor_id": str(counsellor_id)},
        )
        self.counsellor_id = counsellor_id


class PermissionDeniedError(CarematchError):
    """Raised when the acting profile lacks a capability."""

    code = "permission_denied"

    def __init__(self, role: Optional[str], capability: str):
        super().__init__(
            message=f"Role {role} is not allowed to {capability}",
            details={"role": role, "capability": capability},
        )


class FanoutError(CarematchError):
    """Raised when side effects of a committed write could not be produced.

    The primary write stays committed; a supervising retry can replay the
    fanout for ``source_id``.
    """

    code = "fanout_failed"

    def __init__(self, source: str, source_id: UUID, cause: Optional[Exception] = None):
        super().__init__(
            message=f"Fanout failed for {source} {source_id}",
            details={
                "source": source,
                "source_id": str(source_id),
                "cause": str(cause) if cause else None,
            },
        )
        self.source = source
        self.source_id = source_id


class PersistenceError(CarematchError):
    """Raised when the storage layer fails; nothing was applied."""

    code = "persistence_error"
