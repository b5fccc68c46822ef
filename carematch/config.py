"""Service configuration loaded from environment variables."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Environment variable parsing
ENV = os.getenv("ENV")
ENV_IS_PROD = ENV == "prod"
COMMIT_HASH = os.getenv("COMMIT_HASH")
if not COMMIT_HASH and ENV_IS_PROD:
    raise ValueError("COMMIT_HASH is required for production environments")

APP_ADDR = os.getenv("HOST", "0.0.0.0")
APP_PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Tables are created on startup outside production; production runs Alembic.
AUTO_CREATE_SCHEMA = _env_bool("AUTO_CREATE_SCHEMA", not ENV_IS_PROD)

# Realtime relay (optional)
REALTIME_WEBHOOK_URL = os.getenv("REALTIME_WEBHOOK_URL")
REALTIME_API_KEY = os.getenv("REALTIME_API_KEY", "")
# Events kept by the in-process relay when no webhook is configured
REALTIME_HISTORY_SIZE = max(1, int(os.getenv("REALTIME_HISTORY_SIZE", "1000")))


@dataclass(frozen=True)
class MatchingPolicy:
    """Tunable rules of the matching engine.

    ``completion_releases_capacity`` decides whether a naturally completed
    assignment frees the counsellor's slot immediately. Cancellation always
    frees it. Keeping the default (True) is what keeps ``current_patients``
    equal to the number of active assignments.
    """

    minimum_patient_age: int = 18
    max_match_attempts: int = 3
    completion_releases_capacity: bool = True


def load_policy() -> MatchingPolicy:
    """Build the matching policy from the environment."""
    return MatchingPolicy(
        minimum_patient_age=int(os.getenv("MINIMUM_PATIENT_AGE", "18")),
        max_match_attempts=max(1, int(os.getenv("MATCH_MAX_ATTEMPTS", "3"))),
        completion_releases_capacity=_env_bool("COMPLETION_RELEASES_CAPACITY", True),
    )
