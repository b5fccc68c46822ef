import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, FrozenSet, List, Optional, Set
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from carematch import events
from carematch.clients.base_event_client import BaseEventClient
from carematch.database import transaction, utcnow
from carematch.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from carematch.models.api.counsellors import CounsellorResponse
from carematch.models.api.profiles import ProfileResponse
from carematch.models.api.sessions import SessionRequestCreate, SessionResponse
from carematch.models.enums import (
    AssignmentStatus,
    NotificationType,
    Role,
    SessionStatus,
)
from carematch.repositories.assignment_repository import AssignmentRepository
from carematch.repositories.counsellor_repository import CounsellorRepository
from carematch.repositories.notification_repository import NotificationRepository
from carematch.repositories.profile_repository import ProfileRepository
from carematch.repositories.session_repository import SessionRepository
from carematch.roles import Capability, has_capability, require_capability

logger = logging.getLogger(__name__)

DEFAULT_LEAD_TIME = timedelta(days=1)
COUNSELLOR_SESSIONS_URL = "/counsellor/appointments"
PATIENT_SESSIONS_URL = "/appointments"

SESSION_TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.REQUESTED: frozenset(
        {SessionStatus.CONFIRMED, SessionStatus.CANCELLED}
    ),
    SessionStatus.CONFIRMED: frozenset(
        {SessionStatus.COMPLETED, SessionStatus.NO_SHOW, SessionStatus.CANCELLED}
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.NO_SHOW: frozenset(),
}


class SessionService:
    """Session requests between a patient and their assigned counsellor."""

    def __init__(self, db: AsyncSession, events_client: Optional[BaseEventClient] = None):
        self.db = db
        self.events_client = events_client
        self.assignment_repo = AssignmentRepository(db)
        self.counsellor_repo = CounsellorRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.profile_repo = ProfileRepository(db)
        self.session_repo = SessionRepository(db)

    async def request_session(
        self,
        patient_id: UUID,
        actor_id: UUID,
        request: SessionRequestCreate,
    ) -> SessionResponse:
        """
        Ask the assigned counsellor for a session:

        1. Check the actor may request for this patient
        2. Require an active assignment (with the named counsellor, if any)
        3. Store the request and notify the counsellor, in one transaction
        4. Publish the event
        """
        # Step 1: Permission
        actor = await self._require_profile(actor_id)
        if actor_id == patient_id:
            require_capability(actor, Capability.REQUEST_SESSION)
        else:
            require_capability(actor, Capability.MANAGE_ASSIGNMENTS)
        patient = await self._require_profile(patient_id)

        scheduled_for = self._scheduled_for(request.scheduled_for)

        async with transaction(self.db):
            # Step 2: Only an assigned pair can book
            assignment = await self.assignment_repo.get_active_for_patient(patient_id)
            if assignment:
                # Ending an assignment takes the same row lock
                assignment = await self.assignment_repo.get_by_id(
                    assignment.id, for_update=True
                )
            if (
                not assignment
                or assignment.status != AssignmentStatus.ACTIVE
                or (
                    request.counsellor_id is not None
                    and request.counsellor_id != assignment.counsellor_id
                )
            ):
                raise ConflictError(
                    ConflictError.NOT_ASSIGNED,
                    "Sessions can only be requested from the assigned counsellor",
                    patient_id=patient_id,
                )
            counsellor = await self._require_counsellor(assignment.counsellor_id)

            # Step 3: Store and notify
            session = await self.session_repo.create_request(
                patient_id=patient_id,
                counsellor_id=counsellor.id,
                assignment_id=assignment.id,
                session_type=request.session_type.value,
                scheduled_for=scheduled_for,
                duration_minutes=request.duration_minutes,
                notes=request.notes or f"Session request from {patient.full_name}",
            )
            await self.notification_repo.enqueue(
                user_id=counsellor.profile_id,
                title="New Session Request",
                message=(
                    f"{patient.full_name} has requested a "
                    f"{request.session_type.value} session with you."
                ),
                type=NotificationType.APPOINTMENT.value,
                action_url=COUNSELLOR_SESSIONS_URL,
            )

        logger.info(
            "Session %s requested by patient %s with counsellor %s",
            session.id,
            patient_id,
            counsellor.id,
        )

        # Step 4: Publish
        await self._publish(events.SESSION_REQUESTED, session)
        return session

    async def confirm_session(
        self, session_id: UUID, actor_id: UUID, meeting_link: Optional[str] = None
    ) -> SessionResponse:
        """requested -> confirmed, by the assigned counsellor."""
        actor = await self._require_profile(actor_id)
        async with transaction(self.db):
            session = await self._lock_session(session_id)
            counsellor = await self._require_counsellor(session.counsellor_id)
            self._require_counsellor_of(actor, counsellor)
            self._check_transition(session, SessionStatus.CONFIRMED)

            values = {
                "status": SessionStatus.CONFIRMED.value,
                "confirmed_at": utcnow(),
            }
            if meeting_link:
                values["meeting_link"] = meeting_link
            updated = await self._update(session_id, values)

            await self.notification_repo.enqueue(
                user_id=session.patient_id,
                title="Session Confirmed",
                message=(
                    f"{actor.full_name} confirmed your "
                    f"{session.session_type.value} session."
                ),
                type=NotificationType.APPOINTMENT.value,
                action_url=PATIENT_SESSIONS_URL,
            )

        await self._publish(events.SESSION_CONFIRMED, updated)
        return updated

    async def cancel_session(self, session_id: UUID, actor_id: UUID) -> SessionResponse:
        """Either side of the pair, or an admin, may cancel an open session."""
        actor = await self._require_profile(actor_id)
        async with transaction(self.db):
            session = await self._lock_session(session_id)
            counsellor = await self._require_counsellor(session.counsellor_id)
            if not (
                self._is_patient_of(actor, session)
                or self._is_counsellor_of(actor, counsellor)
                or has_capability(actor, Capability.MANAGE_ASSIGNMENTS)
            ):
                raise PermissionDeniedError(actor.role.value, "cancel_session")
            self._check_transition(session, SessionStatus.CANCELLED)

            now = utcnow()
            updated = await self._update(
                session_id,
                {
                    "status": SessionStatus.CANCELLED.value,
                    "cancelled_at": now,
                    "cancelled_by": actor_id,
                },
            )

            recipients: Set[UUID] = {session.patient_id, counsellor.profile_id}
            recipients.discard(actor_id)
            for recipient_id in sorted(recipients, key=str):
                await self.notification_repo.enqueue(
                    user_id=recipient_id,
                    title="Session Cancelled",
                    message=(
                        f"The {session.session_type.value} session on "
                        f"{session.scheduled_for:%Y-%m-%d %H:%M} was cancelled."
                    ),
                    type=NotificationType.APPOINTMENT.value,
                    action_url=(
                        PATIENT_SESSIONS_URL
                        if recipient_id == session.patient_id
                        else COUNSELLOR_SESSIONS_URL
                    ),
                )

        logger.info("Session %s cancelled by %s", session_id, actor_id)
        await self._publish(events.SESSION_CANCELLED, updated)
        return updated

    async def complete_session(
        self, session_id: UUID, actor_id: UUID, attended: bool = True
    ) -> SessionResponse:
        """confirmed -> completed, or no_show when the patient did not attend."""
        target = SessionStatus.COMPLETED if attended else SessionStatus.NO_SHOW
        actor = await self._require_profile(actor_id)
        async with transaction(self.db):
            session = await self._lock_session(session_id)
            counsellor = await self._require_counsellor(session.counsellor_id)
            if not has_capability(actor, Capability.MANAGE_ASSIGNMENTS):
                self._require_counsellor_of(actor, counsellor)
            self._check_transition(session, target)

            updated = await self._update(
                session_id, {"status": target.value, "completed_at": utcnow()}
            )

        await self._publish(events.SESSION_COMPLETED, updated)
        return updated

    async def get_session(self, session_id: UUID, viewer_id: UUID) -> SessionResponse:
        viewer = await self._require_profile(viewer_id)
        session = await self.session_repo.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session", session_id)
        if self._is_patient_of(viewer, session):
            return session
        if has_capability(viewer, Capability.VIEW_OVERSIGHT):
            return session
        counsellor = await self._require_counsellor(session.counsellor_id)
        self._require_counsellor_of(viewer, counsellor)
        return session

    async def list_sessions(
        self,
        viewer_id: UUID,
        status: Optional[SessionStatus] = None,
        scheduled_from: Optional[datetime] = None,
        scheduled_until: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SessionResponse]:
        """The viewer's own sessions; admins see every session."""
        viewer = await self._require_profile(viewer_id)
        filters = {
            "status": status.value if status else None,
            "scheduled_from": scheduled_from,
            "scheduled_until": scheduled_until,
            "limit": limit,
            "offset": offset,
        }

        if has_capability(viewer, Capability.VIEW_OVERSIGHT):
            return await self.session_repo.list_sessions(**filters)
        if viewer.role == Role.COUNSELLOR:
            counsellor = await self.counsellor_repo.get_by_profile_id(viewer_id)
            if not counsellor:
                return []
            return await self.session_repo.list_sessions(
                counsellor_id=counsellor.id, **filters
            )
        return await self.session_repo.list_sessions(patient_id=viewer_id, **filters)

    def _scheduled_for(self, requested: Optional[datetime]) -> datetime:
        now = utcnow()
        if requested is None:
            return now + DEFAULT_LEAD_TIME
        if requested.tzinfo is None:
            requested = requested.replace(tzinfo=timezone.utc)
        if requested <= now:
            raise ValidationError(
                ["scheduled_for"], "Sessions must be scheduled in the future"
            )
        return requested

    def _check_transition(self, session: SessionResponse, target: SessionStatus) -> None:
        if target not in SESSION_TRANSITIONS[session.status]:
            raise ConflictError(
                ConflictError.INVALID_TRANSITION,
                f"Cannot move session from {session.status.value} to {target.value}",
                session_id=session.id,
            )

    def _is_patient_of(self, profile: ProfileResponse, session: SessionResponse) -> bool:
        return profile.is_active and profile.id == session.patient_id

    def _is_counsellor_of(
        self, profile: ProfileResponse, counsellor: CounsellorResponse
    ) -> bool:
        return (
            has_capability(profile, Capability.MANAGE_SESSIONS)
            and profile.id == counsellor.profile_id
        )

    def _require_counsellor_of(
        self, profile: ProfileResponse, counsellor: CounsellorResponse
    ) -> None:
        if not self._is_counsellor_of(profile, counsellor):
            raise PermissionDeniedError(
                profile.role.value, Capability.MANAGE_SESSIONS.value
            )

    async def _lock_session(self, session_id: UUID) -> SessionResponse:
        session = await self.session_repo.get_by_id(session_id, for_update=True)
        if not session:
            raise NotFoundError("Session", session_id)
        return session

    async def _update(self, session_id: UUID, values: dict) -> SessionResponse:
        updated = await self.session_repo.update(session_id, values)
        if not updated:
            raise NotFoundError("Session", session_id)
        return updated

    async def _require_profile(self, profile_id: UUID) -> ProfileResponse:
        profile = await self.profile_repo.get_by_id(profile_id)
        if not profile:
            raise NotFoundError("Profile", profile_id)
        return profile

    async def _require_counsellor(self, counsellor_id: UUID) -> CounsellorResponse:
        counsellor = await self.counsellor_repo.get_by_id(counsellor_id)
        if not counsellor:
            raise NotFoundError("Counsellor", counsellor_id)
        return counsellor

    async def _publish(self, event_type: str, session: SessionResponse) -> None:
        await events.publish_event(
            self.events_client,
            event_type,
            {
                "session_id": str(session.id),
                "patient_id": str(session.patient_id),
                "counsellor_id": str(session.counsellor_id),
                "status": session.status.value,
                "scheduled_for": session.scheduled_for.isoformat(),
            },
        )
