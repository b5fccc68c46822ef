from typing import Any
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from carematch.exceptions import NotFoundError, PermissionDeniedError
from carematch.models.api.notifications import NotificationResponse
from carematch.models.enums import NotificationType
from carematch.repositories.notification_repository import NotificationRepository
from carematch.services.notification_service import NotificationService


class TestNotificationService:
    @pytest.fixture
    def enqueue(self, session_factory: async_sessionmaker) -> Any:
        async def _enqueue(user_id: UUID, title: str = "Reminder") -> NotificationResponse:
            async with session_factory() as session:
                notification = await NotificationRepository(session).enqueue(
                    user_id=user_id,
                    title=title,
                    message="Your session starts soon.",
                    type=NotificationType.REMINDER.value,
                )
                await session.commit()
            return notification

        return _enqueue

    async def test_recipient_marks_read(
        self, test_db: AsyncSession, make_profile: Any, enqueue: Any
    ) -> None:
        patient = await make_profile()
        notification = await enqueue(patient.id)
        service = NotificationService(test_db)

        first = await service.mark_read(notification.id, patient.id)
        second = await service.mark_read(notification.id, patient.id)

        assert first.is_read is True
        assert first.read_at is not None
        assert second.read_at == first.read_at

    async def test_only_recipient_may_mark(
        self, test_db: AsyncSession, make_profile: Any, enqueue: Any
    ) -> None:
        patient = await make_profile()
        other = await make_profile()
        notification = await enqueue(patient.id)

        with pytest.raises(PermissionDeniedError):
            await NotificationService(test_db).mark_read(notification.id, other.id)

    async def test_unknown_actor_is_not_found(
        self, test_db: AsyncSession, make_profile: Any, enqueue: Any
    ) -> None:
        patient = await make_profile()
        notification = await enqueue(patient.id)
        stranger_id = uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            await NotificationService(test_db).mark_read(notification.id, stranger_id)

        assert exc_info.value.details == {
            "entity": "Profile",
            "identifier": str(stranger_id),
        }

    async def test_unknown_notification(
        self, test_db: AsyncSession, make_profile: Any
    ) -> None:
        patient = await make_profile()

        with pytest.raises(NotFoundError):
            await NotificationService(test_db).mark_read(patient.id, patient.id)

    async def test_mark_all_read_and_unread_filter(
        self, test_db: AsyncSession, make_profile: Any, enqueue: Any
    ) -> None:
        patient = await make_profile()
        other = await make_profile()
        for title in ("First", "Second"):
            await enqueue(patient.id, title)
        await enqueue(other.id)
        service = NotificationService(test_db)

        assert len(await service.list_for_user(patient.id, unread_only=True)) == 2
        assert await service.mark_all_read(patient.id) == 2
        assert await service.list_for_user(patient.id, unread_only=True) == []
        assert len(await service.list_for_user(patient.id)) == 2
        assert len(await service.list_for_user(other.id, unread_only=True)) == 1
