from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from tradescreen.core.errors import ReferentialError
from tradescreen.integrations.email import send_hr_alert
from tradescreen.schemas.notification import Notification, NotificationPriority, NotificationType
from tradescreen.store import ScreeningStore

logger = logging.getLogger(__name__)

EMAIL_PRIORITIES: frozenset[str] = frozenset({"high", "critical"})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def make_notification(
    type_: NotificationType,
    priority: NotificationPriority,
    title: str,
    message: str,
    *,
    candidate_id: str | None = None,
    session_id: str | None = None,
    assessment_id: str | None = None,
    data: dict[str, Any] | None = None,
    created_at: datetime | None = None,
) -> Notification:
    return Notification(
        type=type_,
        priority=priority,
        title=title,
        message=message,
        candidate_id=candidate_id,
        session_id=session_id,
        assessment_id=assessment_id,
        data=data,
        created_at=created_at or utc_now(),
    )


class NotificationService:
    """Reads and updates notification records and forwards urgent ones to HR.

    Records are written by the caller inside its own store transaction;
    ``deliver`` runs afterwards and only handles out-of-band email.
    """

    def __init__(
        self,
        store: ScreeningStore,
        *,
        mailer: Callable[[Notification], bool] = send_hr_alert,
    ) -> None:
        self.store = store
        self.mailer = mailer

    def deliver(self, notifications: Iterable[Notification]) -> None:
        for notification in notifications:
            logger.info(
                "notification_created type=%s priority=%s candidate=%s session=%s",
                notification.type,
                notification.priority,
                notification.candidate_id,
                notification.session_id,
            )
            if notification.priority not in EMAIL_PRIORITIES:
                continue
            try:
                self.mailer(notification)
            except Exception as exc:  # noqa: BLE001 - fire and forget
                logger.warning("notification_delivery_failed id=%s: %s", notification.id, exc)

    def list_notifications(
        self,
        *,
        unread_only: bool = False,
        candidate_id: str | None = None,
        limit: int = 50,
    ) -> list[Notification]:
        return self.store.list_notifications(unread_only=unread_only, candidate_id=candidate_id, limit=limit)

    def _require(self, notification_id: str) -> Notification:
        notification = self.store.get_notification(notification_id)
        if notification is None:
            raise ReferentialError(f"Notification {notification_id} not found.")
        return notification

    def mark_read(self, notification_id: str) -> Notification:
        notification = self._require(notification_id)
        if notification.read:
            return notification
        updated = notification.model_copy(update={"read": True, "read_at": utc_now()})
        return self.store.save_notification(updated)

    def acknowledge(self, notification_id: str) -> Notification:
        notification = self._require(notification_id)
        now = utc_now()
        updated = notification.model_copy(
            update={
                "read": True,
                "read_at": notification.read_at or now,
                "acknowledged": True,
                "acknowledged_at": notification.acknowledged_at or now,
            }
        )
        return self.store.save_notification(updated)
