from fastapi import APIRouter, Depends, Query

from tradescreen.api.errors import screening_errors
from tradescreen.core.security import require_api_key
from tradescreen.schemas.notification import Notification
from tradescreen.services import NotificationService, get_notification_service

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.get("/notifications", response_model=list[Notification])
def list_notifications(
    unread_only: bool = Query(default=False),
    candidate_id: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    service: NotificationService = Depends(get_notification_service),
):
    return service.list_notifications(unread_only=unread_only, candidate_id=candidate_id, limit=limit)


@router.post("/notifications/{notification_id}/read", response_model=Notification)
def mark_notification_read(notification_id: str, service: NotificationService = Depends(get_notification_service)):
    with screening_errors():
        return service.mark_read(notification_id)


@router.post("/notifications/{notification_id}/ack", response_model=Notification)
def acknowledge_notification(notification_id: str, service: NotificationService = Depends(get_notification_service)):
    with screening_errors():
        return service.acknowledge(notification_id)
