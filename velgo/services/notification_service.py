"""
velgo/services/notification_service.py

Purpose: Realtime toasts and push triggers

- Maps realtime row changes to in-app toasts for the signed-in user
- Maps database webhooks to push targets (delivery happens elsewhere)
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from velgo.flow.views import View
from velgo.core.logging import get_logger
from utils import constants

logger = get_logger(__name__)


class ChangeEvent(BaseModel):
    """
    A row change as delivered by the realtime feed or a database webhook.
    """
    type: str = Field(..., description="INSERT, UPDATE or DELETE")
    table: str
    record: Dict[str, Any] = Field(default_factory=dict)


@dataclass
class Toast:
    message: str
    kind: str = "info"


@dataclass
class PushTrigger:
    title: str
    body: str
    url: str = "/"
    user_id: Optional[str] = None
    broadcast: bool = False
    target_role: Optional[str] = None


def toast_for_change(
    change: ChangeEvent,
    user_id: str,
    current_view: str,
    current_data: Any = None,
) -> Optional[Toast]:
    """
    Decides whether a change is worth a toast for `user_id`.

    Args:
        change: Realtime change
        user_id: Signed-in user
        current_view: View the tab is showing
        current_data: Payload of that view

    Returns:
        Toast, or None when the change is not for this user
    """
    record = change.record

    if change.table == "messages" and change.type == "INSERT":
        if record.get("receiver_id") != user_id:
            return None
        # Already reading this conversation
        if current_view == View.CHAT.value and current_data == record.get("sender_id"):
            return None
        return Toast(constants.TOAST_NEW_MESSAGE, "info")

    if change.table != "bookings":
        return None

    status = record.get("status")

    if record.get("client_id") == user_id:
        if change.type == "INSERT":
            return Toast(constants.TOAST_NEW_JOB_REQUEST, "success")
        if change.type == "UPDATE" and status == "accepted":
            return Toast(constants.TOAST_WORKER_ACCEPTED, "success")
        return None

    if record.get("worker_id") == user_id and change.type == "UPDATE":
        if status == "accepted":
            return Toast(constants.TOAST_APPLICATION_ACCEPTED, "success")
        if status == "cancelled":
            # Cancelled here means the client declined the application
            return Toast(constants.TOAST_APPLICATION_DECLINED, "alert")

    return None


def resolve_push_trigger(change: ChangeEvent) -> Optional[PushTrigger]:
    """
    Works out who a database change should notify.

    Returns:
        PushTrigger, or None when nobody needs a notification
    """
    record = change.record

    if change.table == "broadcasts" and change.type == "INSERT":
        return PushTrigger(
            title=record.get("title") or constants.PUSH_DEFAULT_TITLE,
            body=record.get("message") or constants.PUSH_DEFAULT_BODY,
            url="/",
            broadcast=True,
            target_role=record.get("target_role"),
        )

    if change.table == "bookings" and change.type == "INSERT" and record.get("status") == "pending":
        return PushTrigger(
            title=constants.PUSH_NEW_BOOKING_TITLE,
            body=constants.PUSH_NEW_BOOKING_BODY,
            url="/activity",
            user_id=record.get("worker_id"),
        )

    if change.table == "bookings" and change.type == "UPDATE" and record.get("status") == "accepted":
        return PushTrigger(
            title=constants.PUSH_BOOKING_ACCEPTED_TITLE,
            body=constants.PUSH_BOOKING_ACCEPTED_BODY,
            url="/activity",
            user_id=record.get("client_id"),
        )

    if change.table == "messages" and change.type == "INSERT":
        return PushTrigger(
            title=constants.PUSH_NEW_MESSAGE_TITLE,
            body=constants.PUSH_NEW_MESSAGE_BODY,
            url="/messages",
            user_id=record.get("receiver_id"),
        )

    logger.debug(f"No push target for {change.type} on {change.table}")
    return None
