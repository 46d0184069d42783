"""
velgo/api/hooks.py

Purpose: Database webhook endpoint

- Receives row-change webhooks (bookings, messages, broadcasts)
- Checks the shared service key when one is configured
- Resolves who should get a push notification
- Returns the trigger; delivery is done by the push function
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Header

from velgo.core.config import settings
from velgo.core.exceptions import AuthenticationError
from velgo.core.logging import get_logger
from velgo.services.notification_service import ChangeEvent, resolve_push_trigger

logger = get_logger(__name__)
router = APIRouter(prefix="/hooks")


def verify_hook_secret(authorization: Optional[str]) -> None:
    """
    Raises:
        AuthenticationError: If a service key is configured and the bearer token does not match
    """
    expected = settings.SUPABASE_SERVICE_ROLE_KEY
    if not expected:
        return
    if authorization != f"Bearer {expected}":
        logger.warning("🚫 Webhook rejected: bad service key")
        raise AuthenticationError("Invalid webhook credentials")


@router.post("/push")
async def push_hook(change: ChangeEvent, authorization: Optional[str] = Header(None)):
    """
    Maps a database change to a push target.
    """
    verify_hook_secret(authorization)

    trigger = resolve_push_trigger(change)
    if trigger is None:
        return {"status": "ignored", "message": "No notification target found."}

    logger.info(
        f"🔔 Push trigger for {change.type} on {change.table}",
        extra={"user_id": trigger.user_id}
    )
    return {"status": "triggered", "trigger": asdict(trigger)}
