"""
velgo/services/profile_service.py

Purpose: Profile completion

- Validates the completion form (name, phone, role)
- Upserts the profile row with signup defaults
- Auto-completes silently when signup metadata already has everything
"""

from typing import Any, Dict, Optional
from urllib.parse import quote

from velgo.core.exceptions import ValidationError
from velgo.core.logging import get_logger, LogContext
from velgo.models.profile import Session
from velgo.services.backend_client import BackendClient
from utils.constants import AVATAR_URL_TEMPLATE, CLIENT_TYPES, DEFAULT_TIER, SELF_SERVICE_ROLES
from utils.time_utils import utcnow
from utils.validation_utils import normalize_phone_number, sanitize_input, validate_full_name

logger = get_logger(__name__)


def build_profile_update(
    session: Session,
    full_name: str,
    phone_number: str,
    role: str,
    client_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Validates the completion form and builds the row to upsert.

    Raises:
        ValidationError: If any field is missing or malformed
    """
    name = sanitize_input(full_name)
    if not validate_full_name(name):
        raise ValidationError("Please enter your full name", details={"field": "full_name"})

    phone = normalize_phone_number(phone_number)
    if phone is None:
        raise ValidationError("Please enter a valid phone number", details={"field": "phone_number"})

    if role not in SELF_SERVICE_ROLES:
        raise ValidationError("Role must be client or worker", details={"field": "role"})

    if role == "client":
        client_type = client_type or "personal"
        if client_type not in CLIENT_TYPES:
            raise ValidationError("Unknown client type", details={"field": "client_type"})
    else:
        client_type = "personal"

    return {
        "id": session.user_id,
        "email": session.email,
        "full_name": name,
        "phone_number": phone,
        "role": role,
        "client_type": client_type,
        "subscription_tier": DEFAULT_TIER,
        "is_verified": False,
        "task_count": 0,
        "avatar_url": AVATAR_URL_TEMPLATE.format(name=quote(name)),
        "updated_at": utcnow().isoformat(),
    }


async def complete_profile(
    backend: BackendClient,
    session: Session,
    full_name: str,
    phone_number: str,
    role: str,
    client_type: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Saves the completion form.

    Returns:
        The row that was written
    """
    with LogContext(user_id=session.user_id):
        values = build_profile_update(session, full_name, phone_number, role, client_type)
        await backend.upsert_profile(values)
        logger.info("✅ Profile completed", extra={"role": role})
        return values


def has_signup_metadata(session: Session) -> bool:
    metadata = session.user.user_metadata or {}
    return bool(metadata.get("full_name") and metadata.get("phone_number") and metadata.get("role"))


async def auto_complete(backend: BackendClient, session: Session) -> bool:
    """
    Completes the profile from signup metadata without showing the form.

    Returns:
        True if the profile was written; False means the form should be shown
    """
    if not has_signup_metadata(session):
        return False

    metadata = session.user.user_metadata
    try:
        await complete_profile(
            backend,
            session,
            full_name=metadata.get("full_name", ""),
            phone_number=metadata.get("phone_number", ""),
            role=metadata.get("role", ""),
            client_type=metadata.get("client_type"),
        )
        return True
    except Exception as e:
        # The manual form lets the user fix whatever the metadata got wrong
        logger.warning(f"Auto-complete failed, falling back to form: {e}")
        return False
