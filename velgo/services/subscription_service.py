"""
velgo/services/subscription_service.py

Purpose: Subscription tiers and usage quota

- Tier lookup and job limits
- Quota check against the profile's task counter
- Payment request handed to the Paystack popup (interface only)
- Tier activation after a successful payment
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from velgo.core.config import settings
from velgo.core.exceptions import ValidationError
from velgo.core.logging import get_logger, LogContext
from velgo.models.profile import Profile
from velgo.services.backend_client import BackendClient
from utils.constants import (
    DEFAULT_TIER,
    DEFAULT_TIER_LIMIT,
    FALLBACK_EMAIL_DOMAIN,
    KOBO_PER_NAIRA,
    TIERS,
)
from utils.time_utils import subscription_end_date, utcnow

logger = get_logger(__name__)


def get_tier(tier_id: Optional[str]) -> Optional[Dict[str, Any]]:
    wanted = tier_id or DEFAULT_TIER
    for tier in TIERS:
        if tier["id"] == wanted:
            return tier
    return None


def tier_limit(tier_id: Optional[str]) -> int:
    """Job limit for a tier. Missing or unknown tiers get the basic limit."""
    tier = get_tier(tier_id)
    return tier["limit"] if tier else DEFAULT_TIER_LIMIT


def has_quota(profile: Profile) -> bool:
    return profile.task_count < tier_limit(profile.subscription_tier)


def payment_email(profile: Optional[Profile], session_email: Optional[str]) -> str:
    """
    Email the payment provider gets: session email, then profile email, then
    a synthetic address on the app domain.
    """
    if session_email:
        return session_email
    if profile is not None and profile.email:
        return profile.email
    if profile is not None:
        return f"{profile.id}@{FALLBACK_EMAIL_DOMAIN}"
    return f"guest@{FALLBACK_EMAIL_DOMAIN}"


@dataclass
class PaymentRequest:
    reference: str
    email: str
    amount: int  # kobo
    public_key: str
    tier: str


def build_payment_request(tier_id: str, email: str, now: Optional[datetime] = None) -> PaymentRequest:
    """
    Popup config for a paid tier.

    Raises:
        ValidationError: For unknown or free tiers
    """
    tier = get_tier(tier_id)
    if tier is None:
        raise ValidationError(f"Unknown tier: {tier_id}")
    if tier["price"] == 0:
        raise ValidationError("The basic tier does not need a payment")

    now = now or utcnow()
    return PaymentRequest(
        reference=str(int(now.timestamp() * 1000)),
        email=email,
        amount=tier["price"] * KOBO_PER_NAIRA,
        public_key=settings.PAYSTACK_PUBLIC_KEY.strip(),
        tier=tier["id"],
    )


async def activate_tier(
    backend: BackendClient,
    profile: Profile,
    tier_id: str,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Switches the profile to `tier_id` after payment (or a basic downgrade).
    The usage counter resets so the user can work/hire straight away.

    Returns:
        The fields that were written
    """
    if get_tier(tier_id) is None:
        raise ValidationError(f"Unknown tier: {tier_id}")

    now = now or utcnow()
    values = {
        "subscription_tier": tier_id,
        "is_verified": True,
        "task_count": 0,
        "subscription_end_date": subscription_end_date(now, settings.SUBSCRIPTION_DAYS).isoformat(),
    }

    with LogContext(user_id=profile.id):
        await backend.update_profile(profile.id, values)
        logger.info(f"💳 Tier activated: {tier_id}")

    return values


def subscription_props(profile: Profile, session_email: Optional[str]) -> Dict[str, Any]:
    """
    Data the plan screen draws: every tier with the active one marked,
    current usage and the popup config shared by all paid tiers.
    """
    current = profile.subscription_tier or DEFAULT_TIER
    return {
        "tiers": [dict(tier, is_active=tier["id"] == current) for tier in TIERS],
        "current_tier": current,
        "task_count": profile.task_count,
        "tier_limit": tier_limit(current),
        "has_quota": has_quota(profile),
        "email": payment_email(profile, session_email),
        "public_key": settings.PAYSTACK_PUBLIC_KEY.strip(),
    }
