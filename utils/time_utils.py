"""
utils/time_utils.py

Purpose: Time and expiry helpers

- Tab idle-expiry checks
- Subscription end dates
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_session_expired(last_interaction: datetime, timeout_minutes: int = 60, now: Optional[datetime] = None) -> bool:
    """
    Checks if a tab has been idle longer than its timeout.
    """
    if not last_interaction:
        return True

    expiry_time = last_interaction + timedelta(minutes=timeout_minutes)
    return (now or utcnow()) > expiry_time


def subscription_end_date(start: datetime, days: int = 30) -> datetime:
    """
    End of a paid tier that starts at `start`.
    """
    return start + timedelta(days=days)

