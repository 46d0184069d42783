"""
velgo/models/profile.py

Purpose: Session and profile records

- Session mirrored from the Supabase auth subsystem (read-only here)
- Profile row from the `profiles` table, one per auth user
- Completeness rule used by the access gate
"""

from pydantic import BaseModel, Field
from typing import Optional, Dict, Any, Literal
from datetime import datetime

UserRole = Literal["client", "worker", "admin"]
ClientType = Literal["personal", "enterprise"]
SubscriptionTier = Literal["basic", "lite", "standard", "pro", "enterprise"]
ThemeMode = Literal["light", "dark", "auto"]


class SessionUser(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class Session(BaseModel):
    """
    Authenticated identity returned by the auth subsystem.
    Owned by the backend; the app only ever holds a copy.
    """
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None
    user: SessionUser

    @property
    def user_id(self) -> str:
        return self.user.id

    @property
    def email(self) -> Optional[str]:
        return self.user.email


class NotificationPreferences(BaseModel):
    jobAlerts: bool = True
    renewals: bool = True
    reviews: bool = True
    security: bool = True
    promotions: bool = False


class Profile(BaseModel):
    """
    Application-level user record. Created by a database trigger on signup,
    completed by the user, never deleted from the app.
    """
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    role: Optional[UserRole] = None
    client_type: Optional[ClientType] = None
    subscription_tier: SubscriptionTier = "basic"
    task_count: int = 0
    is_verified: bool = False
    avatar_url: Optional[str] = None
    theme_mode: Optional[ThemeMode] = None
    notification_preferences: Optional[NotificationPreferences] = None
    subscription_end_date: Optional[datetime] = None
    last_reset_date: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        extra = "allow"

    @property
    def is_complete(self) -> bool:
        """A profile needs both a role and a phone number before the app opens."""
        return bool(self.role) and bool(self.phone_number)
