"""
velgo/schemas/tabs.py

Purpose: Request payloads sent by the app shell

- Opening a tab (token + leftover history state)
- Navigation intents, auth events, realtime changes, transient UI
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Literal, Optional

from velgo.models.profile import Session
from velgo.services.backend_client import AUTH_EVENTS


class OpenTabRequest(BaseModel):
    access_token: Optional[str] = Field(None, description="Bearer token from the auth SDK")
    refresh_token: Optional[str] = None
    history_state: Optional[Dict[str, Any]] = Field(
        None, description="{view, data} left in the shell's history entry"
    )
    prefers_dark: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "access_token": "eyJhbGciOi...",
                "history_state": {"view": "worker-detail", "data": "c2d7-..."},
                "prefers_dark": True
            }
        }


class NavigateRequest(BaseModel):
    view: str = Field(..., min_length=1)
    data: Optional[Any] = None


class BackRequest(BaseModel):
    fallback_view: Optional[str] = Field(
        None, description="Defaults to the screen's own back fallback, then home/landing"
    )


class AuthEventRequest(BaseModel):
    event: str
    session: Optional[Session] = None

    def is_known_event(self) -> bool:
        return self.event in AUTH_EVENTS


class ToastRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=200)
    kind: Literal["info", "success", "alert"] = "info"


class CompleteProfileRequest(BaseModel):
    full_name: str
    phone_number: str
    role: Literal["client", "worker"]
    client_type: Optional[Literal["personal", "enterprise"]] = None


class SubscriptionRequest(BaseModel):
    tier: Literal["basic", "lite", "standard", "pro", "enterprise"]
