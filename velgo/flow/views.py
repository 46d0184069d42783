"""
velgo/flow/views.py

Purpose: Defines every screen the router can show

- Enum of view identifiers
- Single source of truth for pre-auth / post-auth view sets
- Metadata for each view (back fallback, payload prop, nav tab, chrome)
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional
from dataclasses import dataclass


class View(str, Enum):
    """
    Abstract screen identifiers. These are not URL paths.
    """

    # Pre-auth
    LANDING = "landing"
    LOGIN = "login"
    SIGNUP = "signup"
    RESET_PASSWORD = "reset-password"

    # Shared
    LEGAL = "legal"
    ABOUT = "about"

    # Post-auth
    HOME = "home"
    ACTIVITY = "activity"
    MESSAGES = "messages"
    PROFILE = "profile"
    SUBSCRIPTION = "subscription"
    CHAT = "chat"
    WORKER_DETAIL = "worker-detail"
    TASK_DETAIL = "task-detail"
    SETTINGS = "settings"
    CHANGE_PASSWORD = "change-password"
    POST_TASK = "post-task"
    SAFETY = "safety"
    ADMIN = "admin"


class Screen(str, Enum):
    """
    Screens that are not views: the gate picks these on its own.
    """
    SPLASH = "splash"
    SYSTEM_ERROR = "system-error"
    COMPLETE_PROFILE = "complete-profile"


class NavTab(str, Enum):
    MARKET = "market"
    GIGS = "gigs"
    CHATS = "chats"
    PROFILE = "profile"


PRE_AUTH_VIEWS: FrozenSet[str] = frozenset({
    View.LANDING.value,
    View.LOGIN.value,
    View.SIGNUP.value,
    View.RESET_PASSWORD.value,
    View.LEGAL.value,
    View.ABOUT.value,
})

POST_AUTH_VIEWS: FrozenSet[str] = frozenset({
    View.HOME.value,
    View.ACTIVITY.value,
    View.MESSAGES.value,
    View.PROFILE.value,
    View.SUBSCRIPTION.value,
    View.CHAT.value,
    View.WORKER_DETAIL.value,
    View.TASK_DETAIL.value,
    View.SETTINGS.value,
    View.CHANGE_PASSWORD.value,
    View.POST_TASK.value,
    View.LEGAL.value,
    View.SAFETY.value,
    View.ABOUT.value,
    View.ADMIN.value,
    View.RESET_PASSWORD.value,
})

# Views a fresh session is bounced off of
AUTH_ENTRY_VIEWS: FrozenSet[str] = frozenset({
    View.LANDING.value,
    View.LOGIN.value,
    View.SIGNUP.value,
})

# Views where handle_back never pops history
ROOT_VIEWS: FrozenSet[str] = frozenset({
    View.HOME.value,
    View.LANDING.value,
})

# Bottom/side navigation is hidden on these
CHROMELESS_VIEWS: FrozenSet[str] = frozenset({
    View.ADMIN.value,
    View.CHAT.value,
    View.RESET_PASSWORD.value,
})


@dataclass(frozen=True)
class ViewMetadata:
    """
    Per-view rendering rules.
    """
    name: View
    display_name: str
    back_fallback: Optional[View] = None  # Where the in-screen back button lands without history
    pre_auth_back_fallback: Optional[View] = None
    data_prop: Optional[str] = None  # Prop name the navigation payload is passed as
    data_default: Optional[str] = None
    tab: Optional[NavTab] = None
    success_view: Optional[View] = None  # Where a completed form lands


VIEW_METADATA: Dict[View, ViewMetadata] = {
    View.LANDING: ViewMetadata(View.LANDING, "Welcome"),
    View.LOGIN: ViewMetadata(View.LOGIN, "Log In"),
    View.SIGNUP: ViewMetadata(
        View.SIGNUP, "Sign Up",
        data_prop="initial_role",
        data_default="client",
    ),
    View.RESET_PASSWORD: ViewMetadata(View.RESET_PASSWORD, "Reset Password", success_view=View.LOGIN),
    View.LEGAL: ViewMetadata(
        View.LEGAL, "Legal",
        back_fallback=View.SETTINGS,
        pre_auth_back_fallback=View.LANDING,
        data_prop="initial_tab",
        tab=NavTab.PROFILE,
    ),
    View.ABOUT: ViewMetadata(
        View.ABOUT, "About",
        back_fallback=View.SETTINGS,
        pre_auth_back_fallback=View.LANDING,
        tab=NavTab.PROFILE,
    ),
    View.HOME: ViewMetadata(View.HOME, "Marketplace", tab=NavTab.MARKET),
    View.ACTIVITY: ViewMetadata(View.ACTIVITY, "My Gigs", tab=NavTab.GIGS),
    View.MESSAGES: ViewMetadata(View.MESSAGES, "Messages", tab=NavTab.CHATS),
    View.PROFILE: ViewMetadata(View.PROFILE, "Profile", tab=NavTab.PROFILE),
    View.SUBSCRIPTION: ViewMetadata(
        View.SUBSCRIPTION, "Choose Plan",
        back_fallback=View.PROFILE,
        tab=NavTab.PROFILE,
    ),
    View.CHAT: ViewMetadata(
        View.CHAT, "Chat",
        back_fallback=View.MESSAGES,
        data_prop="partner_id",
        tab=NavTab.CHATS,
    ),
    View.WORKER_DETAIL: ViewMetadata(
        View.WORKER_DETAIL, "Worker",
        back_fallback=View.HOME,
        data_prop="worker_id",
        tab=NavTab.MARKET,
    ),
    View.TASK_DETAIL: ViewMetadata(
        View.TASK_DETAIL, "Task",
        back_fallback=View.HOME,
        data_prop="task_id",
        tab=NavTab.MARKET,
    ),
    View.SETTINGS: ViewMetadata(
        View.SETTINGS, "Settings",
        back_fallback=View.PROFILE,
        tab=NavTab.PROFILE,
    ),
    View.CHANGE_PASSWORD: ViewMetadata(
        View.CHANGE_PASSWORD, "Change Password",
        tab=NavTab.PROFILE,
        success_view=View.SETTINGS,
    ),
    View.POST_TASK: ViewMetadata(
        View.POST_TASK, "Post a Task",
        back_fallback=View.HOME,
        tab=NavTab.MARKET,
    ),
    View.SAFETY: ViewMetadata(
        View.SAFETY, "Safety",
        back_fallback=View.SETTINGS,
        tab=NavTab.PROFILE,
    ),
    View.ADMIN: ViewMetadata(
        View.ADMIN, "Admin",
        back_fallback=View.SETTINGS,
    ),
}


def get_view_metadata(view: str) -> Optional[ViewMetadata]:
    """
    Retrieves metadata for a view identifier.

    Args:
        view: View identifier as stored in history

    Returns:
        ViewMetadata, or None for identifiers the app does not know
    """
    try:
        return VIEW_METADATA.get(View(view))
    except ValueError:
        return None


def is_pre_auth_view(view: str) -> bool:
    return view in PRE_AUTH_VIEWS


def is_post_auth_view(view: str) -> bool:
    return view in POST_AUTH_VIEWS
