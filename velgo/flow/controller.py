"""
velgo/flow/controller.py

Purpose: Application state for one tab

- Wires the session/profile store, the view router and the access gate together
- Exposes the callbacks screens get (navigate, back, refresh_profile, upgrade, ...)
- Owns transient UI state (toast, user guide) and theme resolution
"""

import asyncio
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional

from velgo.core.config import settings
from velgo.core.exceptions import AuthenticationError
from velgo.core.logging import get_logger, LogContext
from velgo.flow.gate import AccessGate, RenderedScreen
from velgo.flow.navigation import InMemoryNavigationStore, NavigationStore
from velgo.flow.router import ViewRouter
from velgo.flow.views import View
from velgo.services import profile_service, subscription_service
from velgo.services.backend_client import BackendClient
from velgo.services.notification_service import ChangeEvent, Toast, toast_for_change
from velgo.services.session_store import SessionProfileStore
from utils.constants import TOAST_KINDS

logger = get_logger(__name__)


def resolve_theme(theme_mode: Optional[str], prefers_dark: bool = False) -> str:
    """
    Effective colour scheme. `auto` (or nothing set) follows the device.
    """
    if theme_mode == "dark":
        return "dark"
    if theme_mode == "light":
        return "light"
    return "dark" if prefers_dark else "light"


class AppController:
    """
    One browser tab's worth of app state. The three stores only talk to each
    other through the references wired up here.
    """

    def __init__(
        self,
        backend: BackendClient,
        navigation: Optional[NavigationStore] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        prefers_dark: bool = False,
        tab_id: Optional[str] = None,
    ):
        self.tab_id = tab_id
        self.backend = backend
        self.navigation = navigation or InMemoryNavigationStore(limit=settings.NAV_HISTORY_LIMIT)
        self.router = ViewRouter(self.navigation, scroll_to_top=self._on_scroll_to_top)
        self.store = SessionProfileStore(
            backend,
            self.router,
            sleep=sleep,
            on_new_profile=self._on_new_profile,
        )
        self.gate = AccessGate()
        self.prefers_dark = prefers_dark

        self.toast: Optional[Toast] = None
        self.show_guide: bool = False
        self.guide_shown: bool = False
        self._scroll_pending: bool = False
        self._auto_complete_tried: bool = False

    async def start(self) -> None:
        """Bootstraps history, listens for auth events and checks the session."""
        with LogContext(tab_id=self.tab_id):
            self.router.bootstrap()
            self.store.listen()
            await self.store.initialize()
            await self.auto_complete_profile()

    async def close(self) -> None:
        self.store.close()
        self.router.close()
        await self.backend.close()

    # Callbacks handed to screens

    def navigate(self, view: str, data: Any = None) -> None:
        self.router.navigate(view, data)

    def handle_back(self, fallback_view: str) -> None:
        self.router.handle_back(fallback_view)

    async def refresh_profile(self) -> None:
        await self.store.refresh_profile()

    def upgrade(self) -> None:
        self.router.navigate(View.SUBSCRIPTION.value)

    def show_user_guide(self) -> None:
        self.show_guide = True

    def dismiss_guide(self) -> None:
        self.show_guide = False

    def show_toast(self, message: str, kind: str = "info") -> None:
        if kind not in TOAST_KINDS:
            kind = "info"
        self.toast = Toast(message, kind)

    def dismiss_toast(self) -> None:
        self.toast = None

    async def complete_profile(
        self,
        full_name: str,
        phone_number: str,
        role: str,
        client_type: Optional[str] = None,
    ) -> None:
        """
        Completion form submit. Refetches with the longer retry budget since
        the row may only just have been created.
        """
        session = self.store.session
        if session is None:
            return
        await profile_service.complete_profile(
            self.backend, session, full_name, phone_number, role, client_type
        )
        await self.store.fetch_profile(session.user_id, settings.COMPLETION_PROFILE_RETRIES)

    async def sign_out(self) -> None:
        await self.store.sign_out()

    def payment_request(self, tier_id: str) -> subscription_service.PaymentRequest:
        """Popup config for upgrading to `tier_id`."""
        session, profile = self._require_profile()
        email = subscription_service.payment_email(profile, session.email)
        return subscription_service.build_payment_request(tier_id, email)

    async def activate_tier(self, tier_id: str) -> None:
        """
        Payment succeeded (or basic was picked): switch tier, reload the
        profile and leave the plan screen.
        """
        _, profile = self._require_profile()
        with LogContext(tab_id=self.tab_id):
            await subscription_service.activate_tier(self.backend, profile, tier_id)
            await self.store.refresh_profile()
        self.handle_back(View.PROFILE.value)

    async def handle_auth_event(self, event: str, session) -> None:
        await self.backend.emit_auth_event(event, session)
        await self.auto_complete_profile()

    async def auto_complete_profile(self) -> bool:
        """
        Skips the completion form when signup metadata already has the
        required fields. Tried once per tab.
        """
        session = self.store.session
        profile = self.store.profile
        if session is None or self._auto_complete_tried:
            return False
        needs_completion = (profile is not None and not profile.is_complete) or (
            profile is None and self.store.profile_error
        )
        if not needs_completion or not profile_service.has_signup_metadata(session):
            return False

        self._auto_complete_tried = True
        if await profile_service.auto_complete(self.backend, session):
            await self.store.fetch_profile(session.user_id, settings.COMPLETION_PROFILE_RETRIES)
            return True
        return False

    def handle_change(self, change: ChangeEvent) -> Optional[Toast]:
        """Realtime row change for this tab's user."""
        session = self.store.session
        if session is None:
            return None
        toast = toast_for_change(
            change,
            session.user_id,
            self.router.current_view,
            self.router.current_data,
        )
        if toast is not None:
            self.toast = toast
        return toast

    # Rendering

    @property
    def theme(self) -> str:
        profile = self.store.profile
        return resolve_theme(profile.theme_mode if profile else None, self.prefers_dark)

    def actions(self) -> Dict[str, Callable]:
        return {
            "navigate": self.navigate,
            "back": self.handle_back,
            "refresh_profile": self.refresh_profile,
            "upgrade": self.upgrade,
            "show_guide": self.show_user_guide,
            "show_toast": self.show_toast,
            "complete_profile": self.complete_profile,
            "sign_out": self.sign_out,
            "payment_request": self.payment_request,
            "activate_tier": self.activate_tier,
        }

    def render(self) -> RenderedScreen:
        screen = self.gate.resolve(
            session=self.store.session,
            profile=self.store.profile,
            view=self.router.current_view,
            data=self.router.current_data,
            loading=self.store.loading,
            profile_error=self.store.profile_error,
            system_error=self.store.system_error,
            actions=self.actions(),
        )
        if screen.back_fallback:
            screen.actions["back"] = partial(self.handle_back, screen.back_fallback)
        if screen.name == View.SUBSCRIPTION.value:
            screen.props.update(
                subscription_service.subscription_props(self.store.profile, self.store.session.email)
            )
        return screen

    def _require_profile(self):
        session, profile = self.store.session, self.store.profile
        if session is None or profile is None:
            raise AuthenticationError("Sign in to manage your plan")
        return session, profile

    def take_scroll_request(self) -> bool:
        """True once after each navigate()."""
        pending = self._scroll_pending
        self._scroll_pending = False
        return pending

    def _on_scroll_to_top(self) -> None:
        self._scroll_pending = True

    def _on_new_profile(self) -> None:
        if not self.guide_shown:
            self.guide_shown = True
            self.show_guide = True
