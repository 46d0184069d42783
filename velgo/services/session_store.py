"""
velgo/services/session_store.py

Purpose: Session and profile state for one tab

- Startup session check (initialize)
- Profile loading with a fixed-count retry while the signup trigger catches up
- Reacts to auth-state events from the backend client
- Forces navigation on sign-in / sign-out through the router

Both initialize() and the auth listener may write session/profile around the
same time. Every setter here is idempotent and both writers read the same
backend truth, so the last write wins.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from velgo.core.config import settings
from velgo.core.exceptions import BackendError, BackendPolicyError
from velgo.core.logging import get_logger, LogContext
from velgo.flow.router import ViewRouter
from velgo.flow.views import View, AUTH_ENTRY_VIEWS
from velgo.models.profile import Profile, Session
from velgo.services.backend_client import (
    BackendClient,
    AuthSubscription,
    PASSWORD_RECOVERY,
    SIGNED_IN,
    TOKEN_REFRESHED,
)

logger = get_logger(__name__)

SYSTEM_POLICY_MESSAGE = "Database Policy Error. Please run the provided SQL script in Supabase."


class SessionProfileStore:
    """
    Owns `session` and `profile`. Other components read them; only this
    class assigns them.
    """

    def __init__(
        self,
        backend: BackendClient,
        router: ViewRouter,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        retry_delay: Optional[float] = None,
        signout_exempt_views=None,
        on_new_profile: Optional[Callable[[], None]] = None,
    ):
        self.backend = backend
        self.router = router
        self._sleep = sleep
        self._clock = clock
        self.retry_delay = settings.PROFILE_RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self.signout_exempt_views = frozenset(
            settings.SIGNOUT_EXEMPT_VIEWS if signout_exempt_views is None else signout_exempt_views
        )
        self._on_new_profile = on_new_profile

        self.session: Optional[Session] = None
        self.profile: Optional[Profile] = None
        self.loading: bool = True
        self.profile_error: bool = False
        self.system_error: Optional[str] = None

        self._subscription: Optional[AuthSubscription] = None

    def listen(self) -> None:
        """Registers on_auth_state_change with the backend client."""
        if self._subscription is None:
            self._subscription = self.backend.on_auth_state_change(self.on_auth_state_change)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def initialize(self) -> None:
        """
        Startup session check. Never raises; a failed check leaves the tab
        signed out. Always clears `loading`.
        """
        try:
            session = await self.backend.get_session()
            self.session = session

            if session:
                with LogContext(user_id=session.user_id):
                    logger.info("Existing session found")
                    if self.router.current_view in AUTH_ENTRY_VIEWS:
                        # Replace so the back button does not lead to login
                        self.router.force(View.HOME.value)
                    await self.fetch_profile(session.user_id)
        except Exception as e:
            logger.warning(f"⚠️ Network error during session init: {e}")
        finally:
            self.loading = False

    async def fetch_profile(self, user_id: str, retries: Optional[int] = None) -> Optional[Profile]:
        """
        Loads the profile row, retrying while it does not exist yet.

        Args:
            user_id: Auth user id
            retries: Attempts after the first one (default PROFILE_FETCH_RETRIES)

        Returns:
            The profile, or None when it could not be loaded
        """
        remaining = settings.PROFILE_FETCH_RETRIES if retries is None else retries

        with LogContext(user_id=user_id):
            while True:
                try:
                    profile = await self.backend.fetch_profile(user_id)
                except BackendPolicyError as e:
                    logger.error(f"❌ Critical policy error: {e.message}")
                    self.system_error = SYSTEM_POLICY_MESSAGE
                    self.loading = False
                    return None
                except BackendError as e:
                    logger.warning(f"Profile fetch failed: {e.message}")
                    profile = None

                if profile is not None:
                    self._store_profile(profile)
                    return profile

                if remaining <= 0:
                    logger.error("❌ Profile not available after retries")
                    self.profile_error = True
                    return None

                remaining -= 1
                logger.info(f"Profile not ready, retrying ({remaining} left)")
                await self._sleep(self.retry_delay)

    async def refresh_profile(self) -> Optional[Profile]:
        if not self.session:
            return None
        return await self.fetch_profile(self.session.user_id)

    async def on_auth_state_change(self, event: str, session: Optional[Session]) -> None:
        """
        Auth listener. Called by the backend client, never by screens.
        """
        self.session = session

        if event == PASSWORD_RECOVERY:
            self.router.navigate(View.RESET_PASSWORD.value)
            return

        if session:
            if event in (SIGNED_IN, TOKEN_REFRESHED):
                if self.router.current_view in AUTH_ENTRY_VIEWS:
                    self.router.force(View.HOME.value)
                await self.fetch_profile(session.user_id)
            return

        self.profile = None
        self.profile_error = False
        self.system_error = None
        if self.router.current_view not in self.signout_exempt_views:
            self.router.force(View.LANDING.value)
        else:
            logger.info(f"Session dropped on {self.router.current_view}, staying put")

    async def sign_out(self) -> None:
        """
        Signs out through the backend. The resulting SIGNED_OUT event clears
        local state.
        """
        await self.backend.sign_out()

    def _store_profile(self, profile: Profile) -> None:
        self.profile = profile
        self.profile_error = False
        self.system_error = None

        if self._on_new_profile and profile.created_at is not None:
            created = profile.created_at
            if created.tzinfo is None:
                created = created.replace(tzinfo=timezone.utc)
            age = self._clock() - created
            if age < timedelta(minutes=settings.GUIDE_NEW_PROFILE_MINUTES):
                self._on_new_profile()
