"""
velgo/services/backend_client.py

Purpose: Remote backend client (Supabase)

- Auth: current session, sign-out, auth-state listeners
- Row storage: profile select / upsert / update over PostgREST
- Maps transport and policy failures onto the BackendError family
"""

import httpx
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from velgo.core.config import settings
from velgo.core.exceptions import BackendError, BackendPolicyError, BackendUnavailableError
from velgo.core.logging import get_logger
from velgo.models.profile import Profile, Session, SessionUser

logger = get_logger(__name__)

# Auth events forwarded from the client SDK
SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"
PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
USER_UPDATED = "USER_UPDATED"
INITIAL_SESSION = "INITIAL_SESSION"

AUTH_EVENTS = (SIGNED_IN, SIGNED_OUT, TOKEN_REFRESHED, PASSWORD_RECOVERY, USER_UPDATED, INITIAL_SESSION)

# PostgREST code for "single row requested, zero rows returned"
NO_ROWS_CODE = "PGRST116"

AuthListener = Callable[[str, Optional[Session]], Union[None, Awaitable[None]]]


class AuthSubscription:
    """Handle returned by on_auth_state_change."""

    def __init__(self, listeners: List[AuthListener], listener: AuthListener):
        self._listeners = listeners
        self._listener = listener

    def unsubscribe(self) -> None:
        if self._listener in self._listeners:
            self._listeners.remove(self._listener)


class BackendClient:
    """
    Contract the app core needs from the backend-as-a-service.
    """

    def __init__(self):
        self._auth_listeners: List[AuthListener] = []

    async def get_session(self) -> Optional[Session]:
        raise NotImplementedError

    async def sign_out(self) -> None:
        raise NotImplementedError

    async def fetch_profile(self, user_id: str) -> Optional[Profile]:
        raise NotImplementedError

    async def upsert_profile(self, values: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def update_profile(self, user_id: str, values: Dict[str, Any]) -> None:
        raise NotImplementedError

    def on_auth_state_change(self, callback: AuthListener) -> AuthSubscription:
        """
        Registers a listener for auth events.

        Returns:
            Subscription whose unsubscribe() removes the listener
        """
        self._auth_listeners.append(callback)
        return AuthSubscription(self._auth_listeners, callback)

    async def emit_auth_event(self, event: str, session: Optional[Session]) -> None:
        """
        Delivers an auth event to every listener in registration order.
        """
        logger.info(f"🔐 Auth event: {event}", extra={"event": event})
        for listener in list(self._auth_listeners):
            result = listener(event, session)
            if result is not None:
                await result

    async def close(self) -> None:
        pass


class SupabaseBackend(BackendClient):
    """
    BackendClient talking to Supabase GoTrue and PostgREST over HTTP.
    The session is the bearer token the shell signed in with.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        refresh_token: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.base_url = (base_url or settings.SUPABASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SUPABASE_ANON_KEY
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=settings.SUPABASE_TIMEOUT,
            transport=transport,
        )

    async def emit_auth_event(self, event: str, session: Optional[Session]) -> None:
        """
        Adopts the tokens an event carries before listeners run, so their
        requests go out as the signed-in user.
        """
        if session is not None:
            self._access_token = session.access_token
            self._refresh_token = session.refresh_token
        else:
            self._access_token = None
            self._refresh_token = None
        await super().emit_auth_event(event, session)

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {"apikey": self.api_key}
        token = self._access_token or self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Backend timeout: {method} {url}")
            raise BackendUnavailableError("Backend is taking too long to respond") from e
        except httpx.RequestError as e:
            logger.error(f"Network error calling backend: {e}")
            raise BackendUnavailableError("Unable to reach backend") from e

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        message = str(body.get("message") or body.get("msg") or body.get("error_description") or response.text)
        if "recursion" in message or "policy" in message:
            raise BackendPolicyError(message, details=body)
        raise BackendError(message, details={"status": response.status_code, "body": body})

    async def get_session(self) -> Optional[Session]:
        """
        Resolves the stored token into a session.

        Returns:
            Session, or None when there is no token or the token is rejected
        """
        if not self._access_token:
            return None

        response = await self._request("GET", "/auth/v1/user", headers=self._headers())
        if response.status_code in (401, 403):
            logger.info("Stored access token rejected")
            return None
        self._raise_for_error(response)

        user = response.json()
        return Session(
            access_token=self._access_token,
            refresh_token=self._refresh_token,
            user=SessionUser(
                id=user["id"],
                email=user.get("email"),
                user_metadata=user.get("user_metadata") or {},
            ),
        )

    async def sign_out(self) -> None:
        if self._access_token:
            response = await self._request("POST", "/auth/v1/logout", headers=self._headers())
            if response.status_code not in (401, 403):
                self._raise_for_error(response)
        await self.emit_auth_event(SIGNED_OUT, None)

    async def fetch_profile(self, user_id: str) -> Optional[Profile]:
        """
        Selects exactly one profile row by id.

        Returns:
            Profile, or None when the row does not exist (yet)
        """
        response = await self._request(
            "GET",
            "/rest/v1/profiles",
            params={"select": "*", "id": f"eq.{user_id}"},
            headers=self._headers({"Accept": "application/vnd.pgrst.object+json"}),
        )
        if response.status_code == 406:
            try:
                code = response.json().get("code")
            except ValueError:
                code = None
            if code == NO_ROWS_CODE:
                return None
        self._raise_for_error(response)
        return Profile(**response.json())

    async def upsert_profile(self, values: Dict[str, Any]) -> None:
        response = await self._request(
            "POST",
            "/rest/v1/profiles",
            json=values,
            headers=self._headers({"Prefer": "resolution=merge-duplicates,return=minimal"}),
        )
        self._raise_for_error(response)

    async def update_profile(self, user_id: str, values: Dict[str, Any]) -> None:
        response = await self._request(
            "PATCH",
            "/rest/v1/profiles",
            params={"id": f"eq.{user_id}"},
            json=values,
            headers=self._headers({"Prefer": "return=minimal"}),
        )
        self._raise_for_error(response)

    async def close(self) -> None:
        await self._client.aclose()
