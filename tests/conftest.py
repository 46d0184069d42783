import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from velgo.core.exceptions import BackendUnavailableError
from velgo.models.profile import Profile, Session, SessionUser
from velgo.services.backend_client import BackendClient, SIGNED_OUT


def make_session(user_id="user-1", email="ada@example.com", metadata=None) -> Session:
    return Session(
        access_token="token-" + user_id,
        user=SessionUser(id=user_id, email=email, user_metadata=metadata or {}),
    )


def make_profile(user_id="user-1", **overrides) -> Profile:
    values = {
        "id": user_id,
        "full_name": "Ada Obi",
        "phone_number": "08031234567",
        "role": "client",
        "subscription_tier": "basic",
        "task_count": 0,
        "created_at": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return Profile(**values)


class FakeBackend(BackendClient):
    """
    In-process backend. `profile_responses` is consumed one per fetch; the
    last item repeats. Items may be a Profile, None (no row) or an exception.
    """

    def __init__(self, session: Optional[Session] = None, profile_responses: Optional[List[Any]] = None):
        super().__init__()
        self.session = session
        self.session_error: Optional[Exception] = None
        self.profile_responses = list(profile_responses or [None])
        self.fetch_calls: List[str] = []
        self.upserts: List[Dict[str, Any]] = []
        self.updates: List[tuple] = []
        self.signed_out = False
        self.closed = False

    async def get_session(self) -> Optional[Session]:
        if self.session_error:
            raise self.session_error
        return self.session

    async def sign_out(self) -> None:
        self.signed_out = True
        self.session = None
        await self.emit_auth_event(SIGNED_OUT, None)

    async def fetch_profile(self, user_id: str) -> Optional[Profile]:
        self.fetch_calls.append(user_id)
        if len(self.profile_responses) > 1:
            response = self.profile_responses.pop(0)
        else:
            response = self.profile_responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def upsert_profile(self, values: Dict[str, Any]) -> None:
        self.upserts.append(values)

    async def update_profile(self, user_id: str, values: Dict[str, Any]) -> None:
        self.updates.append((user_id, values))

    async def close(self) -> None:
        self.closed = True


class RecordingSleep:
    """Stands in for asyncio.sleep; records delays without waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def offline_error():
    return BackendUnavailableError("Unable to reach backend")
