import httpx
import pytest

from velgo.core.exceptions import BackendError, BackendPolicyError, BackendUnavailableError
from velgo.flow.controller import AppController
from velgo.services.backend_client import SupabaseBackend
from conftest import RecordingSleep, make_session, run

BASE_URL = "https://project.supabase.co"


def make_backend(handler, access_token="jwt-abc"):
    return SupabaseBackend(
        access_token,
        base_url=BASE_URL,
        api_key="anon-key",
        transport=httpx.MockTransport(handler),
    )


def test_get_session_resolves_user():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json={
            "id": "user-1",
            "email": "ada@example.com",
            "user_metadata": {"full_name": "Ada Obi"},
        })

    session = run(make_backend(handler).get_session())

    assert session.user_id == "user-1"
    assert session.email == "ada@example.com"
    assert session.user.user_metadata["full_name"] == "Ada Obi"
    assert seen == {"auth": "Bearer jwt-abc", "apikey": "anon-key"}


def test_get_session_without_token_skips_network():
    def handler(request):
        raise AssertionError("no request expected")

    assert run(make_backend(handler, access_token=None).get_session()) is None


def test_rejected_token_means_no_session():
    backend = make_backend(lambda request: httpx.Response(401, json={"msg": "invalid JWT"}))
    assert run(backend.get_session()) is None


def test_fetch_profile_missing_row_returns_none():
    def handler(request):
        assert request.headers["Accept"] == "application/vnd.pgrst.object+json"
        assert request.url.params["id"] == "eq.user-1"
        return httpx.Response(406, json={"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"})

    assert run(make_backend(handler).fetch_profile("user-1")) is None


def test_fetch_profile_parses_row():
    row = {"id": "user-1", "role": "worker", "phone_number": "08031234567", "category": "Agriculture & Farming"}
    profile = run(make_backend(lambda request: httpx.Response(200, json=row)).fetch_profile("user-1"))

    assert profile.role == "worker"
    assert profile.is_complete is True


def test_policy_failure_raises_policy_error():
    def handler(request):
        return httpx.Response(500, json={"code": "42P17", "message": "infinite recursion detected in policy for relation \"profiles\""})

    with pytest.raises(BackendPolicyError):
        run(make_backend(handler).fetch_profile("user-1"))


def test_other_failures_raise_backend_error():
    backend = make_backend(lambda request: httpx.Response(500, json={"message": "boom"}))

    with pytest.raises(BackendError) as exc_info:
        run(backend.fetch_profile("user-1"))

    assert not isinstance(exc_info.value, BackendPolicyError)
    assert exc_info.value.details["status"] == 500


def test_network_failure_raises_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(BackendUnavailableError):
        run(make_backend(handler).fetch_profile("user-1"))


def test_upsert_and_update_send_expected_requests():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(201)

    backend = make_backend(handler)
    run(backend.upsert_profile({"id": "user-1", "role": "client"}))
    run(backend.update_profile("user-1", {"task_count": 0}))

    upsert, update = requests
    assert upsert.method == "POST"
    assert "merge-duplicates" in upsert.headers["Prefer"]
    assert update.method == "PATCH"
    assert update.url.params["id"] == "eq.user-1"


def test_sign_out_clears_token_and_emits_event():
    events = []
    backend = make_backend(lambda request: httpx.Response(204))
    backend.on_auth_state_change(lambda event, session: events.append((event, session)))

    run(backend.sign_out())

    assert events == [("SIGNED_OUT", None)]
    assert run(backend.get_session()) is None


def test_unsubscribed_listener_stops_receiving_events():
    events = []
    backend = make_backend(lambda request: httpx.Response(204))
    subscription = backend.on_auth_state_change(lambda event, session: events.append(event))
    subscription.unsubscribe()

    run(backend.emit_auth_event("SIGNED_IN", None))

    assert events == []


def test_signed_in_event_switches_requests_to_user_token():
    auth_headers = []

    def handler(request):
        if request.url.path == "/rest/v1/profiles":
            auth_headers.append(request.headers["Authorization"])
            return httpx.Response(200, json={"id": "user-1", "role": "client", "phone_number": "08031234567"})
        return httpx.Response(204)

    async def scenario():
        backend = SupabaseBackend(None, base_url=BASE_URL, api_key="anon", transport=httpx.MockTransport(handler))
        controller = AppController(backend, sleep=RecordingSleep())
        await controller.start()
        await controller.handle_auth_event("SIGNED_IN", make_session())
        await controller.sign_out()
        await controller.refresh_profile()
        return controller

    controller = run(scenario())

    assert auth_headers == ["Bearer token-user-1"]
    assert controller.store.session is None


def test_signed_out_event_drops_user_token():
    seen = []

    def handler(request):
        seen.append(request.headers["Authorization"])
        return httpx.Response(406, json={"code": "PGRST116"})

    backend = make_backend(handler)
    run(backend.emit_auth_event("SIGNED_OUT", None))
    run(backend.fetch_profile("user-1"))

    assert seen == ["Bearer anon-key"]
