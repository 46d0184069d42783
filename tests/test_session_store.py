from datetime import datetime, timedelta, timezone

from velgo.core.exceptions import BackendPolicyError
from velgo.flow.navigation import InMemoryNavigationStore, NavigationState
from velgo.flow.router import ViewRouter
from velgo.services.session_store import SessionProfileStore, SYSTEM_POLICY_MESSAGE
from conftest import FakeBackend, make_profile, make_session, run


def build(backend, sleep, initial_view="landing", **kwargs):
    nav = InMemoryNavigationStore(initial=[NavigationState(initial_view)])
    router = ViewRouter(nav)
    router.bootstrap()
    store = SessionProfileStore(backend, router, sleep=sleep, retry_delay=0.5, **kwargs)
    store.listen()
    return store, router, nav


def test_fetch_profile_exhausts_retries_and_sets_error(sleep):
    backend = FakeBackend(profile_responses=[None])
    store, _, _ = build(backend, sleep)

    result = run(store.fetch_profile("user-1", 3))

    assert result is None
    assert store.profile is None
    assert store.profile_error is True
    assert len(backend.fetch_calls) == 4
    assert sleep.delays == [0.5, 0.5, 0.5]


def test_fetch_profile_succeeds_after_trigger_catches_up(sleep):
    profile = make_profile()
    backend = FakeBackend(profile_responses=[None, None, profile])
    store, _, _ = build(backend, sleep)
    store.profile_error = True

    assert run(store.fetch_profile("user-1")) == profile
    assert store.profile == profile
    assert store.profile_error is False
    assert sleep.delays == [0.5, 0.5]


def test_fetch_profile_treats_transport_errors_as_missing_row(sleep, offline_error):
    profile = make_profile()
    backend = FakeBackend(profile_responses=[offline_error, profile])
    store, _, _ = build(backend, sleep)

    assert run(store.fetch_profile("user-1")) == profile
    assert len(sleep.delays) == 1


def test_policy_error_sets_system_error_without_retrying(sleep):
    backend = FakeBackend(profile_responses=[BackendPolicyError("infinite recursion detected in policy")])
    store, _, _ = build(backend, sleep)

    run(store.fetch_profile("user-1"))

    assert store.system_error == SYSTEM_POLICY_MESSAGE
    assert store.loading is False
    assert sleep.delays == []


def test_cold_load_with_session_forces_home_with_replace(sleep):
    backend = FakeBackend(session=make_session(), profile_responses=[make_profile()])
    store, router, nav = build(backend, sleep, initial_view="login")

    run(store.initialize())

    assert store.loading is False
    assert store.profile is not None
    assert router.state == NavigationState("home", None)
    assert nav.current() == NavigationState("home", None)
    assert nav.pushes == 0
    assert nav.depth() == 1
    assert len(backend.fetch_calls) == 1


def test_initialize_without_session_keeps_view(sleep):
    backend = FakeBackend(session=None)
    store, router, _ = build(backend, sleep)

    run(store.initialize())

    assert store.session is None
    assert store.loading is False
    assert router.current_view == "landing"
    assert backend.fetch_calls == []


def test_initialize_swallows_network_errors(sleep, offline_error):
    backend = FakeBackend()
    backend.session_error = offline_error
    store, router, _ = build(backend, sleep)

    run(store.initialize())

    assert store.session is None
    assert store.loading is False


def test_signout_on_reset_password_does_not_redirect(sleep):
    backend = FakeBackend()
    store, router, nav = build(backend, sleep, initial_view="reset-password")
    store.profile = make_profile()

    run(backend.emit_auth_event("SIGNED_OUT", None))

    assert router.current_view == "reset-password"
    assert store.profile is None


def test_signout_on_home_redirects_to_landing_with_replace(sleep):
    backend = FakeBackend()
    store, router, nav = build(backend, sleep, initial_view="home")
    store.session = make_session()
    store.profile = make_profile()
    store.profile_error = True

    run(backend.emit_auth_event("SIGNED_OUT", None))

    assert router.state == NavigationState("landing", None)
    assert nav.current() == NavigationState("landing", None)
    assert nav.pushes == 0
    assert store.session is None
    assert store.profile is None
    assert store.profile_error is False


def test_exempt_views_are_configurable(sleep):
    backend = FakeBackend()
    store, router, _ = build(backend, sleep, initial_view="subscription", signout_exempt_views=["subscription"])

    run(backend.emit_auth_event("SIGNED_OUT", None))

    assert router.current_view == "subscription"


def test_signed_in_refetches_profile_and_leaves_auth_views(sleep):
    profile = make_profile()
    backend = FakeBackend(profile_responses=[profile])
    store, router, nav = build(backend, sleep, initial_view="login")

    run(backend.emit_auth_event("SIGNED_IN", make_session()))

    assert store.profile == profile
    assert router.current_view == "home"
    assert nav.depth() == 1


def test_user_updated_stores_session_without_refetch(sleep):
    backend = FakeBackend(profile_responses=[make_profile()])
    store, _, _ = build(backend, sleep, initial_view="settings")
    session = make_session()

    run(backend.emit_auth_event("USER_UPDATED", session))

    assert store.session == session
    assert backend.fetch_calls == []


def test_password_recovery_pushes_reset_screen(sleep):
    backend = FakeBackend()
    store, router, nav = build(backend, sleep)

    run(backend.emit_auth_event("PASSWORD_RECOVERY", make_session()))

    assert router.current_view == "reset-password"
    assert nav.pushes == 1


def test_new_profile_triggers_guide_callback(sleep):
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    fresh = make_profile(created_at=now - timedelta(minutes=1))
    calls = []
    backend = FakeBackend(profile_responses=[fresh])
    store, _, _ = build(backend, sleep, clock=lambda: now, on_new_profile=lambda: calls.append(1))

    run(store.fetch_profile("user-1"))

    assert calls == [1]


def test_old_profile_does_not_trigger_guide(sleep):
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    calls = []
    backend = FakeBackend(profile_responses=[make_profile(created_at=now - timedelta(days=3))])
    store, _, _ = build(backend, sleep, clock=lambda: now, on_new_profile=lambda: calls.append(1))

    run(store.fetch_profile("user-1"))

    assert calls == []


def test_close_unsubscribes_from_auth_events(sleep):
    backend = FakeBackend()
    store, router, _ = build(backend, sleep, initial_view="home")
    store.close()

    run(backend.emit_auth_event("SIGNED_OUT", None))

    assert router.current_view == "home"
