from datetime import datetime, timedelta, timezone

import pydantic
import pytest

from velgo.core import config
from velgo.core.config import Settings
from velgo.core.exceptions import AuthenticationError, ResourceNotFoundError, ValidationError
from velgo.core.logging import get_logger
from velgo.flow.controller import AppController, resolve_theme
from velgo.services import profile_service, subscription_service
from velgo.services.notification_service import ChangeEvent, resolve_push_trigger, toast_for_change
from velgo.services.tab_service import TabRegistry
from utils.validation_utils import normalize_phone_number, sanitize_input, validate_full_name
from conftest import FakeBackend, RecordingSleep, make_profile, make_session, run

NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


# ---------- validation ----------

@pytest.mark.parametrize("raw,expected", [
    ("08031234567", "08031234567"),
    ("+234 803 123 4567", "08031234567"),
    ("234-803-123-4567", "08031234567"),
    ("8031234567", "08031234567"),
    ("0803123", None),
    ("", None),
])
def test_normalize_phone_number(raw, expected):
    assert normalize_phone_number(raw) == expected


def test_name_checks():
    assert validate_full_name("Ada Obi")
    assert not validate_full_name(" a ")
    assert sanitize_input("  Ada \n  Obi\x00 ") == "Ada Obi"


# ---------- profile completion ----------

def test_complete_profile_upserts_defaults():
    backend = FakeBackend()
    session = make_session()

    values = run(profile_service.complete_profile(backend, session, "Ada  Obi", "+2348031234567", "client"))

    assert backend.upserts == [values]
    assert values["id"] == "user-1"
    assert values["phone_number"] == "08031234567"
    assert values["full_name"] == "Ada Obi"
    assert values["client_type"] == "personal"
    assert values["subscription_tier"] == "basic"
    assert values["task_count"] == 0
    assert "Ada%20Obi" in values["avatar_url"]


@pytest.mark.parametrize("name,phone,role", [
    ("", "08031234567", "client"),
    ("Ada Obi", "123", "client"),
    ("Ada Obi", "08031234567", "admin"),
])
def test_complete_profile_rejects_bad_input(name, phone, role):
    with pytest.raises(ValidationError):
        profile_service.build_profile_update(make_session(), name, phone, role)


def test_worker_is_always_personal():
    values = profile_service.build_profile_update(make_session(), "Ada Obi", "08031234567", "worker", "enterprise")
    assert values["client_type"] == "personal"


def test_auto_complete_uses_signup_metadata():
    backend = FakeBackend()
    session = make_session(metadata={"full_name": "Ada Obi", "phone_number": "08031234567", "role": "worker"})

    assert run(profile_service.auto_complete(backend, session)) is True
    assert backend.upserts[0]["role"] == "worker"


def test_auto_complete_falls_back_to_form():
    backend = FakeBackend()
    assert run(profile_service.auto_complete(backend, make_session())) is False

    bad = make_session(metadata={"full_name": "Ada Obi", "phone_number": "999", "role": "worker"})
    assert run(profile_service.auto_complete(backend, bad)) is False
    assert backend.upserts == []


# ---------- subscriptions ----------

def test_tier_limits_and_quota():
    assert subscription_service.tier_limit("pro") == 15
    assert subscription_service.tier_limit(None) == 2
    assert subscription_service.tier_limit("legacy") == 2
    assert subscription_service.has_quota(make_profile(task_count=1))
    assert not subscription_service.has_quota(make_profile(task_count=2))


def test_payment_email_fallbacks():
    profile = make_profile(email="profile@example.com")
    assert subscription_service.payment_email(profile, "session@example.com") == "session@example.com"
    assert subscription_service.payment_email(profile, None) == "profile@example.com"
    assert subscription_service.payment_email(make_profile(), None) == "user-1@velgo.ng"


def test_payment_request_amount_in_kobo():
    request = subscription_service.build_payment_request("lite", "ada@example.com", now=NOW)
    assert request.amount == 399900
    assert request.reference == str(int(NOW.timestamp() * 1000))
    assert request.tier == "lite"


def test_basic_tier_needs_no_payment():
    with pytest.raises(ValidationError):
        subscription_service.build_payment_request("basic", "ada@example.com")


def test_activate_tier_resets_usage():
    backend = FakeBackend()
    profile = make_profile(task_count=2)

    values = run(subscription_service.activate_tier(backend, profile, "standard", now=NOW))

    assert backend.updates == [("user-1", values)]
    assert values["task_count"] == 0
    assert values["is_verified"] is True
    assert values["subscription_end_date"].startswith("2024-03-31")


# ---------- notifications ----------

def message(receiver="user-1", sender="user-2"):
    return ChangeEvent(type="INSERT", table="messages", record={"receiver_id": receiver, "sender_id": sender})


def test_message_toast_only_for_receiver_outside_chat():
    assert toast_for_change(message(), "user-1", "home").message == "New Message Received"
    assert toast_for_change(message(receiver="user-3"), "user-1", "home") is None
    assert toast_for_change(message(), "user-1", "chat", "user-2") is None


def test_booking_toasts():
    accepted = ChangeEvent(type="UPDATE", table="bookings", record={"client_id": "c", "worker_id": "w", "status": "accepted"})
    declined = ChangeEvent(type="UPDATE", table="bookings", record={"client_id": "c", "worker_id": "w", "status": "cancelled"})

    assert toast_for_change(accepted, "c", "home").message == "Worker Accepted Your Job!"
    assert toast_for_change(accepted, "w", "home").kind == "success"
    assert toast_for_change(declined, "w", "home").kind == "alert"
    assert toast_for_change(declined, "someone-else", "home") is None


def test_push_targets():
    booking = ChangeEvent(type="INSERT", table="bookings", record={"worker_id": "w", "status": "pending"})
    trigger = resolve_push_trigger(booking)
    assert trigger.user_id == "w"
    assert trigger.url == "/activity"

    broadcast = resolve_push_trigger(ChangeEvent(type="INSERT", table="broadcasts", record={"target_role": "worker"}))
    assert broadcast.broadcast is True
    assert broadcast.title == "Velgo"

    assert resolve_push_trigger(ChangeEvent(type="DELETE", table="bookings")) is None


# ---------- tab registry ----------

class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_idle_tab_expires_and_is_closed():
    clock = Clock(NOW)
    registry = TabRegistry(timeout_minutes=60, clock=clock, sleep=RecordingSleep())
    backend = FakeBackend()
    controller = run(registry.open_tab(backend))

    clock.now = NOW + timedelta(minutes=30)
    assert run(registry.get(controller.tab_id)) is controller

    clock.now = NOW + timedelta(minutes=91)
    with pytest.raises(ResourceNotFoundError):
        run(registry.get(controller.tab_id))
    assert backend.closed is True
    assert len(registry) == 0


def test_purge_expired_closes_idle_tabs():
    clock = Clock(NOW)
    registry = TabRegistry(timeout_minutes=5, clock=clock, sleep=RecordingSleep())
    backends = [FakeBackend(), FakeBackend()]
    for backend in backends:
        run(registry.open_tab(backend))

    clock.now = NOW + timedelta(minutes=6)

    assert run(registry.purge_expired()) == 2
    assert all(backend.closed for backend in backends)


def test_tab_limit_evicts_least_recent():
    clock = Clock(NOW)
    registry = TabRegistry(max_tabs=2, clock=clock, sleep=RecordingSleep())
    first, second, third = FakeBackend(), FakeBackend(), FakeBackend()
    oldest = run(registry.open_tab(first))
    clock.now = NOW + timedelta(minutes=1)
    run(registry.open_tab(second))
    clock.now = NOW + timedelta(minutes=2)
    run(registry.open_tab(third))

    assert len(registry) == 2
    assert first.closed is True
    assert second.closed is False
    with pytest.raises(ResourceNotFoundError):
        run(registry.get(oldest.tab_id))


# ---------- controller ----------

@pytest.mark.parametrize("mode,prefers_dark,expected", [
    ("dark", False, "dark"),
    ("light", True, "light"),
    ("auto", True, "dark"),
    ("auto", False, "light"),
    (None, True, "dark"),
    (None, False, "light"),
])
def test_resolve_theme(mode, prefers_dark, expected):
    assert resolve_theme(mode, prefers_dark) == expected


def test_guide_opens_once_for_new_profile(sleep):
    fresh = make_profile(created_at=datetime.now(timezone.utc))
    controller = AppController(FakeBackend(session=make_session(), profile_responses=[fresh]), sleep=sleep)

    run(controller.start())
    assert controller.show_guide is True

    controller.dismiss_guide()
    run(controller.refresh_profile())
    assert controller.show_guide is False


def test_auto_complete_is_tried_once_per_tab(sleep):
    metadata = {"full_name": "Ada Obi", "phone_number": "08031234567", "role": "worker"}
    backend = FakeBackend(session=make_session(metadata=metadata), profile_responses=[make_profile(phone_number=None)])
    controller = AppController(backend, sleep=sleep)

    run(controller.start())
    assert len(backend.upserts) == 1

    assert run(controller.auto_complete_profile()) is False
    assert len(backend.upserts) == 1


def test_plan_screen_carries_tiers_and_usage(sleep):
    backend = FakeBackend(session=make_session(), profile_responses=[make_profile(subscription_tier="lite", task_count=6)])
    controller = AppController(backend, sleep=sleep)
    run(controller.start())

    controller.upgrade()
    screen = controller.render()

    assert screen.name == "subscription"
    assert screen.props["current_tier"] == "lite"
    assert screen.props["has_quota"] is False
    assert [t["id"] for t in screen.props["tiers"] if t["is_active"]] == ["lite"]
    assert screen.props["email"] == "ada@example.com"


def test_activate_tier_refreshes_and_leaves_plan_screen(sleep):
    backend = FakeBackend(session=make_session(), profile_responses=[make_profile()])
    controller = AppController(backend, sleep=sleep)
    run(controller.start())
    controller.navigate("profile")
    controller.upgrade()

    run(controller.activate_tier("pro"))

    assert backend.updates[0][1]["subscription_tier"] == "pro"
    assert len(backend.fetch_calls) == 2
    assert controller.router.current_view == "profile"


def test_plan_actions_need_a_profile(sleep):
    controller = AppController(FakeBackend(), sleep=sleep)
    run(controller.start())

    with pytest.raises(AuthenticationError):
        controller.payment_request("lite")


# ---------- config and logging ----------

def test_production_settings_require_service_key():
    with pytest.raises(pydantic.ValidationError):
        Settings(_env_file=None, ENVIRONMENT="production", SUPABASE_SERVICE_ROLE_KEY=None)


def test_validate_settings_checks_service_key(monkeypatch):
    monkeypatch.setattr(config.settings, "ENVIRONMENT", "production")
    monkeypatch.setattr(config.settings, "SUPABASE_ANON_KEY", "anon")
    monkeypatch.setattr(config.settings, "PAYSTACK_PUBLIC_KEY", "pk_test")
    monkeypatch.setattr(config.settings, "SUPABASE_SERVICE_ROLE_KEY", None)

    with pytest.raises(ValueError, match="SUPABASE_SERVICE_ROLE_KEY"):
        config.validate_settings()


def test_logger_names_are_not_double_prefixed():
    assert get_logger("velgo.services.tab_service").name == "velgo.services.tab_service"
    assert get_logger("scripts").name == "velgo.scripts"
