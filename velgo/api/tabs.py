"""
velgo/api/tabs.py

Purpose: App shell endpoints

- Opens a tab and returns its first screen
- Receives navigation intents, auth events and realtime changes from the shell
- Every action answers with the screen the shell should draw next
"""

from dataclasses import asdict
from fastapi import APIRouter, Depends
from typing import Callable, Optional

from velgo.core.exceptions import ValidationError
from velgo.core.logging import get_logger, LogContext
from velgo.flow.controller import AppController
from velgo.flow.views import View
from velgo.schemas.response import PaymentResponse, ScreenResponse, ToastPayload
from velgo.schemas.tabs import (
    AuthEventRequest,
    BackRequest,
    CompleteProfileRequest,
    NavigateRequest,
    OpenTabRequest,
    SubscriptionRequest,
    ToastRequest,
)
from velgo.services.backend_client import BackendClient, SupabaseBackend
from velgo.services.notification_service import ChangeEvent
from velgo.services.tab_service import TabRegistry, tab_registry

logger = get_logger(__name__)
router = APIRouter(prefix="/tabs")

BackendFactory = Callable[[Optional[str], Optional[str]], BackendClient]


def get_registry() -> TabRegistry:
    return tab_registry


def get_backend_factory() -> BackendFactory:
    return lambda access_token, refresh_token: SupabaseBackend(access_token, refresh_token)


def screen_response(controller: AppController) -> ScreenResponse:
    """
    Serializes the current gate decision for the shell.
    """
    screen = controller.render()
    toast = controller.toast
    current = controller.navigation.current()
    return ScreenResponse(
        tab_id=controller.tab_id,
        screen=screen.name,
        view=screen.view,
        data=screen.data,
        props=screen.props,
        back_fallback=screen.back_fallback,
        actions=sorted(screen.actions),
        show_navigation=screen.show_navigation,
        active_tab=screen.active_tab,
        theme=controller.theme,
        scroll_to_top=controller.take_scroll_request(),
        toast=ToastPayload(message=toast.message, kind=toast.kind) if toast else None,
        show_guide=controller.show_guide,
        history=current.to_dict() if current else None,
    )


@router.post("", response_model=ScreenResponse)
async def open_tab(
    body: OpenTabRequest,
    registry: TabRegistry = Depends(get_registry),
    backend_factory: BackendFactory = Depends(get_backend_factory),
):
    """
    Opens a tab: bootstraps history, checks the session, loads the profile.
    """
    backend = backend_factory(body.access_token, body.refresh_token)
    controller = await registry.open_tab(
        backend,
        history_state=body.history_state,
        prefers_dark=body.prefers_dark,
    )
    return screen_response(controller)


@router.get("/{tab_id}/screen", response_model=ScreenResponse)
async def get_screen(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    return screen_response(await registry.get(tab_id))


@router.post("/{tab_id}/navigate", response_model=ScreenResponse)
async def navigate(tab_id: str, body: NavigateRequest, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    with LogContext(tab_id=tab_id):
        controller.navigate(body.view, body.data)
    return screen_response(controller)


@router.post("/{tab_id}/back", response_model=ScreenResponse)
async def back(tab_id: str, body: BackRequest, registry: TabRegistry = Depends(get_registry)):
    """
    In-screen back button.
    """
    controller = await registry.get(tab_id)
    fallback = body.fallback_view or controller.render().back_fallback
    if not fallback:
        fallback = View.HOME.value if controller.store.session else View.LANDING.value
    with LogContext(tab_id=tab_id):
        controller.handle_back(fallback)
    return screen_response(controller)


@router.post("/{tab_id}/history/back", response_model=ScreenResponse)
async def history_back(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    """
    Hardware/browser back button.
    """
    controller = await registry.get(tab_id)
    controller.router.history_back()
    return screen_response(controller)


@router.post("/{tab_id}/history/forward", response_model=ScreenResponse)
async def history_forward(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    controller.router.history_forward()
    return screen_response(controller)


@router.post("/{tab_id}/auth-events", response_model=ScreenResponse)
async def auth_event(tab_id: str, body: AuthEventRequest, registry: TabRegistry = Depends(get_registry)):
    """
    Auth-state change forwarded from the shell's auth SDK.
    """
    if not body.is_known_event():
        raise ValidationError(f"Unknown auth event: {body.event}")
    controller = await registry.get(tab_id)
    with LogContext(tab_id=tab_id, event=body.event):
        await controller.handle_auth_event(body.event, body.session)
    return screen_response(controller)


@router.post("/{tab_id}/profile/refresh", response_model=ScreenResponse)
async def refresh_profile(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    await controller.refresh_profile()
    return screen_response(controller)


@router.post("/{tab_id}/profile/complete", response_model=ScreenResponse)
async def complete_profile(tab_id: str, body: CompleteProfileRequest, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    await controller.complete_profile(body.full_name, body.phone_number, body.role, body.client_type)
    return screen_response(controller)


@router.post("/{tab_id}/upgrade", response_model=ScreenResponse)
async def upgrade(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    controller.upgrade()
    return screen_response(controller)


@router.post("/{tab_id}/subscription/payment", response_model=PaymentResponse)
async def subscription_payment(tab_id: str, body: SubscriptionRequest, registry: TabRegistry = Depends(get_registry)):
    """
    Popup config for a paid tier. The payment itself happens in the shell.
    """
    controller = await registry.get(tab_id)
    request = controller.payment_request(body.tier)
    return PaymentResponse(**asdict(request))


@router.post("/{tab_id}/subscription/activate", response_model=ScreenResponse)
async def subscription_activate(tab_id: str, body: SubscriptionRequest, registry: TabRegistry = Depends(get_registry)):
    """
    Called after the popup reports success (or for a basic downgrade).
    """
    controller = await registry.get(tab_id)
    await controller.activate_tier(body.tier)
    return screen_response(controller)


@router.post("/{tab_id}/sign-out", response_model=ScreenResponse)
async def sign_out(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    await controller.sign_out()
    return screen_response(controller)


@router.post("/{tab_id}/realtime", response_model=ScreenResponse)
async def realtime_change(tab_id: str, body: ChangeEvent, registry: TabRegistry = Depends(get_registry)):
    """
    Row change from the realtime feed; may raise a toast.
    """
    controller = await registry.get(tab_id)
    controller.handle_change(body)
    return screen_response(controller)


@router.post("/{tab_id}/toast", response_model=ScreenResponse)
async def show_toast(tab_id: str, body: ToastRequest, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    controller.show_toast(body.message, body.kind)
    return screen_response(controller)


@router.delete("/{tab_id}/toast", response_model=ScreenResponse)
async def dismiss_toast(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    controller.dismiss_toast()
    return screen_response(controller)


@router.post("/{tab_id}/guide", response_model=ScreenResponse)
async def show_guide(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    controller.show_user_guide()
    return screen_response(controller)


@router.delete("/{tab_id}/guide", response_model=ScreenResponse)
async def dismiss_guide(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    controller = await registry.get(tab_id)
    controller.dismiss_guide()
    return screen_response(controller)


@router.delete("/{tab_id}")
async def close_tab(tab_id: str, registry: TabRegistry = Depends(get_registry)):
    closed = await registry.close_tab(tab_id)
    return {"status": "closed" if closed else "not_found", "tab_id": tab_id}
