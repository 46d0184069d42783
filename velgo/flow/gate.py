"""
velgo/flow/gate.py

Purpose: Access gate

- Decides between auth screens, the forced profile-completion screen and the app
- Evaluated on every screen request, not only on navigation
- Incomplete profiles win over whatever view the router holds
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from velgo.flow.views import (
    View,
    Screen,
    CHROMELESS_VIEWS,
    get_view_metadata,
    is_pre_auth_view,
    is_post_auth_view,
)
from velgo.models.profile import Profile, Session


@dataclass
class RenderedScreen:
    """
    Result of one gate decision.

    `actions` maps callback names to callables the screen may invoke;
    only the names leave the process.
    """
    name: str
    view: str
    data: Any = None
    props: Dict[str, Any] = field(default_factory=dict)
    back_fallback: Optional[str] = None
    actions: Dict[str, Callable] = field(default_factory=dict)
    show_navigation: bool = False
    active_tab: Optional[str] = None


class AccessGate:
    """
    First match wins:

    0. bootstrap still loading -> splash; backend policy failure -> system-error
    1. no session -> a pre-auth view, anything else -> landing
    2. session, profile incomplete (or missing after retries) -> complete-profile
    3. session, profile still loading -> splash
    4. session, complete profile -> requested post-auth view, unknown -> home
    """

    def resolve(
        self,
        session: Optional[Session],
        profile: Optional[Profile],
        view: str,
        data: Any = None,
        loading: bool = False,
        profile_error: bool = False,
        system_error: Optional[str] = None,
        actions: Optional[Dict[str, Callable]] = None,
    ) -> RenderedScreen:
        actions = actions or {}

        if loading:
            return RenderedScreen(name=Screen.SPLASH.value, view=view, data=data)

        if system_error:
            return RenderedScreen(
                name=Screen.SYSTEM_ERROR.value,
                view=view,
                data=data,
                props={"message": system_error},
                actions=_pick(actions, "sign_out"),
            )

        if not session:
            if not is_pre_auth_view(view):
                view, data = View.LANDING.value, None
            return self._view_screen(view, data, signed_in=False, actions=_pick(actions, "navigate", "back"))

        profile_incomplete = profile is not None and not profile.is_complete
        if profile_incomplete or (profile is None and profile_error):
            return RenderedScreen(
                name=Screen.COMPLETE_PROFILE.value,
                view=view,
                data=data,
                props={
                    "user_metadata": dict(session.user.user_metadata),
                    "email": session.email,
                    "profile_error": profile_error,
                },
                actions=_pick(actions, "complete_profile", "sign_out"),
            )

        if profile is None:
            return RenderedScreen(name=Screen.SPLASH.value, view=view, data=data)

        if not is_post_auth_view(view):
            view, data = View.HOME.value, None

        screen = self._view_screen(view, data, signed_in=True, actions=actions)
        screen.show_navigation = view not in CHROMELESS_VIEWS
        return screen

    @staticmethod
    def _view_screen(view: str, data: Any, signed_in: bool, actions: Dict[str, Callable]) -> RenderedScreen:
        metadata = get_view_metadata(view)
        props: Dict[str, Any] = {}
        back_fallback = None
        active_tab = None

        if metadata is not None:
            if metadata.data_prop:
                props[metadata.data_prop] = data if data is not None else metadata.data_default
            if metadata.success_view:
                props["success_view"] = metadata.success_view.value
            fallback = metadata.back_fallback if signed_in else metadata.pre_auth_back_fallback
            back_fallback = fallback.value if fallback else None
            if signed_in and metadata.tab:
                active_tab = metadata.tab.value

        return RenderedScreen(
            name=view,
            view=view,
            data=data,
            props=props,
            back_fallback=back_fallback,
            actions=dict(actions),
            active_tab=active_tab,
        )


def _pick(actions: Dict[str, Callable], *names: str) -> Dict[str, Callable]:
    return {name: actions[name] for name in names if name in actions}
