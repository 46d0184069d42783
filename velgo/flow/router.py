"""
velgo/flow/router.py

Purpose: View router / history controller

- Single source of truth for which view is visible
- Mirrors every change into the NavigationStore so back/forward and reloads work
- navigate() is the only way forward navigation happens
"""

from typing import Any, Callable, Optional

from velgo.flow.navigation import NavigationState, NavigationStore
from velgo.flow.views import View, ROOT_VIEWS
from velgo.core.logging import get_logger

logger = get_logger(__name__)


class ViewRouter:
    """
    Holds the current (view, data) pair and keeps it in step with history.
    """

    def __init__(
        self,
        store: NavigationStore,
        scroll_to_top: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.current_view: str = View.LANDING.value
        self.current_data: Any = None
        self._scroll_to_top = scroll_to_top
        self._unsubscribe = store.subscribe(self._on_restore)

    @property
    def state(self) -> NavigationState:
        return NavigationState(self.current_view, self.current_data)

    def bootstrap(self) -> None:
        """
        Makes sure history always holds a well-formed entry. A store that
        already has one (a reload) is restored instead.
        """
        entry = self.store.current()
        if entry is None:
            self.store.replace_top(NavigationState(View.LANDING.value, None))
            self._apply(View.LANDING.value, None)
            logger.debug("History bootstrapped with landing")
        else:
            self._apply(entry.view, entry.data)
            logger.debug(f"History restored to {entry.view}")

    def navigate(self, view: str, data: Any = None) -> None:
        """
        Pushes a new history entry and shows it.

        Args:
            view: Target view identifier
            data: Opaque payload for the target screen
        """
        self.store.push(NavigationState(view, data))
        self._apply(view, data)
        if self._scroll_to_top:
            self._scroll_to_top()
        logger.info(f"➡️ Navigated to {view}", extra={"view": view})

    def handle_back(self, fallback_view: str) -> None:
        """
        In-screen back button. Pops history when there is somewhere meaningful
        to go; otherwise shows `fallback_view` in place of the current entry.

        Args:
            fallback_view: View to show when there is nothing to pop
        """
        has_entry = self.store.current() is not None
        if has_entry and self.current_view not in ROOT_VIEWS and self.store.can_go_back():
            # The store notifies _on_restore with the previous entry
            self.store.back()
            return

        self.force(fallback_view)

    def force(self, view: str) -> None:
        """
        Shows `view` without growing the back stack.
        """
        self.store.replace_top(NavigationState(view, None))
        self._apply(view, None)
        logger.info(f"↩️ Replaced history with {view}", extra={"view": view})

    def history_back(self) -> bool:
        """Hardware/browser back button."""
        return self.store.back()

    def history_forward(self) -> bool:
        return self.store.forward()

    def close(self) -> None:
        self._unsubscribe()

    def _on_restore(self, entry: Optional[NavigationState]) -> None:
        if entry is not None and entry.view:
            self._apply(entry.view, entry.data)
        else:
            logger.warning("History entry without state, falling back to landing")
            self._apply(View.LANDING.value, None)

    def _apply(self, view: str, data: Any) -> None:
        self.current_view = view
        self.current_data = data
