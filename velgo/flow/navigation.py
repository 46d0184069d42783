"""
velgo/flow/navigation.py

Purpose: History-backed storage for navigation state

- NavigationState: the {view, data} pair written into each history entry
- NavigationStore: push / replace_top / back / forward plus a restore-event stream
- InMemoryNavigationStore: a browser-like history list with a cursor,
  used for server-held tabs and in tests
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from velgo.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NavigationState:
    """
    One history entry. `data` is an opaque payload (an id, a tab name, a role).
    """
    view: str
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {"view": self.view, "data": self.data}

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> Optional["NavigationState"]:
        """
        Parses a history payload. Anything without a string `view` is treated as
        missing state rather than an error.
        """
        if not isinstance(raw, dict):
            return None
        view = raw.get("view")
        if not isinstance(view, str) or not view:
            return None
        return cls(view=view, data=raw.get("data"))


# Called with the entry that became current after back/forward, or None
RestoreListener = Callable[[Optional[NavigationState]], None]


class NavigationStore:
    """
    Persist-and-restore contract for navigation state.

    Forward navigation always pushes. Back/forward never go through push;
    they move within the stored entries and notify subscribers, the same way a
    browser fires popstate.
    """

    def push(self, state: NavigationState) -> None:
        raise NotImplementedError

    def replace_top(self, state: NavigationState) -> None:
        raise NotImplementedError

    def back(self) -> bool:
        raise NotImplementedError

    def forward(self) -> bool:
        raise NotImplementedError

    def current(self) -> Optional[NavigationState]:
        raise NotImplementedError

    def depth(self) -> int:
        raise NotImplementedError

    def can_go_back(self) -> bool:
        return self.depth() > 1

    def subscribe(self, listener: RestoreListener) -> Callable[[], None]:
        raise NotImplementedError


class InMemoryNavigationStore(NavigationStore):
    """
    History list with a cursor. Entries after the cursor are the forward stack
    and are dropped on push.
    """

    def __init__(self, limit: int = 100, initial: Optional[List[NavigationState]] = None):
        self._limit = max(1, limit)
        self._entries: List[Optional[NavigationState]] = list(initial or [])
        self._index = len(self._entries) - 1
        self._listeners: List[RestoreListener] = []
        self.pushes = 0
        self.replacements = 0

    def push(self, state: NavigationState) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(state)
        if len(self._entries) > self._limit:
            overflow = len(self._entries) - self._limit
            del self._entries[:overflow]
        self._index = len(self._entries) - 1
        self.pushes += 1

    def replace_top(self, state: NavigationState) -> None:
        if self._index < 0:
            self._entries.append(state)
            self._index = 0
        else:
            self._entries[self._index] = state
        self.replacements += 1

    def back(self) -> bool:
        if self._index <= 0:
            return False
        self._index -= 1
        self._notify()
        return True

    def forward(self) -> bool:
        if self._index >= len(self._entries) - 1:
            return False
        self._index += 1
        self._notify()
        return True

    def current(self) -> Optional[NavigationState]:
        if self._index < 0:
            return None
        return self._entries[self._index]

    def depth(self) -> int:
        """Entries at or behind the cursor."""
        return self._index + 1

    def entries(self) -> List[Optional[NavigationState]]:
        return list(self._entries)

    def subscribe(self, listener: RestoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        state = self.current()
        for listener in list(self._listeners):
            listener(state)
