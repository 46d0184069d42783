"""
velgo/services/tab_service.py

Purpose: Tab registry

- Creates and holds one AppController per open tab
- Tracks last interaction time
- Handles idle expiry and cleanup
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from velgo.core.config import settings
from velgo.core.exceptions import ResourceNotFoundError
from velgo.core.logging import get_logger, LogContext
from velgo.flow.controller import AppController
from velgo.flow.navigation import InMemoryNavigationStore, NavigationState
from velgo.services.backend_client import BackendClient
from utils.time_utils import is_session_expired, utcnow

logger = get_logger(__name__)


@dataclass
class TabEntry:
    controller: AppController
    created_at: datetime = field(default_factory=utcnow)
    last_interaction: datetime = field(default_factory=utcnow)


class TabRegistry:
    """
    In-memory map of tab id -> controller.
    """

    def __init__(
        self,
        timeout_minutes: Optional[int] = None,
        max_tabs: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.timeout_minutes = settings.TAB_TIMEOUT_MINUTES if timeout_minutes is None else timeout_minutes
        self.max_tabs = settings.MAX_OPEN_TABS if max_tabs is None else max_tabs
        self._clock = clock
        self._sleep = sleep
        self._tabs: Dict[str, TabEntry] = {}

    def __len__(self) -> int:
        return len(self._tabs)

    async def open_tab(
        self,
        backend: BackendClient,
        history_state: Optional[dict] = None,
        prefers_dark: bool = False,
    ) -> AppController:
        """
        Creates a controller and runs its startup.

        Args:
            backend: Backend client for this tab's user
            history_state: {view, data} the shell still has (a reload)
            prefers_dark: Device colour-scheme preference

        Returns:
            Started controller
        """
        await self.purge_expired()
        if len(self._tabs) >= self.max_tabs:
            await self._evict_oldest()

        tab_id = uuid.uuid4().hex
        restored = NavigationState.from_dict(history_state)
        navigation = InMemoryNavigationStore(
            limit=settings.NAV_HISTORY_LIMIT,
            initial=[restored] if restored else None,
        )
        controller = AppController(
            backend,
            navigation=navigation,
            sleep=self._sleep,
            prefers_dark=prefers_dark,
            tab_id=tab_id,
        )

        with LogContext(tab_id=tab_id):
            await controller.start()
            now = self._clock()
            self._tabs[tab_id] = TabEntry(controller, created_at=now, last_interaction=now)
            logger.info("🆕 Tab opened")

        return controller

    async def get(self, tab_id: str) -> AppController:
        """
        Looks up a live tab and marks the interaction.

        Raises:
            ResourceNotFoundError: Unknown or expired tab
        """
        entry = self._tabs.get(tab_id)
        if entry is None:
            raise ResourceNotFoundError("Tab not found", details={"tab_id": tab_id})

        now = self._clock()
        if is_session_expired(entry.last_interaction, self.timeout_minutes, now=now):
            logger.info("Tab expired", extra={"tab_id": tab_id})
            await self.close_tab(tab_id)
            raise ResourceNotFoundError("Tab expired", details={"tab_id": tab_id})

        entry.last_interaction = now
        return entry.controller

    async def close_tab(self, tab_id: str) -> bool:
        entry = self._tabs.pop(tab_id, None)
        if entry is None:
            return False
        await entry.controller.close()
        logger.info("Tab closed", extra={"tab_id": tab_id})
        return True

    async def purge_expired(self) -> int:
        """
        Drops idle tabs.

        Returns:
            Number of tabs removed
        """
        now = self._clock()
        expired = [
            tab_id for tab_id, entry in self._tabs.items()
            if is_session_expired(entry.last_interaction, self.timeout_minutes, now=now)
        ]
        for tab_id in expired:
            await self.close_tab(tab_id)
        if expired:
            logger.info(f"Purged {len(expired)} idle tabs")
        return len(expired)

    async def close_all(self) -> None:
        for tab_id in list(self._tabs):
            await self.close_tab(tab_id)

    async def _evict_oldest(self) -> None:
        oldest = min(self._tabs.items(), key=lambda item: item[1].last_interaction)[0]
        logger.warning("Tab limit reached, evicting oldest", extra={"tab_id": oldest})
        await self.close_tab(oldest)


# Global registry used by the API
tab_registry = TabRegistry()
