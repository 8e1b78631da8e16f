"""Controller behind the recommendations feed."""
from __future__ import annotations

import asyncio
import logging

from tvbingefriend_watch_history.config import get_recommendations_page_size
from tvbingefriend_watch_history.controllers.base_controller import ScreenController
from tvbingefriend_watch_history.errors import HistoryAPIError, UnknownError
from tvbingefriend_watch_history.notifications import NotificationCenter
from tvbingefriend_watch_history.services.history_api_client import HistoryAPIClient
from tvbingefriend_watch_history.state.recommendations_state import (
    RecommendationItem,
    RecommendationsState,
    can_load_more,
    hide_item,
    initial_load_failed,
    initial_load_succeeded,
    load_more_failed,
    load_more_succeeded,
    restore_item,
    start_initial_load,
    start_load_more,
)

logger = logging.getLogger(__name__)

LOAD_MORE_FAILED_MESSAGE = "Could not load more recommendations"
MARKED_MESSAGE = "Marked as watched"
MARK_FAILED_MESSAGE = "Could not save changes. Check your connection."


class RecommendationsController(ScreenController[RecommendationsState]):
    """Paginated recommendations with optimistic "mark as watched"."""

    def __init__(
            self,
            client: HistoryAPIClient,
            notifications: NotificationCenter | None = None,
            page_size: int | None = None
    ) -> None:
        super().__init__(RecommendationsState(), notifications)
        self._client = client
        self.page_size = page_size or get_recommendations_page_size()
        self.initial_load: asyncio.Task[None] | None = None

    @classmethod
    def mount(
            cls,
            client: HistoryAPIClient,
            notifications: NotificationCenter | None = None,
            page_size: int | None = None
    ) -> RecommendationsController:
        loop = asyncio.get_running_loop()
        if client.callback_loop is None or client.callback_loop.is_closed():
            client.callback_loop = loop
        controller = cls(client, notifications=notifications, page_size=page_size)
        controller.initial_load = controller._spawn(controller.initialize())
        return controller

    async def initialize(self) -> None:
        await self._reload(start_initial_load, self._load_first_page)

    async def _load_first_page(self) -> None:
        try:
            items = await self._call(self._client.fetch_recommendations, self.page_size)
        except Exception as e:
            error = e if isinstance(e, HistoryAPIError) else UnknownError(str(e))
            logger.error(f"Failed to load recommendations: {e}")
            self._commit(initial_load_failed(self._state, error))
            return

        self._commit(initial_load_succeeded(self._state, items, self.page_size))

    async def retry(self) -> None:
        await self.initialize()

    def load_more(self) -> asyncio.Task[None] | None:
        if self._disposed or not can_load_more(self._state):
            return None

        task = self._spawn(self._load_more(self._state.cursor, self._generation))
        self._commit(start_load_more(self._state))
        return task

    async def _load_more(self, cursor: str, generation: int) -> None:
        try:
            items = await self._call(self._client.fetch_recommendations, self.page_size, cursor)
        except Exception as e:
            if self._is_stale(generation):
                return
            logger.warning(f"Failed to load recommendations after cursor {cursor}: {e}")
            if self._commit(load_more_failed(self._state)):
                self.notifications.error(LOAD_MORE_FAILED_MESSAGE)
            return

        if self._is_stale(generation):
            logger.debug(f"Discarding recommendations after cursor {cursor}: the feed was reloaded")
            return

        self._commit(load_more_succeeded(self._state, items, self.page_size))

    def mark_as_watched(self, item_id: str) -> asyncio.Task[None] | None:
        """
        Hide the item right away and record it as watched.

        On failure the item is put back at the position it was hidden from.
        """
        index = self._state.index_of(item_id)
        if self._disposed or index is None:
            return None

        item = self._state.items[index]
        task = self._spawn(self._mark_as_watched(item, index))
        self._commit(hide_item(self._state, item_id))
        return task

    async def _mark_as_watched(self, item: RecommendationItem, index: int) -> None:
        try:
            await self._call(self._client.mark_as_watched, item.to_watched_command())
        except Exception as e:
            logger.warning(f"Failed to mark {item.title} ({item.external_movie_id}) as watched: {e}")
            if self._commit(restore_item(self._state, item, index)):
                self.notifications.error(MARK_FAILED_MESSAGE)
            return

        if not self._disposed:
            self.notifications.success(MARKED_MESSAGE)
