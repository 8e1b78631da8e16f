"""Controller behind the infinite-scroll watch history screen."""
from __future__ import annotations

import asyncio
import logging

from tvbingefriend_watch_history.config import get_history_page_size
from tvbingefriend_watch_history.controllers.base_controller import ScreenController
from tvbingefriend_watch_history.errors import HistoryAPIError, UnknownError
from tvbingefriend_watch_history.notifications import NotificationCenter
from tvbingefriend_watch_history.services.history_api_client import HistoryAPIClient
from tvbingefriend_watch_history.state.history_state import (
    HistoryState,
    can_fetch_next_page,
    clear_deleting,
    initial_load_failed,
    initial_load_succeeded,
    mark_deleting,
    next_page_failed,
    next_page_succeeded,
    remove_item,
    start_initial_load,
    start_next_page,
)

logger = logging.getLogger(__name__)

NEXT_PAGE_FAILED_MESSAGE = "Could not load more items"
DELETED_MESSAGE = "Removed from history"
DELETE_FAILED_MESSAGE = "Could not remove the item. Please try again later."


class HistoryController(ScreenController[HistoryState]):
    """
    Paginated, deletable view of the user's watch history.

    - initialize()/retry(): load the first page; a failure is kept in `state.error`.
    - fetch_next_page(): append the next page; at most one request in flight,
      a failure only produces a notification.
    - handle_delete(id): mark the item as deleting right away, then remove it
      on success or clear the flag on failure.
    """

    def __init__(
            self,
            client: HistoryAPIClient,
            notifications: NotificationCenter | None = None,
            page_size: int | None = None
    ) -> None:
        super().__init__(HistoryState(), notifications)
        self._client = client
        self.page_size = page_size or get_history_page_size()
        self.initial_load: asyncio.Task[None] | None = None

    @classmethod
    def mount(
            cls,
            client: HistoryAPIClient,
            notifications: NotificationCenter | None = None,
            page_size: int | None = None
    ) -> HistoryController:
        """
        Create a controller and start its first load.

        Must run inside an event loop; the client's unauthorized callback is bound to it.
        """
        loop = asyncio.get_running_loop()
        if client.callback_loop is None or client.callback_loop.is_closed():
            client.callback_loop = loop
        controller = cls(client, notifications=notifications, page_size=page_size)
        controller.initial_load = controller._spawn(controller.initialize())
        return controller

    async def initialize(self) -> None:
        """
        Load the first page, replacing whatever was loaded before.

        If a first-page request is already running this waits for it instead
        of sending another; a next page still in flight is discarded.
        """
        await self._reload(start_initial_load, self._load_first_page)

    async def _load_first_page(self) -> None:
        try:
            page = await self._call(self._client.fetch_page, self.page_size)
        except Exception as e:
            error = e if isinstance(e, HistoryAPIError) else UnknownError(str(e))
            logger.error(f"Failed to load watch history: {e}")
            self._commit(initial_load_failed(self._state, error))
            return

        logger.info(f"Loaded {len(page.items)} history items (more: {page.next_cursor is not None})")
        self._commit(initial_load_succeeded(self._state, page))

    async def retry(self) -> None:
        await self.initialize()

    def fetch_next_page(self) -> asyncio.Task[None] | None:
        """
        Start loading the next page.

        Returns the request task, or None when a page is already loading,
        there is nothing more to load, or the controller is disposed.
        """
        if self._disposed or not can_fetch_next_page(self._state):
            return None

        # The task cannot start before we yield back to the loop, so the
        # in-flight flag is always set before the request goes out.
        task = self._spawn(self._load_next_page(self._state.cursor, self._generation))
        self._commit(start_next_page(self._state))
        return task

    async def _load_next_page(self, cursor: str, generation: int) -> None:
        try:
            page = await self._call(self._client.fetch_page, self.page_size, cursor)
        except Exception as e:
            if self._is_stale(generation):
                return
            logger.warning(f"Failed to load history page after cursor {cursor}: {e}")
            if self._commit(next_page_failed(self._state)):
                self.notifications.error(NEXT_PAGE_FAILED_MESSAGE)
            return

        if self._is_stale(generation):
            logger.debug(f"Discarding history page after cursor {cursor}: the list was reloaded")
            return

        self._commit(next_page_succeeded(self._state, page))

    def handle_delete(self, item_id: str) -> asyncio.Task[None] | None:
        """
        Delete an item optimistically.

        Returns the request task, or None if the item is not loaded, is
        already being deleted, or the controller is disposed.
        """
        item = self._state.find(item_id)
        if self._disposed or item is None or item.is_deleting:
            return None

        task = self._spawn(self._delete(item_id))
        self._commit(mark_deleting(self._state, item_id))
        return task

    async def _delete(self, item_id: str) -> None:
        try:
            await self._call(self._client.delete_item, item_id)
        except Exception as e:
            logger.warning(f"Failed to delete watched item {item_id}: {e}")
            if self._commit(clear_deleting(self._state, item_id)):
                self.notifications.error(DELETE_FAILED_MESSAGE)
            return

        if self._commit(remove_item(self._state, item_id)):
            self.notifications.success(DELETED_MESSAGE)
