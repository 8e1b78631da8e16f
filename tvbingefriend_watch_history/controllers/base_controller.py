"""Shared plumbing for the screen controllers."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, Generic, TypeVar

from tvbingefriend_watch_history.notifications import NotificationCenter

logger = logging.getLogger(__name__)

S = TypeVar("S")


class ScreenController(Generic[S]):
    """
    Owns one immutable state snapshot and replaces it on every transition.

    Everything runs on the event loop thread. Blocking client calls go through
    `_call`, which runs them on a worker thread; the continuation that applies
    their result is back on the loop, so state is only ever touched from one thread.
    Once disposed, late continuations are dropped instead of applied.
    """

    def __init__(self, initial_state: S, notifications: NotificationCenter | None = None) -> None:
        self._state = initial_state
        self.notifications = notifications or NotificationCenter()
        self._listeners: list[Callable[[S], None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._disposed = False
        # Bumped on every first-page (re)load; older page requests compare against it
        self._generation = 0
        self._initial_request: asyncio.Task[None] | None = None

    @property
    def state(self) -> S:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def subscribe(self, listener: Callable[[S], None]) -> Callable[[], None]:
        """Call `listener` with every new state; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        """Detach from the presentation layer. Requests in flight still finish but change nothing."""
        self._disposed = True
        self._listeners.clear()

    def _commit(self, new_state: S) -> bool:
        """Publish a new snapshot. Returns False when the controller is already disposed."""
        if self._disposed:
            logger.debug(f"{type(self).__name__} disposed, dropping state update")
            return False
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)
        return True

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        # Keep a reference until done so the task is not garbage collected mid-flight
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _reload(self, start: Callable[[S], S], load: Callable[[], Coroutine[Any, Any, None]]) -> None:
        """
        Run a first-page load, or join the one already running.

        Starting a reload invalidates every page request issued before it.
        """
        if self._initial_request is not None and not self._initial_request.done():
            await self._initial_request
            return

        self._generation += 1
        self._commit(start(self._state))
        self._initial_request = self._spawn(load())
        await self._initial_request

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    @staticmethod
    async def _call(fn: Callable[..., Any], *args: Any) -> Any:
        return await asyncio.to_thread(fn, *args)

    async def wait_idle(self) -> None:
        """Wait until every request started so far has resolved."""
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)
