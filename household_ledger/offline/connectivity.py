"""
Connectivity Monitor

Explicit, injectable online/offline state. Listeners are told only about
edges (offline -> online, online -> offline); setting the same state
again is a no-op.

Coroutine listeners are scheduled as tasks on the running event loop.
The monitor keeps a reference to each task until it finishes, and
`wait_idle()` lets callers (and tests) wait for them.
"""

import asyncio
import inspect
from typing import Any, Callable

import structlog


logger = structlog.get_logger(__name__)

Listener = Callable[[bool], Any]


class ConnectivityMonitor:
    """Process-wide connectivity signal."""

    def __init__(self, online: bool = True):
        self._online = online
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def is_online(self) -> bool:
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener(online)` for edges. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> None:
        """Record the current connectivity and notify listeners on a change."""
        if online == self._online:
            return
        self._online = online
        logger.info("connectivity_changed", online=online)

        for listener in list(self._listeners):
            try:
                result = listener(online)
            except Exception as e:
                logger.error("connectivity_listener_failed", error=str(e))
                continue
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

    def go_offline(self) -> None:
        self.set_online(False)

    def go_online(self) -> None:
        self.set_online(True)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("connectivity_listener_failed", error=str(task.exception()))

    async def wait_idle(self) -> None:
        """Wait until every scheduled listener task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Drop all listeners and cancel listener tasks still running."""
        self._listeners.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
