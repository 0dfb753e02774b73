"""
Debounced asynchronous search for the authoring form.

Every keystroke restarts the timer; only the most recently issued query may
deliver results, so a slow response to an abandoned query is dropped even if
it completes after a newer one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DELAY_SECONDS = 0.8
DEFAULT_MIN_LENGTH = 3


class DebouncedSearch(Generic[T]):
    def __init__(
        self,
        search: Callable[[str], Awaitable[list[T]]],
        on_results: Callable[[str, list[T]], None],
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        min_length: int = DEFAULT_MIN_LENGTH,
    ) -> None:
        self._search = search
        self._on_results = on_results
        self.delay_seconds = delay_seconds
        self.min_length = min_length
        self._issued = 0
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._closed = False
        self.is_searching = False

    @property
    def pending(self) -> bool:
        return self._timer is not None or bool(self._tasks)

    def submit(self, query: str) -> None:
        if self._closed:
            return
        self._cancel_timer()
        self._issued += 1
        token = self._issued

        if len(query.strip()) < self.min_length:
            self.is_searching = False
            self._on_results(query, [])
            return

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.delay_seconds, self._fire, query, token)

    def close(self) -> None:
        self._closed = True
        self._cancel_timer()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.is_searching = False

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, query: str, token: int) -> None:
        self._timer = None
        if self._closed or token != self._issued:
            return
        self.is_searching = True
        task = asyncio.get_running_loop().create_task(self._run(query, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, query: str, token: int) -> None:
        try:
            results = await self._search(query)
        except asyncio.CancelledError:
            raise
        except Exception as error:
            logger.warning(f"Place search failed for {query!r}: {error}")
            results = []

        if self._closed or token != self._issued:
            logger.debug(f"Discarding stale results for {query!r}")
            return
        self.is_searching = False
        self._on_results(query, results)
