from __future__ import annotations

from enum import Enum
import logging
from typing import Awaitable, Callable

from src.models import Place
from src.selection import SelectionFilterState, SelectionState
from src.viewport import ViewportController

logger = logging.getLogger(__name__)


class ListStatus(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


class DirectoryController:
    """Keeps the directory list and the map in sync around one selection state."""

    def __init__(self, viewport: ViewportController, selection: SelectionFilterState | None = None) -> None:
        self.selection = selection or SelectionFilterState()
        self.viewport = viewport
        self.viewport.on_select = self.select
        self.status = ListStatus.LOADING
        self.error_message: str | None = None
        self._load_generation = 0
        self._unsubscribe = self.selection.subscribe(self._render)

    async def load(self, fetch: Callable[[], Awaitable[list[Place]]]) -> ListStatus:
        self._load_generation += 1
        generation = self._load_generation
        self.status = ListStatus.LOADING
        self.error_message = None

        try:
            places = await fetch()
        except Exception as error:
            if generation == self._load_generation:
                logger.error(f"Error loading spaces: {error}")
                self.status = ListStatus.ERROR
                self.error_message = str(error)
            return self.status

        if generation != self._load_generation:
            return self.status

        # Selection resets first so the reload never re-focuses the previous pick.
        self.selection.load(places)
        self.viewport.load_places(places)
        self.status = ListStatus.READY if places else ListStatus.EMPTY
        return self.status

    def mount(self) -> None:
        self.viewport.mount()
        self._render(self.selection.state)

    def select(self, place_id: str) -> bool:
        return self.selection.select(place_id)

    def set_filter(self, text: str = "", tag: str | None = None) -> list[Place]:
        return self.selection.set_filter(text, tag)

    def dispose(self) -> None:
        self._load_generation += 1
        self._unsubscribe()
        self.viewport.dispose()

    def _render(self, _state: SelectionState) -> None:
        self.viewport.render(self.selection.filtered_places, self.selection.selected_place)
