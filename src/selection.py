from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable

from src.models import Place

Listener = Callable[["SelectionState"], None]


@dataclass(slots=True, frozen=True)
class SelectionState:
    selected_place_id: str | None = None
    filter_text: str = ""
    filter_tag: str | None = None


def filter_places(places: Iterable[Place], text: str = "", tag: str | None = None) -> list[Place]:
    needle = (text or "").casefold()
    return [
        place
        for place in places
        if needle in place.name.casefold() and (not tag or place.tag == tag)
    ]


class SelectionFilterState:
    """Owns which place is selected and which places pass the search/tag filter.

    Selection is independent of the filter: a place may stay selected while the
    current filter hides it from the list, and only ``select``/``clear_selection``
    or a full reload change it.
    """

    def __init__(self) -> None:
        self._places: list[Place] = []
        self._by_id: dict[str, Place] = {}
        self._state = SelectionState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def places(self) -> list[Place]:
        return list(self._places)

    @property
    def filtered_places(self) -> list[Place]:
        return filter_places(self._places, self._state.filter_text, self._state.filter_tag)

    @property
    def selected_place(self) -> Place | None:
        if self._state.selected_place_id is None:
            return None
        return self._by_id.get(self._state.selected_place_id)

    @property
    def unique_tags(self) -> list[str]:
        return sorted({place.tag for place in self._places if place.tag})

    def load(self, places: Iterable[Place]) -> None:
        self._places = list(places)
        self._by_id = {place.id: place for place in self._places}
        self._state = SelectionState()
        self._notify()

    def set_filter(self, text: str = "", tag: str | None = None) -> list[Place]:
        self._state = SelectionState(
            selected_place_id=self._state.selected_place_id,
            filter_text=text or "",
            filter_tag=tag or None,
        )
        self._notify()
        return self.filtered_places

    def select(self, place_id: str) -> bool:
        if place_id not in self._by_id:
            return False
        if self._state.selected_place_id != place_id:
            self._state = SelectionState(place_id, self._state.filter_text, self._state.filter_tag)
            self._notify()
        return True

    def clear_selection(self) -> None:
        if self._state.selected_place_id is None:
            return
        self._state = SelectionState(None, self._state.filter_text, self._state.filter_tag)
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state)
