from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable

from src.debounce import DEFAULT_DELAY_SECONDS, DebouncedSearch
from src.hours import weekly_hours_to_wire
from src.models import WEEKDAYS, DayHours, Place, PlaceCandidate
from src.place_search import GooglePlacesSearch
from src.store import PlaceStore


@dataclass(slots=True)
class PlaceDraft:
    name: str = ""
    address: str = ""
    industry: str = ""
    vibes: str = ""
    pricing: str = ""
    price: str = ""
    website: str = ""
    contact: str = ""
    lat: str = ""
    lng: str = ""
    hours: dict[str, DayHours] = field(default_factory=dict)

    def to_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "address": self.address,
            "industry": self.industry,
            "vibes": self.vibes,
            "pricing": self.pricing,
            "price": self.price.strip() or None,
            "website": self.website,
            "contact": self.contact,
            "lat": _as_float(self.lat),
            "lng": _as_float(self.lng),
            "hours": weekly_hours_to_wire(self.hours),
        }


def merge_candidate(draft: PlaceDraft, candidate: PlaceCandidate) -> PlaceDraft:
    """Fill the draft's empty fields from a candidate; anything the operator typed wins."""
    draft.address = draft.address or candidate.address or ""
    draft.website = draft.website or candidate.website or ""
    draft.contact = draft.contact or candidate.phone or ""
    coordinate = candidate.coordinate
    if coordinate is not None:
        draft.lat = draft.lat or str(coordinate[0])
        draft.lng = draft.lng or str(coordinate[1])

    for day in WEEKDAYS:
        suggested = (candidate.weekly_hours or {}).get(day)
        current = draft.hours.get(day)
        if suggested is None:
            continue
        if current is None:
            draft.hours[day] = suggested
        elif not current.open or not current.close:
            draft.hours[day] = DayHours(
                open=current.open or suggested.open,
                open_meridiem=current.open_meridiem or suggested.open_meridiem,
                close=current.close or suggested.close,
                close_meridiem=current.close_meridiem or suggested.close_meridiem,
            )
    return draft


class AuthoringSession:
    """Operator-side flow for adding a place with search-assisted autofill."""

    def __init__(
        self,
        enricher: GooglePlacesSearch,
        store: PlaceStore,
        location_hint: str | None = None,
        delay_seconds: float = DEFAULT_DELAY_SECONDS,
        on_suggestions: Callable[[list[PlaceCandidate]], None] | None = None,
    ) -> None:
        self.enricher = enricher
        self.store = store
        self.location_hint = location_hint
        self.draft = PlaceDraft()
        self.suggestions: list[PlaceCandidate] = []
        self._on_suggestions = on_suggestions
        self._search = DebouncedSearch(self._lookup, self._apply_suggestions, delay_seconds=delay_seconds)

    @property
    def is_searching(self) -> bool:
        return self._search.is_searching

    def set_name(self, name: str) -> None:
        self.draft.name = name
        self._search.submit(name)

    def choose(self, candidate: PlaceCandidate) -> PlaceDraft:
        merge_candidate(self.draft, candidate)
        self._apply_suggestions(self.draft.name, [])
        return self.draft

    def submit(self) -> Place:
        place = self.store.create_place(self.draft.to_payload())
        self.draft = PlaceDraft()
        self.suggestions = []
        return place

    def close(self) -> None:
        self._search.close()

    async def _lookup(self, name: str) -> list[PlaceCandidate]:
        return await asyncio.to_thread(self.enricher.search_candidates, name, self.location_hint)

    def _apply_suggestions(self, _query: str, candidates: list[PlaceCandidate]) -> None:
        self.suggestions = list(candidates)
        if self._on_suggestions is not None:
            self._on_suggestions(self.suggestions)


def _as_float(value: str) -> float | None:
    try:
        return float(value) if value.strip() else None
    except ValueError:
        return None
