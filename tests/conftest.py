"""Shared fixtures: stub geocoder, fake map engine and place factory."""

from typing import Callable

import pytest

from src.errors import ExternalServiceError
from src.models import Place, ResolvedCoordinate


class StubResolver:
    def __init__(self, results=None, error: ExternalServiceError | None = None):
        self.results = results or {}
        self.error = error
        self.calls: list[str] = []

    def geocode(self, query):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        coords = self.results.get(query)
        if coords is None:
            return None
        return ResolvedCoordinate(lat=coords[0], lng=coords[1], display_name=query)


class FakeMarker:
    def __init__(self, lat, lng, color, label, on_click):
        self.lat = lat
        self.lng = lng
        self.color = color
        self.label = label
        self.on_click = on_click
        self.active = False
        self.removed = False
        self.restyled = 0

    def set_active(self, active):
        self.active = active

    def set_position(self, lat, lng):
        self.lat = lat
        self.lng = lng

    def set_style(self, color, label):
        self.color = color
        self.label = label
        self.restyled += 1

    def remove(self):
        self.removed = True


class FakePopup:
    def __init__(self, lat, lng, html):
        self.lat = lat
        self.lng = lng
        self.html = html
        self.removed = False

    def remove(self):
        self.removed = True


class FakeMapEngine:
    def __init__(self, ready=False):
        self._loaded = ready
        self.listeners: dict[str, list[Callable]] = {}
        self.markers: list[FakeMarker] = []
        self.popups: list[FakePopup] = []
        self.fly_calls: list[dict] = []
        self.fit_calls: list[dict] = []
        self.removed = False

    def on(self, event, callback):
        self.listeners.setdefault(event, []).append(callback)

        def unsubscribe():
            if callback in self.listeners.get(event, []):
                self.listeners[event].remove(callback)

        return unsubscribe

    def emit(self, event, payload=None):
        for callback in list(self.listeners.get(event, [])):
            callback(payload)

    def fire_load(self):
        self._loaded = True
        self.emit("load")

    def loaded(self):
        return self._loaded

    def add_marker(self, *, lat, lng, color, label, on_click):
        marker = FakeMarker(lat, lng, color, label, on_click)
        self.markers.append(marker)
        return marker

    def show_popup(self, *, lat, lng, html):
        popup = FakePopup(lat, lng, html)
        self.popups.append(popup)
        return popup

    def fly_to(self, *, lat, lng, zoom, duration_ms):
        self.fly_calls.append({"lat": lat, "lng": lng, "zoom": zoom, "duration_ms": duration_ms})

    def fit_bounds(self, bounds, *, padding, duration_ms):
        self.fit_calls.append({"bounds": bounds, "padding": padding, "duration_ms": duration_ms})

    def remove(self):
        self.removed = True

    @property
    def live_markers(self):
        return [marker for marker in self.markers if not marker.removed]

    @property
    def live_popups(self):
        return [popup for popup in self.popups if not popup.removed]


@pytest.fixture
def make_place():
    def _make(place_id: str, name: str, lat=None, lng=None, **fields) -> Place:
        return Place(id=place_id, name=name, lat=lat, lng=lng, **fields)

    return _make


@pytest.fixture
def stub_resolver():
    return StubResolver


@pytest.fixture
def fake_engine():
    return FakeMapEngine
