"""
Viewport controller for the interactive directory map.

Owns the map engine instance, one marker handle per rendered place, the single
popup and camera motion. The engine is driven through the ``MapEngine``
protocol; its "load" and "error" events arrive asynchronously, so every marker
mutation waits for the ready flag and a late "load" replays the full render.
"""

from __future__ import annotations

from enum import Enum
from functools import partial
import html
import logging
from typing import Callable, Iterable, Protocol

from src.category_utils import marker_color
from src.hours import format_hours
from src.models import Place
from src.static_map import (
    Bounds,
    DegradationDetector,
    FallbackView,
    MapStatus,
    classify_map_error,
    compute_bounds,
)

logger = logging.getLogger(__name__)

FOCUS_ZOOM = 15
FLY_DURATION_MS = 800
FIT_PADDING_PX = 80
FIT_DURATION_MS = 800


class MarkerHandle(Protocol):
    def set_active(self, active: bool) -> None:
        ...

    def set_position(self, lat: float, lng: float) -> None:
        ...

    def set_style(self, color: str, label: str) -> None:
        ...

    def remove(self) -> None:
        ...


class PopupHandle(Protocol):
    def remove(self) -> None:
        ...


class MapEngine(Protocol):
    def on(self, event: str, callback: Callable[[object], None]) -> Callable[[], None]:
        """Subscribe to an engine event; returns a callable that unsubscribes."""

    def loaded(self) -> bool:
        ...

    def add_marker(
        self, *, lat: float, lng: float, color: str, label: str, on_click: Callable[[], None]
    ) -> MarkerHandle:
        ...

    def show_popup(self, *, lat: float, lng: float, html: str) -> PopupHandle:
        ...

    def fly_to(self, *, lat: float, lng: float, zoom: int, duration_ms: int) -> None:
        ...

    def fit_bounds(self, bounds: Bounds, *, padding: int, duration_ms: int) -> None:
        ...

    def remove(self) -> None:
        ...


class MarkerState(str, Enum):
    ABSENT = "absent"
    RENDERED = "rendered"
    ACTIVE = "active"


def popup_html(place: Place) -> str:
    escape = html.escape
    chips = [f'<span class="map-popup-chip">{escape(place.tag)}</span>']
    if place.vibes:
        chips.append(f'<span class="map-popup-chip map-popup-chip-soft">{escape(place.vibes)}</span>')
    if place.website:
        chips.append(
            f'<a class="map-popup-link" href="{escape(place.website)}" target="_blank" rel="noreferrer">Website</a>'
        )
    hours = format_hours(place.hours)
    hours_row = f'<div class="map-popup-hours">{escape(hours)}</div>' if hours else ""
    return (
        '<div class="map-popup">'
        f'<div class="map-popup-title">{escape(place.name)}</div>'
        f'<div class="map-popup-sub">{escape(place.address or "No address provided")}</div>'
        f'<div class="map-popup-row">{"".join(chips)}</div>'
        f"{hours_row}"
        "</div>"
    )


class ViewportController:
    def __init__(
        self,
        engine_factory: Callable[[], MapEngine],
        detector: DegradationDetector,
        on_select: Callable[[str], None] | None = None,
    ) -> None:
        self._engine_factory = engine_factory
        self.detector = detector
        self.on_select = on_select
        self.status = MapStatus.INITIALIZING
        self.fallback: FallbackView | None = None
        self.error_message: str | None = None

        self._engine: MapEngine | None = None
        self._ready = False
        self._subscriptions: list[Callable[[], None]] = []
        self._markers: dict[str, MarkerHandle] = {}
        self._marker_coords: dict[str, tuple[float, float]] = {}
        self._marker_styles: dict[str, tuple[str, str]] = {}
        self._active_id: str | None = None
        self._popup: PopupHandle | None = None
        self._focused_id: str | None = None

        self._all_places: list[Place] = []
        self._visible: list[Place] = []
        self._selected: Place | None = None
        self._data_loaded = False
        self._fit_pending = False

    @property
    def engine(self) -> MapEngine | None:
        return self._engine

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def marker_ids(self) -> set[str]:
        return set(self._markers)

    @property
    def active_id(self) -> str | None:
        return self._active_id

    @property
    def has_popup(self) -> bool:
        return self._popup is not None

    def marker_state(self, place_id: str) -> MarkerState:
        if place_id not in self._markers:
            return MarkerState.ABSENT
        if place_id == self._active_id:
            return MarkerState.ACTIVE
        return MarkerState.RENDERED

    def mount(self) -> MapStatus:
        if self.status is not MapStatus.INITIALIZING or self._engine is not None:
            return self.status

        if not self.detector.supports_interactive():
            self._degrade(MapStatus.STATIC_FALLBACK, "Interactive map capability check failed")
            return self.status

        try:
            engine = self._engine_factory()
        except Exception as error:
            self._degrade(classify_map_error(error), str(error))
            return self.status

        self._engine = engine
        self._subscriptions = [
            engine.on("load", self._handle_ready),
            engine.on("error", self._handle_engine_error),
        ]
        if engine.loaded():
            self._handle_ready(None)
        return self.status

    def load_places(self, places: Iterable[Place]) -> None:
        """Register a full data load; the next ready render frames all locatable places once."""
        self._all_places = list(places)
        self._data_loaded = True
        self._fit_pending = True
        self._focused_id = None
        if self.status is MapStatus.STATIC_FALLBACK:
            self.fallback = self.detector.fallback(self._all_places)
        self._sync()

    def render(self, visible_places: Iterable[Place], selected: Place | None) -> None:
        self._visible = list(visible_places)
        self._selected = selected
        self._sync()

    def dispose(self) -> None:
        self._teardown_engine()
        self._all_places = []
        self._visible = []
        self._selected = None

    def _handle_ready(self, _event: object) -> None:
        if self._engine is None:
            return
        self._ready = True
        self.status = MapStatus.INTERACTIVE
        self._sync()

    def _handle_engine_error(self, event: object) -> None:
        error = getattr(event, "error", event)
        logger.error(f"Map engine error: {error}")
        self._degrade(classify_map_error(error), str(error or ""))

    def _handle_marker_click(self, place_id: str) -> None:
        if self.status is not MapStatus.INTERACTIVE or self.on_select is None:
            return
        self.on_select(place_id)

    def _degrade(self, status: MapStatus, message: str) -> None:
        logger.warning(f"Interactive map unavailable ({status.value}): {message}")
        self._teardown_engine()
        self.status = status
        self.error_message = message
        if status is MapStatus.STATIC_FALLBACK:
            self.fallback = self.detector.fallback(self._all_places)

    def _teardown_engine(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions = []

        for marker in self._markers.values():
            marker.remove()
        self._markers = {}
        self._marker_coords = {}
        self._marker_styles = {}
        self._active_id = None

        self._close_popup()
        self._focused_id = None
        self._ready = False

        engine, self._engine = self._engine, None
        if engine is not None:
            try:
                engine.remove()
            except Exception as error:
                logger.error(f"Error removing map: {error}")

    def _sync(self) -> None:
        if not self._ready or self._engine is None:
            return
        self._reconcile_markers(self._engine)
        self._fit_if_pending(self._engine)
        self._sync_selection(self._engine)

    def _reconcile_markers(self, engine: MapEngine) -> None:
        known_ids = {place.id for place in self._all_places}
        wanted = {
            place.id: place
            for place in self._visible
            if place.id in known_ids and place.is_locatable()
        }

        for place_id in [place_id for place_id in self._markers if place_id not in wanted]:
            self._markers.pop(place_id).remove()
            self._marker_coords.pop(place_id, None)
            self._marker_styles.pop(place_id, None)
            if place_id == self._active_id:
                self._active_id = None

        for place_id, place in wanted.items():
            coords = (float(place.lat), float(place.lng))
            style = (marker_color(place.tag), place.name)
            handle = self._markers.get(place_id)
            if handle is None:
                self._markers[place_id] = engine.add_marker(
                    lat=coords[0],
                    lng=coords[1],
                    color=style[0],
                    label=style[1],
                    on_click=partial(self._handle_marker_click, place_id),
                )
            else:
                if self._marker_coords.get(place_id) != coords:
                    handle.set_position(*coords)
                if self._marker_styles.get(place_id) != style:
                    handle.set_style(*style)
            self._marker_coords[place_id] = coords
            self._marker_styles[place_id] = style

        selected_id = self._selected.id if self._selected is not None else None
        next_active = selected_id if selected_id in self._markers else None
        if next_active != self._active_id:
            if self._active_id in self._markers:
                self._markers[self._active_id].set_active(False)
            if next_active is not None:
                self._markers[next_active].set_active(True)
            self._active_id = next_active

    def _fit_if_pending(self, engine: MapEngine) -> None:
        if not (self._fit_pending and self._data_loaded):
            return
        self._fit_pending = False
        bounds = compute_bounds(self._all_places)
        if bounds is not None:
            engine.fit_bounds(bounds, padding=FIT_PADDING_PX, duration_ms=FIT_DURATION_MS)

    def _sync_selection(self, engine: MapEngine) -> None:
        place = self._selected
        if place is None or not place.is_locatable():
            self._close_popup()
            self._focused_id = None
            return
        if place.id == self._focused_id and self._popup is not None:
            return

        self._close_popup()
        lat, lng = float(place.lat), float(place.lng)
        self._popup = engine.show_popup(lat=lat, lng=lng, html=popup_html(place))
        engine.fly_to(lat=lat, lng=lng, zoom=FOCUS_ZOOM, duration_ms=FLY_DURATION_MS)
        self._focused_id = place.id

    def _close_popup(self) -> None:
        popup, self._popup = self._popup, None
        if popup is not None:
            popup.remove()
