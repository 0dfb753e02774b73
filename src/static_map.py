"""
Static map fallback for devices that cannot run the interactive map.

The fallback image is built from the same place set and bounding box as the
interactive map's initial framing, so both render paths agree on what the
user sees first.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Iterable
from urllib.parse import urlencode

from src.category_utils import marker_color
from src.models import Place

logger = logging.getLogger(__name__)

DEFAULT_CENTER: tuple[float, float] = (-79.3832, 43.6532)  # (lng, lat), downtown Toronto
DEFAULT_ZOOM = 11
STATIC_STYLE = "mapbox/dark-v11"
STATIC_SIZE = "800x600@2x"
STATIC_BASE_URL = "https://api.mapbox.com/styles/v1"
FALLBACK_MESSAGE = (
    "Interactive map is not supported on this device. "
    "Showing a static map; selecting places on the map is unavailable."
)

# Checked in order: wide spans first, then tight ones. Anything else keeps DEFAULT_ZOOM.
ZOOM_THRESHOLDS: tuple[tuple[Callable[[float], bool], int], ...] = (
    (lambda span: span < 0.02, 13),
    (lambda span: span < 0.05, 12),
    (lambda span: span > 0.2, 9),
    (lambda span: span > 0.1, 10),
)

CAPABILITY_SIGNATURES = (
    "WebGL",
    "ALIASED_POINT_SIZE_RANGE",
    "Failed to initialize WebGL",
    "Context lost",
)
CREDENTIAL_SIGNATURES = ("token", "authentication", "401", "403")


class MapStatus(str, Enum):
    INITIALIZING = "initializing"
    INTERACTIVE = "interactive"
    STATIC_FALLBACK = "static_fallback"
    UNAVAILABLE = "unavailable"


@dataclass(slots=True, frozen=True)
class Bounds:
    min_lng: float
    min_lat: float
    max_lng: float
    max_lat: float

    @property
    def center(self) -> tuple[float, float]:
        return ((self.min_lng + self.max_lng) / 2, (self.min_lat + self.max_lat) / 2)

    @property
    def span(self) -> float:
        return max(self.max_lat - self.min_lat, self.max_lng - self.min_lng)


@dataclass(slots=True, frozen=True)
class FallbackView:
    image_url: str
    center: tuple[float, float]
    zoom: int
    message: str = FALLBACK_MESSAGE


def compute_bounds(places: Iterable[Place]) -> Bounds | None:
    located = [place for place in places if place.is_locatable()]
    if not located:
        return None
    lngs = [float(place.lng) for place in located]
    lats = [float(place.lat) for place in located]
    return Bounds(min(lngs), min(lats), max(lngs), max(lats))


def zoom_for_span(span: float) -> int:
    for matches, zoom in ZOOM_THRESHOLDS:
        if matches(span):
            return zoom
    return DEFAULT_ZOOM


def build_fallback_view(places: Iterable[Place], access_token: str = "") -> FallbackView:
    located = [place for place in places if place.is_locatable()]
    bounds = compute_bounds(located)
    if bounds is None:
        center, zoom = DEFAULT_CENTER, DEFAULT_ZOOM
    else:
        center, zoom = bounds.center, zoom_for_span(bounds.span)

    pins = ",".join(
        f"pin-s+{marker_color(place.tag).lstrip('#')}({_coord(place.lng)},{_coord(place.lat)})"
        for place in located
    )
    overlay = f"{pins}/" if pins else ""
    query = f"?{urlencode({'access_token': access_token})}" if access_token else ""
    image_url = (
        f"{STATIC_BASE_URL}/{STATIC_STYLE}/static/{overlay}"
        f"{_coord(center[0])},{_coord(center[1])},{zoom}/{STATIC_SIZE}{query}"
    )
    return FallbackView(image_url=image_url, center=center, zoom=zoom)


def _coord(value: float) -> str:
    return f"{float(value):.6f}".rstrip("0").rstrip(".")


def classify_map_error(error: BaseException | str | None) -> MapStatus:
    """Map an engine error to the state the map view should move to."""
    message = str(error or "")
    if any(signature in message for signature in CAPABILITY_SIGNATURES):
        return MapStatus.STATIC_FALLBACK
    if any(signature in message for signature in CREDENTIAL_SIGNATURES):
        return MapStatus.UNAVAILABLE
    return MapStatus.STATIC_FALLBACK


class DegradationDetector:
    """One-shot capability probe deciding between interactive and static rendering."""

    def __init__(self, probe: Callable[[], bool], access_token: str = "") -> None:
        self._probe = probe
        self._result: bool | None = None
        self.access_token = access_token

    def supports_interactive(self) -> bool:
        if self._result is None:
            try:
                self._result = bool(self._probe())
            except Exception as error:
                logger.warning(f"Map capability probe failed: {error}")
                self._result = False
        return self._result

    def fallback(self, places: Iterable[Place]) -> FallbackView:
        return build_fallback_view(places, self.access_token)
