from __future__ import annotations

import http.client
import json
import logging
import math
import time
from typing import Callable, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
import urllib.request

from src.errors import ExternalServiceError
from src.models import ResolvedCoordinate

logger = logging.getLogger(__name__)

MAPBOX_FORWARD_URL = "https://api.mapbox.com/search/geocode/v6/forward"


class CoordinateResolver(Protocol):
    def geocode(self, query: str) -> ResolvedCoordinate | None:
        ...


class MapboxGeocoder:
    def __init__(
        self,
        access_token: str,
        country: str | None = "CA",
        language: str = "en",
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        timeout_seconds: float = 30.0,
        sleeper: Callable[[float], None] = time.sleep,
    ) -> None:
        self.access_token = access_token
        self.country = country
        self.language = language
        self.max_retries = max(1, max_retries)
        self.retry_delay_seconds = retry_delay_seconds
        self.timeout_seconds = timeout_seconds
        self.sleeper = sleeper
        self.last_status = ""
        self.last_error_message = ""
        if not access_token:
            logger.warning("Mapbox token missing. Set MAPBOX_ACCESS_TOKEN (preferred) or VITE_MAPBOX_TOKEN.")

    def geocode(self, query: str) -> ResolvedCoordinate | None:
        self.last_status = ""
        self.last_error_message = ""
        if not self.access_token:
            self.last_status = "MISSING_CREDENTIALS"
            raise ExternalServiceError("Mapbox access token is not configured")

        cleaned = (query or "").strip()
        if not cleaned:
            self.last_status = "EMPTY_QUERY"
            return None

        params: dict[str, str] = {
            "q": cleaned,
            "access_token": self.access_token,
            "limit": "1",
            "language": self.language,
        }
        if self.country:
            params["country"] = self.country
        payload = self._request_json(f"{MAPBOX_FORWARD_URL}?{urlencode(params)}")
        return self._extract_result(payload)

    def _request_json(self, url: str) -> dict[str, object]:
        for attempt in range(self.max_retries):
            try:
                with urllib.request.urlopen(url, timeout=self.timeout_seconds) as response:
                    return json.loads(response.read().decode("utf-8"))
            except HTTPError as error:
                # Error statuses (bad token, bad request) are not transient.
                self.last_status = f"HTTP_{error.code}"
                self.last_error_message = str(error.reason or error)
                raise ExternalServiceError(
                    f"Mapbox geocoding failed ({error.code}): {self.last_error_message}"
                ) from error
            except URLError as error:
                self.last_status = "NETWORK_ERROR"
                self.last_error_message = str(error.reason or error)
            except TimeoutError as error:
                self.last_status = "TIMEOUT"
                self.last_error_message = str(error)
            except (OSError, http.client.HTTPException) as error:
                # Dropped or truncated connections surface from getresponse() and read() unwrapped.
                self.last_status = "NETWORK_ERROR"
                self.last_error_message = str(error) or type(error).__name__
            except (json.JSONDecodeError, UnicodeDecodeError) as error:
                self.last_status = "INVALID_JSON"
                self.last_error_message = str(error)

            if attempt < self.max_retries - 1:
                logger.warning(
                    f"Geocoding attempt {attempt + 1}/{self.max_retries} failed: {self.last_error_message}"
                )
                self.sleeper(self.retry_delay_seconds)

        raise ExternalServiceError(
            f"Mapbox geocoding failed after {self.max_retries} attempts ({self.last_status}): "
            f"{self.last_error_message}"
        )

    def _extract_result(self, payload: object) -> ResolvedCoordinate | None:
        if not isinstance(payload, dict):
            self.last_status = "MALFORMED_RESPONSE"
            return None

        features = payload.get("features") or []
        if not isinstance(features, list) or not features:
            self.last_status = "ZERO_RESULTS"
            return None

        feature = features[0]
        if not isinstance(feature, dict):
            self.last_status = "MALFORMED_RESPONSE"
            return None

        coordinate = extract_coordinate(feature)
        if coordinate is None:
            self.last_status = "MISSING_GEOMETRY"
            return None

        self.last_status = "OK"
        lat, lng = coordinate
        return ResolvedCoordinate(
            lat=lat,
            lng=lng,
            display_name=_display_name(feature),
            context=_context_fragments(feature),
        )


def extract_coordinate(feature: dict[str, object]) -> tuple[float, float] | None:
    """Return ``(lat, lng)`` from the first result shape that carries a usable pair."""
    for lng_value, lat_value in _coordinate_sources(feature):
        lng = _finite_number(lng_value)
        lat = _finite_number(lat_value)
        if lat is not None and lng is not None:
            return lat, lng
    return None


def _coordinate_sources(feature: dict[str, object]) -> list[tuple[object, object]]:
    sources: list[tuple[object, object]] = []

    geometry = feature.get("geometry")
    if isinstance(geometry, dict):
        coordinates = geometry.get("coordinates")
        if isinstance(coordinates, list) and len(coordinates) >= 2:
            sources.append((coordinates[0], coordinates[1]))

    center = feature.get("center")
    if isinstance(center, list) and len(center) >= 2:
        sources.append((center[0], center[1]))

    properties = feature.get("properties")
    prop_coords = properties.get("coordinates") if isinstance(properties, dict) else None
    if isinstance(prop_coords, dict):
        sources.append((prop_coords.get("longitude"), prop_coords.get("latitude")))
        routable = prop_coords.get("routable_points")
        if isinstance(routable, list) and routable and isinstance(routable[0], dict):
            sources.append((routable[0].get("longitude"), routable[0].get("latitude")))

    return sources


def _finite_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _display_name(feature: dict[str, object]) -> str:
    if feature.get("place_name"):
        return str(feature["place_name"])
    properties = feature.get("properties")
    if isinstance(properties, dict):
        for key in ("full_address", "place_formatted", "name"):
            if properties.get(key):
                return str(properties[key])
    return ""


def _context_fragments(feature: dict[str, object]) -> list[str]:
    raw = feature.get("context")
    if raw is None and isinstance(feature.get("properties"), dict):
        raw = feature["properties"].get("context")

    fragments: list[str] = []
    if isinstance(raw, list):
        for item in raw:
            if isinstance(item, dict) and item.get("text"):
                fragments.append(str(item["text"]))
    elif isinstance(raw, dict):
        for item in raw.values():
            if isinstance(item, dict) and item.get("name"):
                fragments.append(str(item["name"]))
    return fragments
