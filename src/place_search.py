"""
Place enrichment via the Google Places API (New) text search.

Turns a free-text place name into a few candidates carrying address, website,
phone, location and parsed opening hours. Failures never reach the caller:
the authoring flow falls back to manual entry on an empty result.
"""

from __future__ import annotations

import logging

import requests

from src.errors import ExternalServiceError
from src.hours import parse_weekly_hours
from src.models import PlaceCandidate

logger = logging.getLogger(__name__)

SEARCH_TEXT_URL = "https://places.googleapis.com/v1/places:searchText"
MAX_RESULTS = 5
FIELD_MASK = ",".join(
    [
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.websiteUri",
        "places.nationalPhoneNumber",
        "places.regularOpeningHours",
        "places.location",
    ]
)


class GooglePlacesSearch:
    def __init__(
        self,
        api_key: str,
        default_location: str = "Toronto, ON, Canada",
        max_results: int = MAX_RESULTS,
        timeout_seconds: float = 15.0,
    ) -> None:
        self.api_key = api_key
        self.default_location = default_location
        self.max_results = max_results
        self.timeout_seconds = timeout_seconds
        if not api_key:
            logger.warning("Google Places API key is missing. Set GOOGLE_PLACES_API_KEY in your .env file.")

    def search_candidates(self, name: str, location_hint: str | None = None) -> list[PlaceCandidate]:
        query = (name or "").strip()
        if not query:
            return []

        try:
            payload = self._search_text(query, (location_hint or "").strip() or self.default_location)
            return self._parse_candidates(payload, fallback_name=query)
        except (ExternalServiceError, requests.RequestException, ValueError) as error:
            logger.warning(f"Place search failed for {query!r}: {error}")
        except (AttributeError, KeyError, TypeError) as error:
            logger.warning(f"Place search returned a malformed response for {query!r}: {error}")
        return []

    def _search_text(self, query: str, location: str) -> dict[str, object]:
        if not self.api_key:
            raise ExternalServiceError("Google Places API key is not configured")

        response = requests.post(
            SEARCH_TEXT_URL,
            headers={
                "Content-Type": "application/json",
                "X-Goog-Api-Key": self.api_key,
                "X-Goog-FieldMask": FIELD_MASK,
            },
            json={
                "textQuery": f"{query} {location}",
                "maxResultCount": self.max_results,
                "languageCode": "en",
            },
            timeout=self.timeout_seconds,
        )
        if not response.ok:
            raise ExternalServiceError(f"Google Places API failed ({response.status_code}): {response.text}")
        return response.json()

    def _parse_candidates(self, payload: dict[str, object], fallback_name: str) -> list[PlaceCandidate]:
        places = payload.get("places") or []
        if not places:
            logger.info(f"No places found for {fallback_name!r}")
            return []

        candidates: list[PlaceCandidate] = []
        for index, place in enumerate(places[: self.max_results]):
            location = place.get("location") or {}
            weekday_descriptions = (place.get("regularOpeningHours") or {}).get("weekdayDescriptions") or []
            weekly_hours = parse_weekly_hours(weekday_descriptions)
            candidates.append(
                PlaceCandidate(
                    external_id=str(place.get("id") or place.get("place_id") or f"place-{index}"),
                    name=_display_name(place.get("displayName"), fallback_name),
                    address=place.get("formattedAddress") or None,
                    website=place.get("websiteUri") or None,
                    phone=place.get("nationalPhoneNumber") or None,
                    lat=location.get("latitude"),
                    lng=location.get("longitude"),
                    weekly_hours=weekly_hours or None,
                )
            )
        return candidates


def _display_name(value: object, fallback: str) -> str:
    # displayName is usually {"text": ..., "languageCode": ...} but may be a bare string.
    if isinstance(value, str) and value.strip():
        return value
    if isinstance(value, dict) and value.get("text"):
        return str(value["text"])
    return fallback
