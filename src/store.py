"""
Canonical place storage with resolve-on-read coordinates.

Every place that has an address but no usable coordinate is geocoded the first
time it is read, created or updated, and the coordinate is written back. A
coordinate that is already valid is never replaced by a lookup; only the
explicit operator override in ``update_coordinate`` may overwrite it.

Lookups run outside the store lock. Results are merged into a fresh load
afterwards, and a place that gained coordinates in the meantime keeps them.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import math
from pathlib import Path
import threading
from typing import Iterable, Mapping
import uuid

from src.errors import ExternalServiceError, NotFoundError, PersistenceError, ValidationError
from src.geocoder import CoordinateResolver
from src.hours import normalize_hours
from src.models import Place, is_valid_coord
from src.state import load_places, save_places

logger = logging.getLogger(__name__)

OPTIONAL_TEXT_FIELDS = ("address", "industry", "vibes", "pricing", "website", "contact")

# place id -> (address that was looked up, lat, lng)
Resolved = dict[str, tuple[str, float, float]]


class PlaceStore:
    def __init__(
        self,
        data_file: Path | None = None,
        resolver: CoordinateResolver | None = None,
        places: Iterable[Place] | None = None,
    ) -> None:
        self.data_file = data_file
        self.resolver = resolver
        self._memory: list[Place] = list(places or [])
        self._lock = threading.RLock()

    def list_places(self) -> list[Place]:
        with self._lock:
            places = self._load()
            pending = self._pending(places)
        if pending:
            places = self._apply_resolved(self._lookup_all(pending), persist_failures_fatal=False)[0]
        return sorted(places, key=lambda place: place.created_at or "", reverse=True)

    def get_place(self, place_id: str) -> Place:
        with self._lock:
            place = _find(self._load(), place_id)
            pending = self._pending([place])
        if not pending:
            return place
        places, _ = self._apply_resolved(self._lookup_all(pending), persist_failures_fatal=False)
        return _find(places, place_id)

    def resolve_all(self) -> int:
        with self._lock:
            pending = self._pending(self._load())
        if not pending:
            return 0
        return self._apply_resolved(self._lookup_all(pending), persist_failures_fatal=True)[1]

    def create_place(self, data: Mapping[str, object]) -> Place:
        fields = _clean_fields(data, partial=False)
        place = Place(
            id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc).isoformat(),
            **fields,
        )
        resolved = self._lookup_all(self._pending([place]))
        if place.id in resolved:
            _address, place.lat, place.lng = resolved[place.id]
        with self._lock:
            places = self._load()
            places.append(place)
            self._save(places)
        logger.info(f"Created place {place.id} ({place.name}); locatable={place.is_locatable()}")
        return place

    def update_place(self, place_id: str, data: Mapping[str, object]) -> Place:
        fields = _clean_fields(data, partial=True)
        with self._lock:
            places = self._load()
            place = _find(places, place_id)

            address_changed = "address" in fields and fields["address"] != place.address
            if address_changed and "lat" not in fields:
                # Coordinates of the previous address are stale.
                fields["lat"] = None
                fields["lng"] = None

            for key, value in fields.items():
                setattr(place, key, value)
            self._save(places)
            pending = self._pending([place])

        if not pending:
            return place
        places, _ = self._apply_resolved(self._lookup_all(pending), persist_failures_fatal=True)
        return _find(places, place_id)

    def update_coordinate(self, place_id: str, lat: object, lng: object) -> Place:
        if not is_valid_coord(lat) or not is_valid_coord(lng):
            raise ValidationError("lat and lng must be finite numbers")

        with self._lock:
            places = self._load()
            place = _find(places, place_id)
            place.lat = float(lat)
            place.lng = float(lng)
            self._save(places)
        logger.info(f"Coordinates for place {place_id} set manually to {place.lat}, {place.lng}")
        return place

    def _pending(self, places: Iterable[Place]) -> list[tuple[str, str]]:
        if self.resolver is None:
            return []
        return [(place.id, (place.address or "").strip()) for place in places if place.is_resolvable()]

    def _lookup_all(self, pending: list[tuple[str, str]]) -> Resolved:
        resolved: Resolved = {}
        for place_id, address in pending:
            coordinate = self._lookup(place_id, address)
            if coordinate is not None:
                resolved[place_id] = (address, *coordinate)
        return resolved

    def _lookup(self, place_id: str, address: str) -> tuple[float, float] | None:
        try:
            result = self.resolver.geocode(address)
        except ExternalServiceError as error:
            logger.warning(f"Geocoding failed for place {place_id}: {error}")
            return None
        except Exception as error:
            logger.error(f"Unexpected geocoding error for place {place_id}: {error!r}")
            return None

        if result is None or not (is_valid_coord(result.lat) and is_valid_coord(result.lng)):
            logger.info(f"No coordinates found for place {place_id} ({address!r})")
            return None
        return float(result.lat), float(result.lng)

    def _apply_resolved(self, resolved: Resolved, persist_failures_fatal: bool) -> tuple[list[Place], int]:
        with self._lock:
            places = self._load()
            merged = 0
            for place in places:
                match = resolved.get(place.id)
                if match is None or place.is_locatable():
                    continue
                address, lat, lng = match
                # The address may have been edited while the lookup was in flight.
                if (place.address or "").strip() != address:
                    continue
                place.lat, place.lng = lat, lng
                merged += 1

            if merged:
                if persist_failures_fatal:
                    self._save(places)
                else:
                    self._save_best_effort(places)
        return places, merged

    def _load(self) -> list[Place]:
        if self.data_file is None:
            return self._memory
        return load_places(self.data_file)

    def _save(self, places: list[Place]) -> None:
        if self.data_file is None:
            self._memory = places
            return
        save_places(self.data_file, places)

    def _save_best_effort(self, places: list[Place]) -> None:
        try:
            self._save(places)
        except PersistenceError as error:
            logger.error(f"Failed to persist resolved coordinates: {error}")


def _find(places: list[Place], place_id: str) -> Place:
    for place in places:
        if place.id == str(place_id):
            return place
    raise NotFoundError(f"Space {place_id} not found")


def _clean_fields(data: Mapping[str, object], partial: bool) -> dict[str, object]:
    if not isinstance(data, Mapping):
        raise ValidationError("Space data must be an object")

    fields: dict[str, object] = {}
    if not partial or "name" in data:
        name = _clean_text(data.get("name"))
        if not name:
            raise ValidationError("Space name is required")
        fields["name"] = name

    for key in OPTIONAL_TEXT_FIELDS:
        if key in data:
            fields[key] = _clean_text(data[key])

    if "price" in data:
        fields["price"] = _clean_price(data["price"])
    if "hours" in data:
        fields["hours"] = normalize_hours(data["hours"])

    lng_key = "lng" if "lng" in data else ("long" if "long" in data else None)
    if "lat" in data or lng_key is not None:
        lat = _clean_coord("lat", data.get("lat"))
        lng = _clean_coord("lng", data.get(lng_key) if lng_key else None)
        if (lat is None) != (lng is None):
            raise ValidationError("lat and lng must be provided together")
        fields["lat"] = lat
        fields["lng"] = lng

    return fields


def _clean_text(value: object) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def _clean_coord(label: str, value: object) -> float | None:
    if value is None or value == "":
        return None
    if not is_valid_coord(value):
        raise ValidationError(f"{label} must be a finite number")
    return float(value)


def _clean_price(value: object) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError("price must be a number")
    try:
        price = float(value)
    except (TypeError, ValueError) as error:
        raise ValidationError("price must be a number") from error
    if not math.isfinite(price):
        raise ValidationError("price must be a number")
    return price
