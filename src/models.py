from __future__ import annotations

from dataclasses import asdict, dataclass, field
import math

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DEFAULT_TAG = "Space"


def is_valid_coord(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


@dataclass(slots=True)
class Place:
    id: str
    name: str
    address: str | None = None
    industry: str | None = None
    vibes: str | None = None
    pricing: str | None = None
    price: float | None = None
    website: str | None = None
    contact: str | None = None
    hours: dict[str, str | None] | None = None
    lat: float | None = None
    lng: float | None = None
    created_at: str | None = None

    def is_locatable(self) -> bool:
        return is_valid_coord(self.lat) and is_valid_coord(self.lng)

    def is_resolvable(self) -> bool:
        return bool((self.address or "").strip()) and not self.is_locatable()

    @property
    def tag(self) -> str:
        return self.industry or self.vibes or DEFAULT_TAG

    def to_dict(self) -> dict[str, object]:
        return asdict(self)

    def to_wire(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "industry": self.industry,
            "vibes": self.vibes,
            "pricing": self.pricing,
            "price": self.price,
            "website": self.website,
            "contact": self.contact,
            "hours": self.hours,
            "lat": self.lat,
            "lng": self.lng,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> Place:
        values = dict(payload)
        # Rows written before the rename stored longitude as "long".
        if "lng" not in values and "long" in values:
            values["lng"] = values["long"]
        known = {name: values.get(name) for name in cls.__dataclass_fields__ if name in values}
        known["id"] = str(values["id"])
        return cls(**known)


@dataclass(slots=True)
class ResolvedCoordinate:
    lat: float
    lng: float
    display_name: str = ""
    context: list[str] = field(default_factory=list)

    def to_wire(self) -> dict[str, object]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "placeName": self.display_name,
            "context": list(self.context),
        }


@dataclass(slots=True, frozen=True)
class DayHours:
    open: str
    open_meridiem: str
    close: str
    close_meridiem: str

    def to_wire(self) -> dict[str, str]:
        return {
            "open": self.open,
            "openMeridiem": self.open_meridiem,
            "close": self.close,
            "closeMeridiem": self.close_meridiem,
        }


@dataclass(slots=True)
class PlaceCandidate:
    external_id: str
    name: str
    address: str | None = None
    website: str | None = None
    phone: str | None = None
    lat: float | None = None
    lng: float | None = None
    weekly_hours: dict[str, DayHours] | None = None

    @property
    def coordinate(self) -> tuple[float, float] | None:
        if is_valid_coord(self.lat) and is_valid_coord(self.lng):
            return (float(self.lat), float(self.lng))
        return None

    def to_wire(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "placeId": self.external_id,
            "name": self.name,
            "address": self.address,
            "website": self.website,
            "phone": self.phone,
            "location": None,
        }
        coordinate = self.coordinate
        if coordinate is not None:
            payload["location"] = {"lat": coordinate[0], "lng": coordinate[1]}
        if self.weekly_hours:
            payload["hours"] = {day: value.to_wire() for day, value in self.weekly_hours.items()}
        return payload
