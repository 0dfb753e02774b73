from pathlib import Path

from fastapi.testclient import TestClient
import pytest

from src.errors import ExternalServiceError
from src.models import DayHours, Place, PlaceCandidate, ResolvedCoordinate
from src.state import load_places, save_places
from src.store import PlaceStore
from src.web_app import create_app


class StubGeocoder:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls: list[str] = []

    def geocode(self, query):
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return self.result


class StubPlaceSearch:
    def __init__(self, candidates=None):
        self.candidates = candidates or []
        self.calls: list[tuple[str, str | None]] = []

    def search_candidates(self, name, location_hint=None):
        self.calls.append((name, location_hint))
        return list(self.candidates)


def _client(store: PlaceStore, geocoder=None, place_search=None, token: str = "") -> TestClient:
    app = create_app(
        store=store,
        geocoder=geocoder or StubGeocoder(),
        place_search=place_search or StubPlaceSearch(),
        static_map_token=token,
    )
    return TestClient(app)


def _seeded_store(tmp_path: Path, stub_resolver) -> PlaceStore:
    path = tmp_path / "data" / "spaces.json"
    save_places(
        path,
        [
            Place(
                id="a",
                name="Make Den",
                address="1175 Queen St E",
                industry="Maker",
                hours={"monday": "9:00am-5:00pm"},
                created_at="2024-02-01T00:00:00+00:00",
            ),
            Place(
                id="b",
                name="Desk Club",
                industry="Cowork",
                lat=43.65,
                lng=-79.39,
                created_at="2024-01-01T00:00:00+00:00",
            ),
        ],
    )
    return PlaceStore(data_file=path, resolver=stub_resolver({"1175 Queen St E": (43.6612, -79.3355)}))


def test_health_endpoint_reports_ok() -> None:
    response = _client(PlaceStore()).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_spaces_resolves_pending_coordinates(tmp_path: Path, stub_resolver) -> None:
    store = _seeded_store(tmp_path, stub_resolver)

    response = _client(store).get("/api/spaces")

    assert response.status_code == 200
    payload = response.json()
    assert [space["id"] for space in payload] == ["a", "b"]
    assert (payload[0]["lat"], payload[0]["lng"]) == (43.6612, -79.3355)
    assert payload[0]["createdAt"] == "2024-02-01T00:00:00+00:00"
    assert "long" not in payload[0]
    assert load_places(store.data_file)[0].lat == 43.6612


def test_get_space_and_missing_space(tmp_path: Path, stub_resolver) -> None:
    client = _client(_seeded_store(tmp_path, stub_resolver))

    assert client.get("/api/spaces/b").json()["name"] == "Desk Club"
    missing = client.get("/api/spaces/zzz")
    assert missing.status_code == 404
    assert "not found" in missing.json()["detail"]


def test_create_space_returns_201_with_resolved_coordinates(stub_resolver) -> None:
    store = PlaceStore(resolver=stub_resolver({"100 Queen St W": (43.6534, -79.3841)}))
    client = _client(store)

    response = client.post(
        "/api/spaces",
        json={"name": "City Studio", "address": "100 Queen St W", "hours": {"friday": "10:00am-6:00pm"}},
    )

    assert response.status_code == 201
    created = response.json()
    assert created["id"]
    assert (created["lat"], created["lng"]) == (43.6534, -79.3841)
    assert created["hours"] == {"friday": "10:00am-6:00pm"}
    assert store.get_place(created["id"]).name == "City Studio"


@pytest.mark.parametrize("payload", [{"address": "no name"}, {"name": "X", "hours": {"monday": "whenever"}}])
def test_create_space_rejects_invalid_payload(payload) -> None:
    response = _client(PlaceStore()).post("/api/spaces", json=payload)

    assert response.status_code == 400


def test_update_space_and_coordinates(stub_resolver) -> None:
    store = PlaceStore(places=[Place(id="a", name="Make Den", lat=1.0, lng=2.0)])
    client = _client(store)

    updated = client.patch("/api/spaces/a", json={"vibes": "cozy"})
    assert updated.status_code == 200
    assert updated.json()["vibes"] == "cozy"

    rejected = client.patch("/api/spaces/a/coords", json={"lat": "not a number", "lng": 10})
    assert rejected.status_code == 400
    assert (store.get_place("a").lat, store.get_place("a").lng) == (1.0, 2.0)

    accepted = client.patch("/api/spaces/a/coords", json={"lat": 43.65, "lng": -79.38})
    assert accepted.status_code == 200
    assert (accepted.json()["lat"], accepted.json()["lng"]) == (43.65, -79.38)

    assert client.patch("/api/spaces/zzz/coords", json={"lat": 43.65, "lng": -79.38}).status_code == 404


def test_geocode_endpoint_statuses() -> None:
    found = StubGeocoder(
        ResolvedCoordinate(lat=43.6629, lng=-79.3957, display_name="100 Queen's Park, Toronto", context=["Toronto"])
    )
    client = _client(PlaceStore(), geocoder=found)

    response = client.get("/api/geocode", params={"q": " 100 Queen's Park "})
    assert response.status_code == 200
    assert response.json() == {
        "query": "100 Queen's Park",
        "lat": 43.6629,
        "lng": -79.3957,
        "placeName": "100 Queen's Park, Toronto",
        "context": ["Toronto"],
    }

    assert client.get("/api/geocode").status_code == 400
    assert _client(PlaceStore(), geocoder=StubGeocoder()).get("/api/geocode", params={"q": "Nowhere"}).status_code == 404
    failing = StubGeocoder(error=ExternalServiceError("Mapbox geocoding failed: HTTP 401"))
    upstream = _client(PlaceStore(), geocoder=failing).get("/api/geocode", params={"q": "Somewhere"})
    assert upstream.status_code == 502


def test_places_search_returns_results_envelope() -> None:
    candidate = PlaceCandidate(
        external_id="ChIJ123",
        name="Make Den",
        address="1175 Queen St E",
        lat=43.6612,
        lng=-79.3355,
        weekly_hours={"monday": DayHours("9:00", "AM", "5:00", "PM")},
    )
    search = StubPlaceSearch([candidate])
    client = _client(PlaceStore(), place_search=search)

    response = client.get("/api/places/search", params={"q": "Make Den", "location": "Toronto"})

    assert response.status_code == 200
    (result,) = response.json()["results"]
    assert result["placeId"] == "ChIJ123"
    assert result["location"] == {"lat": 43.6612, "lng": -79.3355}
    assert result["hours"]["monday"]["openMeridiem"] == "AM"
    assert search.calls == [("Make Den", "Toronto")]

    assert _client(PlaceStore()).get("/api/places/search").json() == {"results": []}


def test_home_page_lists_places_and_static_map(tmp_path: Path, stub_resolver) -> None:
    client = _client(_seeded_store(tmp_path, stub_resolver), token="pk.test")

    response = client.get("/")

    assert response.status_code == 200
    assert "Make Den" in response.text
    assert "Desk Club" in response.text
    assert "Mon: 9:00am-5:00pm" in response.text
    assert "2 spots" in response.text
    assert "background: #34d399;" in response.text
    assert "pin-s+34d399(-79.3355,43.6612)" in response.text
    assert "access_token=pk.test" in response.text


def test_home_page_filters_by_text_and_tag(tmp_path: Path, stub_resolver) -> None:
    client = _client(_seeded_store(tmp_path, stub_resolver))

    filtered = client.get("/", params={"q": "desk", "tag": "Cowork"})
    assert "Desk Club" in filtered.text
    assert "Make Den</strong>" not in filtered.text
    assert "1 spot of 2" in filtered.text

    none = client.get("/", params={"q": "zzz"})
    assert "No spaces found matching" in none.text


def test_home_page_empty_and_error_states(tmp_path: Path) -> None:
    empty = _client(PlaceStore()).get("/")
    assert "No spaces have been added yet." in empty.text
    assert "/static/-79.3832,43.6532,11/800x600@2x" in empty.text

    broken_file = tmp_path / "spaces.json"
    broken_file.write_text("{oops", encoding="utf-8")
    broken = _client(PlaceStore(data_file=broken_file)).get("/")
    assert broken.status_code == 200
    assert "Could not load spaces" in broken.text


def test_non_object_bodies_are_rejected_as_invalid() -> None:
    client = _client(PlaceStore(places=[Place(id="a", name="Make Den")]))

    assert client.post("/api/spaces", json=["x"]).status_code == 400
    assert client.patch("/api/spaces/a", json="rename").status_code == 400
    assert client.patch("/api/spaces/a/coords", json=[43.65, -79.38]).status_code == 400
