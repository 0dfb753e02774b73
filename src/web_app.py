from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.templating import Jinja2Templates

from src.category_utils import marker_color
from src.env_utils import (
    data_file,
    default_search_location,
    geocode_country,
    google_places_key,
    load_env_file,
    mapbox_token,
)
from src.errors import DirectoryError, ExternalServiceError, NotFoundError, PersistenceError, ValidationError
from src.geocoder import CoordinateResolver, MapboxGeocoder
from src.hours import format_hours
from src.models import Place
from src.place_search import GooglePlacesSearch
from src.selection import filter_places
from src.static_map import build_fallback_view
from src.store import PlaceStore

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES = Jinja2Templates(directory=str(BASE_DIR / "templates"))

_ERROR_STATUS: dict[type[DirectoryError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ExternalServiceError: 502,
    PersistenceError: 500,
}


def create_app(
    store: PlaceStore,
    geocoder: CoordinateResolver,
    place_search: GooglePlacesSearch,
    static_map_token: str = "",
) -> FastAPI:
    app = FastAPI(title="Spaces Directory")
    app.state.store = store
    app.state.geocoder = geocoder
    app.state.place_search = place_search
    app.state.static_map_token = static_map_token

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/")
    def home(request: Request, q: str = "", tag: str = ""):
        list_status = "ready"
        error_message = ""
        try:
            places = app.state.store.list_places()
        except PersistenceError as error:
            logger.error(f"GET / failed: {error}")
            places = []
            list_status = "error"
            error_message = str(error)

        visible = filter_places(places, q, tag or None)
        if list_status == "ready" and not places:
            list_status = "empty"

        context = {
            "request": request,
            "list_status": list_status,
            "error_message": error_message,
            "total_places": len(places),
            "places": [_directory_row(place) for place in visible],
            "tags": sorted({place.tag for place in places}),
            "filter_text": q,
            "filter_tag": tag,
            "fallback": build_fallback_view(places, app.state.static_map_token),
        }
        return TEMPLATES.TemplateResponse(request=request, name="index.html", context=context)

    @app.get("/api/spaces")
    def list_spaces() -> list[dict[str, object]]:
        try:
            return [place.to_wire() for place in app.state.store.list_places()]
        except DirectoryError as error:
            raise _http_error("GET /api/spaces", error) from error

    @app.get("/api/spaces/{space_id}")
    def get_space(space_id: str) -> dict[str, object]:
        try:
            return app.state.store.get_place(space_id).to_wire()
        except DirectoryError as error:
            raise _http_error(f"GET /api/spaces/{space_id}", error) from error

    @app.post("/api/spaces", status_code=201)
    def create_space(payload: Any = Body(...)) -> dict[str, object]:
        try:
            return app.state.store.create_place(payload).to_wire()
        except DirectoryError as error:
            raise _http_error("POST /api/spaces", error) from error

    @app.patch("/api/spaces/{space_id}")
    def update_space(space_id: str, payload: Any = Body(...)) -> dict[str, object]:
        try:
            return app.state.store.update_place(space_id, payload).to_wire()
        except DirectoryError as error:
            raise _http_error(f"PATCH /api/spaces/{space_id}", error) from error

    @app.patch("/api/spaces/{space_id}/coords")
    def update_space_coords(space_id: str, payload: Any = Body(...)) -> dict[str, object]:
        try:
            if not isinstance(payload, dict):
                raise ValidationError("Coordinate data must be an object")
            place = app.state.store.update_coordinate(space_id, payload.get("lat"), payload.get("lng"))
            return place.to_wire()
        except DirectoryError as error:
            raise _http_error(f"PATCH /api/spaces/{space_id}/coords", error) from error

    @app.get("/api/geocode")
    def geocode(q: str | None = None) -> dict[str, object]:
        query = (q or "").strip()
        if not query:
            raise HTTPException(status_code=400, detail='Missing address query param "q"')
        try:
            result = app.state.geocoder.geocode(query)
        except DirectoryError as error:
            raise _http_error("GET /api/geocode", error) from error
        if result is None:
            raise HTTPException(status_code=404, detail="No results found for that address")
        return {"query": query, **result.to_wire()}

    @app.get("/api/places/search")
    def search_places(q: str = "", location: str | None = None) -> dict[str, object]:
        candidates = app.state.place_search.search_candidates(q, location)
        return {"results": [candidate.to_wire() for candidate in candidates]}

    return app


def _http_error(route: str, error: DirectoryError) -> HTTPException:
    status_code = _ERROR_STATUS.get(type(error), 500)
    if status_code >= 500:
        logger.error(f"{route} failed: {error}")
    return HTTPException(status_code=status_code, detail=str(error))


def _directory_row(place: Place) -> dict[str, object]:
    return {
        "id": place.id,
        "name": place.name,
        "address": place.address or "",
        "tag": place.tag,
        "vibes": place.vibes or "",
        "pricing": place.pricing or "",
        "website": place.website or "",
        "hours": format_hours(place.hours),
        "color": marker_color(place.tag),
        "locatable": place.is_locatable(),
    }


def build_default_app() -> FastAPI:
    load_env_file(BASE_DIR)
    token = mapbox_token()
    store = PlaceStore(
        data_file=data_file(BASE_DIR),
        resolver=MapboxGeocoder(token, country=geocode_country()),
    )
    return create_app(
        store=store,
        geocoder=store.resolver,
        place_search=GooglePlacesSearch(google_places_key(), default_location=default_search_location()),
        static_map_token=token,
    )


app = build_default_app()
