from argparse import ArgumentParser
import logging
from pathlib import Path
import sys

if __package__ in (None, ""):
    sys.path.append(str(Path(__file__).resolve().parent.parent))

from src.env_utils import (
    data_file,
    default_search_location,
    geocode_country,
    google_places_key,
    load_env_file,
    mapbox_token,
)
from src.errors import DirectoryError
from src.geocoder import MapboxGeocoder
from src.place_search import GooglePlacesSearch
from src.state import load_places
from src.static_map import build_fallback_view
from src.store import PlaceStore

BASE_DIR = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)


def build_store(data_path: Path | None = None) -> PlaceStore:
    geocoder = MapboxGeocoder(mapbox_token(), country=geocode_country())
    return PlaceStore(data_file=data_path or data_file(BASE_DIR), resolver=geocoder)


def resolve_coordinates(data_path: Path | None = None) -> tuple[int, int]:
    store = build_store(data_path)
    resolved = store.resolve_all()
    pending = sum(1 for place in load_places(store.data_file) if place.is_resolvable())
    return resolved, pending


def geocode_query(query: str) -> str:
    geocoder = MapboxGeocoder(mapbox_token(), country=geocode_country())
    result = geocoder.geocode(query)
    if result is None:
        return f"No results found for {query!r}"
    return f"{result.lat}, {result.lng} ({result.display_name})"


def search_places(name: str, location: str | None = None) -> list[str]:
    search = GooglePlacesSearch(google_places_key(), default_location=default_search_location())
    lines = []
    for candidate in search.search_candidates(name, location):
        hours = ", ".join(sorted(candidate.weekly_hours)) if candidate.weekly_hours else "no hours"
        lines.append(f"{candidate.name} | {candidate.address or 'no address'} | {hours}")
    return lines


def static_map_url(data_path: Path | None = None) -> str:
    store = PlaceStore(data_file=data_path or data_file(BASE_DIR))
    return build_fallback_view(store.list_places(), mapbox_token()).image_url


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    load_env_file(BASE_DIR)

    parser = ArgumentParser(description="Spaces directory utility CLI")
    parser.add_argument("--data-file", type=Path, default=None, help="Override the places JSON file")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("resolve", help="Geocode every place that has an address but no coordinates")
    geocode = sub.add_parser("geocode", help="Resolve a free-text address to coordinates")
    geocode.add_argument("--query", required=True, help="Address or place text to geocode")
    search = sub.add_parser("search-places", help="Look up place candidates for a name")
    search.add_argument("--name", required=True, help="Place name to search for")
    search.add_argument("--location", default=None, help="Location hint (default: PLACES_DEFAULT_LOCATION)")
    sub.add_parser("static-map", help="Print the static fallback map URL for the stored places")
    args = parser.parse_args()

    try:
        if args.command == "resolve":
            resolved, pending = resolve_coordinates(args.data_file)
            print(f"Resolved {resolved} places. Still unresolved: {pending}")
            return 0
        if args.command == "geocode":
            print(geocode_query(args.query))
            return 0
        if args.command == "search-places":
            lines = search_places(args.name, args.location)
            print("\n".join(lines) if lines else "No candidates found.")
            return 0
        if args.command == "static-map":
            print(static_map_url(args.data_file))
            return 0
    except DirectoryError as error:
        logger.error(f"{args.command} failed: {error}")
        return 1
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
