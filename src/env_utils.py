from __future__ import annotations

import os
from pathlib import Path

MAPBOX_TOKEN_KEYS = ("MAPBOX_ACCESS_TOKEN", "VITE_MAPBOX_TOKEN")
GOOGLE_PLACES_KEYS = ("GOOGLE_PLACES_API_KEY",)
DEFAULT_GEOCODE_COUNTRY = "CA"
DEFAULT_SEARCH_LOCATION = "Toronto, ON, Canada"


def load_env_file(base_dir: Path, filename: str = ".env") -> list[str]:
    """Copy KEY=VALUE lines from ``base_dir/filename`` into the process environment.

    Variables already set in the environment win. Returns the keys that were applied.
    """
    env_path = base_dir / filename
    if not env_path.is_file():
        return []

    applied: list[str] = []
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        name, _, setting = line.partition("=")
        name = name.strip()
        setting = setting.strip().strip('"').strip("'")
        if name and name not in os.environ:
            os.environ[name] = setting
            applied.append(name)
    return applied


def get_setting(*keys: str, default: str = "") -> str:
    for env_key in keys:
        env_value = os.getenv(env_key, "").strip()
        if env_value:
            return env_value
    return default


def mapbox_token() -> str:
    return get_setting(*MAPBOX_TOKEN_KEYS)


def google_places_key() -> str:
    return get_setting(*GOOGLE_PLACES_KEYS)


def geocode_country() -> str:
    return get_setting("MAPBOX_GEOCODE_COUNTRY", default=DEFAULT_GEOCODE_COUNTRY)


def default_search_location() -> str:
    return get_setting("PLACES_DEFAULT_LOCATION", default=DEFAULT_SEARCH_LOCATION)


def data_file(base_dir: Path) -> Path:
    configured = get_setting("SPACES_DATA_FILE")
    if configured:
        return Path(configured)
    return base_dir / "data" / "spaces.json"
