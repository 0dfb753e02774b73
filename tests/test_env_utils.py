from pathlib import Path

import pytest

from src.env_utils import data_file, geocode_country, load_env_file, mapbox_token


@pytest.fixture(autouse=True)
def _clear_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so anything load_env_file writes is undone after the test
    for key in ("MAPBOX_ACCESS_TOKEN", "VITE_MAPBOX_TOKEN", "MAPBOX_GEOCODE_COUNTRY", "SPACES_DATA_FILE"):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_load_env_file_keeps_existing_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text(
        "# local settings\n"
        "export VITE_MAPBOX_TOKEN='pk.from-file'\n"
        "MAPBOX_GEOCODE_COUNTRY=US\n"
        "not a setting\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("MAPBOX_GEOCODE_COUNTRY", "CA")

    applied = load_env_file(tmp_path)

    assert applied == ["VITE_MAPBOX_TOKEN"]
    assert mapbox_token() == "pk.from-file"
    assert geocode_country() == "CA"


def test_load_env_file_without_file(tmp_path: Path) -> None:
    assert load_env_file(tmp_path) == []


def test_mapbox_token_prefers_server_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.server")
    monkeypatch.setenv("VITE_MAPBOX_TOKEN", "pk.client")

    assert mapbox_token() == "pk.server"


def test_data_file_default_and_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    assert geocode_country() == "CA"
    assert data_file(tmp_path) == tmp_path / "data" / "spaces.json"

    monkeypatch.setenv("SPACES_DATA_FILE", str(tmp_path / "other.json"))

    assert data_file(tmp_path) == tmp_path / "other.json"
