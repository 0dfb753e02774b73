import json
import os
from pathlib import Path

from src.errors import PersistenceError
from src.models import Place


def load_places(path: Path) -> list[Place]:
    if not path.exists():
        return []

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        return [Place.from_dict(item) for item in payload]
    except (OSError, ValueError, KeyError, TypeError) as error:
        raise PersistenceError(f"Could not read places from {path}: {error}") from error


def save_places(path: Path, places: list[Place]) -> None:
    temp_path = path.with_name(f"{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_text(
            json.dumps([place.to_dict() for place in places], indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        os.replace(temp_path, path)
    except OSError as error:
        temp_path.unlink(missing_ok=True)
        raise PersistenceError(f"Could not write places to {path}: {error}") from error
