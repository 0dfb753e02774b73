from __future__ import annotations

import re

DEFAULT_PALETTE_KEY = "default"

PALETTE: dict[str, str] = {
    "maker": "#34d399",
    "cowork": "#6366f1",
    "studio": "#facc15",
    "gallery": "#f472b6",
    DEFAULT_PALETTE_KEY: "#60a5fa",
}


def palette_key(tag: str | None) -> str:
    if tag is None:
        return DEFAULT_PALETTE_KEY
    cleaned = re.sub(r"\s+", "-", tag.strip().casefold())
    if cleaned in PALETTE:
        return cleaned
    return DEFAULT_PALETTE_KEY


def marker_color(tag: str | None) -> str:
    return PALETTE[palette_key(tag)]
