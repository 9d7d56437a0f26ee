from __future__ import annotations

from pathlib import Path
from typing import Optional

from scrollstory.providers.base import RouteProvider

MAPBOX_DIRECTIONS_URL = "https://api.mapbox.com/directions/v5/mapbox"


def build_mapbox_provider(
    cache_dir: str,
    api_key: str,
    profile: str,
    timeout_s: float,
    base_url: Optional[str] = None,
) -> RouteProvider:
    base = (base_url or MAPBOX_DIRECTIONS_URL).rstrip("/")
    return RouteProvider(
        name="mapbox",
        url_template=base + "/{profile}/{coords}",
        api_key=api_key,
        profile=profile,
        cache_dir=Path(cache_dir),
        timeout_s=timeout_s,
    )
