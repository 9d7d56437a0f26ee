from __future__ import annotations

from pathlib import Path
from typing import Optional

from scrollstory.providers.base import RouteProvider

OSRM_PUBLIC_URL = "https://router.project-osrm.org"


def build_osrm_provider(cache_dir: str, profile: str, timeout_s: float, base_url: Optional[str] = None) -> RouteProvider:
    base = (base_url or OSRM_PUBLIC_URL).rstrip("/")
    return RouteProvider(
        name="osrm",
        url_template=base + "/route/v1/{profile}/{coords}",
        profile=profile,
        cache_dir=Path(cache_dir),
        timeout_s=timeout_s,
    )
