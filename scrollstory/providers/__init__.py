from __future__ import annotations

from typing import Optional

from scrollstory.providers.base import ProviderError, RouteProvider
from scrollstory.providers.mapbox import build_mapbox_provider
from scrollstory.providers.osrm import build_osrm_provider
from scrollstory.schemas import ProviderConfig

__all__ = ["ProviderError", "RouteProvider", "build_provider"]


def build_provider(config: ProviderConfig) -> Optional[RouteProvider]:
    if config.name == "none":
        return None
    if config.name == "osrm":
        return build_osrm_provider(config.cache_dir, config.profile, config.timeout_s, config.base_url)
    if config.name == "mapbox":
        if not config.api_key:
            raise ValueError("Mapbox api_key is required")
        return build_mapbox_provider(
            config.cache_dir, config.api_key, config.profile, config.timeout_s, config.base_url
        )
    raise ValueError(f"Unknown provider {config.name}")
