from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

from scrollstory.geo import Coordinate

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    pass


def parse_directions(payload: Dict[str, Any]) -> List[Coordinate]:
    """Route geometry from an OSRM-style directions response (GeoJSON geometry)."""
    code = payload.get("code")
    if code != "Ok":
        raise ProviderError(f"directions service answered {code!r}")
    routes = payload.get("routes") or []
    if not routes:
        raise ProviderError("directions response has no routes")
    try:
        coordinates = routes[0]["geometry"]["coordinates"]
        return [(float(lon), float(lat)) for lon, lat, *_ in coordinates]
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError(f"malformed route geometry: {exc}") from exc


@dataclass
class RouteProvider:
    name: str
    url_template: str
    api_key: Optional[str] = None
    profile: str = "driving"
    cache_dir: Path = Path(".cache/routes")
    timeout_s: float = 10.0
    params: Dict[str, str] = field(default_factory=lambda: {"overview": "full", "geometries": "geojson"})

    def _cache_path(self, waypoints: Sequence[Coordinate]) -> Path:
        key = json.dumps([self.profile, [list(p) for p in waypoints]])
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self.cache_dir / self.name / f"{digest}.json"

    def _url(self, waypoints: Sequence[Coordinate]) -> str:
        coords = ";".join(f"{lon},{lat}" for lon, lat in waypoints)
        return self.url_template.format(profile=self.profile, coords=coords)

    def get_route(self, waypoints: Sequence[Coordinate]) -> List[Coordinate]:
        path = self._cache_path(waypoints)
        if path.exists():
            logger.debug("route cache hit %s", path)
            try:
                return [(float(lon), float(lat)) for lon, lat in json.loads(path.read_text(encoding="utf-8"))]
            except (OSError, ValueError, TypeError) as exc:
                raise ProviderError(f"Unreadable {self.name} route cache {path}: {exc}") from exc
        params = dict(self.params)
        if self.api_key:
            params["access_token"] = self.api_key
        url = self._url(waypoints)
        logger.info("fetching %s route for %d waypoints", self.name, len(waypoints))
        try:
            response = requests.get(url, params=params, timeout=self.timeout_s)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise ProviderError(f"Failed to fetch {self.name} route: {exc}") from exc
        polyline = parse_directions(payload)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps([list(p) for p in polyline]), encoding="utf-8")
        return polyline
