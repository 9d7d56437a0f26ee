from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple

Coordinate = Tuple[float, float]

MIN_LON = -180.0
MAX_LON = 180.0
MIN_LAT = -90.0
MAX_LAT = 90.0


@dataclass(frozen=True)
class Bounds:
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def as_list(self) -> list[list[float]]:
        return [[self.min_lon, self.min_lat], [self.max_lon, self.max_lat]]


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    if math.isnan(value):
        return low
    return max(min(value, high), low)


def clamp_progress(value: float) -> float:
    return clamp(float(value), 0.0, 1.0)


def bounds_for_points(points: Iterable[Sequence[float]]) -> Bounds:
    points = list(points)
    lons = [p[0] for p in points]
    lats = [p[1] for p in points]
    return Bounds(min(lons), min(lats), max(lons), max(lats))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def lerp_point(a: Sequence[float], b: Sequence[float], t: float) -> Coordinate:
    return (lerp(a[0], b[0], t), lerp(a[1], b[1], t))
