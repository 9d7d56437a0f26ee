from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import List, Sequence, Tuple

import numpy as np

from scrollstory.geo import Coordinate, clamp_progress, lerp_point

logger = logging.getLogger(__name__)


class ThresholdMode(str, Enum):
    PROJECTION = "projection"
    VERTEX = "vertex"


@dataclass(frozen=True, eq=False)
class CumulativeLengthTable:
    points: np.ndarray
    segments: np.ndarray
    cumulative: np.ndarray
    total: float

    def __len__(self) -> int:
        return int(self.points.shape[0])

    def fraction_at(self, length: float) -> float:
        if self.total <= 0 or not math.isfinite(self.total):
            return 0.0
        return clamp_progress(length / self.total)


def _as_points(polyline: Sequence[Sequence[float]]) -> Tuple[Coordinate, ...]:
    return tuple((float(p[0]), float(p[1])) for p in polyline)


@lru_cache(maxsize=64)
def _build_table(points: Tuple[Coordinate, ...]) -> CumulativeLengthTable:
    coords = np.asarray(points, dtype=float).reshape(-1, 2)
    if coords.shape[0] < 2:
        segments = np.zeros(0, dtype=float)
    else:
        deltas = np.diff(coords, axis=0)
        segments = np.hypot(deltas[:, 0], deltas[:, 1])
    cumulative = np.concatenate(([0.0], np.cumsum(segments))) if coords.shape[0] else np.zeros(0, dtype=float)
    for array in (coords, segments, cumulative):
        array.setflags(write=False)
    total = float(cumulative[-1]) if cumulative.size else 0.0
    return CumulativeLengthTable(points=coords, segments=segments, cumulative=cumulative, total=total)


def cumulative_lengths(polyline: Sequence[Sequence[float]]) -> CumulativeLengthTable:
    return _build_table(_as_points(polyline))


def slice_by_progress(polyline: Sequence[Sequence[float]], progress: float) -> List[Coordinate]:
    points = _as_points(polyline)
    if not points:
        return []
    progress = clamp_progress(progress)
    if progress <= 0:
        return [points[0]]
    if progress >= 1:
        return list(points)

    table = _build_table(points)
    if table.total <= 0 or not math.isfinite(table.total):
        return [points[0]]

    target = table.total * progress
    # first vertex whose cumulative length reaches the target
    end = int(np.searchsorted(table.cumulative, target, side="left"))
    end = max(1, min(end, len(points) - 1))
    traveled = float(table.cumulative[end - 1])
    segment = float(table.segments[end - 1])
    ratio = (target - traveled) / segment if segment > 0 else 0.0
    cut = lerp_point(points[end - 1], points[end], ratio)
    return list(points[:end]) + [cut]


def _nearest_vertex(table: CumulativeLengthTable, point: Coordinate, start: int) -> Tuple[int, float]:
    window = table.points[start:]
    distances = np.hypot(window[:, 0] - point[0], window[:, 1] - point[1])
    index = start + int(np.argmin(distances))
    return index, float(table.cumulative[index])


def _nearest_projection(
    table: CumulativeLengthTable,
    point: Coordinate,
    start: int,
    min_t: float,
) -> Tuple[int, float, float]:
    starts = table.points[start:-1]
    vectors = table.points[start + 1 :] - starts
    length_sq = np.einsum("ij,ij->i", vectors, vectors)
    offsets = np.asarray(point, dtype=float) - starts
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(length_sq > 0, np.einsum("ij,ij->i", offsets, vectors) / length_sq, 0.0)
    t = np.clip(t, 0.0, 1.0)
    # the window opens where the previous waypoint landed
    t[0] = max(t[0], min_t)
    projected = starts + vectors * t[:, None]
    distances = np.hypot(projected[:, 0] - point[0], projected[:, 1] - point[1])
    best = int(np.argmin(distances))
    segment = start + best
    arc = float(table.cumulative[segment] + t[best] * table.segments[segment])
    return segment, float(t[best]), arc


def _arc_positions(
    table: CumulativeLengthTable,
    waypoints: Sequence[Coordinate],
    mode: ThresholdMode,
    forward: bool = True,
) -> List[float]:
    positions: List[float] = []
    start = 0
    min_t = 0.0
    for waypoint in waypoints:
        if mode is ThresholdMode.VERTEX:
            index, arc = _nearest_vertex(table, waypoint, start)
            if forward:
                start = index
        else:
            segment, t, arc = _nearest_projection(table, waypoint, start, min_t)
            if forward:
                start, min_t = segment, t
        positions.append(arc)
    return positions


def waypoints_in_path_order(
    polyline: Sequence[Sequence[float]],
    waypoints: Sequence[Sequence[float]],
    mode: ThresholdMode = ThresholdMode.PROJECTION,
) -> bool:
    table = cumulative_lengths(polyline)
    if len(table) < 2 or table.total <= 0:
        return True
    positions = _arc_positions(table, _as_points(waypoints), mode, forward=False)
    return all(b >= a for a, b in zip(positions, positions[1:]))


@lru_cache(maxsize=64)
def _thresholds(
    points: Tuple[Coordinate, ...],
    stops: Tuple[Coordinate, ...],
    mode: ThresholdMode,
) -> Tuple[float, ...]:
    if not stops:
        return ()
    table = _build_table(points)
    if len(table) == 0:
        return (0.0,) * len(stops)
    if not math.isfinite(table.total) or table.total <= 0:
        return tuple(0.0 if index == 0 else 1.0 for index in range(len(stops)))

    if not waypoints_in_path_order(points, stops, mode):
        logger.warning("waypoints are not in path order; reveal thresholds may be wrong")

    positions = _arc_positions(table, stops, mode)
    thresholds = [table.fraction_at(arc) for arc in positions]
    thresholds[0] = 0.0
    thresholds[-1] = 1.0
    logger.debug("thresholds for %d waypoints: %s", len(stops), thresholds)
    return tuple(thresholds)


def waypoint_thresholds(
    polyline: Sequence[Sequence[float]],
    waypoints: Sequence[Sequence[float]],
    mode: ThresholdMode = ThresholdMode.PROJECTION,
) -> List[float]:
    return list(_thresholds(_as_points(polyline), _as_points(waypoints), ThresholdMode(mode)))


def visible_waypoints(thresholds: Sequence[float], progress: float) -> List[bool]:
    clamped = clamp_progress(progress)
    return [clamped >= threshold for threshold in thresholds]


def route_length(polyline: Sequence[Sequence[float]]) -> float:
    return cumulative_lengths(polyline).total

