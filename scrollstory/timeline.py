from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from scrollstory.geo import Bounds, Coordinate, bounds_for_points, clamp_progress
from scrollstory.groups import (
    KeyFunc,
    MediaGroup,
    cached_media_groups,
    group_is_active,
    inactive_offset,
    index_key,
    keys_from_list,
    media_step_index,
)
from scrollstory.progress import GroupProgressPolicy, MemberProgressBoard, shared_group_progress
from scrollstory.route import ThresholdMode, slice_by_progress, visible_waypoints, waypoint_thresholds
from scrollstory.schemas import ROUTE_MEDIA_KEY, InputConfig, TimelineConfig, WaypointError, validate_waypoints
from scrollstory.steps import Direction, StepStatus, StepTracker, active_step, step_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupState:
    group: MediaGroup
    is_active: bool
    offset: float
    step_index: int
    progress: float


@dataclass(frozen=True)
class TimelineState:
    active_index: int
    statuses: Tuple[StepStatus, ...]
    groups: Tuple[GroupState, ...]

    @property
    def active_group(self) -> Optional[GroupState]:
        for state in self.groups:
            if state.is_active:
                return state
        return None


@dataclass(frozen=True)
class RouteState:
    sliced: Tuple[Coordinate, ...]
    thresholds: Tuple[float, ...]
    visible: Tuple[bool, ...]
    bounds: Optional[Bounds]


@dataclass(frozen=True)
class FrameState:
    progress: float
    direction: Optional[Direction]
    timeline: Optional[TimelineState]
    route: Optional[RouteState]


def route_media_key(index: int) -> str:
    return ROUTE_MEDIA_KEY


def key_function(config: InputConfig) -> KeyFunc:
    if config.media_keys is not None:
        return keys_from_list(config.media_keys)
    if config.route is not None:
        # a route timeline shows one map for every step
        return route_media_key
    return index_key


def _timeline_state(
    active: int,
    step_count: int,
    groups: Sequence[MediaGroup],
    cfg: TimelineConfig,
    progress_of,
) -> TimelineState:
    distance = cfg.inactive_offset or 0.0
    group_states = tuple(
        GroupState(
            group=group,
            is_active=group_is_active(group, active),
            offset=0.0 if group_is_active(group, active) else inactive_offset(group, active, distance),
            step_index=media_step_index(group, active),
            progress=progress_of(group),
        )
        for group in groups
    )
    statuses = tuple(step_status(index, active) for index in range(step_count))
    return TimelineState(active_index=active, statuses=statuses, groups=group_states)


def timeline_state_at(
    progress: float,
    step_count: int,
    cfg: TimelineConfig,
    key_of: Optional[KeyFunc] = None,
) -> Optional[TimelineState]:
    active = active_step(progress, step_count, cfg.step_policy)
    if active is None:
        return None
    groups = cached_media_groups(step_count, key_of)
    return _timeline_state(
        active,
        step_count,
        groups,
        cfg,
        lambda group: shared_group_progress(progress, group, step_count),
    )


def member_timeline_state(
    board: MemberProgressBoard,
    step_count: int,
    cfg: TimelineConfig,
    key_of: Optional[KeyFunc] = None,
) -> Optional[TimelineState]:
    if step_count <= 0:
        return None
    active = min(board.active_index, step_count - 1)
    groups = cached_media_groups(step_count, key_of)
    return _timeline_state(active, step_count, groups, cfg, board.group_progress)


def route_state_at(
    progress: float,
    waypoints: Sequence[Coordinate],
    polyline: Optional[Sequence[Coordinate]],
    mode: ThresholdMode = ThresholdMode.PROJECTION,
) -> RouteState:
    line = list(polyline or [])
    sliced = slice_by_progress(line, progress)
    thresholds = waypoint_thresholds(line, waypoints, mode)
    bounds = bounds_for_points(line) if line else None
    return RouteState(
        sliced=tuple(sliced),
        thresholds=tuple(thresholds),
        visible=tuple(visible_waypoints(thresholds, progress)),
        bounds=bounds,
    )


class Timeline:
    def __init__(self, config: InputConfig, polyline: Optional[Sequence[Coordinate]] = None) -> None:
        self.config = config
        self.step_count = config.step_count()
        self.key_of = key_function(config)
        self.groups = cached_media_groups(self.step_count, self.key_of)
        self.tracker = StepTracker(self.step_count, config.timeline.step_policy)
        self.board = MemberProgressBoard(config.timeline.activation_threshold)
        self.waypoints: Tuple[Coordinate, ...] = ()
        self.route_error: Optional[WaypointError] = None
        if config.route is not None:
            validation = validate_waypoints(config.route.waypoints)
            if validation.ok:
                self.waypoints = validation.points
            else:
                self.route_error = validation.error
                logger.warning("route disabled: %s", validation.error)
        if polyline is None and config.route is not None:
            polyline = config.route.polyline
        self.polyline: Optional[Tuple[Coordinate, ...]] = tuple(polyline) if polyline else None

    @property
    def per_member(self) -> bool:
        return self.config.timeline.group_policy is GroupProgressPolicy.PER_MEMBER

    def _route_state(self, progress: float) -> Optional[RouteState]:
        if self.config.route is None or self.route_error is not None:
            return None
        return route_state_at(progress, self.waypoints, self.polyline, self.config.route.threshold_mode)

    def _media_progress(self, state: Optional[TimelineState], fallback: float) -> float:
        # the map panel follows the progress of the media group it lives in
        active = state.active_group if state is not None else None
        return active.progress if active is not None else fallback

    def frame_at(self, progress: float) -> FrameState:
        clamped = clamp_progress(progress)
        transition = self.tracker.update(clamped)
        if self.per_member:
            timeline = member_timeline_state(self.board, self.step_count, self.config.timeline, self.key_of)
        else:
            timeline = timeline_state_at(clamped, self.step_count, self.config.timeline, self.key_of)
        return FrameState(
            progress=clamped,
            direction=transition.direction if transition else None,
            timeline=timeline,
            route=self._route_state(self._media_progress(timeline, clamped)),
        )

    def report(self, index: int, value: float) -> FrameState:
        self.board.report(index, value)
        timeline = member_timeline_state(self.board, self.step_count, self.config.timeline, self.key_of)
        media_progress = self._media_progress(timeline, 0.0)
        return FrameState(
            progress=media_progress,
            direction=None,
            timeline=timeline,
            route=self._route_state(media_progress),
        )


def replay(timeline: Timeline, values: Iterable[float]) -> List[FrameState]:
    return [timeline.frame_at(value) for value in values]


def replay_reports(timeline: Timeline, reports: Iterable[Tuple[int, float]]) -> List[FrameState]:
    return [timeline.report(index, value) for index, value in reports]
