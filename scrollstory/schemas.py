from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from scrollstory.geo import MAX_LAT, MAX_LON, MIN_LAT, MIN_LON, Coordinate
from scrollstory.progress import DEFAULT_ACTIVATION_THRESHOLD, GroupProgressPolicy
from scrollstory.route import ThresholdMode
from scrollstory.steps import StepPolicy, normalize_step_count

MIN_WAYPOINTS = 2
MAX_WAYPOINTS = 25

COUNT_OUT_OF_BOUNDS = "waypoint count out of bounds"
MALFORMED_COORDINATE = "malformed coordinate"
COORDINATE_OUT_OF_RANGE = "coordinate out of range"

ROUTE_MEDIA_KEY = "map-route"


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class LonLat(BaseModel):
    lon: float
    lat: float

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        if isinstance(data, dict):
            pair = (data.get("lon"), data.get("lat"))
        elif isinstance(data, (list, tuple)) and len(data) == 2:
            pair = (data[0], data[1])
        else:
            raise ValueError(MALFORMED_COORDINATE)
        if not all(_is_number(value) for value in pair):
            raise ValueError(MALFORMED_COORDINATE)
        try:
            lon, lat = (float(value) for value in pair)
        except OverflowError as exc:
            raise ValueError(COORDINATE_OUT_OF_RANGE) from exc
        return {"lon": lon, "lat": lat}

    @field_validator("lon")
    @classmethod
    def _lon_range(cls, value: float) -> float:
        if not math.isfinite(value) or not MIN_LON <= value <= MAX_LON:
            raise ValueError(COORDINATE_OUT_OF_RANGE)
        return value

    @field_validator("lat")
    @classmethod
    def _lat_range(cls, value: float) -> float:
        if not math.isfinite(value) or not MIN_LAT <= value <= MAX_LAT:
            raise ValueError(COORDINATE_OUT_OF_RANGE)
        return value

    def as_tuple(self) -> Coordinate:
        return (self.lon, self.lat)


class WaypointList(BaseModel):
    points: list[LonLat]

    @field_validator("points", mode="before")
    @classmethod
    def _count(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise ValueError(MALFORMED_COORDINATE)
        if not MIN_WAYPOINTS <= len(value) <= MAX_WAYPOINTS:
            raise ValueError(COUNT_OUT_OF_BOUNDS)
        return list(value)


@dataclass(frozen=True)
class WaypointError:
    message: str
    index: Optional[int] = None

    def __str__(self) -> str:
        if self.index is None:
            return self.message
        return f"{self.message} (waypoint {self.index})"


@dataclass(frozen=True)
class WaypointValidation:
    points: tuple[Coordinate, ...] = ()
    error: Optional[WaypointError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _error_index(err: Any) -> Optional[int]:
    loc = err["loc"]
    if len(loc) > 1 and isinstance(loc[1], int):
        return loc[1]
    return None


def _first_error(exc: ValidationError) -> WaypointError:
    # list-level errors first, then the lowest waypoint index
    err = min(exc.errors(), key=lambda e: -1 if _error_index(e) is None else _error_index(e))
    index = _error_index(err)
    cause = err.get("ctx", {}).get("error")
    message = str(cause) if cause is not None else MALFORMED_COORDINATE
    return WaypointError(message=message, index=index)


def validate_waypoints(raw: Any) -> WaypointValidation:
    """Every point as a ``(lon, lat)`` tuple, or the first problem found."""
    try:
        parsed = WaypointList.model_validate({"points": raw})
    except ValidationError as exc:
        return WaypointValidation(error=_first_error(exc))
    return WaypointValidation(points=tuple(point.as_tuple() for point in parsed.points))


Layout = Literal["vertical", "horizontal", "highlight", "sticky"]


@dataclass(frozen=True)
class LayoutPreset:
    default_steps: int
    max_steps: Optional[int]
    step_policy: StepPolicy
    group_policy: GroupProgressPolicy
    inactive_offset: float


LAYOUT_PRESETS: dict[str, LayoutPreset] = {
    "vertical": LayoutPreset(5, 8, StepPolicy.LINEAR, GroupProgressPolicy.SHARED, 24.0),
    "horizontal": LayoutPreset(5, 8, StepPolicy.LINEAR, GroupProgressPolicy.SHARED, 20.0),
    "highlight": LayoutPreset(4, 6, StepPolicy.HIGHLIGHT, GroupProgressPolicy.SHARED, 18.0),
    "sticky": LayoutPreset(5, None, StepPolicy.LINEAR, GroupProgressPolicy.PER_MEMBER, 24.0),
}


class TimelineConfig(BaseModel):
    layout: Layout = "vertical"
    steps: Optional[float] = None
    max_steps: Optional[int] = None
    step_policy: Optional[StepPolicy] = None
    group_policy: Optional[GroupProgressPolicy] = None
    inactive_offset: Optional[float] = None
    activation_threshold: float = DEFAULT_ACTIVATION_THRESHOLD

    @model_validator(mode="after")
    def _apply_preset(self) -> "TimelineConfig":
        preset = LAYOUT_PRESETS[self.layout]
        if self.max_steps is None:
            self.max_steps = preset.max_steps
        if self.step_policy is None:
            self.step_policy = preset.step_policy
        if self.group_policy is None:
            self.group_policy = preset.group_policy
        if self.inactive_offset is None:
            self.inactive_offset = preset.inactive_offset
        return self

    @field_validator("activation_threshold")
    @classmethod
    def _threshold_range(cls, value: float) -> float:
        if not 0 <= value <= 1:
            raise ValueError("activation_threshold must be in [0, 1]")
        return value

    def step_count(self, fallback: Optional[int] = None) -> int:
        steps = self.steps
        if steps is None:
            steps = fallback if fallback is not None else LAYOUT_PRESETS[self.layout].default_steps
        return normalize_step_count(steps, self.max_steps)


class RouteConfig(BaseModel):
    # kept raw so validate_waypoints can report a readable error
    waypoints: list[Any] = Field(default_factory=list)
    polyline: Optional[list[tuple[float, float]]] = None
    threshold_mode: ThresholdMode = ThresholdMode.PROJECTION


class ProviderConfig(BaseModel):
    name: Literal["none", "osrm", "mapbox"] = "none"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    profile: str = "driving"
    cache_dir: str = ".cache/routes"
    timeout_s: float = 10.0

    @model_validator(mode="after")
    def _validate_provider(self) -> "ProviderConfig":
        if self.name == "mapbox" and not self.api_key:
            raise ValueError("mapbox provider requires api_key")
        return self


class InputConfig(BaseModel):
    timeline: TimelineConfig = Field(default_factory=TimelineConfig)
    route: Optional[RouteConfig] = None
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    media_keys: Optional[list[Union[str, int]]] = None

    def step_count(self) -> int:
        fallback = len(self.route.waypoints) if self.route is not None else None
        return self.timeline.step_count(fallback)
