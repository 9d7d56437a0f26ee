import math

import pytest
from pydantic import ValidationError

from scrollstory.progress import GroupProgressPolicy
from scrollstory.schemas import (
    COORDINATE_OUT_OF_RANGE,
    COUNT_OUT_OF_BOUNDS,
    MALFORMED_COORDINATE,
    InputConfig,
    ProviderConfig,
    RouteConfig,
    TimelineConfig,
    validate_waypoints,
)
from scrollstory.steps import StepPolicy


def test_valid_waypoints_are_normalized():
    result = validate_waypoints([[13.4, 52.5], (2, 48), {"lon": -0.1, "lat": 51.5}])
    assert result.ok
    assert result.points == ((13.4, 52.5), (2.0, 48.0), (-0.1, 51.5))
    assert all(isinstance(value, float) for point in result.points for value in point)


def test_waypoint_count_bounds():
    for raw in ([], [[0, 0]], [[0, 0]] * 26):
        result = validate_waypoints(raw)
        assert not result.ok
        assert result.points == ()
        assert result.error.message == COUNT_OUT_OF_BOUNDS
        assert result.error.index is None
    assert validate_waypoints([[0, 0]] * 25).ok


def test_coordinate_out_of_range():
    for bad in ([200, 0], [0, -91], [0, math.nan], [math.inf, 0], [10**400, 0], [0, -(10**400)]):
        result = validate_waypoints([[0, 0], bad])
        assert result.error.message == COORDINATE_OUT_OF_RANGE
        assert result.error.index == 1


def test_malformed_coordinate():
    for bad in ([1], [1, 2, 3], ["a", 1], [True, 1], "12", None, {"lon": 1}):
        result = validate_waypoints([[0, 0], bad])
        assert result.error.message == MALFORMED_COORDINATE
        assert result.error.index == 1
    assert validate_waypoints("not a list").error.message == MALFORMED_COORDINATE


def test_first_bad_waypoint_is_reported():
    result = validate_waypoints([[0, 0], [1], [500, 0]])
    assert result.error.index == 1
    assert str(result.error) == f"{MALFORMED_COORDINATE} (waypoint 1)"


def test_layout_presets():
    highlight = TimelineConfig(layout="highlight", steps=10)
    assert highlight.max_steps == 6
    assert highlight.step_policy is StepPolicy.HIGHLIGHT
    assert highlight.inactive_offset == 18
    assert highlight.step_count() == 6
    assert TimelineConfig().step_count() == 5
    assert TimelineConfig(layout="highlight").step_count() == 4
    sticky = TimelineConfig(layout="sticky", steps=12)
    assert sticky.step_count() == 12
    assert sticky.group_policy is GroupProgressPolicy.PER_MEMBER


def test_explicit_settings_override_preset():
    cfg = TimelineConfig(layout="highlight", step_policy="linear", inactive_offset=0)
    assert cfg.step_policy is StepPolicy.LINEAR
    assert cfg.inactive_offset == 0


def test_activation_threshold_range():
    with pytest.raises(ValidationError):
        TimelineConfig(activation_threshold=2)


def test_mapbox_requires_key():
    with pytest.raises(ValidationError):
        ProviderConfig(name="mapbox")
    assert ProviderConfig(name="mapbox", api_key="token").api_key == "token"


def test_route_sets_step_count():
    config = InputConfig(route=RouteConfig(waypoints=[[0, 0], [1, 1], [2, 2]]))
    assert config.step_count() == 3
    config = InputConfig.model_validate({"timeline": {"steps": 2}, "route": {"waypoints": [[0, 0], [1, 1], [2, 2]]}})
    assert config.step_count() == 2
