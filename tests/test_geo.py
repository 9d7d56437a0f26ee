import math

import pytest

from scrollstory.geo import bounds_for_points, clamp, clamp_progress, lerp_point


def test_clamp_progress():
    assert clamp_progress(-0.5) == 0.0
    assert clamp_progress(0.25) == 0.25
    assert clamp_progress(3.0) == 1.0
    assert clamp_progress(math.nan) == 0.0


def test_clamp_custom_range():
    assert clamp(5.0, -1.0, 2.0) == 2.0
    assert clamp(-5.0, -1.0, 2.0) == -1.0


def test_bounds_and_lerp():
    bounds = bounds_for_points([(0.0, 1.0), (-2.0, 5.0), (3.0, -1.0)])
    assert bounds.as_list() == [[-2.0, -1.0], [3.0, 5.0]]
    assert lerp_point((0.0, 0.0), (10.0, -4.0), 0.25) == pytest.approx((2.5, -1.0))
