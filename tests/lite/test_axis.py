"""Tests for insightbot_lite nice axis scaling."""

import pytest

from insightbot_lite.domain.axis import NICE_STEPS, AxisScale, nice_axis

pytestmark = pytest.mark.unit


class TestNiceAxis:
    """Tick generation for chart y-axes."""

    @pytest.mark.parametrize("raw_max", [0, -5, -0.1])
    def test_nice_axis_when_not_positive_then_single_zero_tick(self, raw_max: float) -> None:
        """Test the division-by-zero guard."""
        assert nice_axis(raw_max) == AxisScale(ticks=[0], axis_max=1)

    def test_nice_axis_when_47_then_step_20_and_max_60(self) -> None:
        """Test the worked example: rough step 11.75 rounds up to 20."""
        scale = nice_axis(47)

        assert scale.axis_max == 60
        assert scale.ticks == [0, 20, 40, 60]

    def test_nice_axis_when_47_then_max_is_smallest_nice_multiple(self) -> None:
        """Test that axis_max is the first multiple of a ladder step covering the max."""
        scale = nice_axis(47)
        step = scale.ticks[1]

        assert scale.axis_max >= 47
        assert scale.axis_max - step < 47
        assert any(step == m * 10 for m in NICE_STEPS)

    def test_nice_axis_when_exact_multiple_then_max_equals_input(self) -> None:
        """Test that a max already on a tick is not padded."""
        scale = nice_axis(100)

        assert scale.axis_max == 100
        assert scale.ticks == [0, 25, 50, 75, 100]

    def test_nice_axis_when_small_value_then_unit_steps(self) -> None:
        """Test small maxima use a step of one."""
        scale = nice_axis(4)

        assert scale.ticks == [0, 1, 2, 3, 4]
        assert scale.axis_max == 4

    def test_nice_axis_when_large_value_then_ticks_ascending_from_zero(self) -> None:
        """Test that ticks start at zero, ascend and end at axis_max."""
        scale = nice_axis(123_456)

        assert scale.ticks[0] == 0
        assert scale.ticks == sorted(scale.ticks)
        assert scale.ticks[-1] == scale.axis_max
