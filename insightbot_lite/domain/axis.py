"""Y-axis scaling with "nice" human-friendly tick steps."""

import math
from typing import NamedTuple

# Step multipliers tried in order against the power of ten below the rough step
NICE_STEPS = (1, 2, 2.5, 5, 10)
TARGET_TICK_INTERVALS = 4


class AxisScale(NamedTuple):
    ticks: list[int]
    axis_max: float


def nice_axis(raw_max: float) -> AxisScale:
    """Compute tick values and the axis ceiling for a series maximum.

    A non-positive maximum yields a single ``0`` tick and an axis ceiling of 1
    so callers can always divide by ``axis_max``.
    """
    if raw_max <= 0:
        return AxisScale(ticks=[0], axis_max=1)

    rough_step = raw_max / TARGET_TICK_INTERVALS
    magnitude = 10 ** math.floor(math.log10(rough_step))
    multiplier = next((m for m in NICE_STEPS if m * magnitude >= rough_step), 1)
    step = magnitude * multiplier
    axis_max = math.ceil(raw_max / step) * step

    ticks = []
    tick = 0.0
    # Small tolerance so float accumulation does not drop the top tick
    while tick <= axis_max + step * 0.01:
        ticks.append(_round_half_up(tick))
        tick += step

    return AxisScale(ticks=ticks, axis_max=axis_max)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
