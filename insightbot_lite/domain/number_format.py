"""Compact number formatting for headline values and chart annotations."""

import math
from typing import Optional

MILLION = 1_000_000
THOUSAND = 1_000


def _to_number(value: object) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    try:
        num = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return None if math.isnan(num) else num


def _plain(num: float) -> str:
    if num.is_integer():
        return str(int(num))
    return str(num)


def format_number(value: object) -> str:
    """Format a headline value: ``1500 -> "1.5K"``, ``2000000 -> "2.0M"``.

    Values in the thousand and million ranges always carry one decimal place.
    Smaller values are shown as-is and non-numeric input passes through as
    its string form.
    """
    num = _to_number(value)
    if num is None:
        return str(value)
    if num >= MILLION:
        return f"{num / MILLION:.1f}M"
    if num >= THOUSAND:
        return f"{num / THOUSAND:.1f}K"
    return _plain(num)


def format_axis_number(value: object) -> str:
    """Format an axis tick or bar annotation: ``2000 -> "2K"``, ``2500 -> "2.5K"``.

    Same thresholds as :func:`format_number`, but the decimal is dropped when
    the scaled value is a whole number.
    """
    num = _to_number(value)
    if num is None:
        return str(value)
    if num >= MILLION:
        decimals = 0 if num % MILLION == 0 else 1
        return f"{num / MILLION:.{decimals}f}M"
    if num >= THOUSAND:
        decimals = 0 if num % THOUSAND == 0 else 1
        return f"{num / THOUSAND:.{decimals}f}K"
    return _plain(num)
