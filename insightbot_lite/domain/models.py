"""Data models for the insight rendering pipeline."""

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Sentinel shown in place of a headline value when no data could be extracted
NO_DATA = "—"


def as_number(value: object) -> float:
    """Coerce a payload value to a finite number; anything else becomes 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


class InsightType(str, Enum):
    """Insight kinds the renderer understands."""

    TRENDS = "TRENDS"
    FUNNEL = "FUNNEL"
    RETENTION = "RETENTION"
    PATHS = "PATHS"
    LIFECYCLE = "LIFECYCLE"
    STICKINESS = "STICKINESS"


class SeriesPoint(BaseModel):
    """One labelled value of a chart series."""

    label: str = ""
    value: float = 0

    model_config = ConfigDict(frozen=True)

    @field_validator("value", mode="before")
    @classmethod
    def _finite_or_zero(cls, value: object) -> float:
        return as_number(value)


class CanonicalInsight(BaseModel):
    """Renderer-agnostic view of a PostHog insight.

    Built once per render request by the normalizer and never mutated. Series
    order is significant: chronological for time series, ranked for funnels,
    paths and pie slices.
    """

    title: str = "PostHog Insight"
    type: InsightType = InsightType.TRENDS
    display: str = Field(default="", description="Upstream display variant, e.g. 'ActionsPie'")
    primary_value: str = NO_DATA
    secondary_label: str = ""
    series: tuple[SeriesPoint, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("primary_value")
    @classmethod
    def _primary_value_not_empty(cls, value: str) -> str:
        return value or NO_DATA


class Installation(BaseModel):
    """A TRMNL plugin installation and its configured share URL."""

    plugin_setting_id: str
    access_token: str
    posthog_url: Optional[str] = None
    created_at: Optional[int] = None
    updated_at: Optional[int] = None


class MarkupResponse(BaseModel):
    """Payload returned to TRMNL for every poll of /markup.

    The same markup fills all four layout slots; the device crops to fit.
    """

    markup: str
    markup_half_vertical: str
    markup_half_horizontal: str
    markup_quadrant: str
    refresh_rate: int

    @classmethod
    def for_all_layouts(cls, markup: str, refresh_rate: int) -> "MarkupResponse":
        return cls(
            markup=markup,
            markup_half_vertical=markup,
            markup_half_horizontal=markup,
            markup_quadrant=markup,
            refresh_rate=refresh_rate,
        )
