"""Compose full-screen TRMNL markup for a CanonicalInsight.

Layout of the 800x480 canvas::

    ┌─────────────────────────────────────────────────────┐
    │  TRENDS • Jan 2024 – Feb 2026           (meta line) │
    │  Pageview count                         (title)     │
    ├─────────────────────────────────────────────────────┤
    │  chart / funnel / list (variant-dependent)          │
    ├─────────────────────────────────────────────────────┤
    │  [logo]  PostHog Insight  · Pageview count          │  40px
    └─────────────────────────────────────────────────────┘

All positioning uses inline styles; TRMNL's stylesheet is not relied upon.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from ..domain.display import DisplayClass, classify_display, format_type_label
from ..domain.models import CanonicalInsight, InsightType
from . import charts
from .text import FONT, escape_markup

logger = logging.getLogger(__name__)

CANVAS_W = 800
CANVAS_H = 480
FOOTER_H = 40
PAD_H = 18
PAD_V = 16

BRAND_NAME = "PostHog Insight"
BRAND_LOGO_URL = "https://app.posthog.com/static/posthog-logo.svg"


class ChartVariant(str, Enum):
    """Closed set of chart layouts the composer can place in the chart region."""

    BIG_NUMBER = "big_number"
    PIE = "pie"
    BAR = "bar"
    FUNNEL = "funnel"
    PATHS = "paths"
    LINE = "line"
    EMPTY = "empty"


@dataclass(frozen=True)
class VariantRule:
    variant: ChartVariant
    matches: Callable[[CanonicalInsight, DisplayClass], bool]
    min_points: int


# Checked top to bottom; the first rule that matches and has enough points wins
VARIANT_RULES: tuple[VariantRule, ...] = (
    VariantRule(ChartVariant.BIG_NUMBER, lambda _, d: d is DisplayClass.BIG_NUMBER, 0),
    VariantRule(ChartVariant.PIE, lambda _, d: d is DisplayClass.PIE, 2),
    VariantRule(ChartVariant.BAR, lambda _, d: d is DisplayClass.BAR, 2),
    VariantRule(ChartVariant.FUNNEL, lambda i, _: i.type is InsightType.FUNNEL, 2),
    VariantRule(ChartVariant.PATHS, lambda i, _: i.type is InsightType.PATHS, 1),
    VariantRule(ChartVariant.LINE, lambda _, __: True, 2),
)

CHART_RENDERERS: dict[ChartVariant, Callable[[CanonicalInsight], str]] = {
    ChartVariant.BIG_NUMBER: lambda i: charts.render_big_number(i.primary_value, i.secondary_label),
    ChartVariant.PIE: lambda i: charts.render_pie_chart(i.series),
    ChartVariant.BAR: lambda i: charts.render_bar_chart(i.series),
    ChartVariant.FUNNEL: lambda i: charts.render_funnel_chart(i.series),
    ChartVariant.PATHS: lambda i: charts.render_paths_list(i.series, i.primary_value),
    ChartVariant.LINE: lambda i: charts.render_line_chart(i.series),
    ChartVariant.EMPTY: lambda _: charts.render_empty_chart(),
}


def select_chart_variant(insight: CanonicalInsight) -> ChartVariant:
    """Pick the chart layout for ``insight`` from :data:`VARIANT_RULES`."""
    display_class = classify_display(insight.display)
    for rule in VARIANT_RULES:
        if rule.matches(insight, display_class) and len(insight.series) >= rule.min_points:
            return rule.variant
    return ChartVariant.EMPTY


def series_date_range(insight: CanonicalInsight) -> str:
    """``"first – last"`` from the series labels, or ``""`` when unavailable."""
    if len(insight.series) < 2:
        return ""
    first = insight.series[0].label
    last = insight.series[-1].label
    return f"{first} – {last}" if first and last else ""


def build_meta_line(insight: CanonicalInsight) -> str:
    """Upper-cased type label, suffixed with the date range for chronological charts."""
    type_label = format_type_label(insight.type, insight.display).upper()
    # Big number and pie labels are series names, not dates
    if classify_display(insight.display) in (DisplayClass.BIG_NUMBER, DisplayClass.PIE):
        return type_label
    date_range = series_date_range(insight)
    return f"{type_label} • {date_range}" if date_range else type_label


def _footer(caption: str, with_logo: bool = True) -> str:
    logo = ""
    if with_logo:
        logo = (
            f'<img src="{BRAND_LOGO_URL}"\n'
            '       style="height:18px;width:auto;flex-shrink:0;" alt="">\n  '
        )
    return f"""<div style="position:absolute;bottom:0;left:0;right:0;height:{FOOTER_H}px;
            border-top:1px solid #e0e0e0;
            display:flex;align-items:center;gap:8px;
            padding:0 {PAD_H}px;
            font-family:{FONT};">
  {logo}<span style="font-size:13px;font-weight:600;white-space:nowrap;">{BRAND_NAME}</span>
  <span style="font-size:13px;opacity:0.4;white-space:nowrap;overflow:hidden;
               text-overflow:ellipsis;">· {escape_markup(caption)}</span>
</div>"""


def render_markup(insight: CanonicalInsight) -> str:
    """Render the full 800x480 markup for one insight."""
    variant = select_chart_variant(insight)
    logger.debug("Rendering %s insight %r as %s", insight.type.value, insight.title, variant.value)

    chart = CHART_RENDERERS[variant](insight)
    safe_title = escape_markup(insight.title)

    return f"""<div style="position:absolute;top:0;left:0;right:0;bottom:{FOOTER_H}px;
            display:flex;flex-direction:column;
            padding:{PAD_V}px {PAD_H}px 0;
            font-family:{FONT};">

  <!-- Meta line -->
  <div style="flex-shrink:0;font-size:11px;font-weight:600;letter-spacing:0.1em;
              opacity:0.4;text-transform:uppercase;margin-bottom:5px;"
    >{escape_markup(build_meta_line(insight))}</div>

  <!-- Insight title -->
  <div style="flex-shrink:0;font-size:24px;font-weight:700;letter-spacing:-0.4px;
              margin-bottom:10px;line-height:1.15;"
    >{safe_title}</div>

  <!-- Chart area, grows to fill remaining space -->
  <div style="flex:1;min-height:0;display:flex;flex-direction:column;">
    {chart}
  </div>

</div>

{_footer(insight.title)}"""


def _centered_message(body: str) -> str:
    return f"""<div style="position:absolute;top:0;left:0;right:0;bottom:{FOOTER_H}px;
            display:flex;align-items:center;justify-content:center;font-family:{FONT};">
  <div style="text-align:center;padding:0 40px;">
    {body}
  </div>
</div>"""


def render_error(message: str) -> str:
    """Full-canvas error layout with a warning glyph."""
    body = (
        '<div style="font-size:28px;margin-bottom:14px;">&#9888;</div>\n'
        f'    <div style="font-size:14px;opacity:0.55;line-height:1.55;">{escape_markup(message)}</div>'
    )
    return f"{_centered_message(body)}\n{_footer('Error', with_logo=False)}"


def render_no_config() -> str:
    """Full-canvas layout asking the user to configure a share URL."""
    body = (
        '<div style="font-size:28px;margin-bottom:14px;">&#128202;</div>\n'
        '    <div style="font-size:15px;font-weight:600;margin-bottom:8px;">'
        "No PostHog URL configured</div>\n"
        '    <div style="font-size:13px;opacity:0.45;line-height:1.5;">\n'
        "      Visit plugin settings to add your shared insight URL.\n"
        "    </div>"
    )
    return f"{_centered_message(body)}\n{_footer('Setup required', with_logo=False)}"
