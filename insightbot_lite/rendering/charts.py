"""Chart renderers for the 800x480 black-and-white e-ink canvas.

Every renderer is a pure function from series data to a self-contained SVG or
HTML fragment sized for a 760x240 logical viewport and scaled to fill its
container. None of them raise: when a series is too short for the chart family
the empty-state fragment is returned instead. Output contains no scripts.
"""

import math
from collections.abc import Sequence

from ..domain.axis import nice_axis
from ..domain.models import SeriesPoint
from ..domain.number_format import format_axis_number
from .text import FONT, escape_markup, truncate

VIEW_W = 760
VIEW_H = 240

# Plot padding for charts with axes
PAD_T = 10
PAD_B = 26
PAD_L = 52
PAD_R = 8
INNER_W = VIEW_W - PAD_L - PAD_R
INNER_H = VIEW_H - PAD_T - PAD_B

X_LABEL_COUNT = 6
BAR_WIDTH_RATIO = 0.72
MIN_BAR_WIDTH = 2

# Donut geometry: pie on the left, legend on the right
PIE_CX = 140
PIE_CY = 120
PIE_R = 100
PIE_R_INNER = 52
FULL_TURN = math.pi * 2
PIE_LEGEND_ITEMS = 6
# Fills that stay distinguishable on a 1-bit panel, reused cyclically
PIE_OPACITIES = (0.9, 0.65, 0.45, 0.30, 0.20, 0.12)

FUNNEL_ROW_H = 36
FUNNEL_ROW_GAP = 8
FUNNEL_LABEL_W = 200
FUNNEL_BAR_MAX_W = VIEW_W - FUNNEL_LABEL_W - 80

PATH_LABEL_MAX_CHARS = 60

SVG_OPEN = (
    '<svg viewBox="0 0 {w} {h}" width="100%" height="100%"\n'
    '     xmlns="http://www.w3.org/2000/svg" preserveAspectRatio="{aspect}"\n'
    '     style="display:block;overflow:visible;">'
)


def _svg(body: str, height: float = VIEW_H, aspect: str = "xMidYMid meet") -> str:
    return f"{SVG_OPEN.format(w=VIEW_W, h=height, aspect=aspect)}\n{body}\n</svg>"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def evenly_spaced_indices(total: int, count: int = X_LABEL_COUNT) -> list[int]:
    """Pick up to ``count`` indices spread across ``range(total)``.

    The first and last index are always included; the rest are placed at evenly
    spaced fractional positions, rounded, with duplicates removed.
    """
    if total <= count:
        return list(range(total))

    indices = [0]
    for i in range(1, count - 1):
        indices.append(_round_half_up(i / (count - 1) * (total - 1)))
    indices.append(total - 1)
    return list(dict.fromkeys(indices))


def _y_of(value: float, axis_max: float) -> float:
    return PAD_T + INNER_H - (value / (axis_max or 1)) * INNER_H


def _y_axis(ticks: Sequence[int], axis_max: float) -> str:
    parts = []
    for tick in ticks:
        y = f"{_y_of(tick, axis_max):.1f}"
        parts.append(
            f'<line x1="{PAD_L}" y1="{y}" x2="{VIEW_W - PAD_R}" y2="{y}"\n'
            '        stroke="black" stroke-width="0.5" opacity="0.15"/>\n'
            f'  <text x="{PAD_L - 6}" y="{y}" text-anchor="end" dominant-baseline="middle"\n'
            '        style="font-size:10px;fill:black;opacity:0.45;font-family:monospace;"\n'
            f"        >{escape_markup(format_axis_number(tick))}</text>"
        )
    return "\n  ".join(parts)


def _x_axis(labels: Sequence[str], x_positions: Sequence[float]) -> str:
    n = len(labels)
    parts = []
    for i in evenly_spaced_indices(n, min(n, X_LABEL_COUNT)):
        anchor = "start" if i == 0 else "end" if i == n - 1 else "middle"
        parts.append(
            f'<text x="{x_positions[i]:.1f}" y="{VIEW_H - 4}" text-anchor="{anchor}"\n'
            '      style="font-size:10px;fill:black;opacity:0.4;font-family:monospace;"\n'
            f"      >{escape_markup(labels[i] or '')}</text>"
        )
    return "".join(parts)


def _baseline(y: str) -> str:
    return (
        f'<line x1="{PAD_L}" y1="{y}" x2="{VIEW_W - PAD_R}" y2="{y}"\n'
        '        stroke="black" stroke-width="1" opacity="0.2"/>'
    )


def render_line_chart(series: Sequence[SeriesPoint]) -> str:
    """Area-filled line chart with a marker on the most recent point."""
    if len(series) < 2:
        return render_empty_chart()

    values = [p.value for p in series]
    labels = [p.label for p in series]
    scale = nice_axis(max(values))
    last = len(values) - 1

    def x_of(i: int) -> float:
        return PAD_L + (i / max(last, 1)) * INNER_W

    def y_of(v: float) -> float:
        return _y_of(v, scale.axis_max)

    base_y = f"{y_of(0):.1f}"
    area_d = " ".join(
        [f"M {x_of(0):.1f},{base_y}"]
        + [f"L {x_of(i):.1f},{y_of(v):.1f}" for i, v in enumerate(values)]
        + [f"L {x_of(last):.1f},{base_y}", "Z"]
    )
    line_pts = " ".join(f"{x_of(i):.1f},{y_of(v):.1f}" for i, v in enumerate(values))

    body = f"""
  {_y_axis(scale.ticks, scale.axis_max)}

  <path d="{area_d}" fill="black" fill-opacity="0.06"/>

  <polyline points="{line_pts}"
    fill="none" stroke="black" stroke-width="2.5"
    stroke-linejoin="round" stroke-linecap="round"/>

  <circle cx="{x_of(last):.1f}" cy="{y_of(values[last]):.1f}"
    r="4" fill="black"/>

  {_baseline(base_y)}

  {_x_axis(labels, [x_of(i) for i in range(len(values))])}
"""
    return _svg(body)


def render_bar_chart(series: Sequence[SeriesPoint]) -> str:
    """Vertical bars, one per point, with the same axes as the line chart."""
    if len(series) < 2:
        return render_empty_chart()

    values = [p.value for p in series]
    labels = [p.label for p in series]
    scale = nice_axis(max(values))

    n = len(values)
    bar_w = max(MIN_BAR_WIDTH, math.floor((INNER_W / n) * BAR_WIDTH_RATIO))
    gap = (INNER_W - bar_w * n) / max(n - 1, 1)
    base_y = PAD_T + INNER_H

    def x_of(i: int) -> float:
        return PAD_L + i * (bar_w + gap)

    bars = []
    for i, v in enumerate(values):
        y = _y_of(v, scale.axis_max)
        height = max(1, base_y - y)
        bars.append(
            f'<rect x="{x_of(i):.1f}" y="{y:.1f}" width="{bar_w}" height="{height:.1f}"\n'
            '        fill="black" opacity="0.75" rx="1"/>'
        )

    bars_svg = "\n  ".join(bars)
    body = f"""
  {_y_axis(scale.ticks, scale.axis_max)}

  {bars_svg}

  {_baseline(str(base_y))}

  {_x_axis(labels, [x_of(i) + bar_w / 2 for i in range(n)])}
"""
    return _svg(body)


def _pie_point(radius: float, angle: float) -> str:
    return f"{PIE_CX + radius * math.cos(angle):.2f} {PIE_CY + radius * math.sin(angle):.2f}"


def _donut_ring_path(start: float) -> str:
    # An arc whose endpoints coincide is not drawn, so a full ring is two half arcs
    mid = start + math.pi
    return " ".join(
        [
            f"M {_pie_point(PIE_R, start)}",
            f"A {PIE_R} {PIE_R} 0 0 1 {_pie_point(PIE_R, mid)}",
            f"A {PIE_R} {PIE_R} 0 0 1 {_pie_point(PIE_R, start)}",
            f"M {_pie_point(PIE_R_INNER, start)}",
            f"A {PIE_R_INNER} {PIE_R_INNER} 0 0 0 {_pie_point(PIE_R_INNER, mid)}",
            f"A {PIE_R_INNER} {PIE_R_INNER} 0 0 0 {_pie_point(PIE_R_INNER, start)}",
            "Z",
        ]
    )


def _donut_slice_path(start: float, end: float) -> str:
    if end - start >= FULL_TURN - 1e-9:
        return _donut_ring_path(start)
    large_arc = 1 if end - start > math.pi else 0
    x1, y1 = PIE_CX + PIE_R * math.cos(start), PIE_CY + PIE_R * math.sin(start)
    x2, y2 = PIE_CX + PIE_R * math.cos(end), PIE_CY + PIE_R * math.sin(end)
    ix1, iy1 = PIE_CX + PIE_R_INNER * math.cos(start), PIE_CY + PIE_R_INNER * math.sin(start)
    ix2, iy2 = PIE_CX + PIE_R_INNER * math.cos(end), PIE_CY + PIE_R_INNER * math.sin(end)
    return " ".join(
        [
            f"M {x1:.2f} {y1:.2f}",
            f"A {PIE_R} {PIE_R} 0 {large_arc} 1 {x2:.2f} {y2:.2f}",
            f"L {ix2:.2f} {iy2:.2f}",
            f"A {PIE_R_INNER} {PIE_R_INNER} 0 {large_arc} 0 {ix1:.2f} {iy1:.2f}",
            "Z",
        ]
    )


def render_pie_chart(series: Sequence[SeriesPoint]) -> str:
    """Donut chart drawn clockwise from 12 o'clock, legend on the right."""
    if len(series) < 2:
        return render_empty_chart()

    total = sum(p.value for p in series) or 1

    arcs = []
    percentages = []
    angle = -math.pi / 2
    for i, point in enumerate(series):
        sweep = (point.value / total) * math.pi * 2
        opacity = PIE_OPACITIES[i % len(PIE_OPACITIES)]
        arcs.append(
            f'<path d="{_donut_slice_path(angle, angle + sweep)}" fill="black" '
            f'opacity="{opacity}" stroke="white" stroke-width="1.5"/>'
        )
        percentages.append(f"{point.value / total * 100:.1f}")
        angle += sweep

    legend_x = PIE_CX * 2 + 20
    legend = []
    for i, point in enumerate(series[:PIE_LEGEND_ITEMS]):
        y = 20 + i * 34
        legend.append(
            f'<rect x="{legend_x}" y="{y}" width="12" height="12" rx="2"\n'
            f'          fill="black" opacity="{PIE_OPACITIES[i % len(PIE_OPACITIES)]}"/>\n'
            f'  <text x="{legend_x + 18}" y="{y + 9}" dominant-baseline="middle"\n'
            f'        style="font-size:11px;fill:black;font-family:{FONT};"\n'
            f"        >{escape_markup(truncate(point.label, 32))}</text>\n"
            f'  <text x="{VIEW_W - 4}" y="{y + 9}" text-anchor="end" dominant-baseline="middle"\n'
            '        style="font-size:11px;fill:black;opacity:0.55;font-family:monospace;"\n'
            f"        >{percentages[i]}%</text>"
        )

    body = "  " + "\n  ".join(arcs) + "\n  " + "\n  ".join(legend)
    return _svg(body)


def funnel_height(rows: int) -> int:
    return min(rows * (FUNNEL_ROW_H + FUNNEL_ROW_GAP) + 10, VIEW_H)


def render_funnel_chart(series: Sequence[SeriesPoint]) -> str:
    """Horizontal bars per step, scaled against the first step."""
    if len(series) < 2:
        return render_empty_chart()

    first_value = series[0].value or 1
    rows = []
    for i, step in enumerate(series):
        pct = f"{step.value / first_value * 100:.1f}" if first_value > 0 else "0"
        bar_w = max(0.0, step.value / first_value * FUNNEL_BAR_MAX_W)
        y = i * (FUNNEL_ROW_H + FUNNEL_ROW_GAP)
        text_y = f"{y + FUNNEL_ROW_H * 0.65:.1f}"
        label = escape_markup(truncate(step.label or f"Step {i + 1}", 28))
        count = escape_markup(format_axis_number(step.value))
        opacity = "0.85" if i == 0 else "0.55"
        rows.append(
            f"""
  <!-- Step {i + 1} -->
  <text x="0" y="{text_y}" dominant-baseline="auto"
        style="font-size:12px;fill:black;font-family:{FONT};">{label}</text>
  <rect x="{FUNNEL_LABEL_W}" y="{y + 4}" width="{bar_w:.1f}" height="{FUNNEL_ROW_H - 8}"
        fill="black" opacity="{opacity}" rx="2"/>
  <text x="{FUNNEL_LABEL_W + bar_w + 8:.1f}" y="{text_y}" dominant-baseline="auto"
        style="font-size:11px;fill:black;opacity:0.7;font-family:monospace;"
        >{count} ({pct}%)</text>"""
        )

    return _svg("".join(rows), height=funnel_height(len(series)), aspect="xMinYMin meet")


def render_big_number(primary_value: str, secondary_label: str = "") -> str:
    """Single headline value with an optional caption underneath."""
    caption = ""
    if secondary_label:
        caption = (
            '<div style="margin-top:14px;font-size:14px;opacity:0.45;\n'
            f'                                  letter-spacing:0.03em;">{escape_markup(secondary_label)}</div>'
        )
    return f"""<div style="flex:1;display:flex;flex-direction:column;align-items:center;
                      justify-content:center;text-align:center;padding:0 24px;">
  <div style="font-size:72px;font-weight:700;letter-spacing:-2px;line-height:1;
              font-variant-numeric:tabular-nums;">{escape_markup(primary_value)}</div>
  {caption}
</div>"""


def render_paths_list(series: Sequence[SeriesPoint], total_count: str) -> str:
    """Ranked table of the heaviest paths with a total caption."""
    if not series:
        return render_empty_chart()

    rows = []
    for i, path in enumerate(series):
        background = "background:rgba(0,0,0,0.03);" if i % 2 == 0 else ""
        rows.append(
            f"""<div style="display:flex;align-items:center;gap:10px;padding:7px 8px;
                        border-radius:4px;{background}">
      <span style="font-size:11px;opacity:0.35;font-variant-numeric:tabular-nums;
                   min-width:16px;text-align:right;">{i + 1}</span>
      <span style="flex:1;font-size:12px;overflow:hidden;text-overflow:ellipsis;
                   white-space:nowrap;">{escape_markup(truncate(path.label, PATH_LABEL_MAX_CHARS))}</span>
      <span style="font-size:11px;font-family:monospace;opacity:0.6;
                   white-space:nowrap;">{escape_markup(format_axis_number(path.value))}</span>
    </div>"""
        )

    rows_html = "".join(rows)
    return f"""<div style="flex:1;display:flex;flex-direction:column;gap:0;overflow:hidden;">
  <div style="font-size:11px;opacity:0.4;text-transform:uppercase;letter-spacing:0.07em;
              margin-bottom:6px;padding:0 8px;">Top paths · {escape_markup(total_count)} total</div>
  {rows_html}
</div>"""


def render_empty_chart() -> str:
    """Centered placeholder used whenever there is nothing to plot."""
    return f"""<div style="flex:1;display:flex;align-items:center;justify-content:center;opacity:0.25;">
  <span style="font-size:12px;letter-spacing:0.07em;text-transform:uppercase;
               font-family:{FONT};">No chart data</span>
</div>"""
