"""Normalize PostHog shared-insight payloads into a CanonicalInsight.

PostHog has shipped several payload shapes over time: legacy insights carry a
``filters`` object, newer ones a ``query`` object; results live either at the
top level or under ``query_status``; and a share link may point at a dashboard
whose tiles each wrap an insight. Every fallback chain below is an ordered
tuple of probes so precedence can be read (and tested) top to bottom.

``normalize`` never raises. Extraction failures are logged and the record is
returned with whatever fields were populated before the failure.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from typing import Any, Optional

from .display import DisplayClass, classify_display
from .models import NO_DATA, CanonicalInsight, InsightType, SeriesPoint, as_number
from .number_format import format_number

logger = logging.getLogger(__name__)

DEFAULT_INSIGHT_TITLE = "PostHog Insight"
DEFAULT_DASHBOARD_TITLE = "PostHog Dashboard"

PATHS_TOP_N = 6

# Substrings of query.kind / query.source.kind, checked in order
QUERY_KIND_TYPES: tuple[tuple[str, InsightType], ...] = (
    ("funnel", InsightType.FUNNEL),
    ("retention", InsightType.RETENTION),
    ("path", InsightType.PATHS),
    ("lifecycle", InsightType.LIFECYCLE),
    ("stickiness", InsightType.STICKINESS),
)

# Legacy filters.insight spellings that differ from the canonical kind
LEGACY_TYPE_ALIASES: dict[str, str] = {
    "FUNNELS": InsightType.FUNNEL.value,
}

Payload = dict[str, Any]
Fields = dict[str, Any]


def _dig(obj: Any, *keys: str) -> Any:
    """Follow nested dict keys, returning None as soon as a level is missing."""
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _first_truthy_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _text(value: Any) -> str:
    """Label text for display; missing or empty values become ''."""
    if value is None or value == "":
        return ""
    return str(value)


# ---------------------------------------------------------------------------
# Type resolution
# ---------------------------------------------------------------------------


def _type_from_filters(insight: Payload) -> Optional[str]:
    legacy = _first_truthy_string(_dig(insight, "filters", "insight"))
    if not legacy:
        return None
    label = legacy.upper()
    return LEGACY_TYPE_ALIASES.get(label, label)


def _type_from_query(insight: Payload) -> Optional[str]:
    query = insight.get("query")
    if not query:
        return None
    kind = _first_truthy_string(_dig(query, "source", "kind")) or _first_truthy_string(
        _dig(query, "kind")
    )
    lowered = (kind or "").lower()
    for needle, insight_type in QUERY_KIND_TYPES:
        if needle in lowered:
            return insight_type.value
    # TrendsQuery, DataTableNode and anything unknown
    return InsightType.TRENDS.value


TYPE_PROBES: tuple[Callable[[Payload], Optional[str]], ...] = (
    _type_from_filters,
    _type_from_query,
)


def resolve_type_label(insight: Payload) -> str:
    """Return the raw insight kind, e.g. ``"FUNNEL"`` or an unknown legacy label."""
    for probe in TYPE_PROBES:
        label = probe(insight)
        if label:
            return label
    return InsightType.TRENDS.value


def resolve_type(insight: Payload) -> InsightType:
    """Resolve the canonical insight type; unknown kinds fall back to TRENDS."""
    label = resolve_type_label(insight)
    try:
        return InsightType(label)
    except ValueError:
        return InsightType.TRENDS


# ---------------------------------------------------------------------------
# Display and result resolution
# ---------------------------------------------------------------------------

DISPLAY_PATHS: tuple[tuple[str, ...], ...] = (
    ("filters", "display"),
    ("query", "trendsFilter", "display"),
    ("query", "source", "trendsFilter", "display"),
    ("query", "chartSettings", "display"),
)

RESULT_PATHS: tuple[tuple[str, ...], ...] = (
    ("result",),
    ("query_status", "results"),
)


def resolve_display(insight: Payload) -> str:
    """Return the first non-empty display variant, or ``""``."""
    for path in DISPLAY_PATHS:
        display = _first_truthy_string(_dig(insight, *path))
        if display:
            return display
    return ""


def resolve_result(insight: Payload) -> Any:
    """Return the first non-null result location, or None."""
    for path in RESULT_PATHS:
        result = _dig(insight, *path)
        if result is not None:
            return result
    return None


# ---------------------------------------------------------------------------
# Per-type extraction. Each extractor writes into ``fields`` as it goes so a
# failure part-way keeps what was already extracted.
# ---------------------------------------------------------------------------


def _sum_data(data: Any) -> float:
    if not isinstance(data, list):
        return 0
    return sum(as_number(v) for v in data)


def _series_total(item: Payload) -> float:
    """``count`` when present, otherwise the sum of ``data``."""
    count = item.get("count")
    if count is not None:
        return as_number(count)
    return _sum_data(item.get("data"))


def _non_empty_list(result: Any) -> bool:
    return isinstance(result, list) and len(result) > 0


def _extract_trends(result: Any, display: str, fields: Fields) -> None:
    if not _non_empty_list(result):
        return

    display_class = classify_display(display)

    if display_class is DisplayClass.BIG_NUMBER:
        fields["primary_value"] = format_number(sum(_series_total(s) for s in result))
        fields["secondary_label"] = _text(result[0].get("label"))
        return

    if display_class is DisplayClass.PIE:
        slices = [
            SeriesPoint(label=_text(s.get("label") or s.get("name")), value=_series_total(s))
            for s in result
        ]
        fields["series"] = tuple(slices)
        fields["primary_value"] = format_number(sum(s.value for s in slices))
        fields["secondary_label"] = f"{len(slices)} series"
        return

    # Bar and line/area share the same shape: the first series only
    first = result[0]
    fields["primary_value"] = format_number(_series_total(first))
    fields["secondary_label"] = _text(first.get("label"))

    labels = first.get("labels") or []
    fields["series"] = tuple(
        SeriesPoint(label=_text(labels[i] if i < len(labels) else None), value=v)
        for i, v in enumerate(first.get("data") or [])
    )


def funnel_conversion_rate(first_count: Any, last_count: Any) -> str:
    """Overall conversion as a percentage string with one decimal, or ``"0"``."""
    first = as_number(first_count)
    if first <= 0:
        return "0"
    return f"{as_number(last_count) / first * 100:.1f}"


def _extract_funnel(result: Any, display: str, fields: Fields) -> None:
    if not isinstance(result, list) or len(result) < 2:
        return

    first, last = result[0], result[-1]
    fields["primary_value"] = f"{funnel_conversion_rate(first.get('count'), last.get('count'))}%"
    fields["secondary_label"] = f"{_text(first.get('name'))} → {_text(last.get('name'))}"
    fields["series"] = tuple(
        SeriesPoint(label=_text(step.get("name")), value=step.get("count")) for step in result
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _extract_retention(result: Any, display: str, fields: Fields) -> None:
    if not _non_empty_list(result):
        return

    # Cohorts are newest first
    values = result[0].get("values") or []
    day0_count = as_number(values[0].get("count")) if values else 0

    def retained_pct(entry: Payload) -> int:
        if day0_count <= 0:
            return 0
        return _round_half_up(as_number(entry.get("count")) / day0_count * 100)

    series = tuple(SeriesPoint(label=f"Day {i}", value=retained_pct(v)) for i, v in enumerate(values))
    fields["series"] = series

    if len(series) > 1:
        fields["primary_value"] = f"{_plain_int(series[1].value)}%"
        fields["secondary_label"] = "Day 1 retention"
    else:
        fields["primary_value"] = format_number(day0_count)
        fields["secondary_label"] = "Retained (Day 0)"


def _plain_int(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _edge_weight(edge: Payload) -> float:
    return as_number(edge.get("edge_weight") or edge.get("count") or 0)


def _extract_paths(result: Any, display: str, fields: Fields) -> None:
    edges = result if isinstance(result, list) else []
    fields["primary_value"] = format_number(len(edges)) if isinstance(result, list) else NO_DATA
    fields["secondary_label"] = "total paths"

    complete = [e for e in edges if e.get("source") and e.get("target")]
    ranked = sorted(complete, key=_edge_weight, reverse=True)[:PATHS_TOP_N]
    fields["series"] = tuple(
        SeriesPoint(label=f"{e['source']} → {e['target']}", value=_edge_weight(e)) for e in ranked
    )


def _extract_generic(result: Any, display: str, fields: Fields) -> None:
    if not _non_empty_list(result):
        return
    first = result[0]
    value = first.get("count")
    if value is None:
        value = first.get("aggregated_value")
    fields["primary_value"] = format_number(value if value is not None else 0)
    fields["secondary_label"] = _text(first.get("label"))


Extractor = Callable[[Any, str, Fields], None]

EXTRACTORS: dict[str, Extractor] = {
    InsightType.TRENDS.value: _extract_trends,
    InsightType.LIFECYCLE.value: _extract_trends,
    InsightType.STICKINESS.value: _extract_trends,
    InsightType.FUNNEL.value: _extract_funnel,
    InsightType.RETENTION.value: _extract_retention,
    InsightType.PATHS.value: _extract_paths,
}


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _normalize_insight(title: Any, insight: Payload) -> CanonicalInsight:
    # Names may arrive as numbers, e.g. 2024
    title = _text(title) or DEFAULT_INSIGHT_TITLE
    type_label = resolve_type_label(insight)
    fields: Fields = {
        "title": title,
        "type": resolve_type(insight),
        "display": resolve_display(insight),
        "primary_value": NO_DATA,
        "secondary_label": "",
        "series": (),
    }

    extractor = EXTRACTORS.get(type_label, _extract_generic)
    try:
        extractor(resolve_result(insight), fields["display"], fields)
    except Exception:
        logger.error("Error parsing PostHog result for %r (%s)", title, type_label, exc_info=True)

    return CanonicalInsight(**fields)


def _qualifying_tiles(tiles: Sequence[Any]) -> list[Payload]:
    return [
        tile
        for tile in tiles
        if isinstance(tile, dict)
        and isinstance(tile.get("insight"), dict)
        and resolve_result(tile["insight"]) is not None
    ]


def _normalize_dashboard(dashboard: Payload) -> CanonicalInsight:
    title = _text(dashboard.get("name")) or DEFAULT_DASHBOARD_TITLE
    tiles = dashboard.get("tiles")
    qualifying = _qualifying_tiles(tiles if isinstance(tiles, list) else [])

    if not qualifying:
        logger.debug("Dashboard %r has no tiles with results", title)
        return CanonicalInsight(title=title)

    insight = qualifying[0]["insight"]
    insight_title = insight.get("name") or insight.get("derived_name") or title
    return _normalize_insight(insight_title, insight)


def normalize(raw_payload: Any) -> CanonicalInsight:
    """Map a decoded PostHog export payload to a CanonicalInsight.

    Args:
        raw_payload: The decoded ``posthog-exported-data`` object. May be a scene
            envelope (``{"type": "scene", "insight": ...}``), a single insight or
            a dashboard with ``tiles``.

    Returns:
        A fully populated record. Unusable payloads yield the default record
        with the ``"—"`` sentinel and an empty series.
    """
    try:
        if not isinstance(raw_payload, dict):
            logger.warning("Unexpected insight payload type: %s", type(raw_payload).__name__)
            return CanonicalInsight()

        envelope = raw_payload.get("insight")
        payload = envelope if isinstance(envelope, dict) and envelope else raw_payload

        if "tiles" in payload and payload["tiles"] is not None:
            return _normalize_dashboard(payload)

        title = payload.get("name") or payload.get("derived_name") or DEFAULT_INSIGHT_TITLE
        return _normalize_insight(title, payload)
    except Exception:
        logger.error("Failed to normalize insight payload", exc_info=True)
        return CanonicalInsight()
