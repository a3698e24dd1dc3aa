"""Display-variant classification shared by the normalizer and the composer."""

from enum import Enum

from .models import InsightType

DISPLAY_BIG_NUMBER = "BoldNumber"
DISPLAY_PIE = "ActionsPie"
DISPLAY_AREA = "ActionsAreaGraph"

BAR_DISPLAYS = frozenset({"ActionsUnstackedBar", "ActionsStackedBar"})


class DisplayClass(str, Enum):
    """Rendering family implied by an upstream display variant."""

    BIG_NUMBER = "big_number"
    PIE = "pie"
    BAR = "bar"
    AREA = "area"
    DEFAULT = "default"


def classify_display(display: str) -> DisplayClass:
    """Map a raw display variant (``"ActionsBarValue"``, ``""``...) to its family."""
    if display == DISPLAY_BIG_NUMBER:
        return DisplayClass.BIG_NUMBER
    if display == DISPLAY_PIE:
        return DisplayClass.PIE
    if display.startswith("ActionsBar") or display in BAR_DISPLAYS:
        return DisplayClass.BAR
    if display == DISPLAY_AREA:
        return DisplayClass.AREA
    return DisplayClass.DEFAULT


DISPLAY_CLASS_LABELS = {
    DisplayClass.BIG_NUMBER: "Big number",
    DisplayClass.PIE: "Pie chart",
    DisplayClass.BAR: "Bar chart",
    DisplayClass.AREA: "Area chart",
}

TYPE_LABELS = {
    InsightType.TRENDS: "Trends",
    InsightType.FUNNEL: "Funnel",
    InsightType.RETENTION: "Retention",
    InsightType.PATHS: "Paths",
    InsightType.LIFECYCLE: "Lifecycle",
    InsightType.STICKINESS: "Stickiness",
}


def format_type_label(insight_type: InsightType, display: str = "") -> str:
    """Human label for the meta line; display variants override the type name."""
    label = DISPLAY_CLASS_LABELS.get(classify_display(display))
    if label:
        return label
    return TYPE_LABELS.get(insight_type, "Insight")
