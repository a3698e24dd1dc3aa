"""Tests for insightbot_lite display classification and labels."""

import pytest

from insightbot_lite.domain.display import DisplayClass, classify_display, format_type_label
from insightbot_lite.domain.models import InsightType

pytestmark = pytest.mark.unit


class TestClassifyDisplay:
    """Display hint to rendering family."""

    @pytest.mark.parametrize(
        ("display", "expected"),
        [
            ("BoldNumber", DisplayClass.BIG_NUMBER),
            ("ActionsPie", DisplayClass.PIE),
            ("ActionsBar", DisplayClass.BAR),
            ("ActionsBarValue", DisplayClass.BAR),
            ("ActionsStackedBar", DisplayClass.BAR),
            ("ActionsUnstackedBar", DisplayClass.BAR),
            ("ActionsAreaGraph", DisplayClass.AREA),
            ("ActionsLineGraph", DisplayClass.DEFAULT),
            ("", DisplayClass.DEFAULT),
        ],
    )
    def test_classify_display_when_variant_then_family(
        self, display: str, expected: DisplayClass
    ) -> None:
        """Test every known variant."""
        assert classify_display(display) is expected


class TestFormatTypeLabel:
    """Meta line labels."""

    def test_format_type_label_when_display_known_then_display_label(self) -> None:
        """Test that display labels override the type name."""
        assert format_type_label(InsightType.TRENDS, "ActionsPie") == "Pie chart"
        assert format_type_label(InsightType.TRENDS, "BoldNumber") == "Big number"

    def test_format_type_label_when_default_display_then_type_label(self) -> None:
        """Test the fall back to the insight type."""
        assert format_type_label(InsightType.FUNNEL) == "Funnel"
        assert format_type_label(InsightType.STICKINESS, "ActionsLineGraph") == "Stickiness"
