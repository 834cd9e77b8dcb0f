"""Tests for models module."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from event_tabs.models import (
    ChartPoint,
    ChartShape,
    Entitlement,
    EventCategory,
    QueryUpdate,
    RequestSpec,
    TimePoint,
)


class TestEventCategory:
    """Tests for EventCategory parsing and labels."""

    @pytest.mark.parametrize("raw", ["clicks", "leads", "sales"])
    def test_parse_known(self, raw: str) -> None:
        """Verifies every category parses to itself."""
        parsed = EventCategory.parse(raw)
        assert parsed is not None
        assert parsed.value == raw

    @pytest.mark.parametrize("raw", [None, "", "Clicks", "revenue"])
    def test_parse_unknown_returns_none(self, raw: str | None) -> None:
        """Verifies unknown persisted values do not raise."""
        assert EventCategory.parse(raw) is None

    def test_label(self) -> None:
        """Verifies labels are capitalized for display."""
        assert EventCategory.SALES.label == "Sales"


class TestTimePoint:
    """Tests for TimePoint invariant."""

    def test_negative_value_rejected(self) -> None:
        """Verifies value >= 0 is enforced at construction."""
        with pytest.raises(ValueError):
            TimePoint(timestamp=datetime(2026, 1, 1, tzinfo=UTC), value=-1)

    def test_frozen(self) -> None:
        """Verifies points cannot be mutated after a fetch produced them."""
        point = TimePoint(timestamp=datetime(2026, 1, 1, tzinfo=UTC), value=1)
        with pytest.raises(AttributeError):
            point.value = 2  # type: ignore[misc]


class TestEntitlement:
    """Tests for composite entitlement."""

    @pytest.mark.parametrize(
        ("demo", "beta", "expected"),
        [(False, False, False), (True, False, True), (False, True, True), (True, True, True)],
    )
    def test_has_composite(self, demo: bool, beta: bool, expected: bool) -> None:
        """Verifies either capability unlocks composite data."""
        assert Entitlement(demo=demo, beta_tester=beta).has_composite is expected


class TestRequestSpec:
    """Tests for RequestSpec wire params and identity."""

    def test_to_params_uses_wire_names(self) -> None:
        """Verifies camelCase groupBy on the wire."""
        spec = RequestSpec(event="composite", timezone="UTC")
        assert spec.to_params() == {
            "groupBy": "timeseries",
            "event": "composite",
            "timezone": "UTC",
        }

    def test_equal_specs_share_identity(self) -> None:
        """Verifies equal specs hash alike so the fetch trigger can diff them."""
        a = RequestSpec(event="clicks", timezone="UTC")
        b = RequestSpec(event="clicks", timezone="UTC")
        assert a == b
        assert len({a, b}) == 1
        assert a != RequestSpec(event="clicks", timezone="Europe/Paris")


class TestQueryUpdate:
    """Tests for QueryUpdate."""

    def test_defaults(self) -> None:
        """Verifies a default update neither sets nor deletes."""
        assert QueryUpdate().to_dict() == {"set": {}, "del": None}

    def test_to_dict(self) -> None:
        """Verifies the serialized {set, del} shape."""
        update = QueryUpdate(set={"tab": "sales"}, delete="sort")
        assert update.to_dict() == {"set": {"tab": "sales"}, "del": "sort"}


class TestChartShape:
    """Tests for ChartShape accessors."""

    def test_xs_ys(self) -> None:
        """Verifies coordinate accessors follow point order."""
        shape = ChartShape(points=(ChartPoint(0, 5), ChartPoint(10, 1)), path="M0,5L10,1")
        assert shape.xs == (0, 10)
        assert shape.ys == (5, 1)
