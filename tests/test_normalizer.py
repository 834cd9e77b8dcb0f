"""Tests for normalizer module."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from conftest import make_series

from event_tabs.normalizer import SeriesNormalizer, parse_timestamp


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_iso_with_z(self) -> None:
        """Verifies a trailing Z is read as UTC."""
        assert parse_timestamp("2026-10-01T00:00:00.000Z") == datetime(2026, 10, 1, tzinfo=UTC)

    def test_naive_assumed_utc(self) -> None:
        """Verifies naive timestamps become aware so series stay comparable."""
        assert parse_timestamp("2026-10-01T12:00:00").tzinfo is not None

    def test_epoch_milliseconds(self) -> None:
        """Verifies numbers are epoch milliseconds."""
        assert parse_timestamp(86_400_000) == datetime(1970, 1, 2, tzinfo=UTC)

    def test_datetime_passthrough(self) -> None:
        """Verifies aware datetimes pass through unchanged."""
        value = datetime(2026, 1, 1, 5, tzinfo=UTC)
        assert parse_timestamp(value) == value

    @pytest.mark.parametrize("raw", ["", "yesterday", None, True, [1]])
    def test_invalid(self, raw: object) -> None:
        """Verifies unusable values raise ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp(raw)


class TestNormalize:
    """Tests for SeriesNormalizer.normalize."""

    def test_one_point_per_record_in_order(self, composite_records: list[dict]) -> None:
        """Verifies the 1:1 mapping keeps length and order.

        Business context:
        Buckets arrive sorted; the chart mirrors their order, so the
        normalizer must neither drop nor reorder anything.
        """
        series = SeriesNormalizer().normalize(composite_records, "clicks")
        assert [p.value for p in series] == [10, 25, 18, 40, 32]
        assert [p.timestamp.day for p in series] == [1, 2, 3, 4, 5]

    def test_missing_field_reads_zero(self) -> None:
        """Verifies a clicks-only record yields zeros for sales."""
        records = [{"start": "2026-10-01T00:00:00Z", "clicks": 7}]
        series = SeriesNormalizer().normalize(records, "sales")
        assert series[0].value == 0

    def test_null_field_reads_zero(self) -> None:
        """Verifies explicit nulls are treated like missing fields."""
        records = [{"start": "2026-10-01T00:00:00Z", "leads": None}]
        assert SeriesNormalizer().normalize(records, "leads")[0].value == 0

    def test_does_not_resort_or_dedupe(self) -> None:
        """Verifies out-of-order and duplicate buckets are kept as given."""
        records = [
            {"start": "2026-10-03T00:00:00Z", "clicks": 3},
            {"start": "2026-10-01T00:00:00Z", "clicks": 1},
            {"start": "2026-10-01T00:00:00Z", "clicks": 1},
        ]
        series = SeriesNormalizer().normalize(records, "clicks")
        assert [p.timestamp.day for p in series] == [3, 1, 1]

    def test_timestamp_aliases(self) -> None:
        """Verifies 'timestamp' and 't' are accepted when 'start' is absent."""
        records = [{"timestamp": "2026-10-01T00:00:00Z", "clicks": 1}, {"t": 0, "clicks": 2}]
        series = SeriesNormalizer().normalize(records, "clicks")
        assert len(series) == 2

    def test_none_records_is_empty(self) -> None:
        """Verifies a failed fetch (None) normalizes to an empty series."""
        assert SeriesNormalizer().normalize(None, "clicks") == ()

    def test_missing_timestamp_raises(self) -> None:
        """Verifies records without any timestamp field are rejected."""
        with pytest.raises(ValueError):
            SeriesNormalizer().normalize([{"clicks": 1}], "clicks")

    def test_negative_values_clamped(self) -> None:
        """Verifies the value >= 0 invariant holds for bad source data."""
        records = [{"start": "2026-10-01T00:00:00Z", "clicks": -4}]
        assert SeriesNormalizer().normalize(records, "clicks")[0].value == 0


class TestZeroedBaseline:
    """Tests for SeriesNormalizer.zeroed_baseline."""

    def test_preserves_length_and_timestamps(self) -> None:
        """Verifies the baseline keeps every timestamp and zeroes values.

        Business context:
        The baseline is the 'from' state of the enter animation. Matching
        timestamps keep x positions fixed while y animates up.
        """
        series = make_series([(0, 4), (1, 9), (3, 2)])
        baseline = SeriesNormalizer().zeroed_baseline(series)
        assert len(baseline) == len(series)
        assert [p.timestamp for p in baseline] == [p.timestamp for p in series]
        assert all(p.value == 0 for p in baseline)

    def test_empty(self) -> None:
        """Verifies an empty series stays empty."""
        assert SeriesNormalizer().zeroed_baseline(()) == ()


class TestIsAllZero:
    """Tests for the all-zero check."""

    def test_all_zero(self) -> None:
        """Verifies zeros and empty series are 'no signal'."""
        assert SeriesNormalizer.is_all_zero(make_series([(0, 0), (1, 0)]))
        assert SeriesNormalizer.is_all_zero(())

    def test_any_nonzero(self) -> None:
        """Verifies a single nonzero point is signal."""
        assert not SeriesNormalizer.is_all_zero(make_series([(0, 0), (1, 0.5)]))
