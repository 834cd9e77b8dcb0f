"""
Series normalization for Event Tabs.

PURPOSE: Convert raw timeseries records into the uniform TimeSeries shape.
AI CONTEXT: Pure data transformation - no I/O, no rendering.

RAW RECORD SHAPE (one bucket per record):
    {"start": "2026-10-01T00:00:00.000Z", "clicks": 12, "leads": 1, "sales": 0}

A clicks-only response omits "leads"/"sales"; composite responses carry all
three. Whatever field is missing reads as zero.

USAGE:
    normalizer = SeriesNormalizer()
    series = normalizer.normalize(records, "leads")
    baseline = normalizer.zeroed_baseline(series)
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from .models import TimePoint, TimeSeries

__all__ = ["SeriesNormalizer", "parse_timestamp"]

TIMESTAMP_FIELDS: tuple[str, ...] = ("start", "timestamp", "t")


def parse_timestamp(raw: Any) -> datetime:
    """
    Parse a record timestamp into an aware datetime.

    Accepts ISO 8601 strings (a trailing "Z" is treated as UTC), datetime
    objects, and numbers as epoch milliseconds. Naive values are assumed
    to be UTC so that every point in a series can be compared.

    Args:
        raw: Timestamp value from a raw record.

    Returns:
        Timezone-aware datetime.

    Raises:
        ValueError: If the value cannot be interpreted as an instant.

    Example:
        >>> parse_timestamp("2026-10-01T00:00:00Z").isoformat()
        '2026-10-01T00:00:00+00:00'
        >>> parse_timestamp(0).year
        1970
    """
    if isinstance(raw, datetime):
        parsed = raw
    elif isinstance(raw, bool):
        raise ValueError(f"Unsupported timestamp: {raw!r}")
    elif isinstance(raw, (int, float)):
        parsed = datetime.fromtimestamp(raw / 1000.0, tz=UTC)
    elif isinstance(raw, str) and raw.strip():
        try:
            parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValueError(f"Unsupported timestamp: {raw!r}") from e
    else:
        raise ValueError(f"Unsupported timestamp: {raw!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _record_timestamp(record: Mapping[str, Any]) -> datetime:
    for key in TIMESTAMP_FIELDS:
        if key in record:
            return parse_timestamp(record[key])
    raise ValueError(f"Record has no timestamp field: {sorted(record)}")


def _record_value(record: Mapping[str, Any], category: str) -> float:
    raw = record.get(category)
    if raw is None:
        return 0.0
    value = float(raw)
    # Counts are never negative; a stray negative bucket reads as empty.
    return value if value > 0 else 0.0


class SeriesNormalizer:
    """
    Maps raw records 1:1 onto TimePoints.

    No filtering, no deduplication and no re-sorting: the source delivers
    buckets already ordered by time and the chart mirrors that order.
    """

    def normalize(
        self,
        raw_records: Iterable[Mapping[str, Any]] | None,
        category: str,
    ) -> TimeSeries:
        """
        Normalize raw records into a TimeSeries for one category.

        Business context: A composite response holds every category's counts
        per bucket. Each tab draws the same buckets but reads a different
        field, so normalization is per category.

        Args:
            raw_records: Records from the timeseries endpoint. None (failed
                or pending fetch) yields an empty series.
            category: Field to read as the point value.

        Returns:
            Tuple of TimePoints, one per record, same order.

        Raises:
            ValueError: If a record's timestamp cannot be parsed, or its
                category value is not numeric.

        Example:
            >>> records = [{"start": "2026-10-01T00:00:00Z", "clicks": 3}]
            >>> SeriesNormalizer().normalize(records, "sales")[0].value
            0.0
        """
        if raw_records is None:
            return ()
        return tuple(
            TimePoint(timestamp=_record_timestamp(record), value=_record_value(record, category))
            for record in raw_records
        )

    def zeroed_baseline(self, series: TimeSeries) -> TimeSeries:
        """
        Flatten a series to zero while keeping every timestamp.

        Used as the "from" state of the enter transition: same x positions,
        every y at the zero line.

        Args:
            series: Series to flatten.

        Returns:
            New series of equal length with all values 0.
        """
        return tuple(TimePoint(timestamp=point.timestamp, value=0.0) for point in series)

    @staticmethod
    def is_all_zero(series: TimeSeries) -> bool:
        """True when the series is empty or every value is zero."""
        return all(point.value == 0 for point in series)
