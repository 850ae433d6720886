"""
Report service: read-only aggregate view over donors.

The report is recomputed on every call and holds no state.  Its four parts
(total, per-segment counts, per-category counts, daily series) are built in
one call; if any query fails the whole call raises and nothing partial is
returned.

Days are calendar days in ``REPORT_TIMEZONE``.  Timestamps are stored in
UTC, so bucketing happens here rather than in SQL, which keeps the result
identical on PostgreSQL and SQLite.
"""

import logging
from collections import Counter
from datetime import date, datetime, time, timezone, tzinfo
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.exceptions import ValidationFailedException, translate_db_errors
from app.repositories.donor_repo import DonorRepository
from app.schemas.report import DonorReport, SeriesPoint

logger = logging.getLogger(__name__)

UNKNOWN_BUCKET = "unknown"
END_OF_DAY = time(23, 59, 59, 999999)


def report_bounds(
    start: Optional[date], end: Optional[date], tz: tzinfo
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Turn inclusive calendar dates into UTC instants.

    ``start`` becomes the first instant of that day and ``end`` the last,
    both read as local dates in ``tz``.
    """
    start_at = (
        datetime.combine(start, time.min, tzinfo=tz).astimezone(timezone.utc) if start else None
    )
    end_at = datetime.combine(end, END_OF_DAY, tzinfo=tz).astimezone(timezone.utc) if end else None
    return start_at, end_at


def bucket_counts(rows: Iterable[Tuple[Optional[str], int]]) -> Dict[str, int]:
    """Fold ``(value, count)`` rows into a dict, NULL and blank under ``"unknown"``."""
    buckets: Dict[str, int] = {}
    for value, count in rows:
        key = value.strip() if isinstance(value, str) else ""
        key = key or UNKNOWN_BUCKET
        buckets[key] = buckets.get(key, 0) + count
    return buckets


def local_day(ts: datetime, tz: tzinfo) -> date:
    # SQLite hands back naive datetimes; they were written as UTC.
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz).date()


def daily_counts(timestamps: Iterable[datetime], tz: tzinfo) -> List[Tuple[date, int]]:
    """Signups per local calendar day, ascending by day.  Empty days are omitted."""
    counter = Counter(local_day(ts, tz) for ts in timestamps)
    return sorted(counter.items())


def cumulative_series(daily: Iterable[Tuple[date, int]]) -> List[SeriesPoint]:
    """
    Attach a running total to day-ordered counts.

    ``daily`` must already be in ascending day order; the running total is
    only meaningful chronologically.
    """
    series: List[SeriesPoint] = []
    running = 0
    for day, count in daily:
        running += count
        series.append(SeriesPoint(day=day, daily=count, cumulative=running))
    return series


class ReportService:
    """Builds :class:`DonorReport` snapshots."""

    def __init__(self, donor_repo: DonorRepository, timezone_name: str = settings.REPORT_TIMEZONE):
        self._repo = donor_repo
        self._tz = ZoneInfo(timezone_name)

    @translate_db_errors("Failed to fetch donor report")
    async def build_report(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> DonorReport:
        """
        Aggregate donors created between ``start`` and ``end`` (both optional,
        both inclusive).

        Raises :class:`ValidationFailedException` when ``end`` precedes ``start``.
        """
        if start and end and end < start:
            raise ValidationFailedException({"end": "end must be on or after start"})

        start_at, end_at = report_bounds(start, end, self._tz)

        total = await self._repo.count_created(start_at, end_at)
        by_segment = bucket_counts(await self._repo.count_grouped_by("segment", start_at, end_at))
        by_category = bucket_counts(await self._repo.count_grouped_by("category", start_at, end_at))
        timestamps = await self._repo.created_timestamps(start_at, end_at)
        series = cumulative_series(daily_counts(timestamps, self._tz))

        logger.debug(
            "Donor report built: total=%d days=%d start=%s end=%s",
            total,
            len(series),
            start,
            end,
        )
        return DonorReport(
            total=total,
            by_segment=by_segment,
            by_category=by_category,
            series=series,
        )
