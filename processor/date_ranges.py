"""Resolve named date filters into concrete time ranges."""
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Optional

from processor.models import DateRange
from sources.errors import InvalidRequest


class DateFilter(Enum):
    """Named date filters offered on the explore screen."""
    ANYTIME = "Anytime"
    TODAY = "Today"
    THIS_WEEK = "This Week"
    THIS_WEEKEND = "Weekend"
    THIS_MONTH = "This Month"
    CUSTOM = "Pick Dates"


class DateRangeResolver:
    """Resolver computing date filter boundaries on a local calendar."""

    def __init__(self, tz: Optional[tzinfo] = None):
        """
        Initialize the resolver.

        Args:
            tz: Calendar timezone for day boundaries. When omitted, aware
                ``now`` values keep their own timezone and naive values are
                treated as local wall-clock time.
        """
        self.tz = tz

    def resolve(
        self,
        date_filter: DateFilter,
        now: Optional[datetime] = None,
        custom_start: Optional[datetime] = None,
        custom_end: Optional[datetime] = None
    ) -> Optional[DateRange]:
        """
        Convert a date filter into a half-open range.

        Args:
            date_filter: Filter to resolve
            now: Reference instant (default: current time)
            custom_start: First day for DateFilter.CUSTOM
            custom_end: Last day (inclusive) for DateFilter.CUSTOM

        Returns:
            DateRange, or None when no filtering applies

        Raises:
            InvalidRequest: If a custom range is missing or inverted
        """
        if date_filter is DateFilter.ANYTIME:
            return None

        if date_filter is DateFilter.CUSTOM:
            return self._custom_range(custom_start, custom_end)

        now = self._localize(now if now is not None else self._now())
        tz = now.tzinfo
        today = now.date()
        start_of_today = _start_of_day(today, tz)

        if date_filter is DateFilter.TODAY:
            return DateRange(start_of_today, _start_of_day(today + timedelta(days=1), tz))

        if date_filter is DateFilter.THIS_WEEK:
            # Sunday = 1 ... Saturday = 7
            weekday = now.isoweekday() % 7 + 1
            end = today + timedelta(days=8 - weekday)
            return DateRange(start_of_today, _start_of_day(end, tz))

        if date_filter is DateFilter.THIS_WEEKEND:
            # Sunday belongs to the weekend that started yesterday.
            if today.weekday() == 6:
                saturday = today - timedelta(days=1)
            else:
                saturday = today + timedelta(days=5 - today.weekday())
            monday = saturday + timedelta(days=2)
            start = start_of_today if today >= saturday else _start_of_day(saturday, tz)
            return DateRange(start, _start_of_day(monday, tz))

        if date_filter is DateFilter.THIS_MONTH:
            if today.month == 12:
                next_month = date(today.year + 1, 1, 1)
            else:
                next_month = date(today.year, today.month + 1, 1)
            end = next_month + timedelta(days=1)
            return DateRange(start_of_today, _start_of_day(end, tz))

        raise InvalidRequest(f"Unsupported date filter: {date_filter}")

    def _custom_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime]
    ) -> DateRange:
        if start is None or end is None:
            raise InvalidRequest("Custom date filter needs a start and end date")

        start = self._localize(start)
        end = self._localize(end)
        if end.date() < start.date():
            raise InvalidRequest("Custom date range ends before it starts")

        return DateRange(
            _start_of_day(start.date(), start.tzinfo),
            _start_of_day(end.date() + timedelta(days=1), end.tzinfo)
        )

    def _localize(self, value: datetime) -> datetime:
        if self.tz is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=self.tz)
        return value.astimezone(self.tz)

    def _now(self) -> datetime:
        return datetime.now(self.tz) if self.tz is not None else datetime.now()


def _start_of_day(day: date, tz: Optional[tzinfo]) -> datetime:
    return datetime.combine(day, time.min, tzinfo=tz)
