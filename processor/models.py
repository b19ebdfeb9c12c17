"""Data models for event aggregation."""
from dataclasses import dataclass, replace
from datetime import datetime, tzinfo
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class EventCategory(Enum):
    """Browsable event categories."""
    ALL = "All"
    CONCERTS = "Concerts"
    COMEDY = "Comedy"
    OUTDOORS = "Outdoors"
    FOOD = "Food"
    THEATER = "Theater"
    CLASSES = "Classes"


class EventSource(Enum):
    """Origin system of an event record."""
    API = "api"
    COMMUNITY = "community"
    CURATED = "curated"


@dataclass(frozen=True)
class DateRange:
    """Half-open interval [start, end)."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


@dataclass(frozen=True)
class EventRecord:
    """A single show, possibly consolidated across several dates."""
    id: str
    title: str
    venue: str
    primary_date: datetime
    time: str
    price: str
    category: EventCategory
    source: EventSource
    image_url: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    description: str = ""
    organizer_name: Optional[str] = None
    attendee_count: Optional[int] = None
    is_verified: bool = False
    additional_dates: Tuple[datetime, ...] = ()
    total_show_count: int = 1

    @property
    def all_dates(self) -> List[datetime]:
        """Primary date plus consolidated dates, sorted and unique."""
        return sorted({self.primary_date, *self.additional_dates})

    @property
    def deduplication_key(self) -> str:
        """Records sharing this key are the same show."""
        return f"{self.title.strip().lower()}|{self.venue.strip().lower()}"

    @property
    def show_count_label(self) -> Optional[str]:
        if self.total_show_count > 1:
            return f"{self.total_show_count} shows"
        return None

    def merge(self, other: 'EventRecord') -> 'EventRecord':
        """
        Merge another occurrence of the same show into this record.

        This record is the base: identity, title, venue, category, price,
        tags and organizer details are kept from it. The image and
        description fall back to ``other`` only when missing here.

        Args:
            other: Record with the same deduplication key

        Returns:
            New consolidated EventRecord

        Raises:
            ValueError: If the records describe different shows
        """
        if other.deduplication_key != self.deduplication_key:
            raise ValueError(
                f"Cannot merge '{other.deduplication_key}' into "
                f"'{self.deduplication_key}'"
            )

        primary_date = min(self.primary_date, other.primary_date)
        dates = {
            *self.additional_dates,
            self.primary_date,
            other.primary_date,
            *other.additional_dates,
        }
        dates.discard(primary_date)

        return replace(
            self,
            primary_date=primary_date,
            additional_dates=tuple(sorted(dates)),
            total_show_count=self.total_show_count + other.total_show_count,
            image_url=self.image_url or other.image_url,
            description=self.description or other.description,
        )

    def has_date_in_range(self, date_range: DateRange) -> bool:
        return any(date_range.contains(d) for d in self.all_dates)

    def is_tonight(self, now: datetime) -> bool:
        """Check whether any occurrence falls on the calendar day of ``now``."""
        today = now.date()
        for occurrence in self.all_dates:
            if now.tzinfo is not None and occurrence.tzinfo is not None:
                occurrence = occurrence.astimezone(now.tzinfo)
            if occurrence.date() == today:
                return True
        return False

    def formatted_date(self, tz: Optional[tzinfo] = None) -> str:
        """
        Render the date label shown on event cards.

        Args:
            tz: Optional display timezone for aware instants

        Returns:
            "Jun 10" for a single show, "Jun 10 – Jun 14" for a run
        """
        dates = self.all_dates
        start = _format_day(dates[0], tz)
        if self.total_show_count > 1:
            end = _format_day(dates[-1], tz)
            if start == end:
                return start
            return f"{start} – {end}"
        return _format_day(self.primary_date, tz)

    def to_dict(self) -> dict:
        """Serialize for JSON responses."""
        return {
            'id': self.id,
            'title': self.title,
            'venue': self.venue,
            'date': self.primary_date.isoformat(),
            'all_dates': [d.isoformat() for d in self.all_dates],
            'formatted_date': self.formatted_date(),
            'time': self.time,
            'price': self.price,
            'image_url': self.image_url,
            'category': self.category.value,
            'source': self.source.value,
            'tags': sorted(self.tags),
            'description': self.description,
            'organizer_name': self.organizer_name,
            'attendee_count': self.attendee_count,
            'is_verified': self.is_verified,
            'total_show_count': self.total_show_count,
            'show_count_label': self.show_count_label,
        }


@dataclass
class CacheEntry:
    """Cached result set for one logical query."""
    key: str
    records: List[EventRecord]
    fetched_at: datetime


def _format_day(value: datetime, tz: Optional[tzinfo]) -> str:
    if tz is not None and value.tzinfo is not None:
        value = value.astimezone(tz)
    return f"{value.strftime('%b')} {value.day}"
