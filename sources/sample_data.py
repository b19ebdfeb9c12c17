"""Curated placeholder events shown when live sources return nothing."""
from datetime import datetime, timedelta
from typing import Dict, List

from processor.models import EventCategory, EventRecord, EventSource

CURATED_ID_PREFIX = "cur_"


def _curated(slug: str, **fields) -> EventRecord:
    return EventRecord(id=f"{CURATED_ID_PREFIX}{slug}", source=EventSource.CURATED, **fields)


def featured_placeholders(now: datetime) -> List[EventRecord]:
    return [
        _curated(
            "jazz-under-the-stars",
            title="Jazz Under the Stars",
            venue="Millennium Park",
            primary_date=now + timedelta(days=2),
            time="7:30 PM",
            price="Free",
            category=EventCategory.CONCERTS,
            tags=frozenset({"jazz", "outdoor"}),
            description="An evening of live jazz on the lawn.",
        ),
        _curated(
            "improv-night",
            title="Improv Date Night",
            venue="Second City",
            primary_date=now + timedelta(days=4),
            time="8:00 PM",
            price="$35",
            category=EventCategory.COMEDY,
            tags=frozenset({"improv", "laughs"}),
        ),
        _curated(
            "wine-tasting",
            title="Sunset Wine Tasting",
            venue="City Winery",
            primary_date=now + timedelta(days=6),
            time="6:00 PM",
            price="$45",
            category=EventCategory.FOOD,
            tags=frozenset({"wine", "tasting"}),
        ),
    ]


def tonight_placeholders(now: datetime) -> List[EventRecord]:
    return [
        _curated(
            "late-night-trivia",
            title="Late Night Trivia",
            venue="The Corner Pub",
            primary_date=now,
            time="9:00 PM",
            price="Free",
            category=EventCategory.CLASSES,
            tags=frozenset({"trivia", "social"}),
        ),
        _curated(
            "acoustic-sessions",
            title="Acoustic Sessions",
            venue="Hideout Cafe",
            primary_date=now,
            time="8:00 PM",
            price="$10",
            category=EventCategory.CONCERTS,
            tags=frozenset({"acoustic"}),
        ),
    ]


def community_placeholders(now: datetime) -> List[EventRecord]:
    return [
        _curated(
            "pottery-for-two",
            title="Pottery for Two",
            venue="Clay Collective",
            primary_date=now + timedelta(days=3),
            time="6:30 PM",
            price="Free",
            category=EventCategory.CLASSES,
            tags=frozenset({"art", "hands-on"}),
            organizer_name="Clay Collective",
            attendee_count=16,
            is_verified=True,
        ),
        _curated(
            "sunrise-hike",
            title="Sunrise Lakefront Hike",
            venue="Lakefront Trail",
            primary_date=now + timedelta(days=5),
            time="6:00 AM",
            price="Free",
            category=EventCategory.OUTDOORS,
            tags=frozenset({"active", "outdoor"}),
            organizer_name="Windy City Walkers",
            attendee_count=30,
        ),
    ]


def placeholder_sets(now: datetime) -> Dict[str, List[EventRecord]]:
    """Placeholder records for each explore section."""
    return {
        'featured': featured_placeholders(now),
        'tonight': tonight_placeholders(now),
        'community': community_placeholders(now),
    }
