"""Adapters mapping upstream payloads into EventRecords."""
import logging
import uuid
from datetime import datetime, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from processor.models import EventCategory, EventRecord, EventSource
from sources.errors import DecodeFailure

logger = logging.getLogger(__name__)

TICKETMASTER_ID_PREFIX = "tm_"
COMMUNITY_ID_PREFIX = "cm_"

GENRE_KEYWORDS = [
    (EventCategory.COMEDY, ("comedy",)),
    (EventCategory.THEATER, ("theatre", "theater", "musical", "opera")),
    (EventCategory.FOOD, ("food", "dining", "wine", "beer")),
]

SEGMENT_CATEGORIES = {
    "music": EventCategory.CONCERTS,
    "arts & theatre": EventCategory.THEATER,
    "arts & theater": EventCategory.THEATER,
    "sports": EventCategory.OUTDOORS,
    "film": EventCategory.THEATER,
}


def ticketmaster_event_to_record(
    entry: Dict[str, Any],
    tz: tzinfo = timezone.utc,
    now: Optional[Callable[[], datetime]] = None
) -> EventRecord:
    """
    Map a Ticketmaster Discovery event into an EventRecord.

    Args:
        entry: One item of ``_embedded.events``
        tz: Timezone for ``localDate``/``localTime`` when ``dateTime`` is absent
        now: Clock used when the entry carries no date at all

    Returns:
        EventRecord with an API source

    Raises:
        DecodeFailure: If the entry lacks an id or name
    """
    if not isinstance(entry, dict):
        raise DecodeFailure("Event entry is not an object")

    event_id = entry.get('id')
    name = entry.get('name')
    if not event_id or not isinstance(name, str) or not name.strip():
        raise DecodeFailure("Event entry missing id or name")

    try:
        start = _dig(entry, 'dates', 'start') or {}
        classification = _first(entry.get('classifications'))
        genre = _name(classification, 'genre')
        segment = _name(classification, 'segment')
        venue = _first(_dig(entry, '_embedded', 'venues'))

        return EventRecord(
            id=f"{TICKETMASTER_ID_PREFIX}{event_id}",
            title=name,
            venue=_text((venue or {}).get('name')) or "TBA",
            primary_date=_event_date(start, tz, now),
            time=format_time(start.get('localTime')),
            price=format_price(entry.get('priceRanges')),
            image_url=best_image(entry.get('images')),
            category=map_category(segment, genre),
            source=EventSource.API,
            tags=frozenset([genre.lower()]) if genre else frozenset(),
            description=strip_markup(entry.get('info')),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise DecodeFailure(f"Event entry {event_id} has malformed fields: {e}") from e


def community_document_to_record(document: Dict[str, Any]) -> EventRecord:
    """
    Map a community event document into an EventRecord.

    Raises:
        DecodeFailure: If the document lacks a title or a readable date
    """
    if not isinstance(document, dict):
        raise DecodeFailure("Community document is not an object")

    title = document.get('title')
    if not isinstance(title, str) or not title.strip():
        raise DecodeFailure("Community document missing title")

    event_date = parse_instant(document.get('date'))
    if event_date is None:
        raise DecodeFailure(f"Community document '{title}' has no valid date")

    doc_id = document.get('id') or uuid.uuid4().hex
    attendee_count = document.get('attendeeCount')

    try:
        return EventRecord(
            id=f"{COMMUNITY_ID_PREFIX}{doc_id}",
            title=title,
            venue=_text(document.get('locationName')),
            primary_date=event_date,
            time=_text(document.get('time')),
            price="Free",
            image_url=_text(document.get('imageURL')) or None,
            category=community_category(document.get('category')),
            source=EventSource.COMMUNITY,
            tags=frozenset(str(tag).lower() for tag in document.get('tags') or []),
            description=strip_markup(document.get('description')),
            organizer_name=_text(document.get('organizerName')) or None,
            attendee_count=int(attendee_count) if attendee_count is not None else None,
            is_verified=bool(document.get('isVerified', False)),
        )
    except (TypeError, ValueError, AttributeError) as e:
        raise DecodeFailure(f"Community document '{title}' has malformed fields: {e}") from e


def map_category(segment: Optional[str], genre: Optional[str]) -> EventCategory:
    """Infer a category from Ticketmaster genre, then segment."""
    if not segment:
        return EventCategory.ALL

    if genre:
        genre = genre.lower()
        for category, keywords in GENRE_KEYWORDS:
            if any(keyword in genre for keyword in keywords):
                return category

    return SEGMENT_CATEGORIES.get(segment.lower(), EventCategory.CONCERTS)


def community_category(value: Optional[str]) -> EventCategory:
    """Community categories are stored lowercase; unknown ones are classes."""
    try:
        return EventCategory((value or "").capitalize())
    except ValueError:
        return EventCategory.CLASSES


def format_price(price_ranges: Optional[List[Dict[str, Any]]]) -> str:
    """
    Render the lowest ticket price.

    Returns:
        "See tickets" without price data, "Free" for a zero minimum,
        otherwise whole dollars like "$45"
    """
    price_range = _first(price_ranges)
    if price_range is None:
        return "See tickets"
    minimum = price_range.get('min') or 0
    if minimum == 0:
        return "Free"
    return f"${int(minimum)}"


def format_time(local_time: Optional[str]) -> str:
    """
    Convert a 24-hour "HH:MM:SS" time into "7:00 PM" style.

    Unparseable values are returned unchanged; missing ones become "TBA".
    """
    if not local_time:
        return "TBA"

    parts = local_time.split(':')
    if len(parts) < 2:
        return local_time
    try:
        hour = int(parts[0])
    except ValueError:
        return local_time

    period = "PM" if hour >= 12 else "AM"
    if hour > 12:
        display_hour = hour - 12
    elif hour == 0:
        display_hour = 12
    else:
        display_hour = hour
    return f"{display_hour}:{parts[1]} {period}"


def best_image(images: Optional[List[Dict[str, Any]]]) -> Optional[str]:
    """Pick the widescreen, mid-sized image; earlier images win ties."""
    if not images:
        return None
    ranked = sorted(
        (image for image in images if isinstance(image, dict)),
        key=image_score,
        reverse=True
    )
    # sorted(reverse=True) keeps equal-score items in original order
    return ranked[0].get('url') if ranked else None


def image_score(image: Dict[str, Any]) -> int:
    score = 0
    if image.get('ratio') == "16_9":
        score += 10
    width = image.get('width') or 0
    if 500 <= width <= 1200:
        score += 5
    return score


def strip_markup(text: Optional[str]) -> str:
    """Reduce HTML-bearing descriptions to plain text."""
    if not text:
        return ""
    if '<' not in text:
        return text.strip()
    return BeautifulSoup(text, 'html.parser').get_text(" ", strip=True)


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp into an aware datetime.

    Naive values are assumed to be UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _event_date(
    start: Dict[str, Any],
    tz: tzinfo,
    now: Optional[Callable[[], datetime]]
) -> datetime:
    parsed = parse_instant(start.get('dateTime'))
    if parsed is not None:
        return parsed

    local_date = start.get('localDate')
    if local_date:
        local_time = start.get('localTime') or "00:00:00"
        try:
            naive = datetime.strptime(f"{local_date} {local_time}", '%Y-%m-%d %H:%M:%S')
            return naive.replace(tzinfo=tz)
        except ValueError:
            logger.warning(f"Unparseable local date: {local_date} {local_time}")

    return now() if now is not None else datetime.now(timezone.utc)


def _dig(data: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def _first(items: Any) -> Optional[Dict[str, Any]]:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return None


def _text(value: Any) -> str:
    """Non-string values read as missing."""
    return value.strip() if isinstance(value, str) else ""


def _name(classification: Optional[Dict[str, Any]], field: str) -> Optional[str]:
    value = _dig(classification, field, 'name')
    return value if isinstance(value, str) and value else None
