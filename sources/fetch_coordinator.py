"""Coordinates Ticketmaster fetches with decoding, deduplication and caching."""
import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional

from processor.event_processor import EventProcessor
from processor.models import EventCategory, EventRecord
from sources.adapters import ticketmaster_event_to_record
from sources.errors import DecodeFailure, InvalidRequest
from sources.location import Coordinates
from sources.ticketmaster import TicketmasterClient
from storage.response_cache import ResponseCache

logger = logging.getLogger(__name__)

Adapter = Callable[[Dict[str, Any]], EventRecord]

# Categories missing here have no Ticketmaster equivalent
CATEGORY_CLASSIFICATIONS = {
    EventCategory.CONCERTS: "Music",
    EventCategory.COMEDY: "Comedy",
    EventCategory.THEATER: "Theatre",
    EventCategory.OUTDOORS: "Sports",
}


class FetchCoordinator:
    """Runs one logical Ticketmaster query through fetch, dedup and cache."""

    DEFAULT_RADIUS = 25

    def __init__(
        self,
        client: TicketmasterClient,
        cache: ResponseCache,
        processor: Optional[EventProcessor] = None,
        adapter: Adapter = ticketmaster_event_to_record,
        tz: tzinfo = timezone.utc
    ):
        """
        Initialize the coordinator.

        Args:
            client: Ticketmaster HTTP client
            cache: Response cache shared by this coordinator's queries
            processor: Deduplicating processor (default: new EventProcessor)
            adapter: Maps a raw event entry into an EventRecord
            tz: Calendar timezone used for "tonight" day boundaries
        """
        self.client = client
        self.cache = cache
        self.processor = processor or EventProcessor()
        self.adapter = adapter
        self.tz = tz

    def fetch(
        self,
        params: Dict[str, str],
        cache_key: Optional[str] = None
    ) -> List[EventRecord]:
        """
        Fetch, decode and deduplicate events for one query.

        Args:
            params: Discovery API query parameters
            cache_key: Key to read/write the cache under; None bypasses it

        Returns:
            Deduplicated EventRecords in upstream order

        Raises:
            FetchError: Any failure from the client or payload decoding.
                The cache is not written when an error is raised.
        """
        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"Cache hit for {cache_key} ({len(cached)} events)")
                return cached

        payload = self.client.get_events(params)
        entries = self._extract_entries(payload)

        records = []
        for entry in entries:
            try:
                records.append(self.adapter(entry))
            except DecodeFailure as e:
                logger.warning(f"Skipping malformed event entry: {e}")
                continue

        events = self.processor.deduplicate(records)
        logger.info(
            f"Fetched {len(entries)} entries, {len(events)} events after "
            f"deduplication"
        )

        if cache_key is not None:
            self.cache.put(cache_key, events)
        return events

    def fetch_featured(
        self,
        location: Coordinates,
        radius: int = DEFAULT_RADIUS,
        size: int = 50,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[EventRecord]:
        """Popular upcoming events, optionally bounded by dates."""
        params = self._base_params(location, radius, size, "relevance,desc")
        cache_key = f"featured_{location.latlong}_{radius}"

        if start is not None:
            params['startDateTime'] = format_datetime(start)
        if end is not None:
            params['endDateTime'] = format_datetime(end)
        if start is not None or end is not None:
            start_part = format_datetime(start) if start is not None else "open"
            end_part = format_datetime(end) if end is not None else "open"
            cache_key += f"_{start_part}_{end_part}"

        return self.fetch(params, cache_key)

    def fetch_tonight(
        self,
        location: Coordinates,
        radius: int = DEFAULT_RADIUS,
        size: int = 20,
        now: Optional[datetime] = None
    ) -> List[EventRecord]:
        """Events happening on the current calendar day."""
        now = now.astimezone(self.tz) if now is not None else datetime.now(self.tz)
        day_start = datetime.combine(now.date(), time.min, tzinfo=self.tz)
        day_end = datetime.combine(now.date() + timedelta(days=1), time.min, tzinfo=self.tz)

        params = self._base_params(location, radius, size, "date,asc")
        params['startDateTime'] = format_datetime(day_start)
        params['endDateTime'] = format_datetime(day_end)

        cache_key = f"tonight_{location.latlong}_{radius}_{now.date().isoformat()}"
        return self.fetch(params, cache_key)

    def fetch_by_category(
        self,
        category: EventCategory,
        location: Coordinates,
        radius: int = DEFAULT_RADIUS,
        size: int = 20
    ) -> List[EventRecord]:
        """
        Events for one category.

        Categories without an upstream classification (All, Food, Classes)
        return an empty list without a network call.
        """
        classification = CATEGORY_CLASSIFICATIONS.get(category)
        if classification is None:
            logger.info(f"No Ticketmaster classification for {category.value}")
            return []

        params = self._base_params(location, radius, size, "date,asc")
        params['classificationName'] = classification

        cache_key = f"cat_{category.value}_{location.latlong}_{radius}"
        return self.fetch(params, cache_key)

    def search(
        self,
        keyword: str,
        location: Coordinates,
        radius: int = DEFAULT_RADIUS,
        size: int = 20
    ) -> List[EventRecord]:
        """Free-text search; results are never cached."""
        if not keyword or not keyword.strip():
            raise InvalidRequest("Search keyword must not be empty")

        params = self._base_params(location, radius, size, "relevance,desc")
        params['keyword'] = keyword.strip()
        return self.fetch(params, cache_key=None)

    def clear_cache(self) -> None:
        self.cache.clear()

    def _base_params(
        self,
        location: Coordinates,
        radius: int,
        size: int,
        sort: str
    ) -> Dict[str, str]:
        return {
            'latlong': location.latlong,
            'radius': str(radius),
            'unit': 'miles',
            'size': str(size),
            'sort': sort,
            'locale': '*',
        }

    @staticmethod
    def _extract_entries(payload: Dict[str, Any]) -> List[Any]:
        embedded = payload.get('_embedded')
        if embedded is None:
            return []
        if not isinstance(embedded, dict):
            raise DecodeFailure("'_embedded' is not an object")

        events = embedded.get('events')
        if events is None:
            return []
        if not isinstance(events, list):
            raise DecodeFailure("'_embedded.events' is not a list")
        return events


def format_datetime(value: datetime) -> str:
    """Discovery API timestamp: UTC, second precision, 'Z' suffix."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%SZ')
