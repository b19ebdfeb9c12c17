"""Explore feed combining featured, tonight and community events."""
import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable, List, Optional

from explore.saved import SavedEventTracker, SaveToggle
from explore.sections import Section, SectionStatus
from processor.date_ranges import DateFilter, DateRangeResolver
from processor.event_processor import EventProcessor
from processor.models import DateRange, EventCategory, EventRecord
from sources.community import CommunityEventService
from sources.errors import InvalidRequest
from sources.fetch_coordinator import FetchCoordinator
from sources.location import (
    DEFAULT_COORDINATES,
    Coordinates,
    LocationSource,
    resolve_coordinates,
)
from sources.sample_data import placeholder_sets
from storage.saved_events import SavedEventStore

logger = logging.getLogger(__name__)

TONIGHT_FILTERS = (DateFilter.ANYTIME, DateFilter.TODAY)


class ExploreFeed:
    """Read model behind the explore screen."""

    def __init__(
        self,
        coordinator: FetchCoordinator,
        community: CommunityEventService,
        saved_store: Optional[SavedEventStore] = None,
        location_source: Optional[LocationSource] = None,
        resolver: Optional[DateRangeResolver] = None,
        couple_id: Optional[str] = None,
        user_id: Optional[str] = None,
        radius: int = FetchCoordinator.DEFAULT_RADIUS,
        fallback_coordinates: Coordinates = DEFAULT_COORDINATES,
        clock: Optional[Callable[[], datetime]] = None,
        processor: Optional[EventProcessor] = None,
        max_workers: int = 4
    ):
        """
        Initialize the feed with its collaborators.

        Args:
            coordinator: Ticketmaster fetch coordinator
            community: Community event service
            saved_store: Remote saved-event store (optional)
            location_source: Source of the user's coordinates
            resolver: Date filter resolver (default: UTC calendar)
            couple_id: Couple whose saved events are tracked
            user_id: Partner performing saves
            radius: Search radius in miles
            fallback_coordinates: Used when no location is available
            clock: Callable returning the current aware instant
            processor: Filtering processor
            max_workers: Thread pool size for fan-out and remote writes
        """
        self.coordinator = coordinator
        self.community = community
        self.saved_store = saved_store
        self.location_source = location_source
        self.resolver = resolver or DateRangeResolver(timezone.utc)
        self.couple_id = couple_id
        self.user_id = user_id
        self.radius = radius
        self.fallback_coordinates = fallback_coordinates
        self.clock = clock or (lambda: datetime.now(self.resolver.tz or timezone.utc))
        self.processor = processor or EventProcessor()

        placeholders = placeholder_sets(self.clock())
        self.featured = Section('featured', placeholders['featured'])
        self.tonight = Section('tonight', placeholders['tonight'])
        self.community_section = Section('community', placeholders['community'])
        self.saved = SavedEventTracker()

        self.selected_category = EventCategory.ALL
        self.selected_date_filter = DateFilter.ANYTIME
        self.custom_start: Optional[datetime] = None
        self.custom_end: Optional[datetime] = None

        self._executor = ThreadPoolExecutor(max_workers=max_workers)

    def __enter__(self) -> 'ExploreFeed':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    # Loading

    def load_all(self) -> None:
        """Load every section and the saved ids concurrently, then join."""
        futures = [
            self._executor.submit(self.load_featured),
            self._executor.submit(self.load_tonight),
            self._executor.submit(self.load_community),
            self._executor.submit(self.load_saved_ids),
        ]
        wait(futures)
        logger.info(
            "Explore feed loaded",
            extra={
                'featured_status': self.featured.status.value,
                'tonight_status': self.tonight.status.value,
                'community_status': self.community_section.status.value,
            }
        )

    def refresh(self) -> None:
        """Drop cached upstream responses and reload everything."""
        self.coordinator.clear_cache()
        self.load_all()

    def load_featured(self) -> SectionStatus:
        return self.featured.load(self._featured_loader)

    def load_tonight(self) -> SectionStatus:
        return self.tonight.load(self._tonight_loader)

    def load_community(self) -> SectionStatus:
        return self.community_section.load(self.community.fetch_approved_events)

    def load_saved_ids(self) -> None:
        if self.saved_store is None or not self.couple_id:
            return
        try:
            self.saved.replace(self.saved_store.fetch_saved_event_ids(self.couple_id))
        except Exception as e:
            logger.error(f"Failed to load saved events: {e}", exc_info=True)

    # Filters

    def select_category(self, category: EventCategory, reload: bool = True) -> None:
        """Switch category and reload the featured section."""
        self.selected_category = category
        if reload:
            self.load_featured()

    def select_date_filter(
        self,
        date_filter: DateFilter,
        custom_start: Optional[datetime] = None,
        custom_end: Optional[datetime] = None,
        reload: bool = True
    ) -> None:
        """
        Switch date filter and reload the featured section.

        Raises:
            InvalidRequest: If a custom filter has no valid range
        """
        if date_filter is DateFilter.CUSTOM:
            # Validate before changing any state
            self.resolver.resolve(date_filter, self.clock(), custom_start, custom_end)
        self.selected_date_filter = date_filter
        self.custom_start = custom_start
        self.custom_end = custom_end
        if reload:
            self.load_featured()

    @property
    def date_range(self) -> Optional[DateRange]:
        return self.resolver.resolve(
            self.selected_date_filter,
            self.clock(),
            self.custom_start,
            self.custom_end
        )

    @property
    def shows_tonight(self) -> bool:
        return self.selected_date_filter in TONIGHT_FILTERS

    @property
    def featured_events(self) -> List[EventRecord]:
        return self._filtered(self.featured)

    @property
    def tonight_events(self) -> List[EventRecord]:
        if not self.shows_tonight:
            return []
        return self._filtered(self.tonight)

    @property
    def community_events(self) -> List[EventRecord]:
        return self._filtered(self.community_section)

    # Saved events

    def is_saved(self, event_id: str) -> bool:
        return self.saved.is_saved(event_id)

    def toggle_saved(self, record: EventRecord) -> 'Future[SaveToggle]':
        """
        Flip the saved state of ``record`` and persist it in the background.

        The local state changes immediately. The returned future resolves
        to the toggle once the remote write has confirmed it or the local
        state has been rolled back.

        Raises:
            InvalidRequest: If no couple or user is set
        """
        if self.saved_store is None or not self.couple_id or not self.user_id:
            raise InvalidRequest("Saving events needs a couple and user")

        toggle = self.saved.begin_toggle(record.id)
        return self._executor.submit(self._persist_toggle, toggle, record)

    def snapshot(self) -> dict:
        """JSON-ready view of all sections with current filters applied."""
        tonight = self.tonight.to_dict(self.tonight_events)
        tonight['suppressed'] = not self.shows_tonight
        return {
            'category': self.selected_category.value,
            'date_filter': self.selected_date_filter.value,
            'featured': self.featured.to_dict(self.featured_events),
            'tonight': tonight,
            'community': self.community_section.to_dict(self.community_events),
            'saved_event_ids': sorted(self.saved.snapshot()),
        }

    def _persist_toggle(self, toggle: SaveToggle, record: EventRecord) -> SaveToggle:
        try:
            if toggle.saved:
                self.saved_store.save_event(self.couple_id, record.id, record.source, self.user_id)
            else:
                self.saved_store.unsave_event(self.couple_id, record.id)
        except Exception as e:
            logger.error(
                f"Failed to persist saved state for {record.id}: {e}",
                exc_info=True
            )
            return self.saved.roll_back(toggle, str(e))
        return self.saved.confirm(toggle)

    def _filtered(self, section: Section) -> List[EventRecord]:
        return self.processor.apply_filters(
            section.events,
            self.selected_category,
            self.date_range
        )

    def current_location(self) -> Coordinates:
        return resolve_coordinates(self.location_source, self.fallback_coordinates)

    def _featured_loader(self) -> List[EventRecord]:
        location = self.current_location()
        category = self.selected_category
        if category is not EventCategory.ALL:
            return self.coordinator.fetch_by_category(category, location, self.radius)

        date_range = self.date_range
        if date_range is not None:
            return self.coordinator.fetch_featured(
                location,
                self.radius,
                start=date_range.start,
                end=date_range.end
            )
        return self.coordinator.fetch_featured(location, self.radius)

    def _tonight_loader(self) -> List[EventRecord]:
        return self.coordinator.fetch_tonight(self.current_location(), self.radius, now=self.clock())
