"""AWS Lambda handler serving the date-night explore feed."""
import json
import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from explore.feed import ExploreFeed
from processor.date_ranges import DateFilter, DateRangeResolver
from processor.models import EventCategory
from settings import Settings
from sources.community import CommunityEventService
from sources.errors import InvalidRequest
from sources.fetch_coordinator import FetchCoordinator
from sources.location import Coordinates, FixedLocationSource
from sources.ticketmaster import TicketmasterClient
from storage.document_store import DynamoDBDocumentStore
from storage.response_cache import ResponseCache
from storage.saved_events import SavedEventStore

# Extra attributes copied from log records into the JSON output
LOG_EXTRA_FIELDS = (
    'error_type', 'section', 'duration_seconds',
    'featured_status', 'tonight_status', 'community_status',
)

# Warm Lambda containers reuse this between invocations
_CACHE: Optional[ResponseCache] = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for field in LOG_EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def shared_cache(settings: Settings) -> ResponseCache:
    """Response cache kept for the life of the container."""
    global _CACHE
    if _CACHE is None or _CACHE.ttl != settings.cache_ttl:
        _CACHE = ResponseCache(ttl=settings.cache_ttl)
    return _CACHE


def build_feed(
    settings: Settings,
    cache: ResponseCache,
    location: Optional[Coordinates] = None,
    couple_id: Optional[str] = None,
    user_id: Optional[str] = None
) -> ExploreFeed:
    """
    Wire the explore feed and its collaborators from settings.

    Args:
        settings: Runtime configuration
        cache: Response cache for Ticketmaster queries
        location: Caller coordinates, if known
        couple_id: Couple whose saved events are loaded
        user_id: Partner making the request

    Returns:
        ExploreFeed ready to load
    """
    client = TicketmasterClient(
        api_key=settings.ticketmaster_api_key,
        base_url=settings.ticketmaster_base_url,
        timeout=settings.timeout_seconds,
        max_retries=settings.max_retries
    )
    coordinator = FetchCoordinator(client, cache, tz=settings.timezone)
    store = DynamoDBDocumentStore(
        table_prefix=settings.table_prefix,
        region_name=settings.aws_region
    )

    return ExploreFeed(
        coordinator=coordinator,
        community=CommunityEventService(store),
        saved_store=SavedEventStore(store),
        location_source=FixedLocationSource(location),
        resolver=DateRangeResolver(settings.timezone),
        couple_id=couple_id,
        user_id=user_id,
        radius=settings.search_radius_miles,
        fallback_coordinates=settings.fallback_coordinates
    )


def parse_request(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate the invocation payload.

    Raises:
        InvalidRequest: On unknown category/filter names or bad values
    """
    event = event or {}

    location = None
    if event.get('latitude') is not None and event.get('longitude') is not None:
        try:
            location = Coordinates(float(event['latitude']), float(event['longitude']))
        except (TypeError, ValueError) as e:
            raise InvalidRequest(f"Invalid coordinates: {e}") from e

    try:
        category = EventCategory(event.get('category', EventCategory.ALL.value))
    except ValueError as e:
        raise InvalidRequest(f"Unknown category: {event.get('category')}") from e

    try:
        date_filter = DateFilter(event.get('date_filter', DateFilter.ANYTIME.value))
    except ValueError as e:
        raise InvalidRequest(f"Unknown date filter: {event.get('date_filter')}") from e

    return {
        'location': location,
        'category': category,
        'date_filter': date_filter,
        'start_date': _parse_day(event.get('start_date')),
        'end_date': _parse_day(event.get('end_date')),
        'keyword': event.get('keyword'),
        'couple_id': event.get('couple_id'),
        'user_id': event.get('user_id'),
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for the explore feed.

    Args:
        event: Request payload (location, filters, optional keyword)
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    logger.info("Lambda execution started")

    try:
        request = parse_request(event)
    except InvalidRequest as e:
        logger.warning(f"Rejected request: {e}")
        return _response(400, {'message': 'Invalid request', 'error': str(e)})

    try:
        with build_feed(
            settings,
            shared_cache(settings),
            location=request['location'],
            couple_id=request['couple_id'],
            user_id=request['user_id']
        ) as feed:
            if request['keyword'] is not None:
                results = feed.coordinator.search(
                    request['keyword'],
                    feed.current_location(),
                    settings.search_radius_miles
                )
                body = {'results': [record.to_dict() for record in results]}
            else:
                feed.select_category(request['category'], reload=False)
                feed.select_date_filter(
                    request['date_filter'],
                    request['start_date'],
                    request['end_date'],
                    reload=False
                )
                feed.load_all()
                body = feed.snapshot()

    except InvalidRequest as e:
        logger.warning(f"Rejected request: {e}")
        return _response(400, {'message': 'Invalid request', 'error': str(e)})

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _response(500, {
            'message': 'Failed to load events',
            'error': str(e),
            'error_type': type(e).__name__,
            'duration_seconds': round(duration, 2)
        })

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={'duration_seconds': round(duration, 2)}
    )
    body['duration_seconds'] = round(duration, 2)
    return _response(200, body)


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps(body)
    }


def _parse_day(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d')
    except ValueError as e:
        raise InvalidRequest(f"Invalid date (expected YYYY-MM-DD): {value}") from e
