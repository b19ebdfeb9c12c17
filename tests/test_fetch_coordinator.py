"""Unit tests for FetchCoordinator."""
from datetime import datetime, timezone
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
import responses

from processor.models import EventCategory
from sources.errors import DecodeFailure, InvalidRequest, RateLimited
from sources.fetch_coordinator import FetchCoordinator, format_datetime
from sources.location import Coordinates
from sources.ticketmaster import TicketmasterClient
from storage.response_cache import ResponseCache

EVENTS_URL = "https://app.ticketmaster.com/discovery/v2/events.json"
CHICAGO = ZoneInfo('America/Chicago')
LOCATION = Coordinates(41.8781, -87.6298)


def tm_event(event_id, name='Jazz Night', venue='Blue Note', date_time='2024-06-10T01:00:00Z'):
    return {
        'id': event_id,
        'name': name,
        'dates': {'start': {'localTime': '20:00:00', 'dateTime': date_time}},
        'classifications': [{'segment': {'name': 'Music'}, 'genre': {'name': 'Jazz'}}],
        '_embedded': {'venues': [{'name': venue}]},
    }


def payload(*entries):
    return {'_embedded': {'events': list(entries)}}


@pytest.fixture
def client():
    mock_client = MagicMock(spec=TicketmasterClient)
    mock_client.get_events.return_value = payload(tm_event('1'))
    return mock_client


@pytest.fixture
def cache(clock):
    return ResponseCache(clock=clock)


@pytest.fixture
def coordinator(client, cache):
    return FetchCoordinator(client, cache)


class TestFetch:
    """Test cases for the fetch pipeline."""

    def test_consolidates_repeated_shows(self, coordinator, client):
        """Test three Jazz Night entries become one record with three shows."""
        client.get_events.return_value = payload(
            tm_event('a', date_time='2024-06-12T01:00:00Z'),
            tm_event('b', date_time='2024-06-10T01:00:00Z'),
            tm_event('c', name='Comedy Hour', venue='Laugh Factory'),
            tm_event('d', date_time='2024-06-11T01:00:00Z'),
        )

        events = coordinator.fetch({}, 'key')

        assert [e.title for e in events] == ['Jazz Night', 'Comedy Hour']
        jazz = events[0]
        assert jazz.id == 'tm_a'
        assert jazz.total_show_count == 3
        assert [d.day for d in jazz.all_dates] == [10, 11, 12]

    def test_second_fetch_served_from_cache(self, coordinator, client):
        first = coordinator.fetch({}, 'key')
        second = coordinator.fetch({}, 'key')

        assert first == second
        assert client.get_events.call_count == 1

    def test_cache_expires_after_ttl(self, coordinator, client, clock):
        coordinator.fetch({}, 'key')
        clock.advance(minutes=31)
        coordinator.fetch({}, 'key')

        assert client.get_events.call_count == 2

    def test_error_leaves_cache_untouched(self, coordinator, client, cache):
        """Test that a failed fetch is not cached and propagates."""
        client.get_events.side_effect = RateLimited()

        with pytest.raises(RateLimited):
            coordinator.fetch({}, 'key')

        assert cache.get('key') is None
        assert len(cache) == 0

    def test_none_key_bypasses_cache(self, coordinator, client, cache):
        coordinator.fetch({}, None)
        coordinator.fetch({}, None)

        assert client.get_events.call_count == 2
        assert len(cache) == 0

    def test_malformed_entries_are_skipped(self, coordinator, client):
        client.get_events.return_value = payload(
            {'name': 'No id'},
            tm_event('ok'),
            'garbage',
        )

        events = coordinator.fetch({}, 'key')

        assert [e.id for e in events] == ['tm_ok']

    @pytest.mark.parametrize('fields', [
        {'images': [{'url': 'x.jpg', 'width': '800'}]},
        {'priceRanges': [{'min': 'abc'}]},
    ])
    def test_wrongly_typed_entries_are_skipped(self, coordinator, client, fields):
        """Test one bad field drops its entry, not the whole batch."""
        client.get_events.return_value = payload(
            {**tm_event('bad', name='Broken Show'), **fields},
            tm_event('ok'),
        )

        events = coordinator.fetch({}, 'key')

        assert [e.id for e in events] == ['tm_ok']

    def test_missing_embedded_is_empty(self, coordinator, client):
        client.get_events.return_value = {'page': {'totalElements': 0}}

        assert coordinator.fetch({}, 'key') == []

    @pytest.mark.parametrize('body', [
        {'_embedded': []},
        {'_embedded': {'events': {'id': '1'}}},
    ])
    def test_malformed_payload_raises(self, coordinator, client, body):
        client.get_events.return_value = body

        with pytest.raises(DecodeFailure):
            coordinator.fetch({}, 'key')


class TestQueries:
    """Test cases for the named queries."""

    def test_fetch_featured_params(self, coordinator, client):
        coordinator.fetch_featured(LOCATION, radius=10)

        params = client.get_events.call_args[0][0]
        assert params == {
            'latlong': '41.8781,-87.6298',
            'radius': '10',
            'unit': 'miles',
            'size': '50',
            'sort': 'relevance,desc',
            'locale': '*',
        }

    def test_fetch_featured_with_bounds_uses_separate_cache_key(self, coordinator, client):
        start = datetime(2024, 6, 15, tzinfo=timezone.utc)
        end = datetime(2024, 6, 17, tzinfo=timezone.utc)

        coordinator.fetch_featured(LOCATION)
        coordinator.fetch_featured(LOCATION, start=start, end=end)
        coordinator.fetch_featured(LOCATION, start=start, end=end)

        assert client.get_events.call_count == 2
        params = client.get_events.call_args[0][0]
        assert params['startDateTime'] == '2024-06-15T00:00:00Z'
        assert params['endDateTime'] == '2024-06-17T00:00:00Z'

    def test_different_locations_do_not_share_cache(self, coordinator, client):
        coordinator.fetch_featured(LOCATION)
        coordinator.fetch_featured(Coordinates(40.7128, -74.006))

        assert client.get_events.call_count == 2

    def test_fetch_tonight_uses_local_day(self, client, cache, clock):
        """Test that tonight spans the calendar day in the configured zone."""
        coordinator = FetchCoordinator(client, cache, tz=CHICAGO)

        coordinator.fetch_tonight(LOCATION, now=clock())

        params = client.get_events.call_args[0][0]
        assert params['startDateTime'] == '2024-06-10T05:00:00Z'
        assert params['endDateTime'] == '2024-06-11T05:00:00Z'
        assert params['sort'] == 'date,asc'
        assert params['size'] == '20'

    def test_fetch_tonight_and_featured_are_cached_apart(self, coordinator, client, clock):
        coordinator.fetch_featured(LOCATION)
        coordinator.fetch_tonight(LOCATION, now=clock())

        assert client.get_events.call_count == 2

    def test_fetch_by_category(self, coordinator, client):
        coordinator.fetch_by_category(EventCategory.COMEDY, LOCATION)

        params = client.get_events.call_args[0][0]
        assert params['classificationName'] == 'Comedy'
        assert params['sort'] == 'date,asc'

    @pytest.mark.parametrize('category', [
        EventCategory.ALL,
        EventCategory.FOOD,
        EventCategory.CLASSES,
    ])
    def test_fetch_by_category_without_classification(self, coordinator, client, category):
        assert coordinator.fetch_by_category(category, LOCATION) == []
        client.get_events.assert_not_called()

    def test_search_is_never_cached(self, coordinator, client, cache):
        coordinator.search('  jazz ', LOCATION)
        coordinator.search('jazz', LOCATION)

        assert client.get_events.call_count == 2
        assert client.get_events.call_args[0][0]['keyword'] == 'jazz'
        assert len(cache) == 0

    @pytest.mark.parametrize('keyword', ['', '   '])
    def test_search_rejects_blank_keyword(self, coordinator, client, keyword):
        with pytest.raises(InvalidRequest):
            coordinator.search(keyword, LOCATION)
        client.get_events.assert_not_called()

    def test_clear_cache(self, coordinator, client):
        coordinator.fetch_featured(LOCATION)
        coordinator.clear_cache()
        coordinator.fetch_featured(LOCATION)

        assert client.get_events.call_count == 2


class TestEndToEnd:
    """Test cases running the real client against a mocked endpoint."""

    @responses.activate
    def test_featured_over_http(self, clock):
        responses.add(
            responses.GET,
            EVENTS_URL,
            json=payload(tm_event('1'), tm_event('2', date_time='2024-06-11T01:00:00Z')),
            status=200
        )
        coordinator = FetchCoordinator(
            TicketmasterClient('test-key', retry_base_delay=0),
            ResponseCache(clock=clock)
        )

        events = coordinator.fetch_featured(LOCATION)
        coordinator.fetch_featured(LOCATION)

        assert len(events) == 1
        assert events[0].total_show_count == 2
        assert events[0].category == EventCategory.CONCERTS
        assert len(responses.calls) == 1


def test_format_datetime():
    assert format_datetime(datetime(2024, 6, 10, 0, 0, tzinfo=CHICAGO)) == '2024-06-10T05:00:00Z'
    assert format_datetime(datetime(2024, 6, 10, 12, 30, 15)) == '2024-06-10T12:30:15Z'
