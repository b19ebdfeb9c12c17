"""Unit tests for source adapters."""
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from processor.models import EventCategory, EventSource
from sources.adapters import (
    best_image,
    community_category,
    community_document_to_record,
    format_price,
    format_time,
    map_category,
    strip_markup,
    ticketmaster_event_to_record,
)
from sources.errors import DecodeFailure

UTC = timezone.utc


@pytest.fixture
def ticketmaster_entry():
    """A complete Discovery API event entry."""
    return {
        'id': 'G5vYZ9',
        'name': 'Jazz Night',
        'url': 'https://www.ticketmaster.com/event/G5vYZ9',
        'info': '<p>An evening of <b>live</b> jazz.</p>',
        'dates': {
            'start': {
                'localDate': '2024-06-10',
                'localTime': '19:00:00',
                'dateTime': '2024-06-11T00:00:00Z'
            }
        },
        'classifications': [{
            'segment': {'id': 'KZFzniwnSyZfZ7v7nJ', 'name': 'Music'},
            'genre': {'id': 'KnvZfZ7vAvE', 'name': 'Jazz'}
        }],
        'priceRanges': [{'min': 45.5, 'max': 120.0, 'currency': 'USD'}],
        'images': [
            {'url': 'small.jpg', 'ratio': '4_3', 'width': 305},
            {'url': 'wide-huge.jpg', 'ratio': '16_9', 'width': 2048},
            {'url': 'wide-medium.jpg', 'ratio': '16_9', 'width': 1024},
        ],
        '_embedded': {'venues': [{'name': 'Blue Note'}]}
    }


class TestTicketmasterAdapter:
    """Test cases for mapping Discovery API entries."""

    def test_maps_complete_entry(self, ticketmaster_entry):
        record = ticketmaster_event_to_record(ticketmaster_entry)

        assert record.id == 'tm_G5vYZ9'
        assert record.title == 'Jazz Night'
        assert record.venue == 'Blue Note'
        assert record.primary_date == datetime(2024, 6, 11, 0, 0, tzinfo=UTC)
        assert record.time == '7:00 PM'
        assert record.price == '$45'
        assert record.image_url == 'wide-medium.jpg'
        assert record.category == EventCategory.CONCERTS
        assert record.source == EventSource.API
        assert record.tags == frozenset({'jazz'})
        assert record.description == 'An evening of live jazz.'
        assert record.total_show_count == 1
        assert record.additional_dates == ()

    def test_missing_optional_fields_use_defaults(self, clock):
        """Test graceful degradation for a bare entry."""
        record = ticketmaster_event_to_record({'id': '1', 'name': 'Mystery'}, now=clock)

        assert record.time == 'TBA'
        assert record.venue == 'TBA'
        assert record.price == 'See tickets'
        assert record.category == EventCategory.ALL
        assert record.image_url is None
        assert record.tags == frozenset()
        assert record.description == ''
        assert record.primary_date == clock.now

    def test_local_date_used_without_datetime(self):
        chicago = ZoneInfo('America/Chicago')
        entry = {
            'id': '1',
            'name': 'Matinee',
            'dates': {'start': {'localDate': '2024-06-10', 'localTime': '14:30:00'}}
        }

        record = ticketmaster_event_to_record(entry, tz=chicago)

        assert record.primary_date == datetime(2024, 6, 10, 14, 30, tzinfo=chicago)

    @pytest.mark.parametrize('entry', [
        {'name': 'No id'},
        {'id': '1'},
        {'id': '1', 'name': '   '},
        'not an object',
    ])
    def test_malformed_entry_raises(self, entry):
        with pytest.raises(DecodeFailure):
            ticketmaster_event_to_record(entry)

    @pytest.mark.parametrize('fields', [
        {'images': [{'url': 'x.jpg', 'width': '800'}]},
        {'priceRanges': [{'min': 'abc'}]},
        {'dates': {'start': {'localTime': 1900}}},
    ])
    def test_wrongly_typed_fields_raise_decode_failure(self, fields):
        entry = {'id': '1', 'name': 'Jazz Night', **fields}

        with pytest.raises(DecodeFailure):
            ticketmaster_event_to_record(entry)

    def test_non_string_venue_name_reads_as_missing(self):
        entry = {'id': '1', 'name': 'Jazz Night', '_embedded': {'venues': [{'name': 42}]}}

        assert ticketmaster_event_to_record(entry).venue == 'TBA'


class TestCategoryMapping:
    """Test cases for genre and segment category inference."""

    @pytest.mark.parametrize('segment, genre, expected', [
        ('Arts & Theatre', 'Comedy', EventCategory.COMEDY),
        ('Music', 'Stand-Up COMEDY', EventCategory.COMEDY),
        ('Arts & Theatre', 'Theatre', EventCategory.THEATER),
        ('Arts & Theatre', 'Musical', EventCategory.THEATER),
        ('Music', 'Opera', EventCategory.THEATER),
        ('Miscellaneous', 'Food & Drink', EventCategory.FOOD),
        ('Miscellaneous', 'Fine Dining', EventCategory.FOOD),
        ('Miscellaneous', 'Wine Tasting', EventCategory.FOOD),
        ('Miscellaneous', 'Craft Beer', EventCategory.FOOD),
        ('Music', 'Rock', EventCategory.CONCERTS),
        ('Arts & Theatre', 'Dance', EventCategory.THEATER),
        ('Sports', 'Basketball', EventCategory.OUTDOORS),
        ('Film', 'Drama', EventCategory.THEATER),
        ('Miscellaneous', 'Fairs & Festivals', EventCategory.CONCERTS),
        ('Music', None, EventCategory.CONCERTS),
        (None, 'Comedy', EventCategory.ALL),
    ])
    def test_map_category(self, segment, genre, expected):
        assert map_category(segment, genre) == expected

    @pytest.mark.parametrize('value, expected', [
        ('food', EventCategory.FOOD),
        ('outdoors', EventCategory.OUTDOORS),
        ('CLASSES', EventCategory.CLASSES),
        ('knitting', EventCategory.CLASSES),
        (None, EventCategory.CLASSES),
    ])
    def test_community_category(self, value, expected):
        assert community_category(value) == expected


class TestFormatting:
    """Test cases for display formatting helpers."""

    @pytest.mark.parametrize('price_ranges, expected', [
        (None, 'See tickets'),
        ([], 'See tickets'),
        ([{'max': 10}], 'Free'),
        ([{'min': 0}], 'Free'),
        ([{'min': 29.99}], '$29'),
        ([{'min': 120}], '$120'),
    ])
    def test_format_price(self, price_ranges, expected):
        assert format_price(price_ranges) == expected

    @pytest.mark.parametrize('local_time, expected', [
        ('19:00:00', '7:00 PM'),
        ('12:30:00', '12:30 PM'),
        ('00:15:00', '12:15 AM'),
        ('09:05:00', '9:05 AM'),
        (None, 'TBA'),
        ('noon', 'noon'),
        ('xx:30', 'xx:30'),
    ])
    def test_format_time(self, local_time, expected):
        assert format_time(local_time) == expected

    def test_best_image_prefers_widescreen_medium(self):
        images = [
            {'url': 'a.jpg', 'ratio': '3_2', 'width': 640},
            {'url': 'b.jpg', 'ratio': '16_9', 'width': 640},
        ]
        assert best_image(images) == 'b.jpg'

    def test_best_image_ties_keep_original_order(self):
        images = [
            {'url': 'first.jpg', 'ratio': '16_9', 'width': 2048},
            {'url': 'second.jpg', 'ratio': '16_9', 'width': 3000},
        ]
        assert best_image(images) == 'first.jpg'

    def test_best_image_none(self):
        assert best_image(None) is None
        assert best_image([]) is None

    def test_strip_markup(self):
        assert strip_markup('<p>Hello <em>there</em></p>') == 'Hello there'
        assert strip_markup('  plain text ') == 'plain text'
        assert strip_markup(None) == ''


class TestCommunityAdapter:
    """Test cases for mapping community documents."""

    def test_maps_document(self):
        document = {
            'id': 'abc123',
            'title': 'Couples Paint & Sip',
            'description': 'Paint together.',
            'organizerName': 'Art Bar Studio',
            'date': '2024-06-15T23:30:00+00:00',
            'time': '6:30 PM',
            'locationName': 'Art Bar Studio',
            'category': 'classes',
            'isVerified': True,
            'attendeeCount': 24,
            'status': 'approved',
            'imageURL': 'paint.jpg',
            'tags': ['Art', 'wine'],
        }

        record = community_document_to_record(document)

        assert record.id == 'cm_abc123'
        assert record.venue == 'Art Bar Studio'
        assert record.primary_date == datetime(2024, 6, 15, 23, 30, tzinfo=UTC)
        assert record.price == 'Free'
        assert record.category == EventCategory.CLASSES
        assert record.source == EventSource.COMMUNITY
        assert record.tags == frozenset({'art', 'wine'})
        assert record.organizer_name == 'Art Bar Studio'
        assert record.attendee_count == 24
        assert record.is_verified is True
        assert record.image_url == 'paint.jpg'

    def test_generates_id_when_missing(self):
        record = community_document_to_record(
            {'title': 'Picnic', 'date': '2024-06-15T12:00:00Z'}
        )
        assert record.id.startswith('cm_')
        assert len(record.id) > len('cm_')

    @pytest.mark.parametrize('document', [
        {'date': '2024-06-15T12:00:00Z'},
        {'title': 'No date'},
        {'title': 'Bad date', 'date': 'next friday'},
    ])
    def test_malformed_document_raises(self, document):
        with pytest.raises(DecodeFailure):
            community_document_to_record(document)

    @pytest.mark.parametrize('fields', [
        {'attendeeCount': 'lots'},
        {'tags': 7},
    ])
    def test_wrongly_typed_fields_raise_decode_failure(self, fields):
        document = {'title': 'Picnic', 'date': '2024-06-15T12:00:00Z', **fields}

        with pytest.raises(DecodeFailure):
            community_document_to_record(document)

    def test_non_string_text_fields_read_as_missing(self):
        record = community_document_to_record({
            'title': 'Picnic',
            'date': '2024-06-15T12:00:00Z',
            'locationName': 12,
            'organizerName': ['Parks'],
            'imageURL': {'url': 'x.jpg'},
        })

        assert record.venue == ''
        assert record.organizer_name is None
        assert record.image_url is None
