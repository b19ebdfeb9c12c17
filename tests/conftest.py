"""Shared fixtures for the test suite."""
from datetime import datetime, timedelta, timezone

import boto3
import pytest
from moto import mock_aws

from processor.models import EventCategory, EventRecord, EventSource
from storage.document_store import DynamoDBDocumentStore

UTC = timezone.utc


class FakeClock:
    """Settable clock returning a fixed instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock fixed at 2024-06-10 15:00 UTC (a Monday)."""
    return FakeClock(datetime(2024, 6, 10, 15, 0, tzinfo=UTC))


@pytest.fixture
def make_record():
    """Factory for EventRecords with sensible defaults."""
    def _make(
        title='Jazz Night',
        venue='Blue Note',
        primary_date=None,
        category=EventCategory.CONCERTS,
        **fields
    ):
        fields.setdefault('id', f"tm_{title.lower().replace(' ', '-')}")
        fields.setdefault('time', '8:00 PM')
        fields.setdefault('price', '$25')
        fields.setdefault('source', EventSource.API)
        return EventRecord(
            title=title,
            venue=venue,
            primary_date=primary_date or datetime(2024, 6, 10, 20, 0, tzinfo=UTC),
            category=category,
            **fields
        )
    return _make


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never touches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def dynamodb_tables(aws_credentials):
    """Create mock DynamoDB tables for each collection."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')
        for collection in ('communityEvents', 'savedEvents'):
            dynamodb.create_table(
                TableName=f'test_{collection}',
                KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
                AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
                BillingMode='PAY_PER_REQUEST'
            )
        yield dynamodb


@pytest.fixture
def document_store(dynamodb_tables):
    """Create DynamoDBDocumentStore instance with mock tables."""
    return DynamoDBDocumentStore(table_prefix='test_', region_name='us-east-1')
