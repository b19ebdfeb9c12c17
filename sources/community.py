"""Community-submitted events stored in the document store."""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from processor.event_processor import EventProcessor
from processor.models import EventRecord
from sources.adapters import community_document_to_record
from sources.errors import DecodeFailure, InvalidRequest
from storage.document_store import DocumentStore

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"


@dataclass
class CommunityEventDocument:
    """Community event as submitted by an organizer."""
    title: str
    date: datetime
    description: str = ""
    organizer_name: str = ""
    organizer_email: str = ""
    time: str = ""
    location_name: str = ""
    category: str = "classes"
    is_verified: bool = False
    attendee_count: int = 0
    status: str = STATUS_PENDING
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None

    def to_item(self) -> dict:
        """Document fields as stored in the collection."""
        return {
            'title': self.title,
            'description': self.description,
            'organizerName': self.organizer_name,
            'organizerEmail': self.organizer_email,
            'date': self.date.isoformat(),
            'time': self.time,
            'locationName': self.location_name,
            'category': self.category.lower(),
            'isVerified': self.is_verified,
            'attendeeCount': self.attendee_count,
            'status': self.status,
            'imageURL': self.image_url,
            'tags': list(self.tags),
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class CommunityEventService:
    """Service for fetching and submitting community events."""

    COLLECTION = "communityEvents"

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        processor: Optional[EventProcessor] = None
    ):
        self.store = store
        self.clock = clock
        self.processor = processor or EventProcessor()

    def fetch_approved_events(self) -> List[EventRecord]:
        """
        Fetch all approved community events, earliest first.

        Malformed documents are skipped and repeated sessions of the same
        event are consolidated into one record.
        """
        documents = self.store.query(self.COLLECTION, {'status': STATUS_APPROVED})
        return self._to_records(documents)

    def fetch_events(self, category: str) -> List[EventRecord]:
        """Fetch approved community events in one category."""
        documents = self.store.query(
            self.COLLECTION,
            {'status': STATUS_APPROVED, 'category': category.lower()}
        )
        return self._to_records(documents)

    def submit_event(self, document: CommunityEventDocument) -> str:
        """
        Submit a new community event for review.

        The stored document is always pending, whatever status was passed in.

        Returns:
            Id of the new document

        Raises:
            InvalidRequest: If the event has no title
        """
        if not document.title or not document.title.strip():
            raise InvalidRequest("Community event needs a title")

        document.status = STATUS_PENDING
        document.created_at = self.clock()
        doc_id = self.store.insert(self.COLLECTION, document.to_item())
        logger.info(f"Submitted community event '{document.title}' as {doc_id}")
        return doc_id

    def seed_sample_events(self) -> int:
        """
        Seed sample approved events into an empty collection.

        Returns:
            Count of documents written (0 if the collection had data)
        """
        if not self.store.is_empty(self.COLLECTION):
            logger.info("Community collection already has events, not seeding")
            return 0

        now = self.clock()
        documents = sample_community_documents(now)
        for document in documents:
            document.created_at = now
            self.store.insert(self.COLLECTION, document.to_item())
        logger.info(f"Seeded {len(documents)} sample community events")
        return len(documents)

    def _to_records(self, documents: List[dict]) -> List[EventRecord]:
        records = []
        for document in documents:
            try:
                records.append(community_document_to_record(document))
            except DecodeFailure as e:
                logger.warning(f"Skipping malformed community document {document.get('id')}: {e}")
                continue

        # Earliest session first, so each merged record keeps the earliest document's id
        records.sort(key=lambda record: record.primary_date)
        return self.processor.deduplicate(records)


def sample_community_documents(now: datetime) -> List[CommunityEventDocument]:
    return [
        CommunityEventDocument(
            title="Couples Paint & Sip",
            description="Paint a masterpiece together while enjoying wine and snacks. No experience needed!",
            organizer_name="Art Bar Studio",
            organizer_email="info@artbarstudio.com",
            date=now + timedelta(days=5),
            time="6:30 PM",
            location_name="Art Bar Studio",
            category="classes",
            is_verified=True,
            attendee_count=24,
            status=STATUS_APPROVED,
            tags=["art", "wine", "social"],
        ),
        CommunityEventDocument(
            title="Salsa Dancing for Beginners",
            description="Learn the basics of salsa dancing with your partner.",
            organizer_name="Dance Central Academy",
            organizer_email="hello@dancecentral.com",
            date=now + timedelta(days=3),
            time="7:00 PM",
            location_name="Dance Central",
            category="classes",
            is_verified=True,
            attendee_count=18,
            status=STATUS_APPROVED,
            tags=["dance", "active", "fun"],
        ),
        CommunityEventDocument(
            title="Couples Cooking: Italian Night",
            description="Cook a full Italian dinner together with a professional chef.",
            organizer_name="Chef Marco",
            organizer_email="marco@chefskitchen.com",
            date=now + timedelta(days=6),
            time="6:00 PM",
            location_name="Chef's Kitchen",
            category="food",
            attendee_count=12,
            status=STATUS_APPROVED,
            tags=["cooking", "italian", "hands-on"],
        ),
        CommunityEventDocument(
            title="Outdoor Movie Night",
            description="Bring a blanket for a classic movie under the stars. Popcorn provided!",
            organizer_name="Parks & Rec Dept",
            organizer_email="events@parksrec.com",
            date=now + timedelta(days=2),
            time="8:00 PM",
            location_name="Riverside Park",
            category="outdoors",
            is_verified=True,
            attendee_count=56,
            status=STATUS_APPROVED,
            tags=["movie", "free", "outdoor"],
        ),
    ]
