"""Saved (favorited) events per couple."""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Set

from processor.models import EventSource
from storage.document_store import DocumentStore

logger = logging.getLogger(__name__)


class SavedEventStore:
    """Store of event ids a couple has saved."""

    COLLECTION = "savedEvents"

    def __init__(
        self,
        store: DocumentStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        self.store = store
        self.clock = clock

    def fetch_saved_event_ids(self, couple_id: str) -> Set[str]:
        return {doc['eventId'] for doc in self.fetch_saved_events(couple_id) if doc.get('eventId')}

    def fetch_saved_events(self, couple_id: str) -> List[dict]:
        return self.store.query(self.COLLECTION, {'coupleId': couple_id})

    def save_event(
        self,
        couple_id: str,
        event_id: str,
        source: EventSource,
        user_id: str
    ) -> str:
        """
        Save an event for a couple.

        Args:
            couple_id: Couple the event is saved for
            event_id: EventRecord id
            source: Origin of the event
            user_id: Partner who saved it

        Returns:
            Id of the saved-event document
        """
        doc_id = self.store.insert(self.COLLECTION, {
            'coupleId': couple_id,
            'eventId': event_id,
            'source': source.value,
            'savedAt': self.clock().isoformat(),
            'savedBy': user_id,
        })
        logger.info(f"Saved event {event_id} for couple {couple_id}")
        return doc_id

    def unsave_event(self, couple_id: str, event_id: str) -> int:
        """Remove every saved copy of ``event_id`` for the couple."""
        removed = self.store.delete(
            self.COLLECTION,
            {'coupleId': couple_id, 'eventId': event_id}
        )
        logger.info(f"Unsaved event {event_id} for couple {couple_id} ({removed} removed)")
        return removed

    def is_event_saved(self, couple_id: str, event_id: str) -> bool:
        return bool(self.store.query(
            self.COLLECTION,
            {'coupleId': couple_id, 'eventId': event_id}
        ))
