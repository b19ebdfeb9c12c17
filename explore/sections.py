"""Loadable sections of the explore feed."""
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Sequence

from processor.models import EventRecord
from sources.errors import FetchError, NoResults

logger = logging.getLogger(__name__)

Loader = Callable[[], Sequence[EventRecord]]


class SectionStatus(Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class Section:
    """
    One independently loaded list of events.

    A section moves Idle -> Loading -> Loaded | Failed. Failures are caught
    here so that sibling sections keep loading. Overlapping loads are not
    cancelled; whichever finishes last decides the visible state.
    """

    GENERIC_ERROR = "Could not load events. Please try again."

    def __init__(self, name: str, placeholders: Sequence[EventRecord] = ()):
        self.name = name
        self.placeholders = list(placeholders)
        self.status = SectionStatus.IDLE
        self.error_message: Optional[str] = None
        self._records: List[EventRecord] = []
        self._loader: Optional[Loader] = None
        self._lock = threading.Lock()

    @property
    def records(self) -> List[EventRecord]:
        """Live records from the last successful load."""
        with self._lock:
            return list(self._records)

    @property
    def events(self) -> List[EventRecord]:
        """Live records, or the placeholders when the live fetch found nothing."""
        with self._lock:
            return list(self._records) if self._records else list(self.placeholders)

    @property
    def empty_message(self) -> Optional[str]:
        if self.status is SectionStatus.LOADED and not self.records:
            return str(NoResults())
        return None

    def load(self, loader: Loader) -> SectionStatus:
        """
        Run ``loader`` and record its outcome.

        Returns:
            Status after this load completed
        """
        with self._lock:
            self._loader = loader
            self.status = SectionStatus.LOADING

        try:
            records = list(loader())
        except Exception as e:
            logger.error(
                f"Failed to load {self.name} events: {e}",
                extra={'section': self.name, 'error_type': type(e).__name__},
                exc_info=True
            )
            with self._lock:
                self.status = SectionStatus.FAILED
                self.error_message = str(e) if isinstance(e, FetchError) else self.GENERIC_ERROR
            return SectionStatus.FAILED

        with self._lock:
            self._records = records
            self.status = SectionStatus.LOADED
            self.error_message = None
        logger.info(f"Loaded {len(records)} {self.name} events")
        return SectionStatus.LOADED

    def retry(self) -> SectionStatus:
        """
        Reload a failed section with its last loader.

        Raises:
            RuntimeError: If the section is not in the failed state
        """
        if self.status is not SectionStatus.FAILED or self._loader is None:
            raise RuntimeError(f"Section {self.name} has nothing to retry")
        return self.load(self._loader)

    def to_dict(self, events: Sequence[EventRecord]) -> dict:
        return {
            'status': self.status.value,
            'error': self.error_message,
            'empty_message': self.empty_message,
            'events': [event.to_dict() for event in events],
        }
