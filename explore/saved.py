"""Optimistic saved-state tracking for events."""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Set

logger = logging.getLogger(__name__)


class SaveState(Enum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


@dataclass
class SaveToggle:
    """A local saved-state flip awaiting the remote write."""
    event_id: str
    saved: bool
    state: SaveState = SaveState.TENTATIVE
    error: Optional[str] = None


class SavedEventTracker:
    """Local set of saved event ids with optimistic updates."""

    def __init__(self, event_ids: Iterable[str] = ()):
        self._saved: Set[str] = set(event_ids)
        self._lock = threading.Lock()

    def is_saved(self, event_id: str) -> bool:
        with self._lock:
            return event_id in self._saved

    def snapshot(self) -> Set[str]:
        with self._lock:
            return set(self._saved)

    def replace(self, event_ids: Iterable[str]) -> None:
        with self._lock:
            self._saved = set(event_ids)

    def begin_toggle(self, event_id: str) -> SaveToggle:
        """Flip the local state immediately and return the pending toggle."""
        with self._lock:
            saved = event_id not in self._saved
            self._set(event_id, saved)
        return SaveToggle(event_id=event_id, saved=saved)

    def confirm(self, toggle: SaveToggle) -> SaveToggle:
        self._require_tentative(toggle)
        toggle.state = SaveState.CONFIRMED
        return toggle

    def roll_back(self, toggle: SaveToggle, error: str) -> SaveToggle:
        """Restore the local state from before the toggle."""
        self._require_tentative(toggle)
        with self._lock:
            self._set(toggle.event_id, not toggle.saved)
        toggle.state = SaveState.ROLLED_BACK
        toggle.error = error
        logger.warning(f"Rolled back saved state for {toggle.event_id}: {error}")
        return toggle

    def _set(self, event_id: str, saved: bool) -> None:
        if saved:
            self._saved.add(event_id)
        else:
            self._saved.discard(event_id)

    @staticmethod
    def _require_tentative(toggle: SaveToggle) -> None:
        if toggle.state is not SaveState.TENTATIVE:
            raise ValueError(f"Toggle for {toggle.event_id} is already {toggle.state.value}")
