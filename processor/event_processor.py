"""Event processor for consolidating and filtering event records."""
import logging
from typing import Dict, Iterable, List, Optional

from processor.models import DateRange, EventCategory, EventRecord

logger = logging.getLogger(__name__)


class EventProcessor:
    """Processor for deduplicating and filtering event records."""

    def deduplicate(self, records: Iterable[EventRecord]) -> List[EventRecord]:
        """
        Consolidate records of the same show into single entries.

        Records are grouped by deduplication key. The first record seen for
        a key is the merge base and later occurrences are folded into it.

        Args:
            records: EventRecords in upstream order

        Returns:
            One record per key, in first-seen key order
        """
        merged: Dict[str, EventRecord] = {}
        order: List[str] = []
        total = 0

        for record in records:
            total += 1
            key = record.deduplication_key
            existing = merged.get(key)
            if existing is not None:
                merged[key] = existing.merge(record)
            else:
                merged[key] = record
                order.append(key)

        if total != len(order):
            logger.debug(
                f"Consolidated {total} records into {len(order)} shows"
            )
        return [merged[key] for key in order]

    def filter_by_category(
        self,
        records: Iterable[EventRecord],
        category: EventCategory
    ) -> List[EventRecord]:
        """Keep records in ``category``; ALL keeps everything."""
        if category is EventCategory.ALL:
            return list(records)
        return [record for record in records if record.category is category]

    def filter_by_date_range(
        self,
        records: Iterable[EventRecord],
        date_range: Optional[DateRange]
    ) -> List[EventRecord]:
        """Keep records with any occurrence inside ``date_range``."""
        if date_range is None:
            return list(records)
        return [
            record for record in records
            if record.has_date_in_range(date_range)
        ]

    def apply_filters(
        self,
        records: Iterable[EventRecord],
        category: EventCategory,
        date_range: Optional[DateRange]
    ) -> List[EventRecord]:
        """Category filter first, then date range."""
        return self.filter_by_date_range(
            self.filter_by_category(records, category),
            date_range
        )


def deduplicate(records: Iterable[EventRecord]) -> List[EventRecord]:
    """Module-level shortcut for ``EventProcessor().deduplicate``."""
    return EventProcessor().deduplicate(records)
