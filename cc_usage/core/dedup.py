"""
Duplicate suppression for usage records.

The same assistant response can be logged more than once (resumed or
branched conversations copy earlier lines). Records are identified by
their message id and request id.
"""

from typing import Optional, Set

from cc_usage.storage.models import UsageRecord


def create_unique_hash(record: UsageRecord) -> Optional[str]:
    """Build the identity key for a record.

    Returns:
        ``"{message_id}:{request_id}"``, or None if either id is missing
    """
    if record.message_id is None or record.request_id is None:
        return None
    return f"{record.message_id}:{record.request_id}"


class Deduplicator:
    """Tracks identity keys seen during one aggregation run."""

    def __init__(self):
        self._processed: Set[str] = set()

    def is_duplicate(self, unique_hash: Optional[str]) -> bool:
        if unique_hash is None:
            return False
        return unique_hash in self._processed

    def mark_processed(self, unique_hash: Optional[str]) -> None:
        if unique_hash is not None:
            self._processed.add(unique_hash)

    def accept(self, record: UsageRecord) -> bool:
        """Return True if the record should be kept.

        The first record with a given key wins; records without a key are
        always kept.
        """
        unique_hash = create_unique_hash(record)
        if self.is_duplicate(unique_hash):
            return False
        self.mark_processed(unique_hash)
        return True

    def __len__(self) -> int:
        return len(self._processed)
