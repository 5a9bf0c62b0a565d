"""
Data models for the ingestion layer.

Defines the validated usage record and the costed entry that the
aggregators fold over.
"""

from dataclasses import dataclass, field
from typing import Optional

from cc_usage.core.token_counter import TokenUsage

SYNTHETIC_MODEL = "<synthetic>"
UNKNOWN_PROJECT = "Unknown Project"


@dataclass(frozen=True)
class UsageRecord:
    """Immutable usage event parsed from one log line.

    Older log lines carry a pre-computed ``cost_usd``; newer ones only
    carry token counts and a model name. Both shapes share this type.
    """
    timestamp: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    version: Optional[str] = None
    model: Optional[str] = None
    message_id: Optional[str] = None
    request_id: Optional[str] = None
    cost_usd: Optional[float] = None


@dataclass(frozen=True)
class UsageEntry:
    """A deduplicated record with its resolved cost and grouping keys."""
    record: UsageRecord
    cost: float
    date: str
    session_id: str
    project_path: str = UNKNOWN_PROJECT

    @property
    def timestamp(self) -> str:
        return self.record.timestamp

    @property
    def model(self) -> Optional[str]:
        return self.record.model

    @property
    def session_key(self) -> str:
        return f"{self.project_path}/{self.session_id}"
