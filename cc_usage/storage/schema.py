"""
Wire schema for usage log lines.

One permissive schema accepts both the older log shape (with a
pre-computed ``costUSD``) and the newer one (tokens and model only).
"""

import json
import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, ValidationError, field_validator

from cc_usage.core.dates import parse_timestamp
from cc_usage.core.token_counter import TokenUsage
from .models import UsageRecord

logger = logging.getLogger(__name__)


class RawUsage(BaseModel):
    """``message.usage`` object. Every count is optional and defaults to 0."""
    model_config = ConfigDict(extra="ignore")

    input_tokens: Optional[NonNegativeInt] = None
    output_tokens: Optional[NonNegativeInt] = None
    cache_creation_input_tokens: Optional[NonNegativeInt] = None
    cache_read_input_tokens: Optional[NonNegativeInt] = None

    def to_token_usage(self) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens or 0,
            output_tokens=self.output_tokens or 0,
            cache_creation_tokens=self.cache_creation_input_tokens or 0,
            cache_read_tokens=self.cache_read_input_tokens or 0,
        )


class RawMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    usage: RawUsage
    model: Optional[str] = None
    id: Optional[str] = None


class RawUsageLine(BaseModel):
    """One JSONL line. ``timestamp`` and ``message.usage`` are required."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    timestamp: str
    message: RawMessage
    version: Optional[str] = None
    cost_usd: Optional[float] = Field(default=None, alias="costUSD")
    request_id: Optional[str] = Field(default=None, alias="requestId")

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: str) -> str:
        if parse_timestamp(value) is None:
            raise ValueError(f"unparseable timestamp: {value!r}")
        return value

    def to_record(self) -> UsageRecord:
        return UsageRecord(
            timestamp=self.timestamp,
            usage=self.message.usage.to_token_usage(),
            version=self.version,
            model=self.message.model,
            message_id=self.message.id,
            request_id=self.request_id,
            cost_usd=self.cost_usd,
        )


def parse_usage_line(line: str) -> Optional[UsageRecord]:
    """Parse and validate a single log line.

    Invalid lines are rejected silently (logged at debug level) so that
    one bad line never aborts a report.

    Args:
        line: Raw text of one JSONL line

    Returns:
        The validated UsageRecord, or None if the line is rejected
    """
    text = line.strip()
    if not text:
        return None

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug("Skipping malformed JSON line: %s", e)
        return None

    try:
        parsed = RawUsageLine.model_validate(payload)
    except ValidationError as e:
        logger.debug("Skipping line that failed validation: %d error(s)", e.error_count())
        return None

    return parsed.to_record()
