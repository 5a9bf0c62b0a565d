"""
Aggregated usage report entities.

All entities are immutable and built once per report. ``to_dict`` returns
the camelCase shape used by the JSON exporters.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ModelBreakdown:
    """Token and cost subtotal for one model within an aggregate."""
    model_name: str
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens + self.output_tokens
                + self.cache_creation_tokens + self.cache_read_tokens)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "modelName": self.model_name,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheCreationTokens": self.cache_creation_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "cost": self.cost,
        }


@dataclass(frozen=True)
class _UsageTotals:
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    total_cost: float

    @property
    def total_tokens(self) -> int:
        return (self.input_tokens + self.output_tokens
                + self.cache_creation_tokens + self.cache_read_tokens)

    def _totals_dict(self) -> Dict[str, Any]:
        return {
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "cacheCreationTokens": self.cache_creation_tokens,
            "cacheReadTokens": self.cache_read_tokens,
            "totalCost": self.total_cost,
        }


@dataclass(frozen=True)
class DailyUsage(_UsageTotals):
    """Usage for one local calendar date (YYYY-MM-DD)."""
    date: str
    models_used: List[str] = field(default_factory=list)
    model_breakdowns: List[ModelBreakdown] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            **self._totals_dict(),
            "modelsUsed": list(self.models_used),
            "modelBreakdowns": [b.to_dict() for b in self.model_breakdowns],
        }


@dataclass(frozen=True)
class SessionUsage(_UsageTotals):
    """Usage for one conversation session."""
    session_id: str
    project_path: str
    last_activity: str
    versions: List[str] = field(default_factory=list)
    models_used: List[str] = field(default_factory=list)
    model_breakdowns: List[ModelBreakdown] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "projectPath": self.project_path,
            **self._totals_dict(),
            "lastActivity": self.last_activity,
            "versions": list(self.versions),
            "modelsUsed": list(self.models_used),
            "modelBreakdowns": [b.to_dict() for b in self.model_breakdowns],
        }


@dataclass(frozen=True)
class MonthlyUsage(_UsageTotals):
    """Usage for one calendar month (YYYY-MM), derived from daily usage."""
    month: str
    models_used: List[str] = field(default_factory=list)
    model_breakdowns: List[ModelBreakdown] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            **self._totals_dict(),
            "modelsUsed": list(self.models_used),
            "modelBreakdowns": [b.to_dict() for b in self.model_breakdowns],
        }


@dataclass(frozen=True)
class WindowUsage(_UsageTotals):
    """Usage within one fixed 5-hour UTC window (id YYYY-MM-DD-HH)."""
    window_id: str
    month: str
    start_timestamp: str
    end_timestamp: str
    message_count: int
    session_count: int
    duration: int  # milliseconds
    models_used: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "windowId": self.window_id,
            "month": self.month,
            "startTimestamp": self.start_timestamp,
            "endTimestamp": self.end_timestamp,
            "messageCount": self.message_count,
            "sessionCount": self.session_count,
            **self._totals_dict(),
            "duration": self.duration,
            "modelsUsed": list(self.models_used),
        }


@dataclass(frozen=True)
class MonthlyWindowSummary:
    """Window usage rolled up per month, with optional session limit."""
    month: str
    window_count: int
    total_cost: float
    total_tokens: int
    windows: List[WindowUsage] = field(default_factory=list)
    session_limit: Optional[int] = None
    remaining_sessions: Optional[int] = None
    utilization_percent: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "month": self.month,
            "windowCount": self.window_count,
            "totalCost": self.total_cost,
            "totalTokens": self.total_tokens,
        }
        if self.session_limit is not None:
            data["sessionLimit"] = self.session_limit
            data["remainingSessions"] = self.remaining_sessions
            data["utilizationPercent"] = self.utilization_percent
        data["windows"] = [w.to_dict() for w in self.windows]
        return data
