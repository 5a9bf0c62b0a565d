"""
Fixed 5-hour usage window aggregation.

The UTC day is split into five windows starting at 00, 05, 10, 15 and
20 hours. Windows are rolled up per month to track usage against a
monthly session limit.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Set

from cc_usage.config.loader import LoadOptions
from cc_usage.storage.models import SYNTHETIC_MODEL, UsageEntry
from .aggregation import filter_by_date_range, load_usage_entries, sort_by_date
from .dates import parse_timestamp, to_utc
from .models import MonthlyWindowSummary, WindowUsage
from .token_counter import TokenUsage

WINDOW_HOURS = 5


def get_window_id(timestamp: str) -> str:
    """Window identifier ``YYYY-MM-DD-HH`` for a timestamp.

    HH is the largest window boundary not after the UTC hour, so a
    timestamp exactly on a boundary opens the new window.

    Raises:
        ValueError: If the timestamp cannot be parsed
    """
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {timestamp}")
    utc = to_utc(parsed)
    start_hour = (utc.hour // WINDOW_HOURS) * WINDOW_HOURS
    return f"{utc:%Y-%m-%d}-{start_hour:02d}"


def _duration_ms(start: str, end: str) -> int:
    delta = to_utc(parse_timestamp(end)) - to_utc(parse_timestamp(start))
    return delta // timedelta(milliseconds=1)


@dataclass
class _WindowAccumulator:
    window_id: str
    start_timestamp: str
    end_timestamp: str
    message_count: int = 0
    usage: TokenUsage = field(default_factory=TokenUsage)
    total_cost: float = 0.0
    sessions: Set[str] = field(default_factory=set)
    models: List[str] = field(default_factory=list)

    def add(self, entry: UsageEntry) -> None:
        self.message_count += 1
        self.usage = self.usage + entry.record.usage
        self.total_cost += entry.cost
        # ISO-8601 strings with consistent precision compare chronologically
        if entry.timestamp < self.start_timestamp:
            self.start_timestamp = entry.timestamp
        if entry.timestamp > self.end_timestamp:
            self.end_timestamp = entry.timestamp
        self.sessions.add(entry.session_key)
        model = entry.model
        if model is not None and model != SYNTHETIC_MODEL and model not in self.models:
            self.models.append(model)

    def freeze(self) -> WindowUsage:
        return WindowUsage(
            window_id=self.window_id,
            month=self.window_id[:7],
            start_timestamp=self.start_timestamp,
            end_timestamp=self.end_timestamp,
            message_count=self.message_count,
            session_count=len(self.sessions),
            input_tokens=self.usage.input_tokens,
            output_tokens=self.usage.output_tokens,
            cache_creation_tokens=self.usage.cache_creation_tokens,
            cache_read_tokens=self.usage.cache_read_tokens,
            total_cost=self.total_cost,
            duration=_duration_ms(self.start_timestamp, self.end_timestamp),
            models_used=list(self.models),
        )


def calculate_window_statistics(entries: Iterable[UsageEntry]) -> Dict[str, WindowUsage]:
    """Fold costed entries into 5-hour windows.

    Session counts are the number of distinct session keys among the
    entries of each window. Duration is computed once all entries of the
    window are seen.

    Args:
        entries: Deduplicated, costed entries

    Returns:
        Mapping of window id to WindowUsage, in first-seen order
    """
    accumulators: Dict[str, _WindowAccumulator] = {}
    for entry in entries:
        window_id = get_window_id(entry.timestamp)
        accumulator = accumulators.get(window_id)
        if accumulator is None:
            accumulator = _WindowAccumulator(
                window_id=window_id,
                start_timestamp=entry.timestamp,
                end_timestamp=entry.timestamp,
            )
            accumulators[window_id] = accumulator
        accumulator.add(entry)

    return {window_id: acc.freeze() for window_id, acc in accumulators.items()}


def group_windows_by_month(
    windows: Mapping[str, WindowUsage],
    session_limit: Optional[int] = None
) -> List[MonthlyWindowSummary]:
    """Roll windows up per month.

    With a session limit, each month also reports the remaining sessions
    (never below zero) and utilization percent (may exceed 100).

    Args:
        windows: Window id to WindowUsage mapping
        session_limit: Optional monthly window allowance

    Returns:
        Summaries sorted by month, most recent first; windows inside each
        summary sorted by window id, most recent first
    """
    if session_limit is not None and session_limit <= 0:
        raise ValueError("session_limit must be > 0")

    by_month: Dict[str, List[WindowUsage]] = {}
    for window in windows.values():
        by_month.setdefault(window.month, []).append(window)

    summaries = []
    for month, month_windows in by_month.items():
        window_count = len(month_windows)
        limit_fields = {}
        if session_limit is not None:
            limit_fields = {
                "session_limit": session_limit,
                "remaining_sessions": max(0, session_limit - window_count),
                "utilization_percent": window_count / session_limit * 100,
            }
        summaries.append(MonthlyWindowSummary(
            month=month,
            window_count=window_count,
            total_cost=sum(w.total_cost for w in month_windows),
            total_tokens=sum(w.total_tokens for w in month_windows),
            windows=sorted(month_windows, key=lambda w: w.window_id, reverse=True),
            **limit_fields,
        ))

    return sorted(summaries, key=lambda s: s.month, reverse=True)


def load_window_summaries(
    options: Optional[LoadOptions] = None,
    session_limit: Optional[int] = None
) -> List[MonthlyWindowSummary]:
    """Load usage logs and summarize 5-hour windows per month.

    The date filter applies to each window's UTC date. Months follow the
    requested sort order.
    """
    options = options or LoadOptions()
    windows = calculate_window_statistics(load_usage_entries(options))
    kept = filter_by_date_range(
        list(windows.values()), lambda w: w.window_id[:10], options.since, options.until
    )
    summaries = group_windows_by_month({w.window_id: w for w in kept}, session_limit)
    return sort_by_date(summaries, lambda s: s.month, options.order)
