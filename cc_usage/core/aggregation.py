"""
Daily, session and monthly usage aggregation.

Each loader is a pure fold over a fresh run of the usage logs: group the
costed entries, build per-model breakdowns, sum totals, filter by date and
sort. Monthly usage is re-aggregated from the daily output.
"""

from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from cc_usage.config.loader import LoadOptions, SortOrder
from cc_usage.storage.models import SYNTHETIC_MODEL, UsageEntry
from cc_usage.storage.repository import UsageRepository
from .dates import to_compact_date
from .models import DailyUsage, ModelBreakdown, MonthlyUsage, SessionUsage
from .token_counter import TokenUsage


T = TypeVar("T")

UNKNOWN_MODEL = "unknown"


def _add_usage(breakdown: ModelBreakdown, usage: TokenUsage, cost: float) -> ModelBreakdown:
    return ModelBreakdown(
        model_name=breakdown.model_name,
        input_tokens=breakdown.input_tokens + usage.input_tokens,
        output_tokens=breakdown.output_tokens + usage.output_tokens,
        cache_creation_tokens=breakdown.cache_creation_tokens + usage.cache_creation_tokens,
        cache_read_tokens=breakdown.cache_read_tokens + usage.cache_read_tokens,
        cost=breakdown.cost + cost,
    )


def aggregate_by_model(entries: Iterable[UsageEntry]) -> Dict[str, ModelBreakdown]:
    """Sum tokens and cost per model name.

    The synthetic model is skipped; entries without a model are grouped
    under ``unknown``.
    """
    aggregates: Dict[str, ModelBreakdown] = {}
    for entry in entries:
        model_name = entry.model if entry.model is not None else UNKNOWN_MODEL
        if model_name == SYNTHETIC_MODEL:
            continue
        existing = aggregates.get(model_name, ModelBreakdown(model_name=model_name))
        aggregates[model_name] = _add_usage(existing, entry.record.usage, entry.cost)
    return aggregates


def aggregate_model_breakdowns(breakdowns: Iterable[ModelBreakdown]) -> Dict[str, ModelBreakdown]:
    """Merge existing breakdowns by model name, skipping the synthetic model."""
    aggregates: Dict[str, ModelBreakdown] = {}
    for breakdown in breakdowns:
        if breakdown.model_name == SYNTHETIC_MODEL:
            continue
        existing = aggregates.get(breakdown.model_name, ModelBreakdown(model_name=breakdown.model_name))
        usage = TokenUsage(
            input_tokens=breakdown.input_tokens,
            output_tokens=breakdown.output_tokens,
            cache_creation_tokens=breakdown.cache_creation_tokens,
            cache_read_tokens=breakdown.cache_read_tokens,
        )
        aggregates[breakdown.model_name] = _add_usage(existing, usage, breakdown.cost)
    return aggregates


def create_model_breakdowns(aggregates: Dict[str, ModelBreakdown]) -> List[ModelBreakdown]:
    """Breakdowns sorted by cost, most expensive first."""
    return sorted(aggregates.values(), key=lambda b: b.cost, reverse=True)


def calculate_totals(entries: Iterable[UsageEntry]) -> Tuple[TokenUsage, float]:
    """Sum tokens and cost over all entries, synthetic model included."""
    usage = TokenUsage()
    cost = 0.0
    for entry in entries:
        usage = usage + entry.record.usage
        cost += entry.cost
    return usage, cost


def extract_unique_models(models: Iterable[Optional[str]]) -> List[str]:
    """Unique model names in first-seen order, without None or the synthetic model."""
    return list(dict.fromkeys(
        m for m in models if m is not None and m != SYNTHETIC_MODEL
    ))


def filter_by_date_range(
    items: List[T],
    get_date: Callable[[T], str],
    since: Optional[str] = None,
    until: Optional[str] = None
) -> List[T]:
    """Keep items whose date falls within [since, until] (YYYYMMDD, inclusive)."""
    if since is None and until is None:
        return items

    def _in_range(item: T) -> bool:
        date_str = to_compact_date(get_date(item))
        if since is not None and date_str < since:
            return False
        if until is not None and date_str > until:
            return False
        return True

    return [item for item in items if _in_range(item)]


def sort_by_date(
    items: List[T],
    get_date: Callable[[T], str],
    order: SortOrder = SortOrder.DESC
) -> List[T]:
    """Stable sort by an ISO date string; descending unless ASC is given."""
    order = SortOrder(order)
    return sorted(items, key=get_date, reverse=order == SortOrder.DESC)


def _group_by(entries: Iterable[T], key: Callable[[T], str]) -> Dict[str, List[T]]:
    groups: Dict[str, List[T]] = {}
    for entry in entries:
        groups.setdefault(key(entry), []).append(entry)
    return groups


def load_usage_entries(options: Optional[LoadOptions] = None) -> List[UsageEntry]:
    """Resolve the data directory and load all costed entries for one run.

    Raises:
        DataDirectoryError: If no root path is given and the default data
            directory does not exist
    """
    options = options or LoadOptions()
    repository = UsageRepository(options.resolve_root())
    return repository.load_entries(mode=options.mode, offline=options.offline)


def load_daily_usage(options: Optional[LoadOptions] = None) -> List[DailyUsage]:
    """Aggregate usage by local calendar date.

    Args:
        options: Data location, cost mode, date filter and sort order

    Returns:
        Daily usage rows, sorted by date (descending by default)
    """
    options = options or LoadOptions()
    entries = load_usage_entries(options)
    if not entries:
        return []

    results = []
    for date, group in _group_by(entries, lambda e: e.date).items():
        usage, cost = calculate_totals(group)
        results.append(DailyUsage(
            date=date,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cache_creation_tokens=usage.cache_creation_tokens,
            cache_read_tokens=usage.cache_read_tokens,
            total_cost=cost,
            models_used=extract_unique_models(e.model for e in group),
            model_breakdowns=create_model_breakdowns(aggregate_by_model(group)),
        ))

    filtered = filter_by_date_range(results, lambda d: d.date, options.since, options.until)
    return sort_by_date(filtered, lambda d: d.date, options.order)


def load_session_usage(options: Optional[LoadOptions] = None) -> List[SessionUsage]:
    """Aggregate usage by conversation session (project path + session id).

    Args:
        options: Data location, cost mode, date filter and sort order

    Returns:
        Session usage rows, sorted by last activity date (descending by default)
    """
    options = options or LoadOptions()
    entries = load_usage_entries(options)
    if not entries:
        return []

    results = []
    for group in _group_by(entries, lambda e: e.session_key).values():
        latest = max(group, key=lambda e: e.timestamp)
        versions = sorted({e.record.version for e in group if e.record.version is not None})
        usage, cost = calculate_totals(group)
        results.append(SessionUsage(
            session_id=latest.session_id,
            project_path=latest.project_path,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cache_creation_tokens=usage.cache_creation_tokens,
            cache_read_tokens=usage.cache_read_tokens,
            total_cost=cost,
            last_activity=latest.date,
            versions=versions,
            models_used=extract_unique_models(e.model for e in group),
            model_breakdowns=create_model_breakdowns(aggregate_by_model(group)),
        ))

    filtered = filter_by_date_range(results, lambda s: s.last_activity, options.since, options.until)
    return sort_by_date(filtered, lambda s: s.last_activity, options.order)


def load_monthly_usage(options: Optional[LoadOptions] = None) -> List[MonthlyUsage]:
    """Aggregate usage by calendar month from the daily report.

    Totals are sums of daily totals; breakdowns are merged from daily
    breakdowns. Daily totals include synthetic-model tokens while
    breakdowns never do, so a month's totals can exceed the sum of its
    breakdowns.

    Args:
        options: Data location, cost mode, date filter and sort order

    Returns:
        Monthly usage rows, sorted by month (descending by default)
    """
    options = options or LoadOptions()
    daily = load_daily_usage(options)

    results = []
    for month, days in _group_by(daily, lambda d: d.date[:7]).items():
        breakdowns = aggregate_model_breakdowns(b for d in days for b in d.model_breakdowns)
        results.append(MonthlyUsage(
            month=month,
            input_tokens=sum(d.input_tokens for d in days),
            output_tokens=sum(d.output_tokens for d in days),
            cache_creation_tokens=sum(d.cache_creation_tokens for d in days),
            cache_read_tokens=sum(d.cache_read_tokens for d in days),
            total_cost=sum(d.total_cost for d in days),
            models_used=extract_unique_models(m for d in days for m in d.models_used),
            model_breakdowns=create_model_breakdowns(breakdowns),
        ))

    return sort_by_date(results, lambda m: f"{m.month}-01", options.order)
