"""
Per-record cost resolution.

Three modes decide whether the pre-computed cost in a log line is trusted
or the cost is recalculated from token counts.
"""

from typing import Optional

from cc_usage.config.loader import CostMode
from cc_usage.storage.models import UsageRecord
from .pricing import PricingFetcher


def calculate_cost_for_entry(
    record: UsageRecord,
    mode: CostMode,
    fetcher: Optional[PricingFetcher]
) -> float:
    """Resolve the cost of one record.

    - DISPLAY: the pre-computed cost, or 0. Pricing is never consulted.
    - CALCULATE: tokens x model rates; 0 if the model is missing or unknown.
    - AUTO: the pre-computed cost if present, otherwise as CALCULATE.

    Args:
        record: Validated usage record
        mode: Cost mode
        fetcher: Pricing source; may be None in DISPLAY mode

    Returns:
        Cost in USD

    Raises:
        ValueError: If a pricing source is required but not provided
    """
    mode = CostMode(mode)

    if mode == CostMode.DISPLAY:
        return record.cost_usd if record.cost_usd is not None else 0.0

    if mode == CostMode.AUTO and record.cost_usd is not None:
        return record.cost_usd

    if record.model is None:
        return 0.0

    if fetcher is None:
        raise ValueError(f"A pricing fetcher is required in {mode.value} mode")
    return fetcher.calculate_cost_from_tokens(record.usage, record.model)
