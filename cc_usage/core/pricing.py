"""
Pricing calculations and rate management.

Rates are kept per million tokens. Live rates come from the LiteLLM model
price list; a bundled snapshot covers offline use and fetch failures.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

import httpx

from .token_counter import TokenUsage

logger = logging.getLogger(__name__)

LITELLM_PRICING_URL = (
    "https://raw.githubusercontent.com/BerriAI/litellm/main/"
    "model_prices_and_context_window.json"
)
TOKENS_PER_MILLION = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-million-token rates for a specific model."""
    input_cost_per_mtok: Decimal
    output_cost_per_mtok: Decimal
    cache_creation_cost_per_mtok: Decimal = Decimal("0")
    cache_read_cost_per_mtok: Decimal = Decimal("0")


@dataclass(frozen=True)
class PricingTable:
    """Keyed lookup from model name to rates."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> Optional[ModelPricing]:
        """Get pricing for a model, tolerating naming differences.

        Lookup order: exact name, provider-prefixed variants, then a
        case-insensitive substring match in either direction.

        Args:
            model: Model identifier as written in the usage log

        Returns:
            ModelPricing for the model, or None if it is not known
        """
        if not model:
            return None
        if model in self.prices:
            return self.prices[model]

        for variant in (
            f"anthropic/{model}",
            f"claude-3-5-{model}",
            f"claude-3-{model}",
            f"claude-{model}",
        ):
            if variant in self.prices:
                return self.prices[variant]

        lower_model = model.lower()
        for name, pricing in self.prices.items():
            lower_name = name.lower()
            if lower_model in lower_name or lower_name in lower_model:
                return pricing
        return None


def _rates(input_rate: str, output_rate: str, cache_write: str, cache_read: str) -> ModelPricing:
    return ModelPricing(
        input_cost_per_mtok=Decimal(input_rate),
        output_cost_per_mtok=Decimal(output_rate),
        cache_creation_cost_per_mtok=Decimal(cache_write),
        cache_read_cost_per_mtok=Decimal(cache_read),
    )


# Snapshot of Anthropic list prices (USD per million tokens)
OFFLINE_PRICING = PricingTable({
    "claude-opus-4-20250514": _rates("15.00", "75.00", "18.75", "1.50"),
    "claude-opus-4-1-20250805": _rates("15.00", "75.00", "18.75", "1.50"),
    "claude-sonnet-4-20250514": _rates("3.00", "15.00", "3.75", "0.30"),
    "claude-3-7-sonnet-20250219": _rates("3.00", "15.00", "3.75", "0.30"),
    "claude-3-5-sonnet-20241022": _rates("3.00", "15.00", "3.75", "0.30"),
    "claude-3-5-sonnet-20240620": _rates("3.00", "15.00", "3.75", "0.30"),
    "claude-3-5-haiku-20241022": _rates("0.80", "4.00", "1.00", "0.08"),
    "claude-3-opus-20240229": _rates("15.00", "75.00", "18.75", "1.50"),
    "claude-3-haiku-20240307": _rates("0.25", "1.25", "0.30", "0.03"),
})


def _per_token_to_per_million(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return Decimal(str(value)) * TOKENS_PER_MILLION


def parse_litellm_pricing(payload: Mapping[str, Any]) -> PricingTable:
    """Convert the LiteLLM price list (per-token rates) to a PricingTable.

    Entries without both an input and an output rate are ignored.
    """
    prices: Dict[str, ModelPricing] = {}
    for model_name, data in payload.items():
        if not isinstance(data, dict):
            continue
        input_rate = _per_token_to_per_million(data.get("input_cost_per_token"))
        output_rate = _per_token_to_per_million(data.get("output_cost_per_token"))
        if input_rate is None or output_rate is None:
            continue
        prices[model_name] = ModelPricing(
            input_cost_per_mtok=input_rate,
            output_cost_per_mtok=output_rate,
            cache_creation_cost_per_mtok=(
                _per_token_to_per_million(data.get("cache_creation_input_token_cost"))
                or Decimal("0")
            ),
            cache_read_cost_per_mtok=(
                _per_token_to_per_million(data.get("cache_read_input_token_cost"))
                or Decimal("0")
            ),
        )
    return PricingTable(prices)


def calculate_cost_from_tokens(usage: TokenUsage, pricing: ModelPricing) -> float:
    """Calculate the cost of one response from its token counts.

    No rounding is applied; costs are summed across many records.

    Args:
        usage: Token usage data
        pricing: Per-million-token rates for the model

    Returns:
        Cost in USD
    """
    total = (
        Decimal(usage.input_tokens) * pricing.input_cost_per_mtok
        + Decimal(usage.output_tokens) * pricing.output_cost_per_mtok
        + Decimal(usage.cache_creation_tokens) * pricing.cache_creation_cost_per_mtok
        + Decimal(usage.cache_read_tokens) * pricing.cache_read_cost_per_mtok
    )
    return float(total / TOKENS_PER_MILLION)


class PricingFetcher:
    """Lazily loaded pricing source scoped to one aggregation call.

    Use as a context manager so the HTTP client is released on every exit
    path. Rates are fetched at most once per instance.
    """

    def __init__(
        self,
        offline: bool = False,
        url: str = LITELLM_PRICING_URL,
        client: Optional[httpx.Client] = None,
        timeout: float = 10.0
    ):
        """Initialize the fetcher.

        Args:
            offline: Use the bundled snapshot and never touch the network
            url: Price list location
            client: Optional pre-configured HTTP client (not closed by us)
            timeout: Request timeout in seconds for the default client
        """
        self.offline = offline
        self.url = url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._table: Optional[PricingTable] = None

    def __enter__(self) -> "PricingFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the HTTP client and drop cached rates."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
        self._table = None

    def ensure_pricing_loaded(self) -> PricingTable:
        if self._table is None:
            if self.offline:
                logger.debug("Using offline pricing snapshot")
                self._table = OFFLINE_PRICING
            else:
                self._table = self._fetch_pricing()
        return self._table

    def _fetch_pricing(self) -> PricingTable:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)

        logger.debug("Fetching model pricing from %s", self.url)
        try:
            response = self._client.get(self.url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Failed to fetch model pricing, using offline snapshot: %s", e)
            return OFFLINE_PRICING

        if not isinstance(payload, dict):
            logger.warning("Unexpected pricing payload, using offline snapshot")
            return OFFLINE_PRICING

        table = parse_litellm_pricing(payload)
        if not table.prices:
            logger.warning("Pricing payload contained no usable models, using offline snapshot")
            return OFFLINE_PRICING

        logger.debug("Loaded pricing for %d models", len(table.prices))
        return table

    def get_model_pricing(self, model: str) -> Optional[ModelPricing]:
        return self.ensure_pricing_loaded().get_pricing(model)

    def calculate_cost_from_tokens(self, usage: TokenUsage, model: str) -> float:
        """Cost of the usage under the model's rates, 0 if the model is unknown."""
        pricing = self.get_model_pricing(model)
        if pricing is None:
            return 0.0
        return calculate_cost_from_tokens(usage, pricing)
