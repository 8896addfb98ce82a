"""Market records and the pool/market mapping used by the engine.

The surrounding application owns markets; the engine only reads them to
find which price history series a pool's observations belong to and to
rank markets for display.
"""

from collections.abc import Callable
from decimal import Decimal
from enum import Enum

from prediction_amm.core.models import ZERO, Market, PoolSummary


class MarketSort(Enum):
    """Orderings offered by market listings."""

    NEW = "new"
    LIQUIDITY = "liquidity"
    VOLUME = "volume"


class InMemoryMarketRegistry:
    """Dictionary-backed ``MarketRegistry`` for tests and embedded use."""

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._markets: dict[str, Market] = {}

    def register(self, market: Market) -> None:
        """Add or replace a market record."""
        self._markets[market.market_id] = market

    def get(self, market_id: str) -> Market | None:
        """Return the market with the given id, or ``None``."""
        return self._markets.get(market_id)

    def list_markets(self) -> list[Market]:
        """Return all markets, newest first."""
        return sorted(self._markets.values(), key=lambda m: m.created_at, reverse=True)

    def market_for_pool(self, pool_id: str) -> Market | None:
        """Return the market whose resolved pool id matches, or ``None``."""
        for market in self._markets.values():
            if market.resolved_pool_id == pool_id:
                return market
        return None


def search_markets(markets: list[Market], query: str) -> list[Market]:
    """Filter markets whose question contains ``query``, case-insensitively.

    A blank query returns the input unchanged.
    """
    needle = query.strip().lower()
    if not needle:
        return list(markets)
    return [m for m in markets if needle in m.question.lower()]


def sort_markets(
    markets: list[Market],
    summary_for: Callable[[Market], PoolSummary | None],
    key: MarketSort = MarketSort.NEW,
) -> list[Market]:
    """Order markets for display.

    ``NEW`` sorts by creation time, ``LIQUIDITY`` by pool TVL and
    ``VOLUME`` by accumulated swap volume, all descending. Markets without
    a pool rank as zero.

    Args:
        markets: Markets to order.
        summary_for: Lookup of a market's pool summary, ``None`` if it has
            no pool yet.
        key: Ordering to apply.

    Returns:
        A new, sorted list.

    """
    if key is MarketSort.NEW:
        return sorted(markets, key=lambda m: m.created_at, reverse=True)

    def metric(market: Market) -> Decimal:
        summary = summary_for(market)
        if summary is None:
            return ZERO
        return summary.tvl if key is MarketSort.LIQUIDITY else summary.volume_24h

    return sorted(markets, key=metric, reverse=True)
