"""Append-only per-market price history for charts and sparklines.

The log is derived data: ``PoolEngine`` appends the post-commit price of
every mutation, and a market that is first observed gets seeded with its
current price so charts always have a baseline. Near-duplicate prices
refresh the last point instead of growing the series. Nothing is ever
pruned.
"""

import logging
from collections.abc import Callable
from decimal import Decimal

from prediction_amm.core.config import HistoryConfig
from prediction_amm.core.models import HUNDRED, ZERO, PricePoint
from prediction_amm.core.protocols import PriceHistoryStore
from prediction_amm.core.timestamps import now_ms

logger = logging.getLogger(__name__)


class InMemoryPriceHistoryStore:
    """Dictionary-of-lists ``PriceHistoryStore`` for tests and embedded use."""

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._series: dict[str, list[PricePoint]] = {}

    def points(self, market_id: str) -> list[PricePoint]:
        """Return a copy of all points for a market in insertion order."""
        return list(self._series.get(market_id, []))

    def append(self, market_id: str, point: PricePoint) -> None:
        """Append a point to the end of a market's sequence."""
        self._series.setdefault(market_id, []).append(point)

    def replace_last(self, market_id: str, point: PricePoint) -> None:
        """Overwrite the last point of a non-empty sequence.

        Raises:
            IndexError: If the market has no points.

        """
        series = self._series.get(market_id)
        if not series:
            msg = f"No price history for market {market_id}"
            raise IndexError(msg)
        series[-1] = point


class PriceHistoryLog:
    """Record and read price observations per market.

    Args:
        store: Backing sequence storage.
        config: Deduplication epsilon and display sizes.
        clock: Source of epoch-millisecond timestamps.

    Example::

        log = PriceHistoryLog(InMemoryPriceHistoryStore())
        log.seed_if_empty("m1", Decimal(1))
        log.append("m1", Decimal("0.82"))
        log.tail("m1", 10)

    """

    def __init__(
        self,
        store: PriceHistoryStore,
        config: HistoryConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the log over a store."""
        self._store = store
        self._config = config or HistoryConfig()
        self._clock = clock

    @property
    def config(self) -> HistoryConfig:
        """Return the history configuration in use."""
        return self._config

    def append(self, market_id: str, price: Decimal, timestamp: int | None = None) -> PricePoint:
        """Record a price observation for a market.

        When the new price is within ``dedup_epsilon`` of the last recorded
        price, the last point is refreshed in place (new time, new price)
        instead of growing the sequence. An empty series always grows.

        Args:
            market_id: Market to record against.
            price: Observed price.
            timestamp: Epoch milliseconds; defaults to the clock.

        Returns:
            The point that was appended or that replaced the last one.

        """
        point = PricePoint(timestamp=self._clock() if timestamp is None else timestamp, price=price)
        existing = self._store.points(market_id)
        if existing and abs(existing[-1].price - price) <= self._config.dedup_epsilon:
            self._store.replace_last(market_id, point)
            logger.debug("Refreshed last price point for %s at %s", market_id, price)
            return point
        self._store.append(market_id, point)
        return point

    def seed_if_empty(self, market_id: str, price: Decimal) -> bool:
        """Insert a single baseline point if the market has no history.

        Returns:
            ``True`` if a point was inserted, ``False`` if history existed.

        """
        if self._store.points(market_id):
            return False
        self._store.append(market_id, PricePoint(timestamp=self._clock(), price=price))
        logger.debug("Seeded price history for %s at %s", market_id, price)
        return True

    def points(self, market_id: str) -> list[PricePoint]:
        """Return the full ordered sequence for a market."""
        return self._store.points(market_id)

    def tail(self, market_id: str, count: int | None = None) -> list[PricePoint]:
        """Return the last ``count`` points (``display_points`` by default)."""
        size = self._config.display_points if count is None else count
        if size <= 0:
            return []
        return self._store.points(market_id)[-size:]

    def sparkline(
        self,
        market_id: str,
        current_price: Decimal,
        size: int | None = None,
    ) -> list[Decimal]:
        """Build a fixed-length sparkline ending at the current price.

        Take the last ``size - 1`` recorded prices, then add the current
        price, or refresh the final value with it when the two are within
        epsilon. Pad with the final value up to ``size``. Without history
        the line is flat at the current price. This never writes to the log.

        Args:
            market_id: Market to read.
            current_price: Live pool price to end the line on.
            size: Number of values; ``sparkline_points`` by default.

        Returns:
            Exactly ``size`` prices, oldest first.

        """
        length = self._config.sparkline_points if size is None else size
        history = self._store.points(market_id)
        if not history:
            return [current_price] * length

        values = [p.price for p in history[-(length - 1) :]] if length > 1 else []
        if values and abs(values[-1] - current_price) <= self._config.dedup_epsilon:
            values[-1] = current_price
        else:
            values.append(current_price)
        while len(values) < length:
            values.append(values[-1])
        return values[-length:]

    def price_change(self, market_id: str) -> tuple[Decimal, Decimal]:
        """Return the absolute and percentage change from first to last point.

        Returns:
            ``(absolute, percent)``; ``(0, 0)`` with fewer than two points
            or a non-positive first price.

        """
        history = self._store.points(market_id)
        if len(history) < 2:  # noqa: PLR2004
            return ZERO, ZERO
        first, last = history[0].price, history[-1].price
        if first <= ZERO:
            return ZERO, ZERO
        change = last - first
        return change, change / first * HUNDRED
