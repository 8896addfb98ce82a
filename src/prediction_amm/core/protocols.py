"""Structural protocols for pluggable persistence and notification.

Define the interfaces that decouple ``PoolEngine`` from concrete storage.
In-memory implementations live beside the engine; SQLAlchemy-backed ones
live in ``prediction_amm.storage``. Any class whose shape matches can be
injected without explicit inheritance (structural subtyping).
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from prediction_amm.core.models import Market, PoolEvent, PoolState, PoolTransaction, PricePoint

PoolObserver = Callable[[PoolEvent], None]


@runtime_checkable
class PoolStateStore(Protocol):
    """Durable key-value storage of ``PoolState`` keyed by pool id.

    Implementors must give read-after-write consistency and must serialise
    writers per pool: the engine holds ``lock(pool_id)`` across the whole
    read-modify-write of one operation. ``save`` must also refuse a state
    whose ``version`` is not one past the stored one, which catches
    writers the lock cannot see, such as another process.
    """

    def get(self, pool_id: str) -> PoolState | None:
        """Return the stored state for a pool, or ``None`` if absent."""
        ...

    def save(self, state: PoolState) -> None:
        """Persist a complete state snapshot, replacing the previous version.

        Raises:
            ConcurrentModificationError: If ``state.version`` does not
                follow the stored version.

        """
        ...

    def lock(self, pool_id: str) -> AbstractContextManager[None]:
        """Return a context manager that excludes other writers of a pool."""
        ...

    def pool_ids(self) -> list[str]:
        """Return all stored pool ids, sorted."""
        ...


@runtime_checkable
class PriceHistoryStore(Protocol):
    """Ordered, append-only price point sequences keyed by market id."""

    def points(self, market_id: str) -> list[PricePoint]:
        """Return all points for a market in insertion order."""
        ...

    def append(self, market_id: str, point: PricePoint) -> None:
        """Append a point to the end of a market's sequence."""
        ...

    def replace_last(self, market_id: str, point: PricePoint) -> None:
        """Overwrite the last point of a non-empty sequence."""
        ...


@runtime_checkable
class MarketRegistry(Protocol):
    """Read access to the markets owned by the surrounding application."""

    def register(self, market: Market) -> None:
        """Add or replace a market record."""
        ...

    def get(self, market_id: str) -> Market | None:
        """Return the market with the given id, or ``None``."""
        ...

    def list_markets(self) -> list[Market]:
        """Return all markets, newest first."""
        ...

    def market_for_pool(self, pool_id: str) -> Market | None:
        """Return the market whose resolved pool id matches, or ``None``."""
        ...


@runtime_checkable
class TransactionLog(Protocol):
    """Append-only record of committed pool mutations."""

    def record(self, transaction: PoolTransaction) -> None:
        """Append a transaction."""
        ...

    def transactions(self, pool_id: str | None = None) -> list[PoolTransaction]:
        """Return transactions, newest first, optionally for one pool."""
        ...
