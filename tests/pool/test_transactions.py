"""Tests for the in-memory transaction log."""

from decimal import Decimal

from prediction_amm.core.models import PoolTransaction, TransactionType
from prediction_amm.core.protocols import TransactionLog
from prediction_amm.pool.transactions import InMemoryTransactionLog


def _tx(pool_id: str, timestamp: int) -> PoolTransaction:
    """Create a swap transaction."""
    return PoolTransaction(
        pool_id, TransactionType.SWAP_YES, Decimal(1), timestamp, f"tx{timestamp}"
    )


class TestInMemoryTransactionLog:
    """Tests for InMemoryTransactionLog."""

    def test_satisfies_protocol(self) -> None:
        """Conform to the TransactionLog protocol."""
        assert isinstance(InMemoryTransactionLog(), TransactionLog)

    def test_newest_first_with_filter(self) -> None:
        """Return newest first, optionally restricted to one pool."""
        log = InMemoryTransactionLog()
        for pool_id, timestamp in (("a", 1), ("b", 2), ("a", 3)):
            log.record(_tx(pool_id, timestamp))

        assert [t.timestamp for t in log.transactions()] == [3, 2, 1]
        assert [t.timestamp for t in log.transactions("a")] == [3, 1]
