"""In-memory record of committed pool mutations."""

from prediction_amm.core.models import PoolTransaction


class InMemoryTransactionLog:
    """List-backed ``TransactionLog`` for tests and embedded use."""

    def __init__(self) -> None:
        """Initialize an empty log."""
        self._transactions: list[PoolTransaction] = []

    def record(self, transaction: PoolTransaction) -> None:
        """Append a transaction."""
        self._transactions.append(transaction)

    def transactions(self, pool_id: str | None = None) -> list[PoolTransaction]:
        """Return transactions, newest first, optionally for one pool."""
        selected = [t for t in self._transactions if pool_id is None or t.pool_id == pool_id]
        return selected[::-1]
