"""SQL-backed stores for pool state, price history, markets and transactions.

Wrap a synchronous SQLAlchemy engine and session factory shared by all
four stores. Every write runs in its own session transaction, so a read
that follows a write always sees it. The stores are database-agnostic:
swap from SQLite to PostgreSQL by changing the connection string.
"""

import logging
from contextlib import AbstractContextManager
from typing import Any

from sqlalchemy import create_engine, select, update
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from prediction_amm.core.exceptions import ConcurrentModificationError
from prediction_amm.core.models import (
    Market,
    PoolState,
    PoolTransaction,
    PricePoint,
    TransactionType,
)
from prediction_amm.pool.state_store import PoolLocks
from prediction_amm.storage.models import (
    Base,
    MarketRow,
    PoolRow,
    PricePointRow,
    TransactionRow,
)

logger = logging.getLogger(__name__)

_POOL_ID_PREFIX = "pool_"


def _is_memory_sqlite(db_url: str) -> bool:
    """Return whether the URL names a private in-memory SQLite database."""
    url = make_url(db_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


class AmmDatabase:
    """Own the SQLAlchemy engine and session factory for the pool database.

    In-memory SQLite URLs share a single connection so that every session
    sees the same database.

    Args:
        db_url: SQLAlchemy connection string (e.g. ``sqlite:///amm.db``).

    """

    def __init__(self, db_url: str) -> None:
        """Initialize the database wrapper with a synchronous engine.

        Args:
            db_url: SQLAlchemy connection string.

        """
        engine_kwargs: dict[str, Any] = {}
        if _is_memory_sqlite(db_url):
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
        self._engine: Engine = create_engine(db_url, echo=False, **engine_kwargs)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)

    def init_db(self) -> None:
        """Create all tables if they do not already exist.

        Idempotent; safe to call on every startup.
        """
        Base.metadata.create_all(self._engine)
        logger.info("Database tables initialised")

    def session(self) -> Session:
        """Open a new ORM session."""
        return self._session_factory()

    def close(self) -> None:
        """Dispose the engine and release all connections."""
        self._engine.dispose()
        logger.info("Database engine disposed")


def _state_from_row(row: PoolRow) -> PoolState:
    """Convert a ``PoolRow`` into an immutable ``PoolState``."""
    return PoolState(
        pool_id=row.pool_id,
        base_reserve=row.base_reserve,
        quote_reserve=row.quote_reserve,
        lp_supply=row.lp_supply,
        volume_24h=row.volume_24h,
        fees_24h=row.fees_24h,
        last_updated=row.last_updated,
        version=row.version,
    )


def _market_from_row(row: MarketRow) -> Market:
    """Convert a ``MarketRow`` into an immutable ``Market``."""
    return Market(
        market_id=row.market_id,
        question=row.question,
        yes_mint=row.yes_mint,
        no_mint=row.no_mint,
        creator=row.creator,
        created_at=row.created_at,
        pool_id=row.pool_id,
        lp_mint=row.lp_mint,
    )


class SqlPoolStateStore:
    """``PoolStateStore`` persisting one row per pool.

    Writers are serialised per pool within this process by ``PoolLocks``.
    Writers in other processes are caught by the row's ``version``: each
    ``save`` is a single compare-and-set transaction that only lands on the
    version its state was computed from.
    """

    def __init__(self, db: AmmDatabase) -> None:
        """Initialize the store over a shared database."""
        self._db = db
        self._locks = PoolLocks()

    def get(self, pool_id: str) -> PoolState | None:
        """Return the stored state for a pool, or ``None`` if absent."""
        with self._db.session() as session:
            row = session.get(PoolRow, pool_id)
            return None if row is None else _state_from_row(row)

    def save(self, state: PoolState) -> None:
        """Write the next version of a pool's row, or insert a new pool.

        Raises:
            ConcurrentModificationError: If the row no longer holds
                ``state.version - 1``, or another writer inserted the pool
                first.

        """
        values: dict[str, Any] = {
            "base_reserve": state.base_reserve,
            "quote_reserve": state.quote_reserve,
            "lp_supply": state.lp_supply,
            "volume_24h": state.volume_24h,
            "fees_24h": state.fees_24h,
            "last_updated": state.last_updated,
            "version": state.version,
        }
        stmt = (
            update(PoolRow)
            .where(PoolRow.pool_id == state.pool_id, PoolRow.version == state.version - 1)
            .values(**values)
        )
        with self._db.session() as session, session.begin():
            updated = session.connection().execute(stmt).rowcount
            exists = bool(updated) or session.get(PoolRow, state.pool_id) is not None

        if not updated:
            if exists:
                raise ConcurrentModificationError(state.pool_id, state.version)
            self._insert(state.pool_id, state.version, values)
        logger.debug("Saved version %d of pool %s", state.version, state.pool_id)

    def _insert(self, pool_id: str, version: int, values: dict[str, Any]) -> None:
        """Insert the first row of a pool, losing to any concurrent insert."""
        try:
            with self._db.session() as session, session.begin():
                session.add(PoolRow(pool_id=pool_id, **values))
        except IntegrityError as exc:
            raise ConcurrentModificationError(pool_id, version) from exc

    def lock(self, pool_id: str) -> AbstractContextManager[None]:
        """Return a context manager that excludes other writers of a pool."""
        return self._locks.hold(pool_id)

    def pool_ids(self) -> list[str]:
        """Return all stored pool ids, sorted."""
        with self._db.session() as session:
            result = session.execute(select(PoolRow.pool_id).order_by(PoolRow.pool_id))
            return list(result.scalars().all())


class SqlPriceHistoryStore:
    """``PriceHistoryStore`` keeping one row per price point."""

    def __init__(self, db: AmmDatabase) -> None:
        """Initialize the store over a shared database."""
        self._db = db

    def points(self, market_id: str) -> list[PricePoint]:
        """Return all points for a market in insertion order."""
        stmt = (
            select(PricePointRow)
            .where(PricePointRow.market_id == market_id)
            .order_by(PricePointRow.id)
        )
        with self._db.session() as session:
            rows = session.execute(stmt).scalars().all()
            return [PricePoint(timestamp=r.timestamp, price=r.price) for r in rows]

    def append(self, market_id: str, point: PricePoint) -> None:
        """Append a point to the end of a market's sequence."""
        with self._db.session() as session, session.begin():
            session.add(
                PricePointRow(market_id=market_id, timestamp=point.timestamp, price=point.price)
            )

    def replace_last(self, market_id: str, point: PricePoint) -> None:
        """Overwrite the last point of a non-empty sequence.

        Raises:
            IndexError: If the market has no points.

        """
        stmt = (
            select(PricePointRow)
            .where(PricePointRow.market_id == market_id)
            .order_by(PricePointRow.id.desc())
            .limit(1)
        )
        with self._db.session() as session, session.begin():
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                msg = f"No price history for market {market_id}"
                raise IndexError(msg)
            row.timestamp = point.timestamp
            row.price = point.price


class SqlMarketRegistry:
    """``MarketRegistry`` backed by the ``markets`` table."""

    def __init__(self, db: AmmDatabase) -> None:
        """Initialize the registry over a shared database."""
        self._db = db

    def register(self, market: Market) -> None:
        """Add or replace a market record."""
        with self._db.session() as session, session.begin():
            session.merge(
                MarketRow(
                    market_id=market.market_id,
                    question=market.question,
                    yes_mint=market.yes_mint,
                    no_mint=market.no_mint,
                    creator=market.creator,
                    created_at=market.created_at,
                    pool_id=market.pool_id,
                    lp_mint=market.lp_mint,
                )
            )
        logger.info("Registered market %s", market.market_id)

    def get(self, market_id: str) -> Market | None:
        """Return the market with the given id, or ``None``."""
        with self._db.session() as session:
            row = session.get(MarketRow, market_id)
            return None if row is None else _market_from_row(row)

    def list_markets(self) -> list[Market]:
        """Return all markets, newest first."""
        stmt = select(MarketRow).order_by(MarketRow.created_at.desc())
        with self._db.session() as session:
            return [_market_from_row(r) for r in session.execute(stmt).scalars().all()]

    def market_for_pool(self, pool_id: str) -> Market | None:
        """Return the market whose resolved pool id matches, or ``None``.

        An explicit ``pool_id`` column match wins; otherwise a
        ``pool_<market_id>`` key maps back to a market with no assigned pool.
        """
        stmt = select(MarketRow).where(MarketRow.pool_id == pool_id).limit(1)
        with self._db.session() as session:
            row = session.execute(stmt).scalar_one_or_none()
            if row is None and pool_id.startswith(_POOL_ID_PREFIX):
                candidate = session.get(MarketRow, pool_id.removeprefix(_POOL_ID_PREFIX))
                if candidate is not None and candidate.pool_id is None:
                    row = candidate
            return None if row is None else _market_from_row(row)


class SqlTransactionLog:
    """``TransactionLog`` backed by the ``pool_transactions`` table."""

    def __init__(self, db: AmmDatabase) -> None:
        """Initialize the log over a shared database."""
        self._db = db

    def record(self, transaction: PoolTransaction) -> None:
        """Append a transaction."""
        with self._db.session() as session, session.begin():
            session.add(
                TransactionRow(
                    tx_id=transaction.tx_id,
                    pool_id=transaction.pool_id,
                    kind=transaction.kind.value,
                    amount=transaction.amount,
                    timestamp=transaction.timestamp,
                )
            )

    def transactions(self, pool_id: str | None = None) -> list[PoolTransaction]:
        """Return transactions, newest first, optionally for one pool."""
        stmt = select(TransactionRow).order_by(TransactionRow.id.desc())
        if pool_id is not None:
            stmt = stmt.where(TransactionRow.pool_id == pool_id)
        with self._db.session() as session:
            return [
                PoolTransaction(
                    pool_id=r.pool_id,
                    kind=TransactionType(r.kind),
                    amount=r.amount,
                    timestamp=r.timestamp,
                    tx_id=r.tx_id,
                )
                for r in session.execute(stmt).scalars().all()
            ]
