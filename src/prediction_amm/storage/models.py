"""SQLAlchemy ORM models for the pool database.

Define the tables behind the SQL-backed stores: one row per pool holding
its current reserves, an append-only price point table keyed by market,
the market registry, and the transaction log. Decimal quantities are
stored as text so SQLite keeps every digit.
"""

from decimal import Decimal

from sqlalchemy import BigInteger, Index, Integer, String, TypeDecorator
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class DecimalText(TypeDecorator[Decimal]):
    """Store ``Decimal`` values losslessly as strings."""

    impl = String
    cache_ok = True

    def process_bind_param(
        self,
        value: Decimal | None,
        dialect: Dialect,  # noqa: ARG002
    ) -> str | None:
        """Convert a ``Decimal`` to its canonical string form."""
        return None if value is None else str(value)

    def process_result_value(
        self,
        value: str | None,
        dialect: Dialect,  # noqa: ARG002
    ) -> Decimal | None:
        """Parse a stored string back into a ``Decimal``."""
        return None if value is None else Decimal(value)


class Base(DeclarativeBase):
    """Declarative base class for all pool database ORM models."""


class PoolRow(Base):
    """Current state of a single pool.

    Attributes:
        pool_id: Opaque pool identifier (primary key).
        base_reserve: YES token reserve.
        quote_reserve: NO token reserve.
        lp_supply: Outstanding LP supply.
        volume_24h: Accumulated swap input volume.
        fees_24h: Accumulated swap fees.
        last_updated: Epoch milliseconds of the last mutation.
        version: Count of committed writes; a save only lands if the row
            still holds the version it was computed from.

    """

    __tablename__ = "pools"

    pool_id: Mapped[str] = mapped_column(String, primary_key=True)
    base_reserve: Mapped[Decimal] = mapped_column(DecimalText)
    quote_reserve: Mapped[Decimal] = mapped_column(DecimalText)
    lp_supply: Mapped[Decimal] = mapped_column(DecimalText)
    volume_24h: Mapped[Decimal] = mapped_column(DecimalText)
    fees_24h: Mapped[Decimal] = mapped_column(DecimalText)
    last_updated: Mapped[int] = mapped_column(BigInteger)
    version: Mapped[int] = mapped_column(Integer, default=0, server_default="0")


class PricePointRow(Base):
    """One observed price in a market's history.

    The auto-incrementing ``id`` preserves insertion order, which is the
    order of the series.
    """

    __tablename__ = "price_points"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    market_id: Mapped[str] = mapped_column(String, index=True)
    timestamp: Mapped[int] = mapped_column(BigInteger)
    price: Mapped[Decimal] = mapped_column(DecimalText)

    __table_args__ = (Index("ix_price_points_market_id_id", "market_id", "id"),)


class MarketRow(Base):
    """A registered binary market."""

    __tablename__ = "markets"

    market_id: Mapped[str] = mapped_column(String, primary_key=True)
    question: Mapped[str] = mapped_column(String)
    yes_mint: Mapped[str] = mapped_column(String)
    no_mint: Mapped[str] = mapped_column(String)
    creator: Mapped[str] = mapped_column(String)
    created_at: Mapped[int] = mapped_column(BigInteger, index=True)
    pool_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    lp_mint: Mapped[str | None] = mapped_column(String, nullable=True)


class TransactionRow(Base):
    """A committed pool mutation."""

    __tablename__ = "pool_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tx_id: Mapped[str] = mapped_column(String, unique=True)
    pool_id: Mapped[str] = mapped_column(String, index=True)
    kind: Mapped[str] = mapped_column(String)
    amount: Mapped[Decimal] = mapped_column(DecimalText)
    timestamp: Mapped[int] = mapped_column(BigInteger)
