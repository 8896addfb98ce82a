"""Shared helpers for the AMM CLI commands.

Centralise engine construction over the SQL stores, logging setup, error
reporting and number formatting so the command modules stay focused on
argument handling and output.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal

import typer

from prediction_amm.core.config import ConfigError, get_config
from prediction_amm.core.exceptions import AmmError
from prediction_amm.pool.engine import PoolEngine
from prediction_amm.pool.price_history import PriceHistoryLog
from prediction_amm.storage.repository import (
    AmmDatabase,
    SqlMarketRegistry,
    SqlPoolStateStore,
    SqlPriceHistoryStore,
    SqlTransactionLog,
)

_DISPLAY_PLACES = Decimal("0.000001")


@dataclass(frozen=True)
class AmmContext:
    """Engine and stores opened for one CLI invocation."""

    engine: PoolEngine
    history: PriceHistoryLog
    registry: SqlMarketRegistry
    transactions: SqlTransactionLog


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@contextmanager
def open_context(db_url: str | None) -> Iterator[AmmContext]:
    """Open the pool database and build an engine over it.

    Args:
        db_url: SQLAlchemy URL; the configured ``storage.db_url`` if ``None``.

    Yields:
        The engine with its history log, market registry and transaction log.

    """
    try:
        config = get_config()
        url = db_url or config.get_db_url()
        engine_config = config.get_engine_config()
        history_config = config.get_history_config()
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    db = AmmDatabase(url)
    db.init_db()
    try:
        registry = SqlMarketRegistry(db)
        transactions = SqlTransactionLog(db)
        history = PriceHistoryLog(SqlPriceHistoryStore(db), history_config)
        engine = PoolEngine(
            SqlPoolStateStore(db),
            history=history,
            registry=registry,
            transactions=transactions,
            config=engine_config,
        )
        yield AmmContext(
            engine=engine,
            history=history,
            registry=registry,
            transactions=transactions,
        )
    finally:
        db.close()


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn engine and argument errors into a stderr message and exit code 1."""
    try:
        yield
    except (AmmError, ValueError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def fmt(value: Decimal) -> str:
    """Format a decimal quantity to six places for terminal output."""
    return f"{value.quantize(_DISPLAY_PLACES):f}"
