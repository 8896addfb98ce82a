"""CLI commands for creating pools, inspecting them, and managing markets."""

from pathlib import Path
from typing import Annotated

import typer

from prediction_amm.apps.amm.charts import create_reserves_chart, save_chart
from prediction_amm.apps.amm.cli._helpers import (
    configure_logging,
    fmt,
    open_context,
    reported_errors,
)
from prediction_amm.core.models import HUNDRED, Market, PoolSummary, to_decimal
from prediction_amm.core.timestamps import format_timestamp, now_ms
from prediction_amm.pool.market_registry import MarketSort, search_markets, sort_markets

DbUrlOption = Annotated[
    str | None, typer.Option("--db-url", help="SQLAlchemy DB URL (default from settings)")
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")]


def _print_summary(summary: PoolSummary) -> None:
    """Print a pool summary block."""
    typer.echo(f"\nPool {summary.pool_id}")
    typer.echo(f"{'=' * (len(summary.pool_id) + 5)}")
    typer.echo(f"YES reserve:  {fmt(summary.base_reserve)}")
    typer.echo(f"NO reserve:   {fmt(summary.quote_reserve)}")
    typer.echo(f"LP supply:    {fmt(summary.lp_supply)}")
    typer.echo(f"Price:        {fmt(summary.price)} NO per YES")
    typer.echo(
        f"Implied odds: YES {summary.yes_probability * HUNDRED:.1f}% / "
        f"NO {summary.no_probability * HUNDRED:.1f}%"
    )
    typer.echo(f"TVL:          {fmt(summary.tvl)}")
    typer.echo(f"Volume:       {fmt(summary.volume_24h)}")
    typer.echo(f"Fees:         {fmt(summary.fees_24h)}")
    typer.echo(f"Updated:      {format_timestamp(summary.last_updated)}")


def init(
    pool_id: Annotated[str, typer.Argument(help="Pool identifier")],
    base: Annotated[str | None, typer.Option(help="Seed YES reserve")] = None,
    quote: Annotated[str | None, typer.Option(help="Seed NO reserve")] = None,
    strict: Annotated[  # noqa: FBT002
        bool, typer.Option("--strict", help="Fail if the pool already exists")
    ] = False,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Initialise a pool with seed reserves (idempotent unless --strict)."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        existed = ctx.engine.is_initialized(pool_id)
        ctx.engine.initialize(pool_id, base, quote, strict=strict)
        typer.echo(f"Pool {pool_id} {'already existed' if existed else 'initialised'}")
        _print_summary(ctx.engine.summary(pool_id))


def pool(
    pool_id: Annotated[str, typer.Argument(help="Pool identifier")],
    transactions: Annotated[int, typer.Option(help="Show the last N transactions")] = 0,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Show a pool's reserves, price, implied odds and counters."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        _print_summary(ctx.engine.summary(pool_id))
        if transactions > 0:
            typer.echo(f"\n{'Time':<20} {'Kind':<18} {'Amount':>18}")
            typer.echo("-" * 58)
            for tx in ctx.transactions.transactions(pool_id)[:transactions]:
                typer.echo(
                    f"{format_timestamp(tx.timestamp):<20} {tx.kind.value:<18} {fmt(tx.amount):>18}"
                )


def register_market(  # noqa: PLR0913
    market_id: Annotated[str, typer.Argument(help="Market identifier")],
    question: Annotated[str, typer.Option(help="Question text")],
    yes_mint: Annotated[str, typer.Option(help="YES token identifier")],
    no_mint: Annotated[str, typer.Option(help="NO token identifier")],
    creator: Annotated[str, typer.Option(help="Creator account")] = "unknown",
    pool_id: Annotated[str | None, typer.Option(help="Pool identifier")] = None,
    seed: Annotated[str | None, typer.Option(help="Seed both reserves and open the pool")] = None,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Register a market and optionally open its pool with equal seed reserves."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        market = Market(
            market_id=market_id,
            question=question,
            yes_mint=yes_mint,
            no_mint=no_mint,
            creator=creator,
            created_at=now_ms(),
            pool_id=pool_id,
        )
        ctx.registry.register(market)
        typer.echo(f"Registered market {market_id} (pool {market.resolved_pool_id})")
        if seed is not None:
            amount = to_decimal(seed, "seed")
            ctx.engine.initialize_for_market(market, amount, amount)
            _print_summary(ctx.engine.summary(market.resolved_pool_id))


def markets(
    sort: Annotated[str, typer.Option(help="Sort by new, liquidity or volume")] = "new",
    search: Annotated[str, typer.Option(help="Filter by question text")] = "",
    chart: Annotated[
        Path | None, typer.Option(help="Write a reserves chart to this HTML file")
    ] = None,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """List registered markets with their pool price and liquidity."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        key = MarketSort(sort.strip().lower())
        engine = ctx.engine

        def summary_for(market: Market) -> PoolSummary | None:
            if not engine.is_initialized(market.resolved_pool_id):
                return None
            return engine.summary(market.resolved_pool_id)

        listed = sort_markets(search_markets(ctx.registry.list_markets(), search), summary_for, key)
        if not listed:
            typer.echo("No markets found")
            return

        typer.echo(f"\n{'Market':<20} {'YES %':>7} {'TVL':>14} {'Volume':>14}  Question")
        typer.echo("-" * 80)
        summaries: list[PoolSummary] = []
        for market in listed:
            summary = summary_for(market)
            if summary is None:
                typer.echo(
                    f"{market.market_id:<20} {'-':>7} {'-':>14} {'-':>14}  {market.question}"
                )
                continue
            summaries.append(summary)
            typer.echo(
                f"{market.market_id:<20} {summary.yes_probability * HUNDRED:>6.1f}% "
                f"{summary.tvl:>14.2f} {summary.volume_24h:>14.2f}  {market.question}"
            )

        if chart is not None and summaries:
            save_chart(create_reserves_chart(summaries), chart)
            typer.echo(f"\nReserves chart written to {chart}")
