"""CLI command for displaying and charting a market's price history."""

from pathlib import Path
from typing import Annotated

import typer

from prediction_amm.apps.amm.charts import create_price_history_chart, save_chart
from prediction_amm.apps.amm.cli._helpers import (
    configure_logging,
    fmt,
    open_context,
    reported_errors,
)
from prediction_amm.apps.amm.cli.pool_cmd import DbUrlOption, VerboseOption
from prediction_amm.core.timestamps import format_timestamp, parse_timestamp


def history(
    market_id: Annotated[str, typer.Argument(help="Market (or pool) identifier")],
    last: Annotated[int | None, typer.Option(help="Show only the last N points")] = None,
    since: Annotated[
        str | None, typer.Option(help="Only points at or after this date (YYYY-MM-DD)")
    ] = None,
    chart: Annotated[
        Path | None, typer.Option(help="Write a price chart to this HTML file")
    ] = None,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Show the recorded price points of a market, oldest first."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        points = ctx.history.tail(market_id, last)
        if since is not None:
            start_ms = parse_timestamp(since)
            points = [p for p in points if p.timestamp >= start_ms]
        if not points:
            typer.echo(f"No price history for {market_id}")
            return

        typer.echo(f"\n{'Time':<20} {'Price':>14}")
        typer.echo("-" * 35)
        for point in points:
            typer.echo(f"{format_timestamp(point.timestamp):<20} {fmt(point.price):>14}")

        change, change_pct = ctx.history.price_change(market_id)
        typer.echo(f"\nChange since first point: {fmt(change)} ({change_pct:+.2f}%)")

        if chart is not None:
            save_chart(create_price_history_chart(points, title=f"Price: {market_id}"), chart)
            typer.echo(f"Chart written to {chart}")
