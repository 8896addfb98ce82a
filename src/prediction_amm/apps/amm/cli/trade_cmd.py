"""CLI commands for quoting and executing swaps and liquidity changes.

``quote`` is read-only. ``swap``, ``add-liquidity`` and ``remove-liquidity``
commit a new pool state; each recomputes its quote against the reserves
at commit time rather than reusing an earlier one.
"""

from typing import Annotated

import typer

from prediction_amm.apps.amm.cli._helpers import (
    configure_logging,
    fmt,
    open_context,
    reported_errors,
)
from prediction_amm.apps.amm.cli.pool_cmd import DbUrlOption, VerboseOption
from prediction_amm.core.models import Side, SwapQuote

_HIGH_IMPACT_PCT = 5

SideOption = Annotated[str, typer.Option(help="A/YES spends YES for NO; B/NO spends NO for YES")]
FeeOption = Annotated[str | None, typer.Option(help="Fee rate override (e.g. 0.003)")]
SlippageOption = Annotated[str | None, typer.Option(help="Slippage tolerance in percent")]


def _print_quote(quote: SwapQuote) -> None:
    """Print the figures of a swap quote."""
    paid, received = ("YES", "NO") if quote.side is Side.A else ("NO", "YES")
    typer.echo(f"Input:            {fmt(quote.input_amount)} {paid}")
    typer.echo(f"Output:           {fmt(quote.output_amount)} {received}")
    typer.echo(f"Fee:              {fmt(quote.fee)} {paid}")
    typer.echo(f"Minimum received: {fmt(quote.minimum_received)} {received}")
    warning = "  (high impact)" if quote.price_impact_percent > _HIGH_IMPACT_PCT else ""
    typer.echo(f"Price impact:     {quote.price_impact_percent:.2f}%{warning}")


def quote(  # noqa: PLR0913
    pool_id: Annotated[str, typer.Argument(help="Pool identifier")],
    amount: Annotated[str, typer.Option(help="Amount to pay in")],
    side: SideOption = "A",
    fee_rate: FeeOption = None,
    slippage: SlippageOption = None,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Quote a swap without changing the pool."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        _print_quote(ctx.engine.quote_swap(pool_id, side, amount, fee_rate, slippage))


def swap(  # noqa: PLR0913
    pool_id: Annotated[str, typer.Argument(help="Pool identifier")],
    amount: Annotated[str, typer.Option(help="Amount to pay in")],
    side: SideOption = "A",
    fee_rate: FeeOption = None,
    slippage: SlippageOption = None,
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Execute a swap and persist the new reserves."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        result = ctx.engine.swap(pool_id, side, amount, fee_rate, slippage)
        _print_quote(result.quote)
        typer.echo(f"New price:        {fmt(result.new_price)} NO per YES")


def add_liquidity(
    pool_id: Annotated[str, typer.Argument(help="Pool identifier")],
    base: Annotated[str, typer.Option(help="YES tokens to deposit")],
    quote_amount: Annotated[str, typer.Option("--quote", help="NO tokens to deposit")],
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Deposit YES and NO tokens and mint LP tokens."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        result = ctx.engine.add_liquidity(pool_id, base, quote_amount)
        typer.echo(f"LP tokens minted: {fmt(result.lp_tokens_received)}")
        typer.echo(f"Pool share:       {result.quote.share_percentage:.4f}%")
        typer.echo(f"LP supply:        {fmt(result.state.lp_supply)}")


def remove_liquidity(
    pool_id: Annotated[str, typer.Argument(help="Pool identifier")],
    lp_tokens: Annotated[str, typer.Option(help="LP tokens to burn")],
    db_url: DbUrlOption = None,
    verbose: VerboseOption = False,  # noqa: FBT002
) -> None:
    """Burn LP tokens and withdraw the proportional YES and NO reserves."""
    configure_logging(verbose=verbose)
    with reported_errors(), open_context(db_url) as ctx:
        result = ctx.engine.remove_liquidity(pool_id, lp_tokens)
        typer.echo(f"LP tokens burned: {fmt(result.lp_tokens_burned)}")
        typer.echo(f"YES withdrawn:    {fmt(result.quote.amount_base)}")
        typer.echo(f"NO withdrawn:     {fmt(result.quote.amount_quote)}")
        typer.echo(f"Share withdrawn:  {result.quote.share_percentage:.4f}%")
