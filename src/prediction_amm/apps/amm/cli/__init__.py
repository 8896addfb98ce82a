"""CLI subpackage for the prediction market AMM.

Create the Typer application and register all command modules.
"""

import typer

from prediction_amm.apps.amm.cli.history_cmd import history
from prediction_amm.apps.amm.cli.pool_cmd import init, markets, pool, register_market
from prediction_amm.apps.amm.cli.trade_cmd import add_liquidity, quote, remove_liquidity, swap

app = typer.Typer(help="Constant-product market maker for binary prediction markets")

app.command()(init)
app.command()(pool)
app.command()(quote)
app.command()(swap)
app.command(name="add-liquidity")(add_liquidity)
app.command(name="remove-liquidity")(remove_liquidity)
app.command(name="register-market")(register_market)
app.command()(markets)
app.command()(history)

__all__ = ["app"]
