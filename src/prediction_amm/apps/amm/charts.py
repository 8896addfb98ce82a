# pyright: reportMissingTypeStubs=false, reportUnknownMemberType=false, reportUnknownArgumentType=false, reportUnknownVariableType=false
"""Interactive Plotly charts for pool prices and reserves.

Provide a price history line chart for a market and a reserves bar chart
comparing pools. Both use the same dark theme and can be saved to HTML.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import plotly.graph_objects as go

if TYPE_CHECKING:
    from pathlib import Path

    from prediction_amm.core.models import PoolSummary, PricePoint

_BG_COLOR = "#1e1e2f"
_PAPER_COLOR = "#1e1e2f"
_GRID_COLOR = "#2e2e3e"
_TEXT_COLOR = "#e0e0e0"
_GREEN = "#00c853"
_RED = "#ff1744"
_PURPLE = "#b388ff"
_REFERENCE_DASH = "dash"
_EVEN_ODDS = 0.5
_MS_PER_SECOND = 1000


def _apply_dark_theme(fig: go.Figure) -> go.Figure:
    """Apply a consistent dark theme to a Plotly figure.

    Args:
        fig: The Plotly figure to style.

    Returns:
        The same figure, mutated in place, for chaining convenience.

    """
    fig.update_layout(
        template="plotly_dark",
        plot_bgcolor=_BG_COLOR,
        paper_bgcolor=_PAPER_COLOR,
        font_color=_TEXT_COLOR,
        legend={"bgcolor": "rgba(0,0,0,0)"},
        margin={"l": 60, "r": 30, "t": 50, "b": 40},
    )
    fig.update_xaxes(gridcolor=_GRID_COLOR, zeroline=False)
    fig.update_yaxes(gridcolor=_GRID_COLOR, zeroline=False)
    return fig


def create_price_history_chart(points: list[PricePoint], title: str = "Price") -> go.Figure:
    """Create a line chart of a market's price over time.

    The line is green when the last price is at or above the first, red
    otherwise. A dashed reference line marks even odds (0.5).

    Args:
        points: Ordered price points, oldest first.
        title: Chart title.

    Returns:
        A Plotly ``Figure`` with the price line.

    Raises:
        ValueError: If there are no points.

    """
    if not points:
        msg = "Cannot create price chart: no price points"
        raise ValueError(msg)

    times = [datetime.fromtimestamp(p.timestamp / _MS_PER_SECOND, tz=UTC) for p in points]
    prices = [float(p.price) for p in points]
    line_color = _GREEN if prices[-1] >= prices[0] else _RED

    fig = go.Figure()
    fig.add_trace(
        go.Scatter(
            x=times,
            y=prices,
            mode="lines+markers",
            name="Price",
            line={"color": line_color, "width": 2},
        )
    )
    fig.add_hline(
        y=_EVEN_ODDS,
        line_dash=_REFERENCE_DASH,
        line_color=_TEXT_COLOR,
        opacity=0.5,
        annotation_text="Even odds",
    )
    fig.update_layout(title=title, xaxis_title="Time", yaxis_title="Price (NO per YES)")
    return _apply_dark_theme(fig)


def create_reserves_chart(summaries: list[PoolSummary]) -> go.Figure:
    """Create a grouped bar chart of YES and NO reserves per pool.

    Args:
        summaries: Pool summaries to compare.

    Returns:
        A Plotly ``Figure`` with one YES and one NO bar per pool.

    Raises:
        ValueError: If there are no summaries.

    """
    if not summaries:
        msg = "Cannot create reserves chart: no pools"
        raise ValueError(msg)

    pool_ids = [s.pool_id for s in summaries]
    fig = go.Figure()
    fig.add_trace(
        go.Bar(
            x=pool_ids,
            y=[float(s.base_reserve) for s in summaries],
            name="YES reserve",
            marker_color=_GREEN,
        )
    )
    fig.add_trace(
        go.Bar(
            x=pool_ids,
            y=[float(s.quote_reserve) for s in summaries],
            name="NO reserve",
            marker_color=_PURPLE,
        )
    )
    fig.update_layout(title="Pool Reserves", barmode="group", yaxis_title="Tokens")
    return _apply_dark_theme(fig)


def save_chart(fig: go.Figure, path: Path) -> Path:
    """Write a figure to a standalone HTML file.

    Args:
        fig: Figure to save.
        path: Destination file.

    Returns:
        The path that was written.

    """
    fig.write_html(str(path))
    return path
