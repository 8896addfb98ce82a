# pyright: reportMissingTypeStubs=false, reportUnknownMemberType=false, reportUnknownArgumentType=false, reportUnknownVariableType=false
"""Tests for the pool price and reserves charts."""

from decimal import Decimal
from pathlib import Path

import plotly.graph_objects as go
import pytest

from prediction_amm.apps.amm.charts import (
    create_price_history_chart,
    create_reserves_chart,
    save_chart,
)
from prediction_amm.core.models import PoolSummary, PricePoint

_BASE_TS = 1700000000000
_GREEN = "#00c853"
_RED = "#ff1744"
_BAR_TRACE_COUNT = 2


def _points(*prices: str) -> list[PricePoint]:
    """Build one price point per second."""
    return [PricePoint(_BASE_TS + i * 1000, Decimal(p)) for i, p in enumerate(prices)]


def _summary(pool_id: str, base: str, quote: str) -> PoolSummary:
    """Build a pool summary with the given reserves."""
    base_reserve, quote_reserve = Decimal(base), Decimal(quote)
    total = base_reserve + quote_reserve
    return PoolSummary(
        pool_id=pool_id,
        price=quote_reserve / base_reserve,
        yes_probability=quote_reserve / total,
        no_probability=base_reserve / total,
        tvl=total,
        base_reserve=base_reserve,
        quote_reserve=quote_reserve,
        lp_supply=Decimal(1),
        volume_24h=Decimal(0),
        fees_24h=Decimal(0),
        last_updated=_BASE_TS,
    )


class TestPriceHistoryChart:
    """Test the price history line chart."""

    def test_returns_figure_with_prices(self) -> None:
        """Plot every price as a float on one Scatter trace."""
        fig = create_price_history_chart(_points("0.5", "0.6", "0.55"), title="Rain")

        assert isinstance(fig, go.Figure)
        scatter = next(t for t in fig.data if isinstance(t, go.Scatter))
        assert list(scatter.y) == [0.5, 0.6, 0.55]
        assert fig.layout.title.text == "Rain"

    def test_rising_line_is_green(self) -> None:
        """Colour the line green when the price ended higher."""
        fig = create_price_history_chart(_points("0.5", "0.7"))
        scatter = next(t for t in fig.data if isinstance(t, go.Scatter))
        assert scatter.line.color == _GREEN

    def test_falling_line_is_red(self) -> None:
        """Colour the line red when the price ended lower."""
        fig = create_price_history_chart(_points("0.7", "0.5"))
        scatter = next(t for t in fig.data if isinstance(t, go.Scatter))
        assert scatter.line.color == _RED

    def test_empty_raises(self) -> None:
        """Refuse to chart an empty series."""
        with pytest.raises(ValueError, match="no price points"):
            create_price_history_chart([])


class TestReservesChart:
    """Test the reserves bar chart."""

    def test_one_bar_per_side(self) -> None:
        """Show YES and NO reserves as two grouped Bar traces."""
        fig = create_reserves_chart([_summary("a", "100", "300"), _summary("b", "50", "50")])

        bars = [t for t in fig.data if isinstance(t, go.Bar)]
        assert len(bars) == _BAR_TRACE_COUNT
        assert list(bars[0].x) == ["a", "b"]
        assert list(bars[0].y) == [100.0, 50.0]
        assert list(bars[1].y) == [300.0, 50.0]

    def test_empty_raises(self) -> None:
        """Refuse to chart no pools."""
        with pytest.raises(ValueError, match="no pools"):
            create_reserves_chart([])


class TestSaveChart:
    """Test writing charts to disk."""

    def test_writes_html(self, tmp_path: Path) -> None:
        """Write a standalone HTML file and return its path."""
        target = tmp_path / "price.html"
        written = save_chart(create_price_history_chart(_points("0.5")), target)

        assert written == target
        assert "<html>" in target.read_text()
