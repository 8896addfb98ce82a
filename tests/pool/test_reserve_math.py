"""Tests for the constant-product reserve math."""

from decimal import Decimal

import pytest

from prediction_amm.core.exceptions import (
    ArithmeticOverflowError,
    InsufficientLiquidityError,
    InvalidAmountError,
)
from prediction_amm.core.models import LiquidityPolicy, Side
from prediction_amm.pool import reserve_math

_RESERVE = Decimal(1000)
_INPUT = Decimal(100)
_FEE = Decimal("0.003")
_ZERO_FEE = Decimal(0)
_EXPECTED_FEE = Decimal("0.3")
_EXPECTED_NEW_INPUT = Decimal("1099.7")
_EXPECTED_OUTPUT = 90.66109
_EXPECTED_IMPACT_PCT = 17.3103
_TOLERANCE = 1e-4


class TestQuoteSwap:
    """Tests for quote_swap."""

    def test_balanced_pool_swap(self) -> None:
        """Quote 100 in against 1000/1000 at a 0.3% fee."""
        quote = reserve_math.quote_swap(_RESERVE, _RESERVE, _INPUT, _FEE)

        assert quote.fee == _EXPECTED_FEE
        assert quote.new_input_reserve == _EXPECTED_NEW_INPUT
        assert float(quote.output_amount) == pytest.approx(_EXPECTED_OUTPUT, abs=_TOLERANCE)
        assert float(quote.price_impact_percent) == pytest.approx(
            _EXPECTED_IMPACT_PCT, abs=_TOLERANCE
        )
        assert quote.new_output_reserve == _RESERVE - quote.output_amount

    def test_minimum_received_applies_slippage(self) -> None:
        """Discount the output by the slippage tolerance."""
        quote = reserve_math.quote_swap(
            _RESERVE, _RESERVE, _INPUT, _FEE, slippage_pct=Decimal(1)
        )
        assert quote.minimum_received == quote.output_amount * Decimal("0.99")

    def test_side_is_carried(self) -> None:
        """Record which side the quote was computed for."""
        quote = reserve_math.quote_swap(_RESERVE, _RESERVE, _INPUT, _FEE, side=Side.B)
        assert quote.side is Side.B

    def test_output_always_below_reserve(self) -> None:
        """Never quote the whole output reserve, even for a huge input."""
        quote = reserve_math.quote_swap(_RESERVE, _RESERVE, Decimal("1e20"), _ZERO_FEE)
        assert quote.output_amount < _RESERVE
        assert quote.new_output_reserve > 0

    def test_k_grows_by_retained_fee(self) -> None:
        """The product after a fee-paying swap exceeds the product before."""
        quote = reserve_math.quote_swap(_RESERVE, _RESERVE, _INPUT, _FEE)
        assert quote.new_input_reserve * quote.new_output_reserve > _RESERVE * _RESERVE

    @pytest.mark.parametrize("amount", ["0.000001", "3", "77.77", "12345.6789"])
    def test_k_never_shrinks_without_fee(self, amount: str) -> None:
        """Round the output reserve up so a zero-fee swap keeps k."""
        base, quote_reserve = Decimal(777), Decimal("1234.5")
        quote = reserve_math.quote_swap(base, quote_reserve, Decimal(amount), _ZERO_FEE)
        assert quote.new_input_reserve * quote.new_output_reserve >= base * quote_reserve

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_input_raises(self, amount: str) -> None:
        """Reject zero and negative inputs."""
        with pytest.raises(InvalidAmountError, match="input_amount"):
            reserve_math.quote_swap(_RESERVE, _RESERVE, Decimal(amount), _FEE)

    def test_empty_reserve_raises(self) -> None:
        """Refuse to quote against an empty reserve."""
        with pytest.raises(InvalidAmountError, match="output_reserve"):
            reserve_math.quote_swap(_RESERVE, Decimal(0), _INPUT, _FEE)

    def test_overflow_is_typed(self) -> None:
        """Surface decimal overflow as ArithmeticOverflowError."""
        huge = Decimal("9e999999")
        with pytest.raises(ArithmeticOverflowError):
            reserve_math.quote_swap(huge, huge, huge, _FEE)


class TestLiquidity:
    """Tests for the add and remove liquidity formulas."""

    def test_initial_supply_is_geometric_mean(self) -> None:
        """Seeding mints sqrt(base * quote)."""
        assert reserve_math.initial_lp_supply(Decimal(400), Decimal(900)) == Decimal(600)

    def test_add_to_empty_pool(self) -> None:
        """An empty pool mints sqrt(base * quote) for the whole pool."""
        quote = reserve_math.quote_add_liquidity(
            Decimal(0), Decimal(0), Decimal(0), Decimal(4), Decimal(9)
        )
        assert quote.lp_tokens_received == Decimal(6)
        assert quote.share_percentage == Decimal(100)

    def test_proportional_add(self) -> None:
        """A 10% deposit mints 10% of the supply."""
        quote = reserve_math.quote_add_liquidity(
            _RESERVE, _RESERVE, _RESERVE, _INPUT, _INPUT
        )
        assert quote.lp_tokens_received == _INPUT
        assert float(quote.share_percentage) == pytest.approx(100 / 11, abs=_TOLERANCE)

    def test_unbalanced_add_average_policy(self) -> None:
        """Average the two deposit ratios by default."""
        quote = reserve_math.quote_add_liquidity(
            _RESERVE, _RESERVE, _RESERVE, Decimal(100), Decimal(300)
        )
        assert quote.lp_tokens_received == Decimal(200)

    def test_unbalanced_add_minimum_policy(self) -> None:
        """Mint against the smaller ratio under the minimum policy."""
        quote = reserve_math.quote_add_liquidity(
            _RESERVE,
            _RESERVE,
            _RESERVE,
            Decimal(100),
            Decimal(300),
            policy=LiquidityPolicy.MINIMUM,
        )
        assert quote.lp_tokens_received == Decimal(100)

    def test_add_rejects_zero_amount(self) -> None:
        """Reject a deposit with an empty side."""
        with pytest.raises(InvalidAmountError, match="amount_quote"):
            reserve_math.quote_add_liquidity(
                _RESERVE, _RESERVE, _RESERVE, _INPUT, Decimal(0)
            )

    def test_remove_is_proportional(self) -> None:
        """Burning a quarter of the supply returns a quarter of each reserve."""
        quote = reserve_math.quote_remove_liquidity(
            Decimal(800), Decimal(1200), Decimal(1000), Decimal(250)
        )
        assert quote.amount_base == Decimal(200)
        assert quote.amount_quote == Decimal(300)
        assert quote.share_percentage == Decimal(25)

    def test_full_burn_quotes_everything(self) -> None:
        """Burning the whole supply quotes the whole reserves."""
        quote = reserve_math.quote_remove_liquidity(
            _RESERVE, _RESERVE, _RESERVE, _RESERVE
        )
        assert quote.amount_base == _RESERVE
        assert quote.amount_quote == _RESERVE

    def test_remove_more_than_supply_raises(self) -> None:
        """Reject a burn above the supply."""
        with pytest.raises(InsufficientLiquidityError, match="exceeds"):
            reserve_math.quote_remove_liquidity(
                _RESERVE, _RESERVE, _RESERVE, Decimal(1001)
            )

    def test_remove_from_empty_supply_raises(self) -> None:
        """Reject a burn when nothing is outstanding."""
        with pytest.raises(InsufficientLiquidityError, match="no LP supply"):
            reserve_math.quote_remove_liquidity(_RESERVE, _RESERVE, Decimal(0), Decimal(1))

    def test_remove_zero_raises(self) -> None:
        """Reject an empty burn."""
        with pytest.raises(InvalidAmountError, match="lp_tokens"):
            reserve_math.quote_remove_liquidity(_RESERVE, _RESERVE, _RESERVE, Decimal(0))


class TestDisplayFigures:
    """Tests for implied probability and TVL."""

    def test_yes_probability(self) -> None:
        """YES probability is quote / (base + quote)."""
        assert reserve_math.yes_probability(Decimal(750), Decimal(250)) == Decimal("0.25")

    def test_yes_probability_empty_pool(self) -> None:
        """An empty pool reads as even odds."""
        assert reserve_math.yes_probability(Decimal(0), Decimal(0)) == Decimal("0.5")

    def test_total_value_locked(self) -> None:
        """TVL sums both reserves."""
        assert reserve_math.total_value_locked(Decimal(750), Decimal(250)) == Decimal(1000)
