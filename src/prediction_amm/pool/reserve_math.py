"""Pure constant-product formulas for a two-token binary outcome pool.

Every function here is stateless and deterministic over the invariant
``x * y = k``. Nothing reads or writes pool state; ``PoolEngine`` feeds in
a snapshot and decides what to persist.

Decimal context signals raised mid-computation (overflow, division by
zero, invalid operations on extreme inputs) surface as
``ArithmeticOverflowError``. A reserve that comes out non-positive or
non-finite surfaces as ``ArithmeticUnderflowError``.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import ROUND_CEILING, Decimal, DecimalException, localcontext

from prediction_amm.core.exceptions import (
    ArithmeticOverflowError,
    ArithmeticUnderflowError,
    InsufficientLiquidityError,
    InvalidAmountError,
)
from prediction_amm.core.models import (
    HUNDRED,
    ONE,
    ZERO,
    LiquidityPolicy,
    LiquidityQuote,
    Side,
    SwapQuote,
    WithdrawalQuote,
)

_TWO = Decimal(2)
DEFAULT_SLIPPAGE_PCT = Decimal("0.5")


@contextmanager
def _guarded(operation: str) -> Iterator[None]:
    """Translate decimal arithmetic signals into ``ArithmeticOverflowError``."""
    try:
        yield
    except DecimalException as exc:
        msg = f"{operation} failed: {type(exc).__name__}"
        raise ArithmeticOverflowError(msg) from exc


def _require_positive(value: Decimal, name: str) -> None:
    """Raise ``InvalidAmountError`` unless the value is finite and > 0."""
    if not value.is_finite() or value <= ZERO:
        msg = f"{name} must be positive and finite, got {value}"
        raise InvalidAmountError(msg)


def _require_reserve(value: Decimal, name: str) -> Decimal:
    """Raise ``ArithmeticUnderflowError`` unless a computed reserve is usable."""
    if not value.is_finite() or value <= ZERO:
        msg = f"computed {name} is not positive: {value}"
        raise ArithmeticUnderflowError(msg)
    return value


def quote_swap(
    input_reserve: Decimal,
    output_reserve: Decimal,
    input_amount: Decimal,
    fee_rate: Decimal,
    side: Side = Side.A,
    slippage_pct: Decimal = DEFAULT_SLIPPAGE_PCT,
) -> SwapQuote:
    """Quote an exact-input swap against a constant-product pool.

    The fee is taken from the input before it enters the curve and stays
    in the pool, so ``k`` grows by the retained fee. The new output reserve
    is rounded up, which keeps ``output_amount`` strictly below
    ``output_reserve`` and the product non-decreasing even at zero fee.

    Args:
        input_reserve: Reserve of the token being paid in.
        output_reserve: Reserve of the token being paid out.
        input_amount: Gross amount paid in.
        fee_rate: Fraction of the input retained as a fee.
        side: Which reserve the swap spends, carried into the quote.
        slippage_pct: Tolerance, in percent, used for ``minimum_received``.

    Returns:
        A ``SwapQuote`` with the output, fee, price impact and new reserves.

    Raises:
        InvalidAmountError: If the amount or either reserve is not positive.
        ArithmeticOverflowError: If the decimal context overflows.
        ArithmeticUnderflowError: If a new reserve is not positive.

    """
    _require_positive(input_amount, "input_amount")
    _require_positive(input_reserve, "input_reserve")
    _require_positive(output_reserve, "output_reserve")

    with _guarded("swap quote"):
        fee = input_amount * fee_rate
        input_after_fee = input_amount - fee
        new_input_reserve = _require_reserve(input_reserve + input_after_fee, "input reserve")
        with localcontext() as ctx:
            ctx.rounding = ROUND_CEILING
            new_output_reserve = (input_reserve * output_reserve) / new_input_reserve
        _require_reserve(new_output_reserve, "output reserve")
        output_amount = output_reserve - new_output_reserve
        impact = price_impact(input_reserve, output_reserve, new_input_reserve, new_output_reserve)
        minimum_received = output_amount * (ONE - slippage_pct / HUNDRED)

    return SwapQuote(
        side=side,
        input_amount=input_amount,
        output_amount=output_amount,
        fee=fee,
        price_impact_percent=impact,
        minimum_received=minimum_received,
        new_input_reserve=new_input_reserve,
        new_output_reserve=new_output_reserve,
    )


def price_impact(
    input_reserve: Decimal,
    output_reserve: Decimal,
    new_input_reserve: Decimal,
    new_output_reserve: Decimal,
) -> Decimal:
    """Return the percentage change in marginal price between two reserve pairs.

    Prices are ``output / input`` on each side of the trade.
    """
    with _guarded("price impact"):
        current_price = output_reserve / input_reserve
        new_price = new_output_reserve / new_input_reserve
        return abs((new_price - current_price) / current_price) * HUNDRED


def initial_lp_supply(base_amount: Decimal, quote_amount: Decimal) -> Decimal:
    """Return the LP supply minted by seeding an empty pool: ``sqrt(base * quote)``."""
    _require_positive(base_amount, "base amount")
    _require_positive(quote_amount, "quote amount")
    with _guarded("initial LP supply"):
        return (base_amount * quote_amount).sqrt()


def quote_add_liquidity(
    base_reserve: Decimal,
    quote_reserve: Decimal,
    lp_supply: Decimal,
    amount_base: Decimal,
    amount_quote: Decimal,
    policy: LiquidityPolicy = LiquidityPolicy.AVERAGE,
) -> LiquidityQuote:
    """Quote the LP tokens minted for a deposit.

    An empty pool (both reserves zero) mints ``sqrt(base * quote)`` for a
    100% share. A live pool mints ``lp_supply`` times the deposit ratio,
    where the ratio is the mean of the two per-side ratios under
    ``AVERAGE`` or the smaller one under ``MINIMUM``.

    Args:
        base_reserve: Current YES reserve.
        quote_reserve: Current NO reserve.
        lp_supply: Current LP supply.
        amount_base: YES tokens deposited.
        amount_quote: NO tokens deposited.
        policy: Ratio rule for live pools.

    Returns:
        A ``LiquidityQuote`` with the minted tokens and resulting share.

    Raises:
        InvalidAmountError: If either deposit is not positive, or the pool
            has exactly one empty reserve.

    """
    _require_positive(amount_base, "amount_base")
    _require_positive(amount_quote, "amount_quote")

    if base_reserve == ZERO and quote_reserve == ZERO:
        return LiquidityQuote(
            lp_tokens_received=initial_lp_supply(amount_base, amount_quote),
            share_percentage=HUNDRED,
        )

    _require_positive(base_reserve, "base_reserve")
    _require_positive(quote_reserve, "quote_reserve")
    _require_positive(lp_supply, "lp_supply")

    with _guarded("add liquidity quote"):
        ratio_base = amount_base / base_reserve
        ratio_quote = amount_quote / quote_reserve
        if policy is LiquidityPolicy.MINIMUM:
            ratio = min(ratio_base, ratio_quote)
        else:
            ratio = (ratio_base + ratio_quote) / _TWO
        lp_tokens = lp_supply * ratio
        share = lp_tokens / (lp_supply + lp_tokens) * HUNDRED

    return LiquidityQuote(lp_tokens_received=lp_tokens, share_percentage=share)


def quote_remove_liquidity(
    base_reserve: Decimal,
    quote_reserve: Decimal,
    lp_supply: Decimal,
    lp_tokens: Decimal,
) -> WithdrawalQuote:
    """Quote the reserves returned for burning LP tokens.

    Each side is paid out in proportion ``lp_tokens / lp_supply``.

    Raises:
        InvalidAmountError: If ``lp_tokens`` is not positive.
        InsufficientLiquidityError: If ``lp_tokens`` exceeds ``lp_supply``
            or the pool has no supply.

    """
    _require_positive(lp_tokens, "lp_tokens")
    if lp_supply <= ZERO:
        msg = "pool has no LP supply to withdraw from"
        raise InsufficientLiquidityError(msg)
    if lp_tokens > lp_supply:
        msg = f"lp_tokens {lp_tokens} exceeds LP supply {lp_supply}"
        raise InsufficientLiquidityError(msg)

    with _guarded("remove liquidity quote"):
        share = lp_tokens / lp_supply
        return WithdrawalQuote(
            amount_base=base_reserve * share,
            amount_quote=quote_reserve * share,
            share_percentage=share * HUNDRED,
        )


def yes_probability(base_reserve: Decimal, quote_reserve: Decimal) -> Decimal:
    """Return the implied YES probability ``quote / (base + quote)``.

    An empty pool reads as an even 0.5.
    """
    total = base_reserve + quote_reserve
    if total <= ZERO:
        return ONE / _TWO
    return quote_reserve / total


def total_value_locked(base_reserve: Decimal, quote_reserve: Decimal) -> Decimal:
    """Return the pool's TVL in token units, ``base + quote``."""
    return base_reserve + quote_reserve
