"""Core data models shared across the market maker engine.

Define the pool state record that the stores persist, the immutable quote
and result records that the engine returns, and the market, price point,
transaction and event records that flow to the surrounding application.
All quantities are ``Decimal`` so reserves never drift through binary
floating point.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

from prediction_amm.core.exceptions import InvalidAmountError

ZERO = Decimal(0)
ONE = Decimal(1)
HUNDRED = Decimal(100)
DEFAULT_PRICE = Decimal("0.5")

_POOL_ID_PREFIX = "pool_"

Numeric = Decimal | int | float | str


def to_decimal(value: Numeric, name: str = "amount") -> Decimal:
    """Convert a numeric input to a finite ``Decimal``.

    Floats go through ``str()`` so that ``0.003`` becomes ``Decimal("0.003")``
    rather than its binary expansion.

    Args:
        value: The value to convert.
        name: Field name used in the error message.

    Returns:
        The value as a finite ``Decimal``.

    Raises:
        InvalidAmountError: If the value cannot be parsed or is NaN/infinite.

    """
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            msg = f"{name} is not a number: {value!r}"
            raise InvalidAmountError(msg) from exc
    if not result.is_finite():
        msg = f"{name} must be finite, got {value!r}"
        raise InvalidAmountError(msg)
    return result


class Side(Enum):
    """Which reserve a swap spends.

    ``A`` spends the base (YES) token and receives NO; ``B`` spends the
    quote (NO) token and receives YES.
    """

    A = "A"
    B = "B"

    @classmethod
    def parse(cls, value: "str | Side") -> "Side":
        """Parse a side from ``A``/``B`` or the outcome names ``YES``/``NO``.

        Args:
            value: Side name, case-insensitive, or an existing ``Side``.

        Returns:
            The matching ``Side``.

        Raises:
            ValueError: If the value names no side or is not a string.

        """
        if isinstance(value, Side):
            return value
        if not isinstance(value, str):  # pyright: ignore[reportUnnecessaryIsInstance]
            msg = f"Swap side must be a name or a Side, got {type(value).__name__}"
            raise ValueError(msg)  # noqa: TRY004
        normalised = value.strip().upper()
        aliases = {"A": cls.A, "YES": cls.A, "B": cls.B, "NO": cls.B}
        try:
            return aliases[normalised]
        except KeyError:
            msg = f"Unknown swap side {value!r}; use A/YES or B/NO"
            raise ValueError(msg) from None


class LiquidityPolicy(Enum):
    """How LP tokens are minted for a deposit into a live pool.

    ``AVERAGE`` mints against the mean of the two deposit ratios, so an
    unbalanced deposit is not penalised. ``MINIMUM`` mints against the
    smaller ratio, the usual constant-product convention.
    """

    AVERAGE = "average"
    MINIMUM = "minimum"


class TransactionType(Enum):
    """Kind of committed pool mutation recorded in the transaction log."""

    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    SWAP_YES = "swap_yes"
    SWAP_NO = "swap_no"


class PoolEventKind(Enum):
    """Kind of state change announced to pool observers."""

    INITIALIZED = "initialized"
    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"


@dataclass(frozen=True)
class PoolState:
    """Reserves, LP supply and rolling counters of a single pool.

    Instances are immutable snapshots; the engine builds a new one for every
    committed mutation and hands it to the store in one write.

    Args:
        pool_id: Opaque unique pool identifier.
        base_reserve: YES token reserve.
        quote_reserve: NO token reserve.
        lp_supply: Total outstanding liquidity-provider claims.
        volume_24h: Accumulated swap input volume.
        fees_24h: Accumulated swap fees retained by the pool.
        last_updated: Epoch milliseconds of the last mutation.
        version: Count of committed writes. Each commit stores
            ``version + 1`` of the state it read, which lets a store reject
            a write based on a state another writer has since replaced.

    """

    pool_id: str
    base_reserve: Decimal
    quote_reserve: Decimal
    lp_supply: Decimal
    volume_24h: Decimal = ZERO
    fees_24h: Decimal = ZERO
    last_updated: int = 0
    version: int = 0

    @property
    def price(self) -> Decimal:
        """Return the pool price, NO per YES (``quote_reserve / base_reserve``)."""
        return self.quote_reserve / self.base_reserve

    @property
    def k(self) -> Decimal:
        """Return the constant product ``base_reserve * quote_reserve``."""
        return self.base_reserve * self.quote_reserve


@dataclass(frozen=True)
class PricePoint:
    """A single observed price at a moment in time.

    Args:
        timestamp: Epoch milliseconds of the observation.
        price: ``quote_reserve / base_reserve`` at that moment.

    """

    timestamp: int
    price: Decimal


@dataclass(frozen=True)
class SwapQuote:
    """Computed outcome of a prospective swap. Never stored.

    Args:
        side: Which reserve the swap spends.
        input_amount: Gross amount paid in, including the fee.
        output_amount: Amount paid out of the opposite reserve.
        fee: Portion of the input retained by the pool.
        price_impact_percent: Change in marginal price caused by the swap.
        minimum_received: Output floor after the caller's slippage tolerance.
        new_input_reserve: Input-side reserve after the swap.
        new_output_reserve: Output-side reserve after the swap.

    """

    side: Side
    input_amount: Decimal
    output_amount: Decimal
    fee: Decimal
    price_impact_percent: Decimal
    minimum_received: Decimal
    new_input_reserve: Decimal
    new_output_reserve: Decimal


@dataclass(frozen=True)
class LiquidityQuote:
    """Computed outcome of a prospective deposit."""

    lp_tokens_received: Decimal
    share_percentage: Decimal


@dataclass(frozen=True)
class WithdrawalQuote:
    """Computed outcome of a prospective LP burn."""

    amount_base: Decimal
    amount_quote: Decimal
    share_percentage: Decimal


@dataclass(frozen=True)
class SwapResult:
    """Committed swap: the quote that was applied and the resulting state."""

    quote: SwapQuote
    state: PoolState
    new_price: Decimal

    @property
    def output_amount(self) -> Decimal:
        """Return the amount paid out to the trader."""
        return self.quote.output_amount


@dataclass(frozen=True)
class LiquidityResult:
    """Committed deposit: the quote that was applied and the resulting state."""

    quote: LiquidityQuote
    state: PoolState

    @property
    def lp_tokens_received(self) -> Decimal:
        """Return the LP tokens minted for the deposit."""
        return self.quote.lp_tokens_received


@dataclass(frozen=True)
class WithdrawalResult:
    """Committed withdrawal: the quote that was applied and the resulting state."""

    quote: WithdrawalQuote
    state: PoolState
    lp_tokens_burned: Decimal


@dataclass(frozen=True)
class PoolSummary:
    """Display-oriented view of a pool derived from its state.

    Args:
        pool_id: Pool identifier.
        price: NO per YES, ``quote / base``.
        yes_probability: Implied YES probability, ``quote / (base + quote)``.
        no_probability: Implied NO probability, ``base / (base + quote)``.
        tvl: Total value locked, ``base + quote`` in token units.
        base_reserve: YES token reserve.
        quote_reserve: NO token reserve.
        lp_supply: Outstanding LP supply.
        volume_24h: Accumulated swap volume.
        fees_24h: Accumulated swap fees.
        last_updated: Epoch milliseconds of the last mutation.

    """

    pool_id: str
    price: Decimal
    yes_probability: Decimal
    no_probability: Decimal
    tvl: Decimal
    base_reserve: Decimal
    quote_reserve: Decimal
    lp_supply: Decimal
    volume_24h: Decimal
    fees_24h: Decimal
    last_updated: int


@dataclass(frozen=True)
class Market:
    """A binary question owned by the surrounding application.

    The engine reads markets for context and never mutates them.

    Args:
        market_id: Unique market identifier.
        question: Human-readable question text.
        yes_mint: Token identifier of the YES outcome.
        no_mint: Token identifier of the NO outcome.
        creator: Identifier of the account that created the market.
        created_at: Epoch milliseconds of creation.
        pool_id: Identifier of the market's pool, if one was assigned.
        lp_mint: Token identifier of the pool's LP token, if any.

    """

    market_id: str
    question: str
    yes_mint: str
    no_mint: str
    creator: str
    created_at: int
    pool_id: str | None = None
    lp_mint: str | None = None

    @property
    def resolved_pool_id(self) -> str:
        """Return the assigned pool id, or ``pool_<market_id>`` when unassigned."""
        return self.pool_id or f"{_POOL_ID_PREFIX}{self.market_id}"


@dataclass(frozen=True)
class PoolTransaction:
    """Record of a committed pool mutation.

    Args:
        pool_id: Pool the mutation was applied to.
        kind: Which operation was committed.
        amount: Headline amount (swap input, base deposit, or LP burned).
        timestamp: Epoch milliseconds of the commit.
        tx_id: Identifier assigned by the engine.

    """

    pool_id: str
    kind: TransactionType
    amount: Decimal
    timestamp: int
    tx_id: str = field(default="")


@dataclass(frozen=True)
class PoolEvent:
    """Notification published after every committed mutation."""

    pool_id: str
    kind: PoolEventKind
    state: PoolState
