"""Pool engine: quote, validate and commit every pool state transition.

``PoolEngine`` is the only writer of pool state. Each mutation follows the
same shape under the store's per-pool lock:

1. Re-read the current state (never trust an earlier quote).
2. Compute the full new state in memory with ``reserve_math``.
3. Validate it (positive finite reserves and supply, non-decreasing ``k``
   for swaps).
4. Persist it in one ``save`` carrying the next ``version``.
5. Append the new price to the history log, still under the lock, so
   history points land in commit order.

After the lock is released the engine records a transaction and publishes
a ``PoolEvent``. A failure in steps 1-4 leaves stored state untouched. A
store that spots another writer at step 4 (a second process sharing the
database) raises ``ConcurrentModificationError`` and nothing is written.
"""

import logging
import uuid
from collections.abc import Callable
from decimal import Decimal

from prediction_amm.core.config import EngineConfig
from prediction_amm.core.exceptions import (
    AlreadyInitializedError,
    ArithmeticUnderflowError,
    InsufficientLiquidityError,
    InvalidAmountError,
    PoolNotFoundError,
)
from prediction_amm.core.models import (
    DEFAULT_PRICE,
    HUNDRED,
    ONE,
    ZERO,
    LiquidityQuote,
    LiquidityResult,
    Market,
    Numeric,
    PoolEvent,
    PoolEventKind,
    PoolState,
    PoolSummary,
    PoolTransaction,
    Side,
    SwapQuote,
    SwapResult,
    TransactionType,
    WithdrawalQuote,
    WithdrawalResult,
    to_decimal,
)
from prediction_amm.core.protocols import (
    MarketRegistry,
    PoolObserver,
    PoolStateStore,
    TransactionLog,
)
from prediction_amm.core.timestamps import now_ms
from prediction_amm.pool import reserve_math
from prediction_amm.pool.notifications import PoolEventBus
from prediction_amm.pool.price_history import PriceHistoryLog

logger = logging.getLogger(__name__)


class PoolEngine:
    """Mediate every pool operation through quote, validate and commit.

    Args:
        store: Durable pool state storage.
        history: Price history log appended after each commit, if any.
        registry: Market registry used to map pools to history series.
            Pools with no registered market record history under their
            own pool id.
        transactions: Log that receives a record of each commit, if any.
        config: Fee, slippage, liquidity policy and seed defaults.
        events: Observer bus; a private one is created when omitted.
        clock: Source of epoch-millisecond timestamps.

    Example::

        engine = PoolEngine(InMemoryPoolStateStore())
        engine.initialize("pool_1", Decimal(1000), Decimal(1000))
        result = engine.swap("pool_1", Side.A, Decimal(100))
        result.new_price  # Decimal('0.8269...')

    """

    def __init__(  # noqa: PLR0913
        self,
        store: PoolStateStore,
        *,
        history: PriceHistoryLog | None = None,
        registry: MarketRegistry | None = None,
        transactions: TransactionLog | None = None,
        config: EngineConfig | None = None,
        events: PoolEventBus | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the engine with its collaborators."""
        self._store = store
        self._history = history
        self._registry = registry
        self._transactions = transactions
        self._config = config or EngineConfig()
        self._events = events or PoolEventBus()
        self._clock = clock

    @property
    def config(self) -> EngineConfig:
        """Return the engine configuration."""
        return self._config

    @property
    def history(self) -> PriceHistoryLog | None:
        """Return the attached price history log, if any."""
        return self._history

    def subscribe(self, observer: PoolObserver) -> Callable[[], None]:
        """Register an observer of committed mutations.

        Returns:
            A function that removes the subscription.

        """
        return self._events.subscribe(observer)

    # -- reads ---------------------------------------------------------------

    def get_state(self, pool_id: str) -> PoolState:
        """Return the current state of a pool.

        Raises:
            PoolNotFoundError: If the pool has not been initialised.

        """
        state = self._store.get(pool_id)
        if state is None:
            raise PoolNotFoundError(pool_id)
        return state

    def is_initialized(self, pool_id: str) -> bool:
        """Return whether a pool exists."""
        return self._store.get(pool_id) is not None

    def current_price(self, pool_id: str) -> Decimal:
        """Return ``quote_reserve / base_reserve``, or 0.5 for an unknown pool.

        The default reflects an uninitialised 1:1 assumption; use
        ``is_initialized`` to tell a missing pool from a balanced one.
        """
        state = self._store.get(pool_id)
        if state is None:
            return DEFAULT_PRICE
        return state.price

    def summary(self, pool_id: str) -> PoolSummary:
        """Return display figures (price, implied probabilities, TVL) for a pool.

        Raises:
            PoolNotFoundError: If the pool has not been initialised.

        """
        state = self.get_state(pool_id)
        yes_probability = reserve_math.yes_probability(state.base_reserve, state.quote_reserve)
        return PoolSummary(
            pool_id=state.pool_id,
            price=state.price,
            yes_probability=yes_probability,
            no_probability=ONE - yes_probability,
            tvl=reserve_math.total_value_locked(state.base_reserve, state.quote_reserve),
            base_reserve=state.base_reserve,
            quote_reserve=state.quote_reserve,
            lp_supply=state.lp_supply,
            volume_24h=state.volume_24h,
            fees_24h=state.fees_24h,
            last_updated=state.last_updated,
        )

    def market_key(self, pool_id: str) -> str:
        """Return the history series key for a pool (its market id, else the pool id)."""
        if self._registry is not None:
            market = self._registry.market_for_pool(pool_id)
            if market is not None:
                return market.market_id
        return pool_id

    # -- initialisation ------------------------------------------------------

    def initialize(
        self,
        pool_id: str,
        seed_base: Numeric | None = None,
        seed_quote: Numeric | None = None,
        *,
        strict: bool = False,
    ) -> PoolState:
        """Create a pool with seed reserves, or return the existing one.

        The call is idempotent: an existing pool is returned unchanged and
        nothing is published. With ``strict=True`` an existing pool raises
        instead. The LP supply of a new pool is ``sqrt(base * quote)``.

        Args:
            pool_id: Identifier supplied by the market registry.
            seed_base: Initial YES reserve; ``config.seed_base`` by default.
            seed_quote: Initial NO reserve; ``config.seed_quote`` by default.
            strict: Raise ``AlreadyInitializedError`` for an existing pool.

        Returns:
            The new or existing pool state.

        Raises:
            InvalidAmountError: If a seed reserve is not positive.
            AlreadyInitializedError: If ``strict`` and the pool exists.

        """
        base = to_decimal(self._config.seed_base if seed_base is None else seed_base, "seed_base")
        quote = to_decimal(
            self._config.seed_quote if seed_quote is None else seed_quote, "seed_quote"
        )
        with self._store.lock(pool_id):
            existing = self._store.get(pool_id)
            if existing is not None:
                if strict:
                    raise AlreadyInitializedError(pool_id)
                return existing
            state = PoolState(
                pool_id=pool_id,
                base_reserve=base,
                quote_reserve=quote,
                lp_supply=reserve_math.initial_lp_supply(base, quote),
                last_updated=self._clock(),
                version=1,
            )
            self._validate(state)
            self._store.save(state)
            if self._history is not None:
                self._history.seed_if_empty(self.market_key(pool_id), state.price)

        logger.info(
            "Initialized pool %s with reserves %s/%s (LP %s)",
            pool_id,
            base,
            quote,
            state.lp_supply,
        )
        self._events.publish(PoolEvent(pool_id, PoolEventKind.INITIALIZED, state))
        return state

    def initialize_for_market(
        self,
        market: Market,
        seed_base: Numeric | None = None,
        seed_quote: Numeric | None = None,
    ) -> PoolState:
        """Initialise (or fetch) a market's pool and seed its price history.

        The pool id is the market's assigned ``pool_id`` or
        ``pool_<market_id>``. History is seeded even when the pool already
        existed, so a market observed for the first time gets a baseline.
        """
        with self._store.lock(market.resolved_pool_id):
            state = self.initialize(market.resolved_pool_id, seed_base, seed_quote)
            if self._history is not None:
                self._history.seed_if_empty(market.market_id, state.price)
        return state

    # -- swaps ---------------------------------------------------------------

    def quote_swap(
        self,
        pool_id: str,
        side: Side | str,
        input_amount: Numeric,
        fee_rate: Numeric | None = None,
        slippage_pct: Numeric | None = None,
    ) -> SwapQuote:
        """Quote a swap against the current reserves without changing state.

        The quote is a snapshot and may go stale; ``swap`` recomputes it.

        Raises:
            PoolNotFoundError: If the pool does not exist.
            InvalidAmountError: If the amount, fee rate or slippage is invalid.

        """
        state = self.get_state(pool_id)
        quote = self._quote_swap_on(state, Side.parse(side), input_amount, fee_rate, slippage_pct)
        logger.debug(
            "Quoted %s swap of %s on %s: out %s",
            quote.side.value,
            quote.input_amount,
            pool_id,
            quote.output_amount,
        )
        return quote

    def swap(
        self,
        pool_id: str,
        side: Side | str,
        input_amount: Numeric,
        fee_rate: Numeric | None = None,
        slippage_pct: Numeric | None = None,
    ) -> SwapResult:
        """Apply a swap and persist the new reserves.

        Side ``A`` pays YES into the base reserve and takes NO out of the
        quote reserve; side ``B`` is the mirror image. The gross input is
        added to ``volume_24h`` and the fee to ``fees_24h``.

        Args:
            pool_id: Pool to trade against.
            side: ``Side.A``/``Side.B`` or a name accepted by ``Side.parse``.
            input_amount: Gross amount paid in.
            fee_rate: Fee fraction; ``config.fee_rate`` by default.
            slippage_pct: Tolerance for ``minimum_received``.

        Returns:
            The applied quote, the new state and the new price.

        Raises:
            PoolNotFoundError: If the pool does not exist.
            InvalidAmountError: If the amount or fee rate is invalid.
            ArithmeticOverflowError: If the computation overflows.
            ArithmeticUnderflowError: If the new state would be invalid.
            ConcurrentModificationError: If another process committed to the
                pool between the read and the write.

        """
        parsed_side = Side.parse(side)
        with self._store.lock(pool_id):
            state = self.get_state(pool_id)
            quote = self._quote_swap_on(state, parsed_side, input_amount, fee_rate, slippage_pct)
            if parsed_side is Side.A:
                base, quote_reserve = quote.new_input_reserve, quote.new_output_reserve
            else:
                base, quote_reserve = quote.new_output_reserve, quote.new_input_reserve
            new_state = PoolState(
                pool_id=pool_id,
                base_reserve=base,
                quote_reserve=quote_reserve,
                lp_supply=state.lp_supply,
                volume_24h=state.volume_24h + quote.input_amount,
                fees_24h=state.fees_24h + quote.fee,
                last_updated=self._clock(),
                version=state.version + 1,
            )
            self._validate(new_state)
            if new_state.k < state.k:
                msg = f"swap would shrink the constant product of {pool_id}"
                raise ArithmeticUnderflowError(msg)
            self._store.save(new_state)
            self._append_price(new_state)

        logger.info(
            "Swap on %s: %s %s in, %s out, fee %s, price %s",
            pool_id,
            quote.input_amount,
            "YES" if parsed_side is Side.A else "NO",
            quote.output_amount,
            quote.fee,
            new_state.price,
        )
        kind = TransactionType.SWAP_YES if parsed_side is Side.A else TransactionType.SWAP_NO
        self._after_commit(new_state, PoolEventKind.SWAP, kind, quote.input_amount)
        return SwapResult(quote=quote, state=new_state, new_price=new_state.price)

    def _quote_swap_on(
        self,
        state: PoolState,
        side: Side,
        input_amount: Numeric,
        fee_rate: Numeric | None,
        slippage_pct: Numeric | None,
    ) -> SwapQuote:
        """Quote a swap against an explicit state snapshot."""
        amount = to_decimal(input_amount, "input_amount")
        fee = to_decimal(self._config.fee_rate if fee_rate is None else fee_rate, "fee_rate")
        if not (ZERO <= fee < ONE):
            msg = f"fee_rate must be in [0, 1), got {fee}"
            raise InvalidAmountError(msg)
        slippage = to_decimal(
            self._config.slippage_pct if slippage_pct is None else slippage_pct, "slippage_pct"
        )
        if not (ZERO <= slippage <= HUNDRED):
            msg = f"slippage_pct must be in [0, 100], got {slippage}"
            raise InvalidAmountError(msg)

        if side is Side.A:
            input_reserve, output_reserve = state.base_reserve, state.quote_reserve
        else:
            input_reserve, output_reserve = state.quote_reserve, state.base_reserve
        return reserve_math.quote_swap(
            input_reserve,
            output_reserve,
            amount,
            fee,
            side=side,
            slippage_pct=slippage,
        )

    # -- liquidity -----------------------------------------------------------

    def quote_add_liquidity(
        self,
        pool_id: str,
        amount_base: Numeric,
        amount_quote: Numeric,
    ) -> LiquidityQuote:
        """Quote the LP tokens a deposit would mint, without changing state.

        Raises:
            PoolNotFoundError: If the pool does not exist.
            InvalidAmountError: If either amount is not positive.

        """
        state = self.get_state(pool_id)
        return reserve_math.quote_add_liquidity(
            state.base_reserve,
            state.quote_reserve,
            state.lp_supply,
            to_decimal(amount_base, "amount_base"),
            to_decimal(amount_quote, "amount_quote"),
            policy=self._config.liquidity_policy,
        )

    def add_liquidity(
        self,
        pool_id: str,
        amount_base: Numeric,
        amount_quote: Numeric,
    ) -> LiquidityResult:
        """Deposit both tokens and mint LP tokens.

        Returns:
            The applied quote and the new state.

        Raises:
            PoolNotFoundError: If the pool does not exist.
            InvalidAmountError: If either amount is not positive.

        """
        base_in = to_decimal(amount_base, "amount_base")
        quote_in = to_decimal(amount_quote, "amount_quote")
        with self._store.lock(pool_id):
            state = self.get_state(pool_id)
            quote = reserve_math.quote_add_liquidity(
                state.base_reserve,
                state.quote_reserve,
                state.lp_supply,
                base_in,
                quote_in,
                policy=self._config.liquidity_policy,
            )
            new_state = PoolState(
                pool_id=pool_id,
                base_reserve=state.base_reserve + base_in,
                quote_reserve=state.quote_reserve + quote_in,
                lp_supply=state.lp_supply + quote.lp_tokens_received,
                volume_24h=state.volume_24h,
                fees_24h=state.fees_24h,
                last_updated=self._clock(),
                version=state.version + 1,
            )
            self._validate(new_state)
            self._store.save(new_state)
            self._append_price(new_state)

        logger.info(
            "Added liquidity to %s: %s YES + %s NO for %s LP",
            pool_id,
            base_in,
            quote_in,
            quote.lp_tokens_received,
        )
        self._after_commit(
            new_state, PoolEventKind.ADD_LIQUIDITY, TransactionType.ADD_LIQUIDITY, base_in
        )
        return LiquidityResult(quote=quote, state=new_state)

    def quote_remove_liquidity(self, pool_id: str, lp_tokens: Numeric) -> WithdrawalQuote:
        """Quote the reserves an LP burn would return, without changing state.

        A burn of the entire supply quotes the entire reserves, even though
        ``remove_liquidity`` will refuse to commit it.

        Raises:
            PoolNotFoundError: If the pool does not exist.
            InvalidAmountError: If ``lp_tokens`` is not positive.
            InsufficientLiquidityError: If ``lp_tokens`` exceeds the supply
                beyond the rounding tolerance.

        """
        state = self.get_state(pool_id)
        burn = self._clamp_burn(state, to_decimal(lp_tokens, "lp_tokens"))
        return reserve_math.quote_remove_liquidity(
            state.base_reserve, state.quote_reserve, state.lp_supply, burn
        )

    def remove_liquidity(self, pool_id: str, lp_tokens: Numeric) -> WithdrawalResult:
        """Burn LP tokens and pay out the proportional reserves.

        Returns:
            The applied quote, the new state and the tokens actually burned
            (a burn within tolerance above the supply is clamped to it).

        Raises:
            PoolNotFoundError: If the pool does not exist.
            InvalidAmountError: If ``lp_tokens`` is not positive.
            InsufficientLiquidityError: If the burn exceeds the supply or
                would leave a reserve or the supply at zero.

        """
        requested = to_decimal(lp_tokens, "lp_tokens")
        with self._store.lock(pool_id):
            state = self.get_state(pool_id)
            burn = self._clamp_burn(state, requested)
            quote = reserve_math.quote_remove_liquidity(
                state.base_reserve, state.quote_reserve, state.lp_supply, burn
            )
            new_state = PoolState(
                pool_id=pool_id,
                base_reserve=state.base_reserve - quote.amount_base,
                quote_reserve=state.quote_reserve - quote.amount_quote,
                lp_supply=state.lp_supply - burn,
                volume_24h=state.volume_24h,
                fees_24h=state.fees_24h,
                last_updated=self._clock(),
                version=state.version + 1,
            )
            if min(new_state.base_reserve, new_state.quote_reserve, new_state.lp_supply) <= ZERO:
                msg = f"burning {burn} LP would drain pool {pool_id}"
                raise InsufficientLiquidityError(msg)
            self._validate(new_state)
            self._store.save(new_state)
            self._append_price(new_state)

        logger.info(
            "Removed liquidity from %s: %s LP for %s YES + %s NO",
            pool_id,
            burn,
            quote.amount_base,
            quote.amount_quote,
        )
        self._after_commit(
            new_state, PoolEventKind.REMOVE_LIQUIDITY, TransactionType.REMOVE_LIQUIDITY, burn
        )
        return WithdrawalResult(quote=quote, state=new_state, lp_tokens_burned=burn)

    def _clamp_burn(self, state: PoolState, lp_tokens: Decimal) -> Decimal:
        """Clamp a burn within the rounding tolerance above the supply to the supply.

        Anything further above the supply is left for ``quote_remove_liquidity``
        to reject.
        """
        ceiling = state.lp_supply * (ONE + self._config.lp_tolerance)
        if state.lp_supply < lp_tokens <= ceiling:
            return state.lp_supply
        return lp_tokens

    # -- commit helpers ------------------------------------------------------

    @staticmethod
    def _validate(state: PoolState) -> None:
        """Reject a state whose reserves or supply are not positive and finite."""
        for name, value in (
            ("base_reserve", state.base_reserve),
            ("quote_reserve", state.quote_reserve),
            ("lp_supply", state.lp_supply),
        ):
            if not value.is_finite() or value <= ZERO:
                msg = f"{name} of {state.pool_id} would become {value}"
                raise ArithmeticUnderflowError(msg)

    def _append_price(self, state: PoolState) -> None:
        """Append a committed state's price to its market's history series.

        Called with the pool lock held so points are stored in commit order.
        """
        if self._history is not None:
            self._history.append(self.market_key(state.pool_id), state.price, state.last_updated)

    def _after_commit(
        self,
        state: PoolState,
        event_kind: PoolEventKind,
        transaction_kind: TransactionType,
        amount: Decimal,
    ) -> None:
        """Record the transaction and notify observers of a committed state."""
        if self._transactions is not None:
            self._transactions.record(
                PoolTransaction(
                    pool_id=state.pool_id,
                    kind=transaction_kind,
                    amount=amount,
                    timestamp=state.last_updated,
                    tx_id=uuid.uuid4().hex,
                )
            )
        self._events.publish(PoolEvent(state.pool_id, event_kind, state))
