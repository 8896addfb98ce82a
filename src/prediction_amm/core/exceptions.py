"""Exception hierarchy for the market maker engine.

Every failure the engine reports derives from ``AmmError`` so callers can
catch the whole family at a boundary (the CLI does) while still matching
on the specialised types where the distinction matters.
"""


class AmmError(Exception):
    """Base exception for all market maker engine errors."""


class PoolNotFoundError(AmmError):
    """No pool state exists for the requested pool identifier.

    Args:
        pool_id: The identifier that was looked up.

    """

    def __init__(self, pool_id: str) -> None:
        """Initialize the error with the missing pool identifier.

        Args:
            pool_id: The identifier that was looked up.

        """
        super().__init__(f"Pool not found: {pool_id}")
        self.pool_id = pool_id


class InvalidAmountError(AmmError):
    """An amount or reserve was non-positive, non-finite, or unparseable."""


class InsufficientLiquidityError(AmmError):
    """An LP burn exceeds the supply or would drain the pool."""


class ArithmeticOverflowError(AmmError):
    """A reserve computation overflowed the decimal context."""


class ArithmeticUnderflowError(AmmError):
    """A reserve computation produced a non-positive or non-finite result."""


class AlreadyInitializedError(AmmError):
    """A strict initialization found an existing pool.

    Args:
        pool_id: The identifier of the pool that already exists.

    """

    def __init__(self, pool_id: str) -> None:
        """Initialize the error with the existing pool identifier.

        Args:
            pool_id: The identifier of the pool that already exists.

        """
        super().__init__(f"Pool already initialized: {pool_id}")
        self.pool_id = pool_id


class ConcurrentModificationError(AmmError):
    """Another writer committed to the pool between this writer's read and save.

    Raised by stores that detect the conflict through the state's
    ``version`` counter. Nothing is written; re-run the operation to apply
    it against the newer state.

    Args:
        pool_id: The identifier of the contended pool.
        version: The version the rejected write would have stored.

    """

    def __init__(self, pool_id: str, version: int) -> None:
        """Initialize the error with the contended pool and rejected version.

        Args:
            pool_id: The identifier of the contended pool.
            version: The version the rejected write would have stored.

        """
        super().__init__(
            f"Pool {pool_id} was modified by another writer (rejected version {version})"
        )
        self.pool_id = pool_id
        self.version = version
