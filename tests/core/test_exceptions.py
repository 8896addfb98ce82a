"""Tests for the engine exception hierarchy."""

import pytest

from prediction_amm.core.exceptions import (
    AlreadyInitializedError,
    AmmError,
    ArithmeticOverflowError,
    ArithmeticUnderflowError,
    ConcurrentModificationError,
    InsufficientLiquidityError,
    InvalidAmountError,
    PoolNotFoundError,
)

_POOL_ID = "pool_abc"


class TestExceptions:
    """Tests for the AmmError family."""

    @pytest.mark.parametrize(
        "error_type",
        [
            PoolNotFoundError,
            InvalidAmountError,
            InsufficientLiquidityError,
            ArithmeticOverflowError,
            ArithmeticUnderflowError,
            AlreadyInitializedError,
            ConcurrentModificationError,
        ],
    )
    def test_all_derive_from_amm_error(self, error_type: type[Exception]) -> None:
        """Let callers catch every engine failure as AmmError."""
        assert issubclass(error_type, AmmError)

    def test_pool_not_found_carries_id(self) -> None:
        """Keep the missing pool id and name it in the message."""
        error = PoolNotFoundError(_POOL_ID)
        assert error.pool_id == _POOL_ID
        assert str(error) == f"Pool not found: {_POOL_ID}"

    def test_already_initialized_carries_id(self) -> None:
        """Keep the existing pool id and name it in the message."""
        error = AlreadyInitializedError(_POOL_ID)
        assert error.pool_id == _POOL_ID
        assert _POOL_ID in str(error)

    def test_concurrent_modification_carries_pool_and_version(self) -> None:
        """Keep the contended pool id and the version that lost the race."""
        error = ConcurrentModificationError(_POOL_ID, 4)
        assert error.pool_id == _POOL_ID
        assert error.version == 4
        assert _POOL_ID in str(error)
