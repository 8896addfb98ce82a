"""Shared test configuration and fixtures."""

import os
from collections.abc import Iterator
from unittest.mock import patch

import pytest

import prediction_amm.core.config as config_module

_TEST_ENV_VARS = {
    "PREDICTION_AMM_ENV": "test",
    "PREDICTION_AMM_DB_URL": "sqlite://",
}


@pytest.fixture(autouse=True)
def _isolate_config() -> Iterator[None]:  # pyright: ignore[reportUnusedFunction]
    """Point the default configuration at an in-memory database.

    ``settings.yaml`` falls back to a ``prediction_amm.db`` file in the
    working directory, so any test that builds ``ConfigLoader`` against the
    real settings would otherwise write there. The global config singleton
    is reset around each test so env overrides take effect.
    """
    config_module._config = None
    with patch.dict(os.environ, _TEST_ENV_VARS):
        yield
    config_module._config = None
