"""Tests for package metadata."""

import prediction_amm


def test_version() -> None:
    """Expose a semantic version string."""
    assert prediction_amm.__version__ == "0.1.0"
