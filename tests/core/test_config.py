"""Tests for configuration management."""

import os
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import pytest

import prediction_amm.core.config as config_module
from prediction_amm.core.config import (
    ConfigError,
    ConfigLoader,
    EngineConfig,
    HistoryConfig,
    get_config,
)
from prediction_amm.core.models import LiquidityPolicy

_DEFAULT_FEE = Decimal("0.003")
_CUSTOM_FEE = Decimal("0.01")
_DISPLAY_POINTS = 20


class TestConfigLoader:
    """Test suite for ConfigLoader."""

    def test_load_default_config(self) -> None:
        """Load the packaged settings with env overrides applied."""
        loader = ConfigLoader()
        assert loader.get("environment") == "test"
        assert loader.get_db_url() == "sqlite://"

    def test_get_with_dot_notation(self, tmp_path: Path) -> None:
        """Read nested values with dot notation."""
        (tmp_path / "settings.yaml").write_text("engine:\n  fee_rate: '0.01'\nenvironment: x\n")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("engine.fee_rate") == "0.01"
        assert loader.get("environment") == "x"

    def test_get_with_default(self, tmp_path: Path) -> None:
        """Return the default for a missing key."""
        (tmp_path / "settings.yaml").write_text("environment: test")

        loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get("nonexistent.key", "fallback") == "fallback"

    def test_env_var_substitution(self, tmp_path: Path) -> None:
        """Substitute ${VAR} and ${VAR:default} references."""
        (tmp_path / "settings.yaml").write_text(
            "storage:\n  db_url: ${TEST_DB_URL}\n  other: ${TEST_UNSET_VAR:fallback}\n"
        )

        with patch.dict(os.environ, {"TEST_DB_URL": "sqlite:///x.db"}):
            loader = ConfigLoader(config_dir=tmp_path)
        assert loader.get_db_url() == "sqlite:///x.db"
        assert loader.get("storage.other") == "fallback"

    def test_default_may_contain_colons(self, tmp_path: Path) -> None:
        """Keep everything after the first colon as the default database URL."""
        (tmp_path / "settings.yaml").write_text(
            "storage:\n  db_url: ${TEST_UNSET_DB_URL_XYZ:sqlite:///amm.db}\n"
        )

        assert ConfigLoader(config_dir=tmp_path).get_db_url() == "sqlite:///amm.db"

    def test_non_mapping_settings_file_raises(self, tmp_path: Path) -> None:
        """Reject a settings file whose top level is not a mapping of sections."""
        (tmp_path / "settings.yaml").write_text("- engine\n- history\n")

        with pytest.raises(ConfigError, match="settings.yaml must hold a mapping"):
            ConfigLoader(config_dir=tmp_path)

    def test_missing_required_env_var_raises(self, tmp_path: Path) -> None:
        """Fail loudly when a required variable has no default."""
        (tmp_path / "settings.yaml").write_text("storage:\n  db_url: ${TEST_MISSING_VAR_XYZ}\n")

        with pytest.raises(ConfigError, match="TEST_MISSING_VAR_XYZ"):
            ConfigLoader(config_dir=tmp_path)

    def test_embedded_reference_raises(self, tmp_path: Path) -> None:
        """Reject references embedded inside a longer string."""
        (tmp_path / "settings.yaml").write_text("storage:\n  db_url: sqlite:///${HOME}/x.db\n")

        with pytest.raises(ConfigError, match="Unresolved"):
            ConfigLoader(config_dir=tmp_path)

    def test_local_settings_override(self, tmp_path: Path) -> None:
        """Deep-merge settings.local.yaml over settings.yaml."""
        (tmp_path / "settings.yaml").write_text(
            "engine:\n  fee_rate: '0.003'\n  seed_base: '500'\n"
        )
        (tmp_path / "settings.local.yaml").write_text("engine:\n  fee_rate: '0.01'\n")

        engine = ConfigLoader(config_dir=tmp_path).get_engine_config()
        assert engine.fee_rate == _CUSTOM_FEE
        assert engine.seed_base == Decimal(500)


class TestEngineConfig:
    """Tests for building and validating engine settings."""

    def test_defaults_when_section_missing(self, tmp_path: Path) -> None:
        """Fall back to built-in defaults for an empty settings file."""
        (tmp_path / "settings.yaml").write_text("environment: test\n")

        engine = ConfigLoader(config_dir=tmp_path).get_engine_config()
        assert engine == EngineConfig()
        assert engine.fee_rate == _DEFAULT_FEE
        assert engine.liquidity_policy is LiquidityPolicy.AVERAGE

    def test_minimum_policy(self, tmp_path: Path) -> None:
        """Parse the liquidity policy case-insensitively."""
        (tmp_path / "settings.yaml").write_text("engine:\n  liquidity_policy: MINIMUM\n")

        engine = ConfigLoader(config_dir=tmp_path).get_engine_config()
        assert engine.liquidity_policy is LiquidityPolicy.MINIMUM

    def test_unknown_policy_raises(self, tmp_path: Path) -> None:
        """Reject a policy name that does not exist."""
        (tmp_path / "settings.yaml").write_text("engine:\n  liquidity_policy: median\n")

        with pytest.raises(ConfigError, match="liquidity_policy"):
            ConfigLoader(config_dir=tmp_path).get_engine_config()

    def test_fee_out_of_range_raises(self, tmp_path: Path) -> None:
        """Reject a fee rate of one or more."""
        (tmp_path / "settings.yaml").write_text("engine:\n  fee_rate: '1.5'\n")

        with pytest.raises(ConfigError, match="fee_rate"):
            ConfigLoader(config_dir=tmp_path).get_engine_config()

    def test_non_numeric_value_raises(self, tmp_path: Path) -> None:
        """Reject a value that is not a number."""
        (tmp_path / "settings.yaml").write_text("engine:\n  seed_base: lots\n")

        with pytest.raises(ConfigError, match="seed_base"):
            ConfigLoader(config_dir=tmp_path).get_engine_config()

    def test_direct_construction_validates(self) -> None:
        """Reject non-positive seeds when built directly."""
        with pytest.raises(ValueError, match="seed reserves"):
            EngineConfig(seed_base=Decimal(0))


class TestHistoryConfig:
    """Tests for building history settings."""

    def test_reads_history_section(self, tmp_path: Path) -> None:
        """Populate every field from the history section."""
        (tmp_path / "settings.yaml").write_text(
            "history:\n  dedup_epsilon: '0.001'\n  display_points: 20\n  sparkline_points: 8\n"
        )

        history = ConfigLoader(config_dir=tmp_path).get_history_config()
        assert history == HistoryConfig(Decimal("0.001"), _DISPLAY_POINTS, 8)

    def test_non_positive_points_raise(self, tmp_path: Path) -> None:
        """Reject a zero display size."""
        (tmp_path / "settings.yaml").write_text("history:\n  display_points: 0\n")

        with pytest.raises(ConfigError, match="display_points"):
            ConfigLoader(config_dir=tmp_path).get_history_config()


class TestGetConfig:
    """Tests for the global config singleton."""

    def test_lazy_singleton(self) -> None:
        """Create the loader on first use and reuse it afterwards."""
        assert config_module._config is None
        first = get_config()
        assert get_config() is first
