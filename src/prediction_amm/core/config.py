"""Configuration management for the market maker engine."""

import os
import re
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, cast

import yaml
from dotenv import load_dotenv

from prediction_amm.core.exceptions import InvalidAmountError
from prediction_amm.core.models import LiquidityPolicy, to_decimal

_DEFAULT_FEE_RATE = Decimal("0.003")
_DEFAULT_SLIPPAGE_PCT = Decimal("0.5")
_DEFAULT_LP_TOLERANCE = Decimal("1e-9")
_DEFAULT_SEED_RESERVE = Decimal(1000)
_DEFAULT_DEDUP_EPSILON = Decimal("0.0001")
_DEFAULT_DISPLAY_POINTS = 50
_DEFAULT_SPARKLINE_POINTS = 12
_DEFAULT_DB_URL = "sqlite:///prediction_amm.db"


class ConfigError(Exception):
    """Raise when configuration loading or validation fails."""


@dataclass(frozen=True)
class EngineConfig:
    """Immutable trading parameters for a ``PoolEngine``.

    Attributes:
        fee_rate: Fraction of each swap input retained by the pool.
        slippage_pct: Default slippage tolerance, in percent, applied to
            ``minimum_received`` when a caller supplies none.
        liquidity_policy: How LP tokens are minted for deposits.
        lp_tolerance: Relative tolerance above the LP supply that a burn may
            exceed before it is rejected (absorbs rounding in callers).
        seed_base: Default YES reserve for a freshly initialised pool.
        seed_quote: Default NO reserve for a freshly initialised pool.

    """

    fee_rate: Decimal = _DEFAULT_FEE_RATE
    slippage_pct: Decimal = _DEFAULT_SLIPPAGE_PCT
    liquidity_policy: LiquidityPolicy = LiquidityPolicy.AVERAGE
    lp_tolerance: Decimal = _DEFAULT_LP_TOLERANCE
    seed_base: Decimal = _DEFAULT_SEED_RESERVE
    seed_quote: Decimal = _DEFAULT_SEED_RESERVE

    def __post_init__(self) -> None:
        """Validate that the fee rate is a fraction and the rest are non-negative."""
        if not (Decimal(0) <= self.fee_rate < Decimal(1)):
            msg = f"fee_rate must be in [0, 1), got {self.fee_rate}"
            raise ValueError(msg)
        if self.slippage_pct < 0 or self.lp_tolerance < 0:
            msg = "slippage_pct and lp_tolerance must be non-negative"
            raise ValueError(msg)
        if self.seed_base <= 0 or self.seed_quote <= 0:
            msg = "seed reserves must be positive"
            raise ValueError(msg)


@dataclass(frozen=True)
class HistoryConfig:
    """Immutable settings for the price history log.

    Attributes:
        dedup_epsilon: Prices within this distance of the last point refresh
            it instead of appending a new one.
        display_points: Number of trailing points shown in charts.
        sparkline_points: Number of points in a market sparkline.

    """

    dedup_epsilon: Decimal = _DEFAULT_DEDUP_EPSILON
    display_points: int = _DEFAULT_DISPLAY_POINTS
    sparkline_points: int = _DEFAULT_SPARKLINE_POINTS


_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>.*))?\}")
_SETTINGS_FILE = "settings.yaml"
_LOCAL_SETTINGS_FILE = "settings.local.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read one settings file, treating a missing or empty file as no settings.

    Raises:
        ConfigError: If the file does not hold a mapping at the top level.

    """
    if not path.exists():
        return {}
    with path.open() as f:
        loaded: object = yaml.safe_load(f)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        msg = f"{path.name} must hold a mapping of sections, got {type(loaded).__name__}"
        raise ConfigError(msg)
    return cast("dict[str, Any]", loaded)


def _merge_sections(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Overlay ``override`` onto ``base`` in place, section by section.

    Nested mappings merge key by key, so a local file that sets only
    ``engine.fee_rate`` keeps the packaged ``engine.seed_base``. Any other
    value replaces the one in ``base``.
    """
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge_sections(cast("dict[str, Any]", current), cast("dict[str, Any]", value))
        else:
            base[key] = value


def _resolve_env_refs(value: Any) -> Any:
    """Replace ``${VAR}`` and ``${VAR:default}`` settings with the environment's values.

    A reference must make up the whole string, as in
    ``db_url: ${PREDICTION_AMM_DB_URL:sqlite:///prediction_amm.db}``; the
    default runs to the closing brace and may itself contain colons.

    Raises:
        ConfigError: If a referenced variable is unset and has no default,
            or a reference is embedded inside a longer string.

    """
    if isinstance(value, dict):
        items = cast("dict[str, Any]", value).items()
        return {key: _resolve_env_refs(item) for key, item in items}
    if isinstance(value, list):
        return [_resolve_env_refs(item) for item in cast("list[Any]", value)]
    if not isinstance(value, str):
        return value

    whole = _ENV_REF.fullmatch(value)
    if whole is not None:
        name = whole.group("name")
        resolved = os.getenv(name, whole.group("default"))
        if resolved is None:
            msg = f"Required environment variable ${{{name}}} is not set and has no default"
            raise ConfigError(msg)
        return resolved
    if _ENV_REF.search(value):
        msg = f"Unresolved environment variable reference in: {value}"
        raise ConfigError(msg)
    return value


class ConfigLoader:
    """Read the AMM settings: packaged defaults, local overrides, then environment.

    ``settings.yaml`` in the package's ``config`` directory carries the
    ``engine``, ``history`` and ``storage`` sections. A sibling
    ``settings.local.yaml`` (not shipped) is merged over it, and ``${VAR}``
    references are resolved last, after ``.env`` has been loaded, so
    ``PREDICTION_AMM_DB_URL`` in a ``.env`` file picks the database.

    Example::

        loader = ConfigLoader()
        loader.get("engine.fee_rate")  # '0.003'
        loader.get_engine_config().liquidity_policy  # LiquidityPolicy.AVERAGE

    """

    def __init__(self, config_dir: Path | None = None) -> None:
        """Load ``.env`` and the settings files.

        Args:
            config_dir: Directory holding ``settings.yaml``. Defaults to the
                ``config`` directory shipped inside ``prediction_amm``.

        """
        load_dotenv()
        self.config_dir = Path(config_dir or Path(__file__).parent.parent / "config")
        settings = _read_yaml(self.config_dir / _SETTINGS_FILE)
        _merge_sections(settings, _read_yaml(self.config_dir / _LOCAL_SETTINGS_FILE))
        self._config: dict[str, Any] = _resolve_env_refs(settings)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a setting by its dotted path, such as ``history.display_points``.

        Returns:
            The stored value, or ``default`` when any part of the path is
            missing, null, or runs into a non-section value.

        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = cast("dict[str, Any]", node).get(part)
            if node is None:
                return default
        return node

    def _decimal(self, key: str, default: Decimal) -> Decimal:
        """Read a decimal setting, raising ``ConfigError`` on bad input."""
        raw = self.get(key, default)
        try:
            return to_decimal(raw, key)
        except InvalidAmountError as exc:
            raise ConfigError(str(exc)) from exc

    def _int(self, key: str, default: int) -> int:
        """Read a positive integer setting, raising ``ConfigError`` on bad input."""
        raw = self.get(key, default)
        try:
            value = int(raw)
        except (TypeError, ValueError) as exc:
            msg = f"{key} must be an integer, got {raw!r}"
            raise ConfigError(msg) from exc
        if value <= 0:
            msg = f"{key} must be positive, got {value}"
            raise ConfigError(msg)
        return value

    def get_engine_config(self) -> EngineConfig:
        """Build the engine configuration from the ``engine`` section.

        Returns:
            An ``EngineConfig`` populated from settings, with defaults for
            missing keys.

        Raises:
            ConfigError: If any value is malformed or out of range.

        """
        policy_name = str(self.get("engine.liquidity_policy", LiquidityPolicy.AVERAGE.value))
        try:
            policy = LiquidityPolicy(policy_name.strip().lower())
        except ValueError as exc:
            msg = f"engine.liquidity_policy must be 'average' or 'minimum', got {policy_name!r}"
            raise ConfigError(msg) from exc

        try:
            return EngineConfig(
                fee_rate=self._decimal("engine.fee_rate", _DEFAULT_FEE_RATE),
                slippage_pct=self._decimal("engine.slippage_pct", _DEFAULT_SLIPPAGE_PCT),
                liquidity_policy=policy,
                lp_tolerance=self._decimal("engine.lp_tolerance", _DEFAULT_LP_TOLERANCE),
                seed_base=self._decimal("engine.seed_base", _DEFAULT_SEED_RESERVE),
                seed_quote=self._decimal("engine.seed_quote", _DEFAULT_SEED_RESERVE),
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def get_history_config(self) -> HistoryConfig:
        """Build the price history configuration from the ``history`` section.

        Returns:
            A ``HistoryConfig`` populated from settings.

        Raises:
            ConfigError: If any value is malformed.

        """
        return HistoryConfig(
            dedup_epsilon=self._decimal("history.dedup_epsilon", _DEFAULT_DEDUP_EPSILON),
            display_points=self._int("history.display_points", _DEFAULT_DISPLAY_POINTS),
            sparkline_points=self._int("history.sparkline_points", _DEFAULT_SPARKLINE_POINTS),
        )

    def get_db_url(self) -> str:
        """Return the SQLAlchemy URL of the pool database."""
        return str(self.get("storage.db_url", _DEFAULT_DB_URL))


_config: ConfigLoader | None = None


def get_config() -> ConfigLoader:
    """Return the global ``ConfigLoader`` singleton, creating it on first use.

    Lazy initialisation avoids side effects (file I/O, ``load_dotenv``)
    at import time and makes testing easier.

    Returns:
        The shared ``ConfigLoader`` instance.

    """
    global _config  # noqa: PLW0603
    if _config is None:
        _config = ConfigLoader()
    return _config
