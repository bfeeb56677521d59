"""
Configuration classes for the indicator aggregators.

Each parameter group is an immutable dataclass with documented defaults
and validation in ``__post_init__``. ``IndicatorConfig`` bundles the groups
and can be built from a plain dict or a YAML file:

    rsi:
      window: 21
    bollinger:
      window: 20
      num_std: 2.5
    moving_averages:
      sma_windows: [10, 50, 200]
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Tuple, Union

import yaml

from ta_engine.exceptions import ConfigError, InvalidParameterError


def _check_window(value: int, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidParameterError(f"{name} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class RSIParams:
    """Relative Strength Index parameters."""

    window: int = 14

    def __post_init__(self) -> None:
        _check_window(self.window, "rsi.window")


@dataclass(frozen=True)
class MACDParams:
    """
    MACD parameters.

    Attributes:
        fast: Fast EMA period (default: 12)
        slow: Slow EMA period (default: 26)
        signal: Signal line EMA period (default: 9)
    """

    fast: int = 12
    slow: int = 26
    signal: int = 9

    def __post_init__(self) -> None:
        _check_window(self.fast, "macd.fast")
        _check_window(self.slow, "macd.slow")
        _check_window(self.signal, "macd.signal")
        if self.fast >= self.slow:
            raise InvalidParameterError(
                f"macd.fast ({self.fast}) must be less than macd.slow ({self.slow})"
            )


@dataclass(frozen=True)
class StochasticParams:
    """Stochastic oscillator parameters (%K period, slowing, %D period)."""

    k_period: int = 14
    slowing: int = 3
    d_period: int = 3

    def __post_init__(self) -> None:
        _check_window(self.k_period, "stochastic.k_period")
        _check_window(self.slowing, "stochastic.slowing")
        _check_window(self.d_period, "stochastic.d_period")


@dataclass(frozen=True)
class BollingerParams:
    """Bollinger Band parameters."""

    window: int = 20
    num_std: float = 2.0

    def __post_init__(self) -> None:
        _check_window(self.window, "bollinger.window")
        if self.num_std < 0:
            raise InvalidParameterError(f"bollinger.num_std must be >= 0, got {self.num_std}")


@dataclass(frozen=True)
class ATRParams:
    """Average True Range parameters."""

    window: int = 14

    def __post_init__(self) -> None:
        _check_window(self.window, "atr.window")


@dataclass(frozen=True)
class VolatilityParams:
    """Parameters for the remaining volatility estimators."""

    gk_window: int = 10

    def __post_init__(self) -> None:
        _check_window(self.gk_window, "volatility.gk_window")


@dataclass(frozen=True)
class VolumeParams:
    """Money Flow Index and Chaikin Money Flow windows."""

    mfi_window: int = 14
    cmf_window: int = 20

    def __post_init__(self) -> None:
        _check_window(self.mfi_window, "volume.mfi_window")
        _check_window(self.cmf_window, "volume.cmf_window")


@dataclass(frozen=True)
class VWAPParams:
    """
    Session VWAP parameters.

    Attributes:
        reset_daily: Restart cumulative sums when the date changes (default: True)
        band_window: Rolling window for the band deviation (default: 20)
        multipliers: Band multipliers (default: (1.0, 2.0))
    """

    reset_daily: bool = True
    band_window: int = 20
    multipliers: Tuple[float, ...] = (1.0, 2.0)

    def __post_init__(self) -> None:
        _check_window(self.band_window, "vwap.band_window")
        # Lists from YAML are normalised so the dataclass stays hashable
        object.__setattr__(self, "multipliers", tuple(float(m) for m in self.multipliers))
        if any(m < 0 for m in self.multipliers):
            raise InvalidParameterError(f"vwap.multipliers must be >= 0, got {self.multipliers}")


@dataclass(frozen=True)
class MovingAverageParams:
    """Windows for the SMA / EMA columns added by the technical aggregator."""

    sma_windows: Tuple[int, ...] = (20, 50)
    ema_windows: Tuple[int, ...] = (20,)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sma_windows", tuple(self.sma_windows))
        object.__setattr__(self, "ema_windows", tuple(self.ema_windows))
        for window in self.sma_windows:
            _check_window(window, "moving_averages.sma_windows")
        for window in self.ema_windows:
            _check_window(window, "moving_averages.ema_windows")


@dataclass(frozen=True)
class IndicatorConfig:
    """Complete parameter set for the indicator aggregators."""

    rsi: RSIParams = field(default_factory=RSIParams)
    macd: MACDParams = field(default_factory=MACDParams)
    stochastic: StochasticParams = field(default_factory=StochasticParams)
    bollinger: BollingerParams = field(default_factory=BollingerParams)
    atr: ATRParams = field(default_factory=ATRParams)
    volatility: VolatilityParams = field(default_factory=VolatilityParams)
    volume: VolumeParams = field(default_factory=VolumeParams)
    vwap: VWAPParams = field(default_factory=VWAPParams)
    moving_averages: MovingAverageParams = field(default_factory=MovingAverageParams)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndicatorConfig":
        """
        Build a config from a nested dictionary.

        Missing sections and keys keep their defaults.

        Raises:
            ConfigError: If a section or key is unknown or a value is invalid.
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"expected a mapping, got {type(data).__name__}")

        section_types = {f.name: f.default_factory for f in fields(cls)}
        unknown = set(data) - set(section_types)
        if unknown:
            raise ConfigError(f"unknown section(s): {', '.join(sorted(unknown))}")

        sections = {}
        for name, values in data.items():
            params_cls = section_types[name]
            if values is None:
                values = {}
            if not isinstance(values, dict):
                raise ConfigError(f"section '{name}' must be a mapping")

            valid_keys = {f.name for f in fields(params_cls)}
            unknown_keys = set(values) - valid_keys
            if unknown_keys:
                raise ConfigError(
                    f"unknown key(s) in '{name}': {', '.join(sorted(unknown_keys))}"
                )

            try:
                sections[name] = params_cls(**values)
            except (InvalidParameterError, TypeError) as e:
                raise ConfigError(str(e))

        return cls(**sections)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_config(config_path: Union[str, Path]) -> IndicatorConfig:
    """
    Load an indicator configuration from a YAML file.

    Args:
        config_path: Path to the YAML file.

    Returns:
        Validated IndicatorConfig.

    Raises:
        ConfigError: If the file is missing, unparseable, or invalid.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError("file not found", str(path))

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", str(path))

    try:
        return IndicatorConfig.from_dict(data)
    except ConfigError as e:
        raise ConfigError(e.detail, str(path))
