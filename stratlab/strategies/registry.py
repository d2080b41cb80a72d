"""Closed registry mapping every :class:`StrategyKind` to its signal generator.

Each entry carries the metadata the engine, the optimizer and the HTTP
surface need: default parameters, an optimization grid, the look-back
function and a parameter validator.  Importing this module fails if any
kind is left without a generator.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from stratlab.data.series import HistoricalSeries
from stratlab.strategies.allocation import mean_variance
from stratlab.strategies.base import Signal, Strategy, StrategyKind
from stratlab.strategies.mean_reversion import (
    bollinger_breakout,
    pairs_trading,
    rsi_mean_reversion,
)
from stratlab.strategies.trend import buy_and_hold, macd_momentum, moving_average_crossover
from stratlab.utils.validation import (
    ConfigValidationError,
    InsufficientDataError,
    UnknownStrategyError,
)

SignalGenerator = Callable[[HistoricalSeries, int, Mapping[str, Any]], list[Signal]]


def _positive_int(params: Mapping[str, Any], *names: str) -> None:
    for name in names:
        value = params[name]
        if int(value) != value or value < 1:
            raise ConfigValidationError(f"{name} must be a positive integer; got {value}.")


def _fraction(params: Mapping[str, Any], *names: str) -> None:
    for name in names:
        value = params[name]
        if not 0 < value <= 1:
            raise ConfigValidationError(f"{name} must be in (0, 1]; got {value}.")


def _validate_ma(p: Mapping[str, Any]) -> None:
    _positive_int(p, "short_period", "long_period")
    _fraction(p, "position_size")
    if p["short_period"] >= p["long_period"]:
        raise ConfigValidationError(
            f"short_period ({p['short_period']}) must be less than "
            f"long_period ({p['long_period']})."
        )


def _validate_rsi(p: Mapping[str, Any]) -> None:
    _positive_int(p, "period")
    _fraction(p, "position_size")
    if not 0 < p["oversold"] < p["overbought"] < 100:
        raise ConfigValidationError(
            "thresholds must satisfy 0 < oversold < overbought < 100; "
            f"got oversold={p['oversold']}, overbought={p['overbought']}."
        )


def _validate_macd(p: Mapping[str, Any]) -> None:
    _positive_int(p, "fast_period", "slow_period", "signal_period")
    _fraction(p, "position_size")
    if p["fast_period"] >= p["slow_period"]:
        raise ConfigValidationError(
            f"fast_period ({p['fast_period']}) must be less than "
            f"slow_period ({p['slow_period']})."
        )


def _validate_bollinger(p: Mapping[str, Any]) -> None:
    _positive_int(p, "period")
    _fraction(p, "position_size")
    if p["period"] < 2 or p["num_std"] <= 0:
        raise ConfigValidationError(
            f"need period >= 2 and num_std > 0; got {p['period']}, {p['num_std']}."
        )


def _validate_mean_variance(p: Mapping[str, Any]) -> None:
    _positive_int(p, "lookback", "rebalance_period")
    _fraction(p, "max_weight")
    if p["lookback"] < 2:
        raise ConfigValidationError(f"lookback must be at least 2; got {p['lookback']}.")
    if p["risk_aversion"] < 0:
        raise ConfigValidationError(
            f"risk_aversion must be non-negative; got {p['risk_aversion']}."
        )


def _validate_pairs(p: Mapping[str, Any]) -> None:
    _positive_int(p, "lookback")
    _fraction(p, "position_size")
    if p["lookback"] < 2:
        raise ConfigValidationError(f"lookback must be at least 2; got {p['lookback']}.")
    if not 0 <= p["exit_z"] < p["entry_z"]:
        raise ConfigValidationError(
            f"need 0 <= exit_z < entry_z; got exit_z={p['exit_z']}, entry_z={p['entry_z']}."
        )
    if p.get("instrument_a", 0) == p.get("instrument_b", 1):
        raise ConfigValidationError("instrument_a and instrument_b must differ.")


def _validate_buy_and_hold(p: Mapping[str, Any]) -> None:
    _fraction(p, "position_size")


@dataclass
class StrategyEntry:
    kind: StrategyKind
    fn: SignalGenerator
    description: str
    category: str
    module: str
    lookback_fn: Callable[[Mapping[str, Any]], int]
    validator: Callable[[Mapping[str, Any]], None]
    default_params: dict[str, Any] = field(default_factory=dict)
    param_grid: dict[str, list[Any]] = field(default_factory=dict)
    min_instruments: int = 1

    def resolve_params(self, overrides: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Defaults overlaid with *overrides*; unknown names are rejected."""
        overrides = dict(overrides or {})
        allowed = set(self.default_params) | {"instrument", "instrument_a", "instrument_b"}
        unknown = sorted(set(overrides) - allowed)
        if unknown:
            raise ConfigValidationError(
                f"Unknown parameters for {self.kind.value}: {unknown}. "
                f"Expected a subset of {sorted(allowed)}."
            )
        return {**self.default_params, **overrides}

    def validate(self, params: Mapping[str, Any]) -> None:
        try:
            self.validator(params)
        except KeyError as e:
            raise ConfigValidationError(
                f"Missing parameter {e.args[0]!r} for {self.kind.value}."
            ) from None
        except TypeError as e:
            raise ConfigValidationError(
                f"Non-numeric parameter for {self.kind.value}: {e}"
            ) from None

    def lookback(self, params: Mapping[str, Any]) -> int:
        """First step index with enough history for this generator."""
        return int(self.lookback_fn(params))


class StrategyRegistry:
    """One :class:`StrategyEntry` per :class:`StrategyKind`, nothing else."""

    def __init__(self) -> None:
        self._registry: dict[StrategyKind, StrategyEntry] = {}
        self._register_builtins()
        missing = [k.value for k in StrategyKind if k not in self._registry]
        if missing:
            raise RuntimeError(f"Strategy kinds without a signal generator: {missing}")

    def _register_builtins(self) -> None:
        builtins = [
            (StrategyKind.buy_and_hold, buy_and_hold,
             "Single full-size entry held to the end", "passive",
             lambda p: 0, _validate_buy_and_hold,
             {"position_size": 1.0}, {}, 1),
            (StrategyKind.moving_average_crossover, moving_average_crossover,
             "Golden/death cross of a short and a long simple moving average",
             "trend", lambda p: p["long_period"], _validate_ma,
             {"short_period": 20, "long_period": 50, "position_size": 0.8},
             {"short_period": [10, 20, 30], "long_period": [50, 100, 200]}, 1),
            (StrategyKind.rsi_mean_reversion, rsi_mean_reversion,
             "Buy oversold / sell overbought RSI threshold crossings",
             "mean_reversion", lambda p: p["period"] + 1, _validate_rsi,
             {"period": 14, "oversold": 30, "overbought": 70, "position_size": 0.7},
             {"period": [10, 14, 21], "oversold": [20, 25, 30],
              "overbought": [70, 75, 80]}, 1),
            (StrategyKind.macd_momentum, macd_momentum,
             "MACD line crossing its signal line", "trend",
             lambda p: p["slow_period"] + p["signal_period"], _validate_macd,
             {"fast_period": 12, "slow_period": 26, "signal_period": 9,
              "position_size": 0.8},
             {"fast_period": [8, 12], "slow_period": [21, 26],
              "signal_period": [5, 9]}, 1),
            (StrategyKind.bollinger_bands, bollinger_breakout,
             "Close breaking out of Bollinger bands", "volatility",
             lambda p: p["period"], _validate_bollinger,
             {"period": 20, "num_std": 2.0, "position_size": 0.7},
             {"period": [10, 20, 30], "num_std": [1.5, 2.0, 2.5]}, 1),
            (StrategyKind.mean_variance, mean_variance,
             "Long-only mean-variance allocation re-solved periodically",
             "allocation", lambda p: p["lookback"], _validate_mean_variance,
             {"lookback": 60, "rebalance_period": 21, "risk_aversion": 1.0,
              "max_weight": 1.0},
             {"lookback": [40, 60, 120], "risk_aversion": [0.5, 1.0, 5.0]}, 1),
            (StrategyKind.pairs_trading, pairs_trading,
             "Log-spread z-score threshold crossings between two instruments",
             "relative_value", lambda p: p["lookback"], _validate_pairs,
             {"lookback": 60, "entry_z": 2.0, "exit_z": 0.5, "position_size": 0.5},
             {"lookback": [30, 60, 90], "entry_z": [1.5, 2.0, 2.5]}, 2),
        ]
        for kind, fn, desc, category, lookback, validator, params, grid, width in builtins:
            self.register(kind, fn, desc, category, lookback, validator,
                          params, grid, width)

    def register(
        self,
        kind: StrategyKind,
        fn: SignalGenerator,
        description: str,
        category: str,
        lookback: Callable[[Mapping[str, Any]], int],
        validator: Callable[[Mapping[str, Any]], None],
        default_params: dict[str, Any] | None = None,
        param_grid: dict[str, list[Any]] | None = None,
        min_instruments: int = 1,
    ) -> None:
        """Register or replace the generator for an existing kind."""
        kind = StrategyKind.parse(kind)
        mod = inspect.getmodule(fn)
        self._registry[kind] = StrategyEntry(
            kind=kind, fn=fn, description=description, category=category,
            module=mod.__name__ if mod else "custom",
            lookback_fn=lookback, validator=validator,
            default_params=dict(default_params or {}),
            param_grid=dict(param_grid or {}),
            min_instruments=min_instruments,
        )

    def get(self, kind: StrategyKind | str) -> StrategyEntry:
        kind = StrategyKind.parse(kind)
        if kind not in self._registry:
            raise UnknownStrategyError(
                f"No signal generator registered for {kind.value!r}."
            )
        return self._registry[kind]

    def list_all(self) -> list[StrategyEntry]:
        return list(self._registry.values())


def generate_signals(
    entry: StrategyEntry,
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """Run *entry*'s generator, yielding ``[]`` before its look-back is met.

    :class:`InsufficientDataError` from an indicator is treated as "not
    enough history yet" and also yields ``[]``.
    """
    if index < entry.lookback(params):
        return []
    try:
        return list(entry.fn(window, index, params))
    except InsufficientDataError:
        return []


def make_strategy(
    kind: StrategyKind | str,
    parameters: Mapping[str, Any] | None = None,
    name: str = "",
) -> Strategy:
    """Build a :class:`Strategy` with registry defaults filled in and validated."""
    entry = registry.get(kind)
    params = entry.resolve_params(parameters)
    entry.validate(params)
    return Strategy(entry.kind, params, name)


# Singleton
registry = StrategyRegistry()
