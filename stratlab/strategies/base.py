"""Core strategy types: kinds, signals and strategy definitions."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from stratlab.utils.validation import ConfigValidationError, UnknownStrategyError


class StrategyKind(str, enum.Enum):
    buy_and_hold = "buy_and_hold"
    moving_average_crossover = "moving_average_crossover"
    rsi_mean_reversion = "rsi_mean_reversion"
    macd_momentum = "macd_momentum"
    bollinger_bands = "bollinger_bands"
    mean_variance = "mean_variance"
    pairs_trading = "pairs_trading"

    @classmethod
    def parse(cls, value: "StrategyKind | str") -> "StrategyKind":
        """Coerce a string to a kind, raising :class:`UnknownStrategyError`."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownStrategyError(
                f"Unknown strategy kind {value!r}. "
                f"Available: {[k.value for k in cls]}"
            ) from None


class SignalType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


@dataclass(frozen=True)
class Signal:
    """A discrete trading instruction emitted by a signal generator.

    Attributes
    ----------
    type : SignalType
        BUY opens or adds, SELL reduces or closes, HOLD is informational.
    strength : float
        Fraction in ``[0, 1]``: share of equity to commit on BUY, share of
        the held quantity to close on SELL.
    instrument : int
        Column index into the price vector.
    reason : str
        Human-readable trigger description.
    confidence : float
        Generator's confidence in ``[0, 100]``.
    target_weight : float, optional
        When set, the engine moves the holding to this fraction of equity
        instead of applying *strength*, and rebalance passes steer toward it.
    """

    type: SignalType
    strength: float
    instrument: int = 0
    reason: str = ""
    confidence: float = 50.0
    target_weight: float | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.strength <= 1.0:
            raise ConfigValidationError(
                f"signal strength must be in [0, 1]; got {self.strength}."
            )
        if self.target_weight is not None and not 0.0 <= self.target_weight <= 1.0:
            raise ConfigValidationError(
                f"target_weight must be in [0, 1]; got {self.target_weight}."
            )


@dataclass(frozen=True)
class Strategy:
    """A trading rule plus its tunable parameters.

    The kind is validated at creation; the parameter mapping is frozen so
    it cannot change within a simulation run.
    """

    kind: StrategyKind
    parameters: Mapping[str, float] = field(default_factory=dict)
    name: str = ""

    def __post_init__(self) -> None:
        kind = StrategyKind.parse(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "parameters", MappingProxyType(dict(self.parameters)))
        if not self.name:
            object.__setattr__(self, "name", kind.value)

    def with_parameters(self, **overrides: Any) -> "Strategy":
        """Copy of this strategy with some parameters replaced."""
        return Strategy(self.kind, {**self.parameters, **overrides}, self.name)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "name": self.name,
            "parameters": dict(self.parameters),
        }
