"""Strategy definitions, signal generators and the strategy registry."""

from stratlab.strategies.base import Signal, SignalType, Strategy, StrategyKind
from stratlab.strategies.registry import (
    StrategyEntry,
    StrategyRegistry,
    generate_signals,
    make_strategy,
    registry,
)

__all__ = [
    "Signal", "SignalType", "Strategy", "StrategyKind",
    "StrategyEntry", "StrategyRegistry", "generate_signals", "make_strategy",
    "registry",
]
