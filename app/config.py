"""Command-line pipeline configuration."""
from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RunConfig:
    # Strategy
    strategy: str = "moving_average_crossover"
    parameters: dict[str, float] = field(default_factory=dict)
    compare_with: tuple[str, ...] = ()

    # Data: synthetic tickers unless a CSV directory is given
    tickers: tuple[str, ...] = ("SYN0",)
    csv_dir: str | None = None
    start_date: str = "2020-01-02"
    end_date: str = "2023-12-29"
    seed: int = 42

    # Backtest
    initial_capital: float = 100_000.0
    transaction_cost: float = 0.001
    slippage: float = 0.0005
    risk_free_rate: float = 0.02
    rebalance_freq: str = "monthly"

    # Extras
    optimize: bool = False
    stress: bool = False
    max_workers: int | None = None

    # Output
    output_dir: str = "runs"
    plots: bool = True

    def to_dict(self) -> dict:
        return {k: getattr(self, k) for k in self.__dataclass_fields__}
