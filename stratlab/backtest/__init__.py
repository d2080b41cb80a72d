"""Share-level backtesting engine with transaction cost modelling."""

from stratlab.backtest.config import BacktestConfig
from stratlab.backtest.costs import buy_factor, sell_factor, transaction_costs
from stratlab.backtest.engine import Simulator, run_simulation
from stratlab.backtest.result import (
    PortfolioSnapshot,
    SignalEvent,
    SimulationResult,
    Trade,
    TradeOrigin,
    TradeStatus,
)

__all__ = [
    "BacktestConfig", "buy_factor", "sell_factor", "transaction_costs",
    "Simulator", "run_simulation",
    "PortfolioSnapshot", "SignalEvent", "SimulationResult", "Trade",
    "TradeOrigin", "TradeStatus",
]
