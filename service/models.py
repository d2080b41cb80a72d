"""Pydantic models for the stratlab HTTP API."""
from __future__ import annotations

import enum
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from stratlab.strategies import StrategyKind


# ── Enums ──────────────────────────────────────────────────────────────

class RunStatus(str, enum.Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


class RebalanceFreq(str, enum.Enum):
    none = "none"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    quarterly = "quarterly"


# ── Request models ─────────────────────────────────────────────────────

class PriceBar(BaseModel):
    date: date
    prices: list[float] = Field(..., min_length=1)
    volumes: list[float] | None = None


class MarketData(BaseModel):
    """Inline bars, or tickers plus a date range fetched from Yahoo Finance."""
    tickers: list[str] = Field(..., min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    bars: list[PriceBar] | None = None
    timeout: float = Field(30.0, gt=0, le=300, description="Fetch timeout, seconds")

    @model_validator(mode="after")
    def _check_source(self) -> "MarketData":
        if self.bars is None and (self.start_date is None or self.end_date is None):
            raise ValueError("either bars or start_date and end_date are required")
        return self


class StrategySpec(BaseModel):
    kind: StrategyKind
    name: str = Field("", max_length=200)
    parameters: dict[str, float] = Field(default_factory=dict)


class RunConfig(BaseModel):
    initial_capital: float = Field(100_000.0, gt=0)
    transaction_cost: float = Field(0.001, ge=0, lt=1)
    slippage: float = Field(0.0005, ge=0, lt=1)
    risk_free_rate: float = 0.02
    rebalance_freq: RebalanceFreq = RebalanceFreq.monthly
    start_date: date | None = None
    end_date: date | None = None


class BacktestRequest(BaseModel):
    name: str = Field("Untitled Backtest", max_length=200)
    strategy: StrategySpec
    data: MarketData
    config: RunConfig = Field(default_factory=RunConfig)
    stress: bool = False


class OptimizeRequest(BaseModel):
    strategy: StrategySpec
    data: MarketData
    config: RunConfig = Field(default_factory=RunConfig)
    param_grid: dict[str, list[float]] | None = None
    max_workers: int | None = Field(None, ge=1, le=32)


class CompareRequest(BaseModel):
    strategies: list[StrategySpec] = Field(..., min_length=2)
    data: MarketData
    config: RunConfig = Field(default_factory=RunConfig)
    weight_step: float = Field(0.25, gt=0, le=1)
    max_workers: int | None = Field(None, ge=1, le=32)


# ── Response models ────────────────────────────────────────────────────

class RunMeta(BaseModel):
    run_id: str
    name: str
    status: RunStatus
    created_at: datetime
    strategy: StrategyKind
    tickers: list[str]
    progress: float = Field(0.0, ge=0, le=1.0, description="0-1 progress")
    error: str | None = None


class PerformanceMetrics(BaseModel):
    total_return: float
    annualized_return: float
    volatility: float
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float
    max_drawdown: float
    var_95: float
    expected_shortfall: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    rejected_trades: int
    win_rate: float
    profit_factor: float
    average_win: float
    average_loss: float
    max_consecutive_wins: int
    max_consecutive_losses: int
    beta: float
    alpha: float
    information_ratio: float
    kelly_criterion: float
    final_value: float
    trading_days: int


class TimeSeriesPoint(BaseModel):
    date: str
    value: float


class DrawdownEpisode(BaseModel):
    start: str
    trough: str
    end: str
    depth: float
    days: int
    recovery_days: int


class TradeRecord(BaseModel):
    instrument: int
    side: str
    entry_date: str
    entry_price: float
    exit_date: str
    exit_price: float
    quantity: float
    pnl: float
    return_pct: float
    reason: str
    exit_reason: str
    status: str
    origin: str
    costs: float


class ScenarioOut(BaseModel):
    scenario: str
    portfolio_impact: float
    max_drawdown: float
    baseline_max_drawdown: float
    details: dict[str, Any] = Field(default_factory=dict)


class BacktestResult(BaseModel):
    run_id: str
    name: str
    metrics: PerformanceMetrics
    score: float
    grade: str
    recommendation: str
    equity_curve: list[TimeSeriesPoint]
    drawdown_series: list[TimeSeriesPoint]
    monthly_returns: list[TimeSeriesPoint]
    drawdown_episodes: list[DrawdownEpisode]
    trades: list[TradeRecord]
    signal_count: int
    benchmark: dict[str, float]
    stress_tests: list[ScenarioOut] = Field(default_factory=list)


class StrategyInfo(BaseModel):
    kind: StrategyKind
    description: str
    category: str
    module: str
    params: dict[str, Any] = Field(default_factory=dict, description="Default params")
    param_grid: dict[str, list[Any]] = Field(default_factory=dict)
    min_instruments: int = 1


class OptimizeResponse(BaseModel):
    kind: StrategyKind
    original_parameters: dict[str, Any]
    optimized_parameters: dict[str, Any]
    baseline_score: float
    optimized_score: float
    score_improvement: float
    return_improvement: float
    sharpe_improvement: float
    drawdown_improvement: float
    points_evaluated: int
    errors: dict[str, str] = Field(default_factory=dict)


class RankedStrategy(BaseModel):
    name: str
    kind: StrategyKind
    score: float
    metrics: PerformanceMetrics


class CompareResponse(BaseModel):
    results: list[RankedStrategy]
    errors: dict[str, str] = Field(default_factory=dict)
    rankings: dict[str, list[str]]
    correlation: dict[str, dict[str, float]]
    best_combination: dict[str, Any] | None = None
    efficient: list[str] = Field(default_factory=list)
    champion: str | None = None
    best_risk_adjusted: str | None = None
