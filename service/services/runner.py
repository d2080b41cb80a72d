"""Background backtest execution service."""
from __future__ import annotations

import asyncio
import traceback
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, TypeVar

import numpy as np
import pandas as pd

from stratlab.backtest import BacktestConfig, SimulationResult, Simulator
from stratlab.data import HistoricalSeries, YFinanceProvider, load_series
from stratlab.risk import (
    benchmark_comparison,
    composite_score,
    compute_performance,
    drawdown_details,
    drawdown_series,
    monthly_returns,
    recommendation,
    strategy_grade,
)
from stratlab.strategies import Strategy
from stratlab.stress import run_stress_tests
from stratlab.utils import DataIntegrityError

from ..models import (
    BacktestRequest,
    BacktestResult,
    DrawdownEpisode,
    MarketData,
    PerformanceMetrics,
    RunConfig,
    RunMeta,
    RunStatus,
    ScenarioOut,
    StrategySpec,
    TimeSeriesPoint,
    TradeRecord,
)

T = TypeVar("T")


def to_strategy(spec: StrategySpec) -> Strategy:
    return Strategy(spec.kind, spec.parameters, spec.name)


def to_config(cfg: RunConfig) -> BacktestConfig:
    return BacktestConfig(
        initial_capital=cfg.initial_capital,
        transaction_cost=cfg.transaction_cost,
        slippage=cfg.slippage,
        risk_free_rate=cfg.risk_free_rate,
        rebalance_freq=cfg.rebalance_freq.value,
        start_date=None if cfg.start_date is None else str(cfg.start_date),
        end_date=None if cfg.end_date is None else str(cfg.end_date),
    )


def to_series(data: MarketData) -> HistoricalSeries:
    """Inline bars as-is, otherwise one timeout-bounded Yahoo Finance fetch."""
    if data.bars is None:
        return load_series(
            YFinanceProvider(), data.tickers,
            str(data.start_date), str(data.end_date), timeout=data.timeout,
        )
    width = len(data.tickers)
    for bar in data.bars:
        if len(bar.prices) != width:
            raise DataIntegrityError(
                f"bar {bar.date} has {len(bar.prices)} prices for {width} tickers."
            )
        if bar.volumes is not None and len(bar.volumes) != width:
            raise DataIntegrityError(
                f"bar {bar.date} has {len(bar.volumes)} volumes for {width} tickers."
            )
    prices = [bar.prices for bar in data.bars]
    has_volume = all(bar.volumes is not None for bar in data.bars)
    return HistoricalSeries(
        dates=pd.DatetimeIndex([pd.Timestamp(bar.date) for bar in data.bars]),
        prices=np.array(prices, dtype=float),
        volumes=np.array([bar.volumes for bar in data.bars], dtype=float)
        if has_volume else None,
        instruments=tuple(data.tickers),
    )


def _points(series: pd.Series, digits: int = 6) -> list[TimeSeriesPoint]:
    return [
        TimeSeriesPoint(date=str(d.date()), value=round(float(v), digits))
        for d, v in series.items()
    ]


class BacktestRunner:
    """Manages backtest execution in background threads."""

    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._runs: dict[str, RunMeta] = {}
        self._results: dict[str, BacktestResult] = {}

    def list_runs(self) -> list[RunMeta]:
        return sorted(self._runs.values(), key=lambda r: r.created_at, reverse=True)

    def get_run(self, run_id: str) -> RunMeta:
        if run_id not in self._runs:
            raise KeyError(f"Run {run_id} not found")
        return self._runs[run_id]

    def get_result(self, run_id: str) -> BacktestResult:
        if run_id not in self._results:
            raise KeyError(f"Results for run {run_id} not available")
        return self._results[run_id]

    def delete(self, run_id: str) -> None:
        self.get_run(run_id)
        self._runs.pop(run_id, None)
        self._results.pop(run_id, None)

    async def call(self, fn: Callable[..., T], *args) -> T:
        """Run a blocking computation on the pool without blocking the loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    async def submit(self, req: BacktestRequest) -> str:
        run_id = uuid.uuid4().hex[:12]
        self._runs[run_id] = RunMeta(
            run_id=run_id,
            name=req.name,
            status=RunStatus.pending,
            created_at=datetime.now(timezone.utc),
            strategy=req.strategy.kind,
            tickers=req.data.tickers,
        )
        loop = asyncio.get_running_loop()
        loop.run_in_executor(self._executor, self.run_backtest, run_id, req)
        return run_id

    def run_backtest(self, run_id: str, req: BacktestRequest) -> None:
        meta = self._runs[run_id]
        meta.status = RunStatus.running
        try:
            series = to_series(req.data)
            meta.progress = 0.3
            simulator = Simulator(to_strategy(req.strategy), to_config(req.config))
            sim = simulator.run(series)
            meta.progress = 0.8
            stress = run_stress_tests(sim, series) if req.stress else {}
            self._results[run_id] = self._build_result(run_id, req.name, sim, series, stress)
            meta.status = RunStatus.completed
            meta.progress = 1.0
        except Exception as e:
            meta.status = RunStatus.failed
            meta.error = f"{type(e).__name__}: {e}\n{traceback.format_exc()}"

    def _build_result(
        self,
        run_id: str,
        name: str,
        sim: SimulationResult,
        series: HistoricalSeries,
        stress: dict,
    ) -> BacktestResult:
        record = compute_performance(sim)
        values = pd.Series(sim.values(), index=sim.dates)
        episodes = [
            DrawdownEpisode(
                start=str(row["start"].date()),
                trough=str(row["trough"].date()),
                end=str(row["end"].date()),
                depth=round(float(row["depth"]), 6),
                days=int(row["days"]),
                recovery_days=int(row["recovery_days"]),
            )
            for _, row in drawdown_details(values).head(10).iterrows()
        ]
        passive = series.between(sim.dates[0], sim.dates[-1]).close(0)
        return BacktestResult(
            run_id=run_id,
            name=name,
            metrics=PerformanceMetrics(**record.to_dict()),
            score=round(composite_score(record), 4),
            grade=strategy_grade(record),
            recommendation=recommendation(record),
            equity_curve=_points(values, 2),
            drawdown_series=_points(drawdown_series(values)),
            monthly_returns=_points(monthly_returns(sim), 4),
            drawdown_episodes=episodes,
            trades=[TradeRecord(**t.to_dict()) for t in sim.trades],
            signal_count=len(sim.signals),
            benchmark=benchmark_comparison(sim, passive),
            stress_tests=[ScenarioOut(**s.to_dict()) for s in stress.values()],
        )


# Singleton
runner = BacktestRunner()
