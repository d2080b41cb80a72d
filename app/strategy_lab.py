"""End-to-end backtest pipeline writing a run directory of artefacts."""
from __future__ import annotations

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from stratlab.backtest import BacktestConfig, SimulationResult, Simulator
from stratlab.data import CsvProvider, HistoricalSeries, generate_synthetic, load_series
from stratlab.optimize import compare_strategies, optimize_parameters
from stratlab.risk import (
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

from .config import RunConfig


class StrategyLab:
    """Load data, simulate one strategy, and persist results and plots."""

    def __init__(self, config: RunConfig | None = None):
        self.config = config or RunConfig()
        self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:6]
        self.run_dir = Path(self.config.output_dir) / self.run_id
        self.run_dir.mkdir(parents=True, exist_ok=True)
        (self.run_dir / "plots").mkdir(exist_ok=True)

    def backtest_config(self) -> BacktestConfig:
        c = self.config
        return BacktestConfig(
            initial_capital=c.initial_capital,
            transaction_cost=c.transaction_cost,
            slippage=c.slippage,
            risk_free_rate=c.risk_free_rate,
            rebalance_freq=c.rebalance_freq,
        )

    def load(self) -> HistoricalSeries:
        c = self.config
        if c.csv_dir:
            return load_series(CsvProvider(c.csv_dir), c.tickers, c.start_date, c.end_date)
        frame = generate_synthetic(c.tickers, c.start_date, c.end_date, seed=c.seed)
        return HistoricalSeries.from_frame(frame, tickers=c.tickers)

    def run(self) -> dict[str, Any]:
        """Execute the pipeline and return the summary written to disk."""
        print(f"[{self.run_id}] Starting backtest pipeline...")
        with open(self.run_dir / "config.json", "w") as f:
            json.dump(self.config.to_dict(), f, indent=2, default=str)

        series = self.load()
        print(f"  Data: {len(series)} rows x {series.width} instruments")
        bt_config = self.backtest_config()
        strategy = Strategy(self.config.strategy, self.config.parameters)

        sim = Simulator(strategy, bt_config).run(series)
        record = compute_performance(sim)
        print(f"  {strategy.name}: return {record.total_return:+.2f}%  "
              f"sharpe {record.sharpe_ratio:.3f}  mdd {record.max_drawdown:.2f}%")

        summary: dict[str, Any] = {
            "run_id": self.run_id,
            "strategy": strategy.to_dict(),
            "metrics": record.to_dict(),
            "score": composite_score(record),
            "grade": strategy_grade(record),
            "recommendation": recommendation(record),
            "output_dir": str(self.run_dir),
        }

        if self.config.stress:
            stress = run_stress_tests(sim, series)
            summary["stress_tests"] = {k: v.to_dict() for k, v in stress.items()}
            print(f"  Stress tests: {len(stress)} scenarios")

        if self.config.optimize:
            opt = optimize_parameters(strategy, series, bt_config,
                                      max_workers=self.config.max_workers)
            summary["optimization"] = opt.to_dict()
            print(f"  Optimized: {opt.optimized_parameters} "
                  f"(score {opt.baseline_score:.1f} -> {opt.optimized_score:.1f})")

        if self.config.compare_with:
            others = [Strategy(kind) for kind in self.config.compare_with
                      if Strategy(kind).name != strategy.name]
            comparison = compare_strategies([strategy, *others], series, bt_config,
                                            max_workers=self.config.max_workers)
            combo = comparison.best_combination
            summary["comparison"] = {
                "rankings": comparison.rankings,
                "errors": comparison.errors,
                "correlation": comparison.correlation.round(6).to_dict(),
                "best_combination": None if combo is None else combo.to_dict(),
                "efficient": list(comparison.efficient),
                "champion": comparison.champion,
            }
            print(f"  Champion: {comparison.champion}")

        self._save_outputs(sim, summary)
        if self.config.plots:
            self._generate_plots(sim)
        return summary

    def _save_outputs(self, sim: SimulationResult, summary: dict) -> None:
        sim.to_frame().to_csv(self.run_dir / "equity.csv")
        pd.DataFrame([t.to_dict() for t in sim.trades]).to_csv(
            self.run_dir / "trades.csv", index=False
        )
        values = pd.Series(sim.values(), index=sim.dates)
        drawdown_details(values).to_csv(self.run_dir / "drawdowns.csv", index=False)
        monthly_returns(sim).rename("return_pct").to_csv(self.run_dir / "monthly_returns.csv")

        clean = {k: (float(v) if isinstance(v, (np.floating, float)) else v)
                 for k, v in summary.items()}
        with open(self.run_dir / "summary.json", "w") as f:
            json.dump(clean, f, indent=2, default=str)

    def _generate_plots(self, sim: SimulationResult) -> None:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt

        plt.rcParams.update({
            "figure.facecolor": "#0a0e17",
            "axes.facecolor": "#111827",
            "axes.edgecolor": "#1e2a42",
            "text.color": "#e8ecf4",
            "axes.labelcolor": "#8892a8",
            "xtick.color": "#4a5568",
            "ytick.color": "#4a5568",
            "grid.color": "#1e2a42",
            "grid.alpha": 0.5,
            "axes.grid": True,
            "figure.dpi": 150,
            "font.size": 10,
        })

        values = pd.Series(sim.values(), index=sim.dates)
        fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(14, 8), gridspec_kw={"height_ratios": [3, 1]})
        ax1.plot(values.index, values.values, color="#00d4aa", linewidth=1.5)
        ax1.axhline(sim.config.initial_capital, color="#4a5568", linestyle="--", linewidth=0.5)
        ax1.set_title(f"Equity Curve: {sim.strategy.name}", fontsize=14,
                      fontweight="bold", color="#e8ecf4")
        ax1.set_ylabel("Portfolio Value")

        dd = drawdown_series(values)
        ax2.fill_between(dd.index, dd.values, 0, color="#ff4757", alpha=0.4)
        ax2.plot(dd.index, dd.values, color="#ff4757", linewidth=0.8)
        ax2.set_title("Drawdown", fontsize=11, color="#e8ecf4")
        ax2.set_ylabel("Drawdown")

        plt.tight_layout()
        fig.savefig(self.run_dir / "plots" / "equity_curve.png", bbox_inches="tight")
        plt.close(fig)
        print("  Plots saved.")
