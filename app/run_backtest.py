"""CLI entrypoint for the backtest pipeline.

Usage:
    python -m app.run_backtest
    python -m app.run_backtest --strategy rsi_mean_reversion --param period=10
    python -m app.run_backtest --tickers AAA,BBB --strategy pairs_trading --stress
    python -m app.run_backtest --csv-dir data/ --tickers SPY --optimize
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure project root on path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import RunConfig
from app.strategy_lab import StrategyLab
from stratlab.strategies import StrategyKind
from stratlab.utils import REBALANCE_FREQUENCIES


def parse_params(items: list[str]) -> dict[str, float]:
    params: dict[str, float] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"expected key=value, got {item!r}")
        params[key.strip()] = float(value)
    return params


def build_parser() -> argparse.ArgumentParser:
    kinds = [k.value for k in StrategyKind]
    parser = argparse.ArgumentParser(description="stratlab Backtest Pipeline")
    parser.add_argument("--strategy", default="moving_average_crossover", choices=kinds)
    parser.add_argument("--param", action="append", default=[], metavar="KEY=VALUE",
                        help="Strategy parameter override (repeatable)")
    parser.add_argument("--compare", default="", help="Comma-separated kinds to compare against")
    parser.add_argument("--tickers", default="SYN0", help="Comma-separated tickers")
    parser.add_argument("--csv-dir", default=None, help="Read <TICKER>.csv files from here")
    parser.add_argument("--start-date", default="2020-01-02")
    parser.add_argument("--end-date", default="2023-12-29")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--capital", type=float, default=100_000.0)
    parser.add_argument("--transaction-cost", type=float, default=0.001)
    parser.add_argument("--slippage", type=float, default=0.0005)
    parser.add_argument("--risk-free-rate", type=float, default=0.02)
    parser.add_argument("--rebalance-freq", default="monthly", choices=list(REBALANCE_FREQUENCIES))
    parser.add_argument("--optimize", action="store_true")
    parser.add_argument("--stress", action="store_true")
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--no-plots", action="store_true")
    parser.add_argument("--output-dir", default="runs")
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        strategy=args.strategy,
        parameters=parse_params(args.param),
        compare_with=tuple(k for k in args.compare.split(",") if k),
        tickers=tuple(t.strip() for t in args.tickers.split(",") if t.strip()),
        csv_dir=args.csv_dir,
        start_date=args.start_date,
        end_date=args.end_date,
        seed=args.seed,
        initial_capital=args.capital,
        transaction_cost=args.transaction_cost,
        slippage=args.slippage,
        risk_free_rate=args.risk_free_rate,
        rebalance_freq=args.rebalance_freq,
        optimize=args.optimize,
        stress=args.stress,
        max_workers=args.workers,
        output_dir=args.output_dir,
        plots=not args.no_plots,
    )


def main(argv: list[str] | None = None) -> dict:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = config_from_args(args)
    except (argparse.ArgumentTypeError, ValueError) as e:
        parser.error(str(e))
    result = StrategyLab(config).run()
    m = result["metrics"]

    print("\n" + "=" * 60)
    print("BACKTEST COMPLETE")
    print("=" * 60)
    print(f"  Run ID:         {result['run_id']}")
    print(f"  Total return:   {m['total_return']:+.2f}%")
    print(f"  Annualized:     {m['annualized_return']:+.2f}%")
    print(f"  Sharpe:         {m['sharpe_ratio']:.3f}")
    print(f"  Max drawdown:   {m['max_drawdown']:.2f}%")
    print(f"  Trades:         {m['total_trades']}  (win rate {m['win_rate']:.1f}%)")
    print(f"  Score / grade:  {result['score']:.1f} / {result['grade']}")
    print(f"  Recommendation: {result['recommendation']}")
    print(f"  Output:         {result['output_dir']}")
    print("=" * 60)
    return result


if __name__ == "__main__":
    main()
