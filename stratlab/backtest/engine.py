"""Daily-bar, share-level simulation engine.

Timing convention:
    1. At step *t* the generator sees rows ``[0..t]`` only.
    2. Its signals execute at the close of *t* (sells before buys).
    3. The portfolio is marked at the close of *t* and a snapshot recorded.
    4. On a rebalance boundary, holdings with a target weight are steered
       back toward it; those trades show up in the next snapshot.

Unlike a weight-based engine, positions are tracked as share quantities in
FIFO lots so every round trip becomes a :class:`Trade` with its own entry
and exit.  All mutable state lives in a per-run :class:`_Book` that is
discarded once the :class:`SimulationResult` is built.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from stratlab.backtest.config import BacktestConfig
from stratlab.backtest.costs import buy_factor, sell_factor, transaction_costs
from stratlab.backtest.result import (
    PortfolioSnapshot,
    SignalEvent,
    SimulationResult,
    Trade,
    TradeOrigin,
    TradeStatus,
)
from stratlab.data.series import HistoricalSeries
from stratlab.portfolio.constraints import rebalance_orders
from stratlab.strategies.base import Signal, SignalType, Strategy
from stratlab.strategies.registry import generate_signals, registry
from stratlab.utils.calendar import rebalance_mask
from stratlab.utils.validation import (
    ConfigValidationError,
    InsufficientDataError,
    validate_row,
)

_QTY_EPS = 1e-12
_CASH_TOL = 1e-9


@dataclass
class _Lot:
    quantity: float
    entry_price: float
    entry_date: pd.Timestamp
    reason: str
    origin: TradeOrigin
    unit_cost: float


class _Book:
    """Cash, FIFO lots and target weights for a single run."""

    def __init__(self, config: BacktestConfig, width: int) -> None:
        self.config = config
        self.cash = float(config.initial_capital)
        self.lots: list[list[_Lot]] = [[] for _ in range(width)]
        self.targets: dict[int, float] = {}
        self.trades: list[Trade] = []
        self.buy_factor = buy_factor(config)
        self.sell_factor = sell_factor(config)

    def quantities(self) -> np.ndarray:
        return np.array([sum(lot.quantity for lot in lots) for lots in self.lots])

    def equity(self, prices: np.ndarray) -> float:
        return self.cash + float(self.quantities() @ prices)

    def buy(
        self,
        instrument: int,
        notional: float,
        price: float,
        date: pd.Timestamp,
        reason: str,
        origin: TradeOrigin,
    ) -> None:
        if notional <= 0:
            return
        cash_needed = notional * self.buy_factor
        if cash_needed > self.cash + _CASH_TOL * max(1.0, self.cash):
            if origin is TradeOrigin.rebalance:
                notional = self.cash / self.buy_factor
                cash_needed = self.cash
                if notional <= 0:
                    return
            else:
                self.trades.append(
                    Trade(
                        instrument=instrument, side="long",
                        entry_date=date, entry_price=price,
                        exit_date=date, exit_price=price,
                        quantity=notional / price, reason=reason,
                        exit_reason=(
                            f"rejected: needs {cash_needed:.2f}, "
                            f"cash {self.cash:.2f}"
                        ),
                        status=TradeStatus.rejected, origin=origin,
                    )
                )
                return
        cash_needed = min(cash_needed, self.cash)
        notional = cash_needed / self.buy_factor
        qty = notional / price
        if qty <= _QTY_EPS:
            return
        self.cash -= cash_needed
        self.lots[instrument].append(
            _Lot(qty, price, date, reason, origin,
                 transaction_costs(notional, "buy", self.config) / qty)
        )

    def sell(
        self,
        instrument: int,
        quantity: float,
        price: float,
        date: pd.Timestamp,
        reason: str,
    ) -> None:
        lots = self.lots[instrument]
        remaining = quantity
        while remaining > _QTY_EPS and lots:
            lot = lots[0]
            part = min(lot.quantity, remaining)
            notional = part * price
            proceeds = notional * self.sell_factor
            self.cash += proceeds
            self.trades.append(
                Trade(
                    instrument=instrument, side="long",
                    entry_date=lot.entry_date, entry_price=lot.entry_price,
                    exit_date=date, exit_price=price, quantity=part,
                    reason=lot.reason, exit_reason=reason,
                    status=TradeStatus.closed, origin=lot.origin,
                    costs=lot.unit_cost * part
                    + transaction_costs(notional, "sell", self.config),
                )
            )
            lot.quantity -= part
            remaining -= part
            if lot.quantity <= _QTY_EPS:
                lots.pop(0)


class Simulator:
    """Replays a :class:`HistoricalSeries` for one strategy.

    The generator is resolved and the parameters validated at construction,
    so an unknown kind or bad parameter fails before any step runs.

    Parameters
    ----------
    strategy : Strategy
        Kind plus parameter overrides; registry defaults fill the rest.
    config : BacktestConfig, optional
        Run-wide settings; defaults when omitted.
    """

    def __init__(self, strategy: Strategy, config: BacktestConfig | None = None) -> None:
        self.strategy = strategy
        self.config = config or BacktestConfig()
        self.entry = registry.get(strategy.kind)
        self.params = self.entry.resolve_params(strategy.parameters)
        self.entry.validate(self.params)
        self.lookback = self.entry.lookback(self.params)

    def _check_series(self, series: HistoricalSeries) -> None:
        if series.width < self.entry.min_instruments:
            raise ConfigValidationError(
                f"{self.strategy.kind.value} needs at least "
                f"{self.entry.min_instruments} instruments; series has {series.width}."
            )
        for key in ("instrument", "instrument_a", "instrument_b"):
            idx = self.params.get(key)
            if idx is not None and not 0 <= int(idx) < series.width:
                raise ConfigValidationError(
                    f"{key}={idx} is outside a series of width {series.width}."
                )
        if len(series) <= self.lookback:
            raise InsufficientDataError(
                f"{self.strategy.name} needs more than {self.lookback} rows "
                f"in [{self.config.start_date}, {self.config.end_date}]; "
                f"got {len(series)}."
            )
        for step in range(self.lookback):
            validate_row(series.prices[step], series.volumes[step], step,
                         series.dates[step])

    def _execute(
        self,
        book: _Book,
        signals: list[Signal],
        prices: np.ndarray,
        date: pd.Timestamp,
    ) -> None:
        equity = book.equity(prices)

        def _reduces(sig: Signal) -> bool:
            if sig.target_weight is None:
                return sig.type is SignalType.SELL
            held = sum(lot.quantity for lot in book.lots[sig.instrument])
            return sig.target_weight * equity / book.buy_factor < held * prices[sig.instrument]

        active = [s for s in signals if s.type is not SignalType.HOLD]
        # stable sort: every reduction runs before any increase
        ordered = sorted(active, key=lambda s: not _reduces(s))
        for sig in ordered:
            i = sig.instrument
            price = float(prices[i])
            held = sum(lot.quantity for lot in book.lots[i])

            if sig.target_weight is not None:
                book.targets[i] = sig.target_weight
                desired = sig.target_weight * book.equity(prices) / book.buy_factor / price
                if desired < held - _QTY_EPS:
                    book.sell(i, held - desired, price, date, sig.reason)
                elif desired > held + _QTY_EPS:
                    book.buy(i, (desired - held) * price, price, date,
                             sig.reason, TradeOrigin.signal)
            elif sig.type is SignalType.BUY:
                notional = sig.strength * book.equity(prices) / book.buy_factor
                book.buy(i, notional, price, date, sig.reason, TradeOrigin.signal)
            elif held > _QTY_EPS:
                book.sell(i, sig.strength * held, price, date, sig.reason)

    def _rebalance(self, book: _Book, prices: np.ndarray, date: pd.Timestamp) -> None:
        held = book.quantities()
        targets = held * prices / max(book.equity(prices), _QTY_EPS) * book.buy_factor
        for i, w in book.targets.items():
            targets[i] = w
        orders = rebalance_orders(held, prices, targets, book.equity(prices),
                                  book.buy_factor)
        for i in np.flatnonzero(orders < 0):
            book.sell(int(i), float(-orders[i]), float(prices[i]), date,
                      "Rebalance toward target weight")
        for i in np.flatnonzero(orders > 0):
            book.buy(int(i), float(orders[i] * prices[i]), float(prices[i]), date,
                     "Rebalance toward target weight", TradeOrigin.rebalance)

    def run(self, series: HistoricalSeries) -> SimulationResult:
        """Replay *series* and return the immutable result.

        Raises
        ------
        DataIntegrityError
            If a row holds a non-finite or non-positive price, or a negative
            volume.
        ConfigValidationError
            If the series is too narrow for the strategy.
        InsufficientDataError
            If the date-restricted series is not longer than the look-back.
        """
        series = series.between(self.config.start_date, self.config.end_date)
        self._check_series(series)

        book = _Book(self.config, series.width)
        mask = rebalance_mask(series.dates, self.config.rebalance_freq)
        snapshots: list[PortfolioSnapshot] = []
        events: list[SignalEvent] = []

        for step in range(self.lookback, len(series)):
            date = series.dates[step]
            prices = series.prices[step]
            validate_row(prices, series.volumes[step], step, date)

            signals = generate_signals(self.entry, series.window(step), step, self.params)
            events.extend(SignalEvent(date, step, s) for s in signals)
            self._execute(book, signals, prices, date)

            qty = book.quantities()
            value = book.cash + float(qty @ prices)
            prev = snapshots[-1].value if snapshots else None
            step_return = value / prev - 1 if prev else 0.0
            held = {int(i): float(qty[i]) for i in np.flatnonzero(qty > _QTY_EPS)}
            snapshots.append(
                PortfolioSnapshot(
                    date=date, step=step, value=value, cash=book.cash,
                    positions=held,
                    position_values={i: q * float(prices[i]) for i, q in held.items()},
                    step_return=step_return,
                )
            )

            if mask[step] and book.targets:
                self._rebalance(book, prices, date)

        last_date = series.dates[-1]
        last_prices = series.prices[-1]
        open_trades = [
            Trade(
                instrument=i, side="long",
                entry_date=lot.entry_date, entry_price=lot.entry_price,
                exit_date=last_date, exit_price=float(last_prices[i]),
                quantity=lot.quantity, reason=lot.reason,
                exit_reason="open at end of series",
                status=TradeStatus.open, origin=lot.origin,
                costs=lot.unit_cost * lot.quantity,
            )
            for i, lots in enumerate(book.lots)
            for lot in lots
        ]

        return SimulationResult(
            strategy=self.strategy,
            config=self.config,
            instruments=series.instruments,
            lookback=self.lookback,
            trades=tuple(book.trades + open_trades),
            snapshots=tuple(snapshots),
            signals=tuple(events),
        )


def run_simulation(
    strategy: Strategy,
    series: HistoricalSeries,
    config: BacktestConfig | None = None,
) -> SimulationResult:
    """Convenience wrapper: ``Simulator(strategy, config).run(series)``."""
    return Simulator(strategy, config).run(series)
