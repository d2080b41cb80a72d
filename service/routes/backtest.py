"""Backtest, optimization and comparison API routes."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from stratlab.optimize import compare_strategies, optimize_parameters
from stratlab.utils import StratlabValidationError

from ..models import (
    BacktestRequest,
    BacktestResult,
    CompareRequest,
    CompareResponse,
    OptimizeRequest,
    OptimizeResponse,
    PerformanceMetrics,
    RankedStrategy,
    RunMeta,
    RunStatus,
)
from ..services.runner import runner, to_config, to_series, to_strategy

router = APIRouter(prefix="/api/backtest", tags=["backtest"])


@router.post("/run", response_model=RunMeta)
async def run_backtest_endpoint(req: BacktestRequest) -> RunMeta:
    run_id = await runner.submit(req)
    return runner.get_run(run_id)


@router.get("/runs", response_model=list[RunMeta])
async def list_runs() -> list[RunMeta]:
    return runner.list_runs()


@router.get("/runs/{run_id}", response_model=RunMeta)
async def get_run(run_id: str) -> RunMeta:
    try:
        return runner.get_run(run_id)
    except KeyError:
        raise HTTPException(404, f"Run {run_id} not found")


@router.get("/runs/{run_id}/results", response_model=BacktestResult)
async def get_results(run_id: str) -> BacktestResult:
    try:
        meta = runner.get_run(run_id)
    except KeyError:
        raise HTTPException(404, f"Run {run_id} not found")
    if meta.status is not RunStatus.completed:
        raise HTTPException(400, f"Run {run_id} status is {meta.status.value}")
    try:
        return runner.get_result(run_id)
    except KeyError:
        raise HTTPException(404, f"Results for {run_id} not available")


@router.delete("/runs/{run_id}")
async def delete_run(run_id: str) -> dict:
    try:
        runner.delete(run_id)
    except KeyError:
        raise HTTPException(404, f"Run {run_id} not found")
    return {"deleted": run_id}


def _optimize(req: OptimizeRequest) -> OptimizeResponse:
    result = optimize_parameters(
        to_strategy(req.strategy), to_series(req.data), to_config(req.config),
        param_grid=req.param_grid, max_workers=req.max_workers,
    )
    d = result.to_dict()
    d.pop("strategy")
    return OptimizeResponse(kind=req.strategy.kind, **d)


def _compare(req: CompareRequest) -> CompareResponse:
    result = compare_strategies(
        [to_strategy(s) for s in req.strategies], to_series(req.data),
        to_config(req.config), max_workers=req.max_workers,
        weight_step=req.weight_step,
    )
    ranked = [
        RankedStrategy(
            name=name,
            kind=result.runs[name].strategy.kind,
            score=round(result.runs[name].score, 4),
            metrics=PerformanceMetrics(**result.runs[name].record.to_dict()),
        )
        for name in result.rankings["score"]
    ]
    combo = result.best_combination
    return CompareResponse(
        results=ranked,
        errors=result.errors,
        rankings=result.rankings,
        correlation=result.correlation.round(6).to_dict(),
        best_combination=None if combo is None else combo.to_dict(),
        efficient=list(result.efficient),
        champion=result.champion,
        best_risk_adjusted=result.best_risk_adjusted,
    )


@router.post("/optimize", response_model=OptimizeResponse)
async def optimize_endpoint(req: OptimizeRequest) -> OptimizeResponse:
    try:
        return await runner.call(_optimize, req)
    except StratlabValidationError as e:
        raise HTTPException(422, f"{type(e).__name__}: {e}")


@router.post("/compare", response_model=CompareResponse)
async def compare_endpoint(req: CompareRequest) -> CompareResponse:
    try:
        return await runner.call(_compare, req)
    except StratlabValidationError as e:
        raise HTTPException(422, f"{type(e).__name__}: {e}")
