"""Strategy catalogue API routes."""
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from stratlab.strategies import StrategyEntry, registry
from stratlab.utils import UnknownStrategyError

from ..models import StrategyInfo

router = APIRouter(prefix="/api/strategies", tags=["strategies"])


def _info(e: StrategyEntry) -> StrategyInfo:
    return StrategyInfo(
        kind=e.kind, description=e.description, category=e.category,
        module=e.module, params=e.default_params, param_grid=e.param_grid,
        min_instruments=e.min_instruments,
    )


@router.get("/", response_model=list[StrategyInfo])
async def list_strategies() -> list[StrategyInfo]:
    return [_info(e) for e in registry.list_all()]


@router.get("/{kind}", response_model=StrategyInfo)
async def get_strategy(kind: str) -> StrategyInfo:
    try:
        return _info(registry.get(kind))
    except UnknownStrategyError:
        raise HTTPException(404, f"Strategy '{kind}' not found")
