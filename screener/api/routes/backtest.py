"""Pick accuracy and backtest routes."""

from __future__ import annotations

from fastapi import APIRouter, Query

from screener.domain import BacktestResult, ClassificationAccuracy, TargetAccuracy
from screener.services import returns


router = APIRouter()


@router.get(
    "/accuracy",
    response_model=list[ClassificationAccuracy],
    summary="Accuracy by classification",
    description="Win rates and average forward returns of graded picks per classification.",
)
async def classification_accuracy() -> list[ClassificationAccuracy]:
    return await returns.calculate_classification_accuracy()


@router.get(
    "/targets",
    response_model=TargetAccuracy,
    summary="Target price accuracy",
)
async def target_accuracy() -> TargetAccuracy:
    return await returns.calculate_target_accuracy()


@router.get(
    "/results",
    response_model=list[BacktestResult],
    summary="Graded picks",
)
async def backtest_results(
    classification: str | None = Query(None, description="Only this classification"),
    min_attention: int | None = Query(None, ge=0, le=100),
    min_momentum: int | None = Query(None, ge=0, le=100),
    limit: int = Query(100, ge=1, le=1000),
) -> list[BacktestResult]:
    return await returns.get_backtest_results(
        classification=classification,
        min_attention=min_attention,
        min_momentum=min_momentum,
        limit=limit,
    )
