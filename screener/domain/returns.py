"""Forward-return domain models used to grade past picks."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ForwardReturns(BaseModel):
    """Forward returns for one pick, in percent rounded to 2 decimals.

    ``max_drawdown_5d`` is a positive magnitude: a low 5% under entry
    is reported as 5.00.
    """

    return_1d: float | None = None
    return_3d: float | None = None
    return_5d: float | None = None
    max_gain_5d: float | None = None
    max_drawdown_5d: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.max_gain_5d is None


class PendingPick(BaseModel):
    """A persisted pick still waiting for its forward returns."""

    id: int
    ticker: str
    run_timestamp: datetime
    price: float = Field(..., gt=0)
    classification: str | None = None
    target_avg: float | None = None
    stop_loss: float | None = None

    model_config = {
        "from_attributes": True,
    }


class ReturnRecord(ForwardReturns):
    """Forward returns plus target/stop grading, keyed by scan result."""

    scan_result_id: int
    hit_target: bool = False
    hit_stop_loss: bool = False
    window_closed: bool = False


class ClassificationAccuracy(BaseModel):
    """How picks of one classification performed."""

    classification: str
    total_picks: int = 0
    winners_1d: int = 0
    winners_3d: int = 0
    winners_5d: int = 0
    avg_return_1d: float = 0.0
    avg_return_3d: float = 0.0
    avg_return_5d: float = 0.0
    avg_max_gain: float = 0.0
    avg_max_drawdown: float = 0.0
    win_rate_1d: float = 0.0
    win_rate_5d: float = 0.0


class TargetAccuracy(BaseModel):
    """How often blended targets and stops were reached."""

    total_with_targets: int = 0
    hit_target: int = 0
    hit_stop_loss: int = 0
    avg_distance_to_target: float = 0.0
    target_hit_rate: float = 0.0


class BacktestResult(BaseModel):
    """One graded pick."""

    id: int
    ticker: str
    run_timestamp: datetime
    entry_price: float
    classification: str | None = None
    attention: int | None = None
    momentum: int | None = None
    fundamentals: int | None = None
    risk: int | None = None
    returns: ForwardReturns
    hit_target: bool = False
    hit_stop_loss: bool = False
    target_price: float | None = None
    stop_loss: float | None = None
