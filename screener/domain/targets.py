"""Target price domain models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TargetDetail(BaseModel):
    """Common shape of every sub-estimator result."""

    model_config = ConfigDict(frozen=True)

    method: str
    target: float = Field(..., ge=0)
    confidence: float = Field(..., gt=0, le=1)


class TechnicalTarget(TargetDetail):
    resistance: float
    support: float
    high_52w: float
    low_52w: float


class FundamentalTarget(TargetDetail):
    current_pe: float | None = None
    sector_avg_pe: float
    fair_value: float


class AITarget(TargetDetail):
    reasoning: str = ""


class RiskTarget(TargetDetail):
    entry_price: float
    target_10pct: float
    target_20pct: float
    stop_loss: float


class TargetDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    technical: TechnicalTarget
    fundamental: FundamentalTarget
    ai: AITarget
    risk: RiskTarget


class TargetPrices(BaseModel):
    """Four independent targets, their confidence-weighted blend and a stop."""

    model_config = ConfigDict(frozen=True)

    technical: float
    fundamental: float
    ai: float
    risk: float
    average: float = Field(..., description="Confidence-weighted blend")
    stop_loss: float = Field(..., description="Never above 90% of entry")
    details: TargetDetails


class AnalyticalTarget(BaseModel):
    """Price target proposed by the analytical reviewer."""

    target: float = Field(..., gt=0)
    reasoning: str = ""
    confidence: float = Field(default=0.5, gt=0, le=1)
