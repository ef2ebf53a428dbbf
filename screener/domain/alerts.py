"""Alert rule, payload and event models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


KNOWN_CHANNELS = ("email", "discord", "slack")


def _normalize_channels(channels: list[str]) -> list[str]:
    normalized = [c.strip().lower() for c in channels]
    unknown = [c for c in normalized if c not in KNOWN_CHANNELS]
    if unknown:
        raise ValueError(f"Unknown channels: {', '.join(unknown)}")
    return normalized


class AlertConditions(BaseModel):
    """Optional predicates of an alert rule.

    ``None`` means the predicate is not part of the rule. A rule matches
    when every predicate that is set holds. Predicates on an overlay
    (technicals, options, SEC) do not hold when that overlay is missing.

    ============================  ==============================================
    field                         holds when
    ============================  ==============================================
    classification                classification is in the set (empty = any)
    attention_min                 attention >= value
    momentum_min                  momentum >= value
    fundamentals_min              fundamentals >= value
    risk_max                      risk <= value
    technical_signal              technical signal is in the set
    rsi_min / rsi_max             RSI(14) >= value / <= value
    options_signal                options signal is in the set
    call_put_ratio_min            call/put ratio >= value
    insider_buying                (insider buys > insider sells) == value
    recent_8k                     (8-K filed in the last 30 days) == value
    ============================  ==============================================
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    classification: list[str] | None = None
    attention_min: int | None = Field(None, ge=0, le=100)
    momentum_min: int | None = Field(None, ge=0, le=100)
    fundamentals_min: int | None = Field(None, ge=0, le=100)
    risk_max: int | None = Field(None, ge=0, le=100)
    technical_signal: list[str] | None = None
    rsi_min: float | None = Field(None, ge=0, le=100)
    rsi_max: float | None = Field(None, ge=0, le=100)
    options_signal: list[str] | None = None
    call_put_ratio_min: float | None = Field(None, ge=0)
    insider_buying: bool | None = None
    recent_8k: bool | None = None


class AlertRule(BaseModel):
    """A persisted, user-configured alert rule."""

    id: int
    name: str
    description: str | None = None
    enabled: bool = True
    alert_type: str
    conditions: AlertConditions = Field(default_factory=AlertConditions)
    channels: list[str] = Field(..., min_length=1)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {
        "from_attributes": True,
    }


class AlertRuleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    alert_type: str = Field(..., min_length=1, max_length=50)
    conditions: AlertConditions = Field(default_factory=AlertConditions)
    channels: list[str] = Field(..., min_length=1)
    enabled: bool = True

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: list[str]) -> list[str]:
        return _normalize_channels(v)


class AlertRuleUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    alert_type: str | None = Field(None, min_length=1, max_length=50)
    conditions: AlertConditions | None = None
    channels: list[str] | None = Field(None, min_length=1)
    enabled: bool | None = None

    @field_validator("channels")
    @classmethod
    def validate_channels(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return _normalize_channels(v)


class AlertScores(BaseModel):
    attention: int
    momentum: int
    fundamentals: int
    risk: int


class AlertPayload(BaseModel):
    """What a notification channel receives."""

    ticker: str
    alert_type: str
    classification: str
    scores: AlertScores
    price: float
    target_price: float | None = None
    stop_loss: float | None = None
    bull_case: str = ""
    bear_case: str = ""
    technical_signal: str | None = None


class AlertEvent(BaseModel):
    """Record of one successful dispatch. Append-only."""

    model_config = ConfigDict(frozen=True)

    scan_result_id: int
    ticker: str
    alert_type: str
    scores: AlertScores
    classification: dict
    message: str
    sent_to: list[str] = Field(..., min_length=1)


class ScanSummary(BaseModel):
    """End-of-run digest sent to the webhook channels."""

    total_scanned: int = 0
    runners: int = 0
    value_plays: int = 0
    alerts: int = 0
    top_picks: list[dict] = Field(default_factory=list)
