"""Classifier thresholds and universe filter configuration.

All thresholds are loaded from environment or settings, with the
defaults below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from pydantic import ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings


class ScoringSettings(BaseSettings):
    """Scoring thresholds from environment."""

    model_config = ConfigDict(extra="ignore")

    # Runner: attention + momentum
    runner_min_attention: int = Field(default=70, ge=0, le=100)
    runner_min_momentum: int = Field(default=70, ge=0, le=100)
    runner_max_risk: int = Field(default=70, ge=0, le=100)

    # Value: fundamentals with building momentum
    value_min_fundamentals: int = Field(default=70, ge=0, le=100)
    value_min_momentum: int = Field(default=30, ge=0, le=100)
    value_max_momentum: int = Field(default=70, ge=0, le=100)
    value_max_risk: int = Field(default=60, ge=0, le=100)

    # Pump warning overrides every other verdict
    pump_warning_min_risk: int = Field(default=80, ge=0, le=100)

    # Universe admission
    universe_max_price: float = Field(
        default=10.0, gt=0, description="Skip tickers priced above this"
    )
    universe_max_market_cap: float = Field(
        default=20_000_000_000, gt=0, description="Skip companies larger than this"
    )
    universe_allowed_countries: list[str] = Field(
        default=["USA", "United States"],
    )
    universe_allowed_exchanges: list[str] = Field(
        default=[
            "NYSE",
            "NASDAQ",
            "NYSE ARCA",
            "NYSE MKT",
            "AMEX",
            "OTC",
            "OTCQX",
            "OTCQB",
            "PINK",
        ],
    )
    universe_exclude_etfs: bool = Field(default=True)

    @model_validator(mode="after")
    def validate_value_band(self) -> ScoringSettings:
        if self.value_min_momentum > self.value_max_momentum:
            raise ValueError("value_min_momentum must not exceed value_max_momentum")
        return self


@dataclass(frozen=True)
class RunnerThresholds:
    min_attention: int = 70
    min_momentum: int = 70
    max_risk: int = 70


@dataclass(frozen=True)
class ValueThresholds:
    min_fundamentals: int = 70
    min_momentum: int = 30
    max_momentum: int = 70
    max_risk: int = 60


@dataclass(frozen=True)
class PumpWarningThresholds:
    min_risk: int = 80


@dataclass(frozen=True)
class AlertThresholds:
    """Classifier thresholds."""

    runner: RunnerThresholds = field(default_factory=RunnerThresholds)
    value: ValueThresholds = field(default_factory=ValueThresholds)
    pump_warning: PumpWarningThresholds = field(default_factory=PumpWarningThresholds)

    @classmethod
    def from_settings(
        cls, settings: ScoringSettings | None = None
    ) -> AlertThresholds:
        """Create thresholds from settings."""
        if settings is None:
            settings = ScoringSettings()

        return cls(
            runner=RunnerThresholds(
                min_attention=settings.runner_min_attention,
                min_momentum=settings.runner_min_momentum,
                max_risk=settings.runner_max_risk,
            ),
            value=ValueThresholds(
                min_fundamentals=settings.value_min_fundamentals,
                min_momentum=settings.value_min_momentum,
                max_momentum=settings.value_max_momentum,
                max_risk=settings.value_max_risk,
            ),
            pump_warning=PumpWarningThresholds(min_risk=settings.pump_warning_min_risk),
        )


@dataclass(frozen=True)
class UniverseConfig:
    """Which tickers are admitted to scoring at all."""

    max_price: float = 10.0
    max_market_cap: float = 20_000_000_000
    allowed_countries: tuple[str, ...] = ("USA", "United States")
    allowed_exchanges: tuple[str, ...] = (
        "NYSE",
        "NASDAQ",
        "NYSE ARCA",
        "NYSE MKT",
        "AMEX",
        "OTC",
        "OTCQX",
        "OTCQB",
        "PINK",
    )
    exclude_etfs: bool = True

    @classmethod
    def from_settings(
        cls, settings: ScoringSettings | None = None
    ) -> UniverseConfig:
        """Create universe config from settings."""
        if settings is None:
            settings = ScoringSettings()

        return cls(
            max_price=settings.universe_max_price,
            max_market_cap=settings.universe_max_market_cap,
            allowed_countries=tuple(settings.universe_allowed_countries),
            allowed_exchanges=tuple(settings.universe_allowed_exchanges),
            exclude_etfs=settings.universe_exclude_etfs,
        )


@lru_cache(maxsize=1)
def get_alert_thresholds() -> AlertThresholds:
    """Get cached classifier thresholds from settings."""
    return AlertThresholds.from_settings()


@lru_cache(maxsize=1)
def get_universe_config() -> UniverseConfig:
    """Get cached universe filter from settings."""
    return UniverseConfig.from_settings()
