"""
Mood Forecast Models

MoodTrendSummary is produced by the upstream trend-analysis collaborator and
validated here; MoodForecastResult is purely computed and never stored.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ForecastPeriod(str, Enum):
    NEXT_WEEK = "next_week"
    NEXT_MONTH = "next_month"
    NEXT_QUARTER = "next_quarter"


class DataQuality(str, Enum):
    """Forecast input quality tier by historical point count"""
    HIGH = "high"       # >= 20 points
    MEDIUM = "medium"   # >= 10 points
    LOW = "low"


class MoodTrend(BaseModel):
    """How one mood's prevalence is changing"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    mood_id: str = Field(..., alias="moodId", min_length=1)
    direction: TrendDirection = TrendDirection.STABLE
    change_rate: float = Field(0.0, alias="changeRate")
    confidence: float = Field(..., ge=0, le=1)

    @field_validator("mood_id", mode="before")
    @classmethod
    def _clean_mood(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class MoodTrendSummary(BaseModel):
    """Upstream trend analysis consumed by the forecaster"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    dominant_trend: MoodTrend = Field(..., alias="dominantTrend")
    trends: List[MoodTrend] = Field(default_factory=list)
    volatility: float = Field(0.0, ge=0, le=1)


@dataclass
class ForecastFactors:
    trend_influence: float
    seasonality_influence: float
    volatility_adjustment: float


@dataclass
class MoodForecast:
    predicted_mood: str
    confidence: float
    timeframe: str
    factors: ForecastFactors
    reasoning: List[str] = field(default_factory=list)


@dataclass
class MoodForecastResult:
    primary_forecast: MoodForecast
    alternative_forecasts: List[MoodForecast]
    forecast_accuracy: float
    data_quality: DataQuality
    generated_at: datetime
