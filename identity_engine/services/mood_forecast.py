"""
Mood Forecast Engine

Turns an upstream mood-trend summary plus the length of the user's history
into a ranked set of mood forecasts.

Factors:
- Trend influence: |change rate| x trend confidence
- Seasonality: static monthly curve per mood (0.5 for unknown moods)
- Volatility adjustment: 1 - volatility

Heuristics:
- Strong increasing trend: momentum continuation (+0.2, capped at 0.9)
- Strong decreasing trend: mean reversion to the mood's usual successor
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional, Union

import numpy as np

from identity_engine.core.logging_config import get_logger
from identity_engine.data.moods import ALTERNATIVE_MOODS, DEFAULT_MOOD, seasonal_influence
from identity_engine.models.forecast import (
    DataQuality,
    ForecastFactors,
    ForecastPeriod,
    MoodForecast,
    MoodForecastResult,
    MoodTrend,
    MoodTrendSummary,
    TrendDirection,
)

logger = get_logger(__name__)

HIGH_QUALITY_POINTS = 20
MEDIUM_QUALITY_POINTS = 10
MIN_ACCURACY_POINTS = 5
LOW_DATA_ACCURACY = 0.3

STRONG_TREND_CONFIDENCE = 0.6
MOMENTUM_BOOST = 0.2
MOMENTUM_CEILING = 0.9
REVERSION_PENALTY = 0.1
REVERSION_FLOOR = 0.3

ALTERNATIVE_DISCOUNT = 0.7
MAX_ALTERNATIVES = 3

TIMEFRAMES = {
    ForecastPeriod.NEXT_WEEK: "Next 7 days",
    ForecastPeriod.NEXT_MONTH: "Next 30 days",
    ForecastPeriod.NEXT_QUARTER: "Next 90 days",
}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return float(min(high, max(low, value)))


def assess_data_quality(point_count: int) -> DataQuality:
    if point_count >= HIGH_QUALITY_POINTS:
        return DataQuality.HIGH
    if point_count >= MEDIUM_QUALITY_POINTS:
        return DataQuality.MEDIUM
    return DataQuality.LOW


def forecast_factors(trend: MoodTrend, volatility: float, month: int) -> ForecastFactors:
    return ForecastFactors(
        trend_influence=_clamp(abs(trend.change_rate) * trend.confidence),
        seasonality_influence=seasonal_influence(trend.mood_id, month),
        volatility_adjustment=_clamp(1 - volatility),
    )


def forecast_accuracy(summary: MoodTrendSummary, point_count: int) -> float:
    """Mean trend confidence penalized by volatility; flat 0.3 on thin history."""
    if point_count < MIN_ACCURACY_POINTS:
        return LOW_DATA_ACCURACY

    confidences = [t.confidence for t in summary.trends] or [summary.dominant_trend.confidence]
    accuracy = float(np.mean(confidences)) - 0.3 * summary.volatility
    return _clamp(accuracy, 0.2, 0.95)


def calculate_mood_forecast(
    trend_analysis: Union[MoodTrendSummary, dict],
    historical_data: Optional[Iterable[Any]],
    forecast_period: Union[ForecastPeriod, str] = ForecastPeriod.NEXT_MONTH,
    reference_date: Optional[datetime] = None
) -> MoodForecastResult:
    """
    Forecast the user's mood for the coming period.

    Args:
        trend_analysis: MoodTrendSummary or an equivalent mapping
            (camelCase keys accepted)
        historical_data: Historical mood data points; only their count is used
        forecast_period: next_week, next_month or next_quarter
        reference_date: Date used for the seasonal lookup (default: now)

    Returns:
        MoodForecastResult

    Raises:
        pydantic.ValidationError: if trend_analysis is malformed
        ValueError: if forecast_period is unknown
    """
    summary = (
        trend_analysis if isinstance(trend_analysis, MoodTrendSummary)
        else MoodTrendSummary.model_validate(trend_analysis)
    )
    period = ForecastPeriod(forecast_period)
    timeframe = TIMEFRAMES[period]
    point_count = 0 if historical_data is None else len(list(historical_data))
    quality = assess_data_quality(point_count)
    now = reference_date or datetime.now()

    dominant = summary.dominant_trend
    factors = forecast_factors(dominant, summary.volatility, now.month)

    predicted_mood = dominant.mood_id
    confidence = dominant.confidence * factors.volatility_adjustment
    reasoning = [f"Based on {dominant.direction.value} trend in {dominant.mood_id} mood"]

    if dominant.direction == TrendDirection.INCREASING and confidence > STRONG_TREND_CONFIDENCE:
        confidence = min(MOMENTUM_CEILING, confidence + MOMENTUM_BOOST)
        reasoning.append("Strong upward momentum is expected to continue")
    elif dominant.direction == TrendDirection.DECREASING and confidence > STRONG_TREND_CONFIDENCE:
        predicted_mood = ALTERNATIVE_MOODS.get(dominant.mood_id, DEFAULT_MOOD)
        confidence = max(REVERSION_FLOOR, confidence - REVERSION_PENALTY)
        reasoning.append(f"Declining {dominant.mood_id} trend suggests a shift toward {predicted_mood}")

    reasoning.append(f"Confidence adjusted for {summary.volatility:.0%} mood volatility")
    reasoning.append(f"Data quality: {quality.value} ({point_count} data points)")

    primary = MoodForecast(
        predicted_mood=predicted_mood,
        confidence=_clamp(confidence),
        timeframe=timeframe,
        factors=factors,
        reasoning=reasoning,
    )

    result = MoodForecastResult(
        primary_forecast=primary,
        alternative_forecasts=_alternative_forecasts(summary, timeframe, now.month),
        forecast_accuracy=forecast_accuracy(summary, point_count),
        data_quality=quality,
        generated_at=now,
    )

    logger.debug(
        "mood_forecast_calculated",
        predicted_mood=primary.predicted_mood,
        confidence=round(primary.confidence, 3),
        data_quality=quality.value,
        alternatives=len(result.alternative_forecasts)
    )
    return result


def _alternative_forecasts(summary: MoodTrendSummary, timeframe: str, month: int) -> List[MoodForecast]:
    dominant_mood = summary.dominant_trend.mood_id
    candidates = sorted(
        (t for t in summary.trends if t.mood_id != dominant_mood),
        key=lambda t: t.confidence,
        reverse=True
    )

    alternatives = []
    seen = set()
    for trend in candidates:
        if trend.mood_id in seen:
            continue
        seen.add(trend.mood_id)
        alternatives.append(MoodForecast(
            predicted_mood=trend.mood_id,
            confidence=_clamp(trend.confidence * ALTERNATIVE_DISCOUNT),
            timeframe=timeframe,
            factors=forecast_factors(trend, summary.volatility, month),
            reasoning=[f"Alternative based on {trend.direction.value} trend"],
        ))
        if len(alternatives) == MAX_ALTERNATIVES:
            break
    return alternatives
