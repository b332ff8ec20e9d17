"""
Identity Engine data models

Input records are pydantic models (validated at the boundary); derived
outputs are dataclasses.
"""

from identity_engine.models.session import (
    Session,
    GameRecord,
    parse_sessions,
    parse_games,
    sort_chronologically,
)
from identity_engine.models.persona import (
    Archetype,
    Intensity,
    Pacing,
    RiskProfile,
    SocialStyle,
    RawPlayerSignals,
    PersonaTraits,
)
from identity_engine.models.mood import (
    AnalyzerState,
    MoodPattern,
    MoodTransition,
    MoodFactors,
    MoodPrediction,
    MoodRecommendation,
    MoodInsights,
    MoodAnalysisSummary,
)
from identity_engine.models.forecast import (
    TrendDirection,
    ForecastPeriod,
    DataQuality,
    MoodTrend,
    MoodTrendSummary,
    ForecastFactors,
    MoodForecast,
    MoodForecastResult,
)
from identity_engine.models.behavior import BehaviorPattern
from identity_engine.models.suggestions import (
    SocialContext,
    InsightType,
    PredictiveContext,
    FitScore,
    PredictiveSuggestion,
    NextGamePrediction,
    PredictiveInsight,
)

__all__ = [
    'Session',
    'GameRecord',
    'parse_sessions',
    'parse_games',
    'sort_chronologically',
    'Archetype',
    'Intensity',
    'Pacing',
    'RiskProfile',
    'SocialStyle',
    'RawPlayerSignals',
    'PersonaTraits',
    'AnalyzerState',
    'MoodPattern',
    'MoodTransition',
    'MoodFactors',
    'MoodPrediction',
    'MoodRecommendation',
    'MoodInsights',
    'MoodAnalysisSummary',
    'TrendDirection',
    'ForecastPeriod',
    'DataQuality',
    'MoodTrend',
    'MoodTrendSummary',
    'ForecastFactors',
    'MoodForecast',
    'MoodForecastResult',
    'BehaviorPattern',
    'SocialContext',
    'InsightType',
    'PredictiveContext',
    'FitScore',
    'PredictiveSuggestion',
    'NextGamePrediction',
    'PredictiveInsight',
]
