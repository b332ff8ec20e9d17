"""
Forecasting and suggestion services

Usage:
    from identity_engine.services import PredictiveSuggestionEngine, calculate_mood_forecast
"""

from identity_engine.services.mood_forecast import calculate_mood_forecast
from identity_engine.services.behavior_patterns import BehaviorPatternExtractor
from identity_engine.services.predictive_suggestions import (
    PredictiveSuggestionEngine,
    context_cache_key,
)

__all__ = [
    'calculate_mood_forecast',
    'BehaviorPatternExtractor',
    'PredictiveSuggestionEngine',
    'context_cache_key',
]
