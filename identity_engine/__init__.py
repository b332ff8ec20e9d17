"""
Identity & Predictive Recommendation Engine

Turns play-session history into:
- Persona traits (deterministic, from aggregate play signals)
- Mood predictions (small feed-forward network with heuristic fallback)
- Mood forecasts (from an upstream trend summary)
- Ranked game suggestions (five fit dimensions, TTL cache)

The engine is an in-process library: no network I/O, no persistence.
Per-user state lives in injectable stores owned by each engine instance.
"""

__version__ = "1.0.0"

from identity_engine.core.config import NeuralMoodConfig, SuggestionEngineConfig
from identity_engine.core.exceptions import (
    IdentityEngineError,
    InvalidSessionError,
    ConfigurationError,
)
from identity_engine.core.logging_config import configure_logging, get_logger
from identity_engine.core.state import InMemoryUserStateStore, MoodAnalyzerRegistry, UserStateStore
from identity_engine.ml.neural_mood_analyzer import NeuralMoodAnalyzer
from identity_engine.persona import build_persona_snapshot, derive_persona_traits, derive_player_signals
from identity_engine.services.mood_forecast import calculate_mood_forecast
from identity_engine.services.predictive_suggestions import PredictiveSuggestionEngine

__all__ = [
    'NeuralMoodConfig',
    'SuggestionEngineConfig',
    'IdentityEngineError',
    'InvalidSessionError',
    'ConfigurationError',
    'configure_logging',
    'get_logger',
    'InMemoryUserStateStore',
    'MoodAnalyzerRegistry',
    'UserStateStore',
    'NeuralMoodAnalyzer',
    'build_persona_snapshot',
    'derive_persona_traits',
    'derive_player_signals',
    'calculate_mood_forecast',
    'PredictiveSuggestionEngine',
]
