"""
Mood prediction

Usage:
    from identity_engine.ml import NeuralMoodAnalyzer

    analyzer = NeuralMoodAnalyzer()
    analyzer.analyze_sessions(sessions)
    prediction = analyzer.predict_current_mood(recent_sessions)
"""

from identity_engine.ml.network import FeedForwardNetwork
from identity_engine.ml.neural_mood_analyzer import NeuralMoodAnalyzer

__all__ = [
    'FeedForwardNetwork',
    'NeuralMoodAnalyzer',
]
