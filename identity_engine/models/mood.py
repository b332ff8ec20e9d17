"""
Mood Analysis Models

Patterns, transitions and predictions produced by the neural mood analyzer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class AnalyzerState(str, Enum):
    """Lifecycle of a mood analyzer"""
    UNTRAINED = "untrained"
    TRAINING = "training"
    TRAINED = "trained"


@dataclass
class MoodPattern:
    """Learned association between a mood and its context"""
    mood_id: str
    confidence: float = 0.0                      # share of labeled sessions
    triggers: List[str] = field(default_factory=list)
    time_patterns: Dict[Tuple[int, int], float] = field(default_factory=dict)  # (hour, weekday) -> likelihood
    game_associations: List[str] = field(default_factory=list)
    intensity: float = 0.5                       # 0-1
    session_count: int = 0
    time_counts: Dict[Tuple[int, int], int] = field(default_factory=dict)

    def peak_hour(self) -> Optional[int]:
        """Hour of day with the highest summed likelihood across weekdays."""
        if not self.time_patterns:
            return None
        by_hour: Dict[int, float] = {}
        for (hour, _), likelihood in self.time_patterns.items():
            by_hour[hour] = by_hour.get(hour, 0.0) + likelihood
        return max(sorted(by_hour), key=lambda h: by_hour[h])


@dataclass
class MoodTransition:
    """Observed move from one mood to the next session's mood"""
    from_mood: str
    to_mood: str
    count: int = 0
    probability: float = 0.0                     # P(to_mood | from_mood)
    common_triggers: List[str] = field(default_factory=list)
    average_transition_time: float = 0.0         # minutes between sessions


@dataclass
class MoodFactors:
    """Relative contribution of each input group to a prediction"""
    time_of_day: float
    recent_games: float
    session_length: float
    day_of_week: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "time_of_day": self.time_of_day,
            "recent_games": self.recent_games,
            "session_length": self.session_length,
            "day_of_week": self.day_of_week,
        }


@dataclass
class MoodPrediction:
    predicted_mood: str
    confidence: float
    factors: MoodFactors
    reasoning: List[str]
    is_fallback: bool = False


@dataclass
class MoodRecommendation:
    current_mood: str
    suggested_games: List[str]
    activities: List[str]
    target_mood: Optional[str] = None
    transition_path: Optional[List[str]] = None
    confidence: float = 0.0


@dataclass
class MoodInsights:
    total_patterns: int
    dominant_mood: Optional[str]
    mood_stability: float
    peak_times: Dict[str, int]
    recommendations: List[str]


@dataclass
class MoodAnalysisSummary:
    """Outcome of one analyze_sessions pass"""
    sessions_total: int
    sessions_used: int
    sessions_skipped: int
    unlabeled_sessions: int
    training_examples: int
    final_loss: Optional[float]
    state: AnalyzerState
