"""
Behavior Pattern Models

Per-user aggregate of temporal, session-length, genre-sequence,
mood-transition and device habits. Counts are kept next to the derived
likelihoods so single sessions can be folded in without a full rebuild.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from identity_engine.models.session import Session


@dataclass
class TimePattern:
    hour: int
    day_of_week: int                 # 0 = Monday
    session_count: int = 0
    likelihood: float = 0.0
    average_session_length: float = 0.0
    preferred_genres: List[str] = field(default_factory=list)


@dataclass
class SessionLengthPattern:
    duration: float                  # running mean of bucket minutes
    mood: Optional[str] = None
    session_count: int = 0
    completed_count: int = 0
    preferred_genres: List[str] = field(default_factory=list)

    @property
    def completion_rate(self) -> float:
        return self.completed_count / self.session_count if self.session_count else 0.0


@dataclass
class GenreSequence:
    sequence: Tuple[str, ...]
    count: int = 0
    frequency: float = 0.0           # count / all sequences of the same length
    next_genre_counts: Dict[str, int] = field(default_factory=dict)
    average_transition_time: float = 0.0

    @property
    def common_next_genres(self) -> List[str]:
        return sorted(
            self.next_genre_counts,
            key=lambda g: (-self.next_genre_counts[g], g)
        )

    def next_genre_probability(self, genre: Optional[str]) -> float:
        total = sum(self.next_genre_counts.values())
        if not genre or not total:
            return 0.0
        return self.next_genre_counts.get(genre, 0) / total


@dataclass
class MoodTransitionPattern:
    from_mood: str
    to_mood: str
    count: int = 0
    probability: float = 0.0         # P(to_mood | from_mood)
    average_time: float = 0.0        # minutes
    trigger_games: List[str] = field(default_factory=list)


@dataclass
class DevicePattern:
    device: str
    session_count: int = 0
    average_session_length: float = 0.0
    preferred_genres: List[str] = field(default_factory=list)
    hours: List[int] = field(default_factory=list)


@dataclass
class BehaviorPattern:
    """One per user; replaced wholesale or updated session by session."""
    user_id: str
    time_patterns: Dict[Tuple[int, int], TimePattern] = field(default_factory=dict)
    session_length_patterns: List[SessionLengthPattern] = field(default_factory=list)
    genre_sequences: Dict[Tuple[str, ...], GenreSequence] = field(default_factory=dict)
    mood_transitions: Dict[Tuple[str, str], MoodTransitionPattern] = field(default_factory=dict)
    device_patterns: Dict[str, DevicePattern] = field(default_factory=dict)

    # Running aggregates
    session_lengths: List[float] = field(default_factory=list)
    genre_playtime: Dict[str, float] = field(default_factory=dict)
    genre_games: Dict[str, Dict[str, int]] = field(default_factory=dict)
    recent_genres: List[str] = field(default_factory=list)
    last_session: Optional[Session] = None
    total_sessions: int = 0

    @property
    def is_empty(self) -> bool:
        return self.total_sessions == 0

    def transitions_from(self, mood: str) -> List[MoodTransitionPattern]:
        return [t for t in self.mood_transitions.values() if t.from_mood == mood]

    def most_played_game(self, genre: str) -> Optional[str]:
        games = self.genre_games.get(genre)
        if not games:
            return None
        return max(sorted(games), key=lambda g: games[g])
