"""
Persona Models

RawPlayerSignals (input aggregate) and PersonaTraits (derived identity).
Signal fields are all optional; anything unparsable is treated as absent so
trait derivation stays total.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from identity_engine.data.moods import normalize_genre


class Archetype(str, Enum):
    """Coarse player type, evaluated in priority order"""
    SPECIALIST = "Specialist"
    STRATEGIST = "Strategist"
    SOCIALIZER = "Socializer"
    EXPLORER = "Explorer"
    COMPETITOR = "Competitor"
    ACHIEVER = "Achiever"


class Intensity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Pacing(str, Enum):
    BURST = "Burst"          # < 45 min sessions
    FLOW = "Flow"
    MARATHON = "Marathon"    # > 120 min sessions


class RiskProfile(str, Enum):
    COMFORT = "Comfort"
    BALANCED = "Balanced"
    EXPERIMENTAL = "Experimental"


class SocialStyle(str, Enum):
    SOLO = "Solo"
    COOP = "Coop"
    COMPETITIVE = "Competitive"


def to_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class RawPlayerSignals(BaseModel):
    """Aggregate play signals derived upstream from a session history."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    playtime_by_genre: Optional[Dict[str, float]] = Field(None, alias="playtimeByGenre")
    average_session_length_minutes: Optional[float] = Field(None, alias="averageSessionLengthMinutes")
    sessions_per_week: Optional[float] = Field(None, alias="sessionsPerWeek")
    difficulty_preference: Optional[str] = Field(None, alias="difficultyPreference")
    multiplayer_ratio: Optional[float] = Field(None, alias="multiplayerRatio")
    completion_rate: Optional[float] = Field(None, alias="completionRate")

    @field_validator(
        "average_session_length_minutes",
        "sessions_per_week",
        "multiplayer_ratio",
        "completion_rate",
        mode="before"
    )
    @classmethod
    def _lenient_number(cls, value):
        return to_number(value)

    @field_validator("playtime_by_genre", mode="before")
    @classmethod
    def _lenient_playtime(cls, value):
        if not isinstance(value, Mapping):
            return None
        cleaned: Dict[str, float] = {}
        for genre, minutes in value.items():
            number = to_number(minutes)
            if number is None or number <= 0:
                continue
            key = normalize_genre(genre)
            cleaned[key] = cleaned.get(key, 0.0) + number
        return cleaned

    @field_validator("difficulty_preference", mode="before")
    @classmethod
    def _lenient_difficulty(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return None

    def present_field_count(self) -> int:
        """Number of the six signals that are present and non-empty."""
        count = 0
        for value in (
            self.playtime_by_genre,
            self.average_session_length_minutes,
            self.sessions_per_week,
            self.difficulty_preference,
            self.multiplayer_ratio,
            self.completion_rate,
        ):
            if value is None:
                continue
            if isinstance(value, (dict, str)) and not value:
                continue
            count += 1
        return count


@dataclass(frozen=True)
class PersonaTraits:
    """Persona traits; produced fresh on every extraction"""
    archetype_id: Archetype
    intensity: Intensity
    pacing: Pacing
    risk_profile: RiskProfile
    social_style: SocialStyle
    confidence: float  # 0.3 - 1.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, Enum):
                data[key] = value.value
        return data
