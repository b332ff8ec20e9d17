"""
Predictive Suggestion Models

Request context for ranking plus the ranked output, next-game predictions
and behavioral insights.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from identity_engine.models.persona import to_number
from identity_engine.models.session import GameRecord, naive_utc


class SocialContext(str, Enum):
    SOLO = "solo"
    COOP = "coop"
    PVP = "pvp"


class InsightType(str, Enum):
    PATTERN = "pattern"
    ANOMALY = "anomaly"
    TREND = "trend"
    RECOMMENDATION = "recommendation"


# Request fields that degrade to "not given" instead of failing the request
LENIENT_CONTEXT_FIELDS = ("available_time", "social_context", "energy_level")


class PredictiveContext(BaseModel):
    """What the user asked for right now"""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    current_time: datetime = Field(default_factory=datetime.now, alias="currentTime")
    available_time: Optional[float] = Field(None, alias="availableTime", gt=0)  # minutes
    current_mood: Optional[str] = Field(None, alias="currentMood")
    # Raw records; malformed entries are skipped by the engine
    recent_sessions: List[Any] = Field(default_factory=list, alias="recentSessions")
    device: Optional[str] = None
    social_context: Optional[SocialContext] = Field(None, alias="socialContext")
    energy_level: Optional[float] = Field(None, alias="energyLevel", ge=0, le=100)

    @field_validator("current_time", mode="wrap")
    @classmethod
    def _lenient_time(cls, value, handler):
        try:
            parsed = handler(value)
        except ValidationError:
            parsed = datetime.now()
        return naive_utc(parsed)

    @field_validator("available_time", mode="before")
    @classmethod
    def _lenient_available_time(cls, value):
        number = to_number(value)
        return number if number is not None and number > 0 else None

    @field_validator("energy_level", mode="before")
    @classmethod
    def _lenient_energy(cls, value):
        number = to_number(value)
        return number if number is not None and 0 <= number <= 100 else None

    @field_validator("social_context", mode="before")
    @classmethod
    def _lenient_social(cls, value):
        if isinstance(value, SocialContext):
            return value
        if isinstance(value, str):
            label = value.strip().lower()
            if label in SocialContext._value2member_map_:
                return label
        return None

    @field_validator("recent_sessions", mode="before")
    @classmethod
    def _lenient_recent(cls, value):
        if value is None or isinstance(value, (str, bytes, Mapping)):
            return []
        try:
            return list(value)
        except TypeError:
            return []

    @field_validator("current_mood", "device", mode="before")
    @classmethod
    def _clean_label(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return None

    @classmethod
    def from_request(cls, context: Any) -> Tuple["PredictiveContext", List[str]]:
        """
        Build a context from a request mapping without ever rejecting it.

        Returns:
            (context, dropped) where dropped names the fields that were given
            but unusable and are treated as absent.
        """
        if isinstance(context, cls):
            return context, []
        if context is None:
            context = {}
        if not isinstance(context, Mapping):
            return cls(), ["context"]

        ctx = cls.model_validate(context)
        dropped = []
        for name in LENIENT_CONTEXT_FIELDS:
            alias = cls.model_fields[name].alias
            raw = context.get(alias, context.get(name))
            if raw is not None and getattr(ctx, name) is None:
                dropped.append(name)
        return ctx, dropped


@dataclass
class FitScore:
    """Per-dimension suitability, each in [0, 1]"""
    time: float = 0.5
    mood: float = 0.5
    energy: float = 0.5
    social: float = 0.5
    sequence: float = 0.5

    def as_dict(self) -> Dict[str, float]:
        return {
            "time": self.time,
            "mood": self.mood,
            "energy": self.energy,
            "social": self.social,
            "sequence": self.sequence,
        }


@dataclass
class PredictiveSuggestion:
    game: GameRecord
    confidence: float
    reasoning: List[str]
    predicted_satisfaction: float
    estimated_playtime: float        # minutes
    fit_score: FitScore
    alternatives: List[GameRecord] = field(default_factory=list)


@dataclass
class NextGamePrediction:
    game: Optional[GameRecord]
    confidence: float
    reasoning: str
    genre: Optional[str] = None


@dataclass
class PredictiveInsight:
    type: InsightType
    title: str
    description: str
    confidence: float
    actionable: bool
    suggestions: List[str] = field(default_factory=list)
