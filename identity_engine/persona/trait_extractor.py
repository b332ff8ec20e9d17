"""
Persona Trait Extraction

Deterministic mapping from aggregate play signals to persona traits.
Pure and total: missing or unparsable signals are treated as absent and the
function never raises.
"""

from collections.abc import Mapping
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from identity_engine.models.persona import (
    Archetype,
    Intensity,
    Pacing,
    PersonaTraits,
    RawPlayerSignals,
    RiskProfile,
    SocialStyle,
)

SIGNAL_FIELD_COUNT = 6
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 1.0

STRATEGY_GENRES = ("strategy",)
EXPLORATION_GENRES = ("adventure", "open-world")

RISK_BY_DIFFICULTY = {
    "relaxed": RiskProfile.COMFORT,
    "normal": RiskProfile.BALANCED,
    "hard": RiskProfile.EXPERIMENTAL,
    "brutal": RiskProfile.EXPERIMENTAL,
}


def coerce_signals(signals: Union[RawPlayerSignals, Mapping, None]) -> RawPlayerSignals:
    """Turn whatever the caller passed into RawPlayerSignals without raising."""
    if isinstance(signals, RawPlayerSignals):
        return signals
    if isinstance(signals, Mapping):
        try:
            return RawPlayerSignals.model_validate(dict(signals))
        except ValidationError:
            return RawPlayerSignals()
    return RawPlayerSignals()


def genre_share(playtime_by_genre: Optional[Dict[str, float]], genres) -> float:
    """Share of total genre playtime spent in the given genres."""
    if not playtime_by_genre:
        return 0.0
    total = sum(playtime_by_genre.values())
    if total <= 0:
        return 0.0
    return sum(playtime_by_genre.get(genre, 0.0) for genre in genres) / total


def derive_archetype(signals: RawPlayerSignals) -> Archetype:
    """First matching rule wins."""
    if signals.completion_rate is not None and signals.completion_rate > 0.7:
        return Archetype.SPECIALIST
    if genre_share(signals.playtime_by_genre, STRATEGY_GENRES) > 0.4:
        return Archetype.STRATEGIST
    if signals.multiplayer_ratio is not None and signals.multiplayer_ratio > 0.6:
        return Archetype.SOCIALIZER
    if genre_share(signals.playtime_by_genre, EXPLORATION_GENRES) > 0.4:
        return Archetype.EXPLORER
    if (signals.difficulty_preference or "").lower() == "brutal":
        return Archetype.COMPETITOR
    return Archetype.ACHIEVER


def derive_intensity(signals: RawPlayerSignals) -> Intensity:
    per_week = signals.sessions_per_week
    avg_length = signals.average_session_length_minutes

    if (per_week is not None and per_week >= 5) or (avg_length is not None and avg_length >= 120):
        return Intensity.HIGH
    if per_week is not None and per_week <= 2 and avg_length is not None and avg_length < 60:
        return Intensity.LOW
    return Intensity.MEDIUM


def derive_pacing(signals: RawPlayerSignals) -> Pacing:
    avg_length = signals.average_session_length_minutes
    if avg_length is None:
        return Pacing.FLOW
    if avg_length < 45:
        return Pacing.BURST
    if avg_length > 120:
        return Pacing.MARATHON
    return Pacing.FLOW


def derive_risk_profile(signals: RawPlayerSignals) -> RiskProfile:
    return RISK_BY_DIFFICULTY.get(
        (signals.difficulty_preference or "").lower(),
        RiskProfile.BALANCED
    )


def derive_social_style(signals: RawPlayerSignals) -> SocialStyle:
    ratio = signals.multiplayer_ratio
    if ratio is None:
        return SocialStyle.COOP
    if ratio < 0.2:
        return SocialStyle.SOLO
    if ratio > 0.7:
        return SocialStyle.COMPETITIVE
    return SocialStyle.COOP


def signal_confidence(signals: RawPlayerSignals) -> float:
    """Fraction of signals present, clamped to [0.3, 1.0]."""
    fraction = signals.present_field_count() / SIGNAL_FIELD_COUNT
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, fraction))


def derive_persona_traits(signals: Union[RawPlayerSignals, Mapping, Any]) -> PersonaTraits:
    """
    Derive persona traits from raw player signals.

    Args:
        signals: RawPlayerSignals, a mapping with snake_case or camelCase keys,
            or anything else (treated as no signals at all)

    Returns:
        PersonaTraits (identical input always yields identical traits)
    """
    parsed = coerce_signals(signals)
    return PersonaTraits(
        archetype_id=derive_archetype(parsed),
        intensity=derive_intensity(parsed),
        pacing=derive_pacing(parsed),
        risk_profile=derive_risk_profile(parsed),
        social_style=derive_social_style(parsed),
        confidence=signal_confidence(parsed),
    )
