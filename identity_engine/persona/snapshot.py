"""
Persona Snapshot

Combines trait extraction with the player's current mood into one summary
object for display.
"""

from dataclasses import dataclass
from typing import Any, Optional

from identity_engine.data.moods import MOOD_CATALOG
from identity_engine.models.persona import PersonaTraits
from identity_engine.persona.trait_extractor import derive_persona_traits

HIGH_CONFIDENCE_THRESHOLD = 0.7


@dataclass
class PersonaSnapshot:
    traits: PersonaTraits
    mood: Optional[str]
    mood_energy: Optional[float]     # 0-1, from the mood catalog
    narrative: str
    confidence: float

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE_THRESHOLD


def _narrative(traits: PersonaTraits, mood: Optional[str]) -> str:
    text = (
        f"{traits.archetype_id.value} with {traits.pacing.value.lower()} pacing, "
        f"{traits.intensity.value.lower()} intensity and a {traits.social_style.value.lower()} streak"
    )
    if mood:
        text += f", currently feeling {mood}"
    return text + "."


def build_persona_snapshot(signals: Any, current_mood: Optional[str] = None) -> PersonaSnapshot:
    """
    Build a persona snapshot.

    Unknown moods are kept as given but carry no energy estimate.
    """
    traits = derive_persona_traits(signals)
    mood = current_mood.strip().lower() if isinstance(current_mood, str) and current_mood.strip() else None

    mood_energy = None
    if mood in MOOD_CATALOG:
        mood_energy = MOOD_CATALOG[mood]["energy"] / 10

    return PersonaSnapshot(
        traits=traits,
        mood=mood,
        mood_energy=mood_energy,
        narrative=_narrative(traits, mood),
        confidence=traits.confidence,
    )
