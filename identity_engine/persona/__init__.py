"""
Persona traits

Usage:
    from identity_engine.persona import derive_persona_traits

    traits = derive_persona_traits({"completionRate": 0.8, "sessionsPerWeek": 6})
"""

from identity_engine.persona.trait_extractor import derive_persona_traits
from identity_engine.persona.signals import derive_player_signals
from identity_engine.persona.snapshot import PersonaSnapshot, build_persona_snapshot

__all__ = [
    'derive_persona_traits',
    'derive_player_signals',
    'PersonaSnapshot',
    'build_persona_snapshot',
]
