"""
Unit Tests for Player Signal Aggregation and Persona Snapshots
"""

import pytest

from identity_engine.models.persona import Archetype, SocialStyle
from identity_engine.persona import build_persona_snapshot, derive_persona_traits, derive_player_signals


class TestDerivePlayerSignals:

    def test_aggregates_history(self, mood_history):
        signals = derive_player_signals(mood_history, difficulty_preference="Normal")

        assert signals.playtime_by_genre == {"puzzle": 720.0, "strategy": 1080.0}
        assert signals.average_session_length_minutes == pytest.approx(75.0)
        assert signals.multiplayer_ratio == 0.0
        assert signals.completion_rate == pytest.approx(0.5)
        assert signals.sessions_per_week > 7
        assert signals.difficulty_preference == "Normal"

    def test_catalog_fills_missing_genres(self, game_catalog):
        signals = derive_player_signals(
            [{"gameId": "civ", "durationMinutes": 120}],
            catalog=game_catalog
        )

        assert signals.playtime_by_genre == {"strategy": 120.0}

    def test_short_history_counts_as_one_week(self, mood_history):
        signals = derive_player_signals(mood_history[:4])

        assert signals.sessions_per_week == pytest.approx(4.0)

    def test_no_sessions_means_no_signals(self):
        signals = derive_player_signals([{"durationMinutes": 30}])

        assert signals.present_field_count() == 0

    def test_feeds_trait_extraction(self, mood_history):
        traits = derive_persona_traits(derive_player_signals(mood_history))

        assert traits.archetype_id == Archetype.STRATEGIST
        assert traits.social_style == SocialStyle.SOLO


class TestPersonaSnapshot:

    def test_snapshot_with_mood(self):
        snapshot = build_persona_snapshot({"completionRate": 0.9, "sessionsPerWeek": 6}, current_mood=" Chill ")

        assert snapshot.mood == "chill"
        assert snapshot.mood_energy == pytest.approx(0.2)
        assert snapshot.narrative.startswith("Specialist")
        assert snapshot.narrative.endswith("currently feeling chill.")
        assert snapshot.confidence == snapshot.traits.confidence
        assert not snapshot.is_high_confidence

    def test_unknown_mood_has_no_energy(self):
        snapshot = build_persona_snapshot({}, current_mood="sleepy")

        assert snapshot.mood == "sleepy"
        assert snapshot.mood_energy is None
