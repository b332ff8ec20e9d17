"""
Unit Tests for Configuration, State Stores and Input Records
"""

from datetime import datetime, timedelta, timezone

import pytest
import structlog

from identity_engine.core.config import NeuralMoodConfig, SuggestionEngineConfig
from identity_engine.core.exceptions import ConfigurationError, InvalidSessionError
from identity_engine.core.logging_config import bind_user_context, get_logger
from identity_engine.core.state import InMemoryUserStateStore
from identity_engine.models.session import parse_games, parse_sessions, sort_chronologically, to_session
from identity_engine.models.suggestions import PredictiveContext, SocialContext
from tests.conftest import BASE_TIME, make_session


class TestNeuralMoodConfig:

    def test_defaults(self):
        config = NeuralMoodConfig()

        assert config.hidden_layers == [64, 32, 16]
        assert config.activation_function == "relu"

    def test_rejects_unknown_activation(self):
        with pytest.raises(ConfigurationError) as exc_info:
            NeuralMoodConfig(activation_function="softplus")

        assert exc_info.value.details["supported"] == ["relu", "sigmoid", "tanh"]

    @pytest.mark.parametrize("kwargs", [
        {"hidden_layers": []},
        {"hidden_layers": [8, 0]},
        {"learning_rate": 0},
        {"momentum": 1.0},
        {"batch_size": 0},
        {"epochs": -1},
    ])
    def test_rejects_untrainable_settings(self, kwargs):
        with pytest.raises(ConfigurationError):
            NeuralMoodConfig(**kwargs)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_NN_LEARNING_RATE", "0.05")
        monkeypatch.setenv("IDENTITY_NN_HIDDEN_LAYERS", "16, 8")
        monkeypatch.setenv("IDENTITY_NN_ACTIVATION", "TANH")
        monkeypatch.setenv("IDENTITY_NN_SEED", "42")

        config = NeuralMoodConfig.from_env()

        assert config.learning_rate == 0.05
        assert config.hidden_layers == [16, 8]
        assert config.activation_function == "tanh"
        assert config.seed == 42


class TestSuggestionEngineConfig:

    def test_weights_are_normalized(self):
        config = SuggestionEngineConfig(fit_weights={"mood": 3.0})

        assert sum(config.fit_weights.values()) == pytest.approx(1.0)
        assert config.fit_weights["mood"] == pytest.approx(3 / 7)

    def test_rejects_unknown_dimension(self):
        with pytest.raises(ConfigurationError):
            SuggestionEngineConfig(fit_weights={"vibes": 1.0})

    def test_rejects_negative_weight(self):
        with pytest.raises(ConfigurationError):
            SuggestionEngineConfig(fit_weights={"time": -1.0})

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_SUGGESTION_CACHE_TTL", "30")
        monkeypatch.setenv("IDENTITY_FALLBACK_COUNT", "2")

        config = SuggestionEngineConfig.from_env()

        assert config.cache_ttl_seconds == 30.0
        assert config.fallback_count == 2
        assert config.fallback_confidence == 0.3


class TestUserStateStore:

    def test_per_user_values(self):
        store = InMemoryUserStateStore()
        store.set("alice", 1)
        store.set("bob", 2)

        store.delete("alice")

        assert "alice" not in store
        assert store.get("bob") == 2
        assert list(store.user_ids()) == ["bob"]
        assert len(store) == 1


class TestSessionRecords:

    def test_camel_case_record(self):
        session = to_session({
            "gameId": 730,
            "startTime": "2025-03-03T20:00:00",
            "endTime": "2025-03-03T21:30:00",
            "isMultiplayer": True,
            "mood": " Chill ",
            "genres": [{"id": "Open World"}, "RPG"],
        })

        assert session.game_id == "730"
        assert session.duration == pytest.approx(90)
        assert session.mood == "chill"
        assert session.genres == ["open-world", "rpg"]
        assert session.primary_genre == "open-world"

    def test_missing_game_id_raises_invalid_session(self):
        with pytest.raises(InvalidSessionError):
            to_session({"durationMinutes": 30})

    def test_parse_sessions_counts_skipped(self):
        sessions, skipped = parse_sessions([
            make_session("a", BASE_TIME),
            {"gameId": "b", "durationMinutes": -5},
            None,
        ])

        assert [s.game_id for s in sessions] == ["a"]
        assert skipped == 2

    def test_aware_timestamps_become_utc(self):
        aware = datetime(2025, 3, 3, 20, 0, tzinfo=timezone(timedelta(hours=2)))

        session = to_session({"gameId": "a", "pointInTime": aware})

        assert session.timestamp == datetime(2025, 3, 3, 18, 0)
        assert session.timestamp.tzinfo is None

    def test_sort_puts_untimed_sessions_last(self):
        sessions, _ = parse_sessions([
            {"gameId": "untimed"},
            make_session("late", BASE_TIME + timedelta(hours=1)),
            make_session("early", BASE_TIME),
        ])

        assert [s.game_id for s in sort_chronologically(sessions)] == ["early", "late", "untimed"]

    def test_parse_games(self, game_catalog):
        games, skipped = parse_games(game_catalog + [{"title": "no id"}])

        assert len(games) == len(game_catalog)
        assert skipped == 1
        assert games[0].primary_genre == "puzzle"


class TestPredictiveContext:

    def test_unusable_fields_are_dropped(self):
        ctx, dropped = PredictiveContext.from_request({
            "energyLevel": 150,
            "socialContext": "party",
            "availableTime": -5,
            "currentMood": " Chill ",
        })

        assert ctx.energy_level is None
        assert ctx.social_context is None
        assert ctx.available_time is None
        assert ctx.current_mood == "chill"
        assert dropped == ["available_time", "social_context", "energy_level"]

    def test_valid_fields_are_kept(self):
        ctx, dropped = PredictiveContext.from_request(
            {"energyLevel": "40", "socialContext": "COOP", "availableTime": 30}
        )

        assert ctx.energy_level == 40
        assert ctx.social_context == SocialContext.COOP
        assert ctx.available_time == 30
        assert dropped == []

    def test_non_mapping_context(self):
        ctx, dropped = PredictiveContext.from_request(["not", "a", "context"])

        assert dropped == ["context"]
        assert ctx.recent_sessions == []

    def test_aware_time_becomes_utc(self):
        aware = datetime(2025, 3, 4, 5, 0, tzinfo=timezone(timedelta(hours=9)))

        ctx = PredictiveContext(current_time=aware)

        assert ctx.current_time == datetime(2025, 3, 3, 20, 0)
        assert ctx.current_time.tzinfo is None


class TestUserLogContext:

    def test_binds_only_inside_the_block(self, captured_logs):
        with bind_user_context(user_id="u-1", operation="analyze_sessions"):
            assert structlog.contextvars.get_contextvars() == {"user_id": "u-1", "operation": "analyze_sessions"}
            get_logger("tests").info("inside")
        get_logger("tests").info("outside")

        assert captured_logs[0]["user_id"] == "u-1"
        assert "user_id" not in captured_logs[1]
