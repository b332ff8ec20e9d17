"""
Unit Tests for Predictive Suggestions

Tests:
- Behavior pattern extraction (batch and incremental)
- Ranking, fit scores and fallback suggestions
- Cache identity, expiry and invalidation
- Next-game prediction
- Predictive insights
"""

from datetime import datetime, timedelta, timezone

import pytest
import structlog

from identity_engine.cache.suggestion_cache import InMemorySuggestionCache
from identity_engine.core.config import SuggestionEngineConfig
from identity_engine.models.session import parse_sessions
from identity_engine.models.suggestions import InsightType, PredictiveContext
from identity_engine.services.behavior_patterns import BehaviorPatternExtractor
from identity_engine.services.predictive_suggestions import PredictiveSuggestionEngine
from tests.conftest import (
    BASE_TIME,
    assert_confidence_valid,
    assert_sorted_by_confidence,
    make_session,
)

# Monday two weeks after the history starts
REQUEST_TIME = datetime(2025, 3, 17, 20, 0)


@pytest.fixture
def evening_context():
    return PredictiveContext(
        current_time=REQUEST_TIME,
        current_mood="chill",
        available_time=90,
        energy_level=30,
        social_context="solo",
        recent_sessions=[make_session("stardew", REQUEST_TIME - timedelta(hours=1), 45, genres=["Puzzle"])],
    )


@pytest.fixture
def engine(suggestion_config, fake_clock, mood_history):
    engine = PredictiveSuggestionEngine(
        suggestion_config,
        cache=InMemorySuggestionCache(suggestion_config.cache_ttl_seconds, clock=fake_clock)
    )
    engine.analyze_behavior_patterns("alice", mood_history)
    return engine


class TestBehaviorPatternExtraction:

    def test_time_patterns(self, engine):
        pattern = engine.get_behavior_pattern("alice")

        monday_evening = pattern.time_patterns[(20, 0)]
        assert monday_evening.session_count == 2
        assert monday_evening.likelihood == pytest.approx(2 / 24)
        assert monday_evening.preferred_genres == ["puzzle"]
        assert sum(p.likelihood for p in pattern.time_patterns.values()) == pytest.approx(1.0)

    def test_session_length_clusters(self, engine):
        clusters = engine.get_behavior_pattern("alice").session_length_patterns

        by_mood = {c.mood: c for c in clusters}
        assert len(clusters) == 2
        assert by_mood["chill"].duration == pytest.approx(60)
        assert by_mood["chill"].completion_rate == 1.0
        assert by_mood["focused"].session_count == 12
        assert by_mood["focused"].preferred_genres == ["strategy"]

    def test_genre_sequences(self, engine):
        sequences = engine.get_behavior_pattern("alice").genre_sequences

        puzzle = sequences[("puzzle",)]
        assert puzzle.count == 12
        assert puzzle.frequency == pytest.approx(0.5)
        assert puzzle.next_genre_counts == {"strategy": 12}
        assert puzzle.average_transition_time == pytest.approx(60.0)
        assert sequences[("strategy", "puzzle")].next_genre_counts == {"strategy": 11}

    def test_mood_transitions_and_devices(self, engine):
        pattern = engine.get_behavior_pattern("alice")

        transition = pattern.mood_transitions[("chill", "focused")]
        assert transition.probability == pytest.approx(1.0)
        assert transition.trigger_games == ["civ"]
        assert pattern.device_patterns["pc"].session_count == 24
        assert pattern.device_patterns["pc"].hours == [20, 22]

    def test_incremental_update_matches_batch(self, mood_history):
        sessions, _ = parse_sessions(mood_history)
        extractor = BehaviorPatternExtractor(max_sequence_length=3)

        batch = extractor.extract("alice", sessions)
        incremental = extractor.update(extractor.extract("alice", sessions[:-1]), sessions[-1])

        assert incremental.total_sessions == batch.total_sessions
        assert (
            {k: p.session_count for k, p in incremental.time_patterns.items()}
            == {k: p.session_count for k, p in batch.time_patterns.items()}
        )
        assert (
            {k: (s.count, s.next_genre_counts) for k, s in incremental.genre_sequences.items()}
            == {k: (s.count, s.next_genre_counts) for k, s in batch.genre_sequences.items()}
        )
        for key, transition in batch.mood_transitions.items():
            assert incremental.mood_transitions[key].probability == pytest.approx(transition.probability)
            assert incremental.mood_transitions[key].average_time == pytest.approx(transition.average_time)
        assert incremental.device_patterns["pc"].average_session_length == pytest.approx(
            batch.device_patterns["pc"].average_session_length
        )

    def test_empty_history_removes_pattern(self, engine):
        assert engine.analyze_behavior_patterns("alice", []) is None
        assert engine.get_behavior_pattern("alice") is None


class TestGenerateSuggestions:

    def test_sorted_by_confidence(self, engine, game_catalog, evening_context):
        suggestions = engine.generate_suggestions("alice", game_catalog, evening_context)

        assert len(suggestions) == len(game_catalog)
        assert_sorted_by_confidence(suggestions)

    def test_scores_are_bounded(self, engine, game_catalog, evening_context):
        for suggestion in engine.generate_suggestions("alice", game_catalog, evening_context):
            assert_confidence_valid(suggestion.confidence)
            assert_confidence_valid(suggestion.predicted_satisfaction)
            for value in suggestion.fit_score.as_dict().values():
                assert_confidence_valid(value)
            assert suggestion.estimated_playtime > 0
            assert suggestion.reasoning

    def test_history_shapes_the_ranking(self, engine, game_catalog, evening_context):
        """Test strategy follows puzzle and civ is the chill -> focused trigger"""
        suggestions = engine.generate_suggestions("alice", game_catalog, evening_context)
        by_id = {s.game.id: s for s in suggestions}

        assert suggestions[0].game.id == "civ"
        assert by_id["civ"].fit_score.sequence == pytest.approx(1.0)
        assert by_id["civ"].fit_score.mood == pytest.approx(0.9)
        assert by_id["doom"].fit_score.sequence == pytest.approx(0.3)
        assert by_id["civ"].estimated_playtime == pytest.approx(90)
        assert "Follows your recent genre pattern" in by_id["civ"].reasoning

    def test_alternatives_exclude_the_suggestion(self, engine, game_catalog, evening_context):
        for suggestion in engine.generate_suggestions("alice", game_catalog, evening_context):
            ids = [g.id for g in suggestion.alternatives]
            assert suggestion.game.id not in ids
            assert len(ids) <= 3

        stardew = next(
            s for s in engine.generate_suggestions("alice", game_catalog, evening_context)
            if s.game.id == "stardew"
        )
        assert stardew.alternatives[0].id == "portal"

    def test_max_suggestions(self, fake_clock, mood_history, game_catalog, evening_context):
        engine = PredictiveSuggestionEngine(SuggestionEngineConfig(max_suggestions=2))
        engine.analyze_behavior_patterns("alice", mood_history)

        assert len(engine.generate_suggestions("alice", game_catalog, evening_context)) == 2

    def test_no_candidates_is_empty(self, engine, evening_context):
        assert engine.generate_suggestions("alice", [], evening_context) == []

    def test_unknown_user_gets_popularity_fallback(self, engine, game_catalog, evening_context):
        suggestions = engine.generate_suggestions("bob", game_catalog, evening_context)

        assert [s.game.id for s in suggestions] == ["doom", "hades", "rocket", "stardew", "civ"]
        assert all(s.confidence == 0.3 for s in suggestions)
        assert suggestions[0].reasoning == ["General recommendation based on overall popularity"]

    def test_empty_analysis_then_fallback(self, engine, game_catalog, evening_context):
        engine.analyze_behavior_patterns("alice", [])

        suggestions = engine.generate_suggestions("alice", game_catalog, evening_context)

        assert len(suggestions) == 5
        assert all(s.confidence == 0.3 for s in suggestions)

    def test_accepts_mapping_context(self, engine, game_catalog):
        suggestions = engine.generate_suggestions(
            "alice", game_catalog, {"currentTime": REQUEST_TIME, "energyLevel": 90, "socialContext": "pvp"}
        )

        assert_sorted_by_confidence(suggestions)

    @pytest.mark.parametrize("bad_field", [
        {"energyLevel": 150},
        {"energyLevel": "very"},
        {"socialContext": "party"},
        {"availableTime": 0},
    ])
    def test_unusable_context_field_is_treated_as_absent(self, engine, game_catalog, bad_field):
        """Test the degraded request shares the cache entry of the request without the field"""
        plain = engine.generate_suggestions("alice", game_catalog, {"currentTime": REQUEST_TIME})

        degraded = engine.generate_suggestions("alice", game_catalog, {"currentTime": REQUEST_TIME, **bad_field})

        assert degraded is plain
        assert len(degraded) == len(game_catalog)
        assert_sorted_by_confidence(degraded)

    @pytest.mark.parametrize("context", ["tonight", {"currentTime": "not a time"}, {"recentSessions": 7}])
    def test_malformed_context_still_ranks(self, engine, game_catalog, context):
        suggestions = engine.generate_suggestions("alice", game_catalog, context)

        assert len(suggestions) == len(game_catalog)
        assert_sorted_by_confidence(suggestions)

    def test_aware_request_time_is_compared_in_utc(self, engine, game_catalog):
        """Test Monday 20:00 UTC seen from UTC+9 still hits the Monday evening slot"""
        tokyo = timezone(timedelta(hours=9))
        aware = REQUEST_TIME.replace(tzinfo=timezone.utc).astimezone(tokyo)

        suggestions = engine.generate_suggestions("alice", game_catalog, {"currentTime": aware})
        by_id = {s.game.id: s for s in suggestions}

        assert by_id["stardew"].fit_score.time == pytest.approx(0.9)
        assert engine.generate_suggestions("alice", game_catalog, {"currentTime": REQUEST_TIME}) is suggestions

    def test_completed_sessions_raise_satisfaction(self, suggestion_config, mood_history, game_catalog, evening_context):
        abandoned = [dict(session, completed=False) for session in mood_history]
        finishing = PredictiveSuggestionEngine(suggestion_config)
        quitting = PredictiveSuggestionEngine(suggestion_config)
        finishing.analyze_behavior_patterns("alice", mood_history)
        quitting.analyze_behavior_patterns("alice", abandoned)

        finished = {s.game.id: s for s in finishing.generate_suggestions("alice", game_catalog, evening_context)}
        quit_early = {s.game.id: s for s in quitting.generate_suggestions("alice", game_catalog, evening_context)}

        assert finished["stardew"].confidence == pytest.approx(quit_early["stardew"].confidence)
        assert finished["stardew"].predicted_satisfaction > quit_early["stardew"].predicted_satisfaction
        assert finished["doom"].predicted_satisfaction == pytest.approx(quit_early["doom"].predicted_satisfaction)

    def test_logs_carry_the_user(self, engine, game_catalog, captured_logs):
        engine.generate_suggestions("alice", game_catalog, {"currentTime": REQUEST_TIME, "energyLevel": 150})

        skipped = [e for e in captured_logs if e["event"] == "records_skipped"]
        assert skipped[0]["record_type"] == "context_field"
        assert skipped[0]["user_id"] == "alice"
        assert structlog.contextvars.get_contextvars() == {}


class TestSuggestionCaching:

    def test_same_context_returns_cached_object(self, engine, game_catalog, evening_context):
        first = engine.generate_suggestions("alice", game_catalog, evening_context)
        second = engine.generate_suggestions("alice", game_catalog, evening_context)

        assert second is first

    def test_behavior_update_forces_recompute(self, engine, game_catalog, evening_context):
        first = engine.generate_suggestions("alice", game_catalog, evening_context)

        engine.update_behavior_patterns(
            "alice", make_session("portal", REQUEST_TIME - timedelta(minutes=30), 25, genres=["Puzzle"])
        )
        second = engine.generate_suggestions("alice", game_catalog, evening_context)

        assert second is not first

    def test_expired_entry_is_recomputed(self, engine, game_catalog, evening_context, fake_clock):
        first = engine.generate_suggestions("alice", game_catalog, evening_context)

        fake_clock.advance(299)
        assert engine.generate_suggestions("alice", game_catalog, evening_context) is first

        fake_clock.advance(2)
        assert engine.generate_suggestions("alice", game_catalog, evening_context) is not first

    def test_different_context_is_a_different_entry(self, engine, game_catalog, evening_context):
        first = engine.generate_suggestions("alice", game_catalog, evening_context)
        other = evening_context.model_copy(update={"current_mood": "focused"})

        assert engine.generate_suggestions("alice", game_catalog, other) is not first

    def test_users_do_not_share_entries(self, engine, game_catalog, evening_context, mood_history):
        engine.analyze_behavior_patterns("bob", mood_history)

        alice = engine.generate_suggestions("alice", game_catalog, evening_context)
        bob = engine.generate_suggestions("bob", game_catalog, evening_context)

        assert alice is not bob


class TestPredictNextGame:

    def test_longest_suffix_match(self, engine, game_catalog):
        recent = [make_session("stardew", REQUEST_TIME, genres=["Puzzle"])]

        prediction = engine.predict_next_game("alice", recent, game_catalog)

        assert prediction.genre == "strategy"
        assert prediction.game.id == "civ"
        assert prediction.confidence == pytest.approx(0.5)

    def test_two_genre_suffix_is_preferred(self, engine):
        recent = [
            make_session("civ", REQUEST_TIME - timedelta(hours=3), genres=["Strategy"]),
            make_session("stardew", REQUEST_TIME, genres=["Puzzle"]),
        ]

        prediction = engine.predict_next_game("alice", recent)

        assert prediction.confidence == pytest.approx(11 / 23)
        assert prediction.game.id == "civ"

    def test_no_pattern_found(self, engine, game_catalog):
        recent = [make_session("rocket", REQUEST_TIME, genres=["Racing"])]

        prediction = engine.predict_next_game("alice", recent, game_catalog)

        assert prediction.game is None
        assert prediction.confidence == 0
        assert "No pattern found" in prediction.reasoning

    def test_unknown_user(self, engine):
        prediction = engine.predict_next_game("carol", [make_session("civ", REQUEST_TIME, genres=["Strategy"])])

        assert prediction.game is None
        assert prediction.confidence == 0
        assert "Insufficient data" in prediction.reasoning


class TestUpdateBehaviorPatterns:

    def test_new_user_gets_a_pattern(self, suggestion_config):
        engine = PredictiveSuggestionEngine(suggestion_config)

        pattern = engine.update_behavior_patterns("dave", make_session("hades", BASE_TIME, 40, genres=["Action"]))

        assert pattern.total_sessions == 1
        assert pattern.genre_sequences[("action",)].count == 1

    def test_malformed_session_is_ignored(self, engine):
        before = engine.get_behavior_pattern("alice").total_sessions

        engine.update_behavior_patterns("alice", {"durationMinutes": 10})

        assert engine.get_behavior_pattern("alice").total_sessions == before

    def test_update_touches_every_category(self, engine):
        session = make_session(
            "portal", datetime(2025, 3, 15, 10, 0), 25,
            genres=["Puzzle"], mood="focused", device="laptop"
        )

        pattern = engine.update_behavior_patterns("alice", session)

        assert pattern.time_patterns[(10, 5)].session_count == 1
        assert any(c.duration == 25 for c in pattern.session_length_patterns)
        assert pattern.genre_sequences[("strategy",)].next_genre_counts["puzzle"] == 12
        assert pattern.mood_transitions[("focused", "focused")].count == 1
        assert pattern.device_patterns["laptop"].hours == [10]


class TestPredictiveInsights:

    def test_routine_insights(self, engine):
        insights = engine.get_predictive_insights("alice")
        titles = [i.title for i in insights]

        assert "Peak Gaming Hours" in titles
        assert "Genre Flow" in titles
        for insight in insights:
            assert_confidence_valid(insight.confidence)

    def test_session_length_anomaly(self, suggestion_config):
        engine = PredictiveSuggestionEngine(suggestion_config)
        durations = [60] * 9 + [400]
        engine.analyze_behavior_patterns("erin", [
            make_session("g", BASE_TIME + timedelta(days=i), d, genres=["RPG"])
            for i, d in enumerate(durations)
        ])

        anomalies = [i for i in engine.get_predictive_insights("erin") if i.type == InsightType.ANOMALY]

        assert any(i.title == "Unusual Session Lengths" for i in anomalies)

    def test_rare_genre_switch(self, suggestion_config):
        engine = PredictiveSuggestionEngine(suggestion_config)
        sessions = [make_session("g", BASE_TIME + timedelta(days=i), 60, genres=["RPG"]) for i in range(12)]
        sessions.append(make_session("p", BASE_TIME + timedelta(days=12), 60, genres=["Puzzle"]))
        engine.analyze_behavior_patterns("erin", sessions)

        insights = engine.get_predictive_insights("erin")

        assert any(i.description == "Switching from rpg to puzzle is rare for you" for i in insights)

    def test_session_length_trend(self, suggestion_config):
        engine = PredictiveSuggestionEngine(suggestion_config)
        engine.analyze_behavior_patterns("erin", [
            make_session("g", BASE_TIME + timedelta(days=i), d, genres=["RPG"])
            for i, d in enumerate([30, 45, 60, 75, 90, 105])
        ])

        trends = [i for i in engine.get_predictive_insights("erin") if i.type == InsightType.TREND]

        assert len(trends) == 1
        assert "longer" in trends[0].description
        assert trends[0].confidence == pytest.approx(1.0)

    def test_lifting_out_of_a_negative_mood(self, suggestion_config):
        engine = PredictiveSuggestionEngine(suggestion_config)
        sessions = []
        for day in range(6):
            evening = BASE_TIME + timedelta(days=day)
            sessions.append(make_session("idle", evening, 30, mood="lazy", genres=["Simulation"]))
            sessions.append(make_session("hades", evening + timedelta(hours=1), 45, mood="energetic", genres=["Action"]))
        engine.analyze_behavior_patterns("erin", sessions)

        enhancements = [i for i in engine.get_predictive_insights("erin") if i.title == "Mood Enhancement"]

        assert len(enhancements) == 1
        assert enhancements[0].description == "Gaming often lifts you from lazy to energetic"
        assert enhancements[0].suggestions == ["Play hades when feeling lazy"]

    def test_unknown_user_has_no_insights(self, engine):
        assert engine.get_predictive_insights("nobody") == []
