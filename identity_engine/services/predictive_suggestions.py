"""
Predictive Suggestion Engine

Ranks candidate games for a user's current context.

Fit dimensions (each 0-1):
- time: does the slot/available time match how the user plays these games
- mood: does the game match the current mood or its known transition triggers
- energy: game intensity vs. requested energy level
- social: game socialness vs. requested social context
- sequence: probability the game's genre follows the recent genre sequence

Overall confidence is the weighted sum of the five fits. Ranked lists are
cached per (user, context) with a fixed TTL; any behavior update for a user
invalidates that user's entries.

Users without behavior history get a popularity fallback at flat low
confidence.
"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
from scipy import stats

from identity_engine.cache.suggestion_cache import InMemorySuggestionCache, SuggestionCache
from identity_engine.core.config import SuggestionEngineConfig
from identity_engine.core.exceptions import InvalidSessionError
from identity_engine.core.logging_config import bind_user_context, get_logger, log_skipped_records
from identity_engine.core.state import InMemoryUserStateStore, UserStateStore
from identity_engine.data.moods import (
    GENRE_INTENSITY,
    GENRE_SOCIALNESS,
    MOOD_CATALOG,
    NEGATIVE_MOODS,
    POSITIVE_MOODS,
)
from identity_engine.models.behavior import BehaviorPattern, GenreSequence
from identity_engine.models.session import (
    GameRecord,
    Session,
    parse_games,
    parse_sessions,
    sort_chronologically,
    to_session,
)
from identity_engine.models.suggestions import (
    FitScore,
    InsightType,
    LENIENT_CONTEXT_FIELDS,
    NextGamePrediction,
    PredictiveContext,
    PredictiveInsight,
    PredictiveSuggestion,
    SocialContext,
)
from identity_engine.services.behavior_patterns import BehaviorPatternExtractor, session_length_stats

logger = get_logger(__name__)

DEFAULT_PLAYTIME_MINUTES = 60.0
SLOT_WINDOW_HOURS = 2
HIGH_FIT = 0.7
ANOMALY_Z_SCORE = 2.0
RARE_SWITCH_PROBABILITY = 0.1
RARE_SWITCH_MIN_OBSERVATIONS = 5
RARE_HOUR_LIKELIHOOD = 0.05
RARE_HOUR_MIN_SESSIONS = 20
TREND_MIN_SESSIONS = 5
TREND_MIN_CHANGE = 0.25

FIT_REASONS = {
    "time": "Fits your usual play time",
    "mood": "Matches your current mood",
    "energy": "Matches your energy level",
    "social": "Suits how you want to play right now",
    "sequence": "Follows your recent genre pattern",
}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return float(min(high, max(low, value)))


def _hour_distance(a: int, b: int) -> int:
    diff = abs(a - b) % 24
    return min(diff, 24 - diff)


def _recent_game_ids(records: Iterable[Any]) -> List[str]:
    ids = []
    for record in records:
        if isinstance(record, Session):
            ids.append(record.game_id)
        elif isinstance(record, Mapping):
            game_id = record.get("gameId", record.get("game_id"))
            if game_id is not None:
                ids.append(str(game_id))
    return ids


def context_cache_key(context: PredictiveContext) -> str:
    """Stable hash of the parts of a request context that change a ranking."""
    payload = {
        "date": context.current_time.date().isoformat(),
        "hour": context.current_time.hour,
        "mood": context.current_mood,
        "device": context.device,
        "social": context.social_context.value if context.social_context else None,
        "energy": context.energy_level,
        "available_time": context.available_time,
        "recent": _recent_game_ids(context.recent_sessions),
    }
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.md5(encoded).hexdigest()


class PredictiveSuggestionEngine:
    """
    Per-user behavior statistics and context-aware game ranking.

    Usage:
        engine = PredictiveSuggestionEngine(SuggestionEngineConfig.from_env())
        engine.analyze_behavior_patterns("u-1", sessions)
        suggestions = engine.generate_suggestions("u-1", catalog, {"currentMood": "chill"})
    """

    def __init__(
        self,
        config: Optional[SuggestionEngineConfig] = None,
        store: Optional[UserStateStore] = None,
        cache: Optional[SuggestionCache] = None,
    ):
        self.config = config or SuggestionEngineConfig()
        self.store = store if store is not None else InMemoryUserStateStore()
        self.cache = cache if cache is not None else InMemorySuggestionCache(self.config.cache_ttl_seconds)
        self.extractor = BehaviorPatternExtractor(self.config.max_sequence_length)

    def get_behavior_pattern(self, user_id: str) -> Optional[BehaviorPattern]:
        return self.store.get(user_id)

    # ==================== Behavior patterns ====================

    def analyze_behavior_patterns(self, user_id: str, sessions: Iterable[Any]) -> Optional[BehaviorPattern]:
        """
        Rebuild and replace the user's behavior pattern.

        An empty (or fully malformed) history removes the stored pattern.
        """
        with bind_user_context(user_id=user_id, operation="analyze_behavior_patterns"):
            parsed, skipped = parse_sessions(sessions)
            log_skipped_records("session", skipped, len(parsed) + skipped, "analyze_behavior_patterns")
            self.cache.invalidate_user(user_id)

            if not parsed:
                self.store.delete(user_id)
                logger.info("behavior_patterns_cleared", user_id=user_id)
                return None

            pattern = self.extractor.extract(user_id, parsed)
            self.store.set(user_id, pattern)
            logger.info(
                "behavior_patterns_analyzed",
                user_id=user_id,
                sessions=pattern.total_sessions,
                skipped=skipped
            )
            return pattern

    def update_behavior_patterns(self, user_id: str, new_session: Any) -> Optional[BehaviorPattern]:
        """Fold one session into the user's pattern and drop their cached suggestions."""
        with bind_user_context(user_id=user_id, operation="update_behavior_patterns"):
            try:
                session = to_session(new_session)
            except InvalidSessionError as e:
                log_skipped_records("session", 1, 1, "update_behavior_patterns")
                logger.debug("behavior_update_rejected", user_id=user_id, **e.details)
                return self.store.get(user_id)

            pattern = self.store.get(user_id) or BehaviorPattern(user_id=user_id)
            self.extractor.update(pattern, session)
            self.store.set(user_id, pattern)
            self.cache.invalidate_user(user_id)
            return pattern

    # ==================== Suggestions ====================

    def generate_suggestions(
        self,
        user_id: str,
        candidate_games: Iterable[Any],
        context: Union[PredictiveContext, dict, None] = None
    ) -> List[PredictiveSuggestion]:
        """
        Rank candidate games for the user's current context.

        Unusable context fields (an energy level of 150, an unknown social
        context) are logged and treated as not given.

        Returns:
            Suggestions sorted by non-increasing confidence. While fresh, a
            cached list is returned as the same object, so callers must treat
            the result as read-only.
        """
        with bind_user_context(user_id=user_id, operation="generate_suggestions"):
            ctx, dropped = PredictiveContext.from_request(context)
            if dropped:
                log_skipped_records("context_field", len(dropped), len(LENIENT_CONTEXT_FIELDS), "generate_suggestions")
                logger.debug("context_fields_dropped", fields=dropped)

            games, skipped = parse_games(candidate_games)
            log_skipped_records("game", skipped, len(games) + skipped, "generate_suggestions")
            if not games:
                return []

            key = context_cache_key(ctx)
            cached = self.cache.get(user_id, key)
            if cached is not None:
                return cached

            pattern = self.store.get(user_id)
            if pattern is None or pattern.is_empty:
                suggestions = self._fallback_suggestions(games)
            else:
                suggestions = self._ranked_suggestions(games, ctx, pattern)

            self.cache.set(user_id, key, suggestions)
            logger.debug(
                "suggestions_generated",
                user_id=user_id,
                candidates=len(games),
                returned=len(suggestions),
                fallback=pattern is None or pattern.is_empty
            )
            return suggestions

    def _fallback_suggestions(self, games: List[GameRecord]) -> List[PredictiveSuggestion]:
        popular = sorted(games, key=lambda g: g.popularity or 0.0, reverse=True)
        confidence = self.config.fallback_confidence
        return [
            PredictiveSuggestion(
                game=game,
                confidence=confidence,
                reasoning=["General recommendation based on overall popularity"],
                predicted_satisfaction=confidence,
                estimated_playtime=DEFAULT_PLAYTIME_MINUTES,
                fit_score=FitScore(),
            )
            for game in popular[:self.config.fallback_count]
        ]

    def _ranked_suggestions(
        self,
        games: List[GameRecord],
        ctx: PredictiveContext,
        pattern: BehaviorPattern
    ) -> List[PredictiveSuggestion]:
        recent, _ = parse_sessions(ctx.recent_sessions)
        recent_genres = [s.primary_genre for s in sort_chronologically(recent) if s.primary_genre]
        if not recent_genres:
            recent_genres = list(pattern.recent_genres)

        scored = [self._score_game(game, ctx, pattern, recent_genres) for game in games]
        scored.sort(key=lambda s: s.confidence, reverse=True)

        top = scored[:self.config.max_suggestions]
        for suggestion in top:
            suggestion.alternatives = self._alternatives(suggestion, scored)
        return top

    def _score_game(
        self,
        game: GameRecord,
        ctx: PredictiveContext,
        pattern: BehaviorPattern,
        recent_genres: List[str]
    ) -> PredictiveSuggestion:
        playtime = self._estimate_playtime(game, pattern)
        fit = FitScore(
            time=self._time_fit(game, ctx, pattern, playtime),
            mood=self._mood_fit(game, ctx, pattern),
            energy=self._energy_fit(game, ctx),
            social=self._social_fit(game, ctx),
            sequence=self._sequence_fit(game, pattern, recent_genres),
        )
        weights = self.config.fit_weights
        confidence = _clamp(sum(weights[dim] * value for dim, value in fit.as_dict().items()))

        return PredictiveSuggestion(
            game=game,
            confidence=confidence,
            reasoning=self._reasoning(fit, ctx),
            predicted_satisfaction=self._predict_satisfaction(game, confidence, pattern, ctx, playtime),
            estimated_playtime=playtime,
            fit_score=fit,
        )

    # ==================== Fit scores ====================

    def _time_fit(
        self,
        game: GameRecord,
        ctx: PredictiveContext,
        pattern: BehaviorPattern,
        playtime: float
    ) -> float:
        hour = ctx.current_time.hour
        weekday = ctx.current_time.weekday()
        nearby = [
            slot for (slot_hour, slot_day), slot in pattern.time_patterns.items()
            if slot_day == weekday and _hour_distance(slot_hour, hour) <= SLOT_WINDOW_HOURS
        ]

        genre = game.primary_genre
        if not nearby:
            slot_fit = 0.5
        elif genre and any(genre in slot.preferred_genres for slot in nearby):
            slot_fit = 0.9
        else:
            slot_fit = 0.6

        if ctx.available_time is None or playtime <= 0:
            return slot_fit
        length_fit = min(1.0, ctx.available_time / playtime)
        return _clamp((slot_fit + length_fit) / 2)

    @staticmethod
    def _mood_fit(game: GameRecord, ctx: PredictiveContext, pattern: BehaviorPattern) -> float:
        mood = ctx.current_mood
        if not mood:
            return 0.5

        transitions = pattern.transitions_from(mood)
        if any(game.id in t.trigger_games for t in transitions):
            return 0.9

        mood_genres = MOOD_CATALOG.get(mood, {}).get("genres", [])
        if mood in game.moods or any(genre in mood_genres for genre in game.genres):
            return 0.8
        return 0.5 if not transitions else 0.4

    @staticmethod
    def _energy_fit(game: GameRecord, ctx: PredictiveContext) -> float:
        if ctx.energy_level is None:
            return 0.5
        intensity = game.intensity if game.intensity is not None else GENRE_INTENSITY.get(game.primary_genre, 0.5)
        return _clamp(1 - abs(ctx.energy_level / 100 - intensity))

    @staticmethod
    def _social_fit(game: GameRecord, ctx: PredictiveContext) -> float:
        if ctx.social_context is None:
            return 0.5
        if game.socialness is not None:
            socialness = game.socialness
        elif game.is_multiplayer is not None:
            socialness = 0.8 if game.is_multiplayer else 0.2
        else:
            socialness = GENRE_SOCIALNESS.get(game.primary_genre, 0.5)

        if ctx.social_context == SocialContext.SOLO:
            return _clamp(1 - socialness)
        return _clamp(socialness)

    def _sequence_fit(self, game: GameRecord, pattern: BehaviorPattern, recent_genres: List[str]) -> float:
        if not recent_genres:
            return 0.5
        match = self._longest_match(pattern, recent_genres)
        if match is None:
            return 0.3
        return _clamp(0.3 + 0.7 * match.next_genre_probability(game.primary_genre))

    def _longest_match(self, pattern: BehaviorPattern, genres: List[str]) -> Optional[GenreSequence]:
        """Longest suffix of genres with at least one observed successor."""
        for n in range(min(len(genres), self.config.max_sequence_length), 0, -1):
            sequence = pattern.genre_sequences.get(tuple(genres[-n:]))
            if sequence is not None and sequence.next_genre_counts:
                return sequence
        return None

    # ==================== Derived values ====================

    @staticmethod
    def _estimate_playtime(game: GameRecord, pattern: BehaviorPattern) -> float:
        genre = game.primary_genre
        clusters = [c for c in pattern.session_length_patterns if genre and genre in c.preferred_genres]
        if clusters:
            weights = [c.session_count for c in clusters]
            return float(np.average([c.duration for c in clusters], weights=weights))
        if pattern.session_lengths:
            return float(np.mean(pattern.session_lengths))
        return DEFAULT_PLAYTIME_MINUTES

    @staticmethod
    def _predict_satisfaction(
        game: GameRecord,
        confidence: float,
        pattern: BehaviorPattern,
        ctx: PredictiveContext,
        playtime: float
    ) -> float:
        affinity = 0.5
        if pattern.genre_playtime:
            top = max(pattern.genre_playtime.values())
            if top > 0:
                affinity = pattern.genre_playtime.get(game.primary_genre, 0.0) / top

        satisfaction = 0.6 * confidence + 0.4 * affinity

        # Sessions of this genre that were played through
        genre = game.primary_genre
        clusters = [c for c in pattern.session_length_patterns if genre and genre in c.preferred_genres]
        if clusters:
            completion = np.average(
                [c.completion_rate for c in clusters],
                weights=[c.session_count for c in clusters]
            )
            satisfaction = 0.8 * satisfaction + 0.2 * float(completion)

        if ctx.available_time is not None and playtime > 0:
            satisfaction *= min(1.0, ctx.available_time / playtime)
        return _clamp(satisfaction)

    @staticmethod
    def _reasoning(fit: FitScore, ctx: PredictiveContext) -> List[str]:
        scores = fit.as_dict()
        strong = [dim for dim, value in scores.items() if value > HIGH_FIT]
        if not strong:
            strong = [max(scores, key=scores.get)]

        reasons = []
        for dim in strong:
            if dim == "mood" and ctx.current_mood:
                reasons.append(f"Matches your {ctx.current_mood} mood")
            elif dim == "social" and ctx.social_context:
                reasons.append(f"Good fit for {ctx.social_context.value} play")
            else:
                reasons.append(FIT_REASONS[dim])
        return reasons

    def _alternatives(self, suggestion: PredictiveSuggestion, ranked: List[PredictiveSuggestion]) -> List[GameRecord]:
        others = [s.game for s in ranked if s.game.id != suggestion.game.id]
        genres = set(suggestion.game.genres)
        related = [g for g in others if genres & set(g.genres)]
        related_ids = {g.id for g in related}
        ordered = related + [g for g in others if g.id not in related_ids]
        return ordered[:self.config.max_alternatives]

    # ==================== Next game ====================

    def predict_next_game(
        self,
        user_id: str,
        recent_sessions: Iterable[Any],
        candidate_games: Optional[Iterable[Any]] = None
    ) -> NextGamePrediction:
        """
        Predict the next game from the user's recent genre sequence.

        Confidence is the normalized frequency of the matched sequence.
        """
        pattern = self.store.get(user_id)
        parsed, _ = parse_sessions(recent_sessions)
        genres = [s.primary_genre for s in sort_chronologically(parsed) if s.primary_genre]

        if pattern is None or pattern.is_empty or not genres:
            return NextGamePrediction(
                game=None,
                confidence=0.0,
                reasoning="Insufficient data to predict the next game",
            )

        match = self._longest_match(pattern, genres)
        if match is None:
            tail = " -> ".join(genres[-self.config.max_sequence_length:])
            return NextGamePrediction(
                game=None,
                confidence=0.0,
                reasoning=f"No pattern found for recent genre sequence: {tail}",
            )

        next_genre = match.common_next_genres[0]
        game = self._game_for_genre(next_genre, candidate_games, pattern)
        return NextGamePrediction(
            game=game,
            genre=next_genre,
            confidence=_clamp(match.frequency),
            reasoning=f"After {' -> '.join(match.sequence)} you usually play {next_genre}",
        )

    @staticmethod
    def _game_for_genre(
        genre: str,
        candidate_games: Optional[Iterable[Any]],
        pattern: BehaviorPattern
    ) -> Optional[GameRecord]:
        games, _ = parse_games(candidate_games)
        matching = [g for g in games if genre in g.genres]
        if matching:
            return max(matching, key=lambda g: g.popularity or 0.0)

        game_id = pattern.most_played_game(genre)
        return GameRecord(id=game_id, genres=[genre]) if game_id else None

    # ==================== Insights ====================

    def get_predictive_insights(self, user_id: str) -> List[PredictiveInsight]:
        """Patterns, anomalies, trends and recommendations for one user."""
        pattern = self.store.get(user_id)
        if pattern is None or pattern.is_empty:
            return []

        insights = []
        insights.extend(self._peak_hour_insights(pattern))
        insights.extend(self._genre_flow_insights(pattern))
        insights.extend(self._mood_insights(pattern))
        insights.extend(self._session_length_anomalies(pattern))
        insights.extend(self._genre_switch_anomalies(pattern))
        insights.extend(self._play_time_anomalies(pattern))
        insights.extend(self._session_length_trend(pattern))
        return insights

    @staticmethod
    def _peak_hour_insights(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        by_hour: Dict[int, int] = {}
        for slot in pattern.time_patterns.values():
            by_hour[slot.hour] = by_hour.get(slot.hour, 0) + slot.session_count
        if not by_hour:
            return []

        top = max(by_hour.values())
        peaks = sorted(hour for hour, count in by_hour.items() if count >= 0.7 * top)
        share = sum(by_hour[h] for h in peaks) / sum(by_hour.values())
        return [PredictiveInsight(
            type=InsightType.PATTERN,
            title="Peak Gaming Hours",
            description="You play most often around " + ", ".join(f"{h}:00" for h in peaks),
            confidence=_clamp(share),
            actionable=True,
            suggestions=["Save longer or more demanding games for your peak hours"],
        )]

    @staticmethod
    def _genre_flow_insights(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        flows = sorted(
            (s for s in pattern.genre_sequences.values() if len(s.sequence) >= 2 and s.frequency > 0.3),
            key=lambda s: s.frequency,
            reverse=True
        )
        return [
            PredictiveInsight(
                type=InsightType.PATTERN,
                title="Genre Flow",
                description=f"You often play {' -> '.join(s.sequence)}",
                confidence=_clamp(s.frequency),
                actionable=bool(s.next_genre_counts),
                suggestions=[f"Try a {g} game next" for g in s.common_next_genres[:2]],
            )
            for s in flows[:3]
        ]

    @staticmethod
    def _mood_insights(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        insights = []
        for transition in pattern.mood_transitions.values():
            if (
                transition.to_mood in POSITIVE_MOODS
                and transition.from_mood != transition.to_mood
                and transition.probability > 0.3
            ):
                if transition.from_mood in NEGATIVE_MOODS:
                    description = f"Gaming often lifts you from {transition.from_mood} to {transition.to_mood}"
                else:
                    description = (
                        f"Sessions often take you from {transition.from_mood} "
                        f"to {transition.to_mood}"
                    )
                insights.append(PredictiveInsight(
                    type=InsightType.RECOMMENDATION,
                    title="Mood Enhancement",
                    description=description,
                    confidence=_clamp(transition.probability),
                    actionable=bool(transition.trigger_games),
                    suggestions=[f"Play {g} when feeling {transition.from_mood}" for g in transition.trigger_games[:3]],
                ))
        return insights

    @staticmethod
    def _session_length_anomalies(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        summary = session_length_stats(pattern)
        if summary is None or len(pattern.session_lengths) < 3 or summary["std"] == 0:
            return []

        lengths = np.asarray(pattern.session_lengths, dtype=float)
        z_scores = np.abs(stats.zscore(lengths))
        outliers = lengths[z_scores > ANOMALY_Z_SCORE]
        if outliers.size == 0:
            return []

        return [PredictiveInsight(
            type=InsightType.ANOMALY,
            title="Unusual Session Lengths",
            description=(
                f"{outliers.size} session(s) deviate strongly from your typical "
                f"{summary['mean']:.0f}-minute session"
            ),
            confidence=_clamp(float(z_scores.max()) / 4),
            actionable=False,
        )]

    @staticmethod
    def _genre_switch_anomalies(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        insights = []
        for sequence in pattern.genre_sequences.values():
            if len(sequence.sequence) != 1:
                continue
            observations = sum(sequence.next_genre_counts.values())
            if observations < RARE_SWITCH_MIN_OBSERVATIONS:
                continue
            for genre, count in sorted(sequence.next_genre_counts.items()):
                probability = count / observations
                if probability < RARE_SWITCH_PROBABILITY:
                    insights.append(PredictiveInsight(
                        type=InsightType.ANOMALY,
                        title="Unusual Genre Switch",
                        description=f"Switching from {sequence.sequence[0]} to {genre} is rare for you",
                        confidence=_clamp(1 - probability),
                        actionable=False,
                    ))
        return insights

    @staticmethod
    def _play_time_anomalies(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        if pattern.total_sessions < RARE_HOUR_MIN_SESSIONS:
            return []
        rare = sorted(
            (slot for slot in pattern.time_patterns.values() if slot.likelihood < RARE_HOUR_LIKELIHOOD),
            key=lambda slot: (slot.day_of_week, slot.hour)
        )
        if not rare:
            return []
        return [PredictiveInsight(
            type=InsightType.ANOMALY,
            title="Unusual Play Times",
            description=f"{len(rare)} time slot(s) are rare for you",
            confidence=_clamp(1 - max(slot.likelihood for slot in rare)),
            actionable=False,
        )]

    @staticmethod
    def _session_length_trend(pattern: BehaviorPattern) -> List[PredictiveInsight]:
        lengths = np.asarray(pattern.session_lengths, dtype=float)
        if lengths.size < TREND_MIN_SESSIONS or lengths.std() == 0 or lengths.mean() <= 0:
            return []

        result = stats.linregress(np.arange(lengths.size), lengths)
        change = result.slope * (lengths.size - 1) / lengths.mean()
        if abs(change) < TREND_MIN_CHANGE:
            return []

        direction = "longer" if change > 0 else "shorter"
        return [PredictiveInsight(
            type=InsightType.TREND,
            title="Session Length Trend",
            description=f"Your sessions are getting {direction} ({change:+.0%} across your history)",
            confidence=_clamp(abs(result.rvalue)),
            actionable=True,
            suggestions=[
                "Pick shorter games for busy days" if direction == "shorter"
                else "Queue up longer campaigns for your extended sessions"
            ],
        )]
