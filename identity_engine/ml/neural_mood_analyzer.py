"""
Neural Mood Analyzer

Learns a player's mood habits from tagged play sessions:

1. Mood patterns: per-mood time-of-day/day-of-week tables, associated games,
   intensity, triggers
2. Transition statistics: P(next mood | mood), average gap, trigger games
3. A small feed-forward network predicting the next mood from the latest
   session and the current time

State machine: untrained -> training -> trained (re-enterable). A full
analyze_sessions pass retrains from scratch; update_patterns only nudges the
pattern tables. Predictions always read the last committed network; a new
network replaces it only after training finishes.

Feature vector (FEATURE_SIZE = 4 + number of moods):
    [0] hour / 24
    [1] weekday / 7 (Monday = 0)
    [2] hashed id of the most recent game, in [0, 1)
    [3] mean recent session length / 300 min, capped at 1
    [4:] one-hot mood of the most recent session
"""

import hashlib
import heapq
import time
from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np

from identity_engine.core.config import NeuralMoodConfig
from identity_engine.core.exceptions import InvalidSessionError
from identity_engine.core.logging_config import get_logger, log_skipped_records, log_training_run
from identity_engine.data.moods import (
    DEFAULT_MOOD,
    MOOD_ACTIVITIES,
    MOOD_IDS,
    mood_index,
)
from identity_engine.ml.network import FeedForwardNetwork
from identity_engine.models.mood import (
    AnalyzerState,
    MoodAnalysisSummary,
    MoodFactors,
    MoodInsights,
    MoodPattern,
    MoodPrediction,
    MoodRecommendation,
    MoodTransition,
)
from identity_engine.models.session import (
    Session,
    naive_utc,
    parse_sessions,
    sort_chronologically,
    to_session,
)

logger = get_logger(__name__)

BASE_FEATURES = 4
FEATURE_SIZE = BASE_FEATURES + len(MOOD_IDS)
SESSION_LENGTH_NORMALIZER = 300.0   # minutes
RECENT_WINDOW = 3
MAX_SUGGESTED_GAMES = 10
MAX_TRIGGERS = 5

# Strictly below 1/len(MOOD_IDS), the smallest arg-max mass a softmax can give
FALLBACK_CONFIDENCE_CEILING = 0.8 / len(MOOD_IDS)


def hash_game_id(game_id: str) -> float:
    """Stable game id hash in [0, 1)."""
    digest = hashlib.md5(game_id.encode("utf-8")).hexdigest()
    return (int(digest[:8], 16) % 1000) / 1000


def _likelihoods(counts: Dict[Tuple[int, int], int]) -> Dict[Tuple[int, int], float]:
    total = sum(counts.values())
    if not total:
        return {}
    return {key: count / total for key, count in counts.items()}


def _unique(items: Iterable[str]) -> List[str]:
    seen = []
    for item in items:
        if item and item not in seen:
            seen.append(item)
    return seen


class NeuralMoodAnalyzer:
    """
    Mood pattern extraction and next-mood prediction for a single user.

    Usage:
        analyzer = NeuralMoodAnalyzer(NeuralMoodConfig(epochs=50, seed=7))
        summary = analyzer.analyze_sessions(sessions)
        prediction = analyzer.predict_current_mood(recent_sessions)
    """

    def __init__(self, config: Optional[NeuralMoodConfig] = None):
        self.config = config or NeuralMoodConfig()
        self.state = AnalyzerState.UNTRAINED
        self.mood_patterns: Dict[str, MoodPattern] = {}
        self.transitions: Dict[Tuple[str, str], MoodTransition] = {}
        self.skipped_sessions = 0
        self.last_summary: Optional[MoodAnalysisSummary] = None
        self._network: Optional[FeedForwardNetwork] = None

    @property
    def is_trained(self) -> bool:
        return self._network is not None

    # ==================== Training ====================

    def analyze_sessions(self, sessions: Iterable[Any]) -> MoodAnalysisSummary:
        """
        Rebuild mood patterns and transitions, then retrain the network.

        Malformed sessions are skipped and counted. When no training pair can
        be formed the analyzer ends up untrained and predictions use the
        heuristic fallback.
        """
        parsed, skipped = parse_sessions(sessions)
        total = len(parsed) + skipped
        self.skipped_sessions = skipped
        log_skipped_records("session", skipped, total, "analyze_sessions")

        ordered = sort_chronologically(parsed)
        labeled = [s for s in ordered if s.mood]

        patterns = self._extract_mood_patterns(labeled)
        transitions = self._analyze_transitions(labeled)
        X, Y = self._prepare_training_data(labeled)

        final_loss = None
        if len(X) == 0:
            self.mood_patterns = patterns
            self.transitions = transitions
            self._network = None
            self.state = AnalyzerState.UNTRAINED
            logger.info(
                "mood_training_skipped",
                reason="no_training_pairs",
                labeled_sessions=len(labeled)
            )
        else:
            previous_state = self.state
            self.state = AnalyzerState.TRAINING
            start = time.time()

            network = FeedForwardNetwork(
                input_size=FEATURE_SIZE,
                hidden_layers=self.config.hidden_layers,
                output_size=len(MOOD_IDS),
                activation=self.config.activation_function,
                learning_rate=self.config.learning_rate,
                momentum=self.config.momentum,
                seed=self.config.seed,
            )
            history = network.fit(X, Y, epochs=self.config.epochs, batch_size=self.config.batch_size)
            final_loss = history[-1] if history else None

            if final_loss is None or not np.isfinite(final_loss):
                # Diverged; keep serving the previous snapshot
                self.state = previous_state
                logger.warning("mood_training_diverged", examples=len(X), final_loss=final_loss)
                final_loss = None
            else:
                self.mood_patterns = patterns
                self.transitions = transitions
                self._network = network
                self.state = AnalyzerState.TRAINED
                log_training_run(
                    examples=len(X),
                    epochs=self.config.epochs,
                    duration=time.time() - start,
                    final_loss=final_loss,
                    skipped=skipped
                )

        self.last_summary = MoodAnalysisSummary(
            sessions_total=total,
            sessions_used=len(labeled),
            sessions_skipped=skipped,
            unlabeled_sessions=len(ordered) - len(labeled),
            training_examples=len(X),
            final_loss=final_loss,
            state=self.state,
        )
        return self.last_summary

    def _extract_mood_patterns(self, labeled: List[Session]) -> Dict[str, MoodPattern]:
        by_mood: Dict[str, List[Session]] = defaultdict(list)
        for session in labeled:
            by_mood[session.mood].append(session)

        patterns = {}
        for mood_id, mood_sessions in by_mood.items():
            pattern = MoodPattern(
                mood_id=mood_id,
                confidence=len(mood_sessions) / len(labeled),
                session_count=len(mood_sessions),
            )

            games = Counter(s.game_id for s in mood_sessions)
            pattern.game_associations = [game for game, _ in games.most_common()]

            intensities = [s.intensity / 10 for s in mood_sessions if s.intensity is not None]
            if intensities:
                pattern.intensity = float(np.mean(intensities))

            tags = Counter(tag for s in mood_sessions for tag in s.tags)
            pattern.triggers = [tag for tag, _ in tags.most_common(MAX_TRIGGERS)]

            for s in mood_sessions:
                if s.timestamp:
                    key = (s.timestamp.hour, s.timestamp.weekday())
                    pattern.time_counts[key] = pattern.time_counts.get(key, 0) + 1
            pattern.time_patterns = _likelihoods(pattern.time_counts)

            patterns[mood_id] = pattern
        return patterns

    def _analyze_transitions(self, labeled: List[Session]) -> Dict[Tuple[str, str], MoodTransition]:
        transitions: Dict[Tuple[str, str], MoodTransition] = {}
        gaps: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        triggers: Dict[Tuple[str, str], Counter] = defaultdict(Counter)
        outgoing: Counter = Counter()

        for prev, curr in zip(labeled, labeled[1:]):
            key = (prev.mood, curr.mood)
            transition = transitions.setdefault(key, MoodTransition(prev.mood, curr.mood))
            transition.count += 1
            outgoing[prev.mood] += 1
            triggers[key][curr.game_id] += 1

            if prev.ended_at and curr.timestamp:
                gap = (curr.timestamp - prev.ended_at).total_seconds() / 60
                if gap >= 0:
                    gaps[key].append(gap)

        for key, transition in transitions.items():
            transition.probability = transition.count / outgoing[transition.from_mood]
            transition.average_transition_time = float(np.mean(gaps[key])) if gaps[key] else 0.0
            transition.common_triggers = [g for g, _ in triggers[key].most_common(MAX_TRIGGERS)]
        return transitions

    def _prepare_training_data(self, labeled: List[Session]) -> Tuple[np.ndarray, np.ndarray]:
        inputs, targets = [], []
        for i in range(1, len(labeled)):
            next_index = mood_index(labeled[i].mood)
            if next_index < 0:
                continue
            history = labeled[max(0, i - RECENT_WINDOW):i]
            inputs.append(self._feature_vector(history, history[-1].timestamp))
            target = np.zeros(len(MOOD_IDS))
            target[next_index] = 1.0
            targets.append(target)

        if not inputs:
            return np.empty((0, FEATURE_SIZE)), np.empty((0, len(MOOD_IDS)))
        return np.vstack(inputs), np.vstack(targets)

    def _feature_vector(self, recent: List[Session], at: Optional[datetime]) -> np.ndarray:
        """recent is chronological; the last entry is the latest session."""
        features = np.zeros(FEATURE_SIZE)
        if at is not None:
            features[0] = at.hour / 24
            features[1] = at.weekday() / 7

        if recent:
            latest = recent[-1]
            features[2] = hash_game_id(latest.game_id)
            mean_length = np.mean([s.duration for s in recent])
            features[3] = min(mean_length / SESSION_LENGTH_NORMALIZER, 1.0)
            index = mood_index(latest.mood) if latest.mood else -1
            if index >= 0:
                features[BASE_FEATURES + index] = 1.0
        return features

    # ==================== Prediction ====================

    def predict_current_mood(
        self,
        recent_sessions: Iterable[Any],
        current_time: Optional[datetime] = None
    ) -> MoodPrediction:
        """Predict the player's mood from recent activity."""
        parsed, _ = parse_sessions(recent_sessions)
        network = self._network

        if network is None or not parsed:
            return self._fallback_prediction(parsed)

        recent = sort_chronologically(parsed)[-RECENT_WINDOW:]
        at = naive_utc(current_time) or datetime.now()
        x = self._feature_vector(recent, at)
        probs = network.predict_proba(x)

        if not np.all(np.isfinite(probs)):
            logger.warning("mood_prediction_not_finite")
            return self._fallback_prediction(parsed)

        index = int(np.argmax(probs))
        predicted = MOOD_IDS[index]
        confidence = float(probs[index])
        factors = self._factor_contributions(network, x)

        return MoodPrediction(
            predicted_mood=predicted,
            confidence=confidence,
            factors=factors,
            reasoning=self._reasoning(predicted, confidence, factors, at, x),
        )

    def _factor_contributions(self, network: FeedForwardNetwork, x: np.ndarray) -> MoodFactors:
        importance = network.input_importance()
        weighted = importance * np.abs(x)
        raw = {
            "time_of_day": weighted[0],
            "day_of_week": weighted[1],
            "recent_games": weighted[2] + weighted[BASE_FEATURES:].sum(),
            "session_length": weighted[3],
        }
        total = sum(raw.values())
        if total <= 0 or not np.isfinite(total):
            return MoodFactors(0.25, 0.25, 0.25, 0.25)
        return MoodFactors(**{name: float(value / total) for name, value in raw.items()})

    def _reasoning(
        self,
        mood: str,
        confidence: float,
        factors: MoodFactors,
        at: datetime,
        x: np.ndarray
    ) -> List[str]:
        reasoning = [f"Model assigns {confidence:.0%} probability to '{mood}'"]
        if at.hour >= 21 or at.hour < 5:
            reasoning.append("Late night gaming session detected")
        if at.weekday() >= 5:
            reasoning.append("Weekend gaming pattern")
        if x[3] > 0.4:
            reasoning.append("Long recent sessions suggest an immersive mood")

        strongest = max(factors.as_dict().items(), key=lambda item: item[1])
        reasoning.append(f"Strongest signal: {strongest[0].replace('_', ' ')}")
        return reasoning

    def _fallback_prediction(self, recent: List[Session]) -> MoodPrediction:
        moods = [s.mood for s in sort_chronologically(recent) if s.mood]

        if moods:
            counts = Counter(reversed(moods))   # ties go to the most recent mood
            mood, count = counts.most_common(1)[0]
            confidence = FALLBACK_CONFIDENCE_CEILING * count / len(moods)
            basis = "Based on your most frequent recent mood"
        elif self.mood_patterns:
            pattern = max(
                self.mood_patterns.values(),
                key=lambda p: (p.confidence, p.mood_id)
            )
            mood = pattern.mood_id
            confidence = FALLBACK_CONFIDENCE_CEILING * pattern.confidence
            basis = "Based on your most common historical mood"
        else:
            mood = DEFAULT_MOOD
            confidence = FALLBACK_CONFIDENCE_CEILING * 0.5
            basis = "No mood history yet; using a neutral default"

        return MoodPrediction(
            predicted_mood=mood,
            confidence=confidence,
            factors=MoodFactors(0.25, 0.25, 0.25, 0.25),
            reasoning=["Insufficient training data for neural prediction", basis],
            is_fallback=True,
        )

    # ==================== Recommendations ====================

    def get_mood_recommendations(
        self,
        current_mood: str,
        target_mood: Optional[str] = None
    ) -> MoodRecommendation:
        """
        Suggest games and activities from the current mood.

        With a target mood, follows the highest-probability transition path;
        otherwise follows the most likely direct transition.
        """
        current = (current_mood or "").strip().lower() or DEFAULT_MOOD
        target = target_mood.strip().lower() if target_mood else None
        current_pattern = self.mood_patterns.get(current)

        if target and target != current:
            path, probability = self._find_transition_path(current, target)
            target_pattern = self.mood_patterns.get(target)
            games = list(target_pattern.game_associations) if target_pattern else []
            if path:
                for from_mood, to_mood in zip(path, path[1:]):
                    games.extend(self.transitions[(from_mood, to_mood)].common_triggers)
            return MoodRecommendation(
                current_mood=current,
                target_mood=target,
                suggested_games=_unique(games)[:MAX_SUGGESTED_GAMES],
                activities=self.get_mood_activities(target),
                transition_path=path,
                confidence=probability,
            )

        outgoing = [t for t in self.transitions.values() if t.from_mood == current and t.to_mood != current]
        if outgoing:
            best = max(outgoing, key=lambda t: (t.probability, t.to_mood))
            next_pattern = self.mood_patterns.get(best.to_mood)
            games = (list(next_pattern.game_associations) if next_pattern else []) + best.common_triggers
            return MoodRecommendation(
                current_mood=current,
                target_mood=target,
                suggested_games=_unique(games)[:MAX_SUGGESTED_GAMES],
                activities=self.get_mood_activities(best.to_mood),
                transition_path=[current, best.to_mood],
                confidence=best.probability,
            )

        return MoodRecommendation(
            current_mood=current,
            target_mood=target,
            suggested_games=list(current_pattern.game_associations[:MAX_SUGGESTED_GAMES]) if current_pattern else [],
            activities=self.get_mood_activities(current),
            transition_path=[current] if target else None,
            confidence=current_pattern.confidence if current_pattern else 0.0,
        )

    def _find_transition_path(self, start: str, goal: str) -> Tuple[Optional[List[str]], float]:
        """Best-first search maximizing the product of transition probabilities."""
        adjacency: Dict[str, List[MoodTransition]] = defaultdict(list)
        for transition in self.transitions.values():
            adjacency[transition.from_mood].append(transition)

        best = {start: 1.0}
        frontier = [(-1.0, [start])]
        while frontier:
            neg_probability, path = heapq.heappop(frontier)
            probability = -neg_probability
            node = path[-1]
            if node == goal:
                return path, probability
            if probability < best.get(node, 0.0):
                continue
            for transition in adjacency[node]:
                candidate = probability * transition.probability
                if candidate > best.get(transition.to_mood, 0.0):
                    best[transition.to_mood] = candidate
                    heapq.heappush(frontier, (-candidate, path + [transition.to_mood]))
        return None, 0.0

    @staticmethod
    def get_mood_activities(mood_id: str) -> List[str]:
        return list(MOOD_ACTIVITIES.get(mood_id, ["General gaming"]))

    # ==================== Incremental updates ====================

    def update_patterns(self, new_session: Any) -> bool:
        """
        Fold one session into its mood's time table and game list.

        Does not retrain the network or touch transition statistics.

        Returns:
            True if the session was applied
        """
        try:
            session = to_session(new_session)
        except InvalidSessionError:
            self.skipped_sessions += 1
            log_skipped_records("session", 1, 1, "update_patterns")
            return False

        if not session.mood:
            return False

        pattern = self.mood_patterns.get(session.mood)
        if pattern is None:
            pattern = MoodPattern(mood_id=session.mood)
            self.mood_patterns[session.mood] = pattern

        pattern.session_count += 1
        if session.timestamp:
            key = (session.timestamp.hour, session.timestamp.weekday())
            pattern.time_counts[key] = pattern.time_counts.get(key, 0) + 1
            pattern.time_patterns = _likelihoods(pattern.time_counts)

        if session.game_id not in pattern.game_associations:
            pattern.game_associations.append(session.game_id)
        return True

    # ==================== Insights ====================

    def get_mood_insights(self) -> MoodInsights:
        patterns = list(self.mood_patterns.values())

        dominant = None
        if patterns:
            dominant = max(patterns, key=lambda p: (p.confidence * p.intensity, p.mood_id)).mood_id

        probabilities = [t.probability for t in self.transitions.values()]
        stability = float(1.0 / (1.0 + np.var(probabilities))) if probabilities else 0.0

        peak_times = {}
        for pattern in patterns:
            hour = pattern.peak_hour()
            if hour is not None:
                peak_times[pattern.mood_id] = hour

        return MoodInsights(
            total_patterns=len(patterns),
            dominant_mood=dominant,
            mood_stability=stability,
            peak_times=peak_times,
            recommendations=self._insight_recommendations(patterns),
        )

    @staticmethod
    def _insight_recommendations(patterns: List[MoodPattern]) -> List[str]:
        recommendations = []
        if len(patterns) < 3:
            recommendations.append("Try gaming at different times to discover more mood patterns")
        if any(p.confidence < 0.3 for p in patterns):
            recommendations.append("Some mood patterns need more data - keep tagging your sessions")
        if patterns and sum(1 for p in patterns if p.intensity > 0.7) > len(patterns) / 2:
            recommendations.append("Consider adding some relaxed gaming sessions for balance")
        return recommendations
