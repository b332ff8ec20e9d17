"""
Behavior Pattern Extraction

Builds a BehaviorPattern from a user's session history across five
categories:

1. time - (hour, weekday) slots with likelihood and preferred genres
2. session_length - clusters of similar-length sessions per mood
3. genre_sequence - genre n-grams with next-genre counts
4. mood_transition - P(next mood | mood) between consecutive sessions
5. device - per-device session counts, lengths, genres and hours

extract() rebuilds everything from a history (pandas for the grouped
aggregates); update() folds a single new session into an existing pattern.
"""

from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from identity_engine.core.logging_config import get_logger
from identity_engine.models.behavior import (
    BehaviorPattern,
    DevicePattern,
    GenreSequence,
    MoodTransitionPattern,
    SessionLengthPattern,
    TimePattern,
)
from identity_engine.models.session import Session, sort_chronologically

logger = get_logger(__name__)

LENGTH_TOLERANCE_MINUTES = 30
MAX_PREFERRED_GENRES = 3
MAX_TRIGGER_GAMES = 5


def _top_genres(genres: pd.Series, limit: int = MAX_PREFERRED_GENRES) -> List[str]:
    counts = genres.dropna().value_counts()
    return [str(genre) for genre in counts.index[:limit]]


def _gap_minutes(previous: Optional[Session], current: Session) -> Optional[float]:
    if previous is None or previous.ended_at is None or current.timestamp is None:
        return None
    gap = (current.timestamp - previous.ended_at).total_seconds() / 60
    return gap if gap >= 0 else None


def _running_mean(mean: float, count: int, value: float) -> float:
    """Mean after adding value to count existing observations."""
    return (mean * count + value) / (count + 1)


class BehaviorPatternExtractor:
    """
    Extracts and incrementally maintains per-user behavior patterns.

    Args:
        max_sequence_length: Longest genre n-gram tracked
    """

    def __init__(self, max_sequence_length: int = 3):
        self.max_sequence_length = max_sequence_length

    # ==================== Batch extraction ====================

    def extract(self, user_id: str, sessions: List[Session]) -> BehaviorPattern:
        """Build a fresh pattern from validated sessions."""
        ordered = sort_chronologically(sessions)
        pattern = BehaviorPattern(user_id=user_id)
        if not ordered:
            return pattern

        df = self._to_frame(ordered)

        pattern.time_patterns = self.extract_time_patterns(df)
        pattern.mood_transitions = self.extract_mood_transitions(df)
        pattern.device_patterns = self.extract_device_patterns(df)

        # Order-dependent categories share the incremental code path
        for session in ordered:
            self._fold_session_length(pattern.session_length_patterns, session)
            self._fold_genre_sequence(pattern, session)
            self._fold_aggregates(pattern, session)

        self._refresh_sequence_frequencies(pattern)

        logger.debug(
            "behavior_patterns_extracted",
            user_id=user_id,
            sessions=len(ordered),
            time_slots=len(pattern.time_patterns),
            length_clusters=len(pattern.session_length_patterns),
            genre_sequences=len(pattern.genre_sequences),
            mood_transitions=len(pattern.mood_transitions),
            devices=len(pattern.device_patterns)
        )
        return pattern

    @staticmethod
    def _to_frame(ordered: List[Session]) -> pd.DataFrame:
        df = pd.DataFrame([
            {
                "game_id": s.game_id,
                "timestamp": s.timestamp,
                "ended_at": s.ended_at,
                "duration": s.duration,
                "genre": s.primary_genre,
                "mood": s.mood,
                "device": s.device,
            }
            for s in ordered
        ])
        df["timestamp"] = pd.to_datetime(df["timestamp"])
        df["ended_at"] = pd.to_datetime(df["ended_at"])
        return df

    def extract_time_patterns(self, df: pd.DataFrame) -> Dict[tuple, TimePattern]:
        """
        Category 1: When the user plays.

        Likelihood is the share of timed sessions falling in each
        (hour, weekday) slot.
        """
        timed = df[df["timestamp"].notna()].copy()
        if timed.empty:
            return {}

        timed["hour"] = timed["timestamp"].dt.hour
        timed["weekday"] = timed["timestamp"].dt.weekday
        total = len(timed)

        patterns = {}
        for (hour, weekday), group in timed.groupby(["hour", "weekday"]):
            key = (int(hour), int(weekday))
            patterns[key] = TimePattern(
                hour=int(hour),
                day_of_week=int(weekday),
                session_count=len(group),
                likelihood=len(group) / total,
                average_session_length=float(group["duration"].mean()),
                preferred_genres=_top_genres(group["genre"]),
            )
        return patterns

    def extract_mood_transitions(self, df: pd.DataFrame) -> Dict[tuple, MoodTransitionPattern]:
        """
        Category 4: How moods follow each other.

        Only consecutive sessions that both carry a mood form a transition.
        """
        frame = df.copy()
        frame["next_mood"] = frame["mood"].shift(-1)
        frame["next_game"] = frame["game_id"].shift(-1)
        frame["gap"] = (frame["timestamp"].shift(-1) - frame["ended_at"]).dt.total_seconds() / 60

        pairs = frame.dropna(subset=["mood", "next_mood"])
        if pairs.empty:
            return {}

        outgoing = pairs.groupby("mood").size()
        transitions = {}
        for (from_mood, to_mood), group in pairs.groupby(["mood", "next_mood"]):
            gaps = group["gap"][group["gap"] >= 0]
            transitions[(from_mood, to_mood)] = MoodTransitionPattern(
                from_mood=from_mood,
                to_mood=to_mood,
                count=len(group),
                probability=len(group) / int(outgoing[from_mood]),
                average_time=float(gaps.mean()) if not gaps.empty else 0.0,
                trigger_games=[str(g) for g in group["next_game"].value_counts().index[:MAX_TRIGGER_GAMES]],
            )
        return transitions

    def extract_device_patterns(self, df: pd.DataFrame) -> Dict[str, DevicePattern]:
        """Category 5: Where the user plays."""
        with_device = df[df["device"].notna()]
        patterns = {}
        for device, group in with_device.groupby("device"):
            hours = group["timestamp"].dropna().dt.hour
            patterns[device] = DevicePattern(
                device=device,
                session_count=len(group),
                average_session_length=float(group["duration"].mean()),
                preferred_genres=_top_genres(group["genre"]),
                hours=sorted(int(h) for h in hours.unique()),
            )
        return patterns

    # ==================== Incremental updates ====================

    def update(self, pattern: BehaviorPattern, session: Session) -> BehaviorPattern:
        """Fold one session into every category of an existing pattern."""
        self._fold_time(pattern, session)
        self._fold_session_length(pattern.session_length_patterns, session)
        self._fold_genre_sequence(pattern, session)
        self._fold_mood_transition(pattern, session)
        self._fold_device(pattern, session)
        self._fold_aggregates(pattern, session)
        self._refresh_sequence_frequencies(pattern)
        return pattern

    def _fold_time(self, pattern: BehaviorPattern, session: Session) -> None:
        if session.timestamp is None:
            return

        key = (session.timestamp.hour, session.timestamp.weekday())
        slot = pattern.time_patterns.get(key)
        if slot is None:
            slot = TimePattern(hour=key[0], day_of_week=key[1])
            pattern.time_patterns[key] = slot

        slot.average_session_length = _running_mean(
            slot.average_session_length, slot.session_count, session.duration
        )
        slot.session_count += 1
        genre = session.primary_genre
        if genre and genre not in slot.preferred_genres and len(slot.preferred_genres) < MAX_PREFERRED_GENRES:
            slot.preferred_genres.append(genre)

        total = sum(p.session_count for p in pattern.time_patterns.values())
        for p in pattern.time_patterns.values():
            p.likelihood = p.session_count / total

    @staticmethod
    def _fold_session_length(patterns: List[SessionLengthPattern], session: Session) -> None:
        """Category 2: join the first cluster within 30 minutes with the same mood."""
        genre = session.primary_genre
        for cluster in patterns:
            if cluster.mood == session.mood and abs(cluster.duration - session.duration) <= LENGTH_TOLERANCE_MINUTES:
                cluster.duration = _running_mean(cluster.duration, cluster.session_count, session.duration)
                cluster.session_count += 1
                if session.completed:
                    cluster.completed_count += 1
                if genre and genre not in cluster.preferred_genres:
                    cluster.preferred_genres.append(genre)
                return

        patterns.append(SessionLengthPattern(
            duration=session.duration,
            mood=session.mood,
            session_count=1,
            completed_count=1 if session.completed else 0,
            preferred_genres=[genre] if genre else [],
        ))

    def _fold_genre_sequence(self, pattern: BehaviorPattern, session: Session) -> None:
        """
        Category 3: record the new genre as the successor of every trailing
        n-gram, then count the n-grams ending with it.

        Sessions without a genre leave the sequence untouched.
        """
        genre = session.primary_genre
        if not genre:
            return

        previous = pattern.recent_genres
        gap = _gap_minutes(pattern.last_session, session)
        for n in range(1, min(len(previous), self.max_sequence_length) + 1):
            sequence = pattern.genre_sequences.get(tuple(previous[-n:]))
            if sequence is None:
                continue
            transitions = sum(sequence.next_genre_counts.values())
            if gap is not None:
                sequence.average_transition_time = _running_mean(
                    sequence.average_transition_time, transitions, gap
                )
            sequence.next_genre_counts[genre] = sequence.next_genre_counts.get(genre, 0) + 1

        current = (previous + [genre])[-self.max_sequence_length:]
        for n in range(1, len(current) + 1):
            key = tuple(current[-n:])
            sequence = pattern.genre_sequences.get(key)
            if sequence is None:
                sequence = GenreSequence(sequence=key)
                pattern.genre_sequences[key] = sequence
            sequence.count += 1

        pattern.recent_genres = current

    def _fold_mood_transition(self, pattern: BehaviorPattern, session: Session) -> None:
        previous = pattern.last_session
        if previous is None or not previous.mood or not session.mood:
            return

        key = (previous.mood, session.mood)
        transition = pattern.mood_transitions.get(key)
        if transition is None:
            transition = MoodTransitionPattern(from_mood=previous.mood, to_mood=session.mood)
            pattern.mood_transitions[key] = transition

        gap = _gap_minutes(previous, session)
        if gap is not None:
            transition.average_time = _running_mean(transition.average_time, transition.count, gap)
        transition.count += 1
        if session.game_id not in transition.trigger_games and len(transition.trigger_games) < MAX_TRIGGER_GAMES:
            transition.trigger_games.append(session.game_id)

        outgoing = pattern.transitions_from(previous.mood)
        total = sum(t.count for t in outgoing)
        for t in outgoing:
            t.probability = t.count / total

    @staticmethod
    def _fold_device(pattern: BehaviorPattern, session: Session) -> None:
        if not session.device:
            return

        device = pattern.device_patterns.get(session.device)
        if device is None:
            device = DevicePattern(device=session.device)
            pattern.device_patterns[session.device] = device

        device.average_session_length = _running_mean(
            device.average_session_length, device.session_count, session.duration
        )
        device.session_count += 1
        genre = session.primary_genre
        if genre and genre not in device.preferred_genres and len(device.preferred_genres) < MAX_PREFERRED_GENRES:
            device.preferred_genres.append(genre)
        if session.timestamp and session.timestamp.hour not in device.hours:
            device.hours = sorted(device.hours + [session.timestamp.hour])

    @staticmethod
    def _fold_aggregates(pattern: BehaviorPattern, session: Session) -> None:
        pattern.session_lengths.append(session.duration)
        genre = session.primary_genre
        if genre:
            pattern.genre_playtime[genre] = pattern.genre_playtime.get(genre, 0.0) + session.duration
            games = pattern.genre_games.setdefault(genre, {})
            games[session.game_id] = games.get(session.game_id, 0) + 1
        pattern.last_session = session
        pattern.total_sessions += 1

    @staticmethod
    def _refresh_sequence_frequencies(pattern: BehaviorPattern) -> None:
        totals: Dict[int, int] = {}
        for key, sequence in pattern.genre_sequences.items():
            totals[len(key)] = totals.get(len(key), 0) + sequence.count
        for key, sequence in pattern.genre_sequences.items():
            sequence.frequency = sequence.count / totals[len(key)] if totals[len(key)] else 0.0


def session_length_stats(pattern: BehaviorPattern) -> Optional[Dict[str, float]]:
    """Mean and standard deviation of the user's session lengths."""
    if not pattern.session_lengths:
        return None
    lengths = np.asarray(pattern.session_lengths, dtype=float)
    return {"mean": float(lengths.mean()), "std": float(lengths.std())}
