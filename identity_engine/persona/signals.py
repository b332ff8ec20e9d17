"""
Player Signal Aggregation

Builds RawPlayerSignals from a session history so hosts that only hold raw
sessions can feed the trait extractor.
"""

from typing import Any, Iterable, Optional

import pandas as pd

from identity_engine.core.logging_config import get_logger, log_skipped_records
from identity_engine.models.persona import RawPlayerSignals
from identity_engine.models.session import parse_games, parse_sessions

logger = get_logger(__name__)

DAYS_PER_WEEK = 7


def derive_player_signals(
    sessions: Iterable[Any],
    catalog: Optional[Iterable[Any]] = None,
    difficulty_preference: Optional[str] = None,
) -> RawPlayerSignals:
    """
    Aggregate sessions into the six persona signals.

    Args:
        sessions: Raw session records (malformed ones are skipped)
        catalog: Optional game records used to look up genres for sessions
            that carry none
        difficulty_preference: Passed through; sessions do not record it

    Returns:
        RawPlayerSignals with absent fields left as None
    """
    parsed, skipped = parse_sessions(sessions)
    log_skipped_records("session", skipped, len(parsed) + skipped, "derive_player_signals")

    if not parsed:
        return RawPlayerSignals(difficulty_preference=difficulty_preference)

    games, _ = parse_games(catalog)
    genre_lookup = {game.id: game.primary_genre for game in games}

    df = pd.DataFrame([
        {
            "game_id": s.game_id,
            "timestamp": s.timestamp,
            "duration": s.duration,
            "genre": s.primary_genre or genre_lookup.get(s.game_id),
            "is_multiplayer": s.is_multiplayer,
            "completed": s.completed,
        }
        for s in parsed
    ])
    df["timestamp"] = pd.to_datetime(df["timestamp"])

    genre_df = df.dropna(subset=["genre"])
    playtime_by_genre = (
        genre_df.groupby("genre")["duration"].sum().to_dict()
        if not genre_df.empty else {}
    )

    timed = df.dropna(subset=["timestamp"])
    sessions_per_week = None
    if not timed.empty:
        span_days = (timed["timestamp"].max() - timed["timestamp"].min()).total_seconds() / 86400
        weeks = max(span_days / DAYS_PER_WEEK, 1.0)
        sessions_per_week = len(timed) / weeks

    multiplayer = df["is_multiplayer"].dropna()
    completed = df["completed"].dropna()

    signals = RawPlayerSignals(
        playtime_by_genre=playtime_by_genre,
        average_session_length_minutes=float(df["duration"].mean()),
        sessions_per_week=sessions_per_week,
        difficulty_preference=difficulty_preference,
        multiplayer_ratio=float(multiplayer.astype(float).mean()) if not multiplayer.empty else None,
        completion_rate=float(completed.astype(float).mean()) if not completed.empty else None,
    )

    logger.debug(
        "player_signals_derived",
        sessions=len(parsed),
        genres=len(playtime_by_genre),
        sessions_per_week=round(sessions_per_week, 2) if sessions_per_week is not None else None
    )
    return signals
