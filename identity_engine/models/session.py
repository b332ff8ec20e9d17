"""
Play Session and Catalog Records

Input records handed to the engines by the session collector and the catalog
service. Validation happens here; engines call parse_sessions/parse_games and
skip (and count) whatever does not validate.
"""

from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from identity_engine.core.exceptions import InvalidSessionError
from identity_engine.data.moods import normalize_genre


def _genre_labels(value: Any) -> List[str]:
    """Accept ['RPG', ...] or [{'id': 'rpg', 'name': 'RPG'}, ...]."""
    if value is None:
        return []
    if isinstance(value, (str, Mapping)):
        value = [value]

    labels = []
    for item in value:
        if isinstance(item, Mapping):
            item = item.get("id") or item.get("name")
        if item:
            label = normalize_genre(item)
            if label and label not in labels:
                labels.append(label)
    return labels


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Aware timestamps are compared in UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Session(BaseModel):
    """One observed play session. Immutable once recorded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    game_id: str = Field(..., alias="gameId", min_length=1)
    start_time: Optional[datetime] = Field(None, alias="startTime")
    point_in_time: Optional[datetime] = Field(None, alias="pointInTime")
    end_time: Optional[datetime] = Field(None, alias="endTime")
    duration_minutes: Optional[float] = Field(None, alias="durationMinutes", ge=0)
    achievement_count: Optional[int] = Field(None, alias="achievementCount", ge=0)
    is_multiplayer: Optional[bool] = Field(None, alias="isMultiplayer")

    # Mood tagging and catalog context
    mood: Optional[str] = None
    intensity: Optional[float] = Field(None, ge=0, le=10)
    genres: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    device: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("game_id", mode="before")
    @classmethod
    def _coerce_game_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("mood", "device", mode="before")
    @classmethod
    def _clean_label(cls, value):
        if isinstance(value, str):
            return value.strip().lower() or None
        return value

    @field_validator("genres", mode="before")
    @classmethod
    def _clean_genres(cls, value):
        return _genre_labels(value)

    @field_validator("start_time", "point_in_time", "end_time", mode="after")
    @classmethod
    def _strip_timezone(cls, value):
        return naive_utc(value)

    @property
    def timestamp(self) -> Optional[datetime]:
        """When the session happened: start, else point in time, else end."""
        return self.start_time or self.point_in_time or self.end_time

    @property
    def duration(self) -> float:
        """Minutes played; derived from start/end when not recorded."""
        if self.duration_minutes is not None:
            return float(self.duration_minutes)
        if self.start_time and self.end_time and self.end_time > self.start_time:
            return (self.end_time - self.start_time).total_seconds() / 60
        return 0.0

    @property
    def ended_at(self) -> Optional[datetime]:
        if self.end_time:
            return self.end_time
        if self.timestamp:
            return self.timestamp + timedelta(minutes=self.duration)
        return None

    @property
    def primary_genre(self) -> Optional[str]:
        return self.genres[0] if self.genres else None


class GameRecord(BaseModel):
    """Candidate game from the catalog collaborator."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    is_multiplayer: Optional[bool] = Field(None, alias="isMultiplayer")
    intensity: Optional[float] = Field(None, ge=0, le=1)
    socialness: Optional[float] = Field(None, ge=0, le=1)
    popularity: Optional[float] = None
    moods: List[str] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("genres", mode="before")
    @classmethod
    def _clean_genres(cls, value):
        return _genre_labels(value)

    @field_validator("moods", mode="before")
    @classmethod
    def _clean_moods(cls, value):
        return [str(m).strip().lower() for m in (value or []) if m]

    @property
    def primary_genre(self) -> Optional[str]:
        return self.genres[0] if self.genres else None


def to_session(record: Any) -> Session:
    """Validate one raw record. Raises InvalidSessionError."""
    if isinstance(record, Session):
        return record
    if not isinstance(record, Mapping):
        raise InvalidSessionError(
            "Session record must be a mapping",
            {"type": type(record).__name__}
        )
    try:
        return Session.model_validate(record)
    except ValidationError as e:
        raise InvalidSessionError(
            "Session record failed validation",
            {"errors": [err["loc"] for err in e.errors()]}
        ) from e


def parse_sessions(records: Optional[Iterable[Any]]) -> Tuple[List[Session], int]:
    """
    Validate raw session records.

    Returns:
        (valid sessions in input order, number of skipped records)
    """
    sessions: List[Session] = []
    skipped = 0
    for record in records or []:
        try:
            sessions.append(to_session(record))
        except InvalidSessionError:
            skipped += 1
    return sessions, skipped


def parse_games(records: Optional[Iterable[Any]]) -> Tuple[List[GameRecord], int]:
    """Validate candidate game records; same contract as parse_sessions."""
    games: List[GameRecord] = []
    skipped = 0
    for record in records or []:
        if isinstance(record, GameRecord):
            games.append(record)
            continue
        try:
            games.append(GameRecord.model_validate(record))
        except ValidationError:
            skipped += 1
    return games, skipped


def sort_chronologically(sessions: Iterable[Session]) -> List[Session]:
    """Oldest first; sessions without any timestamp keep their order at the end."""
    return sorted(
        sessions,
        key=lambda s: (s.timestamp is None, s.timestamp or datetime.min)
    )
