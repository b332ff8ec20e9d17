"""
Per-User State Stores

All mutable engine state (behavior patterns, mood analyzers) is keyed by user
id and held in a store injected at construction time. The default store is an
in-memory dict; hosts can subclass UserStateStore to back it with something
else.

Mutating calls for the same user are not atomic; the host serializes them.
"""

from typing import Any, Dict, Iterator, Optional

from identity_engine.core.config import NeuralMoodConfig
from identity_engine.core.logging_config import get_logger
from identity_engine.ml.neural_mood_analyzer import NeuralMoodAnalyzer

logger = get_logger(__name__)


class UserStateStore:
    """Keyed store interface for per-user state."""

    def get(self, user_id: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, user_id: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, user_id: str) -> None:
        raise NotImplementedError

    def user_ids(self) -> Iterator[str]:
        raise NotImplementedError

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None


class InMemoryUserStateStore(UserStateStore):
    """Dict-backed store. One instance per engine; never shared across engines."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, user_id: str) -> Optional[Any]:
        return self._data.get(user_id)

    def set(self, user_id: str, value: Any) -> None:
        self._data[user_id] = value

    def delete(self, user_id: str) -> None:
        self._data.pop(user_id, None)

    def user_ids(self) -> Iterator[str]:
        return iter(list(self._data.keys()))

    def __len__(self) -> int:
        return len(self._data)


class MoodAnalyzerRegistry:
    """
    Hands out one NeuralMoodAnalyzer per user.

    Usage:
        registry = MoodAnalyzerRegistry(NeuralMoodConfig.from_env())
        analyzer = registry.for_user("u-1")
        analyzer.analyze_sessions(sessions)
    """

    def __init__(
        self,
        config: Optional[NeuralMoodConfig] = None,
        store: Optional[UserStateStore] = None
    ):
        self.config = config or NeuralMoodConfig()
        self.store = store if store is not None else InMemoryUserStateStore()

    def for_user(self, user_id: str):
        analyzer = self.store.get(user_id)
        if analyzer is None:
            analyzer = NeuralMoodAnalyzer(self.config)
            self.store.set(user_id, analyzer)
            logger.debug("mood_analyzer_created", user_id=user_id)
        return analyzer

    def forget(self, user_id: str) -> None:
        self.store.delete(user_id)
