"""
Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Session history generators
- Candidate game catalog
- Fast network configuration
- Fake clock for cache expiry
- Structured log capture
- Assertion helpers
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List

import pytest
import structlog
import structlog.testing

from identity_engine.core.config import NeuralMoodConfig, SuggestionEngineConfig

# Monday evening
BASE_TIME = datetime(2025, 3, 3, 20, 0)


def make_session(game_id: str, start: datetime, duration: float = 60.0, **fields) -> Dict[str, Any]:
    """Raw session record the way the collector hands it over."""
    record = {"gameId": game_id, "startTime": start, "durationMinutes": duration}
    record.update(fields)
    return record


# Mock data generators

@pytest.fixture
def mood_history() -> List[Dict[str, Any]]:
    """
    Twelve days of a two-session evening routine:
    20:00 chill puzzle session (60 min), 22:00 focused strategy session (90 min).
    """
    sessions = []
    for day in range(12):
        evening = BASE_TIME + timedelta(days=day)
        sessions.append(make_session(
            "stardew", evening, 60,
            mood="chill", intensity=2, genres=["Puzzle"], tags=["after-work"],
            device="pc", isMultiplayer=False, completed=True
        ))
        sessions.append(make_session(
            "civ", evening + timedelta(hours=2), 90,
            mood="focused", intensity=8, genres=["Strategy"], tags=["campaign"],
            device="pc", isMultiplayer=False, completed=False
        ))
    return sessions


@pytest.fixture
def game_catalog() -> List[Dict[str, Any]]:
    return [
        {"id": "stardew", "title": "Stardew Valley", "genres": ["Puzzle"], "popularity": 0.7,
         "intensity": 0.2, "socialness": 0.3},
        {"id": "civ", "title": "Civilization VI", "genres": ["Strategy"], "popularity": 0.6,
         "intensity": 0.4, "socialness": 0.2},
        {"id": "doom", "title": "DOOM Eternal", "genres": ["Shooter"], "popularity": 0.9,
         "intensity": 0.95, "socialness": 0.4},
        {"id": "rocket", "title": "Rocket League", "genres": ["Sports"], "popularity": 0.8,
         "isMultiplayer": True},
        {"id": "portal", "title": "Portal 2", "genres": ["Puzzle"], "popularity": 0.5},
        {"id": "hades", "title": "Hades", "genres": ["Action"], "popularity": 0.85},
    ]


# Configuration fixtures

@pytest.fixture
def fast_config() -> NeuralMoodConfig:
    """Small, seeded network so training runs in milliseconds."""
    return NeuralMoodConfig(
        learning_rate=0.05,
        momentum=0.9,
        hidden_layers=(8,),
        activation_function="relu",
        batch_size=8,
        epochs=30,
        seed=7,
    )


@pytest.fixture
def suggestion_config() -> SuggestionEngineConfig:
    return SuggestionEngineConfig(cache_ttl_seconds=300, max_suggestions=10, fallback_count=5)


# Utility fixtures

class FakeClock:
    """Monotonic clock stand-in advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# Assertion helpers

def assert_confidence_valid(value: float):
    """Assert a confidence/score lies in [0, 1]"""
    assert 0.0 <= value <= 1.0, f"Confidence should be 0-1, got {value}"


def assert_sorted_by_confidence(suggestions):
    """Assert suggestions are ordered by non-increasing confidence"""
    confidences = [s.confidence for s in suggestions]
    assert confidences == sorted(confidences, reverse=True), f"Not sorted: {confidences}"


@pytest.fixture
def captured_logs():
    """Route structlog through contextvars into a capture list."""
    capture = structlog.testing.LogCapture()
    structlog.configure(processors=[structlog.contextvars.merge_contextvars, capture])
    yield capture.entries
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
