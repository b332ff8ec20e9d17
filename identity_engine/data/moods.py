"""
Static Mood and Genre Data

Mood catalog used as the output space of the mood network, plus the lookup
tables used by forecasting and suggestion scoring:

- MOOD_CATALOG: mood id -> energy level (1-10), social preference, genre affinities
- MOOD_ACTIVITIES: suggested activities per mood
- SEASONAL_CURVES: 12 monthly prevalence values per mood (Jan..Dec)
- ALTERNATIVE_MOODS: where a fading mood usually goes next
- GENRE_INTENSITY / GENRE_SOCIALNESS: 0-1 estimates by primary genre

The tables are tuning defaults, not fitted values.
"""

from typing import Dict, List

MOOD_CATALOG: Dict[str, Dict] = {
    "chill": {"energy": 2, "social": "solo", "genres": ["simulation", "puzzle", "adventure"]},
    "focused": {"energy": 7, "social": "solo", "genres": ["strategy", "puzzle", "rpg"]},
    "energetic": {"energy": 9, "social": "flexible", "genres": ["action", "sports", "racing"]},
    "lazy": {"energy": 1, "social": "solo", "genres": ["simulation", "puzzle", "adventure"]},
    "intense": {"energy": 10, "social": "competitive", "genres": ["action", "fighting", "shooter"]},
    "explore": {"energy": 6, "social": "solo", "genres": ["adventure", "open-world", "action-adventure"]},
    "adventure": {"energy": 8, "social": "flexible", "genres": ["rpg", "action-adventure"]},
    "curious": {"energy": 5, "social": "flexible", "genres": ["indie", "experimental", "puzzle"]},
    "grind": {"energy": 6, "social": "solo", "genres": ["rpg", "mmorpg", "action-rpg"]},
    "compete": {"energy": 9, "social": "competitive", "genres": ["fighting", "sports", "shooter"]},
    "cooperate": {"energy": 6, "social": "cooperative", "genres": ["moba", "party", "survival"]},
    "social": {"energy": 5, "social": "flexible", "genres": ["party", "music", "sports"]},
    "solve": {"energy": 7, "social": "solo", "genres": ["puzzle", "strategy"]},
    "create": {"energy": 6, "social": "flexible", "genres": ["simulation", "sandbox"]},
    "immerse": {"energy": 6, "social": "solo", "genres": ["rpg", "narrative", "adventure"]},
    "nostalgic": {"energy": 4, "social": "flexible", "genres": ["retro", "platformer", "arcade"]},
}

# Ordered mood ids; index order is the network's output layout
MOOD_IDS: List[str] = list(MOOD_CATALOG.keys())

DEFAULT_MOOD = "chill"

MOOD_ACTIVITIES: Dict[str, List[str]] = {
    "chill": ["Casual gaming", "Exploration", "Creative building"],
    "focused": ["Strategy games", "Puzzle solving", "Story progression"],
    "energetic": ["Action games", "Fast-paced challenges", "Sports games"],
    "lazy": ["Idle games", "Short sessions", "Comfort replays"],
    "intense": ["Ranked matches", "Boss rushes", "Hard difficulty runs"],
    "explore": ["Open-world exploration", "Map completion", "Side quests"],
    "adventure": ["Story campaigns", "New regions", "Quest lines"],
    "curious": ["New genres", "Indie discoveries", "Unusual mechanics"],
    "grind": ["Level farming", "Loot runs", "Daily challenges"],
    "compete": ["Ranked matches", "Tournaments", "Skill training"],
    "cooperate": ["Co-op missions", "Raids", "Team objectives"],
    "social": ["Multiplayer sessions", "Party games", "Community events"],
    "solve": ["Puzzle games", "Logic challenges", "Optimization"],
    "create": ["Sandbox games", "Building games", "Level editors"],
    "immerse": ["Narrative games", "Atmospheric worlds", "Long RPG sessions"],
    "nostalgic": ["Retro classics", "Remasters", "Childhood favorites"],
}

SEASONAL_CURVES: Dict[str, List[float]] = {
    #            Jan  Feb  Mar  Apr  May  Jun  Jul  Aug  Sep  Oct  Nov  Dec
    "chill":     [0.6, 0.6, 0.5, 0.5, 0.5, 0.6, 0.7, 0.7, 0.5, 0.5, 0.6, 0.7],
    "focused":   [0.7, 0.7, 0.6, 0.6, 0.5, 0.4, 0.4, 0.4, 0.7, 0.7, 0.6, 0.5],
    "energetic": [0.4, 0.4, 0.5, 0.6, 0.7, 0.8, 0.8, 0.7, 0.6, 0.5, 0.4, 0.4],
    "lazy":      [0.7, 0.6, 0.5, 0.4, 0.4, 0.5, 0.6, 0.6, 0.4, 0.4, 0.5, 0.8],
    "intense":   [0.5, 0.5, 0.5, 0.5, 0.6, 0.6, 0.6, 0.6, 0.5, 0.6, 0.6, 0.5],
    "explore":   [0.5, 0.5, 0.6, 0.6, 0.7, 0.7, 0.8, 0.7, 0.6, 0.5, 0.6, 0.6],
    "adventure": [0.5, 0.5, 0.6, 0.6, 0.6, 0.7, 0.7, 0.7, 0.6, 0.6, 0.7, 0.7],
    "curious":   [0.6, 0.5, 0.5, 0.6, 0.6, 0.5, 0.5, 0.5, 0.6, 0.6, 0.5, 0.5],
    "grind":     [0.7, 0.7, 0.6, 0.5, 0.5, 0.5, 0.5, 0.5, 0.6, 0.6, 0.7, 0.7],
    "compete":   [0.5, 0.5, 0.5, 0.6, 0.6, 0.6, 0.5, 0.5, 0.6, 0.6, 0.6, 0.5],
    "cooperate": [0.5, 0.5, 0.5, 0.5, 0.6, 0.6, 0.6, 0.6, 0.5, 0.5, 0.6, 0.8],
    "social":    [0.5, 0.5, 0.5, 0.5, 0.6, 0.7, 0.7, 0.7, 0.5, 0.5, 0.6, 0.8],
    "solve":     [0.6, 0.6, 0.6, 0.5, 0.5, 0.4, 0.4, 0.4, 0.6, 0.6, 0.6, 0.5],
    "create":    [0.6, 0.6, 0.5, 0.5, 0.5, 0.5, 0.6, 0.6, 0.5, 0.5, 0.6, 0.6],
    "immerse":   [0.7, 0.7, 0.6, 0.5, 0.4, 0.4, 0.5, 0.5, 0.6, 0.7, 0.8, 0.8],
    "nostalgic": [0.6, 0.5, 0.5, 0.4, 0.4, 0.4, 0.5, 0.5, 0.5, 0.6, 0.7, 0.9],
}

DEFAULT_SEASONALITY = 0.5

ALTERNATIVE_MOODS: Dict[str, str] = {
    "chill": "explore",
    "focused": "chill",
    "energetic": "chill",
    "lazy": "curious",
    "intense": "focused",
    "explore": "immerse",
    "adventure": "chill",
    "curious": "explore",
    "grind": "social",
    "compete": "cooperate",
    "cooperate": "social",
    "social": "chill",
    "solve": "create",
    "create": "curious",
    "immerse": "chill",
    "nostalgic": "curious",
}

POSITIVE_MOODS = {"energetic", "focused", "create", "explore", "social", "adventure"}
NEGATIVE_MOODS = {"frustrated", "bored", "tired", "lazy"}

GENRE_INTENSITY: Dict[str, float] = {
    "action": 0.8,
    "shooter": 0.85,
    "fighting": 0.9,
    "racing": 0.7,
    "sports": 0.6,
    "rpg": 0.5,
    "strategy": 0.4,
    "adventure": 0.3,
    "simulation": 0.3,
    "puzzle": 0.2,
}

GENRE_SOCIALNESS: Dict[str, float] = {
    "sports": 0.9,
    "moba": 0.9,
    "party": 0.95,
    "racing": 0.8,
    "shooter": 0.75,
    "action": 0.7,
    "rpg": 0.6,
    "strategy": 0.5,
    "adventure": 0.4,
    "simulation": 0.3,
    "puzzle": 0.2,
}


def normalize_genre(genre: str) -> str:
    """Lowercase and hyphenate a genre label ('Open World' -> 'open-world')."""
    return "-".join(str(genre).strip().lower().replace("_", " ").split())


def mood_index(mood_id: str) -> int:
    """Position of a mood in the network output layer, or -1 if unknown."""
    try:
        return MOOD_IDS.index(mood_id)
    except ValueError:
        return -1


def seasonal_influence(mood_id: str, month: int) -> float:
    """Seasonal prevalence of a mood for a 1-based month."""
    curve = SEASONAL_CURVES.get(mood_id)
    if not curve or not 1 <= month <= 12:
        return DEFAULT_SEASONALITY
    return curve[month - 1]
