"""
Engine Configuration

Constructor-time settings for the mood analyzer and the suggestion engine.
Every config can be built directly or loaded from IDENTITY_* environment
variables through from_env().
"""

import os
from typing import Dict, Optional, Sequence

from identity_engine.core.exceptions import ConfigurationError

SUPPORTED_ACTIVATIONS = ("relu", "sigmoid", "tanh")

FIT_DIMENSIONS = ("time", "mood", "energy", "social", "sequence")


def _int_list(raw: str) -> list:
    return [int(part) for part in raw.split(",") if part.strip()]


class NeuralMoodConfig:
    """Configuration for the neural mood analyzer"""

    def __init__(
        self,
        learning_rate: float = 0.01,
        momentum: float = 0.9,
        hidden_layers: Sequence[int] = (64, 32, 16),
        activation_function: str = "relu",
        batch_size: int = 32,
        epochs: int = 100,
        seed: Optional[int] = None,
    ):
        self.learning_rate = learning_rate
        self.momentum = momentum
        self.hidden_layers = list(hidden_layers)
        self.activation_function = activation_function.lower()
        self.batch_size = batch_size
        self.epochs = epochs
        self.seed = seed
        self.validate()

    def validate(self) -> None:
        """Reject settings the network cannot train with."""
        if self.activation_function not in SUPPORTED_ACTIVATIONS:
            raise ConfigurationError(
                f"Unsupported activation function: {self.activation_function}",
                {"supported": list(SUPPORTED_ACTIVATIONS)}
            )
        if not self.hidden_layers or any(size <= 0 for size in self.hidden_layers):
            raise ConfigurationError(
                "hidden_layers must be a non-empty list of positive sizes",
                {"hidden_layers": self.hidden_layers}
            )
        if self.learning_rate <= 0:
            raise ConfigurationError("learning_rate must be positive")
        if not 0 <= self.momentum < 1:
            raise ConfigurationError("momentum must be in [0, 1)")
        if self.batch_size <= 0 or self.epochs <= 0:
            raise ConfigurationError(
                "batch_size and epochs must be positive",
                {"batch_size": self.batch_size, "epochs": self.epochs}
            )

    @classmethod
    def from_env(cls) -> "NeuralMoodConfig":
        """Load configuration from environment variables"""
        seed = os.getenv("IDENTITY_NN_SEED")
        return cls(
            learning_rate=float(os.getenv("IDENTITY_NN_LEARNING_RATE", "0.01")),
            momentum=float(os.getenv("IDENTITY_NN_MOMENTUM", "0.9")),
            hidden_layers=_int_list(os.getenv("IDENTITY_NN_HIDDEN_LAYERS", "64,32,16")),
            activation_function=os.getenv("IDENTITY_NN_ACTIVATION", "relu"),
            batch_size=int(os.getenv("IDENTITY_NN_BATCH_SIZE", "32")),
            epochs=int(os.getenv("IDENTITY_NN_EPOCHS", "100")),
            seed=int(seed) if seed else None,
        )

    def __repr__(self) -> str:
        return (
            f"NeuralMoodConfig(learning_rate={self.learning_rate}, momentum={self.momentum}, "
            f"hidden_layers={self.hidden_layers}, activation_function='{self.activation_function}', "
            f"batch_size={self.batch_size}, epochs={self.epochs})"
        )


class SuggestionEngineConfig:
    """Configuration for predictive game suggestions"""

    def __init__(
        self,
        cache_ttl_seconds: float = 300.0,
        max_suggestions: int = 10,
        max_alternatives: int = 3,
        fallback_count: int = 5,
        fallback_confidence: float = 0.3,
        max_sequence_length: int = 3,
        fit_weights: Optional[Dict[str, float]] = None,
    ):
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_suggestions = max_suggestions
        self.max_alternatives = max_alternatives
        self.fallback_count = fallback_count
        self.fallback_confidence = fallback_confidence
        self.max_sequence_length = max_sequence_length
        self.fit_weights = self._normalize_weights(fit_weights)

        if cache_ttl_seconds < 0:
            raise ConfigurationError("cache_ttl_seconds must not be negative")
        if max_sequence_length < 1:
            raise ConfigurationError("max_sequence_length must be at least 1")
        if not 0 <= fallback_confidence <= 1:
            raise ConfigurationError("fallback_confidence must be in [0, 1]")

    @staticmethod
    def _normalize_weights(weights: Optional[Dict[str, float]]) -> Dict[str, float]:
        weights = dict(weights or {})
        unknown = set(weights) - set(FIT_DIMENSIONS)
        if unknown:
            raise ConfigurationError(
                "Unknown fit dimensions in fit_weights",
                {"unknown": sorted(unknown)}
            )

        merged = {dim: float(weights.get(dim, 1.0)) for dim in FIT_DIMENSIONS}
        if any(value < 0 for value in merged.values()):
            raise ConfigurationError("fit_weights must not be negative")

        total = sum(merged.values())
        if total <= 0:
            raise ConfigurationError("fit_weights must not all be zero")
        return {dim: value / total for dim, value in merged.items()}

    @classmethod
    def from_env(cls) -> "SuggestionEngineConfig":
        """Load configuration from environment variables"""
        return cls(
            cache_ttl_seconds=float(os.getenv("IDENTITY_SUGGESTION_CACHE_TTL", "300")),
            max_suggestions=int(os.getenv("IDENTITY_MAX_SUGGESTIONS", "10")),
            fallback_count=int(os.getenv("IDENTITY_FALLBACK_COUNT", "5")),
            fallback_confidence=float(os.getenv("IDENTITY_FALLBACK_CONFIDENCE", "0.3")),
        )
