"""
Feed-Forward Mood Network

A deliberately small multilayer perceptron on plain numpy arrays:
- Dense hidden layers with relu / sigmoid / tanh
- Softmax output layer, cross-entropy loss
- Mini-batch training with momentum SGD (v = m*v - lr*grad; w += v)

Not a general training framework; it exists to map a fixed-size session
feature vector to a mood distribution.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np

EPSILON = 1e-12


def softmax(logits: np.ndarray) -> np.ndarray:
    """Row-wise softmax, shifted by the row max for stability."""
    shifted = logits - np.max(logits, axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return exp / np.sum(exp, axis=-1, keepdims=True)


def _activate(name: str, z: np.ndarray) -> np.ndarray:
    if name == "sigmoid":
        return 1.0 / (1.0 + np.exp(-np.clip(z, -500, 500)))
    if name == "tanh":
        return np.tanh(z)
    return np.maximum(0.0, z)


def _activation_gradient(name: str, z: np.ndarray, a: np.ndarray) -> np.ndarray:
    if name == "sigmoid":
        return a * (1.0 - a)
    if name == "tanh":
        return 1.0 - a ** 2
    return (z > 0).astype(z.dtype)


class FeedForwardNetwork:
    """
    Dense network: input -> hidden layers -> softmax output.

    Usage:
        net = FeedForwardNetwork(20, [32, 16], 16, activation="relu", seed=7)
        losses = net.fit(X, Y, epochs=100, batch_size=32)
        probs = net.predict_proba(x)
    """

    def __init__(
        self,
        input_size: int,
        hidden_layers: Sequence[int],
        output_size: int,
        activation: str = "relu",
        learning_rate: float = 0.01,
        momentum: float = 0.9,
        seed: Optional[int] = None,
    ):
        self.input_size = input_size
        self.output_size = output_size
        self.activation = activation
        self.learning_rate = learning_rate
        self.momentum = momentum
        self.rng = np.random.default_rng(seed)

        sizes = [input_size, *hidden_layers, output_size]
        self.weights: List[np.ndarray] = []
        self.biases: List[np.ndarray] = []
        for fan_in, fan_out in zip(sizes[:-1], sizes[1:]):
            # He init for relu, Xavier-style otherwise
            scale = np.sqrt(2.0 / fan_in) if activation == "relu" else np.sqrt(1.0 / fan_in)
            self.weights.append(self.rng.normal(0.0, scale, size=(fan_in, fan_out)))
            self.biases.append(np.zeros(fan_out))

        self._weight_velocity = [np.zeros_like(w) for w in self.weights]
        self._bias_velocity = [np.zeros_like(b) for b in self.biases]

    def _forward(self, X: np.ndarray) -> Tuple[List[np.ndarray], List[np.ndarray]]:
        activations = [X]
        pre_activations = []
        a = X
        last = len(self.weights) - 1
        for i, (W, b) in enumerate(zip(self.weights, self.biases)):
            z = a @ W + b
            pre_activations.append(z)
            a = softmax(z) if i == last else _activate(self.activation, z)
            activations.append(a)
        return activations, pre_activations

    def predict_proba(self, x: np.ndarray) -> np.ndarray:
        """Mood distribution for one feature vector (1-D) or a batch (2-D)."""
        x = np.asarray(x, dtype=float)
        single = x.ndim == 1
        activations, _ = self._forward(x.reshape(1, -1) if single else x)
        probs = activations[-1]
        return probs[0] if single else probs

    def train_batch(self, X: np.ndarray, Y: np.ndarray) -> float:
        """One momentum-SGD step on a batch. Returns the batch cross-entropy."""
        activations, pre_activations = self._forward(X)
        probs = activations[-1]
        n = X.shape[0]
        loss = float(-np.sum(Y * np.log(probs + EPSILON)) / n)

        # Softmax + cross-entropy gradient
        delta = (probs - Y) / n
        for layer in reversed(range(len(self.weights))):
            grad_W = activations[layer].T @ delta
            grad_b = delta.sum(axis=0)

            if layer > 0:
                delta = (delta @ self.weights[layer].T) * _activation_gradient(
                    self.activation, pre_activations[layer - 1], activations[layer]
                )

            self._weight_velocity[layer] = (
                self.momentum * self._weight_velocity[layer] - self.learning_rate * grad_W
            )
            self._bias_velocity[layer] = (
                self.momentum * self._bias_velocity[layer] - self.learning_rate * grad_b
            )
            self.weights[layer] += self._weight_velocity[layer]
            self.biases[layer] += self._bias_velocity[layer]

        return loss

    def fit(self, X: np.ndarray, Y: np.ndarray, epochs: int, batch_size: int) -> List[float]:
        """
        Train in shuffled mini-batches.

        Returns:
            Mean loss per epoch
        """
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        n = X.shape[0]
        history = []
        for _ in range(epochs):
            order = self.rng.permutation(n)
            batch_losses = []
            for start in range(0, n, batch_size):
                idx = order[start:start + batch_size]
                batch_losses.append(self.train_batch(X[idx], Y[idx]))
            history.append(float(np.mean(batch_losses)))
        return history

    def input_importance(self) -> np.ndarray:
        """Mean absolute first-layer weight per input feature."""
        return np.mean(np.abs(self.weights[0]), axis=1)
