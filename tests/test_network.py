"""
Unit Tests for the Feed-Forward Mood Network
"""

import numpy as np
import pytest

from identity_engine.ml.network import FeedForwardNetwork, softmax


def _toy_data():
    X = np.array([
        [1.0, 0.0, 0.0, 0.0],
        [0.9, 0.1, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.9, 0.1],
    ])
    Y = np.array([
        [1.0, 0.0],
        [1.0, 0.0],
        [0.0, 1.0],
        [0.0, 1.0],
    ])
    return X, Y


class TestSoftmax:

    def test_rows_sum_to_one(self):
        probs = softmax(np.array([[1.0, 2.0, 3.0], [1000.0, 1000.0, 1000.0]]))

        np.testing.assert_allclose(probs.sum(axis=1), [1.0, 1.0])
        np.testing.assert_allclose(probs[1], [1 / 3, 1 / 3, 1 / 3])


class TestFeedForwardNetwork:

    @pytest.mark.parametrize("activation", ["relu", "sigmoid", "tanh"])
    def test_predict_proba_is_distribution(self, activation):
        net = FeedForwardNetwork(4, [6, 5], 3, activation=activation, seed=1)

        probs = net.predict_proba(np.array([0.2, 0.4, 0.1, 0.9]))

        assert probs.shape == (3,)
        assert probs.sum() == pytest.approx(1.0)
        assert np.all(probs >= 0)

    def test_batch_prediction_shape(self):
        net = FeedForwardNetwork(4, [5], 2, seed=1)
        X, _ = _toy_data()

        assert net.predict_proba(X).shape == (4, 2)

    def test_training_reduces_loss(self):
        """Test momentum SGD fits a separable toy problem"""
        net = FeedForwardNetwork(4, [8], 2, learning_rate=0.05, momentum=0.9, seed=3)
        X, Y = _toy_data()

        history = net.fit(X, Y, epochs=200, batch_size=2)

        assert len(history) == 200
        assert history[-1] < history[0]
        predictions = net.predict_proba(X).argmax(axis=1)
        np.testing.assert_array_equal(predictions, [0, 0, 1, 1])

    def test_seed_makes_training_reproducible(self):
        X, Y = _toy_data()
        first = FeedForwardNetwork(4, [6], 2, seed=11)
        second = FeedForwardNetwork(4, [6], 2, seed=11)

        first.fit(X, Y, epochs=5, batch_size=2)
        second.fit(X, Y, epochs=5, batch_size=2)

        for w1, w2 in zip(first.weights, second.weights):
            np.testing.assert_array_equal(w1, w2)

    def test_input_importance_per_feature(self):
        net = FeedForwardNetwork(4, [6], 2, seed=2)

        importance = net.input_importance()

        assert importance.shape == (4,)
        assert np.all(importance > 0)
