# IRLS reweighting strategies: one non-negative weight per HR pixel from the
# current estimate and the registered (regularizer, lambda) pairs.
import abc

import numpy as np


def residual_magnitudes(estimate, regularizers):
    """sqrt(sum_k (lambda_k * r_k,i)^2) per pixel."""
    estimate = np.asarray(estimate, dtype=np.float64)
    total = np.zeros(estimate.size, dtype=np.float64)
    for regularizer, weight in regularizers:
        r = regularizer.apply_to_image(estimate)
        total += (weight * r) ** 2
    return np.sqrt(total)


class IrlsWeightStrategy(abc.ABC):

    @abc.abstractmethod
    def compute_weights(self, estimate, regularizers):
        """Returns a flat array of estimate.size non-negative weights."""


class UniformWeights(IrlsWeightStrategy):
    """Keeps every weight at 1, which reduces IRLS to plain L2 MAP."""

    def compute_weights(self, estimate, regularizers):
        return np.ones(np.asarray(estimate).size, dtype=np.float64)


class L1NormWeights(IrlsWeightStrategy):

    def __init__(self, epsilon=1e-6):
        if epsilon <= 0:
            raise ValueError("epsilon must be positive")
        self.epsilon = epsilon

    def compute_weights(self, estimate, regularizers):
        if not regularizers:
            return np.ones(np.asarray(estimate).size, dtype=np.float64)
        magnitude = residual_magnitudes(estimate, regularizers)
        return 1.0 / np.maximum(magnitude, self.epsilon)


class HuberWeights(IrlsWeightStrategy):
    """Quadratic below `threshold`, linear above it."""

    def __init__(self, threshold=0.01):
        if threshold <= 0:
            raise ValueError("threshold must be positive")
        self.threshold = threshold

    def compute_weights(self, estimate, regularizers):
        if not regularizers:
            return np.ones(np.asarray(estimate).size, dtype=np.float64)
        magnitude = residual_magnitudes(estimate, regularizers)
        weights = np.ones_like(magnitude)
        large = magnitude > self.threshold
        weights[large] = self.threshold / magnitude[large]
        return weights
