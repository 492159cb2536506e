# MAP super-resolution solved with Iteratively Reweighted Least Squares.
# Per channel the cost is
#   sum_k ||A_k x - y_k||^2 + sum_r sum_i (lambda_r * sqrt(w_i) * r_i(x))^2
# with the IRLS weights w reset to 1 per channel and recomputed after every
# accepted minimizer step.
import logging

import numpy as np

from irls_weights import L1NormWeights
from minimizer import ConvergenceConfig, minimize
from solver import Solver

LOGGER = logging.getLogger(__name__)


class IrlsMapSolver(Solver):

    def __init__(self, image_model, observations, convergence=None,
                 weight_strategy=None):
        super().__init__(image_model, observations)
        self.convergence = convergence or ConvergenceConfig()
        self.weight_strategy = weight_strategy or L1NormWeights()
        self.regularizers = []
        self.irls_weights = np.ones(self.get_num_pixels(), dtype=np.float64)
        self.cost_history = []

    def add_regularizer(self, regularizer, regularization_parameter):
        if regularization_parameter < 0:
            raise ValueError(
                f"Regularization parameter must be >= 0, got {regularization_parameter}")
        self.regularizers.append((regularizer, float(regularization_parameter)))

    def get_irls_weights(self):
        return self.irls_weights.copy()

    def compute_regularization(self, estimated_image_data):
        """
        Weighted regularization cost and its gradient for the current IRLS
        weights. The weights are only read here.
        """
        data = self._check_estimate(estimated_image_data)
        estimate = data.reshape(self.image_size)
        if self.irls_weights.size != data.size:
            raise ValueError(
                f"IRLS weights have {self.irls_weights.size} entries, "
                f"expected {data.size}")

        sqrt_weights = np.sqrt(self.irls_weights)
        gradient = np.zeros(data.size, dtype=np.float64)
        residual_sum = 0.0
        for regularizer, regularization_parameter in self.regularizers:
            residuals = regularizer.apply_to_image(estimate)
            weighted = regularization_parameter * sqrt_weights * residuals
            residual_sum += float(np.sum(weighted * weighted))

            # d/dx (lambda sqrt(w) r)^2 = 2 * lambda * sqrt(w) * (lambda sqrt(w) r) * dr/dx
            partial_const_terms = 2.0 * regularization_parameter * sqrt_weights * weighted
            gradient += regularizer.get_derivatives(estimate, partial_const_terms)

        return residual_sum, gradient

    def update_irls_weights(self, estimated_image_data):
        data = self._check_estimate(estimated_image_data)
        weights = np.asarray(
            self.weight_strategy.compute_weights(
                data.reshape(self.image_size), self.regularizers),
            dtype=np.float64).reshape(-1)
        if weights.size != self.get_num_pixels():
            raise ValueError(
                f"Weight strategy returned {weights.size} weights, "
                f"expected {self.get_num_pixels()}")
        if np.any(weights < 0) or not np.all(np.isfinite(weights)):
            raise ValueError("IRLS weights must be finite and non-negative")
        self.irls_weights = weights

    def compute_cost_and_gradient(self, channel_index, estimated_image_data):
        """Data terms of every observation plus the regularization term."""
        residual_sum = 0.0
        gradient = np.zeros(self.get_num_pixels(), dtype=np.float64)
        for image_index in range(self.get_num_images()):
            cost, grad = self.compute_data_term(
                image_index, channel_index, estimated_image_data)
            residual_sum += cost
            gradient += grad

        cost, grad = self.compute_regularization(estimated_image_data)
        residual_sum += cost
        gradient += grad
        return residual_sum, gradient

    def solve(self, initial_estimate):
        initial_estimate = self._check_initial_estimate(initial_estimate)
        estimated_image = initial_estimate.copy()
        self.cost_history = []

        for channel_index in range(self.get_num_channels()):
            self.irls_weights = np.ones(self.get_num_pixels(), dtype=np.float64)

            def objective(x, channel_index=channel_index):
                return self.compute_cost_and_gradient(channel_index, x)

            def iteration_callback(x, residual_sum):
                previous_weights = self.irls_weights
                self.update_irls_weights(x)
                self.cost_history.append(residual_sum)
                LOGGER.info("Callback: residual sum = %g", residual_sum)
                # new weights mean a new cost surface, so CG has to restart
                return not np.array_equal(previous_weights, self.irls_weights)

            LOGGER.info("Solving channel %d/%d (%d observations, %d regularizers)",
                        channel_index + 1, self.get_num_channels(),
                        self.get_num_images(), len(self.regularizers))
            solution = minimize(
                estimated_image.get_mutable_data(channel_index),
                objective,
                iteration_callback,
                self.convergence,
            )
            estimated_image.set_channel_image(
                channel_index, solution.reshape(self.image_size))

        return estimated_image
