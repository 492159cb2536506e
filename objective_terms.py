# Objective terms for the plain MAP solver.
import numpy as np

from objective_function import ObjectiveTerm


class ObjectiveDataTerm(ObjectiveTerm):
    """||A_k x - y_k||^2 for one observation channel."""

    def __init__(self, solver, image_index, channel_index):
        self.solver = solver
        self.image_index = image_index
        self.channel_index = channel_index

    def compute(self, estimated_image_data, gradient=None):
        cost, grad = self.solver.compute_data_term(
            self.image_index, self.channel_index, estimated_image_data)
        if gradient is not None:
            gradient += grad
        return cost


class ObjectiveRegularizationTerm(ObjectiveTerm):
    """sum_i (lambda * r_i(x))^2 on an (H, W) estimate."""

    def __init__(self, regularizer, regularization_parameter, image_size):
        self.regularizer = regularizer
        self.regularization_parameter = regularization_parameter
        self.image_size = image_size

    def compute(self, estimated_image_data, gradient=None):
        estimate = np.asarray(estimated_image_data, dtype=np.float64).reshape(self.image_size)
        lam = self.regularization_parameter
        residuals = lam * self.regularizer.apply_to_image(estimate)
        if gradient is not None:
            gradient += self.regularizer.get_derivatives(estimate, 2.0 * lam * residuals)
        return float(np.sum(residuals * residuals))
