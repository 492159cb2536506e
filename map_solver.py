# MAP super-resolution with fixed quadratic penalties (no reweighting).
import logging

from minimizer import ConvergenceConfig, minimize
from objective_function import ObjectiveFunction
from objective_terms import ObjectiveDataTerm, ObjectiveRegularizationTerm
from solver import Solver

LOGGER = logging.getLogger(__name__)


class MapSolver(Solver):

    def __init__(self, image_model, observations, convergence=None):
        super().__init__(image_model, observations)
        self.convergence = convergence or ConvergenceConfig()
        self.regularizers = []
        self.num_completed_iterations = 0
        self.cost_history = []

    def add_regularizer(self, regularizer, regularization_parameter):
        if regularization_parameter < 0:
            raise ValueError(
                f"Regularization parameter must be >= 0, got {regularization_parameter}")
        self.regularizers.append((regularizer, float(regularization_parameter)))

    def build_objective_function(self, channel_index):
        objective = ObjectiveFunction(self.get_num_pixels())
        for image_index in range(self.get_num_images()):
            objective.add_term(ObjectiveDataTerm(self, image_index, channel_index))
        for regularizer, regularization_parameter in self.regularizers:
            objective.add_term(ObjectiveRegularizationTerm(
                regularizer, regularization_parameter, self.image_size))
        return objective

    def get_num_completed_iterations(self):
        return self.num_completed_iterations

    def solve(self, initial_estimate):
        initial_estimate = self._check_initial_estimate(initial_estimate)
        estimated_image = initial_estimate.copy()
        self.num_completed_iterations = 0
        self.cost_history = []

        for channel_index in range(self.get_num_channels()):
            objective = self.build_objective_function(channel_index)

            def iteration_callback(x, residual_sum, objective=objective):
                objective.report_iteration_complete(residual_sum)
                LOGGER.info("Callback: residual sum = %g", residual_sum)

            solution = minimize(
                estimated_image.get_mutable_data(channel_index),
                objective.compute_cost_and_gradient,
                iteration_callback,
                self.convergence,
            )
            estimated_image.set_channel_image(
                channel_index, solution.reshape(self.image_size))
            self.num_completed_iterations += objective.get_num_completed_iterations()
            self.cost_history.extend(objective.cost_history)

        return estimated_image
