# Cost function built from independent terms, each adding its own cost and
# (optionally) gradient. Solvers report accepted iterations back to it.
import abc
import logging

import numpy as np

LOGGER = logging.getLogger(__name__)


class ObjectiveTerm(abc.ABC):

    @abc.abstractmethod
    def compute(self, estimated_image_data, gradient=None):
        """
        Returns the cost of this term. If gradient is not None, the term's
        gradient is added into it in place.
        """


class ObjectiveFunction:

    def __init__(self, num_parameters):
        self.num_parameters = int(num_parameters)
        self._terms = []
        self._num_iterations_completed = 0
        self.cost_history = []

    def add_term(self, objective_term):
        self._terms.append(objective_term)

    def get_num_terms(self):
        return len(self._terms)

    def compute_all_terms(self, estimated_image_data, gradient=None):
        """
        Sum of all term costs. If a gradient buffer is given it is zeroed and
        then receives the sum of all term gradients.
        """
        if estimated_image_data is None:
            raise TypeError("estimated_image_data must not be None")
        if len(estimated_image_data) != self.num_parameters:
            raise ValueError(
                f"Expected {self.num_parameters} parameters, "
                f"got {len(estimated_image_data)}")
        if gradient is not None:
            if len(gradient) != self.num_parameters:
                raise ValueError(
                    f"Gradient has {len(gradient)} entries, "
                    f"expected {self.num_parameters}")
            gradient[:] = 0.0

        cost = 0.0
        for term in self._terms:
            cost += term.compute(estimated_image_data, gradient)
        return cost

    def compute_cost_and_gradient(self, estimated_image_data):
        gradient = np.zeros(self.num_parameters, dtype=np.float64)
        cost = self.compute_all_terms(estimated_image_data, gradient)
        return cost, gradient

    def report_iteration_complete(self, residual_sum):
        self._num_iterations_completed += 1
        self.cost_history.append(float(residual_sum))
        LOGGER.debug("Iteration %d: cost = %g",
                     self._num_iterations_completed, residual_sum)

    def get_num_completed_iterations(self):
        """
        Only meaningful if the solver calls report_iteration_complete()
        after every iteration.
        """
        return self._num_iterations_completed
