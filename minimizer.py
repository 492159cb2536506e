# Nonlinear conjugate gradient over scipy.optimize.minimize(method="CG").
# objective_gradient(x) -> (cost, gradient). iteration_callback(x, cost) runs
# after every accepted step and returns True when it changed the objective;
# CG then restarts from x so that its line search sees the new cost.
import logging
from dataclasses import dataclass

import numpy as np
from scipy.optimize import minimize as scipy_minimize

LOGGER = logging.getLogger(__name__)

# scipy wants a finite iteration cap
UNBOUNDED_ITERATIONS = np.iinfo(np.int32).max


@dataclass(frozen=True)
class ConvergenceConfig:
    """Stopping conditions. A value of 0 disables the condition."""

    gradient_norm_threshold: float = 1e-10
    cost_change_threshold: float = 0.0
    step_size_threshold: float = 0.0
    max_iterations: int = 50

    def __post_init__(self):
        for name in ("gradient_norm_threshold", "cost_change_threshold",
                     "step_size_threshold", "max_iterations"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")

    @classmethod
    def from_config(cls, config):
        return cls(
            gradient_norm_threshold=config.GRADIENT_NORM_THRESHOLD,
            cost_change_threshold=config.COST_CHANGE_THRESHOLD,
            step_size_threshold=config.STEP_SIZE_THRESHOLD,
            max_iterations=config.MAX_ITER,
        )


def minimize(initial_point, objective_gradient, iteration_callback=None,
             convergence=None):
    if convergence is None:
        convergence = ConvergenceConfig()
    max_iterations = convergence.max_iterations or UNBOUNDED_ITERATIONS

    # the caller's buffer is never touched
    x = np.array(initial_point, dtype=np.float64).reshape(-1)
    state = {"x": x.copy(), "cost": None, "steps": 0, "restart": False}

    def callback(intermediate_result):
        x = np.asarray(intermediate_result.x, dtype=np.float64)
        cost = float(intermediate_result.fun)
        prev_x, prev_cost = state["x"], state["cost"]
        state["x"], state["cost"] = x.copy(), cost
        state["steps"] += 1

        changed = False
        if iteration_callback is not None:
            changed = bool(iteration_callback(x, cost))

        if convergence.step_size_threshold > 0 and \
                np.linalg.norm(x - prev_x) < convergence.step_size_threshold:
            LOGGER.debug("Step size below %g, stopping",
                         convergence.step_size_threshold)
            raise StopIteration
        if convergence.cost_change_threshold > 0 and prev_cost is not None and \
                abs(prev_cost - cost) < convergence.cost_change_threshold:
            LOGGER.debug("Cost change below %g, stopping",
                         convergence.cost_change_threshold)
            raise StopIteration
        if changed and state["steps"] < max_iterations:
            state["restart"] = True
            raise StopIteration

    while True:
        state["restart"] = False
        result = scipy_minimize(
            objective_gradient,
            x0=x,
            jac=True,
            method="CG",
            callback=callback,
            options={
                "gtol": convergence.gradient_norm_threshold,
                "norm": 2,
                "maxiter": max_iterations - state["steps"],
            },
        )
        x = np.array(result.x, dtype=np.float64)
        if not state["restart"]:
            break
        LOGGER.debug("Objective changed after step %d, restarting CG", state["steps"])

    LOGGER.debug("Minimizer finished after %d iterations: %s",
                 state["steps"], result.message)
    return x
