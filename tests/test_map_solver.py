import numpy as np
import pytest

from image_model import DownsamplingOperator, ImageModel, MotionShiftOperator
from irls_map_solver import IrlsMapSolver
from irls_weights import UniformWeights
from map_solver import MapSolver
from minimizer import ConvergenceConfig
from objective_terms import ObjectiveRegularizationTerm
from regularizers import TikhonovRegularizer, TotalVariationRegularizer
from utils.image_data import ImageData


@pytest.fixture
def problem():
    hr = np.random.default_rng(5).random((6, 8))
    model = ImageModel(2)
    model.add_degradation_operator(MotionShiftOperator([(0, 0), (1, 1)]))
    model.add_degradation_operator(DownsamplingOperator(2))
    frames = []
    for index in range(2):
        frame = ImageData(hr)
        model.apply_to_image(frame, index)
        frames.append(frame.as_array())
    return model, frames


def test_objective_function_has_one_term_per_input(problem):
    model, frames = problem
    solver = MapSolver(model, frames)
    solver.add_regularizer(TotalVariationRegularizer(), 0.1)
    solver.add_regularizer(TikhonovRegularizer(), 0.1)
    objective = solver.build_objective_function(0)
    assert objective.get_num_terms() == 4
    assert objective.num_parameters == 48


def test_objective_matches_irls_with_unit_weights(problem):
    model, frames = problem
    map_solver = MapSolver(model, frames)
    irls_solver = IrlsMapSolver(model, frames, weight_strategy=UniformWeights())
    for solver in (map_solver, irls_solver):
        solver.add_regularizer(TikhonovRegularizer(), 0.3)

    x = np.random.default_rng(9).random(48)
    map_cost, map_gradient = map_solver.build_objective_function(0).compute_cost_and_gradient(x)
    irls_cost, irls_gradient = irls_solver.compute_cost_and_gradient(0, x)
    assert map_cost == pytest.approx(irls_cost)
    np.testing.assert_allclose(map_gradient, irls_gradient, atol=1e-12)


def test_solve_counts_iterations(problem):
    model, frames = problem
    solver = MapSolver(model, frames, ConvergenceConfig(max_iterations=15))
    solver.add_regularizer(TikhonovRegularizer(), 0.05)
    result = solver.solve(np.zeros((6, 8)))
    assert result.get_image_size() == (6, 8)
    assert solver.get_num_completed_iterations() >= 1
    assert solver.get_num_completed_iterations() == len(solver.cost_history)
    assert solver.get_num_completed_iterations() <= 15
    # costs reported by an unweighted solve never increase
    assert all(b <= a + 1e-12 for a, b in zip(solver.cost_history, solver.cost_history[1:]))


def test_solve_identity_returns_observation():
    obs = np.random.default_rng(2).random((5, 5))
    solver = MapSolver(ImageModel(1), [obs])
    result = solver.solve(obs)
    np.testing.assert_allclose(result.as_array(), obs, atol=1e-12)
    assert solver.get_num_completed_iterations() == 0


def test_regularization_term_gradient():
    term = ObjectiveRegularizationTerm(TikhonovRegularizer(), 0.5, (4, 4))
    x = np.random.default_rng(1).random(16)
    gradient = np.zeros(16)
    cost = term.compute(x, gradient)
    h = 1e-6
    for j in range(16):
        xp, xm = x.copy(), x.copy()
        xp[j] += h
        xm[j] -= h
        numeric = (term.compute(xp) - term.compute(xm)) / (2 * h)
        assert gradient[j] == pytest.approx(numeric, rel=1e-5, abs=1e-8)
    assert cost >= 0.0
