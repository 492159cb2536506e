import numpy as np
import pytest

from image_model import BlurOperator, DownsamplingOperator, ImageModel, MotionShiftOperator
from irls_map_solver import IrlsMapSolver
from irls_weights import HuberWeights, UniformWeights
from minimizer import ConvergenceConfig
from regularizers import TikhonovRegularizer, TotalVariationRegularizer
from utils.image_data import ImageData
from utils.pyramid import upsample_estimate

SHIFTS = [(0, 0), (1, 0), (0, 1), (1, 1)]


def identity_solver(observation):
    return IrlsMapSolver(ImageModel(1), [observation])


def sr_model(shifts=SHIFTS, blur=False):
    model = ImageModel(2)
    model.add_degradation_operator(MotionShiftOperator(shifts))
    if blur:
        model.add_degradation_operator(BlurOperator.gaussian(3, 0.7))
    model.add_degradation_operator(DownsamplingOperator(2))
    return model


def synthesize(model, hr, num_images):
    frames = []
    for index in range(num_images):
        frame = ImageData(hr)
        model.apply_to_image(frame, index)
        frames.append(frame.as_array())
    return frames


@pytest.fixture
def hr_image():
    return np.random.default_rng(42).random((8, 10))


def test_data_term_zero_for_exact_estimate(hr_image):
    solver = identity_solver(hr_image)
    cost, gradient = solver.compute_data_term(0, 0, hr_image.reshape(-1))
    assert cost == 0.0
    np.testing.assert_array_equal(gradient, np.zeros(80))


def test_data_term_single_pixel_perturbation(hr_image):
    solver = identity_solver(hr_image)
    d, i = 0.25, 17
    estimate = hr_image.reshape(-1).copy()
    estimate[i] += d
    cost, gradient = solver.compute_data_term(0, 0, estimate)
    assert cost == pytest.approx(d * d)
    assert gradient[i] == pytest.approx(2 * d)
    assert np.count_nonzero(gradient) == 1


def test_data_term_gradient_matches_finite_differences(hr_image):
    model = sr_model(blur=True)
    solver = IrlsMapSolver(model, synthesize(model, hr_image, 4))
    x = np.random.default_rng(7).random(80)
    for image_index in range(4):
        _, gradient = solver.compute_data_term(image_index, 0, x)
        h = 1e-6
        for j in (0, 11, 45, 79):
            xp, xm = x.copy(), x.copy()
            xp[j] += h
            xm[j] -= h
            numeric = (solver.compute_data_term(image_index, 0, xp)[0] -
                       solver.compute_data_term(image_index, 0, xm)[0]) / (2 * h)
            assert gradient[j] == pytest.approx(numeric, rel=1e-5, abs=1e-7)


def test_hr_size_follows_scale(hr_image):
    model = sr_model()
    solver = IrlsMapSolver(model, synthesize(model, hr_image, 4))
    assert solver.lr_image_size == (4, 5)
    assert solver.image_size == (8, 10)
    assert solver.get_num_pixels() == 80


def test_regularization_is_pure(hr_image):
    solver = identity_solver(hr_image)
    solver.add_regularizer(TotalVariationRegularizer(), 0.3)
    solver.add_regularizer(TikhonovRegularizer(), 0.1)
    x = hr_image.reshape(-1) + 0.1
    cost1, grad1 = solver.compute_regularization(x)
    weights_before = solver.get_irls_weights()
    cost2, grad2 = solver.compute_regularization(x)
    assert cost1 == cost2
    np.testing.assert_array_equal(grad1, grad2)
    np.testing.assert_array_equal(solver.get_irls_weights(), weights_before)


def test_regularization_gradient_with_weights(hr_image):
    solver = identity_solver(hr_image)
    solver.add_regularizer(TikhonovRegularizer(), 0.4)
    solver.irls_weights = np.random.default_rng(3).uniform(0.5, 2.0, 80)
    x = np.random.default_rng(4).random(80)
    cost, gradient = solver.compute_regularization(x)

    residuals = TikhonovRegularizer().apply_to_image(x.reshape(8, 10))
    assert cost == pytest.approx(np.sum(0.16 * solver.irls_weights * residuals**2))

    h = 1e-6
    for j in range(0, 80, 7):
        xp, xm = x.copy(), x.copy()
        xp[j] += h
        xm[j] -= h
        numeric = (solver.compute_regularization(xp)[0] -
                   solver.compute_regularization(xm)[0]) / (2 * h)
        assert gradient[j] == pytest.approx(numeric, rel=1e-5, abs=1e-8)


def test_regularization_without_regularizers(hr_image):
    cost, gradient = identity_solver(hr_image).compute_regularization(hr_image)
    assert cost == 0.0
    np.testing.assert_array_equal(gradient, np.zeros(80))


@pytest.mark.parametrize("strategy", [None, HuberWeights(0.05), UniformWeights()])
def test_update_irls_weights_contract(hr_image, strategy):
    solver = IrlsMapSolver(ImageModel(1), [hr_image], weight_strategy=strategy)
    solver.add_regularizer(TotalVariationRegularizer(), 0.2)
    solver.update_irls_weights(hr_image.reshape(-1))
    weights = solver.get_irls_weights()
    assert weights.shape == (solver.get_num_pixels(),)
    assert np.all(weights >= 0)


def test_solve_identity_returns_observation(hr_image):
    solver = identity_solver(hr_image)
    result = solver.solve(ImageData(hr_image))
    np.testing.assert_allclose(result.as_array(), hr_image, atol=1e-12)
    assert len(solver.cost_history) <= 1


def test_solve_resets_weights(hr_image):
    solver = identity_solver(hr_image)
    solver.irls_weights = np.full(80, 5.0)
    solver.solve(hr_image)
    np.testing.assert_array_equal(solver.get_irls_weights(), np.ones(80))


def test_solve_recovers_hr_from_shifted_frames(hr_image):
    model = sr_model()
    frames = synthesize(model, hr_image, 4)
    solver = IrlsMapSolver(model, frames, ConvergenceConfig(max_iterations=20))
    result = solver.solve(np.zeros((8, 10)))
    np.testing.assert_allclose(result.as_array(), hr_image, atol=1e-6)


def test_solve_with_regularization_lowers_cost(hr_image):
    model = sr_model(blur=True)
    frames = synthesize(model, hr_image, 4)
    solver = IrlsMapSolver(model, frames, ConvergenceConfig(max_iterations=10))
    solver.add_regularizer(TotalVariationRegularizer(), 0.01)
    initial = np.full((8, 10), 0.5)
    data_cost = lambda x: sum(solver.compute_data_term(k, 0, x)[0] for k in range(4))
    result = solver.solve(initial)
    assert result.get_image_size() == (8, 10)
    assert data_cost(result.as_array()) < 0.5 * data_cost(initial)
    assert len(solver.cost_history) == 10


def test_default_l1_solve_keeps_iterating_on_edge_image():
    hr = np.zeros((16, 16))
    hr[:, 7:] = 1.0
    model = sr_model()
    frames = synthesize(model, hr, 4)
    solver = IrlsMapSolver(model, frames, ConvergenceConfig(max_iterations=5))
    solver.add_regularizer(TotalVariationRegularizer(), 0.01)

    initial = upsample_estimate(frames[0], 2)
    result = solver.solve(initial)

    # every accepted step reweights, so each one is followed by a CG restart
    assert len(solver.cost_history) == 5
    rmse = lambda x: np.sqrt(np.mean((x - hr) ** 2))
    assert rmse(result.as_array()) < 0.5 * rmse(initial)


def test_solve_multi_channel(hr_image):
    hr = np.stack([hr_image, 1.0 - hr_image], axis=2)
    model = sr_model()
    frames = synthesize(model, hr, 4)
    solver = IrlsMapSolver(model, frames, ConvergenceConfig(max_iterations=20))
    result = solver.solve(np.zeros((8, 10, 2)))
    assert result.get_num_channels() == 2
    np.testing.assert_allclose(result.as_array(), hr, atol=1e-6)


def test_precondition_errors(hr_image):
    with pytest.raises(ValueError):
        IrlsMapSolver(ImageModel(1), [])
    with pytest.raises(ValueError):
        IrlsMapSolver(ImageModel(1), [hr_image, hr_image[:4]])
    with pytest.raises(ValueError):
        # four motion shifts but two frames
        IrlsMapSolver(sr_model(), [hr_image[::2, ::2]] * 2)

    solver = identity_solver(hr_image)
    with pytest.raises(ValueError):
        solver.add_regularizer(TotalVariationRegularizer(), -0.1)
    with pytest.raises(IndexError):
        solver.compute_data_term(1, 0, hr_image)
    with pytest.raises(IndexError):
        solver.compute_data_term(0, 1, hr_image)
    with pytest.raises(TypeError):
        solver.compute_data_term(0, 0, None)
    with pytest.raises(ValueError):
        solver.compute_data_term(0, 0, np.zeros(10))
    with pytest.raises(ValueError):
        solver.solve(np.zeros((3, 3)))
