import logging

import numpy as np
import matplotlib.pyplot as plt

from image_model import BlurOperator, DownsamplingOperator, ImageModel, MotionShiftOperator
from irls_map_solver import IrlsMapSolver
from irls_weights import HuberWeights, L1NormWeights, UniformWeights
from map_solver import MapSolver
from minimizer import ConvergenceConfig
from regularizers import TikhonovRegularizer, TotalVariationRegularizer
from utils.image_data import ImageData
from utils.io import load_image, load_images, save_image
from utils.pyramid import upsample_estimate

LOGGER = logging.getLogger(__name__)


class SuperResolutionModel:

    def __init__(self, config):
        self.config = config

    def num_motion_frames(self):
        shifts = self.config.MOTION_SHIFTS
        return len(shifts) if shifts else 1

    def build_image_model(self):
        # forward order: motion -> blur -> downsample
        image_model = ImageModel(self.config.SCALE)
        if self.config.MOTION_SHIFTS:
            image_model.add_degradation_operator(
                MotionShiftOperator(self.config.MOTION_SHIFTS))
        if self.config.BLUR_SIGMA > 0:
            image_model.add_degradation_operator(
                BlurOperator.gaussian(self.config.BLUR_KERNEL_SIZE, self.config.BLUR_SIGMA))
        if self.config.SCALE > 1:
            image_model.add_degradation_operator(DownsamplingOperator(self.config.SCALE))
        return image_model

    def build_regularizers(self):
        regularizers = []
        if self.config.TV_LAMBDA > 0:
            regularizers.append((TotalVariationRegularizer(), self.config.TV_LAMBDA))
        if self.config.TIKHONOV_LAMBDA > 0:
            regularizers.append((TikhonovRegularizer(), self.config.TIKHONOV_LAMBDA))
        return regularizers

    def build_weight_strategy(self):
        name = self.config.IRLS_WEIGHTS
        if name == "l1":
            return L1NormWeights(self.config.IRLS_EPSILON)
        if name == "huber":
            return HuberWeights(self.config.HUBER_THRESHOLD)
        if name == "uniform":
            return UniformWeights()
        raise ValueError(f"Unknown IRLS weight strategy: {name}")

    def build_solver(self, observations, image_model=None):
        if image_model is None:
            image_model = self.build_image_model()
        convergence = ConvergenceConfig.from_config(self.config)

        if self.config.SOLVER == "irls":
            solver = IrlsMapSolver(image_model, observations, convergence,
                                   self.build_weight_strategy())
        elif self.config.SOLVER == "map":
            solver = MapSolver(image_model, observations, convergence)
        else:
            raise ValueError(f"Unknown solver: {self.config.SOLVER}")

        for regularizer, regularization_parameter in self.build_regularizers():
            solver.add_regularizer(regularizer, regularization_parameter)
        return solver

    def generate_observations(self, hr_image, image_model=None):
        """
        Synthesizes one LR frame per motion shift by degrading an HR image
        with the image model.
        """
        if image_model is None:
            image_model = self.build_image_model()
        hr = np.asarray(hr_image, dtype=np.float64)
        h, w = hr.shape[:2]
        s = self.config.SCALE
        # crop so that the HR size is a multiple of the scale
        hr = hr[:h - h % s, :w - w % s]

        observations = []
        for index in range(self.num_motion_frames()):
            frame = ImageData(hr)
            image_model.apply_to_image(frame, index)
            observations.append(frame.as_array())
        return observations

    def initial_estimate(self, observations):
        return upsample_estimate(observations[0], self.config.SCALE)

    def reconstruct(self, observations):
        """Returns (HR estimate as an array, cost history)."""
        solver = self.build_solver(observations)
        LOGGER.info("Reconstructing %dx%d HR image from %d frames with %s",
                    solver.image_size[0], solver.image_size[1],
                    solver.get_num_images(), type(solver).__name__)
        estimate = solver.solve(self.initial_estimate(observations))
        return estimate.as_array(), solver.cost_history

    def run(self, image_paths, save_path=None, show=False):
        LOGGER.info("Loading %d frames...", len(image_paths))
        observations = load_images(image_paths, to_gray=self.config.GRAYSCALE)
        return self._finish(observations, save_path, show)

    def run_synthetic(self, hr_image_path, save_path=None, show=False):
        LOGGER.info("Synthesizing frames from %s...", hr_image_path)
        hr = load_image(hr_image_path, to_gray=self.config.GRAYSCALE)
        observations = self.generate_observations(hr)
        return self._finish(observations, save_path, show)

    def _finish(self, observations, save_path, show):
        result, cost_history = self.reconstruct(observations)
        result = np.clip(result, 0.0, 1.0)

        if show:
            self.plot_results(observations[0], result, cost_history)

        if save_path is not None:
            save_image(result, save_path)

        return np.clip(result * 255, 0, 255).round().astype(np.uint8)

    def plot_results(self, observation, result, cost_history):
        plt.figure(figsize=(12, 6))
        plt.subplot(1, 3, 1)
        plt.title("LR Frame 0")
        plt.imshow(self._display(observation), cmap='gray')

        plt.subplot(1, 3, 2)
        plt.title("Cost per Iteration")
        if cost_history:
            plt.semilogy(np.arange(1, len(cost_history) + 1), cost_history)
        plt.xlabel("iteration")

        plt.subplot(1, 3, 3)
        plt.title("HR Estimate")
        plt.imshow(self._display(result), cmap='gray')
        plt.show()

    @staticmethod
    def _display(img):
        img = np.clip(img, 0, 1)
        if img.ndim == 3:
            # BGR -> RGB
            return img[:, :, ::-1]
        return img
