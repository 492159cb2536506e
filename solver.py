# Observations stay at native LR size; the HR estimate is `scale` times
# larger, so the image model maps it straight onto each observation.
import cv2
import numpy as np

from utils.image_data import ImageData

# Used only if a degraded estimate does not come out at observation size.
DATA_TERM_INTERPOLATION = cv2.INTER_NEAREST


class Solver:

    def __init__(self, image_model, observations):
        if not observations:
            raise ValueError("At least one observation is required")
        self.image_model = image_model
        self.observations = [
            obs if isinstance(obs, ImageData) else ImageData(obs)
            for obs in observations
        ]

        lr_size = self.observations[0].get_image_size()
        num_channels = self.observations[0].get_num_channels()
        for i, obs in enumerate(self.observations):
            if obs.get_image_size() != lr_size:
                raise ValueError(
                    f"Observation {i} has size {obs.get_image_size()}, "
                    f"expected {lr_size}")
            if obs.get_num_channels() != num_channels:
                raise ValueError(
                    f"Observation {i} has {obs.get_num_channels()} channels, "
                    f"expected {num_channels}")
        image_model.check_num_images(len(self.observations))

        scale = image_model.get_downsampling_scale()
        self.lr_image_size = lr_size
        self.image_size = (lr_size[0] * scale, lr_size[1] * scale)

    def get_num_images(self):
        return len(self.observations)

    def get_num_channels(self):
        return self.observations[0].get_num_channels()

    def get_num_pixels(self):
        return self.image_size[0] * self.image_size[1]

    def _check_estimate(self, estimated_image_data):
        if estimated_image_data is None:
            raise TypeError("estimated_image_data must not be None")
        data = np.asarray(estimated_image_data, dtype=np.float64).reshape(-1)
        if data.size != self.get_num_pixels():
            raise ValueError(
                f"Estimate has {data.size} pixels, expected {self.get_num_pixels()}")
        return data

    def _check_initial_estimate(self, initial_estimate):
        if initial_estimate is None:
            raise TypeError("initial_estimate must not be None")
        if not isinstance(initial_estimate, ImageData):
            initial_estimate = ImageData(initial_estimate)
        if initial_estimate.get_image_size() != self.image_size:
            raise ValueError(
                f"Initial estimate has size {initial_estimate.get_image_size()}, "
                f"expected {self.image_size}")
        if initial_estimate.get_num_channels() != self.get_num_channels():
            raise ValueError(
                f"Initial estimate has {initial_estimate.get_num_channels()} "
                f"channels, expected {self.get_num_channels()}")
        return initial_estimate

    def compute_data_term(self, image_index, channel_index, estimated_image_data):
        """
        Cost ||A_k x - y_k||^2 of one observation channel and its gradient
        2 A_k^T (A_k x - y_k) with respect to the flat HR estimate x.
        """
        data = self._check_estimate(estimated_image_data)
        if not 0 <= image_index < self.get_num_images():
            raise IndexError(
                f"Image index {image_index} out of range "
                f"({self.get_num_images()} observations)")
        observation = self.observations[image_index]

        # Degrade the HR estimate and compare at observation resolution.
        degraded = ImageData.from_buffer(data, self.image_size)
        self.image_model.apply_to_image(degraded, image_index)
        degraded.resize_image(self.lr_image_size, DATA_TERM_INTERPOLATION)

        residuals = (degraded.get_channel_image(0) -
                     observation.get_channel_image(channel_index))
        residual_sum = float(np.sum(residuals * residuals))

        # Back-project the residuals to HR resolution for the gradient.
        residual_image = ImageData(residuals)
        self.image_model.apply_transpose_to_image(residual_image, image_index)
        residual_image.resize_image(self.image_size, DATA_TERM_INTERPOLATION)

        gradient = 2.0 * residual_image.get_mutable_data(0)
        return residual_sum, gradient
