# Regularizers return one residual per pixel of a single-channel estimate.
# get_derivatives(x, c) returns d_j = sum_i c_i * dr_i/dx_j.
import abc

import numpy as np

from utils.gradient import (compute_gradients, gradient_h_transpose,
                            gradient_mag_sq, gradient_v_transpose)
from utils.kernel_utils import correlate

LAPLACIAN_KERNEL = np.array([
    [0.0, 1.0, 0.0],
    [1.0, -4.0, 1.0],
    [0.0, 1.0, 0.0],
])


class Regularizer(abc.ABC):

    @abc.abstractmethod
    def apply_to_image(self, estimate):
        """Flat per-pixel residuals for the (H, W) estimate."""

    @abc.abstractmethod
    def get_derivatives(self, estimate, constant_multipliers):
        """Flat partial derivatives of sum_i c_i * r_i w.r.t. every pixel."""


class TotalVariationRegularizer(Regularizer):
    """
    Isotropic total variation, r_i = sqrt(dx_i^2 + dy_i^2) with forward
    differences. Pixels whose gradient magnitude is below epsilon have no
    defined derivative and contribute nothing.
    """

    def __init__(self, epsilon=1e-8):
        self.epsilon = epsilon

    def apply_to_image(self, estimate):
        grad = compute_gradients(np.asarray(estimate, dtype=np.float64))
        return np.sqrt(gradient_mag_sq(grad)).reshape(-1)

    def get_derivatives(self, estimate, constant_multipliers):
        estimate = np.asarray(estimate, dtype=np.float64)
        gh, gv = compute_gradients(estimate)
        magnitude = np.sqrt(gh**2 + gv**2)
        c = np.asarray(constant_multipliers, dtype=np.float64).reshape(estimate.shape)

        scale = np.zeros_like(magnitude)
        defined = magnitude >= self.epsilon
        scale[defined] = c[defined] / magnitude[defined]

        # d r_i = (gh_i d gh_i + gv_i d gv_i) / r_i
        out = gradient_h_transpose(scale * gh) + gradient_v_transpose(scale * gv)
        return out.reshape(-1)


class TikhonovRegularizer(Regularizer):
    """
    Laplacian smoothness prior, r = L x with a zero-padded 3x3 Laplacian.
    L is symmetric, so the derivative vector is simply L c.
    """

    def apply_to_image(self, estimate):
        return correlate(np.asarray(estimate, dtype=np.float64),
                         LAPLACIAN_KERNEL).reshape(-1)

    def get_derivatives(self, estimate, constant_multipliers):
        estimate = np.asarray(estimate)
        c = np.asarray(constant_multipliers, dtype=np.float64).reshape(estimate.shape)
        return correlate(c, LAPLACIAN_KERNEL).reshape(-1)
