# Degradation model mapping an HR image to each LR observation: an ordered
# list of operators (motion -> blur -> downsample), applied in order, with
# the adjoints applied in reverse. <A x, y> == <x, A^T y> for every pair.
import abc

import numpy as np

from utils.kernel_utils import check_kernel, correlate, flip_kernel, gaussian_kernel


class DegradationOperator(abc.ABC):

    @abc.abstractmethod
    def apply_to_image(self, image, index):
        """Applies the operator for observation `index` in place."""

    @abc.abstractmethod
    def apply_transpose_to_image(self, image, index):
        """Applies the adjoint operator for observation `index` in place."""

    def get_num_images(self):
        """
        Number of observations this operator has parameters for, or None if
        the same operator applies to every observation.
        """
        return None


class MotionShiftOperator(DegradationOperator):
    """
    Integer translation per observation, in HR pixels, with zero fill.
    shifts[i] = (dx, dy) samples image i at (x + dx, y + dy), so its content
    moves left by dx and up by dy. Shifts of 0..scale-1 pick the LR phase.
    """

    def __init__(self, shifts):
        self.shifts = [(int(dx), int(dy)) for dx, dy in shifts]

    def get_num_images(self):
        return len(self.shifts)

    def _shift(self, index):
        if not 0 <= index < len(self.shifts):
            raise IndexError(
                f"Image index {index} out of range ({len(self.shifts)} motion shifts)")
        return self.shifts[index]

    @staticmethod
    def _translate(ch, dx, dy):
        H, W = ch.shape
        out = np.zeros_like(ch)
        if abs(dx) >= W or abs(dy) >= H:
            return out
        src_y = slice(max(0, -dy), H - max(0, dy))
        src_x = slice(max(0, -dx), W - max(0, dx))
        dst_y = slice(max(0, dy), H - max(0, -dy))
        dst_x = slice(max(0, dx), W - max(0, -dx))
        out[dst_y, dst_x] = ch[src_y, src_x]
        return out

    def apply_to_image(self, image, index):
        dx, dy = self._shift(index)
        image.transform_channels(lambda ch: self._translate(ch, -dx, -dy))

    def apply_transpose_to_image(self, image, index):
        dx, dy = self._shift(index)
        image.transform_channels(lambda ch: self._translate(ch, dx, dy))


class BlurOperator(DegradationOperator):
    """Shift-invariant blur, shared by all observations."""

    def __init__(self, kernel):
        self.kernel = check_kernel(kernel)
        self._kernel_transpose = flip_kernel(self.kernel)

    @classmethod
    def gaussian(cls, size, sigma):
        return cls(gaussian_kernel(size, sigma))

    def apply_to_image(self, image, index):
        image.transform_channels(lambda ch: correlate(ch, self.kernel))

    def apply_transpose_to_image(self, image, index):
        image.transform_channels(lambda ch: correlate(ch, self._kernel_transpose))


class DownsamplingOperator(DegradationOperator):
    """
    Keeps every `scale`-th pixel in both directions. The transpose places
    each LR pixel back on a zero HR grid `scale` times larger.
    """

    def __init__(self, scale):
        if int(scale) < 1:
            raise ValueError(f"Downsampling scale must be >= 1, got {scale}")
        self.scale = int(scale)

    def apply_to_image(self, image, index):
        s = self.scale
        image.transform_channels(lambda ch: ch[::s, ::s].copy())

    def apply_transpose_to_image(self, image, index):
        s = self.scale

        def upsample(ch):
            h, w = ch.shape
            out = np.zeros((h * s, w * s), dtype=ch.dtype)
            out[::s, ::s] = ch
            return out

        image.transform_channels(upsample)


class ImageModel:

    def __init__(self, downsampling_scale):
        if int(downsampling_scale) < 1:
            raise ValueError(
                f"Downsampling scale must be >= 1, got {downsampling_scale}")
        self.downsampling_scale = int(downsampling_scale)
        self.degradation_operators = []

    def add_degradation_operator(self, operator):
        if isinstance(operator, DownsamplingOperator) and \
                operator.scale != self.downsampling_scale:
            raise ValueError(
                f"Downsampling operator scale {operator.scale} does not match "
                f"model scale {self.downsampling_scale}")
        self.degradation_operators.append(operator)

    def get_downsampling_scale(self):
        return self.downsampling_scale

    def check_num_images(self, num_images):
        for operator in self.degradation_operators:
            n = operator.get_num_images()
            if n is not None and n != num_images:
                raise ValueError(
                    f"{type(operator).__name__} is configured for {n} images "
                    f"but there are {num_images} observations")

    def apply_to_image(self, image, index):
        for operator in self.degradation_operators:
            operator.apply_to_image(image, index)

    def apply_transpose_to_image(self, image, index):
        for operator in reversed(self.degradation_operators):
            operator.apply_transpose_to_image(image, index)
