import numpy as np
import cv2

#kernel utils
def normalise_kernel(k):
    s = k.sum()
    if s > 1e-8:
        return k / s
    return k

def check_kernel(k):
    """
    Blur kernels must be 2-D with odd side lengths so that the anchor
    sits on the centre pixel.
    """
    k = np.asarray(k, dtype=np.float64)
    if k.ndim != 2:
        raise ValueError(f"Kernel must be 2-D, got shape {k.shape}")
    kh, kw = k.shape
    if kh % 2 == 0 or kw % 2 == 0:
        raise ValueError(f"Kernel sides must be odd, got {kh}x{kw}")
    return k

def gaussian_kernel(size, sigma):
    """
    Normalised (size x size) Gaussian kernel. sigma <= 0 gives a delta.
    """
    if size < 1 or size % 2 == 0:
        raise ValueError(f"Kernel size must be a positive odd number, got {size}")
    if sigma <= 0:
        k = np.zeros((size, size), dtype=np.float64)
        k[size // 2, size // 2] = 1.0
        return k
    g = cv2.getGaussianKernel(size, sigma, ktype=cv2.CV_64F)
    return normalise_kernel(g @ g.T)

def flip_kernel(k):
    # flip both axes; correlation with the flipped kernel is the adjoint
    return np.ascontiguousarray(k[::-1, ::-1])

def correlate(img, k):
    """Zero-padded 2-D correlation, output has the size of img."""
    return cv2.filter2D(img, -1, k, borderType=cv2.BORDER_CONSTANT)
