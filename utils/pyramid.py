import numpy as np
import cv2

#resampling fns
def upsample_estimate(img, scale, interpolation=cv2.INTER_CUBIC):
    """
    Upsamples an LR frame by an integer scale to seed the HR estimate.
    Works on (H, W) and (H, W, C) arrays.
    """
    if scale < 1:
        raise ValueError("scale must be >= 1")
    h, w = img.shape[:2]
    if scale == 1:
        return np.asarray(img, dtype=np.float64).copy()
    # cv2.resize expects (width, height)
    up = cv2.resize(np.asarray(img, dtype=np.float64), (w * scale, h * scale),
                    interpolation=interpolation)
    return up
