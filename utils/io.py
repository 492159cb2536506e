import logging
import os

import cv2
import numpy as np

LOGGER = logging.getLogger(__name__)


def _to_unit_range(img):
    # integer images are scaled by their dtype's range (8 or 16 bit PNGs)
    if np.issubdtype(img.dtype, np.integer):
        return img.astype(np.float64) / np.iinfo(img.dtype).max
    return img.astype(np.float64)


def load_image(path, to_gray=True):
    """
    Reads one frame as float64 in [0, 1]: (H, W) when to_gray, else
    (H, W, 3) in BGR order.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")

    flags = cv2.IMREAD_GRAYSCALE if to_gray else cv2.IMREAD_COLOR
    img = cv2.imread(path, flags | cv2.IMREAD_ANYDEPTH)
    if img is None:
        raise ValueError(f"cv2 cannot load image: {path}")
    return _to_unit_range(img)


def load_images(paths, to_gray=True):
    """Loads a list of frames that must all share one size."""
    if not paths:
        raise ValueError("No frames given")
    images = [load_image(p, to_gray=to_gray) for p in paths]
    shapes = {img.shape for img in images}
    if len(shapes) > 1:
        raise ValueError(f"Frames have different shapes: {sorted(shapes)}")
    LOGGER.debug("Loaded %d frames of shape %s", len(images), images[0].shape)
    return images


def save_image(img, path):
    # float input is taken to be in [0, 1]; uint8 is written as is
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)

    img = np.asarray(img)
    if img.dtype != np.uint8:
        img = (np.clip(img, 0.0, 1.0) * 255).round().astype(np.uint8)

    if not cv2.imwrite(path, img):
        raise ValueError(f"cv2 cannot write image: {path}")
    LOGGER.info("Saved image to %s", path)
