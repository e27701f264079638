"""
Edge map preprocessing strategies

Both strategies turn a grayscale image into a binary edge map of the same
size. The static one uses the profile's thresholds as-is; the adaptive one
normalizes local contrast and derives everything else from the image.
"""

import logging
from typing import Tuple

import cv2
import numpy as np

from .profile import ParameterProfile

logger = logging.getLogger(__name__)

CLAHE_CLIP_LIMIT = 2.0
CLAHE_TILE_GRID = (8, 8)

# Resolution divisors for the adaptive blur and closing kernels
BLUR_RESOLUTION_DIVISOR = 400
CLOSE_RESOLUTION_DIVISOR = 800
MIN_KERNEL_SIZE = 3

# Relative contrast (std / mean) at which the profile thresholds apply unscaled
REFERENCE_CONTRAST = 0.25
CONTRAST_SCALE_RANGE = (0.5, 2.0)
DYNAMIC_THRESHOLD_RANGE = (10.0, 200.0)


def odd_kernel_size(size: int, minimum: int = MIN_KERNEL_SIZE) -> int:
    """Round a kernel size up to an odd number no smaller than ``minimum``."""
    size = max(minimum, int(size))
    return size if size % 2 == 1 else size + 1


def dynamic_thresholds(blurred: np.ndarray, profile: ParameterProfile) -> Tuple[float, float]:
    """
    Derive edge thresholds from intensity statistics.

    Flat, low-contrast images get thresholds below the profile's, busy
    high-contrast images get thresholds above them.

    Args:
        blurred: Smoothed grayscale image
        profile: Profile whose thresholds are scaled

    Returns:
        (low, high) with low < high, both within DYNAMIC_THRESHOLD_RANGE
    """
    mean, stddev = cv2.meanStdDev(blurred)
    mean = float(mean[0][0])
    stddev = float(stddev[0][0])

    contrast = stddev / max(mean, 1.0)
    scale = float(np.clip(contrast / REFERENCE_CONTRAST, *CONTRAST_SCALE_RANGE))

    floor, ceiling = DYNAMIC_THRESHOLD_RANGE
    low = float(np.clip(profile.canny_low * scale, floor, ceiling - 1))
    high = float(np.clip(profile.canny_high * scale, low + 1, ceiling))

    logger.debug(
        "Intensity mean=%.1f std=%.1f contrast=%.3f -> thresholds %.1f/%.1f",
        mean, stddev, contrast, low, high
    )
    return low, high


class EdgePreprocessor:
    """
    Base class for edge map strategies.

    Subclasses implement ``edge_map``; the output is uint8 with edges
    at 255 and background at 0.
    """

    name = "base"

    def edge_map(self, gray: np.ndarray, profile: ParameterProfile) -> np.ndarray:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StaticEdgePreprocessor(EdgePreprocessor):
    """
    Fixed-threshold preprocessing.

    Fixed blur and closing kernels, edge thresholds straight from the
    profile, no contrast normalization.
    """

    name = "static"

    def __init__(self, blur_size: int = 5, close_size: int = 3):
        self.blur_size = odd_kernel_size(blur_size)
        self.close_size = close_size

    def edge_map(self, gray: np.ndarray, profile: ParameterProfile) -> np.ndarray:
        blurred = cv2.GaussianBlur(gray, (self.blur_size, self.blur_size), 0)
        edges = cv2.Canny(blurred, profile.canny_low, profile.canny_high)

        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (self.close_size, self.close_size))
        return cv2.morphologyEx(edges, cv2.MORPH_CLOSE, kernel)


class AdaptiveEdgePreprocessor(EdgePreprocessor):
    """
    Lighting- and resolution-adaptive preprocessing.

    1. CLAHE to even out uneven lighting
    2. Gaussian blur sized by resolution
    3. Canny with thresholds from image statistics
    4. Morphological closing sized by resolution
    """

    name = "adaptive"

    def __init__(
        self,
        clip_limit: float = CLAHE_CLIP_LIMIT,
        tile_grid: Tuple[int, int] = CLAHE_TILE_GRID
    ):
        self.clip_limit = clip_limit
        self.tile_grid = tile_grid

    def kernel_sizes(self, shape: Tuple[int, ...]) -> Tuple[int, int]:
        """Blur and closing kernel sizes for an image of the given shape."""
        min_dim = min(shape[0], shape[1])
        blur_size = odd_kernel_size(min_dim // BLUR_RESOLUTION_DIVISOR)
        close_size = odd_kernel_size(min_dim // CLOSE_RESOLUTION_DIVISOR)
        return blur_size, close_size

    def edge_map(self, gray: np.ndarray, profile: ParameterProfile) -> np.ndarray:
        clahe = cv2.createCLAHE(clipLimit=self.clip_limit, tileGridSize=self.tile_grid)
        enhanced = clahe.apply(gray)

        blur_size, close_size = self.kernel_sizes(gray.shape)
        blurred = cv2.GaussianBlur(enhanced, (blur_size, blur_size), 0)

        low, high = dynamic_thresholds(blurred, profile)
        edges = cv2.Canny(blurred, low, high)

        kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (close_size, close_size))
        return cv2.morphologyEx(edges, cv2.MORPH_CLOSE, kernel)


PREPROCESSORS = {
    StaticEdgePreprocessor.name: StaticEdgePreprocessor,
    AdaptiveEdgePreprocessor.name: AdaptiveEdgePreprocessor,
}
