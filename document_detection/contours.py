"""
Contour extraction and plausibility filtering
"""

import logging
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from .profile import ParameterProfile

logger = logging.getLogger(__name__)

# A contour spanning the whole frame is usually the image border. It is kept
# only when the frame itself is shaped like a document (tightly cropped photo).
FULL_FRAME_ASPECT_RANGE = (1.2, 2.2)


def is_full_frame(contour: np.ndarray, image_shape: Tuple[int, ...]) -> bool:
    """Whether the contour's bounding box equals the whole image."""
    x, y, w, h = cv2.boundingRect(contour)
    return x == 0 and y == 0 and w == image_shape[1] and h == image_shape[0]


def filter_candidates(
    contours: Sequence[np.ndarray],
    image_shape: Tuple[int, ...],
    profile: ParameterProfile
) -> List[np.ndarray]:
    """
    Drop contours that cannot be a document.

    Args:
        contours: OpenCV contours (N x 1 x 2)
        image_shape: Shape of the image the contours come from
        profile: Area ratio limits

    Returns:
        Surviving contours in their original order
    """
    image_area = float(image_shape[0] * image_shape[1])
    min_aspect, max_aspect = FULL_FRAME_ASPECT_RANGE
    kept = []

    for contour in contours:
        if len(contour) <= 2:
            continue

        area_ratio = cv2.contourArea(contour) / image_area
        if area_ratio < profile.min_area_ratio:
            continue

        if is_full_frame(contour, image_shape):
            aspect = image_shape[1] / float(image_shape[0])
            if not min_aspect <= aspect <= max_aspect:
                logger.debug("Rejected full-frame contour with aspect %.2f", aspect)
                continue
            # Tightly cropped document, no upper area limit
        elif area_ratio > profile.max_area_ratio:
            continue

        kept.append(contour)

    return kept


def extract_candidates(edge_map: np.ndarray, profile: ParameterProfile) -> List[np.ndarray]:
    """
    Find outer closed boundaries in an edge map and keep plausible ones.

    Nested boundaries (text, photos, logos inside the card) are never
    returned. An empty list means there is nothing to score.
    """
    contours, _ = cv2.findContours(edge_map, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    candidates = filter_candidates(contours, edge_map.shape, profile)

    logger.debug("Contours: %d found, %d kept", len(contours), len(candidates))
    return candidates
