"""
Corner recovery and ordering
"""

import numpy as np
import cv2

from .errors import NoDocumentFound

HULL_EPSILON_FACTOR = 0.02


def select_four_corners(points: np.ndarray) -> np.ndarray:
    """
    Reduce a point set to its extremal points.

    Takes the leftmost, rightmost, topmost and bottommost points and drops
    duplicates, so the result may hold fewer than four points.
    """
    points = np.asarray(points).reshape(-1, 2)
    if len(points) <= 4:
        return points

    extremes = points[[
        np.argmin(points[:, 0]),
        np.argmax(points[:, 0]),
        np.argmin(points[:, 1]),
        np.argmax(points[:, 1]),
    ]]

    # np.unique also sorts the rows by (x, y)
    return np.unique(extremes, axis=0)[:4]


def recover_corners(polygon: np.ndarray) -> np.ndarray:
    """
    Reduce a candidate polygon to exactly four corner points.

    Handles rounded corners, embossing and security-pattern noise that
    keep a direct approximation from landing on four vertices.

    Args:
        polygon: Candidate polygon with any vertex count

    Returns:
        Array (4, 2) of unordered corner points

    Raises:
        NoDocumentFound: fewer than four usable points
    """
    points = np.asarray(polygon).reshape(-1, 2)

    if len(points) <= 4:
        corners = points
    else:
        hull = cv2.convexHull(points.astype(np.int32))
        if len(hull) <= 4:
            corners = hull.reshape(-1, 2)
        else:
            epsilon = HULL_EPSILON_FACTOR * cv2.arcLength(hull, True)
            corners = cv2.approxPolyDP(hull, epsilon, True).reshape(-1, 2)
            if len(corners) > 4:
                corners = select_four_corners(corners)

    if len(corners) != 4:
        raise NoDocumentFound(f"Could not recover four corners, got {len(corners)}")
    return corners.astype(np.float32)


def _clockwise_by_angle(points: np.ndarray, center: np.ndarray) -> np.ndarray:
    # y grows downwards, so ascending atan2 runs clockwise on screen
    angles = np.arctan2(points[:, 1] - center[1], points[:, 0] - center[0])
    return points[np.argsort(angles, kind='stable')]


def _clockwise_by_quadrant(points: np.ndarray, center: np.ndarray) -> np.ndarray:
    left = points[:, 0] < center[0]
    top = points[:, 1] < center[1]
    quadrants = [
        left & top,     # top-left
        ~left & top,    # top-right
        ~left & ~top,   # bottom-right
        left & ~top,    # bottom-left
    ]
    if any(mask.sum() != 1 for mask in quadrants):
        # Strong rotation puts two corners in one quadrant
        return _clockwise_by_angle(points, center)
    return np.array([points[mask][0] for mask in quadrants])


SORT_METHODS = {
    'angle': _clockwise_by_angle,
    'quadrant': _clockwise_by_quadrant,
}


def sort_corners(points: np.ndarray, method: str = 'angle') -> np.ndarray:
    """
    Order corners as top-left, top-right, bottom-right, bottom-left.

    Points are put in clockwise order around their centroid, then rotated
    so that the point nearest the image origin comes first. Both methods
    produce the same clockwise cycle and therefore the same result.

    Args:
        points: Four corner points in any order
        method: 'angle' or 'quadrant'

    Returns:
        Array (4, 2) of ordered corners
    """
    if method not in SORT_METHODS:
        raise ValueError(f"Unknown sort method: {method}")

    points = np.asarray(points, dtype=np.float32).reshape(-1, 2)
    if len(points) != 4:
        raise ValueError(f"Expected 4 points, got {len(points)}")

    center = points.mean(axis=0)
    clockwise = SORT_METHODS[method](points, center)

    start = int(np.argmin(np.hypot(clockwise[:, 0], clockwise[:, 1])))
    return np.roll(clockwise, -start, axis=0)
