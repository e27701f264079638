"""
Visualization of detected document bounds
"""

import cv2
import numpy as np
from typing import Optional, Sequence, Tuple

from common.bounds import DocumentBounds


class BoundsVisualizer:
    """
    Class for visualizing detected document bounds.

    Draws the boundary, corner markers and a translucent overlay on a
    copy of the image, optionally with the detection confidence.
    """

    # Marker colors in TL, TR, BR, BL order, so the corner order is visible
    CORNER_COLORS = (
        (0, 0, 255),
        (0, 255, 0),
        (255, 0, 0),
        (0, 255, 255),
    )

    def __init__(
        self,
        border_color: Tuple[int, int, int] = (0, 200, 0),  # Green in BGR
        border_thickness: int = 2,
        overlay_color: Tuple[int, int, int] = (100, 255, 100),
        overlay_alpha: float = 0.2,
        corner_radius: int = 5
    ):
        """
        Initialize the visualizer.

        Args:
            border_color: Boundary color in BGR format
            border_thickness: Boundary thickness in pixels
            overlay_color: Transparent overlay color in BGR format
            overlay_alpha: Overlay transparency (0.0 = transparent, 1.0 = opaque)
            corner_radius: Radius of the corner markers
        """
        self.border_color = border_color
        self.border_thickness = border_thickness
        self.overlay_color = overlay_color
        self.overlay_alpha = overlay_alpha
        self.corner_radius = corner_radius

    @staticmethod
    def _to_bgr(image: np.ndarray) -> np.ndarray:
        if image.ndim == 2:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
        return image.copy()

    @staticmethod
    def _put_text(image: np.ndarray, lines: Sequence[str]):
        y_offset = 30
        for i, text in enumerate(lines):
            position = (10, y_offset + i * 30)
            # White outline
            cv2.putText(image, text, position, cv2.FONT_HERSHEY_SIMPLEX, 0.7, (255, 255, 255), 2, cv2.LINE_AA)
            # Black text
            cv2.putText(image, text, position, cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 0), 1, cv2.LINE_AA)

    def draw_corners(
        self,
        image: np.ndarray,
        corners: np.ndarray,
        color: Optional[Tuple[int, int, int]] = None,
        draw_overlay: bool = True
    ) -> np.ndarray:
        """
        Draw a pixel-coordinate quadrilateral on a copy of the image.

        Args:
            image: Input image (BGR, BGRA or grayscale)
            corners: Array (4, 2) of corners in pixels
            color: Boundary color, defaults to ``border_color``
            draw_overlay: Whether to draw the transparent overlay

        Returns:
            BGR image with the visualization
        """
        result = self._to_bgr(image)
        points = np.round(np.asarray(corners, dtype=np.float32)).astype(np.int32).reshape(-1, 1, 2)

        if draw_overlay:
            overlay = result.copy()
            cv2.fillPoly(overlay, [points], self.overlay_color)
            result = cv2.addWeighted(overlay, self.overlay_alpha, result, 1 - self.overlay_alpha, 0)

        cv2.polylines(result, [points], True, color or self.border_color, self.border_thickness)

        for index, point in enumerate(points.reshape(-1, 2)):
            marker_color = self.CORNER_COLORS[index % len(self.CORNER_COLORS)]
            cv2.circle(result, (int(point[0]), int(point[1])), self.corner_radius, marker_color, -1)

        return result

    def visualize(
        self,
        image: np.ndarray,
        bounds: Optional[DocumentBounds],
        show_confidence: bool = True,
        draw_overlay: bool = True
    ) -> np.ndarray:
        """
        Visualize detected bounds on the image.

        Args:
            image: Input image the bounds were detected in
            bounds: Normalized bounds, or None when nothing was found
            show_confidence: Whether to print the confidence
            draw_overlay: Whether to draw the transparent overlay

        Returns:
            BGR image with visualization
        """
        if bounds is None:
            result = self._to_bgr(image)
            self._put_text(result, ["No document found"])
            return result

        height, width = image.shape[:2]
        result = self.draw_corners(image, bounds.to_pixels(width, height), draw_overlay=draw_overlay)

        if show_confidence:
            self._put_text(result, [f"Confidence: {bounds.confidence:.2f}"])

        return result

    def visualize_comparison(
        self,
        image: np.ndarray,
        bounds: Optional[DocumentBounds],
        expected: np.ndarray,
        expected_color: Tuple[int, int, int] = (0, 0, 255)
    ) -> np.ndarray:
        """
        Draw detected bounds next to ground-truth pixel corners.

        Args:
            image: Input image
            bounds: Detected bounds or None
            expected: Ground-truth corners (4, 2) in pixels
            expected_color: Color of the ground-truth outline

        Returns:
            BGR image with both outlines
        """
        result = self._to_bgr(image)
        points = np.round(np.asarray(expected, dtype=np.float32)).astype(np.int32).reshape(-1, 1, 2)
        cv2.polylines(result, [points], True, expected_color, 1)
        return self.visualize(result, bounds, draw_overlay=False)

    def create_side_by_side(
        self,
        original: np.ndarray,
        visualized: np.ndarray
    ) -> np.ndarray:
        """
        Create an image with original and visualized image side by side.

        Args:
            original: Original image
            visualized: Visualized image

        Returns:
            Combined image
        """
        original = self._to_bgr(original)

        # Ensure both images have the same height
        if original.shape[0] != visualized.shape[0]:
            height = original.shape[0]
            width = int(visualized.shape[1] * height / visualized.shape[0])
            visualized = cv2.resize(visualized, (width, height))

        return np.hstack([original, visualized])
