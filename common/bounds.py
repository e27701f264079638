from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

Point = Tuple[float, float]


@dataclass(frozen=True)
class DocumentBounds:
    """
    Detected document boundary in normalized [0, 1] coordinates.

    Corners are ordered top-left, top-right, bottom-right, bottom-left.
    """
    corners: Tuple[Point, Point, Point, Point]
    confidence: float

    def __post_init__(self):
        corners = tuple((float(x), float(y)) for x, y in self.corners)
        if len(corners) != 4:
            raise ValueError(f"DocumentBounds needs 4 corners, got {len(corners)}")
        for x, y in corners:
            if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
                raise ValueError(f"Corner ({x}, {y}) is outside the unit square")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence {self.confidence} is outside [0, 1]")
        if self.area() <= 0.0:
            raise ValueError("Corners are collinear")
        object.__setattr__(self, 'corners', corners)
        object.__setattr__(self, 'confidence', float(self.confidence))

    def __str__(self) -> str:
        points = ", ".join(f"({x:.4f}, {y:.4f})" for x, y in self.corners)
        return f"DocumentBounds([{points}], confidence={self.confidence:.3f})"

    @property
    def top_left(self) -> Point:
        return self.corners[0]

    @property
    def top_right(self) -> Point:
        return self.corners[1]

    @property
    def bottom_right(self) -> Point:
        return self.corners[2]

    @property
    def bottom_left(self) -> Point:
        return self.corners[3]

    def area(self) -> float:
        """
        Calculate the normalized area enclosed by the corners (shoelace formula).

        Returns:
        - float: Area as a fraction of the image, 0 for collinear corners.
        """
        xs = [x for x, _ in self.corners]
        ys = [y for _, y in self.corners]
        total = 0.0
        for i in range(4):
            j = (i + 1) % 4
            total += xs[i] * ys[j] - xs[j] * ys[i]
        return abs(total) / 2.0

    def to_pixels(self, width: int, height: int) -> np.ndarray:
        """
        Convert the corners back to pixel coordinates.

        Parameters:
        - width (int): Image width in pixels.
        - height (int): Image height in pixels.

        Returns:
        - np.ndarray: Array (4, 2) of float32 pixel coordinates.
        """
        return np.array(self.corners, dtype=np.float32) * np.array([width, height], dtype=np.float32)

    def as_dict(self) -> Dict[str, float]:
        """Flat x1..y4 + confidence mapping, corners in TL, TR, BR, BL order."""
        result = {}
        for index, (x, y) in enumerate(self.corners, start=1):
            result[f"x{index}"] = x
            result[f"y{index}"] = y
        result["confidence"] = self.confidence
        return result
