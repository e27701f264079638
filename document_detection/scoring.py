"""
Candidate scoring strategies

A scorer looks at every filtered contour and picks the one most likely to
be the document, together with a confidence in [0, 1].
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from .contours import is_full_frame
from .profile import ParameterProfile

logger = logging.getLogger(__name__)

# Scores at or below this are not a document
MIN_SCORE = 0.1

# Area ratio windows for the weighted area score
OPTIMAL_AREA_RANGE = (0.01, 0.7)
NEAR_FULL_FRAME_AREA = 0.85
NEAR_FULL_FRAME_SCORE = 0.9
ACCEPTABLE_AREA_SCORE = 0.5

# (max vertex count, score) steps for the weighted shape score
SHAPE_SCORE_STEPS = ((4, 1.0), (8, 0.8), (12, 0.5))

# Largest-quad confidence
AREA_CONFIDENCE_RANGE = (0.1, 0.8)
AREA_CONFIDENCE_PEAK = 0.4
SHAPE_CONFIDENCE_EPSILON = 0.02


@dataclass(frozen=True)
class ScoringWeights:
    """Weights of the weighted score; they sum to 1 so the score stays in [0, 1]."""
    area: float = 0.25
    aspect: float = 0.4
    shape: float = 0.15
    position: float = 0.2


@dataclass
class ScoredCandidate:
    """
    Best candidate chosen by a scorer.

    Attributes:
        polygon: Vertex-reduced polygon (N x 1 x 2, int32)
        score: Composite score in [0, 1]
        contour: Contour the polygon was approximated from
        details: Individual sub-scores
    """
    polygon: np.ndarray
    score: float
    contour: np.ndarray
    details: Dict[str, float] = field(default_factory=dict)


def approximate(contour: np.ndarray, epsilon_factor: float) -> np.ndarray:
    """Douglas-Peucker approximation with epsilon relative to the perimeter."""
    epsilon = epsilon_factor * cv2.arcLength(contour, True)
    return cv2.approxPolyDP(contour, epsilon, True)


def area_score(area_ratio: float, profile: ParameterProfile, full_frame: bool = False) -> float:
    """
    Area sub-score. A full-frame contour that survived filtering is a
    tightly cropped document and always gets the near-full-frame score.
    """
    if full_frame and area_ratio >= profile.min_area_ratio:
        return NEAR_FULL_FRAME_SCORE
    if area_ratio < profile.min_area_ratio or area_ratio > profile.max_area_ratio:
        return 0.0
    low, high = OPTIMAL_AREA_RANGE
    if low <= area_ratio <= high:
        return 1.0
    if area_ratio > NEAR_FULL_FRAME_AREA:
        # Tightly cropped document photo
        return NEAR_FULL_FRAME_SCORE
    return ACCEPTABLE_AREA_SCORE


def aspect_score(width: float, height: float, profile: ParameterProfile) -> float:
    """1.0 at the target aspect ratio, falling linearly to 0 at the tolerance."""
    if width <= 0 or height <= 0:
        return 0.0
    deviation = abs(width / height - profile.target_aspect_ratio) / profile.target_aspect_ratio
    if deviation > profile.aspect_tolerance:
        return 0.0
    return 1.0 - deviation / profile.aspect_tolerance


def shape_score(vertex_count: int) -> float:
    if vertex_count < 4:
        return 0.0
    for max_vertices, score in SHAPE_SCORE_STEPS:
        if vertex_count <= max_vertices:
            return score
    return 0.0


def position_score(polygon: np.ndarray, image_size: Tuple[int, int]) -> float:
    """1.0 when the polygon is centered in the frame, 0 at the frame corners."""
    width, height = image_size
    (cx, cy), _ = cv2.minEnclosingCircle(polygon)
    half_w, half_h = width / 2.0, height / 2.0
    distance = np.hypot(cx - half_w, cy - half_h)
    max_distance = np.hypot(half_w, half_h)
    return float(max(0.0, 1.0 - distance / max_distance))


class CandidateScorer:
    """
    Base class for scoring strategies.

    ``select`` returns the best candidate, or None when nothing scores
    above ``min_score``.
    """

    name = "base"

    def __init__(self, min_score: float = MIN_SCORE):
        self.min_score = min_score

    def select(
        self,
        candidates: Sequence[np.ndarray],
        image_size: Tuple[int, int],
        profile: ParameterProfile
    ) -> Optional[ScoredCandidate]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(min_score={self.min_score})"


class WeightedScorer(CandidateScorer):
    """
    Multi-criterion scorer tuned for ID-1 documents.

    Combines area, aspect ratio (dominant), shape regularity and position
    in frame. Rounded corners and security patterns are tolerated through
    the stepped shape score.
    """

    name = "weighted"

    def __init__(self, weights: Optional[ScoringWeights] = None, min_score: float = MIN_SCORE):
        super().__init__(min_score)
        self.weights = weights or ScoringWeights()

    def score_polygon(
        self,
        polygon: np.ndarray,
        image_size: Tuple[int, int],
        profile: ParameterProfile
    ) -> Tuple[float, Dict[str, float]]:
        """
        Score one approximated polygon.

        Args:
            polygon: Vertex-reduced contour
            image_size: (width, height) of the working image
            profile: Current parameter profile

        Returns:
            Tuple (score, sub-scores)
        """
        if len(polygon) < 4:
            return 0.0, {}

        width, height = image_size
        area_ratio = cv2.contourArea(polygon) / float(width * height)
        _, _, box_w, box_h = cv2.boundingRect(polygon)

        details = {
            'area': area_score(area_ratio, profile, is_full_frame(polygon, (height, width))),
            'aspect': aspect_score(box_w, box_h, profile),
            'shape': shape_score(len(polygon)),
            'position': position_score(polygon, image_size),
        }
        score = (
            details['area'] * self.weights.area
            + details['aspect'] * self.weights.aspect
            + details['shape'] * self.weights.shape
            + details['position'] * self.weights.position
        )
        details['area_ratio'] = area_ratio
        return float(score), details

    def select(self, candidates, image_size, profile):
        best = None

        for contour in candidates:
            polygon = approximate(contour, profile.epsilon_factor)
            score, details = self.score_polygon(polygon, image_size, profile)
            logger.debug("Candidate with %d vertices scored %.3f %s", len(polygon), score, details)

            if score > self.min_score and (best is None or score > best.score):
                best = ScoredCandidate(polygon=polygon, score=score, contour=contour, details=details)

        return best


class LargestQuadScorer(CandidateScorer):
    """
    Single-criterion scorer: the largest quadrilateral wins.

    Falls back to the bounding rectangle of the largest contour when no
    candidate approximates to four vertices.
    """

    name = "largest_quad"

    def confidence(self, polygon: np.ndarray, image_size: Tuple[int, int]) -> Tuple[float, Dict[str, float]]:
        """Average of an area-window score and a vertex-count score."""
        width, height = image_size
        area_ratio = cv2.contourArea(polygon) / float(width * height)

        low, high = AREA_CONFIDENCE_RANGE
        area_confidence = 0.0
        if low <= area_ratio <= high:
            area_confidence = 1.0 - abs(AREA_CONFIDENCE_PEAK - area_ratio) / AREA_CONFIDENCE_PEAK

        vertices = len(approximate(polygon, SHAPE_CONFIDENCE_EPSILON))
        if vertices == 4:
            shape_confidence = 1.0
        elif 3 <= vertices <= 6:
            shape_confidence = 0.7
        else:
            shape_confidence = 0.3

        details = {'area': area_confidence, 'shape': shape_confidence, 'area_ratio': area_ratio}
        return (area_confidence + shape_confidence) / 2.0, details

    def select(self, candidates, image_size, profile):
        best_quad = None
        best_area = 0.0

        for contour in candidates:
            polygon = approximate(contour, profile.epsilon_factor)
            if len(polygon) != 4:
                continue
            area = cv2.contourArea(polygon)
            if area > best_area:
                best_area = area
                best_quad = (polygon, contour)

        if best_quad is None:
            if not candidates:
                return None
            contour = max(candidates, key=cv2.contourArea)
            # Confidence reflects the real shape, the corners come from its box
            score, details = self.confidence(approximate(contour, profile.epsilon_factor), image_size)
            x, y, w, h = cv2.boundingRect(contour)
            polygon = np.array(
                [[[x, y]], [[x + w, y]], [[x + w, y + h]], [[x, y + h]]],
                dtype=np.int32
            )
            logger.debug("No quadrilateral found, using bounding rectangle %s", (x, y, w, h))
        else:
            polygon, contour = best_quad
            score, details = self.confidence(polygon, image_size)

        if score <= self.min_score:
            return None
        return ScoredCandidate(polygon=polygon, score=score, contour=contour, details=details)


SCORERS = {
    WeightedScorer.name: WeightedScorer,
    LargestQuadScorer.name: LargestQuadScorer,
}
