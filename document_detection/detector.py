"""
Document boundary detector using OpenCV
"""

import logging
import time
from typing import Optional, Tuple, Union

import cv2
import numpy as np

from common.bounds import DocumentBounds

from .config import ConfigSnapshot, DetectorConfig
from .contours import extract_candidates
from .corners import recover_corners, sort_corners
from .errors import NoDocumentFound, ProcessingFailure
from .image import ImageBuffer, as_image_array, to_grayscale
from .preprocessing import PREPROCESSORS, EdgePreprocessor
from .profile import ParameterProfile
from .scoring import SCORERS, CandidateScorer

logger = logging.getLogger(__name__)


def normalize_bounds(
    corners: np.ndarray,
    width: int,
    height: int,
    confidence: float,
    scale: float = 1.0
) -> DocumentBounds:
    """
    Map working-resolution corners to normalized bounds of the original image.

    Args:
        corners: Ordered pixel corners (4, 2) in the working image
        width: Original image width
        height: Original image height
        confidence: Score of the detected candidate
        scale: Working size / original size

    Returns:
        DocumentBounds with every coordinate clamped into [0, 1]

    Raises:
        NoDocumentFound: the corners collapse onto a line
    """
    points = np.asarray(corners, dtype=np.float64).reshape(-1, 2) / scale
    points = points / np.array([width, height], dtype=np.float64)
    points = np.clip(points, 0.0, 1.0)

    try:
        return DocumentBounds(
            corners=tuple((float(x), float(y)) for x, y in points),
            confidence=float(np.clip(confidence, 0.0, 1.0)),
        )
    except ValueError as exc:
        raise NoDocumentFound(f"Degenerate document bounds: {exc}") from exc


class DocumentDetector:
    """
    Detect the boundary of a rectangular document in an image.

    The pipeline runs preprocessing, contour extraction, candidate
    scoring, corner recovery and sorting, and normalization. Which
    preprocessing and scoring strategy is used comes from the
    configuration (see the ``id1`` and ``generic`` presets) unless a
    strategy instance is passed in directly.
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        preprocessor: Optional[EdgePreprocessor] = None,
        scorer: Optional[CandidateScorer] = None,
        sort_method: str = 'angle'
    ):
        """
        Initialize the detector.

        Args:
            config: Key/value configuration (defaults to the id1 preset)
            preprocessor: Fixed preprocessing strategy, overrides the config
            scorer: Fixed scoring strategy, overrides the config
            sort_method: Corner sorting method, 'angle' or 'quadrant'
        """
        self.config = config or DetectorConfig()
        self.preprocessor = preprocessor
        self.scorer = scorer
        self.sort_method = sort_method

    @classmethod
    def from_preset(cls, name: str, **kwargs) -> "DocumentDetector":
        return cls(config=DetectorConfig(preset=name), **kwargs)

    def configure(self, key: str, value: str):
        """Shortcut for ``self.config.set``."""
        self.config.set(key, value)

    def _preprocessor_for(self, settings: ConfigSnapshot) -> EdgePreprocessor:
        if self.preprocessor is not None:
            return self.preprocessor
        return PREPROCESSORS[settings.preprocessing]()

    def _scorer_for(self, settings: ConfigSnapshot) -> CandidateScorer:
        if self.scorer is not None:
            return self.scorer
        scorer_class = SCORERS[settings.scoring]
        if settings.min_score is not None:
            return scorer_class(min_score=settings.min_score)
        return scorer_class()

    @staticmethod
    def working_image(image: np.ndarray, max_width: int) -> Tuple[np.ndarray, float]:
        """
        Downscale images wider than ``max_width``.

        Returns:
            Tuple (working image, working width / original width)
        """
        height, width = image.shape[:2]
        if width <= max_width:
            return image, 1.0

        scale = max_width / float(width)
        size = (max_width, max(1, int(round(height * scale))))
        return cv2.resize(image, size, interpolation=cv2.INTER_AREA), scale

    def locate(
        self,
        edge_map: np.ndarray,
        profile: ParameterProfile,
        scorer: Optional[CandidateScorer] = None
    ) -> Tuple[np.ndarray, float]:
        """
        Find the document in a prepared edge map.

        Args:
            edge_map: Binary edge map (uint8, edges at 255)
            profile: Parameter profile for the edge map's size
            scorer: Scoring strategy (defaults to the configured one)

        Returns:
            Tuple (ordered pixel corners (4, 2), score)

        Raises:
            NoDocumentFound: no plausible candidate or no four corners
        """
        if scorer is None:
            scorer = self._scorer_for(self.config.snapshot())

        height, width = edge_map.shape[:2]
        candidates = extract_candidates(edge_map, profile)
        if not candidates:
            raise NoDocumentFound("No candidate contours")

        best = scorer.select(candidates, (width, height), profile)
        if best is None:
            raise NoDocumentFound(f"No candidate scored above {scorer.min_score}")

        logger.debug("Best candidate: %d vertices, score %.3f", len(best.polygon), best.score)

        corners = recover_corners(best.polygon)
        return sort_corners(corners, self.sort_method), best.score

    def detect(self, image: Union[np.ndarray, ImageBuffer]) -> DocumentBounds:
        """
        Detect the document in an image.

        Args:
            image: BGR, BGRA or grayscale numpy image, or an ImageBuffer

        Returns:
            DocumentBounds in normalized coordinates, corners ordered
            top-left, top-right, bottom-right, bottom-left

        Raises:
            InvalidInput: unusable image or configuration
            NoDocumentFound: nothing in the image looks like a document
            ProcessingFailure: OpenCV or memory failure inside the pipeline
        """
        started = time.perf_counter()
        array = as_image_array(image)
        settings = self.config.snapshot()

        height, width = array.shape[:2]

        try:
            working, scale = self.working_image(array, settings.max_working_width)
            gray = to_grayscale(working)
            work_height, work_width = gray.shape[:2]

            profile = settings.profile_for(work_width, work_height)
            preprocessor = self._preprocessor_for(settings)
            scorer = self._scorer_for(settings)
            logger.debug(
                "Detecting in %dx%d (working %dx%d) with %s/%s, %s",
                width, height, work_width, work_height, preprocessor.name, scorer.name, profile
            )

            edge_map = preprocessor.edge_map(gray, profile)
            corners, score = self.locate(edge_map, profile, scorer)
        except cv2.error as exc:
            raise ProcessingFailure(f"OpenCV error: {exc}") from exc
        except MemoryError as exc:
            raise ProcessingFailure("Out of memory during detection") from exc

        bounds = normalize_bounds(corners, width, height, score, scale)
        logger.info(
            "Document found with confidence %.3f in %.1f ms",
            bounds.confidence, (time.perf_counter() - started) * 1000
        )
        return bounds
