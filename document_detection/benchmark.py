"""
Detection benchmark

Runs a detector over a directory of images and reports success rate,
confidence and processing time, optionally against ground-truth corners
written by the synthetic generator.
"""

import csv
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import cv2
import numpy as np

from common.bounds import DocumentBounds

from .detector import DocumentDetector
from .errors import DetectionError
from .image import load_image
from .synthetic import GROUND_TRUTH_FILE, read_ground_truth
from .visualizer import BoundsVisualizer

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tif', '.tiff'}

RESULT_FIELDS = [
    'Image', 'Success', 'Confidence', 'ProcessingTime(ms)',
    'X1', 'Y1', 'X2', 'Y2', 'X3', 'Y3', 'X4', 'Y4',
    'CornerError', 'ErrorMessage',
]


@dataclass
class BenchmarkResult:
    """Outcome of detecting one image"""
    image_name: str
    success: bool
    confidence: float = 0.0
    processing_time_ms: float = 0.0
    bounds: Optional[DocumentBounds] = None
    corner_error: Optional[float] = None
    error_message: str = ""

    def as_row(self) -> Dict[str, str]:
        row = {
            'Image': self.image_name,
            'Success': "1" if self.success else "0",
            'Confidence': f"{self.confidence:.4f}",
            'ProcessingTime(ms)': f"{self.processing_time_ms:.2f}",
            'CornerError': f"{self.corner_error:.4f}" if self.corner_error is not None else "",
            'ErrorMessage': self.error_message,
        }
        for index in range(1, 5):
            row[f"X{index}"] = ""
            row[f"Y{index}"] = ""
        if self.bounds is not None:
            for index, (x, y) in enumerate(self.bounds.corners, start=1):
                row[f"X{index}"] = f"{x:.6f}"
                row[f"Y{index}"] = f"{y:.6f}"
        return row


@dataclass
class BenchmarkStatistics:
    """Aggregates over a list of results; confidence only counts successes"""
    total_images: int = 0
    successful: int = 0
    failed: int = 0
    average_confidence: float = 0.0
    min_confidence: float = 0.0
    max_confidence: float = 0.0
    average_time_ms: float = 0.0
    min_time_ms: float = 0.0
    max_time_ms: float = 0.0
    average_corner_error: Optional[float] = None

    @property
    def success_rate(self) -> float:
        if self.total_images == 0:
            return 0.0
        return self.successful / float(self.total_images)

    @classmethod
    def from_results(cls, results: List[BenchmarkResult]) -> "BenchmarkStatistics":
        stats = cls(total_images=len(results))
        if not results:
            return stats

        confidences = [r.confidence for r in results if r.success]
        times = [r.processing_time_ms for r in results]
        errors = [r.corner_error for r in results if r.corner_error is not None]

        stats.successful = len(confidences)
        stats.failed = stats.total_images - stats.successful
        if confidences:
            stats.average_confidence = float(np.mean(confidences))
            stats.min_confidence = float(np.min(confidences))
            stats.max_confidence = float(np.max(confidences))
        stats.average_time_ms = float(np.mean(times))
        stats.min_time_ms = float(np.min(times))
        stats.max_time_ms = float(np.max(times))
        if errors:
            stats.average_corner_error = float(np.mean(errors))
        return stats

    def format(self) -> str:
        line = "=" * 60
        lines = [
            line,
            "DETECTION BENCHMARK RESULTS",
            line,
            f"Total images:  {self.total_images}",
            f"Successful:    {self.successful} ({self.success_rate * 100:.1f}%)",
            f"Failed:        {self.failed}",
            "",
            "Confidence:",
        ]
        if self.successful:
            lines += [
                f"  Average: {self.average_confidence:.3f}",
                f"  Minimum: {self.min_confidence:.3f}",
                f"  Maximum: {self.max_confidence:.3f}",
            ]
        else:
            lines.append("  No successful detections")
        lines += [
            "",
            "Processing time:",
            f"  Average: {self.average_time_ms:.2f} ms",
            f"  Fastest: {self.min_time_ms:.2f} ms",
            f"  Slowest: {self.max_time_ms:.2f} ms",
        ]
        if self.average_corner_error is not None:
            lines += ["", f"Average corner error: {self.average_corner_error:.4f} (normalized)"]
        lines.append(line)
        return "\n".join(lines)


def corner_error(bounds: DocumentBounds, expected: np.ndarray) -> float:
    """Largest distance between matching corners, in normalized units."""
    detected = np.array(bounds.corners, dtype=np.float32)
    return float(np.max(np.linalg.norm(detected - expected, axis=1)))


class DetectionBenchmark:
    """
    Benchmark a detector on a directory of images.

    Args:
        detector: Detector under test (defaults to the id1 preset)
    """

    def __init__(self, detector: Optional[DocumentDetector] = None):
        self.detector = detector or DocumentDetector()
        self.visualizer = BoundsVisualizer()

    def run_image(self, path: Path, expected: Optional[np.ndarray] = None) -> BenchmarkResult:
        result = BenchmarkResult(image_name=path.name, success=False)

        try:
            image = load_image(path)
        except DetectionError as exc:
            result.error_message = str(exc)
            return result

        started = time.perf_counter()
        try:
            bounds = self.detector.detect(image)
        except DetectionError as exc:
            result.error_message = f"{type(exc).__name__}: {exc}"
        else:
            result.success = True
            result.bounds = bounds
            result.confidence = bounds.confidence
            if expected is not None:
                result.corner_error = corner_error(bounds, expected)
        result.processing_time_ms = (time.perf_counter() - started) * 1000
        return result

    def run(self, test_dir: Union[str, Path]) -> List[BenchmarkResult]:
        """
        Detect every image in a directory, in file name order.

        Ground truth is picked up from the directory's ground-truth CSV
        when there is one.
        """
        test_dir = Path(test_dir)
        if not test_dir.is_dir():
            raise FileNotFoundError(f"Test directory does not exist: {test_dir}")

        truth_path = test_dir / GROUND_TRUTH_FILE
        truth = read_ground_truth(truth_path) if truth_path.exists() else {}

        results = []
        for path in sorted(test_dir.iterdir()):
            if path.suffix.lower() not in IMAGE_EXTENSIONS:
                continue
            result = self.run_image(path, truth.get(path.name))
            logger.info(
                "%s: %s (confidence %.3f)",
                path.name, "SUCCESS" if result.success else "FAILED", result.confidence
            )
            results.append(result)
        return results

    @staticmethod
    def save_results(results: List[BenchmarkResult], output_file: Union[str, Path]):
        """Write one CSV row per image."""
        output_file = Path(output_file)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=RESULT_FIELDS)
            writer.writeheader()
            for result in results:
                writer.writerow(result.as_row())

    def save_visual_results(
        self,
        results: List[BenchmarkResult],
        test_dir: Union[str, Path],
        output_dir: Union[str, Path]
    ) -> List[Path]:
        """Draw successful detections onto their images as result_<name>."""
        test_dir, output_dir = Path(test_dir), Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        written = []
        for result in results:
            if not result.success:
                continue
            image = cv2.imread(str(test_dir / result.image_name))
            if image is None:
                continue
            output_path = output_dir / f"result_{result.image_name}"
            cv2.imwrite(str(output_path), self.visualizer.visualize(image, result.bounds))
            written.append(output_path)
        return written
