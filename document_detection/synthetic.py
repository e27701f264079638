"""
Synthetic test images

Generates images that look like ID documents lying on a surface, without
any personal information or real document features. Every image comes
with its ground-truth corners so detection accuracy can be measured.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

BACKGROUND_GRAY = 240
DOCUMENT_GRAY = 255
BORDER_GRAY = 180
BORDER_THICKNESS = 2
TEXT_GRAY = 50
MARGIN = 100

LOGO_FILL = (100, 150, 200)
LOGO_OUTLINE = (80, 130, 180)
LOGO_RADIUS = 25

BACKGROUND_TYPES = ('plain', 'textured', 'gradient')


@dataclass(frozen=True)
class DocumentSize:
    """Document dimensions in pixels at generation scale"""
    width: int
    height: int
    name: str


# 85.60 x 53.98 mm, credit card size
ID_CARD = DocumentSize(427, 270, "ID_Card")
DRIVERS_LICENSE = DocumentSize(427, 270, "Drivers_License")
# 125 x 88 mm, B7
PASSPORT_PAGE = DocumentSize(500, 352, "Passport_Page")

DOCUMENT_SIZES = (ID_CARD, DRIVERS_LICENSE, PASSPORT_PAGE)


@dataclass
class SyntheticDocument:
    """
    Generated image with its ground truth.

    Attributes:
        image: BGR image
        corners: Document corners (4, 2) in pixels, TL, TR, BR, BL
        name: Short description of the variant
    """
    image: np.ndarray
    corners: np.ndarray
    name: str = "document"

    @property
    def normalized_corners(self) -> np.ndarray:
        height, width = self.image.shape[:2]
        return self.corners / np.array([width, height], dtype=np.float32)


def _gray(value: int) -> Tuple[int, int, int]:
    return (value, value, value)


class SyntheticDocumentGenerator:
    """
    Generator of synthetic document photos.

    The document is centered on a background ``MARGIN`` pixels wider on
    every side. Variants add one challenge each: rotation, perspective,
    uneven lighting, busy background or blur.
    """

    def __init__(self, seed: Optional[int] = None, margin: int = MARGIN):
        self.rng = np.random.default_rng(seed)
        self.margin = margin

    def _canvas_size(self, size: DocumentSize) -> Tuple[int, int]:
        return size.width + 2 * self.margin, size.height + 2 * self.margin

    def _document_corners(self, size: DocumentSize) -> np.ndarray:
        x, y = self.margin, self.margin
        return np.array([
            [x, y],
            [x + size.width, y],
            [x + size.width, y + size.height],
            [x, y + size.height],
        ], dtype=np.float32)

    def _add_text_blocks(self, image: np.ndarray, x: int, y: int, size: DocumentSize, count: int = 5):
        """Dark rectangles standing in for printed text, kept inside the document."""
        for _ in range(count):
            block_w = int(self.rng.integers(60, 121))
            block_h = int(self.rng.integers(8, 16))
            left = int(self.rng.integers(x + 20, max(x + 21, x + size.width - block_w - 20)))
            top = int(self.rng.integers(y + 20, max(y + 21, y + size.height - block_h - 20)))
            cv2.rectangle(image, (left, top), (left + block_w, top + block_h), _gray(TEXT_GRAY), -1)

    def _add_logo(self, image: np.ndarray, x: int, y: int, size: DocumentSize):
        center = (x + size.width - 60, y + 40)
        cv2.circle(image, center, LOGO_RADIUS, LOGO_FILL, -1)
        cv2.circle(image, center, LOGO_RADIUS, LOGO_OUTLINE, 2)

    def _add_noise(self, image: np.ndarray, intensity: float = 0.1) -> np.ndarray:
        noise = self.rng.integers(0, 256, size=image.shape, dtype=np.uint8)
        return cv2.addWeighted(image, 1.0 - intensity, noise, intensity, 0)

    def create_background(self, width: int, height: int, background_type: str) -> np.ndarray:
        """
        Create a background surface.

        Args:
            width: Background width
            height: Background height
            background_type: 'plain', 'textured' or 'gradient'

        Returns:
            BGR background image
        """
        if background_type == 'plain':
            return np.full((height, width, 3), 200, dtype=np.uint8)

        if background_type == 'textured':
            ys, xs = np.mgrid[0:height, 0:width]
            values = (180 + (xs + ys) % 40).astype(np.uint8)
            return cv2.merge([values, values, values])

        if background_type == 'gradient':
            column = (150 + (np.arange(height) * 100) // height).astype(np.uint8)
            values = np.repeat(column[:, None], width, axis=1)
            return cv2.merge([values, values, values])

        raise ValueError(f"Unknown background type: {background_type}")

    def generate_document(
        self,
        size: DocumentSize = ID_CARD,
        background: int = BACKGROUND_GRAY,
        document: int = DOCUMENT_GRAY,
        add_noise: bool = False,
        add_text_blocks: bool = True,
        add_logo: bool = True
    ) -> SyntheticDocument:
        """
        Generate a flat, axis-aligned document on a plain background.

        Args:
            size: Document dimensions
            background: Background gray level
            document: Document gray level
            add_noise: Blend in uniform noise
            add_text_blocks: Draw text placeholders
            add_logo: Draw the round logo placeholder

        Returns:
            SyntheticDocument with the document's corners
        """
        width, height = self._canvas_size(size)
        image = np.full((height, width, 3), background, dtype=np.uint8)

        x, y = self.margin, self.margin
        bottom_right = (x + size.width, y + size.height)
        cv2.rectangle(image, (x, y), bottom_right, _gray(document), -1)
        cv2.rectangle(image, (x, y), bottom_right, _gray(BORDER_GRAY), BORDER_THICKNESS)

        if add_text_blocks:
            self._add_text_blocks(image, x, y, size)
        if add_logo:
            self._add_logo(image, x, y, size)
        if add_noise:
            image = self._add_noise(image)

        return SyntheticDocument(image=image, corners=self._document_corners(size), name=f"{size.name}_basic")

    def with_rotation(self, size: DocumentSize, angle_degrees: float, **kwargs) -> SyntheticDocument:
        """Document rotated counter-clockwise about the image center."""
        base = self.generate_document(size, **kwargs)
        height, width = base.image.shape[:2]

        matrix = cv2.getRotationMatrix2D((width / 2.0, height / 2.0), angle_degrees, 1.0)
        fill = kwargs.get('background', BACKGROUND_GRAY)
        image = cv2.warpAffine(base.image, matrix, (width, height), borderValue=_gray(fill))
        corners = cv2.transform(base.corners.reshape(-1, 1, 2), matrix).reshape(-1, 2)

        return SyntheticDocument(image=image, corners=corners, name=f"{size.name}_rotated_{int(angle_degrees)}")

    def with_perspective(self, size: DocumentSize, factor: float = 0.1, **kwargs) -> SyntheticDocument:
        """Document whose top edge recedes, as if photographed at an angle."""
        base = self.generate_document(size, **kwargs)
        height, width = base.image.shape[:2]

        offset = size.width * factor
        target = base.corners.copy()
        target[0, 0] += offset
        target[1, 0] -= offset

        matrix = cv2.getPerspectiveTransform(base.corners, target)
        fill = kwargs.get('background', BACKGROUND_GRAY)
        image = cv2.warpPerspective(base.image, matrix, (width, height), borderValue=_gray(fill))

        return SyntheticDocument(image=image, corners=target, name=f"{size.name}_perspective_{int(factor * 100)}")

    def with_lighting(self, size: DocumentSize, variation: float = 0.3, **kwargs) -> SyntheticDocument:
        """Radial darkening towards the image corners."""
        base = self.generate_document(size, **kwargs)
        height, width = base.image.shape[:2]

        ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
        cx, cy = width / 2.0, height / 2.0
        distance = np.sqrt((xs - cx) ** 2 + (ys - cy) ** 2) / np.sqrt(cx ** 2 + cy ** 2)
        mask = 1.0 - variation * distance

        image = np.clip(base.image.astype(np.float32) * mask[:, :, None], 0, 255).astype(np.uint8)
        return SyntheticDocument(image=image, corners=base.corners, name=f"{size.name}_lighting_{int(variation * 100)}")

    def with_background(self, size: DocumentSize, background_type: str, **kwargs) -> SyntheticDocument:
        """Document pasted onto a plain, textured or gradient surface."""
        base = self.generate_document(size, **kwargs)
        height, width = base.image.shape[:2]

        image = self.create_background(width, height, background_type)
        # Include the border, which straddles the document edge
        top = self.margin - BORDER_THICKNESS
        left = self.margin - BORDER_THICKNESS
        bottom = self.margin + size.height + BORDER_THICKNESS
        right = self.margin + size.width + BORDER_THICKNESS
        image[top:bottom, left:right] = base.image[top:bottom, left:right]

        return SyntheticDocument(image=image, corners=base.corners, name=f"{size.name}_bg_{background_type}")

    def with_blur(self, size: DocumentSize, sigma: float = 2.0, **kwargs) -> SyntheticDocument:
        """Gaussian blur, kernel size derived from sigma."""
        base = self.generate_document(size, **kwargs)
        image = cv2.GaussianBlur(base.image, (0, 0), sigma)
        return SyntheticDocument(image=image, corners=base.corners, name=f"{size.name}_blur_{int(sigma)}")

    def iter_suite(self, sizes=DOCUMENT_SIZES):
        """Yield the standard set of variants for every document size."""
        for size in sizes:
            yield self.generate_document(size)
            for angle in (-15, -5, 5, 15, 30):
                yield self.with_rotation(size, angle)
            for factor in (0.05, 0.1, 0.2):
                yield self.with_perspective(size, factor)
            for variation in (0.1, 0.3, 0.5):
                yield self.with_lighting(size, variation)
            for background_type in BACKGROUND_TYPES:
                yield self.with_background(size, background_type)
            for sigma in (1.0, 2.0, 3.0):
                yield self.with_blur(size, sigma)

    def generate_suite(self, output_dir: Union[str, Path], sizes=DOCUMENT_SIZES, extension: str = ".jpg") -> List[Path]:
        """
        Write the standard variants plus a ground-truth CSV to a directory.

        Args:
            output_dir: Target directory, created if missing
            sizes: Document sizes to generate
            extension: Image file extension (decides the encoding)

        Returns:
            Paths of the written images
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        paths = []
        rows: List[Dict[str, object]] = []
        for sample in self.iter_suite(sizes):
            path = output_dir / f"{sample.name}{extension}"
            if not cv2.imwrite(str(path), sample.image):
                raise IOError(f"Failed to write {path}")
            paths.append(path)

            row = {'Image': path.name}
            for index, (x, y) in enumerate(sample.normalized_corners, start=1):
                row[f"X{index}"] = f"{x:.6f}"
                row[f"Y{index}"] = f"{y:.6f}"
            rows.append(row)

        write_ground_truth(output_dir / GROUND_TRUTH_FILE, rows)
        logger.info("Generated %d test images in %s", len(paths), output_dir)
        return paths


GROUND_TRUTH_FILE = "ground_truth.csv"
GROUND_TRUTH_FIELDS = ['Image'] + [f"{axis}{i}" for i in range(1, 5) for axis in ('X', 'Y')]


def write_ground_truth(path: Path, rows: List[Dict[str, object]]):
    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=GROUND_TRUTH_FIELDS)
        writer.writeheader()
        writer.writerows(rows)


def read_ground_truth(path: Union[str, Path]) -> Dict[str, np.ndarray]:
    """Map image file name -> normalized corners (4, 2)."""
    truth = {}
    with open(path, newline='') as f:
        for row in csv.DictReader(f):
            corners = [[float(row[f"X{i}"]), float(row[f"Y{i}"])] for i in range(1, 5)]
            truth[row['Image']] = np.array(corners, dtype=np.float32)
    return truth
