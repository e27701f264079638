"""
Document Detection Module

Finds the boundary of an ID-1 card (or any roughly rectangular document)
in a photo using OpenCV and returns its corners in normalized coordinates.
"""

from common.bounds import DocumentBounds

from .config import DetectorConfig
from .detector import DocumentDetector, normalize_bounds
from .errors import DetectionError, InvalidInput, NoDocumentFound, ProcessingFailure
from .image import ImageBuffer, PixelFormat, load_image
from .profile import ParameterProfile, select_profile
from .visualizer import BoundsVisualizer

__all__ = [
    'DocumentBounds',
    'DetectorConfig',
    'DocumentDetector',
    'normalize_bounds',
    'DetectionError',
    'InvalidInput',
    'NoDocumentFound',
    'ProcessingFailure',
    'ImageBuffer',
    'PixelFormat',
    'load_image',
    'ParameterProfile',
    'select_profile',
    'BoundsVisualizer',
]
