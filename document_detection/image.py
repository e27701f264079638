"""
Image input boundary: raw pixel buffers and grayscale conversion
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from .errors import InvalidInput


class PixelFormat(Enum):
    """Channel layout of a raw pixel buffer"""
    RGB = "rgb"
    RGBA = "rgba"
    BGR = "bgr"
    BGRA = "bgra"
    GRAYSCALE = "grayscale"

    @property
    def channels(self) -> int:
        return _CHANNELS[self]


_CHANNELS = {
    PixelFormat.RGB: 3,
    PixelFormat.RGBA: 4,
    PixelFormat.BGR: 3,
    PixelFormat.BGRA: 4,
    PixelFormat.GRAYSCALE: 1,
}

# Conversion to the internal representation (BGR or single channel)
_TO_WORKING = {
    PixelFormat.RGB: cv2.COLOR_RGB2BGR,
    PixelFormat.RGBA: cv2.COLOR_RGBA2BGR,
    PixelFormat.BGRA: cv2.COLOR_BGRA2BGR,
}


@dataclass(frozen=True)
class ImageBuffer:
    """
    Caller-owned pixel buffer.

    The detector only reads from ``data``; the caller must keep it alive
    for the duration of the call.

    Attributes:
        data: Raw bytes (any object supporting the buffer protocol)
        width: Width in pixels
        height: Height in pixels
        stride: Bytes per row, including any padding
        format: Channel layout
    """
    data: Union[bytes, bytearray, memoryview, np.ndarray]
    width: int
    height: int
    stride: int
    format: PixelFormat = PixelFormat.BGR

    @classmethod
    def from_array(cls, array: np.ndarray, format: PixelFormat = PixelFormat.BGR) -> "ImageBuffer":
        """Wrap a C-contiguous uint8 numpy image without copying it."""
        array = np.ascontiguousarray(array, dtype=np.uint8)
        height, width = array.shape[:2]
        return cls(data=array, width=width, height=height, stride=array.strides[0], format=format)

    def to_array(self) -> np.ndarray:
        """
        View the buffer as a numpy image in the detector's working layout.

        Returns:
            BGR image (H, W, 3) for color formats, (H, W) for grayscale

        Raises:
            InvalidInput: zero dimensions, bad stride, short buffer or
                unsupported format
        """
        if self.data is None:
            raise InvalidInput("Image buffer is None")
        if not isinstance(self.format, PixelFormat):
            raise InvalidInput(f"Unsupported pixel format: {self.format!r}")
        if self.width <= 0 or self.height <= 0:
            raise InvalidInput(f"Invalid image dimensions: {self.width}x{self.height}")

        channels = self.format.channels
        row_bytes = self.width * channels
        if self.stride < row_bytes:
            raise InvalidInput(f"Stride {self.stride} is smaller than row size {row_bytes}")

        flat = np.frombuffer(memoryview(self.data).cast("B"), dtype=np.uint8)
        required = self.stride * (self.height - 1) + row_bytes
        if flat.size < required:
            raise InvalidInput(f"Buffer holds {flat.size} bytes, {required} required")

        rows = np.lib.stride_tricks.as_strided(
            flat,
            shape=(self.height, row_bytes),
            strides=(self.stride, 1),
            writeable=False
        )

        if channels == 1:
            return np.ascontiguousarray(rows)

        pixels = np.ascontiguousarray(rows).reshape(self.height, self.width, channels)
        if self.format in _TO_WORKING:
            return cv2.cvtColor(pixels, _TO_WORKING[self.format])
        return pixels


def as_image_array(image: Union[np.ndarray, ImageBuffer, None]) -> np.ndarray:
    """
    Validate detector input and return it as a numpy image.

    Numpy input is taken to be BGR, BGRA or grayscale, as read by OpenCV.
    """
    if image is None:
        raise InvalidInput("Image is None")

    if isinstance(image, ImageBuffer):
        return image.to_array()

    if not isinstance(image, np.ndarray):
        raise InvalidInput(f"Unsupported image type: {type(image).__name__}")
    if image.size == 0 or image.ndim < 2 or image.shape[0] == 0 or image.shape[1] == 0:
        raise InvalidInput("Image is empty")
    if image.ndim == 3 and image.shape[2] not in (1, 3, 4):
        raise InvalidInput(f"Unsupported channel count: {image.shape[2]}")
    if image.ndim > 3:
        raise InvalidInput(f"Unsupported image shape: {image.shape}")

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    return image


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR, BGRA or single-channel image to one channel."""
    if image.ndim == 2:
        return image
    if image.shape[2] == 1:
        return image[:, :, 0]
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image from disk in BGR format.

    Raises:
        InvalidInput: the file is missing or cannot be decoded
    """
    image = cv2.imread(str(path))
    if image is None:
        raise InvalidInput(f"Failed to load image: {path}")
    return image
