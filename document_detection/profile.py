"""
Detection parameter profiles

A profile is the full set of numeric thresholds used by one detection
call. Profiles are immutable and derived from the working image size, so
detection is a pure function of the image and the configuration.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .errors import InvalidInput

# ISO/IEC 7810 ID-1: 85.60mm x 53.98mm
ID1_ASPECT_RATIO = 1.586

# Upper bounds (exclusive) of min(width, height) for the first three tiers
TIER_BOUNDARIES = (400, 800, 1500)

# long/short side ratio above which the frame counts as wide
WIDE_FRAME_RATIO = 2.5
WIDE_MIN_AREA_FACTOR = 0.5
WIDE_TOLERANCE_FACTOR = 1.2


@dataclass(frozen=True)
class ParameterProfile:
    """
    Thresholds for a single detection call.

    Attributes:
        canny_low: Lower hysteresis threshold for edge detection
        canny_high: Upper hysteresis threshold for edge detection
        min_area_ratio: Minimum contour area as ratio of image area
        max_area_ratio: Maximum contour area as ratio of image area
        epsilon_factor: Polygon approximation epsilon (ratio of perimeter)
        target_aspect_ratio: Expected document width / height
        aspect_tolerance: Allowed relative deviation from the target aspect
    """
    canny_low: float
    canny_high: float
    min_area_ratio: float
    max_area_ratio: float
    epsilon_factor: float
    target_aspect_ratio: float = ID1_ASPECT_RATIO
    aspect_tolerance: float = 0.4

    def __post_init__(self):
        for name in ('min_area_ratio', 'max_area_ratio', 'epsilon_factor', 'aspect_tolerance'):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise InvalidInput(f"{name} must be in (0, 1], got {value}")
        if self.min_area_ratio > self.max_area_ratio:
            raise InvalidInput(
                f"min_area_ratio {self.min_area_ratio} exceeds max_area_ratio {self.max_area_ratio}"
            )
        if not 0.0 <= self.canny_low < self.canny_high:
            raise InvalidInput(
                f"Edge thresholds must satisfy 0 <= low < high, got {self.canny_low}, {self.canny_high}"
            )
        if self.target_aspect_ratio <= 0:
            raise InvalidInput(f"target_aspect_ratio must be positive, got {self.target_aspect_ratio}")

    def with_overrides(self, **overrides) -> "ParameterProfile":
        """Return a copy with the given fields replaced (None values are ignored)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        return replace(self, **changes)


# Tiers from low to very high resolution. Higher resolution gives cleaner
# edges, so every threshold tightens as the tier goes up.
RESOLUTION_TIERS: Tuple[ParameterProfile, ...] = (
    # Older phones, web cameras
    ParameterProfile(canny_low=30, canny_high=90, min_area_ratio=0.05, max_area_ratio=0.95,
                     epsilon_factor=0.02, aspect_tolerance=0.5),
    # 1-2MP
    ParameterProfile(canny_low=25, canny_high=75, min_area_ratio=0.01, max_area_ratio=0.90,
                     epsilon_factor=0.015, aspect_tolerance=0.4),
    # 4-8MP, most modern phones
    ParameterProfile(canny_low=20, canny_high=60, min_area_ratio=0.005, max_area_ratio=0.85,
                     epsilon_factor=0.01, aspect_tolerance=0.35),
    # 12MP+
    ParameterProfile(canny_low=15, canny_high=45, min_area_ratio=0.002, max_area_ratio=0.80,
                     epsilon_factor=0.008, aspect_tolerance=0.3),
)

# Used when resolution adaptation is switched off
BASE_PROFILE = ParameterProfile(
    canny_low=10,
    canny_high=30,
    min_area_ratio=0.002,
    max_area_ratio=0.99,
    epsilon_factor=0.01,
    aspect_tolerance=0.4,
)


def resolution_tier(width: int, height: int) -> int:
    """Index into RESOLUTION_TIERS for an image of the given size."""
    min_dimension = min(width, height)
    for index, boundary in enumerate(TIER_BOUNDARIES):
        if min_dimension < boundary:
            return index
    return len(TIER_BOUNDARIES)


def select_profile(width: int, height: int, tiers: Optional[Tuple[ParameterProfile, ...]] = None) -> ParameterProfile:
    """
    Choose the parameter profile for a working image.

    Args:
        width: Working image width in pixels
        height: Working image height in pixels
        tiers: Tier table to pick from (defaults to RESOLUTION_TIERS)

    Returns:
        Profile of the matching resolution tier, loosened for wide frames
    """
    if width <= 0 or height <= 0:
        raise InvalidInput(f"Invalid image dimensions: {width}x{height}")

    tiers = tiers or RESOLUTION_TIERS
    profile = tiers[resolution_tier(width, height)]

    # The document is expected to fill less of a panoramic frame
    if max(width, height) / min(width, height) > WIDE_FRAME_RATIO:
        profile = profile.with_overrides(
            min_area_ratio=profile.min_area_ratio * WIDE_MIN_AREA_FACTOR,
            aspect_tolerance=min(1.0, profile.aspect_tolerance * WIDE_TOLERANCE_FACTOR),
        )

    return profile
