"""
Detector configuration

String key/value configuration mapped onto the numeric parameter profile
and the choice of preprocessing and scoring strategies. Values are kept as
strings (so unknown keys can be stored for other layers) and parsed when a
snapshot is taken.
"""

import os
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from dotenv import load_dotenv

from .errors import InvalidInput
from .profile import BASE_PROFILE, ParameterProfile, select_profile

ENV_PREFIX = "IDDETECT_"

DEFAULT_MAX_WORKING_WIDTH = 1200

# Config key -> ParameterProfile field
PROFILE_KEYS = {
    'canny_threshold1': 'canny_low',
    'canny_threshold2': 'canny_high',
    'min_area_ratio': 'min_area_ratio',
    'max_area_ratio': 'max_area_ratio',
    'approx_epsilon': 'epsilon_factor',
    'target_aspect_ratio': 'target_aspect_ratio',
    'aspect_ratio_tolerance': 'aspect_tolerance',
}

# Absolute pixel areas, converted to ratios per image
AREA_KEYS = ('min_contour_area', 'max_contour_area')

NUMERIC_KEYS = tuple(PROFILE_KEYS) + AREA_KEYS + ('min_score', 'max_working_width')
CHOICE_KEYS = {
    'preprocessing': ('adaptive', 'static'),
    'scoring': ('weighted', 'largest_quad'),
}
BOOLEAN_KEYS = ('adapt_to_resolution',)

KNOWN_KEYS = NUMERIC_KEYS + tuple(CHOICE_KEYS) + BOOLEAN_KEYS

_TRUE = ('1', 'true', 'yes', 'on')
_FALSE = ('0', 'false', 'no', 'off')

PRESETS: Dict[str, Dict[str, str]] = {
    # ISO/IEC 7810 ID-1 cards: adaptive everything
    'id1': {
        'preprocessing': 'adaptive',
        'scoring': 'weighted',
        'adapt_to_resolution': 'true',
    },
    # Any roughly rectangular document, fixed thresholds
    'generic': {
        'preprocessing': 'static',
        'scoring': 'largest_quad',
        'adapt_to_resolution': 'false',
        'canny_threshold1': '50',
        'canny_threshold2': '150',
        'min_contour_area': '10000',
        'max_contour_area': '500000',
        'approx_epsilon': '0.02',
    },
}


def _parse_number(key: str, value: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Config value for '{key}' is not a number: {value!r}")
    if number != number or number in (float('inf'), float('-inf')):
        raise InvalidInput(f"Config value for '{key}' must be finite: {value!r}")
    return number


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise InvalidInput(f"Config value for '{key}' is not a boolean: {value!r}")


@dataclass(frozen=True)
class ConfigSnapshot:
    """
    Parsed, immutable view of a configuration at one point in time.

    Attributes:
        preprocessing: Name of the preprocessing strategy
        scoring: Name of the scoring strategy
        adapt_to_resolution: Pick the profile tier from the image size
        profile_overrides: Explicit ParameterProfile field values
        min_contour_area: Absolute minimum contour area in pixels
        max_contour_area: Absolute maximum contour area in pixels
        min_score: Score floor for the scorer
        max_working_width: Inputs wider than this are downscaled
    """
    preprocessing: str = 'adaptive'
    scoring: str = 'weighted'
    adapt_to_resolution: bool = True
    profile_overrides: Mapping[str, float] = None
    min_contour_area: Optional[float] = None
    max_contour_area: Optional[float] = None
    min_score: Optional[float] = None
    max_working_width: int = DEFAULT_MAX_WORKING_WIDTH

    def profile_for(self, width: int, height: int) -> ParameterProfile:
        """
        Build the parameter profile for a working image.

        The resolution tier (or the base profile) comes first, explicit
        overrides always win over it.
        """
        if self.adapt_to_resolution:
            profile = select_profile(width, height)
        else:
            profile = BASE_PROFILE

        overrides = dict(self.profile_overrides or {})

        image_area = float(width * height)
        if self.min_contour_area is not None:
            overrides['min_area_ratio'] = min(1.0, max(self.min_contour_area / image_area, 1e-9))
        if self.max_contour_area is not None:
            overrides['max_area_ratio'] = min(1.0, max(self.max_contour_area / image_area, 1e-9))

        return profile.with_overrides(**overrides)


class DetectorConfig:
    """
    Mutable string key/value configuration of a detector.

    Thread-safe: ``set`` and ``snapshot`` are serialized, and detection
    only ever works from a snapshot, so a configuration change never
    affects a call that is already running.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None, preset: str = 'id1'):
        self._lock = threading.Lock()
        self._values: Dict[str, str] = {}
        self.apply_preset(preset)
        if values:
            self.update(values)

    @classmethod
    def from_env(cls, preset: Optional[str] = None, dotenv_path: Optional[str] = None) -> "DetectorConfig":
        """
        Create a configuration from ``IDDETECT_<KEY>`` environment variables.

        A .env file is loaded first, existing environment variables win.
        Without an explicit preset, IDDETECT_PRESET picks one (default id1).
        """
        load_dotenv(dotenv_path)
        config = cls(preset=preset or os.getenv(ENV_PREFIX + "PRESET", "id1"))
        for key in KNOWN_KEYS:
            value = os.getenv(ENV_PREFIX + key.upper())
            if value is not None:
                config.set(key, value)
        return config

    def apply_preset(self, name: str):
        if name not in PRESETS:
            raise InvalidInput(f"Unknown preset: {name}")
        with self._lock:
            self._values = {}
        self.update(PRESETS[name])

    def set(self, key: str, value: str):
        """
        Set one configuration value.

        Known keys are validated immediately; unknown keys are stored as
        they are and ignored by the detector.

        Raises:
            InvalidInput: empty key or malformed value for a known key
        """
        if not key:
            raise InvalidInput("Config key must not be empty")
        if value is None:
            raise InvalidInput(f"Config value for '{key}' must not be None")
        value = str(value)

        if key in NUMERIC_KEYS:
            _parse_number(key, value)
        elif key in CHOICE_KEYS:
            if value not in CHOICE_KEYS[key]:
                raise InvalidInput(f"Config value for '{key}' must be one of {CHOICE_KEYS[key]}, got {value!r}")
        elif key in BOOLEAN_KEYS:
            _parse_bool(key, value)

        with self._lock:
            self._values[key] = value

    def update(self, values: Mapping[str, str]):
        for key, value in values.items():
            self.set(key, value)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._values.get(key, default)

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._values)

    def snapshot(self) -> ConfigSnapshot:
        """Parse the current values into an immutable snapshot."""
        with self._lock:
            values = dict(self._values)

        overrides = {
            field: _parse_number(key, values[key])
            for key, field in PROFILE_KEYS.items()
            if key in values
        }

        def number(key):
            return _parse_number(key, values[key]) if key in values else None

        max_width = number('max_working_width')
        if max_width is not None and max_width < 1:
            raise InvalidInput(f"max_working_width must be positive, got {max_width}")

        return ConfigSnapshot(
            preprocessing=values.get('preprocessing', 'adaptive'),
            scoring=values.get('scoring', 'weighted'),
            adapt_to_resolution=_parse_bool('adapt_to_resolution', values.get('adapt_to_resolution', 'true')),
            profile_overrides=overrides,
            min_contour_area=number('min_contour_area'),
            max_contour_area=number('max_contour_area'),
            min_score=number('min_score'),
            max_working_width=int(max_width) if max_width is not None else DEFAULT_MAX_WORKING_WIDTH,
        )

    def __repr__(self) -> str:
        with self._lock:
            return f"DetectorConfig({self._values!r})"
