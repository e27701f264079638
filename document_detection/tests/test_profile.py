"""
Tests for parameter profile selection
"""

import pytest

from document_detection.errors import InvalidInput
from document_detection.profile import (
    ID1_ASPECT_RATIO,
    RESOLUTION_TIERS,
    ParameterProfile,
    resolution_tier,
    select_profile,
)


class TestResolutionTier:
    """Tests for tier boundaries"""

    @pytest.mark.parametrize("width,height,tier", [
        (640, 399, 0),
        (640, 400, 1),
        (1200, 799, 1),
        (1200, 800, 2),
        (2000, 1499, 2),
        (4000, 1500, 3),
        (4000, 3000, 3),
    ])
    def test_tier_boundaries(self, width, height, tier):
        """Tier depends on the smaller dimension only"""
        assert resolution_tier(width, height) == tier
        assert resolution_tier(height, width) == tier

    def test_thresholds_tighten_with_resolution(self):
        """Every tier is at least as strict as the one below it"""
        for lower, higher in zip(RESOLUTION_TIERS, RESOLUTION_TIERS[1:]):
            assert higher.canny_low < lower.canny_low
            assert higher.min_area_ratio < lower.min_area_ratio
            assert higher.epsilon_factor < lower.epsilon_factor
            assert higher.aspect_tolerance <= lower.aspect_tolerance


class TestSelectProfile:
    """Tests for select_profile"""

    def test_medium_resolution(self):
        """1-2MP image gets the second tier unchanged"""
        profile = select_profile(1200, 900)
        assert profile == RESOLUTION_TIERS[2]

        profile = select_profile(627, 470)
        assert profile.canny_low == 25
        assert profile.canny_high == 75
        assert profile.min_area_ratio == 0.01
        assert profile.epsilon_factor == 0.015
        assert profile.target_aspect_ratio == ID1_ASPECT_RATIO

    def test_wide_frame_adjustment(self):
        """Panoramic frames halve the minimum area and widen the tolerance"""
        base = RESOLUTION_TIERS[1]
        profile = select_profile(1300, 500)

        assert profile.min_area_ratio == pytest.approx(base.min_area_ratio * 0.5)
        assert profile.aspect_tolerance == pytest.approx(base.aspect_tolerance * 1.2)
        assert profile.canny_low == base.canny_low

    def test_wide_frame_tolerance_is_capped(self):
        """Tolerance never exceeds 1.0"""
        tiers = (ParameterProfile(30, 90, 0.05, 0.95, 0.02, aspect_tolerance=0.9),) * 4
        profile = select_profile(1000, 100, tiers)
        assert profile.aspect_tolerance == 1.0

    def test_exactly_ratio_is_not_wide(self):
        profile = select_profile(1000, 400)
        assert profile == RESOLUTION_TIERS[1]

    @pytest.mark.parametrize("width,height", [(0, 100), (100, 0), (-5, 100)])
    def test_invalid_dimensions(self, width, height):
        with pytest.raises(InvalidInput):
            select_profile(width, height)


class TestParameterProfile:
    """Tests for ParameterProfile validation and overrides"""

    def test_overrides_ignore_none(self):
        profile = RESOLUTION_TIERS[0]
        assert profile.with_overrides(canny_low=None) is profile

    def test_overrides_replace_fields(self):
        profile = RESOLUTION_TIERS[0].with_overrides(canny_low=50, canny_high=150)
        assert (profile.canny_low, profile.canny_high) == (50, 150)
        # Original is untouched
        assert RESOLUTION_TIERS[0].canny_low == 30

    @pytest.mark.parametrize("changes", [
        {'canny_low': 100, 'canny_high': 50},
        {'min_area_ratio': 0.0},
        {'max_area_ratio': 1.5},
        {'min_area_ratio': 0.9, 'max_area_ratio': 0.5},
        {'epsilon_factor': 0},
        {'target_aspect_ratio': -1},
    ])
    def test_invalid_values(self, changes):
        with pytest.raises(InvalidInput):
            RESOLUTION_TIERS[1].with_overrides(**changes)
