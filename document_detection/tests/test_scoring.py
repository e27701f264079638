"""
Tests for candidate scoring strategies
"""

import numpy as np
import pytest

from document_detection.profile import RESOLUTION_TIERS, ParameterProfile
from document_detection.scoring import (
    MIN_SCORE,
    NEAR_FULL_FRAME_SCORE,
    SCORERS,
    LargestQuadScorer,
    ScoringWeights,
    WeightedScorer,
    area_score,
    aspect_score,
    position_score,
    shape_score,
)


def rectangle_contour(x, y, w, h):
    return np.array([[[x, y]], [[x + w, y]], [[x + w, y + h]], [[x, y + h]]], dtype=np.int32)


@pytest.fixture
def profile():
    return RESOLUTION_TIERS[1]


class TestSubScores:
    """Tests for the individual weighted sub-scores"""

    @pytest.mark.parametrize("ratio,expected", [
        (0.005, 0.0),   # below min
        (0.01, 1.0),
        (0.4, 1.0),
        (0.7, 1.0),
        (0.8, 0.5),
        (0.88, NEAR_FULL_FRAME_SCORE),
        (0.95, 0.0),    # above max
    ])
    def test_area_score(self, profile, ratio, expected):
        assert area_score(ratio, profile) == expected

    def test_area_score_full_frame(self, profile):
        """A kept full-frame contour is a cropped document, whatever its area"""
        assert area_score(0.99, profile, full_frame=True) == NEAR_FULL_FRAME_SCORE
        assert area_score(0.99, profile) == 0.0
        assert area_score(0.005, profile, full_frame=True) == 0.0

    def test_aspect_score(self, profile):
        assert aspect_score(1586, 1000, profile) == pytest.approx(1.0)
        assert aspect_score(100, 100, profile) == pytest.approx(1 - (0.586 / 1.586) / 0.4)
        assert aspect_score(300, 100, profile) == 0.0
        assert aspect_score(0, 100, profile) == 0.0

    @pytest.mark.parametrize("vertices,expected", [
        (3, 0.0), (4, 1.0), (5, 0.8), (8, 0.8), (9, 0.5), (12, 0.5), (13, 0.0),
    ])
    def test_shape_score(self, vertices, expected):
        assert shape_score(vertices) == expected

    def test_position_score(self):
        centered = rectangle_contour(40, 40, 20, 20)
        corner = rectangle_contour(0, 0, 2, 2)
        assert position_score(centered, (100, 100)) == pytest.approx(1.0, abs=1e-3)
        assert position_score(corner, (100, 100)) < 0.05

    def test_default_weights_sum_to_one(self):
        weights = ScoringWeights()
        assert weights.area + weights.aspect + weights.shape + weights.position == pytest.approx(1.0)
        assert weights.aspect > weights.area > weights.position > weights.shape


class TestWeightedScorer:
    """Tests for WeightedScorer"""

    @pytest.fixture
    def scorer(self):
        return WeightedScorer()

    def test_perfect_card(self, scorer, profile):
        """Centered card with the ID-1 aspect scores close to 1"""
        card = rectangle_contour(100, 100, 427, 270)
        best = scorer.select([card], (627, 470), profile)

        assert best is not None
        assert best.score > 0.95
        assert len(best.polygon) == 4
        assert best.details['aspect'] > 0.95
        assert best.details['shape'] == 1.0

    def test_prefers_card_shape(self, scorer, profile):
        """A square of similar size loses against a card-shaped candidate"""
        square = rectangle_contour(20, 20, 200, 200)
        card = rectangle_contour(300, 150, 254, 160)
        best = scorer.select([square, card], (627, 470), profile)
        assert best.contour is card

    def test_nothing_above_floor(self, profile):
        """Candidates scoring at or below min_score are rejected"""
        scorer = WeightedScorer(min_score=0.99)
        square = rectangle_contour(20, 20, 200, 200)
        assert scorer.select([square], (627, 470), profile) is None

    def test_empty_candidates(self, scorer, profile):
        assert scorer.select([], (627, 470), profile) is None

    def test_custom_weights(self, profile):
        """Aspect-only weights score a square at its aspect score"""
        scorer = WeightedScorer(ScoringWeights(area=0, aspect=1, shape=0, position=0))
        square = rectangle_contour(20, 20, 200, 200)
        score, details = scorer.score_polygon(square, (627, 470), profile)
        assert score == pytest.approx(details['aspect'])


class TestLargestQuadScorer:
    """Tests for LargestQuadScorer"""

    @pytest.fixture
    def scorer(self):
        return LargestQuadScorer()

    @pytest.fixture
    def generic(self):
        return ParameterProfile(50, 150, 0.01, 1.0, 0.02)

    def test_largest_quad_wins(self, scorer, generic):
        small = rectangle_contour(10, 10, 100, 60)
        large = rectangle_contour(200, 100, 300, 200)
        best = scorer.select([small, large], (640, 480), generic)
        assert best.contour is large
        assert len(best.polygon) == 4

    def test_confidence_peaks_at_forty_percent(self, scorer):
        """Area confidence is 1 at 40% of the frame"""
        quad = rectangle_contour(0, 0, 400, 100)
        confidence, details = scorer.confidence(quad, (1000, 100))
        assert details['area'] == pytest.approx(1.0)
        assert details['shape'] == 1.0
        assert confidence == pytest.approx(1.0)

    def test_confidence_outside_area_window(self, scorer):
        quad = rectangle_contour(0, 0, 50, 100)
        confidence, details = scorer.confidence(quad, (1000, 100))
        assert details['area'] == 0.0
        assert confidence == pytest.approx(0.5)

    def test_bounding_rect_fallback(self, scorer, generic):
        """Without any quadrilateral the largest contour's box is used"""
        angle = np.linspace(0, 2 * np.pi, 40, endpoint=False)
        circle = np.stack([320 + 100 * np.cos(angle), 240 + 100 * np.sin(angle)], axis=1)
        circle = circle.astype(np.int32).reshape(-1, 1, 2)

        best = scorer.select([circle], (640, 480), generic)
        assert best is not None
        assert len(best.polygon) == 4
        x_values = best.polygon[:, 0, 0]
        assert x_values.min() == pytest.approx(220, abs=1)
        assert x_values.max() == pytest.approx(420, abs=1)
        # Shape confidence reflects the circle, not its box
        assert best.details['shape'] < 1.0

    def test_floor_applies(self, generic):
        scorer = LargestQuadScorer(min_score=0.9)
        quad = rectangle_contour(0, 0, 50, 50)
        assert scorer.select([quad], (640, 480), generic) is None

    def test_registry(self):
        assert SCORERS == {'weighted': WeightedScorer, 'largest_quad': LargestQuadScorer}
        assert WeightedScorer().min_score == MIN_SCORE
