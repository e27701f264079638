import numpy as np
import pytest

from common.bounds import DocumentBounds


SQUARE = ((0.1, 0.1), (0.9, 0.1), (0.9, 0.9), (0.1, 0.9))


class TestClass:
    def test_bounds1(self):
        bounds = DocumentBounds(SQUARE, 0.8)
        assert bounds.top_left == (0.1, 0.1) and bounds.bottom_right == (0.9, 0.9)
        assert bounds.top_right == (0.9, 0.1) and bounds.bottom_left == (0.1, 0.9)

    def test_bounds2(self):
        bounds = DocumentBounds(SQUARE, 0.8)
        assert bounds.area() == pytest.approx(0.64)

    def test_bounds3(self):
        bounds = DocumentBounds(SQUARE, 0.8)
        pixels = bounds.to_pixels(200, 100)
        assert pixels.shape == (4, 2)
        assert np.allclose(pixels[2], [180, 90])

    def test_bounds4(self):
        bounds = DocumentBounds(SQUARE, 0.5)
        values = bounds.as_dict()
        assert values['x1'] == pytest.approx(0.1) and values['y3'] == pytest.approx(0.9)
        assert values['confidence'] == 0.5

    def test_bounds5(self):
        with pytest.raises(ValueError):
            DocumentBounds(((0.1, 0.1), (1.2, 0.1), (0.9, 0.9), (0.1, 0.9)), 0.5)

    def test_bounds6(self):
        with pytest.raises(ValueError):
            DocumentBounds(SQUARE, 1.5)

    def test_bounds7(self):
        # All four corners on one line
        with pytest.raises(ValueError):
            DocumentBounds(((0.1, 0.1), (0.3, 0.3), (0.6, 0.6), (0.9, 0.9)), 0.5)

    def test_bounds8(self):
        with pytest.raises(ValueError):
            DocumentBounds(SQUARE[:3], 0.5)

    def test_bounds9(self):
        bounds = DocumentBounds(np.array(SQUARE, dtype=np.float32), np.float32(0.25))
        assert isinstance(bounds.corners[0][0], float)
        assert isinstance(bounds.confidence, float)
        with pytest.raises(Exception):
            bounds.confidence = 0.9
