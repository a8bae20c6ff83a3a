"""
Tests for the integral tables.
"""

import numpy as np
import pytest

from cropengine.integral import IntegralTables


def test_rect_sum_matches_brute_force():
    """Every rectangle sum equals direct summation over random buffers."""
    rng = np.random.default_rng(7)

    for _ in range(20):
        height, width = rng.integers(1, 40, size=2)
        gray = rng.integers(0, 256, size=(height, width)).astype(np.float64)
        tables = IntegralTables(gray)

        for _ in range(25):
            x = int(rng.integers(0, width))
            y = int(rng.integers(0, height))
            w = int(rng.integers(1, width - x + 1))
            h = int(rng.integers(1, height - y + 1))

            window = gray[y:y + h, x:x + w]
            assert tables.rect_sum(x, y, w, h) == pytest.approx(window.sum())
            assert tables.rect_sq_sum(x, y, w, h) == pytest.approx((window ** 2).sum())


def test_rect_sum_clamps_to_bounds():
    """Rectangles hanging over an edge sum their visible part."""
    gray = np.ones((10, 10))
    tables = IntegralTables(gray)

    assert tables.rect_sum(5, 5, 20, 20) == 25.0
    assert tables.rect_sum(0, 0, 10, 10) == 100.0


def test_fractional_coordinates_truncate():
    """Scaled cascade coordinates are truncated, not rounded."""
    gray = np.arange(25, dtype=np.float64).reshape(5, 5)
    tables = IntegralTables(gray)

    assert tables.rect_sum(1.9, 0.7, 1.0, 1.0) == gray[0, 1]


def test_requires_2d_buffer():
    """Colour buffers must be converted first."""
    with pytest.raises(ValueError, match="2D"):
        IntegralTables(np.zeros((4, 4, 3)))
