"""
Tests for the quadrant balancer.
"""

import numpy as np

from cropengine.balanced import BalancedCropper, QuadrantBalancer
from cropengine.config import AppConfig, BalancedConfig
from cropengine.geometry import CropOffset
from cropengine.image_buffer import ImageBuffer


def _bright_corner() -> ImageBuffer:
    """200x150 black image with a bright block in the bottom-right corner."""
    pixels = np.zeros((150, 200), dtype=np.uint8)
    pixels[100:150, 150:200] = 255
    return ImageBuffer(pixels)


def test_offset_moves_toward_energy():
    """The window slides to the bright corner and stops at the edges."""
    balancer = QuadrantBalancer(np.random.default_rng(0))

    assert balancer.offset(_bright_corner(), 100, 100) == CropOffset(100, 50)


def test_offset_without_energy():
    """A black image has no centroid; the window stays at the origin."""
    balancer = QuadrantBalancer(np.random.default_rng(0))
    image = ImageBuffer(np.zeros((150, 200), dtype=np.uint8))

    assert balancer.offset(image, 100, 100) == CropOffset(0, 0)


def test_quadrant_points_translated():
    """Each point is reported in image coordinates."""
    balancer = QuadrantBalancer(np.random.default_rng(3), sample_ratio=5)

    points = balancer.quadrant_points(_bright_corner())

    assert len(points) == 4
    assert [p.sum for p in points[:3]] == [0.0, 0.0, 0.0]
    bottom_right = points[3]
    assert bottom_right.sum > 0
    assert 151 <= bottom_right.x <= 200
    assert 101 <= bottom_right.y <= 150


def test_offset_in_range():
    """Offsets always leave the window inside the image."""
    rng = np.random.default_rng(4)
    for _ in range(10):
        height, width = (int(v) for v in rng.integers(2, 80, size=2))
        target_w = int(rng.integers(1, width + 1))
        target_h = int(rng.integers(1, height + 1))
        image = ImageBuffer(rng.integers(0, 256, size=(height, width), dtype=np.uint8))

        offset = QuadrantBalancer(np.random.default_rng(0)).offset(image, target_w, target_h)

        assert 0 <= offset.x <= width - target_w
        assert 0 <= offset.y <= height - target_h


def test_seeded_cropper_is_reproducible():
    """The configured seed drives the sampling generator."""
    rng = np.random.default_rng(8)
    image = ImageBuffer(rng.integers(0, 256, size=(90, 160, 3), dtype=np.uint8))
    config = AppConfig(balanced=BalancedConfig(seed=123))

    first = BalancedCropper(image, config).get_offset(60, 60)
    second = BalancedCropper(image, config).get_offset(60, 60)

    assert first == second


def test_get_offset_balanced_uses_raw_image():
    cropper = BalancedCropper(_bright_corner(), AppConfig(), rng=np.random.default_rng(0))

    assert cropper.get_offset_balanced(100, 100) == CropOffset(100, 50)
