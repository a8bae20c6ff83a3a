"""
Tests for the entropy slicer.
"""

import numpy as np
import pytest

from cropengine.entropy import HORIZONTAL, VERTICAL, EntropySlicer
from cropengine.geometry import SafeZone
from cropengine.image_buffer import ImageBuffer


def _noise(height: int, width: int, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width), dtype=np.uint8)


def test_keeps_detailed_left_half():
    """Flat slices are trimmed first."""
    pixels = np.zeros((50, 200), dtype=np.uint8)
    pixels[:, :100] = _noise(50, 100)

    slicer = EntropySlicer(ImageBuffer(pixels))

    assert slicer.slice(200, 100, HORIZONTAL) == 0


def test_keeps_detailed_right_half():
    pixels = np.zeros((50, 200), dtype=np.uint8)
    pixels[:, 100:] = _noise(50, 100)

    slicer = EntropySlicer(ImageBuffer(pixels))

    assert slicer.slice(200, 100, HORIZONTAL) == 100


def test_keeps_detailed_bottom_half():
    pixels = np.zeros((200, 50), dtype=np.uint8)
    pixels[100:, :] = _noise(100, 50)

    slicer = EntropySlicer(ImageBuffer(pixels))

    assert slicer.slice(200, 100, VERTICAL) == 100


def test_safe_zone_is_preserved():
    """On a flat image the cut stops at the protected span."""
    image = ImageBuffer(np.zeros((50, 200), dtype=np.uint8))
    zone = SafeZone(left=150, right=190, top=0, bottom=49)

    slicer = EntropySlicer(image, [zone])

    # Trailing cuts stop at 192, the leading end takes the rest
    start = slicer.slice(200, 100, HORIZONTAL)
    assert start == 92
    assert start <= zone.left and zone.right < start + 100


def test_larger_zone_wins():
    """With both ends protected the much smaller zone is sacrificed."""
    image = ImageBuffer(np.zeros((50, 200), dtype=np.uint8))
    small = SafeZone(left=0, right=10, top=0, bottom=10)
    large = SafeZone(left=190, right=199, top=0, bottom=40)

    slicer = EntropySlicer(image, [small, large])

    assert slicer.slice(200, 100, HORIZONTAL) == 100


def test_potential():
    """Horizontal slices report zone height, vertical ones zone width."""
    zone = SafeZone(left=20, right=30, top=5, bottom=45)
    slicer = EntropySlicer(ImageBuffer(np.zeros((50, 50), dtype=np.uint8)), [zone])

    assert slicer.potential(HORIZONTAL, 16, 20) == 0
    assert slicer.potential(HORIZONTAL, 17, 21) == 40
    assert slicer.potential(HORIZONTAL, 30, 34) == 40
    assert slicer.potential(VERTICAL, 0, 5) == 0
    assert slicer.potential(VERTICAL, 0, 6) == 10


def test_result_always_in_range():
    """The window always fits, whatever the image and zones."""
    rng = np.random.default_rng(9)
    for _ in range(10):
        width = int(rng.integers(2, 120))
        target = int(rng.integers(1, width + 1))
        image = ImageBuffer(_noise(20, width, seed=int(rng.integers(1000))))
        left = int(rng.integers(0, width))
        zone = SafeZone(left, left + int(rng.integers(0, 20)), 0, int(rng.integers(1, 20)))

        start = EntropySlicer(image, [zone]).slice(width, target, HORIZONTAL)

        assert 0 <= start <= width - target


def test_nothing_to_trim():
    slicer = EntropySlicer(ImageBuffer(_noise(10, 10)))

    assert slicer.slice(10, 10, HORIZONTAL) == 0


def test_invalid_arguments():
    slicer = EntropySlicer(ImageBuffer(_noise(10, 10)))

    with pytest.raises(ValueError, match="axis"):
        slicer.slice(10, 5, "x")

    with pytest.raises(ValueError, match="target_size"):
        slicer.slice(10, 11, HORIZONTAL)

    with pytest.raises(ValueError, match="target_size"):
        slicer.slice(10, 0, VERTICAL)
