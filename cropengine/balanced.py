"""
Balanced cropping.

The most interesting point of the image is estimated by:

    1. Dividing the image into four equal quadrants.
    2. Finding the most energetic point per quadrant by random sampling.
    3. Taking the energy-weighted mean of the four points.

The crop window is centred on that point and shifted inward where it
would overflow an edge.
"""

import math
from typing import List, Optional

import numpy as np

from cropengine.cropper import Cropper
from cropengine.energy import DEFAULT_SAMPLE_RATIO, EnergyPoint, sample_energy_point
from cropengine.geometry import CropOffset
from cropengine.image_buffer import ImageBuffer


class QuadrantBalancer:
    """Weighted quadrant centroid -> crop offset.

    Args:
        rng: Sampling generator. Seed it for reproducible offsets.
        sample_ratio: One pixel in this many is sampled.
    """

    def __init__(
        self,
        rng: Optional[np.random.Generator] = None,
        sample_ratio: int = DEFAULT_SAMPLE_RATIO,
    ) -> None:
        self._rng = rng if rng is not None else np.random.default_rng()
        self._sample_ratio = sample_ratio

    def quadrant_points(self, image: ImageBuffer) -> List[EnergyPoint]:
        """Energy point of each quadrant, translated to image coordinates."""
        half_width = math.ceil(image.width / 2)
        half_height = math.ceil(image.height / 2)

        points = []
        for left, top in ((0, 0), (half_width, 0), (0, half_height), (half_width, half_height)):
            quadrant = image.crop(half_width, half_height, left, top)
            point = sample_energy_point(quadrant, self._rng, self._sample_ratio)
            points.append(EnergyPoint(point.x + left, point.y + top, point.sum))
        return points

    def offset(self, image: ImageBuffer, target_width: int, target_height: int) -> CropOffset:
        width, height = image.geometry()
        points = self.quadrant_points(image)

        total_weight = sum(p.sum for p in points)
        center_x = 0.0
        center_y = 0.0
        if total_weight:
            for point in points:
                center_x += point.x * (point.sum / total_weight)
                center_y += point.y * (point.sum / total_weight)

        x = int(max(0, center_x - target_width / 2))
        y = int(max(0, center_y - target_height / 2))

        # Back up until the window fits
        if x + target_width > width:
            x -= (x + target_width) - width
        if y + target_height > height:
            y -= (y + target_height) - height

        return CropOffset(max(0, x), max(0, y))


class BalancedCropper(Cropper):
    """Crops around the energy-weighted centre of the image's edges."""

    def __init__(self, image=None, config=None, rng: Optional[np.random.Generator] = None) -> None:
        super().__init__(image, config)
        cfg = self._config.balanced
        if rng is None:
            rng = np.random.default_rng(cfg.seed)
        self._balancer = QuadrantBalancer(rng, cfg.sample_ratio)

    def measure_image(self, image: ImageBuffer) -> ImageBuffer:
        cfg = self._config.balanced
        return (
            image.edge_detect(cfg.edge_radius)
            .desaturate()
            .black_threshold(cfg.black_threshold)
        )

    def get_offset_balanced(self, target_width: int, target_height: int) -> CropOffset:
        """Balanced offset computed on the raw image instead of its edge map.

        Raises:
            RuntimeError: If no image is set.
        """
        image = self._require_image()
        return self._balancer.offset(image, target_width, target_height)

    def _special_offset(
        self,
        image: ImageBuffer,
        target_width: int,
        target_height: int,
    ) -> CropOffset:
        return self._balancer.offset(self.measure_image(image), target_width, target_height)
