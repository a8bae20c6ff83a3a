"""
Energy scoring: turn an image region into a scalar "interest" value.

Two interchangeable policies:
    - Shannon entropy of the pixel-value histogram.
    - A luminance-weighted centroid over a random sample of pixels.

Sampling uses an injected numpy Generator, so results are reproducible
when the generator is seeded and statistically stable otherwise.
"""

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Union

import numpy as np

from cropengine.image_buffer import ImageBuffer
from cropengine.preprocessor import rgb_to_luminance

DEFAULT_SAMPLE_RATIO = 50


@dataclass(frozen=True, slots=True)
class EnergyPoint:
    """Weighted centroid of a region.

    Attributes:
        x: Centroid column, 1-based within the region (0 when empty).
        y: Centroid row, 1-based within the region (0 when empty).
        sum: Sampled luminance divided by region area.
    """

    x: float
    y: float
    sum: float


def histogram_entropy(histogram: Union[Mapping, Iterable[int]], area: int) -> float:
    """Shannon entropy (bits) of a histogram.

    Args:
        histogram: Mapping of value -> pixel count, or the counts alone.
        area: Total number of pixels in the region.

    Returns:
        -sum(p * log2(p)) with p = count / area. 0.0 for a flat region
        or an empty one.
    """
    if area <= 0:
        return 0.0

    counts = histogram.values() if isinstance(histogram, Mapping) else histogram

    value = 0.0
    for count in counts:
        if count <= 0:
            continue
        p = count / area
        value += p * math.log2(p)

    return abs(value)


def grayscale_entropy(image: ImageBuffer) -> float:
    """Entropy of an image's pixel-value histogram.

    A higher value means more noise, liveliness and detail.
    """
    return histogram_entropy(image.histogram(), image.area)


def color_entropy(image: ImageBuffer) -> float:
    """Entropy of a colour image after folding its histogram to luminance.

    Distinct colours that share a luminance fall into the same bin.
    """
    if image.channels == 1:
        return grayscale_entropy(image)

    folded: Dict[float, int] = {}
    for (b, g, r), count in image.histogram().items():
        grey = rgb_to_luminance(r, g, b)
        folded[grey] = folded.get(grey, 0) + count

    return histogram_entropy(folded, image.area)


def sample_energy_point(
    image: ImageBuffer,
    rng: np.random.Generator,
    sample_ratio: int = DEFAULT_SAMPLE_RATIO,
) -> EnergyPoint:
    """Estimate the most energetic point of an image by random sampling.

    Only about one pixel in sample_ratio is read.
    """
    width, height = image.geometry()
    area = width * height
    if area == 0:
        return EnergyPoint(0.0, 0.0, 0.0)

    samples = int(round(area / sample_ratio))
    xs = rng.integers(0, width, size=samples)
    ys = rng.integers(0, height, size=samples)
    luminance = image.grayscale_buffer()[ys, xs]

    total = float(luminance.sum())
    x_center = 0.0
    y_center = 0.0
    if total:
        x_center = float(((xs + 1) * luminance).sum()) / total
        y_center = float(((ys + 1) * luminance).sum()) / total

    return EnergyPoint(x_center, y_center, total / area)
