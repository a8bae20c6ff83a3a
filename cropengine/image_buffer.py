"""
Image backend for the crop strategies.

Responsibility:
    Wrap a decoded image (numpy array, OpenCV BGR channel order) and
    expose the pixel operations the crop strategies consume: geometry,
    grayscale buffer, histogram, edge detection, blur, thresholding,
    crop and resize.

Every operation returns a new ImageBuffer; the wrapped array is never
modified in place, so a buffer can be shared between strategies.

Non-goals:
    - No decoding beyond cv2.imread.
    - No colour management.
"""

import logging
from pathlib import Path
from typing import Dict, Hashable, Tuple, Union

import cv2
import numpy as np

from cropengine.preprocessor import to_grayscale

logger = logging.getLogger(__name__)

INTERPOLATIONS = {
    "nearest": cv2.INTER_NEAREST,
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}


class ImageBuffer:
    """An immutable uint8 image: (H, W) grayscale or (H, W, 3) BGR."""

    def __init__(self, pixels: np.ndarray) -> None:
        """Wrap a pixel array.

        Raises:
            TypeError: If pixels is not a numpy ndarray.
            ValueError: If the array layout is not supported.
        """
        if not isinstance(pixels, np.ndarray):
            raise TypeError(
                f"Expected pixels to be a numpy ndarray, got {type(pixels).__name__}."
            )

        if pixels.ndim == 3 and pixels.shape[2] == 1:
            pixels = pixels[:, :, 0]

        if pixels.ndim not in (2, 3) or (pixels.ndim == 3 and pixels.shape[2] != 3):
            raise ValueError(
                f"Expected a grayscale (H, W) or BGR (H, W, 3) image, "
                f"got shape {pixels.shape}."
            )

        if pixels.dtype != np.uint8:
            pixels = np.clip(pixels, 0, 255).astype(np.uint8)

        self._pixels = np.ascontiguousarray(pixels)

    @classmethod
    def from_file(cls, path: Union[str, Path], auto_orient: bool = True) -> "ImageBuffer":
        """Decode an image file.

        Args:
            path: Image file path.
            auto_orient: Apply the EXIF orientation tag to the pixel data.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If OpenCV cannot decode the file.
        """
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found: '{path}'.")

        flags = cv2.IMREAD_COLOR
        if not auto_orient:
            flags |= cv2.IMREAD_IGNORE_ORIENTATION

        pixels = cv2.imread(str(path), flags)
        if pixels is None:
            raise ValueError(f"Unreadable image: '{path}'.")

        logger.debug("Loaded image %s (%dx%d)", path, pixels.shape[1], pixels.shape[0])
        return cls(pixels)

    @property
    def pixels(self) -> np.ndarray:
        """The wrapped pixel array. Callers must not modify it."""
        return self._pixels

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def channels(self) -> int:
        return 1 if self._pixels.ndim == 2 else self._pixels.shape[2]

    @property
    def area(self) -> int:
        return self.width * self.height

    def geometry(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return self.width, self.height

    def grayscale_buffer(self) -> np.ndarray:
        """Luminance of every pixel as a float64 (H, W) array."""
        return to_grayscale(self._pixels)

    def histogram(self) -> Dict[Hashable, int]:
        """Map each distinct pixel value to its pixel count.

        Keys are ints for grayscale images and (b, g, r) tuples for
        colour images.
        """
        if self._pixels.size == 0:
            return {}

        if self._pixels.ndim == 2:
            values, counts = np.unique(self._pixels, return_counts=True)
            return {int(v): int(c) for v, c in zip(values, counts)}

        flat = self._pixels.reshape(-1, 3)
        values, counts = np.unique(flat, axis=0, return_counts=True)
        return {tuple(int(c) for c in v): int(n) for v, n in zip(values, counts)}

    def edge_detect(self, radius: int = 1) -> "ImageBuffer":
        """Laplacian edge magnitude with a (2 * radius + 1) aperture."""
        ksize = 2 * radius + 1
        edges = cv2.Laplacian(self._pixels, cv2.CV_16S, ksize=ksize)
        return ImageBuffer(cv2.convertScaleAbs(edges))

    def desaturate(self) -> "ImageBuffer":
        """Single-channel luminance copy."""
        if self._pixels.ndim == 2:
            return ImageBuffer(self._pixels.copy())
        return ImageBuffer(cv2.cvtColor(self._pixels, cv2.COLOR_BGR2GRAY))

    def black_threshold(self, cutoff: int) -> "ImageBuffer":
        """Set every channel value below cutoff to 0."""
        return ImageBuffer(np.where(self._pixels < cutoff, 0, self._pixels).astype(np.uint8))

    def blur(self, radius: int, sigma: float) -> "ImageBuffer":
        """Gaussian blur with a (2 * radius + 1) square kernel."""
        ksize = 2 * radius + 1
        return ImageBuffer(cv2.GaussianBlur(self._pixels, (ksize, ksize), sigma))

    def crop(self, width: int, height: int, x: int, y: int) -> "ImageBuffer":
        """Extract a region; parts outside the image are clipped away."""
        x0 = max(0, x)
        y0 = max(0, y)
        x1 = min(self.width, x + width)
        y1 = min(self.height, y + height)
        return ImageBuffer(self._pixels[y0:max(y0, y1), x0:max(x0, x1)].copy())

    def resize(self, width: int, height: int, interpolation: str = "cubic") -> "ImageBuffer":
        """Resample to exactly width x height.

        Raises:
            ValueError: If a dimension is not positive or the
                        interpolation name is unknown.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Resize dimensions must be positive, got {width}x{height}.")
        if interpolation not in INTERPOLATIONS:
            raise ValueError(
                f"Unknown interpolation '{interpolation}'. "
                f"Must be one of {sorted(INTERPOLATIONS)}."
            )
        if (width, height) == self.geometry():
            return self
        resized = cv2.resize(
            self._pixels, (width, height), interpolation=INTERPOLATIONS[interpolation]
        )
        return ImageBuffer(resized)
