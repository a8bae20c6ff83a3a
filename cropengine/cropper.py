"""
Base class for all crop strategies.

A strategy only decides WHERE to crop: subclasses implement
_special_offset() and inherit the shared resize-then-crop flow.

Public contract:
    cropper.set_image(image | path)
    cropper.get_offset(target_width, target_height) -> CropOffset
    cropper.resize_and_crop(target_width, target_height) -> ImageBuffer

Thread-safety:
    A cropper holds the current image (and, for FaceCropper, a safe-zone
    cache). Use one instance per request or synchronize externally.
"""

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple, Union

from cropengine.config import AppConfig, load_config
from cropengine.geometry import CropOffset
from cropengine.image_buffer import ImageBuffer

logger = logging.getLogger(__name__)


class Cropper(ABC):
    """Shared plumbing for the crop strategies.

    Usage:
        cropper = EntropyCropper(ImageBuffer.from_file("photo.jpg"))
        thumbnail = cropper.resize_and_crop(200, 200)
    """

    def __init__(
        self,
        image: Optional[Union[ImageBuffer, str, Path]] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        """Initialize the cropper.

        Args:
            image: Image to crop, or a path to decode. May be set later
                   with set_image().
            config: Configuration. If None, load_config() supplies the
                    defaults plus any environment overrides.
        """
        if config is None:
            config = load_config()

        self._config = config
        self._image: Optional[ImageBuffer] = None
        self._base_dimensions: Optional[Tuple[int, int]] = None

        if image is not None:
            self.set_image(image)

    @property
    def config(self) -> AppConfig:
        """Return the active configuration (read-only)."""
        return self._config

    @property
    def image(self) -> Optional[ImageBuffer]:
        return self._image

    @property
    def base_dimensions(self) -> Tuple[int, int]:
        """(width, height) of the image passed to set_image(), (0, 0) if none."""
        return self._base_dimensions or (0, 0)

    def set_image(self, image: Union[ImageBuffer, str, Path]) -> "Cropper":
        """Set the image to crop.

        Raises:
            FileNotFoundError: If a path is given and does not exist.
            ValueError: If a path is given and cannot be decoded.
        """
        if not isinstance(image, ImageBuffer):
            image = ImageBuffer.from_file(image, auto_orient=self._config.resize.auto_orient)

        self._image = image
        self._base_dimensions = image.geometry()
        return self

    def get_offset(self, target_width: int, target_height: int) -> CropOffset:
        """Offset of the target window inside the current image, without resizing.

        Raises:
            RuntimeError: If no image is set.
            ValueError: If the target does not fit inside the image.
        """
        image = self._require_image()
        width, height = image.geometry()

        if not (0 < target_width <= width and 0 < target_height <= height):
            raise ValueError(
                f"Target {target_width}x{target_height} must be positive and fit "
                f"inside the {width}x{height} image."
            )

        return self._special_offset(image, target_width, target_height)

    def resize_and_crop(self, target_width: int, target_height: int) -> ImageBuffer:
        """Resize the image to cover the target, then crop it to exactly the target.

        Raises:
            RuntimeError: If no image is set.
            ValueError: If a target dimension is not positive.
        """
        image = self._require_image()
        started = time.perf_counter()

        # First get the size that safely covers the target without cropping any side
        width, height = self.get_safe_resize_size(image, target_width, target_height)
        resized = image.resize(width, height, self._config.resize.interpolation)

        offset = self._special_offset(resized, target_width, target_height)
        cropped = resized.crop(target_width, target_height, offset.x, offset.y)

        logger.debug(
            "%s: %dx%d -> %dx%d at (%d, %d) in %.1fms",
            type(self).__name__, width, height, target_width, target_height,
            offset.x, offset.y, (time.perf_counter() - started) * 1000,
        )
        return cropped

    @staticmethod
    def get_safe_resize_size(
        image: ImageBuffer,
        target_width: int,
        target_height: int,
    ) -> Tuple[int, int]:
        """Size that keeps the aspect ratio and covers the target on both axes.

        Raises:
            ValueError: If a target dimension is not positive.
        """
        if target_width <= 0 or target_height <= 0:
            raise ValueError(
                f"Target dimensions must be positive, got {target_width}x{target_height}."
            )

        width, height = image.geometry()
        if width / height < target_width / target_height:
            scale = width / target_width
        else:
            scale = height / target_height

        return (
            max(target_width, int(width / scale)),
            max(target_height, int(height / scale)),
        )

    def _require_image(self) -> ImageBuffer:
        if self._image is None:
            raise RuntimeError("No image set")
        return self._image

    @abstractmethod
    def _special_offset(
        self,
        image: ImageBuffer,
        target_width: int,
        target_height: int,
    ) -> CropOffset:
        """Return the top-left corner of the target window inside image."""
