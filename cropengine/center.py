"""
CenterCropper — the most basic strategy: keep the middle of the image.
"""

from cropengine.cropper import Cropper
from cropengine.geometry import CropOffset
from cropengine.image_buffer import ImageBuffer


class CenterCropper(Cropper):
    """Trims equal amounts from opposite edges."""

    def _special_offset(
        self,
        image: ImageBuffer,
        target_width: int,
        target_height: int,
    ) -> CropOffset:
        width, height = image.geometry()
        return CropOffset((width - target_width) // 2, (height - target_height) // 2)
