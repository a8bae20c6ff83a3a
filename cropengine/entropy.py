"""
Entropy-driven cropping.

The measure image is reduced to its edges (edge filter, grayscale, dark
pixels forced to black, then blurred). The slicer repeatedly trims a thin
slice from whichever end of the oversized axis carries less information,
until the remaining span equals the target size. Safe zones override
entropy: a slice that overlaps one is only cut when the other end is
protected by a much larger zone.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from cropengine.config import EntropyConfig
from cropengine.cropper import Cropper
from cropengine.energy import grayscale_entropy
from cropengine.geometry import CropOffset, SafeZone
from cropengine.image_buffer import ImageBuffer

logger = logging.getLogger(__name__)

HORIZONTAL = "h"
VERTICAL = "v"


class EntropySlicer:
    """Greedy bisection search for the richest window along one axis.

    Args:
        image: The (already blurred) measure image.
        safe_zones: Regions that must survive, in image coordinates.
        potential_ratio: Factor by which one end's potential must exceed
                         the other's before the weaker end is force-cut.
        slice_divisions: The excess span is trimmed in about this many steps.
    """

    def __init__(
        self,
        image: ImageBuffer,
        safe_zones: Sequence[SafeZone] = (),
        potential_ratio: float = 1.5,
        slice_divisions: int = 25,
    ) -> None:
        self._image = image
        self._safe_zones = list(safe_zones)
        self._potential_ratio = potential_ratio
        self._slice_divisions = slice_divisions
        self._entropy_cache: Dict[Tuple[str, int, int], float] = {}

    def slice(self, original_size: int, target_size: int, axis: str) -> int:
        """Return the start of the window of target_size to keep.

        Args:
            original_size: Length of the axis in the measure image.
            target_size: Length to keep.
            axis: HORIZONTAL ("h", columns) or VERTICAL ("v", rows).

        Raises:
            ValueError: If axis is unknown or target_size is not in
                        [1, original_size].
        """
        if axis not in (HORIZONTAL, VERTICAL):
            raise ValueError(f"axis must be 'h' or 'v', got {axis!r}.")
        if not 1 <= target_size <= original_size:
            raise ValueError(
                f"target_size must be in [1, {original_size}], got {target_size}."
            )

        slice_size = math.ceil((original_size - target_size) / self._slice_divisions)
        top = 0
        bottom = original_size

        while bottom - top > target_size:
            # Never slice past the target span
            slice_size = min(bottom - top - target_size, slice_size)

            lead_potential = self.potential(axis, top, top + slice_size)
            trail_potential = self.potential(axis, bottom - slice_size, bottom)

            cut_lead = lead_potential <= 0
            cut_trail = trail_potential <= 0

            # Both ends protected: force the cut on a much weaker end
            if not cut_lead and not cut_trail:
                if lead_potential * self._potential_ratio < trail_potential:
                    cut_lead = True
                elif lead_potential > trail_potential * self._potential_ratio:
                    cut_trail = True

            if cut_lead == cut_trail:
                cut_lead = (
                    self._slice_entropy(axis, top, slice_size)
                    < self._slice_entropy(axis, bottom - slice_size, slice_size)
                )

            if cut_lead:
                top += slice_size
            else:
                bottom -= slice_size

        return top

    def potential(self, axis: str, start: int, end: int) -> int:
        """Largest safe-zone extent overlapping [start, end) on this axis.

        Horizontal slices report the height of the overlapping zone,
        vertical slices its width. 0 means the slice is free to cut.
        """
        last = end - 1
        best = 0
        for zone in self._safe_zones:
            if axis == HORIZONTAL:
                if zone.left <= last and zone.right >= start:
                    best = max(best, zone.height)
            elif zone.top <= last and zone.bottom >= start:
                best = max(best, zone.width)
        return best

    def _slice_entropy(self, axis: str, start: int, size: int) -> float:
        key = (axis, start, size)
        if key not in self._entropy_cache:
            if axis == HORIZONTAL:
                piece = self._image.crop(size, self._image.height, start, 0)
            else:
                piece = self._image.crop(self._image.width, size, 0, start)
            self._entropy_cache[key] = grayscale_entropy(piece)
        return self._entropy_cache[key]


class EntropyCropper(Cropper):
    """Crops toward the part of the image with the most edges.

    Safe zones given here are honoured for every offset; subclasses can
    compute them per image by overriding get_safe_zones().
    """

    def __init__(self, image=None, config=None, safe_zones: Optional[Sequence[SafeZone]] = None) -> None:
        self._safe_zones: List[SafeZone] = list(safe_zones or [])
        super().__init__(image, config)

    def get_safe_zones(self, image: ImageBuffer) -> List[SafeZone]:
        """Safe zones in the coordinates of image."""
        return self._safe_zones

    def measure_image(self, image: ImageBuffer) -> ImageBuffer:
        """Edge map used for scoring: edges, grayscale, dark noise removed."""
        cfg = self._config.entropy
        return (
            image.edge_detect(cfg.edge_radius)
            .desaturate()
            .black_threshold(cfg.black_threshold)
        )

    def offset_from_entropy(
        self,
        measure: ImageBuffer,
        target_width: int,
        target_height: int,
        safe_zones: Sequence[SafeZone] = (),
    ) -> CropOffset:
        """Run the slicer over both axes of a measure image."""
        cfg: EntropyConfig = self._config.entropy

        # Entropy is far less noisy on a blurred image
        blurred = measure.blur(cfg.blur_radius, cfg.blur_sigma)
        slicer = EntropySlicer(
            blurred,
            safe_zones,
            potential_ratio=cfg.potential_ratio,
            slice_divisions=cfg.slice_divisions,
        )

        width, height = blurred.geometry()
        x = slicer.slice(width, target_width, HORIZONTAL)
        y = slicer.slice(height, target_height, VERTICAL)
        return CropOffset(x, y)

    def _special_offset(
        self,
        image: ImageBuffer,
        target_width: int,
        target_height: int,
    ) -> CropOffset:
        safe_zones = self.get_safe_zones(image)
        if safe_zones:
            logger.debug("Slicing around %d safe zone(s)", len(safe_zones))
        return self.offset_from_entropy(
            self.measure_image(image), target_width, target_height, safe_zones
        )
