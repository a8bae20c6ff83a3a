"""
FaceCropper — entropy cropping that protects detected faces.

Faces are located on the image passed to set_image() with the frontal
cascade and, time budget permitting, the profile cascade. Each face
becomes a SafeZone padded by half the face size on every side, scaled
into the coordinates of whichever image is being sliced (the resized
image during resize_and_crop).

Failure behavior:
    - A missing or malformed cascade is logged and skipped; with no
      usable cascade the strategy degrades to plain entropy cropping.

Thread-safety:
    The safe-zone cache is per instance and unsynchronized.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from cropengine.cascade import Cascade
from cropengine.detection import Detection
from cropengine.detector import ObjectDetector, run_cascades
from cropengine.entropy import EntropyCropper
from cropengine.geometry import SafeZone
from cropengine.image_buffer import ImageBuffer
from cropengine.model_loader import load_cascade

logger = logging.getLogger(__name__)


def _round_half_away(value: float) -> int:
    """Round to nearest, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


class FaceCropper(EntropyCropper):
    """Entropy cropper with face-derived safe zones.

    Usage:
        cropper = FaceCropper(ImageBuffer.from_file("portrait.jpg"))
        thumbnail = cropper.resize_and_crop(300, 300)

        # explicit cascades instead of the configured files
        cropper = FaceCropper(image, cascades=[frontal, profile])
    """

    def __init__(self, image=None, config=None, cascades: Optional[Sequence[Cascade]] = None) -> None:
        self._safe_zone_cache: Dict[Tuple[int, int], List[SafeZone]] = {}
        self._cascades: Optional[List[Cascade]] = list(cascades) if cascades is not None else None
        self._detectors: Optional[List[ObjectDetector]] = None
        super().__init__(image, config)

    def set_image(self, image) -> "FaceCropper":
        """Set the image and drop every cached safe zone."""
        self.clear_safe_zones()
        super().set_image(image)
        return self

    def clear_safe_zones(self) -> None:
        self._safe_zone_cache.clear()

    def get_safe_zones(self, image: ImageBuffer) -> List[SafeZone]:
        """Safe zones in the coordinates of image, cached per (width, height)."""
        key = image.geometry()
        if key not in self._safe_zone_cache:
            self._safe_zone_cache[key] = self._compute_safe_zones(image)
        return self._safe_zone_cache[key]

    def find_faces(self) -> List[Detection]:
        """Detect faces on the image given to set_image().

        Returns:
            Detections in the coordinates of the scanned canvas (the
            image scaled by detector.canvas_scale).

        Raises:
            RuntimeError: If no image is set.
        """
        image = self._require_image()
        detectors = self._get_detectors()
        if not detectors:
            return []

        faces = run_cascades(
            image.pixels,
            detectors,
            max_execution_time=self._config.detector.max_execution_time,
        )
        logger.debug("Found %d face(s)", len(faces))
        return faces

    def _get_detectors(self) -> List[ObjectDetector]:
        if self._detectors is None:
            cfg = self._config.detector
            if self._cascades is not None:
                named = [(f"cascade[{i}]", c) for i, c in enumerate(self._cascades)]
            else:
                named = []
                for path in (cfg.frontal_cascade_path, cfg.profile_cascade_path):
                    if not path:
                        continue
                    try:
                        named.append((path, load_cascade(path)))
                    except (FileNotFoundError, ValueError) as e:
                        logger.warning("Cascade unavailable, skipping: %s", e)
            self._detectors = [ObjectDetector(c, cfg, name=name) for name, c in named]
        return self._detectors

    def _compute_safe_zones(self, image: ImageBuffer) -> List[SafeZone]:
        faces = self.find_faces()
        if not faces:
            return []

        # Faces were found on the scanned canvas; map them onto image
        base_width, base_height = self.base_dimensions
        canvas_scale = self._config.detector.canvas_scale
        x_ratio = int(base_width * canvas_scale) / image.width
        y_ratio = int(base_height * canvas_scale) / image.height

        zones = []
        for face in faces:
            half_width = math.ceil(face.width / 2)
            half_height = math.ceil(face.height / 2)
            zones.append(SafeZone(
                left=_round_half_away((face.x - half_width) / x_ratio),
                right=_round_half_away((face.x + face.width + half_width) / x_ratio),
                top=_round_half_away((face.y - half_height) / y_ratio),
                bottom=_round_half_away((face.y + face.height + half_height) / y_ratio),
            ))
        return zones
