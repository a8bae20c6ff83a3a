"""
Crop Engine — content-aware crop offsets for resize-to-aspect-ratio.

Public API:
    - CenterCropper, EntropyCropper, BalancedCropper, FaceCropper:
      crop strategies sharing set_image / get_offset / resize_and_crop.
    - ImageBuffer: the image handle the strategies operate on.
    - ObjectDetector, load_cascade: cascade face detection.
    - Detection, SafeZone, CropOffset: result types.

Usage:
    from cropengine import FaceCropper, ImageBuffer

    cropper = FaceCropper(ImageBuffer.from_file("photo.jpg"))
    thumbnail = cropper.resize_and_crop(200, 200)
"""

from cropengine.balanced import BalancedCropper, QuadrantBalancer
from cropengine.cascade import Cascade, CascadeFormatError
from cropengine.center import CenterCropper
from cropengine.config import AppConfig, load_config
from cropengine.detection import Detection
from cropengine.detector import ObjectDetector, run_cascades
from cropengine.entropy import EntropyCropper, EntropySlicer
from cropengine.face import FaceCropper
from cropengine.geometry import CropOffset, Rectangle, SafeZone
from cropengine.image_buffer import ImageBuffer
from cropengine.model_loader import load_cascade

__all__ = [
    "AppConfig",
    "BalancedCropper",
    "Cascade",
    "CascadeFormatError",
    "CenterCropper",
    "CropOffset",
    "Detection",
    "EntropyCropper",
    "EntropySlicer",
    "FaceCropper",
    "ImageBuffer",
    "ObjectDetector",
    "QuadrantBalancer",
    "Rectangle",
    "SafeZone",
    "load_cascade",
    "load_config",
    "run_cascades",
]
