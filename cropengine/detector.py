"""
ObjectDetector — multi-scale cascade detection.

Public contract:
    ObjectDetector(cascade, config).detect(canvas: np.ndarray) -> list[Detection]
    run_cascades(canvas, detectors, max_execution_time) -> list[Detection]

Constraints:
    - Input is a 2D grayscale or BGR numpy array.
    - detect() is deterministic; integral tables live for one call only.
    - Thread-safety: a detector holds no per-call state, but the budget
      in run_cascades() is advisory and checked between passes only.

Non-goals:
    - No file reading or image decoding.
    - No conversion to safe zones (see face).
"""

import logging
import time
from typing import Callable, List, Optional, Sequence

import numpy as np

from cropengine.cascade import Cascade
from cropengine.config import DetectorConfig
from cropengine.detection import Detection
from cropengine.evaluator import CascadeEvaluator
from cropengine.integral import IntegralTables
from cropengine.postprocessor import group_detections
from cropengine.preprocessor import rescale_nearest, to_grayscale

logger = logging.getLogger(__name__)


class ObjectDetector:
    """Sliding-window Viola-Jones detector over one cascade.

    Usage:
        detector = ObjectDetector(cascade)                 # default params
        detector = ObjectDetector(cascade, config=cfg)     # DetectorConfig
        detections = detector.detect(frame)

    The window starts at cascade size * base_scale and grows by
    scale_step per pass while it still fits inside the canvas. The
    stride is floor(2 * scale), so larger windows are scanned coarser.
    All positions of one scale are evaluated in a single vectorized pass.
    """

    def __init__(
        self,
        cascade: Cascade,
        config: Optional[DetectorConfig] = None,
        name: str = "cascade",
    ) -> None:
        self._cascade = cascade
        self._config = config if config is not None else DetectorConfig()
        self.name = name

    @property
    def cascade(self) -> Cascade:
        return self._cascade

    @property
    def config(self) -> DetectorConfig:
        return self._config

    def detect(self, canvas: np.ndarray) -> List[Detection]:
        """Detect objects in a canvas.

        Args:
            canvas: Grayscale (H, W) or BGR (H, W, 3) numpy array.

        Returns:
            Grouped detections in the coordinates of the scanned canvas
            (scaled by config.canvas_scale). Empty if the canvas or the
            cascade is empty.

        Raises:
            TypeError: If canvas is not a numpy ndarray.
            ValueError: If the canvas layout is not supported.
        """
        if not isinstance(canvas, np.ndarray):
            raise TypeError(
                f"Expected canvas to be a numpy ndarray, got {type(canvas).__name__}."
            )

        if canvas.size == 0 or not self._cascade.stages:
            return []

        started = time.perf_counter()
        gray = rescale_nearest(to_grayscale(canvas), self._config.canvas_scale)
        if gray.size == 0:
            return []

        evaluator = CascadeEvaluator(self._cascade, IntegralTables(gray))
        raw, passes = self._scan(evaluator, gray.shape[1], gray.shape[0])

        detections = group_detections(
            raw,
            min_neighbors=self._config.min_neighbors,
            epsilon=self._config.grouping_epsilon,
        )

        logger.debug(
            "%s: %d raw hits over %d scales -> %d detections (%.1fms)",
            self.name, len(raw), passes, len(detections),
            (time.perf_counter() - started) * 1000,
        )
        return detections

    def _scan(self, evaluator: CascadeEvaluator, width: int, height: int):
        base_width = self._cascade.base_width
        base_height = self._cascade.base_height

        raw: List[Detection] = []
        passes = 0
        scale = self._config.base_scale

        while scale * base_width < width and scale * base_height < height:
            window_width = int(base_width * scale)
            window_height = int(base_height * scale)
            step = max(1, int(scale * 2))

            # Row-major grid of window positions, in scan order
            grid_x, grid_y = np.meshgrid(
                np.arange(0, width - window_width + 1, step),
                np.arange(0, height - window_height + 1, step),
            )
            xs = grid_x.ravel()
            ys = grid_y.ravel()

            accepted = evaluator.evaluate_many(xs, ys, window_width, window_height, scale)
            raw.extend(
                Detection(int(x), int(y), window_width, window_height)
                for x, y in zip(xs[accepted], ys[accepted])
            )

            passes += 1
            scale *= self._config.scale_step

        return raw, passes


def run_cascades(
    canvas: np.ndarray,
    detectors: Sequence[ObjectDetector],
    max_execution_time: Optional[float] = None,
    clock: Callable[[], float] = time.perf_counter,
) -> List[Detection]:
    """Run several detectors in sequence and concatenate their results.

    The first pass always completes. When a budget is set and the time
    spent so far has reached half of it, the remaining passes are
    skipped. This is a soft guard, not a cancellation.

    Args:
        canvas: Grayscale or BGR numpy array.
        detectors: Detectors in priority order (e.g. frontal, profile).
        max_execution_time: Budget in seconds, or None.
        clock: Time source in seconds.
    """
    detections: List[Detection] = []
    started = clock()

    for index, detector in enumerate(detectors):
        if index > 0 and max_execution_time is not None:
            spent = clock() - started
            if spent >= max_execution_time / 2:
                logger.info(
                    "Skipping %d remaining cascade pass(es): %.3fs spent of %.3fs budget.",
                    len(detectors) - index, spent, max_execution_time,
                )
                break
        detections.extend(detector.detect(canvas))

    return detections
