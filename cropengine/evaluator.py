"""
Cascade evaluation for detector windows.

Responsibility:
    Decide whether windows of the canvas pass every stage of a cascade,
    using the integral tables for all rectangle sums. All windows of one
    size are evaluated together; each stage only sees the windows that
    survived the previous one.

Non-goals:
    - No window enumeration or scaling policy (see detector).
    - No grouping of accepted windows (see postprocessor).

Hard-coded:
    - Feature sums are normalized by half the window's standard deviation.
    - Windows with zero variance (flat regions) are always rejected.
"""

import numpy as np

from cropengine.cascade import Cascade
from cropengine.geometry import Rectangle
from cropengine.integral import IntegralTables


class CascadeEvaluator:
    """Evaluates a cascade against windows of one canvas.

    Both the cascade and the tables are read-only here; one evaluator
    can be reused for every window and scale of a detection run.
    """

    def __init__(self, cascade: Cascade, tables: IntegralTables) -> None:
        self._cascade = cascade
        self._tables = tables

    def evaluate(self, window: Rectangle, scale: float) -> bool:
        """Return True if the window passes every stage.

        Args:
            window: Window position and size in canvas pixels.
            scale: Factor applied to the cascade's rectangles.
        """
        accepted = self.evaluate_many(
            np.array([window.x]), np.array([window.y]), window.width, window.height, scale
        )
        return bool(accepted[0])

    def evaluate_many(
        self,
        xs: np.ndarray,
        ys: np.ndarray,
        width: int,
        height: int,
        scale: float,
    ) -> np.ndarray:
        """Evaluate equally sized windows at many positions.

        Args:
            xs: Left edges of the windows.
            ys: Top edges of the windows, same length as xs.
            width: Window width in canvas pixels.
            height: Window height in canvas pixels.
            scale: Factor applied to the cascade's rectangles.

        Returns:
            Boolean mask, True where the window passes every stage.
        """
        xs = np.asarray(xs, dtype=np.float64)
        ys = np.asarray(ys, dtype=np.float64)
        accepted = np.zeros(xs.shape, dtype=bool)

        area = width * height
        if not self._cascade.stages or area == 0 or xs.size == 0:
            return accepted

        tables = self._tables
        mean = tables.rect_sums(xs, ys, width, height) / area
        variance = tables.rect_sq_sums(xs, ys, width, height) / area - mean * mean

        alive = np.flatnonzero(variance > 0)
        norm = np.sqrt(variance[alive]) * 0.5

        for stage in self._cascade.stages:
            if alive.size == 0:
                return accepted

            wx = xs[alive]
            wy = ys[alive]
            stage_sum = np.zeros(alive.size)

            for feature in stage.features:
                feature_sum = np.zeros(alive.size)
                for rect in feature.rectangles:
                    feature_sum += tables.rect_sums(
                        wx + rect.x * scale,
                        wy + rect.y * scale,
                        rect.width * scale,
                        rect.height * scale,
                    ) * rect.weight

                stage_sum += np.where(
                    feature_sum / norm < feature.threshold,
                    feature.left_value,
                    feature.right_value,
                )

            # Early rejection: most windows never get past the first stages.
            passed = stage_sum >= stage.threshold
            alive = alive[passed]
            norm = norm[passed]

        accepted[alive] = True
        return accepted
