"""
Summed-area tables for O(1) rectangle sums.

sum[y, x] holds the sum of every pixel in [0..x] x [0..y] and sum_sq the
sum of their squares. Both are rebuilt whenever the canvas resolution
changes; they are read-only afterwards.
"""

import numpy as np


class IntegralTables:
    """Value and squared-value integral images over a grayscale buffer.

    Queries clamp the rectangle corners to the buffer inclusively, so
    windows hanging over an edge are summed over their visible part.
    Fractional coordinates (from scaled cascade rectangles) are
    truncated.

    Coordinates may be scalars or numpy arrays; array queries answer
    every rectangle in one vectorized lookup.
    """

    def __init__(self, gray: np.ndarray) -> None:
        if gray.ndim != 2:
            raise ValueError(
                f"IntegralTables requires a 2D buffer, got shape {gray.shape}."
            )

        values = gray.astype(np.float64)
        self.height, self.width = values.shape
        self.sum = values.cumsum(axis=0).cumsum(axis=1)
        self.sum_sq = (values * values).cumsum(axis=0).cumsum(axis=1)

        # Zero row and column in front, so corner lookups need no branches
        self._padded_sum = np.pad(self.sum, ((1, 0), (1, 0)))
        self._padded_sum_sq = np.pad(self.sum_sq, ((1, 0), (1, 0)))

    def rect_sum(self, x: float, y: float, width: float, height: float) -> float:
        """Sum of the pixels inside the rectangle."""
        return float(self.rect_sums(x, y, width, height))

    def rect_sq_sum(self, x: float, y: float, width: float, height: float) -> float:
        """Sum of the squared pixels inside the rectangle."""
        return float(self.rect_sq_sums(x, y, width, height))

    def rect_sums(self, x, y, width, height) -> np.ndarray:
        """Vectorized rect_sum() over arrays of rectangles."""
        return self._lookup(self._padded_sum, x, y, width, height)

    def rect_sq_sums(self, x, y, width, height) -> np.ndarray:
        """Vectorized rect_sq_sum() over arrays of rectangles."""
        return self._lookup(self._padded_sum_sq, x, y, width, height)

    def _lookup(self, padded: np.ndarray, x, y, width, height) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        x1 = np.clip(x, 0, self.width - 1).astype(np.int64)
        y1 = np.clip(y, 0, self.height - 1).astype(np.int64)
        x2 = np.clip(x + width - 1, 0, self.width - 1).astype(np.int64) + 1
        y2 = np.clip(y + height - 1, 0, self.height - 1).astype(np.int64) + 1

        return padded[y2, x2] - padded[y2, x1] - padded[y1, x2] + padded[y1, x1]
