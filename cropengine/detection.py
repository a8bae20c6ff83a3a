"""
Detection data transfer object.

This module defines the Detection dataclass — the single output type
returned by ObjectDetector.detect(). It is intentionally minimal: a frozen
container with no behavior beyond data access.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No grouping or safe-zone conversion (see postprocessor and face).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Detection:
    """A single detected object window.

    Attributes:
        x: Left edge (canvas pixels).
        y: Top edge (canvas pixels).
        width: Window width in pixels.
        height: Window height in pixels.

    Coordinates are relative to the canvas that was scanned, which may be
    a rescaled copy of the caller's image.
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height
