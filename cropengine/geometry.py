"""
Geometric value types shared by the detector and the crop strategies.

Non-goals:
    - No image data or pixel access.
    - No coordinate-space conversion (that belongs to the strategy that
      knows both spaces).
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Rectangle:
    """An axis-aligned integer rectangle.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Horizontal extent, never negative.
        height: Vertical extent, never negative.
    """

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Rectangle dimensions must be non-negative, "
                f"got width={self.width}, height={self.height}."
            )

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass(frozen=True, slots=True)
class SafeZone:
    """A region the slicer must not cut away.

    Bounds are inclusive and expressed in the coordinate space of the
    image being sliced. Left/top may be negative when the margin around a
    detection extends past the image edge.
    """

    left: int
    right: int
    top: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


@dataclass(frozen=True, slots=True)
class CropOffset:
    """Top-left corner of a crop window."""

    x: int
    y: int
