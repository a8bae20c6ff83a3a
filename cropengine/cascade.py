"""
Cascade data model.

A cascade is an ordered list of boosted stages; each stage is a list of
weak classifiers (features) built from weighted rectangles. Instances are
frozen: a cascade is loaded once and shared read-only by every detection
run that uses it.

Plain-data layout accepted by parse_cascade():

    {
        "size": [base_width, base_height],
        "stages": [
            {
                "threshold": float,
                "features": [
                    {
                        "threshold": float,
                        "left_val": float,
                        "right_val": float,
                        "rectangles": [[x, y, w, h, weight], ...]
                    }
                ]
            }
        ]
    }
"""

from dataclasses import dataclass
from typing import Tuple


class CascadeFormatError(ValueError):
    """Raised when cascade data does not match the expected layout."""


@dataclass(frozen=True, slots=True)
class WeightedRectangle:
    x: int
    y: int
    width: int
    height: int
    weight: float


@dataclass(frozen=True, slots=True)
class Feature:
    rectangles: Tuple[WeightedRectangle, ...]
    threshold: float
    left_value: float
    right_value: float


@dataclass(frozen=True, slots=True)
class Stage:
    features: Tuple[Feature, ...]
    threshold: float


@dataclass(frozen=True, slots=True)
class Cascade:
    """A complete detector cascade.

    Attributes:
        base_width: Width of the detector window at scale 1.0.
        base_height: Height of the detector window at scale 1.0.
        stages: Stages in evaluation order.
    """

    base_width: int
    base_height: int
    stages: Tuple[Stage, ...]

    @property
    def feature_count(self) -> int:
        return sum(len(stage.features) for stage in self.stages)


def _parse_rectangle(raw, where: str) -> WeightedRectangle:
    if not isinstance(raw, (list, tuple)) or len(raw) != 5:
        raise CascadeFormatError(
            f"{where}: expected [x, y, w, h, weight], got {raw!r}."
        )
    x, y, w, h, weight = raw
    return WeightedRectangle(int(x), int(y), int(w), int(h), float(weight))


def _parse_feature(raw, where: str) -> Feature:
    if not isinstance(raw, dict):
        raise CascadeFormatError(f"{where}: expected a mapping, got {type(raw).__name__}.")
    try:
        rects = raw["rectangles"]
        threshold = float(raw["threshold"])
        left = float(raw["left_val"])
        right = float(raw["right_val"])
    except KeyError as e:
        raise CascadeFormatError(f"{where}: missing key {e}.") from e
    except (TypeError, ValueError) as e:
        raise CascadeFormatError(f"{where}: {e}") from e

    if not isinstance(rects, (list, tuple)) or not rects:
        raise CascadeFormatError(f"{where}: 'rectangles' must be a non-empty list.")

    return Feature(
        rectangles=tuple(
            _parse_rectangle(r, f"{where}.rectangles[{i}]") for i, r in enumerate(rects)
        ),
        threshold=threshold,
        left_value=left,
        right_value=right,
    )


def _parse_stage(raw, where: str) -> Stage:
    if not isinstance(raw, dict):
        raise CascadeFormatError(f"{where}: expected a mapping, got {type(raw).__name__}.")
    try:
        threshold = float(raw["threshold"])
    except KeyError as e:
        raise CascadeFormatError(f"{where}: missing key {e}.") from e
    except (TypeError, ValueError) as e:
        raise CascadeFormatError(f"{where}: {e}") from e

    features = raw.get("features") or []
    if not isinstance(features, (list, tuple)):
        raise CascadeFormatError(f"{where}: 'features' must be a list.")

    return Stage(
        features=tuple(
            _parse_feature(f, f"{where}.features[{i}]") for i, f in enumerate(features)
        ),
        threshold=threshold,
    )


def parse_cascade(raw) -> Cascade:
    """Build a Cascade from its plain-data representation.

    Raises:
        CascadeFormatError: If the structure is malformed.
    """
    if not isinstance(raw, dict):
        raise CascadeFormatError(
            f"Cascade data must be a mapping, got {type(raw).__name__}."
        )

    size = raw.get("size")
    if not isinstance(size, (list, tuple)) or len(size) != 2:
        raise CascadeFormatError(f"Cascade 'size' must be [width, height], got {size!r}.")
    base_width, base_height = int(size[0]), int(size[1])
    if base_width <= 0 or base_height <= 0:
        raise CascadeFormatError(
            f"Cascade size must be positive, got {base_width}x{base_height}."
        )

    stages = raw.get("stages") or []
    if not isinstance(stages, (list, tuple)):
        raise CascadeFormatError("Cascade 'stages' must be a list.")

    return Cascade(
        base_width=base_width,
        base_height=base_height,
        stages=tuple(_parse_stage(s, f"stages[{i}]") for i, s in enumerate(stages)),
    )


def cascade_to_dict(cascade: Cascade) -> dict:
    """Inverse of parse_cascade()."""
    return {
        "size": [cascade.base_width, cascade.base_height],
        "stages": [
            {
                "threshold": stage.threshold,
                "features": [
                    {
                        "threshold": feature.threshold,
                        "left_val": feature.left_value,
                        "right_val": feature.right_value,
                        "rectangles": [
                            [r.x, r.y, r.width, r.height, r.weight]
                            for r in feature.rectangles
                        ],
                    }
                    for feature in stage.features
                ],
            }
            for stage in cascade.stages
        ],
    }
