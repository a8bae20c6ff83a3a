"""
Cascade loading for the crop engine.

Responsibility:
    Resolve a cascade path, read it from disk and return a ready-to-use,
    immutable Cascade object.

Supported formats (selected by file suffix):
    - .json          plain-data layout (see cropengine.cascade)
    - .yaml / .yml   same layout, read with yaml.safe_load
    - .xml           OpenCV cascade XML, both the legacy
                     "opencv-haar-classifier" layout and the current
                     "opencv-cascade-classifier" layout (stump classifiers,
                     upright Haar features only)

Non-goals:
    - No detection or image logic.
    - No automatic downloading.

Failure behavior:
    - Missing files raise FileNotFoundError with the resolved path.
    - Malformed data raises CascadeFormatError (a ValueError).
"""

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional, Union

import cv2
import yaml

from cropengine.cascade import Cascade, CascadeFormatError, parse_cascade
from cropengine.config import get_project_root

logger = logging.getLogger(__name__)

_JSON_SUFFIXES = {".json"}
_YAML_SUFFIXES = {".yaml", ".yml"}
_XML_SUFFIXES = {".xml"}


def bundled_cascade_dir() -> Optional[Path]:
    """Directory of the Haar cascades shipped with OpenCV, if available."""
    data = getattr(cv2, "data", None)
    directory = getattr(data, "haarcascades", None)
    return Path(directory) if directory else None


def resolve_cascade_path(path: Union[str, Path]) -> Path:
    """Resolve a cascade path.

    Absolute paths are returned unchanged. Relative paths are tried
    against the project root first, then against OpenCV's bundled
    cascade directory. When neither exists the project-root candidate is
    returned so error messages point somewhere sensible.
    """
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate

    local = get_project_root() / candidate
    if local.is_file():
        return local

    bundled_dir = bundled_cascade_dir()
    if bundled_dir is not None and (bundled_dir / candidate).is_file():
        return bundled_dir / candidate

    return local


def load_cascade(path: Union[str, Path]) -> Cascade:
    """Load a cascade from disk.

    Args:
        path: Cascade file path (.json, .yaml, .yml or .xml).

    Returns:
        The parsed, immutable Cascade.

    Raises:
        FileNotFoundError: If the file does not exist.
        CascadeFormatError: If the file cannot be parsed.
    """
    resolved = resolve_cascade_path(path)

    if not resolved.is_file():
        raise FileNotFoundError(
            f"Cascade file not found.\n"
            f"  Expected: {resolved}\n"
            f"  Provide the file or update the cascade path in your config."
        )

    suffix = resolved.suffix.lower()
    logger.debug("Loading cascade: %s", resolved)

    if suffix in _JSON_SUFFIXES:
        with open(resolved, "r", encoding="utf-8") as f:
            try:
                raw = json.load(f)
            except json.JSONDecodeError as e:
                raise CascadeFormatError(f"Invalid JSON in {resolved}: {e}") from e
        cascade = parse_cascade(raw)
    elif suffix in _YAML_SUFFIXES:
        with open(resolved, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise CascadeFormatError(f"Invalid YAML in {resolved}: {e}") from e
        cascade = parse_cascade(raw)
    elif suffix in _XML_SUFFIXES:
        cascade = parse_cascade(read_opencv_xml(resolved))
    else:
        raise CascadeFormatError(
            f"Unrecognized cascade extension: '{suffix}' for {resolved}. "
            f"Supported: {sorted(_JSON_SUFFIXES | _YAML_SUFFIXES | _XML_SUFFIXES)}."
        )

    logger.info(
        "Cascade loaded: %s (%dx%d, %d stages, %d features)",
        resolved.name,
        cascade.base_width,
        cascade.base_height,
        len(cascade.stages),
        cascade.feature_count,
    )
    return cascade


# ---------------------------------------------------------------------------
# OpenCV XML
# ---------------------------------------------------------------------------

def read_opencv_xml(path: Union[str, Path]) -> dict:
    """Read an OpenCV cascade XML file into the plain-data layout.

    Raises:
        CascadeFormatError: If the XML is malformed or uses an unsupported
                            feature (tilted rectangles, LBP, deep trees).
    """
    try:
        root = ET.parse(str(path)).getroot()
    except ET.ParseError as e:
        raise CascadeFormatError(f"Failed to parse XML file {path}: {e}") from e

    node = _find_cascade_node(root)
    if node is None:
        raise CascadeFormatError(f"No cascade node found in {path}.")

    if node.get("type_id") == "opencv-cascade-classifier" or node.find("stageType") is not None:
        return _parse_current_layout(node)
    return _parse_legacy_layout(node)


def _find_cascade_node(root: ET.Element) -> Optional[ET.Element]:
    for child in root:
        type_id = child.get("type_id", "")
        if type_id in ("opencv-haar-classifier", "opencv-cascade-classifier"):
            return child
        if "haarcascade" in child.tag or child.tag == "cascade":
            return child
    return None


def _numbers(element: Optional[ET.Element], where: str) -> List[float]:
    if element is None or element.text is None:
        raise CascadeFormatError(f"Missing numeric content at {where}.")
    try:
        return [float(token) for token in element.text.split()]
    except ValueError as e:
        raise CascadeFormatError(f"Non-numeric content at {where}: {e}") from e


def _rectangles(rects: Optional[ET.Element], where: str) -> List[list]:
    if rects is None:
        raise CascadeFormatError(f"Missing <rects> at {where}.")
    out = []
    for i, rect in enumerate(rects.findall("_")):
        values = _numbers(rect, f"{where}.rects[{i}]")
        if len(values) < 5:
            raise CascadeFormatError(f"Rectangle at {where}.rects[{i}] has {len(values)} values.")
        x, y, w, h, weight = values[:5]
        out.append([int(x), int(y), int(w), int(h), weight])
    return out


def _reject_tilted(feature: ET.Element, where: str) -> None:
    tilted = feature.find("tilted")
    if tilted is not None and (tilted.text or "").strip() not in ("", "0"):
        raise CascadeFormatError(f"Tilted features are not supported ({where}).")


def _parse_legacy_layout(node: ET.Element) -> dict:
    size = _numbers(node.find("size"), "size")
    if len(size) != 2:
        raise CascadeFormatError(f"Expected two values in <size>, got {size}.")

    stages = []
    stages_node = node.find("stages")
    for s_idx, stage in enumerate(stages_node.findall("_") if stages_node is not None else []):
        threshold_node = stage.find("stage_threshold")
        threshold = _numbers(threshold_node, f"stages[{s_idx}]")[0] if threshold_node is not None else 0.0
        features = []
        trees = stage.find("trees")
        for t_idx, tree in enumerate(trees.findall("_") if trees is not None else []):
            where = f"stages[{s_idx}].trees[{t_idx}]"
            nodes = tree.findall("_")
            if len(nodes) != 1 or nodes[0].find("left_val") is None or nodes[0].find("right_val") is None:
                raise CascadeFormatError(f"Only single-node trees are supported ({where}).")
            tree_node = nodes[0]
            feature = tree_node.find("feature")
            if feature is None:
                raise CascadeFormatError(f"Missing <feature> at {where}.")
            _reject_tilted(feature, where)
            features.append({
                "threshold": _numbers(tree_node.find("threshold"), where)[0],
                "left_val": _numbers(tree_node.find("left_val"), where)[0],
                "right_val": _numbers(tree_node.find("right_val"), where)[0],
                "rectangles": _rectangles(feature.find("rects"), where),
            })
        stages.append({"threshold": threshold, "features": features})

    return {"size": [int(size[0]), int(size[1])], "stages": stages}


def _parse_current_layout(node: ET.Element) -> dict:
    feature_type = (node.findtext("featureType") or "HAAR").strip().upper()
    if feature_type != "HAAR":
        raise CascadeFormatError(f"Unsupported featureType '{feature_type}', expected HAAR.")

    width = int(_numbers(node.find("width"), "width")[0])
    height = int(_numbers(node.find("height"), "height")[0])

    feature_rects = []
    features_node = node.find("features")
    for f_idx, feature in enumerate(features_node.findall("_") if features_node is not None else []):
        where = f"features[{f_idx}]"
        _reject_tilted(feature, where)
        feature_rects.append(_rectangles(feature.find("rects"), where))

    stages = []
    stages_node = node.find("stages")
    for s_idx, stage in enumerate(stages_node.findall("_") if stages_node is not None else []):
        threshold = _numbers(stage.find("stageThreshold"), f"stages[{s_idx}]")[0]
        features = []
        weak = stage.find("weakClassifiers")
        for w_idx, classifier in enumerate(weak.findall("_") if weak is not None else []):
            where = f"stages[{s_idx}].weakClassifiers[{w_idx}]"
            internal = _numbers(classifier.find("internalNodes"), where)
            leaves = _numbers(classifier.find("leafValues"), where)
            if len(internal) != 4 or len(leaves) != 2:
                raise CascadeFormatError(f"Only stump classifiers are supported ({where}).")
            feature_idx = int(internal[2])
            if not 0 <= feature_idx < len(feature_rects):
                raise CascadeFormatError(f"Feature index {feature_idx} out of range ({where}).")
            features.append({
                "threshold": internal[3],
                "left_val": leaves[0],
                "right_val": leaves[1],
                "rectangles": feature_rects[feature_idx],
            })
        stages.append({"threshold": threshold, "features": features})

    return {"size": [width, height], "stages": stages}
