"""
Serialization for cascade data.

Responsibility:
    Export cascades to the plain-data JSON layout so that the offline
    conversion from OpenCV XML happens once, not on every load.

Non-goals:
    - No detection or crop logic.
    - No streaming output — writes complete files.
"""

import json
import logging
from pathlib import Path
from typing import Union

from cropengine.cascade import Cascade, cascade_to_dict
from cropengine.model_loader import load_cascade

logger = logging.getLogger(__name__)


def save_cascade(cascade: Cascade, output_path: Union[str, Path]) -> None:
    """Write a cascade to a JSON file.

    Args:
        cascade: The cascade to export.
        output_path: Path to the output JSON file.

    Raises:
        OSError: If the output path is not writable.
    """
    _ensure_parent_dir(output_path)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(cascade_to_dict(cascade), f)

    logger.info(
        "Cascade saved: %s (%d stages, %d features)",
        output_path, len(cascade.stages), cascade.feature_count,
    )


def convert_cascade(
    source_path: Union[str, Path],
    output_path: Union[str, Path],
) -> Cascade:
    """Convert any supported cascade file (typically OpenCV XML) to JSON.

    Returns:
        The cascade that was written.

    Raises:
        FileNotFoundError: If the source does not exist.
        CascadeFormatError: If the source cannot be parsed.
    """
    cascade = load_cascade(source_path)
    save_cascade(cascade, output_path)
    return cascade


def _ensure_parent_dir(path: Union[str, Path]) -> None:
    """Create parent directories if they don't exist."""
    parent = Path(path).parent
    parent.mkdir(parents=True, exist_ok=True)
