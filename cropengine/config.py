"""
Configuration management for the crop engine.

Provides a layered configuration system with the following precedence
(highest to lowest):

    Environment variables > YAML config file > Defaults

Design constraints:
    - The engine MUST run with zero configuration (safe defaults only).
    - Missing or invalid values fail early and loudly.
    - No detection, scoring, or image logic belongs here.

Non-goals:
    - No dynamic reloading.
    - No database-backed or remote configuration.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Project root resolution
# ---------------------------------------------------------------------------
# Resolved relative to this file's location: cropengine/config.py → repo root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the resolved project root directory."""
    return _PROJECT_ROOT


# ---------------------------------------------------------------------------
# Configuration dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectorConfig:
    """Cascade detector configuration.

    Attributes:
        frontal_cascade_path: Frontal face cascade (.json, .yaml or OpenCV .xml).
                              Relative paths are tried against the project root,
                              then against the cascades bundled with OpenCV.
        profile_cascade_path: Profile face cascade, same resolution rules.
                              An empty string disables the profile pass.
        base_scale: Starting scale of the detection window.
        scale_step: Multiplicative growth of the window per pass.
        min_neighbors: Minimum raw hits a group needs to be kept.
        grouping_epsilon: Relative tolerance when merging raw hits.
        canvas_scale: Nearest-neighbour rescale applied to the canvas before
                      scanning (1.0 scans at native resolution).
        max_execution_time: Soft wall-clock budget in seconds for the whole
                            multi-cascade run. None disables the budget.
    """

    frontal_cascade_path: str = "haarcascade_frontalface_default.xml"
    profile_cascade_path: str = "haarcascade_profileface.xml"
    base_scale: float = 1.0
    scale_step: float = 1.2
    min_neighbors: int = 1
    grouping_epsilon: float = 0.2
    canvas_scale: float = 1.0
    max_execution_time: Optional[float] = None


@dataclass(frozen=True)
class EntropyConfig:
    """Entropy slicer parameters.

    Attributes:
        potential_ratio: How much larger one side's safe-zone potential must be
                         before the other side is force-cut.
        slice_divisions: The oversized span is trimmed in roughly this many steps.
        edge_radius: Radius of the edge filter applied to the measure image.
        black_threshold: Intensities below this become pitch black.
        blur_radius: Gaussian blur radius applied before measuring entropy.
        blur_sigma: Gaussian blur sigma applied before measuring entropy.
    """

    potential_ratio: float = 1.5
    slice_divisions: int = 25
    edge_radius: int = 1
    black_threshold: int = 7
    blur_radius: int = 3
    blur_sigma: float = 2.0


@dataclass(frozen=True)
class BalancedConfig:
    """Quadrant balancer parameters.

    Attributes:
        sample_ratio: One pixel in this many is sampled per quadrant.
        seed: Seed for the sampling generator. None draws fresh entropy,
              which makes offsets statistically stable but not bit-exact.
        edge_radius: Radius of the edge filter applied to the measure image.
        black_threshold: Intensities below this become pitch black.
    """

    sample_ratio: int = 50
    seed: Optional[int] = None
    edge_radius: int = 1
    black_threshold: int = 7


@dataclass(frozen=True)
class ResizeConfig:
    """Resize behaviour used by resize_and_crop.

    Attributes:
        interpolation: 'nearest', 'linear', 'cubic', 'area' or 'lanczos'.
        auto_orient: Apply EXIF orientation when loading images from disk.
    """

    interpolation: str = "cubic"
    auto_orient: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Top-level configuration.

    Aggregates all sub-configurations into a single, frozen object.
    """

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    entropy: EntropyConfig = field(default_factory=EntropyConfig)
    balanced: BalancedConfig = field(default_factory=BalancedConfig)
    resize: ResizeConfig = field(default_factory=ResizeConfig)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

VALID_INTERPOLATIONS = {"nearest", "linear", "cubic", "area", "lanczos"}


def _validate(config: AppConfig) -> None:
    """Validate configuration values. Raises ValueError on invalid state."""

    detector = config.detector

    if detector.base_scale <= 0:
        raise ValueError(
            f"detector.base_scale must be positive, got {detector.base_scale}."
        )

    if detector.scale_step <= 1.0:
        raise ValueError(
            f"detector.scale_step must be greater than 1.0, "
            f"got {detector.scale_step}."
        )

    if detector.min_neighbors < 1:
        raise ValueError(
            f"detector.min_neighbors must be at least 1, "
            f"got {detector.min_neighbors}."
        )

    if detector.grouping_epsilon < 0:
        raise ValueError(
            f"detector.grouping_epsilon must be non-negative, "
            f"got {detector.grouping_epsilon}."
        )

    if detector.canvas_scale <= 0:
        raise ValueError(
            f"detector.canvas_scale must be positive, got {detector.canvas_scale}."
        )

    if detector.max_execution_time is not None and detector.max_execution_time <= 0:
        raise ValueError(
            f"detector.max_execution_time must be positive or None, "
            f"got {detector.max_execution_time}."
        )

    if config.entropy.potential_ratio < 1.0:
        raise ValueError(
            f"entropy.potential_ratio must be at least 1.0, "
            f"got {config.entropy.potential_ratio}."
        )

    if config.entropy.slice_divisions < 1:
        raise ValueError(
            f"entropy.slice_divisions must be at least 1, "
            f"got {config.entropy.slice_divisions}."
        )

    for section in (config.entropy, config.balanced):
        if section.edge_radius < 1:
            raise ValueError(
                f"edge_radius must be at least 1, got {section.edge_radius}."
            )
        if not (0 <= section.black_threshold <= 255):
            raise ValueError(
                f"black_threshold must be in [0, 255], "
                f"got {section.black_threshold}."
            )

    if config.entropy.blur_radius < 0 or config.entropy.blur_sigma < 0:
        raise ValueError(
            f"entropy.blur_radius and entropy.blur_sigma must be non-negative, "
            f"got ({config.entropy.blur_radius}, {config.entropy.blur_sigma})."
        )

    if config.balanced.sample_ratio < 1:
        raise ValueError(
            f"balanced.sample_ratio must be at least 1, "
            f"got {config.balanced.sample_ratio}."
        )

    if config.resize.interpolation not in VALID_INTERPOLATIONS:
        raise ValueError(
            f"Invalid resize.interpolation: '{config.resize.interpolation}'. "
            f"Must be one of {VALID_INTERPOLATIONS}."
        )


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def _parse_bool(value) -> bool:
    """Interpret YAML booleans and env-var strings alike."""
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _parse_optional(value, cast_type):
    """Cast a value, mapping None and the string 'none' to None."""
    if value is None or (isinstance(value, str) and value.strip().lower() in {"", "none", "null"}):
        return None
    return cast_type(value)


def _build_detector_config(raw: dict) -> DetectorConfig:
    """Build DetectorConfig from a raw YAML dict."""
    kwargs = {}
    if "frontal_cascade_path" in raw:
        kwargs["frontal_cascade_path"] = str(raw["frontal_cascade_path"])
    if "profile_cascade_path" in raw:
        val = raw["profile_cascade_path"]
        kwargs["profile_cascade_path"] = str(val) if val is not None else ""
    if "base_scale" in raw:
        kwargs["base_scale"] = float(raw["base_scale"])
    if "scale_step" in raw:
        kwargs["scale_step"] = float(raw["scale_step"])
    if "min_neighbors" in raw:
        kwargs["min_neighbors"] = int(raw["min_neighbors"])
    if "grouping_epsilon" in raw:
        kwargs["grouping_epsilon"] = float(raw["grouping_epsilon"])
    if "canvas_scale" in raw:
        kwargs["canvas_scale"] = float(raw["canvas_scale"])
    if "max_execution_time" in raw:
        kwargs["max_execution_time"] = _parse_optional(raw["max_execution_time"], float)
    return DetectorConfig(**kwargs)


def _build_entropy_config(raw: dict) -> EntropyConfig:
    """Build EntropyConfig from a raw YAML dict."""
    kwargs = {}
    if "potential_ratio" in raw:
        kwargs["potential_ratio"] = float(raw["potential_ratio"])
    if "slice_divisions" in raw:
        kwargs["slice_divisions"] = int(raw["slice_divisions"])
    if "edge_radius" in raw:
        kwargs["edge_radius"] = int(raw["edge_radius"])
    if "black_threshold" in raw:
        kwargs["black_threshold"] = int(raw["black_threshold"])
    if "blur_radius" in raw:
        kwargs["blur_radius"] = int(raw["blur_radius"])
    if "blur_sigma" in raw:
        kwargs["blur_sigma"] = float(raw["blur_sigma"])
    return EntropyConfig(**kwargs)


def _build_balanced_config(raw: dict) -> BalancedConfig:
    """Build BalancedConfig from a raw YAML dict."""
    kwargs = {}
    if "sample_ratio" in raw:
        kwargs["sample_ratio"] = int(raw["sample_ratio"])
    if "seed" in raw:
        kwargs["seed"] = _parse_optional(raw["seed"], int)
    if "edge_radius" in raw:
        kwargs["edge_radius"] = int(raw["edge_radius"])
    if "black_threshold" in raw:
        kwargs["black_threshold"] = int(raw["black_threshold"])
    return BalancedConfig(**kwargs)


def _build_resize_config(raw: dict) -> ResizeConfig:
    """Build ResizeConfig from a raw YAML dict."""
    kwargs = {}
    if "interpolation" in raw:
        kwargs["interpolation"] = str(raw["interpolation"]).lower()
    if "auto_orient" in raw:
        kwargs["auto_orient"] = _parse_bool(raw["auto_orient"])
    return ResizeConfig(**kwargs)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

_ENV_PREFIX = "CROP_ENGINE_"

_SECTIONS = {
    "detector": DetectorConfig,
    "entropy": EntropyConfig,
    "balanced": BalancedConfig,
    "resize": ResizeConfig,
}


def _apply_env_overrides(raw: dict) -> dict:
    """Apply environment variable overrides to the raw config dict.

    Every config field can be overridden. Environment variables follow
    the pattern CROP_ENGINE_<SECTION>_<FIELD>, e.g.:
        CROP_ENGINE_DETECTOR_SCALE_STEP=1.25
        CROP_ENGINE_BALANCED_SEED=42
    """
    env_map = {
        f"{_ENV_PREFIX}{section.upper()}_{f.name.upper()}": (section, f.name)
        for section, section_type in _SECTIONS.items()
        for f in fields(section_type)
    }

    for env_var, (section, key) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            if not isinstance(raw.get(section), dict):
                raw[section] = {}
            raw[section][key] = value
            logger.debug("Config override from env: %s=%s", env_var, value)

    return raw


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate the crop engine configuration.

    Precedence (highest → lowest):
        Environment variables > YAML file > Hard-coded defaults

    Args:
        config_path: Path to a YAML configuration file. If None,
                     the engine runs entirely on defaults.

    Returns:
        A validated, frozen AppConfig instance.

    Raises:
        FileNotFoundError: If config_path is provided but does not exist.
        ValueError: If any configuration value is invalid.
        yaml.YAMLError: If the YAML file is malformed.
    """
    raw: dict = {}

    # --- Layer 1: YAML file ---
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.is_absolute():
            resolved = _PROJECT_ROOT / resolved

        if not resolved.is_file():
            raise FileNotFoundError(
                f"Configuration file not found: {resolved}. "
                f"Provide a valid path or omit to use defaults."
            )

        logger.info("Loading config from: %s", resolved)
        with open(resolved, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    # --- Layer 2: Environment variable overrides ---
    raw = _apply_env_overrides(raw)

    # --- Build typed configs ---
    config = AppConfig(
        detector=_build_detector_config(raw.get("detector") or {}),
        entropy=_build_entropy_config(raw.get("entropy") or {}),
        balanced=_build_balanced_config(raw.get("balanced") or {}),
        resize=_build_resize_config(raw.get("resize") or {}),
    )

    # --- Validate ---
    _validate(config)

    logger.debug("Configuration loaded: %s", config)
    return config
