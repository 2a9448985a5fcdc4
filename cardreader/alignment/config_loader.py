"""
Configuration loader for the Alignment module.

Loads and validates configuration from config.yaml file.
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from cardreader.alignment.types import (
    AlignmentConfig,
    HomographyConfig,
    MatchingConfig,
    ProcessingConfig,
)
from cardreader.templates.features import SUPPORTED_DETECTORS
from cardreader.templates.types import FeatureConfig
from cardreader.utils.constants import MAX_AXIS_NORM, MAX_PERSPECTIVE_NORM, MIN_AXIS_NORM

logger = logging.getLogger(__name__)

# Default configuration path (relative to this file)
DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"

VALID_INTERPOLATIONS = ["linear", "cubic", "nearest", "area", "lanczos"]


def load_config(config_path: Path = DEFAULT_CONFIG_PATH) -> AlignmentConfig:
    """
    Load alignment configuration from YAML file.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated AlignmentConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config is invalid or missing required fields.

    Example:
        >>> config = load_config()
        >>> print(config.homography.max_perspective_norm)
        0.002
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    logger.debug(f"Loading alignment config from {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f)

    try:
        config = _parse_config(raw_config)
        _validate_config(config)
        logger.info("Successfully loaded alignment configuration")
        return config
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration file: {e}") from e


def _parse_config(raw: Dict[str, Any]) -> AlignmentConfig:
    """Parse raw dictionary into structured config objects."""
    feature = raw["feature"]
    matching = raw["matching"]
    homography = raw["homography"]
    processing = raw["processing"]

    return AlignmentConfig(
        feature=FeatureConfig(
            detector=str(feature["detector"]).lower(),
            max_features=int(feature["max_features"]),
            scale_factor=float(feature.get("scale_factor", 1.2)),
            n_levels=int(feature.get("n_levels", 8)),
        ),
        matching=MatchingConfig(
            good_match_factor=float(matching["good_match_factor"]),
            max_min_distance=float(matching["max_min_distance"]),
            min_distance_floor=float(matching.get("min_distance_floor", 0.0)),
        ),
        homography=HomographyConfig(
            ransac_reproj_threshold=float(homography["ransac_reproj_threshold"]),
            min_determinant=float(homography["min_determinant"]),
            min_axis_norm=float(homography["min_axis_norm"]),
            max_axis_norm=float(homography["max_axis_norm"]),
            max_perspective_norm=float(homography["max_perspective_norm"]),
        ),
        processing=ProcessingConfig(
            scale_interpolation=str(processing["scale_interpolation"]),
            warp_interpolation=str(processing["warp_interpolation"]),
        ),
    )


def _validate_config(config: AlignmentConfig) -> None:
    """
    Validate configuration values for logical consistency.

    Raises:
        ValueError: If any configuration value is invalid.
    """
    # Feature detector
    if config.feature.detector not in SUPPORTED_DETECTORS:
        raise ValueError(
            f"Invalid feature detector: {config.feature.detector}. "
            f"Must be one of {list(SUPPORTED_DETECTORS)}"
        )
    if config.feature.max_features < 1:
        raise ValueError("max_features must be at least 1")
    if config.feature.scale_factor <= 1.0:
        raise ValueError("scale_factor must be greater than 1.0")
    if config.feature.n_levels < 1:
        raise ValueError("n_levels must be at least 1")

    # Match filtering
    if config.matching.good_match_factor <= 0:
        raise ValueError("good_match_factor must be positive")
    if config.matching.min_distance_floor < 0:
        raise ValueError("min_distance_floor cannot be negative")
    if config.matching.max_min_distance < config.matching.min_distance_floor:
        raise ValueError(
            f"max_min_distance ({config.matching.max_min_distance}) must be >= "
            f"min_distance_floor ({config.matching.min_distance_floor})"
        )

    # Homography bounds
    h = config.homography
    if h.ransac_reproj_threshold <= 0:
        raise ValueError("ransac_reproj_threshold must be positive")
    if h.min_axis_norm < 0 or h.min_axis_norm >= h.max_axis_norm:
        raise ValueError(
            f"Axis norm bounds invalid: min ({h.min_axis_norm}) "
            f"must be non-negative and less than max ({h.max_axis_norm})"
        )
    if h.max_perspective_norm < 0:
        raise ValueError("max_perspective_norm cannot be negative")

    # Interpolation methods
    for field_name in ("scale_interpolation", "warp_interpolation"):
        value = getattr(config.processing, field_name)
        if value not in VALID_INTERPOLATIONS:
            raise ValueError(
                f"Invalid {field_name}: {value}. Must be one of {VALID_INTERPOLATIONS}"
            )

    logger.debug("Configuration validation passed")


def default_config() -> AlignmentConfig:
    """Configuration with built-in defaults, independent of any YAML file."""
    return AlignmentConfig(
        feature=FeatureConfig(),
        matching=MatchingConfig(
            good_match_factor=3.0, max_min_distance=100.0, min_distance_floor=0.0
        ),
        homography=HomographyConfig(
            ransac_reproj_threshold=3.0,
            min_determinant=0.0,
            min_axis_norm=MIN_AXIS_NORM,
            max_axis_norm=MAX_AXIS_NORM,
            max_perspective_norm=MAX_PERSPECTIVE_NORM,
        ),
        processing=ProcessingConfig(
            scale_interpolation="linear", warp_interpolation="linear"
        ),
    )
