"""
Image conversion helpers shared by the catalog, aligner and region extractor.
"""

import logging
from typing import Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

_INTERPOLATIONS = {
    "linear": cv2.INTER_LINEAR,
    "cubic": cv2.INTER_CUBIC,
    "nearest": cv2.INTER_NEAREST,
    "area": cv2.INTER_AREA,
    "lanczos": cv2.INTER_LANCZOS4,
}


def interpolation_flag(name: str) -> int:
    """Map an interpolation name from configuration to its OpenCV flag."""
    try:
        return _INTERPOLATIONS[name]
    except KeyError:
        raise ValueError(
            f"Unknown interpolation '{name}'. Must be one of {sorted(_INTERPOLATIONS)}"
        ) from None


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Return a 3-channel BGR view of a grayscale, BGR or BGRA image."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image[:, :, 0], cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise ValueError(f"Unsupported image shape: {image.shape}")


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert image to single-channel intensity if it isn't already."""
    if image.ndim == 2:
        return image
    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    if image.ndim == 3 and image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    raise ValueError(f"Unsupported image shape: {image.shape}")


def scale_to_width(
    image: np.ndarray,
    target_width: int,
    interpolation: int = cv2.INTER_LINEAR,
) -> Tuple[np.ndarray, float]:
    """
    Uniformly rescale an image so its width equals ``target_width``.

    Aspect ratio is preserved; the height follows from the same factor.

    Returns:
        Tuple of (scaled image, scale factor).
    """
    height, width = image.shape[:2]
    if width == 0 or height == 0:
        raise ValueError(f"Cannot scale an empty image of shape {image.shape}")

    scale = target_width / width
    if scale == 1.0:
        return image, scale

    new_height = max(1, int(round(height * scale)))
    scaled = cv2.resize(image, (target_width, new_height), interpolation=interpolation)
    logger.debug(f"Scaled {width}x{height} -> {target_width}x{new_height} (scale={scale:.3f})")
    return scaled, scale
