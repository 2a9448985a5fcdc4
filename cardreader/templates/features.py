"""
Feature extraction helpers.

Templates and captured images must be described by the same algorithm, so
both go through these functions with the catalog's ``FeatureConfig``.
OpenCV detector objects are not shared between threads; callers create one
per attempt.
"""

import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from cardreader.templates.types import FeatureConfig

logger = logging.getLogger(__name__)

SUPPORTED_DETECTORS = ("orb", "akaze")


def create_feature_detector(config: FeatureConfig):
    """
    Build an OpenCV Feature2D detector for the configured algorithm.

    Raises:
        ValueError: If the detector name is not supported.
    """
    detector = config.detector.lower()
    if detector == "orb":
        return cv2.ORB_create(
            nfeatures=config.max_features,
            scaleFactor=config.scale_factor,
            nlevels=config.n_levels,
        )
    if detector == "akaze":
        return cv2.AKAZE_create()
    raise ValueError(
        f"Unsupported feature detector '{config.detector}'. "
        f"Must be one of {list(SUPPORTED_DETECTORS)}"
    )


def create_matcher():
    """Brute-force matcher for binary descriptors (ORB and AKAZE/MLDB)."""
    return cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)


def detect_and_compute(
    gray: np.ndarray, config: FeatureConfig
) -> Tuple[Tuple[cv2.KeyPoint, ...], Optional[np.ndarray]]:
    """
    Detect keypoints and compute descriptors on a grayscale image.

    Returns:
        Tuple of (keypoints, descriptors). Descriptors are None when no
        keypoint was found.
    """
    detector = create_feature_detector(config)
    keypoints, descriptors = detector.detectAndCompute(gray, None)
    keypoints = tuple(keypoints) if keypoints is not None else ()

    logger.debug(
        f"{config.detector.upper()} found {len(keypoints)} keypoints "
        f"on {gray.shape[1]}x{gray.shape[0]} image"
    )

    if descriptors is None or len(keypoints) == 0:
        return (), None
    return keypoints, descriptors
