"""
Homography sanity checks for the Alignment module.

A RANSAC fit can succeed numerically while describing a transform no real
photograph of a flat card could produce (mirroring, collapse of an axis,
extreme perspective). These functions summarize a 3x3 homography by four
scalars and accept it only when all of them fall inside fixed bounds.
"""

import logging
from typing import Optional

import numpy as np

from cardreader.alignment.types import HomographyConfig, HomographyMetrics
from cardreader.utils.constants import MAX_AXIS_NORM, MAX_PERSPECTIVE_NORM, MIN_AXIS_NORM

logger = logging.getLogger(__name__)

DEFAULT_BOUNDS = HomographyConfig(
    ransac_reproj_threshold=3.0,
    min_determinant=0.0,
    min_axis_norm=MIN_AXIS_NORM,
    max_axis_norm=MAX_AXIS_NORM,
    max_perspective_norm=MAX_PERSPECTIVE_NORM,
)


def compute_homography_metrics(homography: np.ndarray) -> HomographyMetrics:
    """
    Compute determinant and column/perspective norms of a homography.

    Args:
        homography: 3x3 matrix.

    Returns:
        HomographyMetrics with determinant, N1, N2 and N3.

    Example:
        >>> metrics = compute_homography_metrics(np.eye(3))
        >>> metrics.determinant, metrics.n1, metrics.n3
        (1.0, 1.0, 0.0)
    """
    h = np.asarray(homography, dtype=np.float64)
    if h.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 homography, got shape {h.shape}")

    determinant = h[0, 0] * h[1, 1] - h[1, 0] * h[0, 1]
    n1 = np.hypot(h[0, 0], h[1, 0])
    n2 = np.hypot(h[0, 1], h[1, 1])
    n3 = np.hypot(h[2, 0], h[2, 1])

    return HomographyMetrics(
        determinant=float(determinant), n1=float(n1), n2=float(n2), n3=float(n3)
    )


def is_nice_homography(
    determinant: float,
    n1: float,
    n2: float,
    n3: float,
    bounds: Optional[HomographyConfig] = None,
) -> bool:
    """
    Decide whether homography metrics describe a plausible card photograph.

    Nice iff ``determinant >= 0``, ``0.1 <= N1 <= 4``, ``0.1 <= N2 <= 4``
    and ``N3 <= 0.002`` (all bounds inclusive and configurable).

    Args:
        determinant: Upper-left 2x2 determinant.
        n1: Norm of the first column's affine part.
        n2: Norm of the second column's affine part.
        n3: Norm of the perspective row.
        bounds: Threshold overrides; defaults to the standard bounds.

    Returns:
        True if every metric lies within bounds.
    """
    b = bounds or DEFAULT_BOUNDS

    if determinant < b.min_determinant:
        return False
    if not (b.min_axis_norm <= n1 <= b.max_axis_norm):
        return False
    if not (b.min_axis_norm <= n2 <= b.max_axis_norm):
        return False
    return n3 <= b.max_perspective_norm


def evaluate_homography(
    homography: np.ndarray, bounds: Optional[HomographyConfig] = None
) -> tuple:
    """
    Compute metrics and the niceness verdict in one call.

    Returns:
        Tuple of (HomographyMetrics, is_nice).
    """
    metrics = compute_homography_metrics(homography)
    nice = is_nice_homography(
        metrics.determinant, metrics.n1, metrics.n2, metrics.n3, bounds
    )
    logger.debug(
        f"Homography metrics: det={metrics.determinant:.4f}, N1={metrics.n1:.4f}, "
        f"N2={metrics.n2:.4f}, N3={metrics.n3:.6f} -> {'nice' if nice else 'not nice'}"
    )
    return metrics, nice
