"""
Visualization Utilities

Functions for drawing pipeline results onto images for inspection.
"""

from typing import Optional, Tuple

import cv2
import numpy as np

from cardreader.common.types import RegionBox
from cardreader.utils.image_ops import to_bgr


def draw_region(
    image: np.ndarray,
    region: RegionBox,
    label: Optional[str] = None,
    color: Tuple[int, int, int] = (0, 0, 255),
    thickness: int = 2,
) -> np.ndarray:
    """
    Draw the serial number region (and an optional label) on a copy of an image.

    Args:
        image: Aligned image in the template frame.
        region: Region to outline.
        label: Text drawn just above the rectangle.
        color: BGR outline color.
        thickness: Line thickness in pixels.

    Returns:
        Annotated BGR copy of the image.
    """
    canvas = to_bgr(image).copy()
    cv2.rectangle(
        canvas,
        (region.x_left, region.y_top),
        (region.x_right, region.y_bottom),
        color,
        thickness,
    )

    if label:
        cv2.putText(
            canvas,
            label,
            (region.x_left, max(12, region.y_top - 6)),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            color,
            2,
        )

    return canvas


def stack_side_by_side(left: np.ndarray, right: np.ndarray, gap: int = 8) -> np.ndarray:
    """Place two images next to each other on a white canvas (top aligned)."""
    left = to_bgr(left)
    right = to_bgr(right)
    height = max(left.shape[0], right.shape[0])
    width = left.shape[1] + gap + right.shape[1]

    canvas = np.full((height, width, 3), 255, dtype=np.uint8)
    canvas[: left.shape[0], : left.shape[1]] = left
    canvas[: right.shape[0], left.shape[1] + gap :] = right
    return canvas
