"""
Shared Utilities

Common functions used across all modules.
"""

from cardreader.utils.image_ops import scale_to_width, to_bgr, to_grayscale
from cardreader.utils.io import read_image, save_image, save_json

__all__ = [
    "scale_to_width",
    "to_bgr",
    "to_grayscale",
    "read_image",
    "save_image",
    "save_json",
]
