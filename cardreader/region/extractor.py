"""
Region extraction and cleanup.

Cuts the template's serial number rectangle out of an aligned image and
turns it into a clean binary raster for OCR:

1. Detail enhancement (edge-preserving)
2. Grayscale
3. Otsu binarization
4. 2x upscale
5. Median blur
6. Morphological close, then open (3x3 ones kernel)
"""

import logging
from typing import Optional

import cv2
import numpy as np

from cardreader.alignment.types import AlignedCandidate
from cardreader.ocr.config_loader import PreprocessingConfig
from cardreader.utils.image_ops import interpolation_flag, to_bgr, to_grayscale

logger = logging.getLogger(__name__)


class RegionExtractor:
    """
    Crops and cleans the serial number region of an aligned candidate.

    Example:
        >>> extractor = RegionExtractor()
        >>> region = extractor.crop(result.candidate)
        >>> region.ndim, region.dtype
        (2, dtype('uint8'))
    """

    def __init__(self, config: Optional[PreprocessingConfig] = None):
        self.config = config or PreprocessingConfig()
        self._upscale_flag = interpolation_flag(self.config.upscale_interpolation)
        self._kernel = np.ones(
            (self.config.morph_kernel_size, self.config.morph_kernel_size), np.uint8
        )

    def crop(self, candidate: AlignedCandidate) -> np.ndarray:
        """
        Crop the template region from the aligned image and clean it.

        Args:
            candidate: Aligned candidate (warped image is template-sized).

        Returns:
            Single-channel uint8 binary image.

        Raises:
            ValueError: If the region does not fit in the aligned image.
        """
        region = candidate.template.region
        roi = region.crop(candidate.warped_image)
        logger.debug(
            f"[{candidate.template.name}] Cropped region {region.to_xywh()}"
        )
        return self.clean(roi)

    def clean(self, roi: np.ndarray) -> np.ndarray:
        """Apply the cleanup chain to an already cropped region."""
        cfg = self.config

        if cfg.detail_enhance:
            roi = cv2.detailEnhance(
                to_bgr(roi), sigma_s=cfg.detail_sigma_s, sigma_r=cfg.detail_sigma_r
            )

        gray = to_grayscale(roi)
        _, binary = cv2.threshold(
            gray,
            cfg.threshold_value,
            cfg.threshold_max_value,
            cv2.THRESH_BINARY | cv2.THRESH_OTSU,
        )

        if cfg.upscale_factor != 1.0:
            binary = cv2.resize(
                binary,
                None,
                fx=cfg.upscale_factor,
                fy=cfg.upscale_factor,
                interpolation=self._upscale_flag,
            )

        if cfg.median_kernel > 1:
            binary = cv2.medianBlur(binary, cfg.median_kernel)

        if cfg.morph_close:
            binary = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, self._kernel)
        if cfg.morph_open:
            binary = cv2.morphologyEx(binary, cv2.MORPH_OPEN, self._kernel)

        return binary
