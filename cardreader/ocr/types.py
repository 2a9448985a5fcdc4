"""Type definitions for OCR module.

This module defines the data structures passed between the OCR engines,
the text extraction stage and the result selector.
"""

from dataclasses import dataclass

import numpy as np

from cardreader.alignment.types import AlignedCandidate


@dataclass(frozen=True)
class EngineReading:
    """Raw output of one recognition call.

    Attributes:
        text: Recognized text as returned by the engine (may contain spaces).
        confidence: Mean confidence, integer in [0, 100].
    """

    text: str
    confidence: int


@dataclass
class OCRCandidate:
    """One engine's reading of one aligned region.

    Attributes:
        engine_name: Name of the engine that produced the reading.
        raw_text: Engine output before normalization.
        text: Whitespace-free text after length reconciliation.
        confidence: Engine mean confidence in [0, 100].
        aligned: The aligned candidate the region was cropped from.
        region_image: The cleaned single-channel region raster.
    """

    engine_name: str
    raw_text: str
    text: str
    confidence: int
    aligned: AlignedCandidate
    region_image: np.ndarray

    @property
    def template_id(self) -> int:
        return self.aligned.template.template_id

    @property
    def template_name(self) -> str:
        return self.aligned.template.name

    @property
    def is_nice(self) -> bool:
        return self.aligned.is_nice
