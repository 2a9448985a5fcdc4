"""
Result types for the end-to-end card reader.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np


@dataclass
class SerialNumberResult:
    """
    The winning reading, with the rasters it came from.

    Attributes:
        engine_name: Engine that produced the reading.
        text: Normalized, length-reconciled serial number.
        raw_text: Engine output before normalization.
        confidence: Engine mean confidence (0-100).
        aligned_image: Captured image warped into the template frame.
        cropped_region_image: Cleaned region that was read.
        template_id: Identifier of the matched template.
        template_name: Name of the matched template.
        is_nice: Whether the alignment homography passed the sanity bounds.
        determinant: Upper-left 2x2 determinant of the homography.
    """

    engine_name: str
    text: str
    raw_text: str
    confidence: int
    aligned_image: np.ndarray
    cropped_region_image: np.ndarray
    template_id: int
    template_name: str
    is_nice: bool
    determinant: float

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable summary (rasters omitted)."""
        return {
            "text": self.text,
            "raw_text": self.raw_text,
            "confidence": self.confidence,
            "engine": self.engine_name,
            "template_id": self.template_id,
            "template_name": self.template_name,
            "is_nice": self.is_nice,
            "determinant": round(self.determinant, 6),
        }


@dataclass
class AttemptDiagnostics:
    """What happened when one template was attempted."""

    template_id: int
    template_name: str
    decision: str
    failure: str
    is_nice: Optional[bool]
    determinant: Optional[float]
    match_count: int
    good_match_count: int
    inlier_count: int
    candidate_count: int
    elapsed_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template_id": self.template_id,
            "template_name": self.template_name,
            "decision": self.decision,
            "failure": self.failure,
            "is_nice": self.is_nice,
            "determinant": None if self.determinant is None else round(self.determinant, 6),
            "match_count": self.match_count,
            "good_match_count": self.good_match_count,
            "inlier_count": self.inlier_count,
            "candidate_count": self.candidate_count,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


@dataclass
class ReadResult:
    """
    Outcome of reading one captured image.

    Attributes:
        best: Winning serial number, or None when no candidate qualified.
        attempts: Diagnostics for every template, in catalog order.
        candidate_count: Total OCR candidates produced.
        processing_time_ms: Wall time for the whole read.
        candidates: Text summaries of every candidate (only when
            ``keep_all_candidates`` is enabled).
    """

    best: Optional[SerialNumberResult]
    attempts: List[AttemptDiagnostics] = field(default_factory=list)
    candidate_count: int = 0
    processing_time_ms: float = 0.0
    candidates: List[Dict[str, Any]] = field(default_factory=list)

    def is_found(self) -> bool:
        """Check if a serial number was read."""
        return self.best is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.is_found(),
            "best": self.best.to_dict() if self.best else None,
            "candidate_count": self.candidate_count,
            "processing_time_ms": round(self.processing_time_ms, 1),
            "attempts": [attempt.to_dict() for attempt in self.attempts],
            "candidates": list(self.candidates),
        }
