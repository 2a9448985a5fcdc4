"""
Data types and structures for the Alignment module.

Provides type-safe containers for configuration and per-template alignment
outcomes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

from cardreader.templates.types import FeatureConfig, Template


class DecisionStatus(Enum):
    """Alignment attempt outcomes."""

    ALIGNED = "ALIGNED"
    NOT_ALIGNED = "NOT_ALIGNED"


class AlignmentFailure(Enum):
    """Specific reasons an attempt produced no aligned image."""

    NO_FEATURES = "No Features"  # Nothing detected in the captured image
    NO_GOOD_MATCHES = "No Good Matches"  # Distance filter removed every match
    DEGENERATE_HOMOGRAPHY = "Degenerate Homography"  # Too few points or unusable H
    NONE = "None"  # Attempt succeeded


@dataclass
class MatchingConfig:
    """Configuration for descriptor match filtering."""

    good_match_factor: float  # keep matches with distance < factor * min_dist
    max_min_distance: float  # starting value of min_dist
    min_distance_floor: float  # optional lower bound on min_dist (0 disables)


@dataclass
class HomographyConfig:
    """RANSAC fit and niceness bounds."""

    ransac_reproj_threshold: float
    min_determinant: float  # det >= this
    min_axis_norm: float  # N1, N2 >= this
    max_axis_norm: float  # N1, N2 <= this
    max_perspective_norm: float  # N3 <= this


@dataclass
class ProcessingConfig:
    """Configuration for image processing options."""

    scale_interpolation: str
    warp_interpolation: str


@dataclass
class AlignmentConfig:
    """Complete alignment module configuration."""

    feature: FeatureConfig
    matching: MatchingConfig
    homography: HomographyConfig
    processing: ProcessingConfig


@dataclass
class HomographyMetrics:
    """Scalar properties of a fitted 3x3 homography."""

    determinant: float  # h00*h11 - h10*h01 (upper-left 2x2 minor)
    n1: float  # ||(h00, h10)||
    n2: float  # ||(h01, h11)||
    n3: float  # ||(h20, h21)||


@dataclass
class AlignedCandidate:
    """
    A captured image warped into one template's coordinate frame.

    Produced for every successful fit, including fits that are not nice.

    Attributes:
        warped_image: Captured image in template pixel space (template size).
        is_nice: Whether the homography passed the sanity bounds.
        determinant: Upper-left 2x2 determinant of the homography.
        metrics: All homography metrics.
        homography: The 3x3 matrix mapping scaled-image points to template points.
        template: The template this candidate was aligned against.
    """

    warped_image: np.ndarray
    is_nice: bool
    determinant: float
    metrics: HomographyMetrics
    homography: np.ndarray
    template: Template


@dataclass
class AlignmentResult:
    """
    Outcome of aligning one captured image against one template.

    Attributes:
        decision: ALIGNED or NOT_ALIGNED.
        template: The template that was attempted.
        candidate: The aligned candidate (None if not aligned).
        failure: Reason for NOT_ALIGNED, ``AlignmentFailure.NONE`` otherwise.
        match_count: Raw descriptor matches.
        good_match_count: Matches kept by the distance filter.
        inlier_count: RANSAC inliers of the fitted homography.
    """

    decision: DecisionStatus
    template: Template
    candidate: Optional[AlignedCandidate] = None
    failure: AlignmentFailure = AlignmentFailure.NONE
    match_count: int = 0
    good_match_count: int = 0
    inlier_count: int = 0

    def is_aligned(self) -> bool:
        """Check if the attempt produced an aligned candidate."""
        return self.decision == DecisionStatus.ALIGNED

    def get_error_message(self) -> str:
        """Get human-readable description of the outcome."""
        if self.is_aligned():
            verdict = "nice" if self.candidate and self.candidate.is_nice else "not nice"
            return f"Aligned to '{self.template.name}' ({verdict})"

        reason_messages = {
            AlignmentFailure.NO_FEATURES: "No features detected in captured image",
            AlignmentFailure.NO_GOOD_MATCHES: (
                f"None of {self.match_count} matches passed the distance filter"
            ),
            AlignmentFailure.DEGENERATE_HOMOGRAPHY: (
                f"No usable homography from {self.good_match_count} good matches"
            ),
        }
        return reason_messages.get(self.failure, f"Not aligned: {self.failure.value}")
