"""
Alignment module: maps a captured image onto a template's coordinate frame.
"""

from cardreader.alignment.config_loader import default_config, load_config
from cardreader.alignment.feature_aligner import FeatureAligner
from cardreader.alignment.homography_validator import (
    compute_homography_metrics,
    is_nice_homography,
)
from cardreader.alignment.types import (
    AlignedCandidate,
    AlignmentConfig,
    AlignmentFailure,
    AlignmentResult,
    DecisionStatus,
    HomographyMetrics,
)

__all__ = [
    "FeatureAligner",
    "load_config",
    "default_config",
    "compute_homography_metrics",
    "is_nice_homography",
    "AlignedCandidate",
    "AlignmentConfig",
    "AlignmentFailure",
    "AlignmentResult",
    "DecisionStatus",
    "HomographyMetrics",
]
