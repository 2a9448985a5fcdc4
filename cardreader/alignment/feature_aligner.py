"""
Feature-based alignment of a captured image onto a template.

For each template:
1. Rescale the captured image to the template width
2. Detect and describe features with the catalog's algorithm
3. Match template descriptors against image descriptors (Hamming)
4. Keep matches closer than ``good_match_factor * min_dist``
5. Fit a RANSAC homography and grade it with the niceness bounds
6. Warp the captured image into the template frame

A failed attempt is reported as a NOT_ALIGNED result; nothing is raised, so
the caller simply moves on to the next template.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

import cv2
import numpy as np

from cardreader.alignment.config_loader import load_config
from cardreader.alignment.homography_validator import evaluate_homography
from cardreader.alignment.types import (
    AlignedCandidate,
    AlignmentConfig,
    AlignmentFailure,
    AlignmentResult,
    DecisionStatus,
)
from cardreader.templates.catalog import TemplateCatalog
from cardreader.templates.features import create_matcher, detect_and_compute
from cardreader.templates.types import FeatureConfig, Template
from cardreader.utils.image_ops import interpolation_flag, scale_to_width, to_bgr, to_grayscale

logger = logging.getLogger(__name__)

MIN_HOMOGRAPHY_POINTS = 4


@contextmanager
def _scratch() -> Iterator[Dict[str, Any]]:
    """Hold the transient buffers of one attempt; released on every exit path."""
    buffers: Dict[str, Any] = {}
    try:
        yield buffers
    finally:
        buffers.clear()


class FeatureAligner:
    """
    Aligns captured images to templates with ORB/AKAZE features and RANSAC.

    The aligner holds configuration only, so a single instance can serve
    concurrent attempts from several threads.

    Example:
        >>> aligner = FeatureAligner()
        >>> result = aligner.align(image, catalog.lookup("card_blue"))
        >>> if result.is_aligned():
        ...     print(result.candidate.is_nice, result.candidate.determinant)
    """

    def __init__(
        self,
        config: Optional[AlignmentConfig] = None,
        config_path: Optional[Path] = None,
    ):
        """
        Initialize the aligner.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses default location.
        """
        if config is not None:
            self.config = config
            logger.info("Using provided alignment configuration")
        else:
            self.config = load_config(config_path) if config_path else load_config()
            logger.info("Loaded alignment configuration from file")

        self._scale_flag = interpolation_flag(self.config.processing.scale_interpolation)
        self._warp_flag = interpolation_flag(self.config.processing.warp_interpolation)

    def align(
        self,
        image: np.ndarray,
        template: Template,
        feature_config: Optional[FeatureConfig] = None,
    ) -> AlignmentResult:
        """
        Align one captured image against one template.

        Args:
            image: Captured image (BGR, BGRA or grayscale).
            template: Template to align against.
            feature_config: Feature settings the template was built with.
                Defaults to this aligner's configured feature settings.

        Returns:
            AlignmentResult; ALIGNED results carry an AlignedCandidate even
            when the homography is not nice.
        """
        feature_config = feature_config or self.config.feature

        with _scratch() as scratch:
            try:
                return self._align(image, template, feature_config, scratch)
            except cv2.error as e:
                logger.warning(
                    f"[{template.name}] OpenCV error during alignment: {e}"
                )
                return AlignmentResult(
                    decision=DecisionStatus.NOT_ALIGNED,
                    template=template,
                    failure=AlignmentFailure.DEGENERATE_HOMOGRAPHY,
                    match_count=len(scratch.get("matches", ())),
                    good_match_count=len(scratch.get("good", ())),
                )

    def align_all(self, image: np.ndarray, catalog: TemplateCatalog) -> List[AlignmentResult]:
        """Align against every template in catalog order."""
        return [
            self.align(image, template, catalog.feature_config) for template in catalog
        ]

    def _align(
        self,
        image: np.ndarray,
        template: Template,
        feature_config: FeatureConfig,
        scratch: Dict[str, Any],
    ) -> AlignmentResult:
        def not_aligned(failure: AlignmentFailure) -> AlignmentResult:
            return AlignmentResult(
                decision=DecisionStatus.NOT_ALIGNED,
                template=template,
                failure=failure,
                match_count=len(scratch.get("matches", ())),
                good_match_count=len(scratch.get("good", ())),
                inlier_count=scratch.get("inliers", 0),
            )

        # Step 1-2: grayscale and uniform rescale to template width
        color = to_bgr(image)
        scratch["color"], scale = scale_to_width(color, template.width, self._scale_flag)
        scratch["gray"] = to_grayscale(scratch["color"])

        # Step 3: features on the captured image
        keypoints, descriptors = detect_and_compute(scratch["gray"], feature_config)
        if descriptors is None:
            logger.info(f"[{template.name}] No features in captured image")
            return not_aligned(AlignmentFailure.NO_FEATURES)
        scratch["keypoints"] = keypoints

        # Step 4: one best image match for every template descriptor
        matcher = create_matcher()
        scratch["matches"] = matcher.match(template.descriptors, descriptors)

        # Step 5: distance filter
        scratch["good"] = self._filter_matches(scratch["matches"])
        logger.debug(
            f"[{template.name}] matches={len(scratch['matches'])}, "
            f"good={len(scratch['good'])}, scale={scale:.3f}"
        )
        if not scratch["good"]:
            logger.info(f"[{template.name}] No good matches")
            return not_aligned(AlignmentFailure.NO_GOOD_MATCHES)
        if len(scratch["good"]) < MIN_HOMOGRAPHY_POINTS:
            logger.info(
                f"[{template.name}] Only {len(scratch['good'])} good matches, "
                f"need {MIN_HOMOGRAPHY_POINTS} for a homography"
            )
            return not_aligned(AlignmentFailure.DEGENERATE_HOMOGRAPHY)

        # Step 6: paired points (image space -> template space)
        good = scratch["good"]
        template_pts = np.float32(
            [template.keypoints[m.queryIdx].pt for m in good]
        ).reshape(-1, 1, 2)
        image_pts = np.float32([keypoints[m.trainIdx].pt for m in good]).reshape(-1, 1, 2)

        # Step 7: RANSAC fit
        homography, mask = cv2.findHomography(
            image_pts,
            template_pts,
            cv2.RANSAC,
            self.config.homography.ransac_reproj_threshold,
        )
        if mask is not None:
            scratch["inliers"] = int(np.count_nonzero(mask))
        if not self._is_usable(homography):
            logger.info(f"[{template.name}] Degenerate homography")
            return not_aligned(AlignmentFailure.DEGENERATE_HOMOGRAPHY)

        # Step 8-9: metrics and niceness verdict
        metrics, is_nice = evaluate_homography(homography, self.config.homography)
        log = logger.info if is_nice else logger.warning
        log(
            f"[{template.name}] Homography {'nice' if is_nice else 'NOT nice'}: "
            f"det={metrics.determinant:.4f}, inliers={scratch.get('inliers', 0)}"
            f"/{len(good)}"
        )

        # Step 10: warp into template frame at exactly template size
        size = (template.width, template.height)
        warped = cv2.warpPerspective(scratch["color"], homography, size, flags=self._warp_flag)
        if warped.shape[1] != template.width or warped.shape[0] != template.height:
            warped = cv2.resize(warped, size, interpolation=self._warp_flag)

        return AlignmentResult(
            decision=DecisionStatus.ALIGNED,
            template=template,
            candidate=AlignedCandidate(
                warped_image=warped,
                is_nice=is_nice,
                determinant=metrics.determinant,
                metrics=metrics,
                homography=homography,
                template=template,
            ),
            match_count=len(scratch["matches"]),
            good_match_count=len(good),
            inlier_count=scratch.get("inliers", 0),
        )

    def _filter_matches(self, matches) -> list:
        """
        Keep matches with distance below ``good_match_factor * min_dist``.

        ``min_dist`` starts at ``max_min_distance``. With the default
        ``min_distance_floor`` of 0 a zero minimum (exact copy) rejects every
        match; a positive floor raises ``min_dist`` to at least that value.
        """
        cfg = self.config.matching
        if not matches:
            return []

        min_dist = cfg.max_min_distance
        max_dist = 0.0
        for match in matches:
            min_dist = min(min_dist, match.distance)
            max_dist = max(max_dist, match.distance)
        logger.debug(f"Match distances: min={min_dist:.1f}, max={max_dist:.1f}")

        threshold = cfg.good_match_factor * max(min_dist, cfg.min_distance_floor)
        return [match for match in matches if match.distance < threshold]

    @staticmethod
    def _is_usable(homography: Optional[np.ndarray]) -> bool:
        if homography is None or homography.shape != (3, 3):
            return False
        if not np.all(np.isfinite(homography)):
            return False
        return abs(float(np.linalg.det(homography))) > 1e-12
