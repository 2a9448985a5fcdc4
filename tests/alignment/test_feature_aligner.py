"""
Unit tests for FeatureAligner on synthetic card images.
"""

from unittest.mock import patch

import cv2
import numpy as np
import pytest

from cardreader.alignment.config_loader import default_config
from cardreader.alignment.feature_aligner import FeatureAligner
from cardreader.alignment.types import AlignmentFailure, DecisionStatus


@pytest.fixture
def aligner():
    """Provide an aligner with built-in default configuration."""
    return FeatureAligner(config=default_config())


@pytest.fixture
def floored_aligner():
    """Provide an aligner with the optional min_dist floor enabled."""
    config = default_config()
    config.matching.min_distance_floor = 10.0
    return FeatureAligner(config=config)


class TestAlignSuccess:
    """Tests for successful alignments."""

    def test_mild_transform_recovers_nice_homography(self, aligner, catalog, card_photo):
        """Test recovery under rotation, scale and slight perspective."""
        template = catalog.lookup("card")

        result = aligner.align(card_photo, template, catalog.feature_config)

        assert result.is_aligned()
        candidate = result.candidate
        assert candidate.is_nice
        assert candidate.determinant > 0
        assert candidate.template is template
        assert candidate.warped_image.shape[:2] == (template.height, template.width)
        assert result.good_match_count >= 4
        assert result.inlier_count >= 4

    @pytest.mark.parametrize(
        "angle, scale",
        [(0.0, 0.5), (3.0, 0.75), (-2.0, 1.0), (1.5, 2.0), (-3.0, 4.0)],
    )
    def test_scale_range_is_nice(self, aligner, catalog, transform_card, card_image, angle, scale):
        """Test captures from half to four times template size align as nice."""
        template = catalog.lookup("card")
        capture = transform_card(card_image, angle=angle, scale=scale)

        result = aligner.align(capture, template)

        assert result.is_aligned()
        assert result.candidate.is_nice
        assert result.candidate.determinant > 0

    def test_warped_region_matches_template(self, aligner, catalog, card_photo):
        """Test that the serial band lands on the template region after warping."""
        template = catalog.lookup("card")

        result = aligner.align(card_photo, template)
        region = template.region.crop(cv2.cvtColor(result.candidate.warped_image, cv2.COLOR_BGR2GRAY))

        # the band is white with black text; most pixels stay bright
        assert np.mean(region > 200) > 0.6

    def test_grayscale_and_bgra_inputs(self, aligner, catalog, card_photo):
        """Test that grayscale and BGRA captures are accepted."""
        template = catalog.lookup("card")
        gray = cv2.cvtColor(card_photo, cv2.COLOR_BGR2GRAY)
        bgra = cv2.cvtColor(card_photo, cv2.COLOR_BGR2BGRA)

        assert aligner.align(gray, template).is_aligned()
        assert aligner.align(bgra, template).is_aligned()

    def test_align_all_in_catalog_order(self, aligner, two_template_catalog, card_photo):
        """Test align_all returns one result per template in order."""
        results = aligner.align_all(card_photo, two_template_catalog)

        assert [r.template.name for r in results] == ["card", "other"]
        assert results[0].is_aligned()

    def test_exact_copy_with_floor(self, floored_aligner, catalog, card_image):
        """Test a positive floor lets an exact copy align near the identity."""
        result = floored_aligner.align(card_image.copy(), catalog.lookup("card"))

        assert result.is_aligned()
        assert result.candidate.is_nice
        assert np.allclose(result.candidate.homography, np.eye(3), atol=0.05)


class TestAlignFailure:
    """Tests for NOT_ALIGNED outcomes."""

    def test_blank_image_has_no_features(self, aligner, catalog):
        """Test that a featureless capture yields NO_FEATURES."""
        blank = np.full((300, 500, 3), 200, dtype=np.uint8)

        result = aligner.align(blank, catalog.lookup("card"))

        assert result.decision == DecisionStatus.NOT_ALIGNED
        assert result.failure == AlignmentFailure.NO_FEATURES
        assert result.candidate is None

    def test_exact_copy_has_no_good_matches(self, aligner, catalog, card_image):
        """Test that a zero minimum distance leaves no match below 3x min_dist."""
        result = aligner.align(card_image.copy(), catalog.lookup("card"))

        assert result.failure == AlignmentFailure.NO_GOOD_MATCHES
        assert result.match_count > 0
        assert result.good_match_count == 0

    def test_zero_factor_has_no_good_matches(self, catalog, card_photo):
        """Test that a zero good_match_factor rejects every match."""
        config = default_config()
        config.matching.good_match_factor = 0.0
        strict = FeatureAligner(config=config)

        result = strict.align(card_photo, catalog.lookup("card"))

        assert result.failure == AlignmentFailure.NO_GOOD_MATCHES
        assert result.good_match_count == 0

    def test_homography_not_found(self, aligner, catalog, card_photo):
        """Test that a failed RANSAC fit yields DEGENERATE_HOMOGRAPHY."""
        with patch(
            "cardreader.alignment.feature_aligner.cv2.findHomography",
            return_value=(None, None),
        ):
            result = aligner.align(card_photo, catalog.lookup("card"))

        assert result.failure == AlignmentFailure.DEGENERATE_HOMOGRAPHY

    def test_singular_homography(self, aligner, catalog, card_photo):
        """Test that a singular matrix yields DEGENERATE_HOMOGRAPHY."""
        singular = np.zeros((3, 3))
        with patch(
            "cardreader.alignment.feature_aligner.cv2.findHomography",
            return_value=(singular, np.ones((10, 1), dtype=np.uint8)),
        ):
            result = aligner.align(card_photo, catalog.lookup("card"))

        assert result.failure == AlignmentFailure.DEGENERATE_HOMOGRAPHY
        assert result.inlier_count == 10

    def test_opencv_error_is_contained(self, aligner, catalog, card_photo):
        """Test that an OpenCV error becomes a NOT_ALIGNED result."""
        with patch(
            "cardreader.alignment.feature_aligner.cv2.findHomography",
            side_effect=cv2.error("boom"),
        ):
            result = aligner.align(card_photo, catalog.lookup("card"))

        assert not result.is_aligned()
        assert result.failure == AlignmentFailure.DEGENERATE_HOMOGRAPHY
        assert "homography" in result.get_error_message()

    def test_not_nice_fit_still_emits_candidate(self, aligner, catalog, card_photo):
        """Test that a not-nice homography still produces an aligned candidate."""
        mirrored = np.diag([-1.0, 1.0, 1.0])
        mirrored[0, 2] = 639.0
        with patch(
            "cardreader.alignment.feature_aligner.cv2.findHomography",
            return_value=(mirrored, np.ones((10, 1), dtype=np.uint8)),
        ):
            result = aligner.align(card_photo, catalog.lookup("card"))

        assert result.is_aligned()
        assert not result.candidate.is_nice
        assert result.candidate.determinant < 0


class TestMatchFilter:
    """Tests for the good-match distance filter."""

    class _Match:
        def __init__(self, distance):
            self.distance = distance

    def test_threshold_is_factor_times_min_distance(self, aligner):
        """Test matches below 3x the minimum distance are kept."""
        matches = [self._Match(d) for d in (5.0, 12.0, 20.0, 40.0)]

        good = aligner._filter_matches(matches)

        assert [m.distance for m in good] == [5.0, 12.0]

    def test_zero_minimum_keeps_nothing(self, aligner):
        """Test a zero minimum distance gives an empty good set."""
        matches = [self._Match(d) for d in (0.0, 0.0, 8.0, 29.0)]

        assert aligner._filter_matches(matches) == []

    def test_optional_floor(self, floored_aligner):
        """Test a configured floor raises min_dist before scaling."""
        matches = [self._Match(d) for d in (0.0, 0.0, 8.0, 29.0, 31.0)]

        good = floored_aligner._filter_matches(matches)

        assert [m.distance for m in good] == [0.0, 0.0, 8.0, 29.0]

    def test_floor_below_min_distance_has_no_effect(self, floored_aligner):
        """Test the floor does not change the threshold once min_dist exceeds it."""
        matches = [self._Match(d) for d in (12.0, 30.0, 35.0, 36.0, 50.0)]

        good = floored_aligner._filter_matches(matches)

        assert [m.distance for m in good] == [12.0, 30.0, 35.0]

    def test_min_distance_ceiling(self, aligner):
        """Test min_dist never starts above the configured ceiling."""
        matches = [self._Match(d) for d in (150.0, 200.0, 310.0)]

        good = aligner._filter_matches(matches)

        assert [m.distance for m in good] == [150.0, 200.0]

    def test_empty(self, aligner):
        """Test an empty match list."""
        assert aligner._filter_matches([]) == []
