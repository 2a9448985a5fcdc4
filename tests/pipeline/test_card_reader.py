"""
End-to-end tests for CardReader on the synthetic card.

OCR engines are scripted so that alignment, cropping, reconciliation and
selection can be checked deterministically; one test runs real Tesseract
when the binary is installed.
"""

import json
import shutil

import numpy as np
import pytest

from cardreader.alignment.config_loader import default_config
from cardreader.alignment.feature_aligner import FeatureAligner
from cardreader.common.errors import (
    EngineProvisioningFailure,
    EngineTimeoutError,
    OCREngineFailure,
    PipelineTimeoutError,
)
from cardreader.ocr.config_loader import Config, OCRModuleConfig, SelectionConfig
from cardreader.pipeline.card_reader import CardReader
from cardreader.pipeline.config_loader import PipelineConfig
from cardreader.templates.catalog import TemplateCatalog
from cardreader.templates.types import TemplateMetadata


@pytest.fixture
def twin_catalog(card_image, card_metadata):
    """Catalog holding the same card twice under different names."""
    twin_metadata = TemplateMetadata(
        name="twin", region=card_metadata.region, accepted_lengths=[12]
    )
    return TemplateCatalog.load(
        {"card": card_image, "twin": card_image}, [card_metadata, twin_metadata]
    )


def make_reader(catalog, engines, selection=None, **pipeline):
    ocr_config = Config(ocr=OCRModuleConfig(selection=selection or SelectionConfig()))
    return CardReader(
        catalog,
        engines,
        aligner=FeatureAligner(config=default_config()),
        ocr_config=ocr_config,
        pipeline_config=PipelineConfig(**pipeline),
    )


class TestReadEndToEnd:
    """Tests for a complete read of a photographed card."""

    def test_reads_serial(self, catalog, card_photo, scripted_engine):
        """Test the normalized serial is selected from the aligned region."""
        engine = scripted_engine("eng", "4829 1357 0164", 88)
        reader = make_reader(catalog, [engine])

        result = reader.read(card_photo)

        assert result.is_found()
        best = result.best
        assert best.text == "482913570164"
        assert best.raw_text == "4829 1357 0164"
        assert best.confidence == 88
        assert best.engine_name == "eng"
        assert best.template_name == "card"
        assert best.template_id == 1
        assert best.is_nice
        assert best.aligned_image.shape[:2] == (400, 640)
        assert best.cropped_region_image.ndim == 2
        assert engine.calls == 1

    def test_long_reading_trimmed_to_accepted_length(self, catalog, card_photo, scripted_engine):
        """Test a 14 character reading is cut down to 12 characters."""
        reader = make_reader(catalog, [scripted_engine("eng", "48291357016499", 70)])

        result = reader.read(card_photo)

        assert result.best.text == "482913570164"

    def test_short_reading_not_found(self, catalog, card_photo, scripted_engine):
        """Test readings under the minimum length are never selected."""
        reader = make_reader(catalog, [scripted_engine("eng", "4829", 99)])

        result = reader.read(card_photo)

        assert not result.is_found()
        assert result.candidate_count == 1
        assert result.attempts[0].decision == "ALIGNED"

    def test_highest_confidence_engine_wins(self, catalog, card_photo, scripted_engine):
        """Test the most confident engine reading is selected."""
        engines = [
            scripted_engine("eng", "ABCDEFGHIJKL", 60),
            scripted_engine("fas", "482913570164", 91),
        ]
        reader = make_reader(catalog, engines)

        result = reader.read(card_photo)

        assert result.best.engine_name == "fas"
        assert result.candidate_count == 2

    def test_tie_goes_to_first_template(self, twin_catalog, card_photo, scripted_engine):
        """Test equal confidences resolve to the earliest template."""
        reader = make_reader(twin_catalog, [scripted_engine("eng", "482913570164", 80)])

        result = reader.read(card_photo)

        assert result.best.template_name == "card"
        assert [a.template_name for a in result.attempts] == ["card", "twin"]
        assert result.candidate_count == 2

    def test_parallel_matches_sequential(self, twin_catalog, card_photo, scripted_engine):
        """Test a thread pool gives the same selection and attempt order."""
        sequential = make_reader(
            twin_catalog, [scripted_engine("eng", "482913570164", 80)]
        ).read(card_photo)
        parallel = make_reader(
            twin_catalog, [scripted_engine("eng", "482913570164", 80)], max_workers=4
        ).read(card_photo)

        assert parallel.best.template_name == sequential.best.template_name
        assert parallel.best.text == sequential.best.text
        assert [a.template_name for a in parallel.attempts] == ["card", "twin"]

    def test_result_is_json_serializable(self, catalog, card_photo, scripted_engine):
        """Test to_dict output can be dumped as JSON."""
        reader = make_reader(
            catalog, [scripted_engine("eng", "482913570164", 75)], keep_all_candidates=True
        )

        payload = json.loads(json.dumps(reader.read(card_photo).to_dict()))

        assert payload["found"] is True
        assert payload["best"]["text"] == "482913570164"
        assert payload["attempts"][0]["failure"] == "None"
        assert payload["candidates"][0]["engine"] == "eng"

    def test_candidates_omitted_by_default(self, catalog, card_photo, scripted_engine):
        """Test candidate summaries are only kept on request."""
        reader = make_reader(catalog, [scripted_engine("eng", "482913570164", 75)])

        assert reader.read(card_photo).candidates == []

    def test_empty_image_rejected(self, catalog, scripted_engine):
        """Test an empty capture raises ValueError."""
        reader = make_reader(catalog, [scripted_engine("eng", "482913570164", 75)])

        with pytest.raises(ValueError):
            reader.read(np.zeros((0, 0, 3), dtype=np.uint8))


class TestNiceHomographyPolicy:
    """Tests for require_nice_homography."""

    class _NotNiceAligner(FeatureAligner):
        def align(self, image, template, feature_config=None):
            result = super().align(image, template, feature_config)
            if result.candidate is not None:
                result.candidate.is_nice = False
            return result

    def test_not_nice_kept_by_default(self, catalog, card_photo, scripted_engine):
        """Test not-nice alignments still produce readings by default."""
        engine = scripted_engine("eng", "482913570164", 75)
        reader = make_reader(catalog, [engine])
        reader.aligner = self._NotNiceAligner(config=default_config())

        result = reader.read(card_photo)

        assert result.is_found()
        assert result.best.is_nice is False

    def test_not_nice_skipped_when_required(self, catalog, card_photo, scripted_engine):
        """Test OCR is skipped for not-nice alignments when nice is required."""
        engine = scripted_engine("eng", "482913570164", 75)
        reader = make_reader(
            catalog, [engine], selection=SelectionConfig(require_nice_homography=True)
        )
        reader.aligner = self._NotNiceAligner(config=default_config())

        result = reader.read(card_photo)

        assert not result.is_found()
        assert engine.calls == 0
        assert result.attempts[0].is_nice is False


class TestFailures:
    """Tests for contained and aborting failures."""

    def test_failing_engine_skipped(self, catalog, card_photo, scripted_engine):
        """Test one failing engine does not prevent a reading."""
        engines = [
            scripted_engine("bad", "", 0, error=OCREngineFailure("bad", "boom")),
            scripted_engine("eng", "482913570164", 70),
        ]
        reader = make_reader(catalog, engines)

        result = reader.read(card_photo)

        assert result.best.engine_name == "eng"
        assert result.candidate_count == 1

    def test_engine_timeout_aborts(self, catalog, card_photo, scripted_engine):
        """Test an engine timeout stops the read."""
        engine = scripted_engine("eng", "", 0, error=EngineTimeoutError("eng", 10.0))
        reader = make_reader(catalog, [engine])

        with pytest.raises(EngineTimeoutError):
            reader.read(card_photo)

    def test_sequential_timeout(self, twin_catalog, card_photo, scripted_engine):
        """Test the time budget is enforced between template attempts."""
        engine = scripted_engine("eng", "482913570164", 80, delay=0.3)
        reader = make_reader(twin_catalog, [engine], timeout_seconds=0.1)

        with pytest.raises(PipelineTimeoutError) as exc_info:
            reader.read(card_photo)

        assert exc_info.value.completed == 1
        assert exc_info.value.total == 2

    def test_parallel_timeout(self, twin_catalog, card_photo, scripted_engine):
        """Test the time budget is enforced on pooled attempts."""
        engine = scripted_engine("eng", "482913570164", 80, delay=1.0)
        reader = make_reader(twin_catalog, [engine], timeout_seconds=0.2, max_workers=2)

        with pytest.raises(PipelineTimeoutError):
            reader.read(card_photo)

    def test_no_engines(self, catalog):
        """Test a reader cannot be built without engines."""
        with pytest.raises(EngineProvisioningFailure):
            make_reader(catalog, [])

    def test_too_few_engines(self, catalog, scripted_engine):
        """Test min_engines is enforced at construction."""
        ocr_config = Config(ocr=OCRModuleConfig(min_engines=2))

        with pytest.raises(EngineProvisioningFailure):
            CardReader(catalog, [scripted_engine("eng", "", 0)], ocr_config=ocr_config)

    def test_unrelated_image_not_found(self, catalog, scripted_engine):
        """Test a featureless capture yields diagnostics but no serial."""
        engine = scripted_engine("eng", "482913570164", 80)
        reader = make_reader(catalog, [engine])

        result = reader.read(np.full((300, 300, 3), 128, dtype=np.uint8))

        assert not result.is_found()
        assert result.attempts[0].decision == "NOT_ALIGNED"
        assert result.attempts[0].failure == "No Features"
        assert engine.calls == 0


@pytest.mark.skipif(shutil.which("tesseract") is None, reason="tesseract binary not installed")
class TestRealTesseract:
    """End-to-end read with the real Tesseract engine."""

    def test_reads_printed_serial(self, catalog, card_photo):
        from cardreader.ocr.config_loader import OCREngineConfig
        from cardreader.ocr.engine_tesseract import TesseractEngine

        engine = TesseractEngine(OCREngineConfig(name="eng"))
        reader = make_reader(catalog, [engine])

        result = reader.read(card_photo)

        assert result.candidate_count == 1
        assert result.attempts[0].decision == "ALIGNED"
