"""
End-to-end card reader.

Orchestrates the complete pipeline for one captured image:
1. Align the image against every template in catalog order
2. Crop and clean the serial number region of each aligned candidate
3. Read every region with every OCR engine
4. Select the most confident plausible reading

Per-template failures are contained: an unaligned template or a failing
engine only removes candidates. A ``PipelineAbortError`` (engine timeout,
total timeout) stops the read.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from cardreader.alignment.config_loader import load_config as load_alignment_config
from cardreader.alignment.feature_aligner import FeatureAligner
from cardreader.alignment.types import AlignmentConfig, AlignmentResult
from cardreader.common.errors import EngineProvisioningFailure, PipelineTimeoutError
from cardreader.ocr.config_loader import Config, get_default_config, load_config
from cardreader.ocr.engine import BaseOCREngine, build_engines
from cardreader.ocr.result_selector import ResultSelector
from cardreader.ocr.text_extraction import TextExtractionEngine
from cardreader.ocr.types import OCRCandidate
from cardreader.pipeline.config_loader import PipelineConfig
from cardreader.pipeline.config_loader import get_default_config as get_default_pipeline_config
from cardreader.pipeline.config_loader import load_config as load_pipeline_config
from cardreader.pipeline.types import AttemptDiagnostics, ReadResult, SerialNumberResult
from cardreader.region.extractor import RegionExtractor
from cardreader.templates.catalog import TemplateCatalog
from cardreader.templates.types import Template

logger = logging.getLogger(__name__)

_Attempt = Tuple[AttemptDiagnostics, List[OCRCandidate]]


class CardReader:
    """
    Reads the serial number off a photographed card.

    Args:
        catalog: Loaded template catalog.
        engines: Provisioned OCR engines, in the order they are tried.
        aligner: Feature aligner (defaults to the bundled alignment config).
        ocr_config: OCR module configuration (defaults to the bundled config).
        pipeline_config: Concurrency and timeout settings.

    Raises:
        EngineProvisioningFailure: If fewer engines than ``min_engines`` are given.

    Example:
        >>> reader = CardReader.from_manifest("templates/manifest.yaml")
        >>> result = reader.read(cv2.imread("photo.jpg"))
        >>> print(result.best.text if result.is_found() else "not found")
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        engines: Sequence[BaseOCREngine],
        aligner: Optional[FeatureAligner] = None,
        ocr_config: Optional[Config] = None,
        pipeline_config: Optional[PipelineConfig] = None,
    ):
        self.catalog = catalog
        self.ocr_config = ocr_config or get_default_config()
        self.pipeline_config = pipeline_config or get_default_pipeline_config()
        self.aligner = aligner or FeatureAligner()

        ocr = self.ocr_config.ocr
        if len(engines) < max(1, ocr.min_engines):
            raise EngineProvisioningFailure(
                f"{len(engines)} OCR engines given, at least {max(1, ocr.min_engines)} required"
            )

        self.region_extractor = RegionExtractor(ocr.preprocessing)
        self.text_extractor = TextExtractionEngine(engines, ocr.normalization)
        self.selector = ResultSelector(ocr.selection)

        logger.info(
            f"CardReader ready: {len(catalog)} templates, "
            f"engines={[engine.name for engine in engines]}, "
            f"workers={self.pipeline_config.max_workers}"
        )

    @classmethod
    def from_manifest(
        cls,
        manifest_path: Union[str, Path],
        ocr_config_path: Optional[Path] = None,
        alignment_config_path: Optional[Path] = None,
        pipeline_config_path: Optional[Path] = None,
        alignment_config: Optional[AlignmentConfig] = None,
        ocr_config: Optional[Config] = None,
        pipeline_config: Optional[PipelineConfig] = None,
    ) -> "CardReader":
        """
        Build a reader from a template manifest and optional config files.

        Already loaded configuration objects take precedence over paths.

        Raises:
            FileNotFoundError: If the manifest or a given config file is missing.
            EngineProvisioningFailure: If not enough OCR engines initialize.
        """
        if alignment_config is None:
            alignment_config = (
                load_alignment_config(alignment_config_path)
                if alignment_config_path
                else load_alignment_config()
            )
        if ocr_config is None:
            ocr_config = (
                load_config(ocr_config_path) if ocr_config_path else get_default_config()
            )
        if pipeline_config is None:
            pipeline_config = (
                load_pipeline_config(pipeline_config_path)
                if pipeline_config_path
                else get_default_pipeline_config()
            )

        catalog = TemplateCatalog.from_manifest(manifest_path, alignment_config.feature)
        engines = build_engines(ocr_config.ocr)

        return cls(
            catalog,
            engines,
            aligner=FeatureAligner(config=alignment_config),
            ocr_config=ocr_config,
            pipeline_config=pipeline_config,
        )

    def read(self, image: np.ndarray) -> ReadResult:
        """
        Read the serial number from one captured image.

        Args:
            image: Upright captured image (BGR, BGRA or grayscale).

        Returns:
            ReadResult with the best reading (or None) and per-template diagnostics.

        Raises:
            ValueError: If the image is empty.
            PipelineAbortError: On an engine timeout or when the total time
                budget is exceeded.

        Note:
            Worker threads are not interrupted when the time budget runs out.
            Abandoned attempts may still hold an engine while they finish, so
            a following ``read`` waits at most the engine's ``timeout_seconds``
            for that engine and then raises ``EngineTimeoutError``.
        """
        if image is None or image.size == 0:
            raise ValueError("Captured image is empty")

        start_time = time.perf_counter()
        templates = list(self.catalog)
        logger.info(f"Reading {image.shape[1]}x{image.shape[0]} image against {len(templates)} templates")

        if self.pipeline_config.max_workers > 1 and len(templates) > 1:
            attempts = self._run_parallel(image, templates, start_time)
        else:
            attempts = self._run_sequential(image, templates, start_time)

        diagnostics = [diagnostic for diagnostic, _ in attempts]
        candidates = [candidate for _, found in attempts for candidate in found]
        best = self.selector.select(candidates)

        result = ReadResult(
            best=self._to_serial_result(best) if best else None,
            attempts=diagnostics,
            candidate_count=len(candidates),
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )
        if self.pipeline_config.keep_all_candidates:
            result.candidates = [
                {
                    "template_name": c.template_name,
                    "engine": c.engine_name,
                    "raw_text": c.raw_text,
                    "text": c.text,
                    "confidence": c.confidence,
                    "is_nice": c.is_nice,
                }
                for c in candidates
            ]

        logger.info(
            f"Read finished in {result.processing_time_ms:.0f}ms: "
            f"{result.best.text if result.best else 'no serial found'}"
        )
        return result

    def _remaining(self, start_time: float) -> Optional[float]:
        timeout = self.pipeline_config.timeout_seconds
        if timeout is None:
            return None
        return timeout - (time.perf_counter() - start_time)

    def _run_sequential(
        self, image: np.ndarray, templates: List[Template], start_time: float
    ) -> List[_Attempt]:
        attempts: List[_Attempt] = []
        for template in templates:
            remaining = self._remaining(start_time)
            if remaining is not None and remaining <= 0:
                raise PipelineTimeoutError(
                    self.pipeline_config.timeout_seconds, len(attempts), len(templates)
                )
            attempts.append(self._attempt(image, template))
        return attempts

    def _run_parallel(
        self, image: np.ndarray, templates: List[Template], start_time: float
    ) -> List[_Attempt]:
        executor = ThreadPoolExecutor(
            max_workers=self.pipeline_config.max_workers,
            thread_name_prefix="cardreader",
        )
        try:
            futures = [executor.submit(self._attempt, image, template) for template in templates]
            attempts: List[_Attempt] = []
            # collected in submission order so ties resolve as in sequential mode
            for future in futures:
                remaining = self._remaining(start_time)
                try:
                    attempts.append(
                        future.result(timeout=None if remaining is None else max(0.0, remaining))
                    )
                except FutureTimeoutError:
                    raise PipelineTimeoutError(
                        self.pipeline_config.timeout_seconds, len(attempts), len(templates)
                    ) from None
            return attempts
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _attempt(self, image: np.ndarray, template: Template) -> _Attempt:
        """Align, crop and read one template; returns diagnostics and candidates."""
        attempt_start = time.perf_counter()
        alignment = self.aligner.align(image, template, self.catalog.feature_config)
        candidates: List[OCRCandidate] = []

        if alignment.is_aligned():
            aligned = alignment.candidate
            if self.ocr_config.ocr.selection.require_nice_homography and not aligned.is_nice:
                logger.info(f"[{template.name}] Skipping OCR: alignment is not nice")
            else:
                try:
                    region_image = self.region_extractor.crop(aligned)
                except ValueError as e:
                    logger.warning(f"[{template.name}] Region crop failed: {e}")
                else:
                    candidates = self.text_extractor.extract(aligned, region_image)
        else:
            logger.info(f"[{template.name}] {alignment.get_error_message()}")

        return (
            self._diagnostics(alignment, len(candidates), attempt_start),
            candidates,
        )

    @staticmethod
    def _diagnostics(
        alignment: AlignmentResult, candidate_count: int, attempt_start: float
    ) -> AttemptDiagnostics:
        aligned = alignment.candidate
        return AttemptDiagnostics(
            template_id=alignment.template.template_id,
            template_name=alignment.template.name,
            decision=alignment.decision.value,
            failure=alignment.failure.value,
            is_nice=aligned.is_nice if aligned else None,
            determinant=aligned.determinant if aligned else None,
            match_count=alignment.match_count,
            good_match_count=alignment.good_match_count,
            inlier_count=alignment.inlier_count,
            candidate_count=candidate_count,
            elapsed_ms=(time.perf_counter() - attempt_start) * 1000,
        )

    @staticmethod
    def _to_serial_result(best: OCRCandidate) -> SerialNumberResult:
        return SerialNumberResult(
            engine_name=best.engine_name,
            text=best.text,
            raw_text=best.raw_text,
            confidence=best.confidence,
            aligned_image=best.aligned.warped_image,
            cropped_region_image=best.region_image,
            template_id=best.template_id,
            template_name=best.template_name,
            is_nice=best.is_nice,
            determinant=best.aligned.determinant,
        )
