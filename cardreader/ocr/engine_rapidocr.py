"""RapidOCR engine wrapper.

Optional second backend (PaddleOCR models on ONNX Runtime). The model is
lazy-loaded on first use; output is filtered to the configured whitelist and
the mean score is scaled to the 0-100 confidence range.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from cardreader.common.errors import OCREngineFailure
from cardreader.ocr.config_loader import OCREngineConfig
from cardreader.ocr.engine import BaseOCREngine
from cardreader.utils.image_ops import to_bgr

logger = logging.getLogger(__name__)


class RapidOCREngine(BaseOCREngine):
    """Wrapper for RapidOCR with whitelist filtering.

    Args:
        config: OCR engine configuration.

    Attributes:
        engine: RapidOCR engine instance (lazy-loaded).
    """

    def __init__(self, config: OCREngineConfig):
        super().__init__(config)
        self._engine: Optional[object] = None  # Lazy-loaded
        self._lines: Optional[List[Tuple[str, float]]] = None

        logger.info(
            f"RapidOCR engine '{config.name}' configured: "
            f"use_gpu={config.use_gpu}, text_score={config.text_score}"
        )

    @property
    def engine(self):
        """Lazy-load RapidOCR engine on first access.

        Raises:
            OCREngineFailure: If rapidocr_onnxruntime is missing or fails to start.
        """
        if self._engine is None:
            try:
                from rapidocr_onnxruntime import RapidOCR

                self._engine = RapidOCR(
                    use_angle_cls=self.config.use_angle_cls,
                    use_gpu=self.config.use_gpu,
                    text_score=self.config.text_score,
                )
                logger.info("RapidOCR engine loaded successfully")

            except ImportError as e:
                logger.error(
                    "Failed to import rapidocr_onnxruntime. "
                    "Install with: pip install rapidocr-onnxruntime"
                )
                raise OCREngineFailure(
                    self.name, "rapidocr-onnxruntime not installed"
                ) from e

            except Exception as e:
                logger.error(f"Failed to initialize RapidOCR engine: {e}")
                raise OCREngineFailure(self.name, f"initialization failed: {e}") from e

        return self._engine

    def is_available(self) -> bool:
        """Check if RapidOCR engine can be initialized."""
        try:
            _ = self.engine  # Trigger lazy loading
            return True
        except OCREngineFailure:
            return False

    def bind_image(self, image: np.ndarray) -> None:
        self._image = to_bgr(image)
        self._lines = None

    def _run(self) -> List[Tuple[str, float]]:
        if self._lines is not None:
            return self._lines
        if self._image is None:
            raise OCREngineFailure(self.name, "no image bound")

        try:
            result, _elapse = self.engine(self._image)
        except OCREngineFailure:
            raise
        except Exception as e:
            raise OCREngineFailure(self.name, f"recognition failed: {e}") from e

        lines = []
        for _box, text, score in result or []:
            filtered = "".join(
                c for c in str(text) if not self.config.whitelist or c in self.config.whitelist
            )
            if filtered:
                lines.append((filtered, float(score)))
        self._lines = lines
        return lines

    def recognized_text(self) -> str:
        return " ".join(text for text, _ in self._run())

    def mean_confidence(self) -> int:
        lines = self._run()
        if not lines:
            return 0
        return int(round(float(np.mean([score for _, score in lines])) * 100))

    def release(self) -> None:
        super().release()
        self._lines = None
