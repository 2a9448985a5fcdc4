"""OCR engine interface and provisioning.

Every engine follows the same three-step protocol: bind an image, read the
recognized text, read the mean confidence. ``recognize`` performs the three
steps under a per-instance lock, so one engine instance serves one caller at
a time while different engines run in parallel.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from cardreader.common.errors import (
    EngineProvisioningFailure,
    EngineTimeoutError,
    OCREngineFailure,
)
from cardreader.ocr.config_loader import OCREngineConfig, OCRModuleConfig
from cardreader.ocr.types import EngineReading
from cardreader.utils.constants import MAX_CONFIDENCE, MIN_CONFIDENCE

logger = logging.getLogger(__name__)


def clamp_confidence(value: float) -> int:
    """Round a confidence to an int in [0, 100]."""
    return int(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, round(value))))


class BaseOCREngine(ABC):
    """Base interface for single-line OCR engines.

    Args:
        config: Engine configuration.

    Attributes:
        config: Engine configuration instance.
        name: Engine name reported on candidates.
    """

    def __init__(self, config: OCREngineConfig):
        self.config = config
        self.name = config.name
        self._lock = threading.Lock()
        self._image: Optional[np.ndarray] = None

    @abstractmethod
    def bind_image(self, image: np.ndarray) -> None:
        """Set the image that the next text/confidence calls refer to."""

    @abstractmethod
    def recognized_text(self) -> str:
        """Return the text recognized in the bound image."""

    @abstractmethod
    def mean_confidence(self) -> int:
        """Return the mean confidence (0-100) of the last recognition."""

    def is_available(self) -> bool:
        """Return whether the backend can serve requests."""
        return True

    def release(self) -> None:
        """Drop references to the bound image and cached output."""
        self._image = None

    def recognize(self, image: np.ndarray) -> EngineReading:
        """Run bind/text/confidence as one exclusive operation.

        Raises:
            OCREngineFailure: If the image is empty or the engine fails.
            EngineTimeoutError: If the engine exceeds its time budget, or
                stays busy with another caller for longer than that budget.
        """
        if image is None or image.size == 0:
            raise OCREngineFailure(self.name, "empty image")

        if not self._lock.acquire(timeout=self.config.timeout_seconds):
            raise EngineTimeoutError(self.name, self.config.timeout_seconds)
        try:
            self.bind_image(image)
            text = self.recognized_text()
            confidence = clamp_confidence(self.mean_confidence())
        finally:
            self.release()
            self._lock.release()

        logger.debug(f"[{self.name}] text={text!r}, confidence={confidence}")
        return EngineReading(text=text, confidence=confidence)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def create_engine(config: OCREngineConfig) -> BaseOCREngine:
    """Instantiate the engine backend named by ``config.type``."""
    if config.type == "tesseract":
        from cardreader.ocr.engine_tesseract import TesseractEngine

        return TesseractEngine(config)
    if config.type == "rapidocr":
        from cardreader.ocr.engine_rapidocr import RapidOCREngine

        return RapidOCREngine(config)
    raise ValueError(f"Unsupported engine type: {config.type}")


def build_engines(config: OCRModuleConfig) -> List[BaseOCREngine]:
    """Provision every configured engine, skipping those that fail.

    Args:
        config: OCR module configuration.

    Returns:
        Usable engines in configuration order.

    Raises:
        EngineProvisioningFailure: If fewer than ``config.min_engines``
            engines could be initialized.
    """
    engines: List[BaseOCREngine] = []
    for engine_config in config.engines:
        try:
            engine = create_engine(engine_config)
        except (OCREngineFailure, ImportError, RuntimeError) as e:
            logger.warning(f"Engine '{engine_config.name}' unavailable: {e}")
            continue
        if not engine.is_available():
            logger.warning(f"Engine '{engine_config.name}' unavailable: backend failed to load")
            continue
        engines.append(engine)

    logger.info(
        f"Provisioned {len(engines)}/{len(config.engines)} OCR engines: "
        f"{[engine.name for engine in engines]}"
    )

    if len(engines) < config.min_engines:
        raise EngineProvisioningFailure(
            f"Only {len(engines)} OCR engines available, "
            f"at least {config.min_engines} required"
        )
    return engines
