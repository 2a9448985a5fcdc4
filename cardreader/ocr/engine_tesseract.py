"""Tesseract OCR engine wrapper for serial number recognition.

Each instance pins one language model and one character whitelist, and
reads the region as a single text line.

Example:
    >>> from cardreader.ocr.config_loader import OCREngineConfig
    >>> engine = TesseractEngine(OCREngineConfig(name="eng", lang="eng"))
    >>> reading = engine.recognize(region_image)
    >>> print(reading.text, reading.confidence)
    '482913570164' 87
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pytesseract

from cardreader.common.errors import EngineTimeoutError, OCREngineFailure
from cardreader.ocr.config_loader import OCREngineConfig
from cardreader.ocr.engine import BaseOCREngine
from cardreader.utils.image_ops import to_grayscale

logger = logging.getLogger(__name__)


class TesseractEngine(BaseOCREngine):
    """Charset-pinned Tesseract engine.

    Args:
        config: OCR engine configuration.

    Raises:
        OCREngineFailure: If Tesseract is missing or the language model is
            not installed.
    """

    def __init__(self, config: OCREngineConfig):
        super().__init__(config)
        self._tesseract_config = self._build_tesseract_config(config)
        self._data: Optional[Dict[str, List[Any]]] = None

        try:
            version = pytesseract.get_tesseract_version()
            languages = pytesseract.get_languages(config=self._tessdata_option())
        except (pytesseract.TesseractNotFoundError, OSError, RuntimeError) as e:
            raise OCREngineFailure(
                config.name,
                f"Tesseract not available ({e}). "
                "Linux: sudo apt-get install tesseract-ocr; MacOS: brew install tesseract",
            ) from e

        if config.lang not in languages:
            raise OCREngineFailure(
                config.name,
                f"language model '{config.lang}' not installed (available: {languages})",
            )

        logger.info(
            f"Tesseract engine '{config.name}' initialized: version {version}, "
            f"lang={config.lang}, psm={config.psm}"
        )

    def _tessdata_option(self) -> str:
        if self.config.tessdata_dir:
            return f'--tessdata-dir "{self.config.tessdata_dir}"'
        return ""

    @staticmethod
    def _build_tesseract_config(config: OCREngineConfig) -> str:
        options = [f"--psm {config.psm}"]
        if config.tessdata_dir:
            options.append(f'--tessdata-dir "{config.tessdata_dir}"')
        if config.whitelist:
            options.append(f"-c tessedit_char_whitelist={config.whitelist}")
        return " ".join(options)

    def bind_image(self, image: np.ndarray) -> None:
        self._image = to_grayscale(image)
        self._data = None

    def _run(self) -> Dict[str, List[Any]]:
        """Run Tesseract once on the bound image and cache the word data."""
        if self._data is not None:
            return self._data
        if self._image is None:
            raise OCREngineFailure(self.name, "no image bound")

        try:
            self._data = pytesseract.image_to_data(
                self._image,
                lang=self.config.lang,
                config=self._tesseract_config,
                output_type=pytesseract.Output.DICT,
                timeout=self.config.timeout_seconds,
            )
        except RuntimeError as e:
            # pytesseract signals a killed process with RuntimeError
            if "timeout" in str(e).lower():
                raise EngineTimeoutError(self.name, self.config.timeout_seconds) from e
            raise OCREngineFailure(self.name, str(e)) from e
        except pytesseract.TesseractError as e:
            raise OCREngineFailure(self.name, str(e)) from e
        return self._data

    def _words(self) -> List[tuple]:
        data = self._run()
        words = []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            text = str(text).strip()
            conf = float(conf)
            # conf -1 marks layout rows without a recognized word
            if text and conf >= 0:
                words.append((text, conf))
        return words

    def recognized_text(self) -> str:
        return " ".join(text for text, _ in self._words())

    def mean_confidence(self) -> int:
        words = self._words()
        if not words:
            return 0
        return int(round(float(np.mean([conf for _, conf in words]))))

    def release(self) -> None:
        super().release()
        self._data = None
