"""OCR module: reads the serial number off aligned, cleaned regions.

Core Components:
    - types: Data structures (EngineReading, OCRCandidate)
    - config_loader: Configuration loading with Pydantic validation
    - engine: Engine interface and provisioning (Tesseract, RapidOCR)
    - text_extraction: Whitespace normalization and length reconciliation
    - result_selector: Confidence-based choice of the final reading

Example:
    >>> from cardreader.ocr import build_engines, get_default_config
    >>> engines = build_engines(get_default_config().ocr)
    >>> [engine.name for engine in engines]
    ['eng', 'fas']
"""

from .config_loader import Config, OCREngineConfig, OCRModuleConfig, get_default_config, load_config
from .engine import BaseOCREngine, build_engines
from .result_selector import ResultSelector
from .text_extraction import TextExtractionEngine, normalize_text, reconcile_length
from .types import EngineReading, OCRCandidate

__all__ = [
    "Config",
    "OCREngineConfig",
    "OCRModuleConfig",
    "get_default_config",
    "load_config",
    "BaseOCREngine",
    "build_engines",
    "ResultSelector",
    "TextExtractionEngine",
    "normalize_text",
    "reconcile_length",
    "EngineReading",
    "OCRCandidate",
]
