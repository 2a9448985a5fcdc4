"""
Common types and errors shared across all modules.
"""

from cardreader.common.errors import (
    CardReaderError,
    EngineProvisioningFailure,
    EngineTimeoutError,
    OCREngineFailure,
    PipelineAbortError,
    PipelineTimeoutError,
    TemplateLoadError,
)
from cardreader.common.types import RegionBox

__all__ = [
    "CardReaderError",
    "TemplateLoadError",
    "OCREngineFailure",
    "PipelineAbortError",
    "EngineProvisioningFailure",
    "EngineTimeoutError",
    "PipelineTimeoutError",
    "RegionBox",
]
