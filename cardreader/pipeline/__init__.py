"""
Pipeline module: end-to-end reading of one captured image.
"""

from cardreader.pipeline.card_reader import CardReader
from cardreader.pipeline.config_loader import PipelineConfig
from cardreader.pipeline.types import AttemptDiagnostics, ReadResult, SerialNumberResult

__all__ = [
    "CardReader",
    "PipelineConfig",
    "AttemptDiagnostics",
    "ReadResult",
    "SerialNumberResult",
]
