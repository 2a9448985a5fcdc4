"""
CardReader: template alignment and serial number recognition for card photos.

Pipeline stages:
1. Template catalog (reference layouts + precomputed ORB/AKAZE features)
2. Feature alignment (descriptor matching + RANSAC homography + sanity gate)
3. Region extraction (crop and clean the serial number area)
4. Text extraction (charset-pinned OCR engines + length reconciliation)
5. Result selection (length filter + highest confidence)

Example:
    >>> from cardreader import CardReader
    >>> reader = CardReader.from_manifest("templates/manifest.yaml")
    >>> result = reader.read(image)
    >>> if result.is_found():
    ...     print(result.best.text)
"""

from cardreader.pipeline.card_reader import CardReader
from cardreader.pipeline.types import ReadResult, SerialNumberResult

__version__ = "0.3.0"

__all__ = [
    "CardReader",
    "ReadResult",
    "SerialNumberResult",
    "__version__",
]
