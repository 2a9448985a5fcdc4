"""
Region module: crops and cleans the serial number region for OCR.
"""

from cardreader.region.extractor import RegionExtractor

__all__ = ["RegionExtractor"]
