"""Text extraction: run every engine on a cleaned region and normalize output.

Normalization removes all whitespace; length reconciliation then trims the
text to a character count the template accepts.

Example:
    >>> reconcile_length("1234567890123", (16, 10))
    '1234567890'
    >>> reconcile_length("12345", (16, 10))
    '12345'
"""

import logging
import re
from typing import Iterable, List, Optional, Sequence

import numpy as np

from cardreader.alignment.types import AlignedCandidate
from cardreader.common.errors import OCREngineFailure, PipelineAbortError
from cardreader.ocr.config_loader import NormalizationConfig
from cardreader.ocr.engine import BaseOCREngine
from cardreader.ocr.types import OCRCandidate
from cardreader.utils.constants import (
    ARABIC_INDIC_DIGITS,
    ASCII_DIGITS,
    EXTENDED_ARABIC_INDIC_DIGITS,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_DIGIT_TABLE = str.maketrans(
    ARABIC_INDIC_DIGITS + EXTENDED_ARABIC_INDIC_DIGITS, ASCII_DIGITS * 2
)


def normalize_text(text: str, transliterate_digits: bool = False) -> str:
    """Remove all whitespace, optionally mapping Arabic-Indic digits to ASCII."""
    text = _WHITESPACE.sub("", text or "")
    if transliterate_digits:
        text = text.translate(_DIGIT_TABLE)
    return text


def reconcile_length(text: str, accepted_lengths: Iterable[int]) -> str:
    """Trim text to the largest accepted length that fits.

    Text whose length is already accepted is returned unchanged, as is text
    shorter than every accepted length.

    Args:
        text: Normalized text.
        accepted_lengths: Accepted character counts (any order).

    Returns:
        Text whose length is accepted, or the input when nothing fits.
    """
    lengths = sorted(set(accepted_lengths), reverse=True)
    if len(text) in lengths:
        return text
    for length in lengths:
        if length <= len(text):
            return text[:length]
    return text


class TextExtractionEngine:
    """Runs the configured engines over cleaned regions.

    Args:
        engines: Engines in the order they are tried.
        normalization: Text normalization options.
    """

    def __init__(
        self,
        engines: Sequence[BaseOCREngine],
        normalization: Optional[NormalizationConfig] = None,
    ):
        self.engines = list(engines)
        self.normalization = normalization or NormalizationConfig()

    def extract(
        self, candidate: AlignedCandidate, region_image: np.ndarray
    ) -> List[OCRCandidate]:
        """Read one region with every engine.

        A failing engine is logged and skipped; ``PipelineAbortError``
        (engine timeout) propagates.

        Args:
            candidate: The aligned candidate the region came from.
            region_image: Cleaned single-channel region.

        Returns:
            One OCRCandidate per engine that produced a reading, engine order.
        """
        accepted_lengths = candidate.template.accepted_lengths
        results: List[OCRCandidate] = []

        for engine in self.engines:
            try:
                reading = engine.recognize(region_image)
            except PipelineAbortError:
                raise
            except OCREngineFailure as e:
                logger.warning(f"[{candidate.template.name}] {e}")
                continue
            except Exception as e:
                logger.error(
                    f"[{candidate.template.name}] Engine '{engine.name}' failed: {e}",
                    exc_info=True,
                )
                continue

            normalized = normalize_text(
                reading.text, self.normalization.transliterate_digits
            )
            text = reconcile_length(normalized, accepted_lengths)

            logger.info(
                f"[{candidate.template.name}/{engine.name}] raw={reading.text!r} "
                f"-> {text!r} (confidence={reading.confidence})"
            )
            results.append(
                OCRCandidate(
                    engine_name=engine.name,
                    raw_text=reading.text,
                    text=text,
                    confidence=reading.confidence,
                    aligned=candidate,
                    region_image=region_image,
                )
            )

        return results
