"""Selection of the final serial number among all OCR candidates."""

import logging
from typing import Iterable, Optional

from cardreader.ocr.config_loader import SelectionConfig
from cardreader.ocr.types import OCRCandidate

logger = logging.getLogger(__name__)


class ResultSelector:
    """Pick the most confident plausible reading.

    Candidates shorter than ``min_text_length`` are discarded (and, when
    ``require_nice_homography`` is set, so are candidates from not-nice
    alignments). The highest confidence wins; ties go to the earliest
    candidate, i.e. template order first, then engine order.

    Example:
        >>> selector = ResultSelector()
        >>> best = selector.select(candidates)
        >>> best.text if best else None
        '482913570164'
    """

    def __init__(self, config: Optional[SelectionConfig] = None):
        self.config = config or SelectionConfig()

    def select(self, candidates: Iterable[OCRCandidate]) -> Optional[OCRCandidate]:
        """Return the winning candidate, or None when nothing qualifies."""
        best: Optional[OCRCandidate] = None
        considered = 0

        for candidate in candidates:
            considered += 1
            if len(candidate.text) < self.config.min_text_length:
                logger.debug(
                    f"Dropping {candidate.text!r} from {candidate.engine_name}: "
                    f"shorter than {self.config.min_text_length}"
                )
                continue
            if self.config.require_nice_homography and not candidate.is_nice:
                logger.debug(
                    f"Dropping {candidate.text!r}: alignment to "
                    f"'{candidate.template_name}' is not nice"
                )
                continue
            # strict > keeps the earliest of equally confident candidates
            if best is None or candidate.confidence > best.confidence:
                best = candidate

        if best is None:
            logger.info(f"No plausible serial among {considered} candidates")
        else:
            logger.info(
                f"Selected {best.text!r} from {best.engine_name} on "
                f"'{best.template_name}' (confidence={best.confidence})"
            )
        return best
