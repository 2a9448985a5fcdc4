"""
Exception hierarchy for the card reading pipeline.

Per-attempt failures (a bad template, a failing OCR call) are contained at
the attempt boundary. Only ``PipelineAbortError`` and its subclasses stop a
read, because no further recognition is possible.
"""


class CardReaderError(Exception):
    """Base error for the cardreader package."""


class TemplateLoadError(CardReaderError):
    """A reference template could not be decoded, described or featurized."""

    def __init__(self, template_name: str, message: str):
        self.template_name = template_name
        super().__init__(f"Template '{template_name}': {message}")


class OCREngineFailure(CardReaderError):
    """A single recognition call failed; the (candidate, engine) pair is skipped."""

    def __init__(self, engine_name: str, message: str):
        self.engine_name = engine_name
        super().__init__(f"OCR engine '{engine_name}': {message}")


class PipelineAbortError(CardReaderError):
    """Recognition cannot continue for the current image."""


class EngineProvisioningFailure(PipelineAbortError):
    """Not enough usable OCR engines could be initialized."""


class EngineTimeoutError(PipelineAbortError):
    """An OCR engine stopped responding within its time budget."""

    def __init__(self, engine_name: str, timeout_seconds: float):
        self.engine_name = engine_name
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"OCR engine '{engine_name}' did not respond within {timeout_seconds:.1f}s"
        )


class PipelineTimeoutError(PipelineAbortError):
    """Total processing time for one image exceeded the configured budget."""

    def __init__(self, timeout_seconds: float, completed: int, total: int):
        self.timeout_seconds = timeout_seconds
        self.completed = completed
        self.total = total
        super().__init__(
            f"Processing exceeded {timeout_seconds:.1f}s "
            f"({completed}/{total} template attempts finished)"
        )
