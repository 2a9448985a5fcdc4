"""Configuration loader with Pydantic validation for OCR module.

This module provides type-safe configuration loading from YAML files using
Pydantic models for validation and default values.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from cardreader.utils.constants import (
    LATIN_UPPERCASE_DIGITS,
    MIN_SERIAL_LENGTH,
    PERSIAN_DIGITS_WHITELIST,
)

SUPPORTED_ENGINE_TYPES = ("tesseract", "rapidocr")


class OCREngineConfig(BaseModel):
    """Configuration of one OCR engine instance.

    Attributes:
        name: Unique engine name (reported on results)
        type: Engine backend ("tesseract" or "rapidocr")
        lang: Tesseract language model (ignored by RapidOCR)
        whitelist: Characters the engine may emit
        psm: Tesseract page segmentation mode (7 = single text line)
        tessdata_dir: Optional directory holding the traineddata files
        timeout_seconds: Per-call time budget for Tesseract
        use_angle_cls: RapidOCR angle classification
        use_gpu: RapidOCR GPU acceleration
        text_score: RapidOCR minimum text score (0.0-1.0)
    """

    name: str = Field(..., min_length=1)
    type: str = "tesseract"
    lang: str = "eng"
    whitelist: str = LATIN_UPPERCASE_DIGITS
    psm: int = Field(default=7, ge=0, le=13)
    tessdata_dir: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0.0)
    use_angle_cls: bool = False
    use_gpu: bool = False
    text_score: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator("type")
    @classmethod
    def _check_type(cls, v: str) -> str:
        v = v.lower()
        if v not in SUPPORTED_ENGINE_TYPES:
            raise ValueError(
                f"Unsupported engine type '{v}'. Must be one of {list(SUPPORTED_ENGINE_TYPES)}"
            )
        return v


def _default_engines() -> List[OCREngineConfig]:
    return [
        OCREngineConfig(name="eng", lang="eng", whitelist=LATIN_UPPERCASE_DIGITS),
        OCREngineConfig(name="fas", lang="fas", whitelist=PERSIAN_DIGITS_WHITELIST),
    ]


class PreprocessingConfig(BaseModel):
    """Region cleanup configuration.

    Attributes:
        detail_enhance: Run edge-preserving detail enhancement first
        detail_sigma_s: Spatial sigma for detail enhancement (0-200)
        detail_sigma_r: Range sigma for detail enhancement (0-1)
        threshold_value: Nominal threshold (Otsu picks the actual one)
        threshold_max_value: Value assigned to foreground pixels
        upscale_factor: Uniform upscale applied after binarization
        upscale_interpolation: Interpolation method for the upscale
        median_kernel: Median blur aperture (odd)
        morph_kernel_size: Side of the square morphology kernel
        morph_close: Apply morphological close
        morph_open: Apply morphological open (after close)
    """

    detail_enhance: bool = True
    detail_sigma_s: float = Field(default=10.0, ge=0.0, le=200.0)
    detail_sigma_r: float = Field(default=0.15, ge=0.0, le=1.0)
    threshold_value: int = Field(default=128, ge=0, le=255)
    threshold_max_value: int = Field(default=255, ge=1, le=255)
    upscale_factor: float = Field(default=2.0, gt=0.0)
    upscale_interpolation: str = "linear"
    median_kernel: int = Field(default=3, ge=1)
    morph_kernel_size: int = Field(default=3, ge=1)
    morph_close: bool = True
    morph_open: bool = True

    @field_validator("median_kernel")
    @classmethod
    def _odd_kernel(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError(f"median_kernel must be odd, got {v}")
        return v


class NormalizationConfig(BaseModel):
    """Text normalization configuration.

    Attributes:
        transliterate_digits: Map Arabic-Indic and Extended Arabic-Indic
            digits to ASCII before length reconciliation
    """

    transliterate_digits: bool = False


class SelectionConfig(BaseModel):
    """Result selection policy.

    Attributes:
        min_text_length: Shortest normalized text considered a serial
        require_nice_homography: Drop candidates from not-nice alignments
    """

    min_text_length: int = Field(default=MIN_SERIAL_LENGTH, ge=1)
    require_nice_homography: bool = False


class OCRModuleConfig(BaseModel):
    """Complete OCR module configuration.

    Attributes:
        engines: Engines in the order they are tried
        min_engines: Minimum number of engines that must initialize
        preprocessing: Region cleanup configuration
        normalization: Text normalization configuration
        selection: Result selection policy
    """

    engines: List[OCREngineConfig] = Field(default_factory=_default_engines)
    min_engines: int = Field(default=1, ge=0)
    preprocessing: PreprocessingConfig = PreprocessingConfig()
    normalization: NormalizationConfig = NormalizationConfig()
    selection: SelectionConfig = SelectionConfig()

    @model_validator(mode="after")
    def _check_engines(self) -> "OCRModuleConfig":
        names = [engine.name for engine in self.engines]
        if len(names) != len(set(names)):
            raise ValueError(f"Engine names must be unique, got {names}")
        if self.min_engines > len(self.engines):
            raise ValueError(
                f"min_engines ({self.min_engines}) exceeds the number of "
                f"configured engines ({len(self.engines)})"
            )
        return self


class Config(BaseModel):
    """Root configuration container.

    Attributes:
        ocr: OCR module configuration
    """

    ocr: OCRModuleConfig = OCRModuleConfig()


def load_config(config_path: Path) -> Config:
    """Load and validate configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated Config object with all settings

    Raises:
        FileNotFoundError: If config file does not exist
        yaml.YAMLError: If YAML parsing fails
        pydantic.ValidationError: If configuration validation fails

    Example:
        >>> config = load_config(Path("cardreader/ocr/config.yaml"))
        >>> print(config.ocr.selection.min_text_length)
        10
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    # Flat YAML structure is wrapped in 'ocr' key for Config model
    return Config(ocr=OCRModuleConfig(**config_dict))


def get_default_config() -> Config:
    """Get default configuration from bundled config.yaml file.

    Returns:
        Config object loaded from cardreader/ocr/config.yaml

    Example:
        >>> config = get_default_config()
        >>> print([engine.name for engine in config.ocr.engines])
        ['eng', 'fas']
    """
    default_config_path = Path(__file__).parent / "config.yaml"
    if default_config_path.exists():
        return load_config(default_config_path)
    else:
        # Fallback to hardcoded defaults if config file is missing
        return Config()
