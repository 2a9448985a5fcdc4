"""Configuration loader with Pydantic validation for the pipeline."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class PipelineConfig(BaseModel):
    """End-to-end pipeline configuration.

    Attributes:
        max_workers: Thread pool size for template attempts (1 = sequential)
        timeout_seconds: Total time budget for one image (None = unbounded)
        keep_all_candidates: Report text summaries of every OCR candidate
    """

    max_workers: int = Field(default=1, ge=1, le=64)
    timeout_seconds: Optional[float] = Field(default=60.0, gt=0.0)
    keep_all_candidates: bool = False


def load_config(config_path: Path) -> PipelineConfig:
    """Load and validate pipeline configuration from YAML file.

    Raises:
        FileNotFoundError: If config file does not exist
        pydantic.ValidationError: If configuration validation fails
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    return PipelineConfig(**config_dict)


def get_default_config() -> PipelineConfig:
    """Get default configuration from bundled config.yaml file."""
    default_config_path = Path(__file__).parent / "config.yaml"
    if default_config_path.exists():
        return load_config(default_config_path)
    return PipelineConfig()
