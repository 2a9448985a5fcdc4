"""
Data types for the template catalog.

A template is a known reference card layout: its raster, the fixed serial
number region, the character counts that serial may take, and the feature
keypoints/descriptors computed once when the catalog is built.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from cardreader.common.types import RegionBox

_REGION_KEYS = ("x_left", "x_right", "y_top", "y_bottom", "XLeft", "XRight", "YTop", "YBottom")


@dataclass(frozen=True)
class FeatureConfig:
    """Feature detector settings shared by templates and captured images."""

    detector: str = "orb"  # "orb" (fast) or "akaze" (slower, more accurate)
    max_features: int = 500  # ORB only
    scale_factor: float = 1.2  # ORB pyramid decimation ratio
    n_levels: int = 8  # ORB pyramid levels


class TemplateMetadata(BaseModel):
    """
    Externally supplied description of one template.

    Accepts either a nested ``region`` mapping or the flat metadata-feed form
    with the four coordinates next to ``name``.

    Attributes:
        name: Template name, used to pair metadata with its reference image.
        region: Serial number rectangle in template pixel coordinates.
        accepted_lengths: Character counts the serial may take, sorted
            descending with duplicates removed.
    """

    name: str = Field(..., min_length=1)
    region: RegionBox
    accepted_lengths: Tuple[int, ...] = Field(..., min_length=1)

    model_config = {"frozen": True}

    @model_validator(mode="before")
    @classmethod
    def _collect_flat_region(cls, data: Any) -> Any:
        if isinstance(data, dict) and "region" not in data:
            region = {key: data[key] for key in _REGION_KEYS if key in data}
            if region:
                data = {k: v for k, v in data.items() if k not in _REGION_KEYS}
                data["region"] = region
        return data

    @field_validator("accepted_lengths", mode="before")
    @classmethod
    def _parse_lengths(cls, v: Any) -> Any:
        # "16,10" is how the lengths were written in the original XML feed
        if isinstance(v, str):
            v = [part.strip() for part in v.split(",") if part.strip()]
        if isinstance(v, int):
            v = [v]
        return v

    @field_validator("accepted_lengths")
    @classmethod
    def _sort_lengths(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if any(length <= 0 for length in v):
            raise ValueError(f"Accepted lengths must be positive, got {list(v)}")
        return tuple(sorted(set(v), reverse=True))


@dataclass(frozen=True)
class Template:
    """
    Immutable reference layout with cached features.

    Attributes:
        template_id: Stable identifier (manifest id or catalog position).
        name: Template name.
        image: Reference raster (BGR).
        gray: Single-channel version of ``image`` used for feature detection.
        keypoints: Detected keypoints (tuple of cv2.KeyPoint).
        descriptors: Binary descriptors, one row per keypoint (read-only).
        metadata: Region and accepted-length description.
    """

    template_id: int
    name: str
    image: np.ndarray
    gray: np.ndarray
    keypoints: Tuple[Any, ...]
    descriptors: np.ndarray
    metadata: TemplateMetadata

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def region(self) -> RegionBox:
        return self.metadata.region

    @property
    def accepted_lengths(self) -> Tuple[int, ...]:
        return self.metadata.accepted_lengths

    @property
    def keypoint_count(self) -> int:
        return len(self.keypoints)

    def __repr__(self) -> str:
        return (
            f"Template(id={self.template_id}, name={self.name!r}, "
            f"size={self.width}x{self.height}, keypoints={self.keypoint_count})"
        )


class TemplateEntry(BaseModel):
    """One ``templates:`` entry of the manifest."""

    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)
    id: Optional[int] = None


class TemplateManifest(BaseModel):
    """
    Declarative list of templates and their region metadata.

    Template order is significant: it is the order templates are attempted
    and the tie-break order for equally confident results.
    """

    templates: List[TemplateEntry] = Field(default_factory=list)
    regions: List[TemplateMetadata] = Field(default_factory=list)

    @field_validator("templates")
    @classmethod
    def _unique_names(cls, v: List[TemplateEntry]) -> List[TemplateEntry]:
        names = [entry.name for entry in v]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate template names in manifest: {duplicates}")
        return v
