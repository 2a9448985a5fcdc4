"""
Common type definitions for the card reading pipeline.

Provides a Pydantic-based rectangle type for the fixed serial number region
of a template. Coordinates are expressed in the template's pixel frame.
"""

from typing import Tuple, Union

import numpy as np
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator


class RegionBox(BaseModel):
    """
    Axis-aligned serial number region [x_left, x_right) x [y_top, y_bottom).

    Field names follow the template metadata feed. The legacy camel-case
    spelling (``XLeft``, ``XRight``, ``YTop``, ``YBottom``) is accepted on input.

    Example:
        >>> box = RegionBox(x_left=40, x_right=600, y_top=300, y_bottom=350)
        >>> box.to_xywh()
        (40, 300, 560, 50)
    """

    x_left: int = Field(..., validation_alias=AliasChoices("x_left", "XLeft"))
    x_right: int = Field(..., validation_alias=AliasChoices("x_right", "XRight"))
    y_top: int = Field(..., validation_alias=AliasChoices("y_top", "YTop"))
    y_bottom: int = Field(..., validation_alias=AliasChoices("y_bottom", "YBottom"))

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("x_left", "x_right", "y_top", "y_bottom", mode="before")
    @classmethod
    def _convert_to_int(cls, v: Union[int, float, str]) -> int:
        """Convert a coordinate to int, rounding floats."""
        if isinstance(v, bool):
            raise ValueError("Coordinate must be numeric, got bool")
        if isinstance(v, (int, float)):
            return int(round(v))
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            return int(v.strip())
        raise ValueError(f"Coordinate must be numeric, got {v!r}")

    @model_validator(mode="after")
    def _validate_box(self) -> "RegionBox":
        if self.x_left < 0 or self.y_top < 0:
            raise ValueError(
                f"Region coordinates must be non-negative, "
                f"got x_left={self.x_left}, y_top={self.y_top}"
            )
        if self.x_left >= self.x_right:
            raise ValueError(
                f"Invalid region: x_left ({self.x_left}) must be < x_right ({self.x_right})"
            )
        if self.y_top >= self.y_bottom:
            raise ValueError(
                f"Invalid region: y_top ({self.y_top}) must be < y_bottom ({self.y_bottom})"
            )
        return self

    @property
    def width(self) -> int:
        """Region width (x_right - x_left)."""
        return self.x_right - self.x_left

    @property
    def height(self) -> int:
        """Region height (y_bottom - y_top)."""
        return self.y_bottom - self.y_top

    def to_xywh(self) -> Tuple[int, int, int, int]:
        """Return the region as an OpenCV-style (x, y, w, h) rectangle."""
        return (self.x_left, self.y_top, self.width, self.height)

    def fits_within(self, image_width: int, image_height: int) -> bool:
        """Check that the region lies entirely inside an image of the given size."""
        return self.x_right <= image_width and self.y_bottom <= image_height

    def crop(self, image: np.ndarray) -> np.ndarray:
        """
        Cut the region out of an image.

        Returns a copy so later in-place filtering never touches the source.

        Raises:
            ValueError: If the region does not fit inside the image.
        """
        height, width = image.shape[:2]
        if not self.fits_within(width, height):
            raise ValueError(
                f"Region {self.to_xywh()} exceeds image bounds {width}x{height}"
            )
        return image[self.y_top : self.y_bottom, self.x_left : self.x_right].copy()

    def __repr__(self) -> str:
        return (
            f"RegionBox(x_left={self.x_left}, x_right={self.x_right}, "
            f"y_top={self.y_top}, y_bottom={self.y_bottom})"
        )
