"""
I/O Utilities

File input/output operations.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np


def save_json(data: Dict[str, Any], file_path: Path, indent: int = 2):
    """Save data to JSON file."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)


def read_image(source: Union[str, Path, bytes, np.ndarray]) -> Optional[np.ndarray]:
    """
    Decode an image from a path, encoded bytes or an existing array.

    Returns:
        BGR image array, or None if the source cannot be decoded.
    """
    if isinstance(source, np.ndarray):
        return source if source.size > 0 else None

    if isinstance(source, (bytes, bytearray, memoryview)):
        buffer = np.frombuffer(source, dtype=np.uint8)
        if buffer.size == 0:
            return None
        return cv2.imdecode(buffer, cv2.IMREAD_COLOR)

    path = Path(source)
    if not path.is_file():
        return None
    # imdecode handles non-ASCII paths that imread rejects on some platforms
    buffer = np.fromfile(str(path), dtype=np.uint8)
    if buffer.size == 0:
        return None
    return cv2.imdecode(buffer, cv2.IMREAD_COLOR)


def save_image(image: np.ndarray, file_path: Path) -> None:
    """Encode an image by file extension and write it, creating parent folders."""
    file_path.parent.mkdir(parents=True, exist_ok=True)
    ok, encoded = cv2.imencode(file_path.suffix or ".png", image)
    if not ok:
        raise ValueError(f"Cannot encode image for {file_path}")
    encoded.tofile(str(file_path))
