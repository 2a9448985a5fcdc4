"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules. The synthetic card is drawn procedurally so that
feature matching and region cropping can be exercised without image files.
"""

import time

import cv2
import numpy as np
import pytest

from cardreader.alignment.types import AlignedCandidate, HomographyMetrics
from cardreader.ocr.config_loader import OCREngineConfig
from cardreader.ocr.engine import BaseOCREngine
from cardreader.templates.catalog import TemplateCatalog
from cardreader.templates.types import Template, TemplateMetadata

CARD_WIDTH = 640
CARD_HEIGHT = 400
CARD_SERIAL = "482913570164"
CARD_REGION = {"x_left": 40, "x_right": 600, "y_top": 300, "y_bottom": 350}


def draw_card(serial: str = CARD_SERIAL, seed: int = 7) -> np.ndarray:
    """Draw a textured 640x400 card with the serial in a white band at the bottom."""
    rng = np.random.default_rng(seed)
    card = np.full((CARD_HEIGHT, CARD_WIDTH, 3), 230, dtype=np.uint8)

    for _ in range(70):
        color = tuple(int(c) for c in rng.integers(0, 200, 3))
        x = int(rng.integers(10, CARD_WIDTH - 10))
        y = int(rng.integers(60, 270))
        kind = int(rng.integers(0, 3))
        if kind == 0:
            cv2.circle(card, (x, y), int(rng.integers(6, 28)), color, -1)
        elif kind == 1:
            w, h = int(rng.integers(12, 60)), int(rng.integers(10, 40))
            cv2.rectangle(card, (x, y), (x + w, y + h), color, -1)
        else:
            x2, y2 = int(rng.integers(10, CARD_WIDTH - 10)), int(rng.integers(60, 270))
            cv2.line(card, (x, y), (x2, y2), color, 3)

    cv2.putText(card, "MEMBER CARD", (20, 40), cv2.FONT_HERSHEY_DUPLEX, 1.2, (40, 40, 120), 2)
    cv2.rectangle(card, (0, 0), (CARD_WIDTH - 1, CARD_HEIGHT - 1), (20, 20, 20), 4)

    cv2.rectangle(
        card,
        (CARD_REGION["x_left"], CARD_REGION["y_top"]),
        (CARD_REGION["x_right"], CARD_REGION["y_bottom"]),
        (255, 255, 255),
        -1,
    )
    cv2.putText(card, serial, (60, 340), cv2.FONT_HERSHEY_SIMPLEX, 1.3, (0, 0, 0), 3)
    return card


def photograph(card: np.ndarray, angle: float = 2.0, scale: float = 0.9, seed: int = 3) -> np.ndarray:
    """Place the card on a larger background with mild rotation, scale and perspective."""
    h, w = card.shape[:2]
    canvas_w, canvas_h = 760, 520

    affine = cv2.getRotationMatrix2D((w / 2, h / 2), angle, scale)
    affine[0, 2] += (canvas_w - w) / 2
    affine[1, 2] += (canvas_h - h) / 2
    forward = np.vstack([affine, [1.0e-5, 5.0e-6, 1.0]])

    background = np.full((canvas_h, canvas_w, 3), 120, dtype=np.uint8)
    photo = cv2.warpPerspective(
        card, forward, (canvas_w, canvas_h), dst=background, borderMode=cv2.BORDER_TRANSPARENT
    )

    rng = np.random.default_rng(seed)
    noise = rng.normal(0, 3, photo.shape)
    return np.clip(photo.astype(np.float64) + noise, 0, 255).astype(np.uint8)


def frame_transformed(
    card: np.ndarray,
    angle: float = 2.0,
    scale: float = 1.0,
    perspective: tuple = (1.0e-5, 5.0e-6),
    margin: float = 0.08,
    seed: int = 5,
) -> np.ndarray:
    """Transform the card and frame it tightly, so the capture size follows the scale."""
    h, w = card.shape[:2]
    affine = cv2.getRotationMatrix2D((w / 2, h / 2), angle, scale)
    forward = np.vstack([affine, [perspective[0], perspective[1], 1.0]])

    corners = np.float32([[0, 0], [w, 0], [w, h], [0, h]]).reshape(-1, 1, 2)
    projected = cv2.perspectiveTransform(corners, forward).reshape(-1, 2)
    pad = margin * scale * w
    x0, y0 = projected.min(axis=0) - pad
    x1, y1 = projected.max(axis=0) + pad
    shift = np.array([[1.0, 0.0, -x0], [0.0, 1.0, -y0], [0.0, 0.0, 1.0]])
    size = (int(np.ceil(x1 - x0)), int(np.ceil(y1 - y0)))

    background = np.full((size[1], size[0], 3), 120, dtype=np.uint8)
    capture = cv2.warpPerspective(
        card, shift @ forward, size, dst=background, borderMode=cv2.BORDER_TRANSPARENT
    )

    rng = np.random.default_rng(seed)
    noise = rng.normal(0, 3, capture.shape)
    return np.clip(capture.astype(np.float64) + noise, 0, 255).astype(np.uint8)


class ScriptedEngine(BaseOCREngine):
    """OCR engine stand-in that returns a fixed reading."""

    def __init__(self, name, text, confidence, delay=0.0, error=None):
        super().__init__(OCREngineConfig(name=name))
        self.text = text
        self.confidence = confidence
        self.delay = delay
        self.error = error
        self.calls = 0

    def bind_image(self, image):
        self._image = image
        self.calls += 1

    def recognized_text(self):
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text

    def mean_confidence(self):
        return self.confidence


@pytest.fixture
def card_image():
    """Fixture providing the synthetic reference card (BGR)."""
    return draw_card()


@pytest.fixture
def card_photo(card_image):
    """Fixture providing a mildly transformed photograph of the card."""
    return photograph(card_image)


@pytest.fixture
def card_metadata():
    """Fixture providing region metadata for the synthetic card."""
    return TemplateMetadata(name="card", accepted_lengths=[16, 12], **CARD_REGION)


@pytest.fixture
def catalog(card_image, card_metadata):
    """Fixture providing a one-template catalog built from the synthetic card."""
    return TemplateCatalog.load({"card": card_image}, [card_metadata])


@pytest.fixture
def two_template_catalog(card_image, card_metadata):
    """Fixture providing a catalog with the card and a differently drawn card."""
    other = draw_card(serial="000000000000", seed=99)
    other_metadata = TemplateMetadata(name="other", accepted_lengths=[12], **CARD_REGION)
    return TemplateCatalog.load(
        {"card": card_image, "other": other}, [card_metadata, other_metadata]
    )


@pytest.fixture
def scripted_engine():
    """Fixture providing the ScriptedEngine class."""
    return ScriptedEngine


@pytest.fixture
def make_aligned():
    """Fixture providing a factory for small AlignedCandidate objects."""

    def _make_aligned(accepted_lengths=(16, 10), is_nice=True, name="card", template_id=1):
        metadata = TemplateMetadata(
            name=name,
            x_left=0,
            x_right=10,
            y_top=0,
            y_bottom=5,
            accepted_lengths=list(accepted_lengths),
        )
        template = Template(
            template_id=template_id,
            name=name,
            image=np.zeros((20, 20, 3), dtype=np.uint8),
            gray=np.zeros((20, 20), dtype=np.uint8),
            keypoints=(),
            descriptors=np.zeros((1, 32), dtype=np.uint8),
            metadata=metadata,
        )
        return AlignedCandidate(
            warped_image=np.zeros((20, 20, 3), dtype=np.uint8),
            is_nice=is_nice,
            determinant=1.0 if is_nice else -1.0,
            metrics=HomographyMetrics(determinant=1.0, n1=1.0, n2=1.0, n3=0.0),
            homography=np.eye(3),
            template=template,
        )

    return _make_aligned


@pytest.fixture
def transform_card():
    """Fixture providing frame_transformed for scale and rotation sweeps."""
    return frame_transformed
