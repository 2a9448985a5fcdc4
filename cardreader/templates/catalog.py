"""
Template catalog.

Decodes reference images, computes their feature keypoints and descriptors
once, and pairs each with its region metadata. The resulting catalog is an
immutable value: it is built once, then shared read-only by every alignment
attempt and every worker thread.

Example:
    >>> catalog = TemplateCatalog.from_manifest("templates/manifest.yaml")
    >>> template = catalog.lookup("card_blue")
    >>> template.accepted_lengths
    (16, 10)
"""

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

import cv2
import numpy as np

from cardreader.common.errors import TemplateLoadError
from cardreader.templates.features import detect_and_compute
from cardreader.templates.manifest import load_manifest, resolve_ids, resolve_images
from cardreader.templates.types import FeatureConfig, Template, TemplateMetadata
from cardreader.utils.image_ops import to_bgr, to_grayscale
from cardreader.utils.io import read_image

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str, Path, np.ndarray]


def load_template(
    template_image: ImageSource,
    metadata_by_name: Mapping[str, TemplateMetadata],
    name: str,
    template_id: int,
    feature_config: Optional[FeatureConfig] = None,
) -> Template:
    """
    Build one immutable Template from its reference image and metadata.

    Args:
        template_image: Encoded bytes, a file path, or a decoded image.
        metadata_by_name: Region metadata indexed by template name.
        name: Template name to load.
        template_id: Identifier assigned to the template.
        feature_config: Feature detector settings (defaults to ORB, 500 features).

    Returns:
        Template with keypoints and read-only descriptors.

    Raises:
        TemplateLoadError: If the image cannot be decoded, metadata is missing,
            the region lies outside the image, or no descriptors are found.
    """
    feature_config = feature_config or FeatureConfig()

    metadata = metadata_by_name.get(name)
    if metadata is None:
        raise TemplateLoadError(name, "no region metadata supplied")

    try:
        decoded = read_image(template_image)
    except cv2.error as e:
        raise TemplateLoadError(name, f"reference image could not be decoded: {e}") from e
    if decoded is None or decoded.size == 0:
        raise TemplateLoadError(name, "reference image could not be decoded")

    try:
        image = to_bgr(decoded).copy()
    except ValueError as e:
        raise TemplateLoadError(name, str(e)) from e
    gray = to_grayscale(image)
    height, width = gray.shape[:2]

    if not metadata.region.fits_within(width, height):
        raise TemplateLoadError(
            name,
            f"region {metadata.region.to_xywh()} exceeds image bounds {width}x{height}",
        )

    try:
        keypoints, descriptors = detect_and_compute(gray, feature_config)
    except cv2.error as e:
        raise TemplateLoadError(name, f"feature detection failed: {e}") from e
    if descriptors is None:
        raise TemplateLoadError(name, "no feature descriptors found in reference image")

    descriptors = np.ascontiguousarray(descriptors).copy()
    descriptors.setflags(write=False)
    image.setflags(write=False)
    gray.setflags(write=False)

    template = Template(
        template_id=template_id,
        name=name,
        image=image,
        gray=gray,
        keypoints=keypoints,
        descriptors=descriptors,
        metadata=metadata,
    )
    logger.debug(f"Loaded {template}")
    return template


class TemplateCatalog:
    """
    Ordered, read-only collection of templates.

    Iteration order is the load order, which is also the order in which
    templates are attempted during a read.

    Args:
        templates: Loaded templates in attempt order.
        feature_config: The feature settings the descriptors were computed with.
    """

    def __init__(self, templates: Iterable[Template], feature_config: FeatureConfig):
        self._templates: Tuple[Template, ...] = tuple(templates)
        self._by_name: Mapping[str, Template] = MappingProxyType(
            {template.name: template for template in self._templates}
        )
        self._feature_config = feature_config

    @classmethod
    def load(
        cls,
        images_by_name: Mapping[str, ImageSource],
        metadata: Iterable[TemplateMetadata],
        feature_config: Optional[FeatureConfig] = None,
        template_ids: Optional[Mapping[str, int]] = None,
    ) -> "TemplateCatalog":
        """
        Build a catalog from reference images and their metadata.

        Templates that fail to load are logged and skipped.

        Args:
            images_by_name: Reference images keyed by template name, in order.
            metadata: Region metadata entries (matched by name).
            feature_config: Feature detector settings.
            template_ids: Optional explicit ids; defaults to 1-based position.

        Returns:
            TemplateCatalog holding every template that loaded successfully.
        """
        feature_config = feature_config or FeatureConfig()
        metadata_by_name: Dict[str, TemplateMetadata] = {m.name: m for m in metadata}
        template_ids = template_ids or {}

        templates: List[Template] = []
        for position, (name, source) in enumerate(images_by_name.items(), start=1):
            try:
                templates.append(
                    load_template(
                        source,
                        metadata_by_name,
                        name,
                        template_ids.get(name, position),
                        feature_config,
                    )
                )
            except TemplateLoadError as e:
                logger.warning(f"Skipping template: {e}")

        logger.info(
            f"Template catalog ready: {len(templates)}/{len(images_by_name)} templates "
            f"({feature_config.detector.upper()})"
        )
        return cls(templates, feature_config)

    @classmethod
    def from_manifest(
        cls,
        manifest_path: Union[str, Path],
        feature_config: Optional[FeatureConfig] = None,
    ) -> "TemplateCatalog":
        """Build a catalog from a YAML template manifest."""
        manifest, base_dir = load_manifest(manifest_path)
        return cls.load(
            resolve_images(manifest, base_dir),
            manifest.regions,
            feature_config=feature_config,
            template_ids=resolve_ids(manifest),
        )

    def lookup(self, name: str) -> Template:
        """
        Get a template by name.

        Raises:
            KeyError: If no template with that name is in the catalog.
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown template: {name!r}") from None

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(template.name for template in self._templates)

    @property
    def feature_config(self) -> FeatureConfig:
        return self._feature_config

    def __iter__(self) -> Iterator[Template]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"TemplateCatalog({list(self.names)})"
