"""
Template manifest loading.

A manifest is a YAML file that lists the reference images (in attempt order)
and the region metadata for each of them. Image paths are resolved relative
to the manifest's directory.

Example:
    >>> manifest, base_dir = load_manifest(Path("templates/manifest.yaml"))
    >>> [entry.name for entry in manifest.templates]
    ['card_blue', 'card_green']
"""

import logging
from pathlib import Path
from typing import Dict, Tuple, Union

import yaml

from cardreader.templates.types import TemplateManifest

logger = logging.getLogger(__name__)


def load_manifest(manifest_path: Union[str, Path]) -> Tuple[TemplateManifest, Path]:
    """
    Load and validate a template manifest.

    Args:
        manifest_path: Path to the manifest YAML file.

    Returns:
        Tuple of (validated manifest, directory used to resolve image paths).

    Raises:
        FileNotFoundError: If the manifest file does not exist.
        yaml.YAMLError: If YAML parsing fails.
        pydantic.ValidationError: If the manifest structure is invalid.
    """
    manifest_path = Path(manifest_path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"Template manifest not found: {manifest_path}")

    with open(manifest_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    manifest = TemplateManifest(**raw)
    logger.info(
        f"Loaded manifest {manifest_path.name}: "
        f"{len(manifest.templates)} templates, {len(manifest.regions)} regions"
    )
    return manifest, manifest_path.parent.resolve()


def resolve_images(manifest: TemplateManifest, base_dir: Path) -> Dict[str, Path]:
    """Map template names to absolute image paths, preserving manifest order."""
    images: Dict[str, Path] = {}
    for entry in manifest.templates:
        image_path = Path(entry.image)
        if not image_path.is_absolute():
            image_path = base_dir / image_path
        images[entry.name] = image_path
    return images


def resolve_ids(manifest: TemplateManifest) -> Dict[str, int]:
    """Template ids from the manifest, defaulting to the 1-based position."""
    return {
        entry.name: entry.id if entry.id is not None else position
        for position, entry in enumerate(manifest.templates, start=1)
    }
