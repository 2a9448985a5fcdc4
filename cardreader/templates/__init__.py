"""
Template catalog: reference layouts with cached features and region metadata.
"""

from cardreader.templates.catalog import TemplateCatalog, load_template
from cardreader.templates.manifest import load_manifest
from cardreader.templates.types import (
    FeatureConfig,
    Template,
    TemplateManifest,
    TemplateMetadata,
)

__all__ = [
    "TemplateCatalog",
    "load_template",
    "load_manifest",
    "FeatureConfig",
    "Template",
    "TemplateManifest",
    "TemplateMetadata",
]
