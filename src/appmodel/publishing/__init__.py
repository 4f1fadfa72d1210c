"""
Manifest publishing for application models.
"""

from .manifest import ManifestPublisher, get_manifest, get_manifest_text
from .schema import MANIFEST_SCHEMA, ManifestSchemaValidator

__all__ = [
    "MANIFEST_SCHEMA",
    "ManifestPublisher",
    "ManifestSchemaValidator",
    "get_manifest",
    "get_manifest_text",
]
