"""
Ready-made resources for common services.
"""

from .qdrant import (
    QdrantContainerImageTags,
    QdrantServerResource,
    add_qdrant,
    with_data_bind_mount,
    with_data_volume,
)

__all__ = [
    "QdrantContainerImageTags",
    "QdrantServerResource",
    "add_qdrant",
    "with_data_bind_mount",
    "with_data_volume",
]
